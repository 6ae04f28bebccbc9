"""Vehicle service: read and write access to electric vehicle records."""

from decimal import Decimal
from typing import Any

from geoalchemy2.shape import from_shape
from loguru import logger
from shapely.geometry import Point
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ev_api.lib.vehicle_loader.coercion import SRID
from ev_api.models.vehicle import ElectricVehicle

# Attributes a full update replaces; the VIN and DOL vehicle id are fixed at creation
_UPDATABLE_FIELDS = frozenset(
    {
        "county",
        "city",
        "state",
        "postal_code",
        "model_year",
        "make",
        "model",
        "electric_vehicle_type",
        "cafv_eligibility_status",
        "electric_range",
        "base_msrp",
        "legislative_district",
        "electric_utility",
        "census_tract_2020",
    }
)


def _location_geometry(location: dict[str, float] | None) -> Any:
    if location is None:
        return None
    return from_shape(Point(location["longitude"], location["latitude"]), srid=SRID)


async def get_vehicle(session: AsyncSession, vin: str) -> ElectricVehicle | None:
    """Get a vehicle by VIN.

    Args:
        session: Database session.
        vin: The VIN (first ten characters).

    Returns:
        The ElectricVehicle or None if not found.
    """
    result = await session.execute(select(ElectricVehicle).where(ElectricVehicle.vin == vin))
    return result.scalar_one_or_none()


async def list_vehicles(
    session: AsyncSession,
    *,
    make: str | None = None,
    model: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[ElectricVehicle], int]:
    """List vehicles ordered by VIN with optional case-insensitive make/model filters.

    Args:
        session: Database session.
        make: Filter by manufacturer.
        model: Filter by model name.
        page: Page number.
        page_size: Items per page.

    Returns:
        Tuple of (vehicles, total count).
    """
    query = select(ElectricVehicle)
    count_query = select(func.count(ElectricVehicle.vin))

    if make:
        query = query.where(func.upper(ElectricVehicle.make) == make.upper())
        count_query = count_query.where(func.upper(ElectricVehicle.make) == make.upper())
    if model:
        query = query.where(func.upper(ElectricVehicle.model) == model.upper())
        count_query = count_query.where(func.upper(ElectricVehicle.model) == model.upper())

    total = (await session.execute(count_query)).scalar_one()
    offset = (page - 1) * page_size
    query = query.order_by(ElectricVehicle.vin).offset(offset).limit(page_size)
    result = await session.execute(query)
    vehicles = list(result.scalars().all())

    return vehicles, total


# ---------------------------------------------------------------------------
# Write operations
# ---------------------------------------------------------------------------


async def create_vehicle(session: AsyncSession, *, data: dict[str, Any]) -> ElectricVehicle:
    """Create a vehicle record.

    Args:
        session: Database session.
        data: Field values including ``vin``, ``dol_vehicle_id`` and an
            optional ``vehicle_location`` of ``{"longitude", "latitude"}``.

    Returns:
        The created ElectricVehicle.

    Raises:
        ValueError: If the VIN or the DOL vehicle id is already in use.
    """
    vin = data["vin"]
    if await get_vehicle(session, vin) is not None:
        msg = f"Vehicle with VIN {vin} already exists"
        raise ValueError(msg)

    fields = {name: value for name, value in data.items() if name in _UPDATABLE_FIELDS}
    vehicle = ElectricVehicle(
        vin=vin,
        dol_vehicle_id=data["dol_vehicle_id"],
        vehicle_location_point=_location_geometry(data.get("vehicle_location")),
        **fields,
    )
    session.add(vehicle)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        msg = f"Vehicle {vin} conflicts with an existing record (DOL vehicle id {data['dol_vehicle_id']})"
        raise ValueError(msg) from None
    await session.refresh(vehicle)
    logger.info(f"Created vehicle {vin}")
    return vehicle


async def update_vehicle(session: AsyncSession, vin: str, *, data: dict[str, Any]) -> ElectricVehicle:
    """Replace every updatable attribute of a vehicle.

    Fields missing from ``data`` are cleared, including the location.

    Raises:
        ValueError: If the vehicle is not found.
    """
    vehicle = await get_vehicle(session, vin)
    if vehicle is None:
        msg = f"Vehicle {vin} not found"
        raise ValueError(msg)

    for field_name in _UPDATABLE_FIELDS:
        setattr(vehicle, field_name, data.get(field_name))
    vehicle.vehicle_location_point = _location_geometry(data.get("vehicle_location"))

    await session.commit()
    await session.refresh(vehicle)
    logger.info(f"Updated vehicle {vin}")
    return vehicle


async def delete_vehicle(session: AsyncSession, vin: str) -> None:
    """Delete a vehicle by VIN.

    Raises:
        ValueError: If the vehicle is not found.
    """
    vehicle = await get_vehicle(session, vin)
    if vehicle is None:
        msg = f"Vehicle {vin} not found"
        raise ValueError(msg)

    await session.delete(vehicle)
    await session.commit()
    logger.info(f"Deleted vehicle {vin}")


async def update_base_msrp(session: AsyncSession, *, make: str, model: str, new_base_msrp: Decimal) -> int:
    """Set the base MSRP of every vehicle matching make and model (case-insensitive).

    Returns:
        Number of vehicles updated.
    """
    stmt = (
        update(ElectricVehicle)
        .where(
            func.upper(ElectricVehicle.make) == make.upper(),
            func.upper(ElectricVehicle.model) == model.upper(),
        )
        .values(base_msrp=new_base_msrp)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    await session.commit()
    updated = result.rowcount
    logger.info(f"Updated base MSRP to {new_base_msrp} for {updated} {make} {model} vehicles")
    return updated
