"""Vehicle API endpoints.

GET /vehicles (paginated list with make/model filters), POST /vehicles,
PATCH /vehicles/batch/msrp (base MSRP for a make and model), and
GET/PUT/DELETE /vehicles/{vin}.
"""

import math
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from ev_api.core.dependencies import get_async_session
from ev_api.schemas.common import PaginationMeta, PaginationParams
from ev_api.schemas.vehicle import (
    MsrpBatchUpdateRequest,
    MsrpBatchUpdateResponse,
    PaginatedVehicleResponse,
    VehicleCreateRequest,
    VehicleResponse,
    VehicleUpdateRequest,
)
from ev_api.services.vehicle_service import (
    create_vehicle,
    delete_vehicle,
    get_vehicle,
    list_vehicles,
    update_base_msrp,
    update_vehicle,
)

vehicles_router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@vehicles_router.get("", response_model=PaginatedVehicleResponse)
async def list_all_vehicles(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    pagination: Annotated[PaginationParams, Depends()],
    make: str | None = None,
    model: str | None = None,
) -> PaginatedVehicleResponse:
    """List vehicles with optional make and model filters."""
    vehicles, total = await list_vehicles(
        session, make=make, model=model, page=pagination.page, page_size=pagination.page_size
    )
    return PaginatedVehicleResponse(
        items=[VehicleResponse.from_model(v) for v in vehicles],
        pagination=PaginationMeta(
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=max(1, math.ceil(total / pagination.page_size)),
        ),
    )


@vehicles_router.post("", status_code=status.HTTP_201_CREATED, response_model=VehicleResponse)
async def create_vehicle_endpoint(
    body: VehicleCreateRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> VehicleResponse:
    """Create a vehicle. The VIN and DOL vehicle id must be unused."""
    try:
        vehicle = await create_vehicle(session, data=body.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return VehicleResponse.from_model(vehicle)


@vehicles_router.patch("/batch/msrp", response_model=MsrpBatchUpdateResponse)
async def update_msrp_endpoint(
    body: MsrpBatchUpdateRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> MsrpBatchUpdateResponse:
    """Set the base MSRP of every vehicle of a make and model."""
    updated = await update_base_msrp(session, make=body.make, model=body.model, new_base_msrp=body.new_base_msrp)
    return MsrpBatchUpdateResponse(
        message="Base MSRP updated for vehicles matching make and model",
        make=body.make,
        model=body.model,
        updated_count=updated,
    )


# ---------------------------------------------------------------------------
# Parameterized routes (/{vin} paths AFTER fixed-prefix routes)
# ---------------------------------------------------------------------------


@vehicles_router.get("/{vin}", response_model=VehicleResponse)
async def get_vehicle_by_vin(
    vin: str,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> VehicleResponse:
    """Get a vehicle by VIN."""
    vehicle = await get_vehicle(session, vin)
    if vehicle is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Vehicle {vin} not found")
    return VehicleResponse.from_model(vehicle)


@vehicles_router.put("/{vin}", response_model=VehicleResponse)
async def update_vehicle_endpoint(
    vin: str,
    body: VehicleUpdateRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> VehicleResponse:
    """Replace a vehicle's attributes. Omitted optional fields are cleared."""
    if body.vin is not None and body.vin != vin:
        logger.warning(f"Rejected update of vehicle {vin}: body VIN {body.vin} differs")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Path VIN ({vin}) must match body VIN ({body.vin})",
        )
    try:
        vehicle = await update_vehicle(session, vin, data=body.model_dump(exclude={"vin"}))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return VehicleResponse.from_model(vehicle)


@vehicles_router.delete("/{vin}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vehicle_endpoint(
    vin: str,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> None:
    """Delete a vehicle by VIN."""
    try:
        await delete_vehicle(session, vin)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
