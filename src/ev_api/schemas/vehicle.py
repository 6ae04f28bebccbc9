"""Vehicle Pydantic v2 response schemas."""

from decimal import Decimal

from geoalchemy2.shape import to_shape
from pydantic import BaseModel, Field

from ev_api.models.vehicle import ElectricVehicle
from ev_api.schemas.common import PaginationMeta


class PointResponse(BaseModel):
    """WGS84 coordinate pair."""

    longitude: float
    latitude: float


class VehicleResponse(BaseModel):
    """Electric vehicle record."""

    vin: str = Field(description="First ten characters of the VIN")
    county: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    model_year: int | None = None
    make: str | None = None
    model: str | None = None
    electric_vehicle_type: str | None = None
    cafv_eligibility_status: str | None = None
    electric_range: int | None = None
    base_msrp: Decimal | None = None
    legislative_district: str | None = None
    dol_vehicle_id: int
    vehicle_location: PointResponse | None = None
    electric_utility: str | None = None
    census_tract_2020: int | None = None

    @classmethod
    def from_model(cls, vehicle: ElectricVehicle) -> "VehicleResponse":
        """Build a response from an ``ElectricVehicle``, unpacking its geometry."""
        geometry = vehicle.vehicle_location_point
        location = None
        if geometry is not None:
            point = to_shape(geometry)
            location = PointResponse(longitude=point.x, latitude=point.y)
        return cls(
            vin=vehicle.vin,
            county=vehicle.county,
            city=vehicle.city,
            state=vehicle.state,
            postal_code=vehicle.postal_code,
            model_year=vehicle.model_year,
            make=vehicle.make,
            model=vehicle.model,
            electric_vehicle_type=vehicle.electric_vehicle_type,
            cafv_eligibility_status=vehicle.cafv_eligibility_status,
            electric_range=vehicle.electric_range,
            base_msrp=vehicle.base_msrp,
            legislative_district=vehicle.legislative_district,
            dol_vehicle_id=vehicle.dol_vehicle_id,
            vehicle_location=location,
            electric_utility=vehicle.electric_utility,
            census_tract_2020=vehicle.census_tract_2020,
        )


class PaginatedVehicleResponse(BaseModel):
    """Paginated list of vehicles."""

    items: list[VehicleResponse]
    pagination: PaginationMeta


_INT32_MAX = 2**31 - 1
_INT64_MAX = 2**63 - 1


class PointInput(BaseModel):
    """WGS84 coordinate pair supplied by a client."""

    longitude: float = Field(ge=-180, le=180)
    latitude: float = Field(ge=-90, le=90)


class VehicleFieldsRequest(BaseModel):
    """Vehicle attributes shared by the create and update requests."""

    county: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=255)
    state: str | None = Field(default=None, max_length=50)
    postal_code: str | None = Field(default=None, max_length=20)
    model_year: int = Field(ge=0, le=_INT32_MAX)
    make: str = Field(min_length=1, max_length=255, pattern=r"\S")
    model: str = Field(min_length=1, max_length=255, pattern=r"\S")
    electric_vehicle_type: str | None = Field(default=None, max_length=100)
    cafv_eligibility_status: str | None = Field(default=None, max_length=255)
    electric_range: int | None = Field(default=None, ge=0, le=_INT32_MAX)
    base_msrp: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    legislative_district: str | None = Field(default=None, max_length=50)
    vehicle_location: PointInput | None = None
    electric_utility: str | None = Field(default=None, max_length=255)
    census_tract_2020: int | None = Field(default=None, ge=0, le=_INT64_MAX)


class VehicleCreateRequest(VehicleFieldsRequest):
    """Request body for creating a vehicle."""

    vin: str = Field(min_length=1, max_length=10, pattern=r"\S", description="First ten characters of the VIN")
    dol_vehicle_id: int = Field(ge=0, le=_INT64_MAX)


class VehicleUpdateRequest(VehicleFieldsRequest):
    """Request body for replacing a vehicle's attributes.

    Every attribute is replaced; omitted optional fields are cleared.  The
    VIN and DOL vehicle id cannot change.  A VIN in the body must match the
    one in the path.
    """

    vin: str | None = Field(default=None, max_length=10)


class MsrpBatchUpdateRequest(BaseModel):
    """Request body for setting the base MSRP of every vehicle of a make and model."""

    make: str = Field(min_length=1, max_length=255, pattern=r"\S")
    model: str = Field(min_length=1, max_length=255, pattern=r"\S")
    new_base_msrp: Decimal = Field(ge=0, max_digits=12, decimal_places=2)


class MsrpBatchUpdateResponse(BaseModel):
    """Result of a batch MSRP update."""

    message: str
    make: str
    model: str
    updated_count: int
