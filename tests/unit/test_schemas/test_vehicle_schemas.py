"""Tests for vehicle request and response schemas."""

from decimal import Decimal

import pytest
from pydantic import ValidationError
from geoalchemy2.shape import from_shape
from shapely.geometry import Point

from ev_api.models.vehicle import ElectricVehicle
from ev_api.schemas.vehicle import (
    MsrpBatchUpdateRequest,
    VehicleCreateRequest,
    VehicleResponse,
    VehicleUpdateRequest,
)


def _vehicle(**overrides: object) -> ElectricVehicle:
    values: dict[str, object] = {
        "vin": "5YJ3E1EA1K",
        "county": "King",
        "city": "Seattle",
        "state": "WA",
        "postal_code": "98101",
        "model_year": 2019,
        "make": "TESLA",
        "model": "MODEL 3",
        "electric_range": 220,
        "base_msrp": Decimal("0"),
        "dol_vehicle_id": 477309682,
        "vehicle_location_point": from_shape(Point(-122.33, 47.6), srid=4326),
    }
    values.update(overrides)
    return ElectricVehicle(**values)


class TestVehicleResponse:
    """Tests for VehicleResponse.from_model."""

    def test_unpacks_point(self) -> None:
        resp = VehicleResponse.from_model(_vehicle())
        assert resp.vin == "5YJ3E1EA1K"
        assert resp.vehicle_location is not None
        assert resp.vehicle_location.longitude == pytest.approx(-122.33)
        assert resp.vehicle_location.latitude == pytest.approx(47.6)

    def test_null_location(self) -> None:
        resp = VehicleResponse.from_model(_vehicle(vehicle_location_point=None))
        assert resp.vehicle_location is None
        assert resp.model_year == 2019

    def test_null_optional_fields(self) -> None:
        resp = VehicleResponse.from_model(_vehicle(model_year=None, electric_range=None, base_msrp=None))
        assert resp.model_year is None
        assert resp.electric_range is None
        assert resp.base_msrp is None


class TestVehicleRequests:
    """Tests for the create, update and batch MSRP request bodies."""

    def test_create_requires_identifiers(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            VehicleCreateRequest(make="TESLA", model="MODEL 3", model_year=2019)
        missing = {err["loc"][0] for err in exc_info.value.errors()}
        assert missing == {"vin", "dol_vehicle_id"}

    def test_create_dump_includes_location(self) -> None:
        request = VehicleCreateRequest(
            vin="5YJ3E1EA1K",
            dol_vehicle_id=1,
            make="TESLA",
            model="MODEL 3",
            model_year=2019,
            vehicle_location={"longitude": -122.33, "latitude": 47.6},
        )
        assert request.model_dump()["vehicle_location"] == {"longitude": -122.33, "latitude": 47.6}

    def test_update_vin_optional(self) -> None:
        request = VehicleUpdateRequest(make="KIA", model="EV6", model_year=2023)
        assert request.vin is None

    def test_out_of_range_integer_rejected(self) -> None:
        with pytest.raises(ValidationError):
            VehicleUpdateRequest(make="KIA", model="EV6", model_year=3_000_000_000)

    def test_msrp_precision_limited(self) -> None:
        request = MsrpBatchUpdateRequest(make="TESLA", model="Model Y", new_base_msrp="65000.00")
        assert request.new_base_msrp == Decimal("65000.00")
        with pytest.raises(ValidationError):
            MsrpBatchUpdateRequest(make="TESLA", model="Model Y", new_base_msrp="65000.001")
