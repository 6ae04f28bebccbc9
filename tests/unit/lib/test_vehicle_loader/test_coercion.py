"""Tests for field coercion of parsed vehicle rows."""

from decimal import Decimal

import pytest
from geoalchemy2.shape import to_shape

from ev_api.lib.vehicle_loader.coercion import (
    coerce_vehicle_row,
    is_valid_wkt_point,
    parse_decimal,
    parse_int,
    parse_point,
)


def _row(**overrides: str | None) -> dict[str, str | None]:
    row: dict[str, str | None] = {
        "vin": "5YJ3E1EA1K",
        "county": "King",
        "city": "Seattle",
        "state": "WA",
        "postal_code": "98101",
        "model_year": "2019",
        "make": "TESLA",
        "model": "MODEL 3",
        "electric_vehicle_type": "Battery Electric Vehicle (BEV)",
        "cafv_eligibility_status": "Clean Alternative Fuel Vehicle Eligible",
        "electric_range": "220",
        "base_msrp": "0",
        "legislative_district": "43",
        "dol_vehicle_id": "477309682",
        "vehicle_location": "POINT (-122.33 47.60)",
        "electric_utility": "CITY OF SEATTLE - (WA)",
        "census_tract_2020": "53033008100",
    }
    row.update(overrides)
    return row


class TestParseInt:
    """Tests for parse_int."""

    def test_valid(self) -> None:
        assert parse_int("2020", "model_year") == 2020

    def test_surrounding_whitespace(self) -> None:
        assert parse_int(" 42 ", "electric_range") == 42

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank_is_none(self, value: str | None) -> None:
        assert parse_int(value, "model_year") is None

    def test_unparsable_is_none(self) -> None:
        assert parse_int("twenty", "model_year", "VIN") is None

    def test_large_tract_number(self) -> None:
        assert parse_int("53033008100", "census_tract_2020") == 53033008100

    @pytest.mark.parametrize("value", ["1_000", "+-5", "12.0", "0x1F", "1e3"])
    def test_non_decimal_forms_are_none(self, value: str) -> None:
        assert parse_int(value, "electric_range", "VIN") is None

    def test_signed_values(self) -> None:
        assert parse_int("+7", "electric_range") == 7
        assert parse_int("-7", "electric_range") == -7

    @pytest.mark.parametrize(
        ("field_name", "value"),
        [
            ("model_year", "3000000000"),
            ("electric_range", "-2147483649"),
            ("dol_vehicle_id", "9223372036854775808"),
            ("census_tract_2020", "99999999999999999999"),
        ],
    )
    def test_out_of_range_is_none(self, field_name: str, value: str) -> None:
        assert parse_int(value, field_name, "VIN") is None

    @pytest.mark.parametrize(
        ("field_name", "value", "expected"),
        [
            ("model_year", "2147483647", 2147483647),
            ("dol_vehicle_id", "3000000000", 3000000000),
            ("census_tract_2020", "9223372036854775807", 9223372036854775807),
        ],
    )
    def test_column_upper_bounds_accepted(self, field_name: str, value: str, expected: int) -> None:
        assert parse_int(value, field_name) == expected


class TestParseDecimal:
    """Tests for parse_decimal."""

    def test_valid(self) -> None:
        assert parse_decimal("69900.50", "base_msrp") == Decimal("69900.50")

    def test_unparsable_is_none(self) -> None:
        assert parse_decimal("n/a", "base_msrp") is None

    def test_non_finite_is_none(self) -> None:
        assert parse_decimal("NaN", "base_msrp") is None
        assert parse_decimal("Infinity", "base_msrp") is None

    def test_too_large_for_column_is_none(self) -> None:
        assert parse_decimal("10000000000", "base_msrp") is None
        assert parse_decimal("9999999999.99", "base_msrp") == Decimal("9999999999.99")


class TestParsePoint:
    """Tests for WKT point parsing."""

    def test_valid_point(self) -> None:
        point = parse_point("POINT (-122.33 47.60)")
        assert point is not None
        assert point.x == pytest.approx(-122.33)
        assert point.y == pytest.approx(47.60)

    def test_lowercase_keyword_accepted(self) -> None:
        point = parse_point("point (-120.5 46.6)")
        assert point is not None
        assert point.x == pytest.approx(-120.5)

    @pytest.mark.parametrize(
        "value",
        [None, "", "  ", "POINT(-122.33 47.60)", "POINT (-122.33 47.60", "LINESTRING (0 0, 1 1)", "POINT (abc def)"],
    )
    def test_invalid_is_none(self, value: str | None) -> None:
        assert parse_point(value, "VIN") is None

    def test_is_valid_wkt_point(self) -> None:
        assert is_valid_wkt_point("POINT (1 2)")
        assert not is_valid_wkt_point("POINT 1 2")
        assert not is_valid_wkt_point(None)


class TestCoerceVehicleRow:
    """Tests for coerce_vehicle_row."""

    def test_full_row(self) -> None:
        record = coerce_vehicle_row(_row())
        assert record is not None
        assert record["vin"] == "5YJ3E1EA1K"
        assert record["model_year"] == 2019
        assert record["electric_range"] == 220
        assert record["base_msrp"] == Decimal("0")
        assert record["dol_vehicle_id"] == 477309682
        assert record["census_tract_2020"] == 53033008100
        assert record["legislative_district"] == "43"

        point = to_shape(record["vehicle_location_point"])
        assert point.x == pytest.approx(-122.33)
        assert point.y == pytest.approx(47.60)

    def test_empty_model_year_is_null(self) -> None:
        record = coerce_vehicle_row(_row(model_year=None))
        assert record is not None
        assert record["model_year"] is None
        assert record["make"] == "TESLA"

    def test_empty_location_is_null(self) -> None:
        record = coerce_vehicle_row(_row(vehicle_location=None))
        assert record is not None
        assert record["vehicle_location_point"] is None

    def test_invalid_location_keeps_row(self) -> None:
        record = coerce_vehicle_row(_row(vehicle_location="not a point"))
        assert record is not None
        assert record["vehicle_location_point"] is None
        assert record["city"] == "Seattle"

    def test_blank_text_fields_are_null(self) -> None:
        record = coerce_vehicle_row(_row(county="  ", city=None))
        assert record is not None
        assert record["county"] is None
        assert record["city"] is None

    @pytest.mark.parametrize("vin", [None, "", "   "])
    def test_missing_vin_skips_row(self, vin: str | None) -> None:
        assert coerce_vehicle_row(_row(vin=vin)) is None

    def test_record_has_every_column(self) -> None:
        record = coerce_vehicle_row(_row())
        assert record is not None
        assert "vehicle_location" not in record
        assert len(record) == 17

    def test_out_of_range_model_year_keeps_row(self) -> None:
        record = coerce_vehicle_row({"vin": "V1", "dol_vehicle_id": "1", "model_year": "3000000000"})
        assert record is not None
        assert record["model_year"] is None
        assert record["dol_vehicle_id"] == 1
