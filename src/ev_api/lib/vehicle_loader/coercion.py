"""Field-level coercion of parsed CSV rows into database-ready records.

Unparsable numeric or location values never abort a load: they are logged
and stored as NULL so the rest of the row is still written.  Integers that
do not fit their column count as unparsable.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any

from geoalchemy2.shape import from_shape
from loguru import logger
from shapely import wkt
from shapely.errors import GEOSException
from shapely.geometry import Point

SRID = 4326

_INT32_RANGE = (-(2**31), 2**31 - 1)
_INT64_RANGE = (-(2**63), 2**63 - 1)

# column -> inclusive bounds of its database type
INTEGER_FIELD_RANGES: dict[str, tuple[int, int]] = {
    "model_year": _INT32_RANGE,
    "electric_range": _INT32_RANGE,
    "dol_vehicle_id": _INT64_RANGE,
    "census_tract_2020": _INT64_RANGE,
}

# base_msrp is NUMERIC(12, 2)
_MSRP_LIMIT = Decimal(10) ** 10

_INTEGER_PATTERN = re.compile(r"^[+-]?[0-9]+$")

_TEXT_FIELDS = (
    "county",
    "city",
    "state",
    "postal_code",
    "make",
    "model",
    "electric_vehicle_type",
    "cafv_eligibility_status",
    "legislative_district",
    "electric_utility",
)


def parse_int(value: str | None, field_name: str, vin: str | None = None) -> int | None:
    """Parse an integer column value.

    Only plain decimal digits with an optional sign are accepted, and the
    result must fit the column's range (32-bit unless the column is listed
    as 64-bit in :data:`INTEGER_FIELD_RANGES`).

    Args:
        value: Raw CSV text.
        field_name: Field name used in the warning and to pick the range.
        vin: VIN of the row, used in the warning.

    Returns:
        The integer, or None when blank, unparsable, or out of range.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    if not _INTEGER_PATTERN.match(text):
        logger.warning(f"Invalid integer value for {field_name} for VIN {vin}: {value!r}. Setting to NULL.")
        return None
    number = int(text)
    low, high = INTEGER_FIELD_RANGES.get(field_name, _INT32_RANGE)
    if not low <= number <= high:
        logger.warning(f"Integer value for {field_name} for VIN {vin} is out of range: {value!r}. Setting to NULL.")
        return None
    return number


def parse_decimal(value: str | None, field_name: str, vin: str | None = None) -> Decimal | None:
    """Parse a decimal column value such as Base MSRP.

    Returns:
        The decimal, or None when blank, unparsable, not finite, or too large
        for ``NUMERIC(12, 2)``.
    """
    if value is None or not value.strip():
        return None
    try:
        number = Decimal(value.strip())
    except InvalidOperation:
        number = None
    if number is None or not number.is_finite():
        logger.warning(f"Invalid decimal value for {field_name} for VIN {vin}: {value!r}. Setting to NULL.")
        return None
    if abs(number) >= _MSRP_LIMIT:
        logger.warning(f"Decimal value for {field_name} for VIN {vin} is out of range: {value!r}. Setting to NULL.")
        return None
    return number


def is_valid_wkt_point(value: str | None) -> bool:
    """Return True if ``value`` looks like a WKT point, e.g. ``POINT (-122.33 47.60)``."""
    if value is None or not value.strip():
        return False
    return value.upper().startswith("POINT (") and value.endswith(")")


def parse_point(value: str | None, vin: str | None = None) -> Point | None:
    """Parse a ``Vehicle Location`` value into a longitude/latitude point.

    Returns:
        A shapely Point (x = longitude, y = latitude), or None when the value
        is empty or malformed.
    """
    if not is_valid_wkt_point(value):
        logger.warning(f"Invalid or empty Vehicle Location for VIN {vin}: {value!r}. Setting geometry to NULL.")
        return None
    try:
        geometry = wkt.loads(value)
    except GEOSException:
        geometry = None
    if not isinstance(geometry, Point) or geometry.is_empty:
        logger.warning(f"Unreadable Vehicle Location for VIN {vin}: {value!r}. Setting geometry to NULL.")
        return None
    return geometry


def coerce_vehicle_row(row: dict[str, str | None]) -> dict[str, Any] | None:
    """Convert a parsed CSV row into column values for ``electric_vehicle_population``.

    Args:
        row: Field-name dictionary from :func:`iter_vehicle_rows`.

    Returns:
        Column dictionary ready for the upsert, or None if the row has no VIN.
    """
    vin = (row.get("vin") or "").strip()
    if not vin:
        logger.warning(f"Skipping row without a VIN: {row}")
        return None

    record: dict[str, Any] = {"vin": vin}
    for field_name in _TEXT_FIELDS:
        value = row.get(field_name)
        record[field_name] = (value or "").strip() or None
    for field_name in INTEGER_FIELD_RANGES:
        record[field_name] = parse_int(row.get(field_name), field_name, vin)
    record["base_msrp"] = parse_decimal(row.get("base_msrp"), "base_msrp", vin)

    point = parse_point(row.get("vehicle_location"), vin)
    record["vehicle_location_point"] = from_shape(point, srid=SRID) if point is not None else None
    return record
