"""CSV source resolution and chunked parsing for vehicle population files.

A location is resolved in this order:

1. ``classpath:<name>``: a CSV bundled in :mod:`ev_api.resources`.
2. ``file:<path>``: an absolute filesystem path.
3. anything else: a bundled resource of that name if one exists, otherwise
   a local filesystem path.

Parsing reads the first row as the header (matched case-insensitively) and
trims every value.  A line with more fields than the header is logged and
keeps its leading fields; a line with fewer is padded with blanks.
"""

import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import IO

import pandas as pd
from loguru import logger

from ev_api.lib.vehicle_loader.errors import ResourceNotFoundError

CLASSPATH_PREFIX = "classpath:"
FILE_PREFIX = "file:"
RESOURCE_PACKAGE = "ev_api.resources"

HEADER_VIN = "VIN (1-10)"

# Washington State DOL electric vehicle population export: header → model field name
VEHICLE_COLUMN_MAP: dict[str, str] = {
    HEADER_VIN: "vin",
    "County": "county",
    "City": "city",
    "State": "state",
    "Postal Code": "postal_code",
    "Model Year": "model_year",
    "Make": "make",
    "Model": "model",
    "Electric Vehicle Type": "electric_vehicle_type",
    "Clean Alternative Fuel Vehicle (CAFV) Eligibility": "cafv_eligibility_status",
    "Electric Range": "electric_range",
    "Base MSRP": "base_msrp",
    "Legislative District": "legislative_district",
    "DOL Vehicle ID": "dol_vehicle_id",
    "Vehicle Location": "vehicle_location",
    "Electric Utility": "electric_utility",
    "2020 Census Tract": "census_tract_2020",
}

_VEHICLE_COLUMN_MAP_LOWER: dict[str, str] = {k.lower(): v for k, v in VEHICLE_COLUMN_MAP.items()}

VEHICLE_FIELDS: tuple[str, ...] = tuple(VEHICLE_COLUMN_MAP.values())

_COUNT_CHUNK_SIZE = 10_000


def _bundled_resource(name: str) -> Traversable | None:
    """Return the bundled resource called ``name`` if it exists."""
    name = name.lstrip("/")
    if not name:
        return None
    try:
        candidate = resources.files(RESOURCE_PACKAGE).joinpath(name)
    except (ModuleNotFoundError, ValueError):
        return None
    return candidate if candidate.is_file() else None


def _readable_file(path: Path) -> bool:
    return path.is_file() and os.access(path, os.R_OK)


def resolve_location(location: str) -> Traversable | Path:
    """Resolve a location string to something that can be opened.

    Args:
        location: ``classpath:`` name, ``file:`` path, or bare path/resource name.

    Returns:
        A bundled resource or a readable filesystem path.

    Raises:
        ResourceNotFoundError: If the location cannot be resolved.
    """
    if location.startswith(CLASSPATH_PREFIX):
        resource = _bundled_resource(location.removeprefix(CLASSPATH_PREFIX))
        if resource is None:
            raise ResourceNotFoundError(location, "no bundled resource with that name")
        return resource

    if location.startswith(FILE_PREFIX):
        path = Path(location.removeprefix(FILE_PREFIX))
        if not _readable_file(path):
            raise ResourceNotFoundError(location)
        return path

    resource = _bundled_resource(location)
    if resource is not None:
        return resource

    path = Path(location)
    if not _readable_file(path):
        raise ResourceNotFoundError(location)
    return path


@contextmanager
def open_source(location: str) -> Iterator[IO[str]]:
    """Open a resolved CSV location as text.

    Raises:
        ResourceNotFoundError: If the location cannot be resolved.
    """
    target = resolve_location(location)
    # utf-8-sig drops the byte-order mark that spreadsheet exports often prepend
    with target.open("r", encoding="utf-8-sig", newline="") as handle:
        yield handle


def _build_rename_map(columns: list[str]) -> dict[str, str]:
    rename_map: dict[str, str] = {}
    for csv_col in columns:
        field_name = _VEHICLE_COLUMN_MAP_LOWER.get(csv_col.lower())
        if field_name is None:
            logger.debug(f"Ignoring unknown CSV column: {csv_col!r}")
            continue
        if csv_col not in VEHICLE_COLUMN_MAP:
            logger.debug(f"CSV column {csv_col!r} matched {field_name!r} case-insensitively")
        rename_map[csv_col] = field_name

    if "vin" not in rename_map.values():
        msg = f"CSV header is missing the required {HEADER_VIN!r} column"
        raise ValueError(msg)

    missing = [h for h, f in VEHICLE_COLUMN_MAP.items() if f not in rename_map.values()]
    if missing:
        logger.warning(f"CSV header is missing columns {missing}; their values will be stored as NULL")
    return rename_map


def _keep_leading_fields(field_count: int) -> Callable[[list[str]], list[str]]:
    """Build an ``on_bad_lines`` handler that truncates over-long lines to the header width."""

    def handle_bad_line(bad_line: list[str]) -> list[str]:
        logger.warning(
            f"CSV line has {len(bad_line)} fields but the header has {field_count}; "
            f"ignoring the extra trailing fields (VIN field: {bad_line[0]!r})"
        )
        return bad_line[:field_count]

    return handle_bad_line


def read_vehicle_chunks(location: str, chunk_size: int = 1000) -> Iterator[pd.DataFrame]:
    """Parse a vehicle CSV in chunks.

    Args:
        location: CSV location (see module docstring).
        chunk_size: Rows per yielded DataFrame.

    Yields:
        DataFrames whose columns are exactly :data:`VEHICLE_FIELDS`, holding
        trimmed string values (empty string for blank or absent cells).

    Raises:
        ResourceNotFoundError: If the location cannot be resolved.
        ValueError: If the header lacks the VIN column.
    """
    with open_source(location) as handle:
        field_count = len(pd.read_csv(handle, nrows=0).columns)
        handle.seek(0)
        # the python engine is the one that accepts a callable for on_bad_lines
        reader = pd.read_csv(
            handle,
            chunksize=chunk_size,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            engine="python",
            on_bad_lines=_keep_leading_fields(field_count),
        )

        rename_map: dict[str, str] | None = None
        for chunk in reader:
            chunk.columns = chunk.columns.str.strip()
            if rename_map is None:
                rename_map = _build_rename_map(list(chunk.columns))

            chunk = chunk[list(rename_map)].rename(columns=rename_map)
            chunk = chunk.reindex(columns=list(VEHICLE_FIELDS), fill_value="")
            if chunk.empty:
                continue

            # Short rows leave NaN in their trailing cells
            chunk = chunk.fillna("").astype(str).apply(lambda col: col.str.strip())

            yield chunk


def iter_vehicle_rows(location: str, chunk_size: int = 1000) -> Iterator[dict[str, str | None]]:
    """Yield parsed CSV rows one at a time as field-name dictionaries.

    Empty cells are returned as ``None``.

    Raises:
        ResourceNotFoundError: If the location cannot be resolved.
        ValueError: If the header lacks the VIN column.
    """
    for chunk in read_vehicle_chunks(location, chunk_size):
        for record in chunk.to_dict("records"):
            yield {field_name: (value or None) for field_name, value in record.items()}


def count_records(location: str) -> int:
    """Count data rows (excluding the header) for progress estimation.

    Returns:
        The number of rows, or 0 if the source cannot be read.
    """
    try:
        return sum(len(chunk) for chunk in read_vehicle_chunks(location, _COUNT_CHUNK_SIZE))
    except Exception as exc:
        logger.warning(f"Unable to count records in {location} for progress tracking: {exc}")
        return 0
