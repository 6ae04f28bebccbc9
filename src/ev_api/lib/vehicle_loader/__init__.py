"""Vehicle loader library public API.

Provides CSV source resolution and parsing, field coercion, chunked UPSERT
writing, and in-memory load job tracking.
"""

from ev_api.lib.vehicle_loader.coercion import coerce_vehicle_row, is_valid_wkt_point, parse_point
from ev_api.lib.vehicle_loader.errors import ChunkWriteError, ResourceNotFoundError
from ev_api.lib.vehicle_loader.jobs import JobRegistry, JobState, JobStatus
from ev_api.lib.vehicle_loader.source import (
    VEHICLE_COLUMN_MAP,
    count_records,
    iter_vehicle_rows,
    read_vehicle_chunks,
    resolve_location,
)
from ev_api.lib.vehicle_loader.writer import ProgressCallback, build_upsert_statement, load_vehicles

__all__ = [
    "VEHICLE_COLUMN_MAP",
    "ChunkWriteError",
    "JobRegistry",
    "JobState",
    "JobStatus",
    "ProgressCallback",
    "ResourceNotFoundError",
    "build_upsert_statement",
    "coerce_vehicle_row",
    "count_records",
    "is_valid_wkt_point",
    "iter_vehicle_rows",
    "load_vehicles",
    "parse_point",
    "read_vehicle_chunks",
    "resolve_location",
]
