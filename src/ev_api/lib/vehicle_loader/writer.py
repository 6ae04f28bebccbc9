"""Chunked UPSERT of vehicle rows into PostgreSQL.

Rows are grouped into chunks of ``batch_size``; each chunk is written in its
own transaction with ``INSERT ... ON CONFLICT (vin) DO UPDATE``.  A failing
chunk rolls back alone: everything committed before it stays in place and
the loader stops with :class:`ChunkWriteError`.
"""

import asyncio
import time
from collections.abc import Callable, Iterable, Iterator
from itertools import batched, islice
from typing import Any

from loguru import logger
from sqlalchemy.dialects.postgresql import Insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ev_api.core.database import transaction_scope
from ev_api.lib.vehicle_loader.coercion import coerce_vehicle_row
from ev_api.lib.vehicle_loader.errors import ChunkWriteError
from ev_api.models.vehicle import ElectricVehicle

ProgressCallback = Callable[[int], None]

# asyncpg caps a statement at 32767 parameters; 17 columns * 1000 rows stays under it
_UPSERT_SUB_BATCH = 1000

_CONFLICT_KEY = "vin"

UPDATE_COLUMNS: tuple[str, ...] = tuple(c.name for c in ElectricVehicle.__table__.columns if c.name != _CONFLICT_KEY)


def build_upsert_statement(records: list[dict[str, Any]]) -> Insert:
    """Build a multi-row UPSERT keyed on VIN.

    Every non-key column of an existing row is overwritten with the incoming value.

    Args:
        records: Column dictionaries from :func:`coerce_vehicle_row`.
    """
    stmt = pg_insert(ElectricVehicle).values(records)
    return stmt.on_conflict_do_update(
        index_elements=[_CONFLICT_KEY],
        set_={col: stmt.excluded[col] for col in UPDATE_COLUMNS},
    )


def prepare_chunk(rows: Iterable[dict[str, str | None]]) -> list[dict[str, Any]]:
    """Coerce a chunk of parsed rows, keeping the last occurrence of each VIN.

    PostgreSQL refuses to update the same row twice in one statement, so a
    repeated VIN collapses to the values a row-by-row upsert would leave behind.
    """
    by_vin: dict[str, dict[str, Any]] = {}
    for row in rows:
        record = coerce_vehicle_row(row)
        if record is None:
            continue
        if record["vin"] in by_vin:
            logger.debug(f"VIN {record['vin']} repeated within one batch; keeping the later row")
        by_vin[record["vin"]] = record
    return list(by_vin.values())


async def upsert_chunk(
    session_factory: async_sessionmaker[AsyncSession],
    records: list[dict[str, Any]],
) -> None:
    """Write one chunk of records in a single transaction.

    Raises:
        SQLAlchemyError: If any statement fails; the whole chunk is rolled back.
    """
    if not records:
        return
    async with transaction_scope(session_factory) as session:
        for sub_batch in batched(records, _UPSERT_SUB_BATCH):
            await session.execute(build_upsert_statement(list(sub_batch)))


def _next_chunk(rows: Iterator[dict[str, str | None]], batch_size: int) -> tuple[int, list[dict[str, Any]]]:
    """Read and coerce up to ``batch_size`` rows; returns the row count and the records."""
    chunk = list(islice(rows, batch_size))
    return len(chunk), prepare_chunk(chunk)


async def load_vehicles(
    session_factory: async_sessionmaker[AsyncSession],
    rows: Iterable[dict[str, str | None]],
    batch_size: int = 1000,
    on_progress: ProgressCallback | None = None,
) -> int:
    """Upsert parsed CSV rows chunk by chunk.

    Each chunk is read from ``rows`` and coerced in a worker thread, so the
    event loop keeps serving requests while a file is parsed.

    Args:
        session_factory: Factory for the per-chunk sessions.
        rows: Parsed CSV rows, consumed lazily.
        batch_size: Maximum rows per chunk transaction.
        on_progress: Called after each commit with the cumulative number of
            rows considered so far.

    Returns:
        Total number of rows considered (rows without a VIN included).

    Raises:
        ValueError: If ``batch_size`` is less than 1.
        ChunkWriteError: If a chunk transaction fails.
    """
    if batch_size < 1:
        msg = f"batch_size must be at least 1, got {batch_size}"
        raise ValueError(msg)

    logger.info(f"Starting vehicle data load (UPSERT mode) with batch_size={batch_size}")
    row_iter = iter(rows)
    processed = 0
    chunk_idx = 0
    while True:
        chunk_start = time.monotonic()
        row_count, records = await asyncio.to_thread(_next_chunk, row_iter, batch_size)
        if row_count == 0:
            break
        try:
            await upsert_chunk(session_factory, records)
        except SQLAlchemyError as exc:
            logger.error(f"Batch {chunk_idx + 1} rolled back after {processed} committed records: {exc}")
            raise ChunkWriteError(chunk_idx, processed, exc) from exc

        processed += row_count
        chunk_elapsed = time.monotonic() - chunk_start
        logger.info(
            f"Batch {chunk_idx + 1} committed: {len(records)} upserted of {row_count} rows "
            f"({chunk_elapsed:.2f}s) | running total: {processed} records"
        )
        if on_progress is not None:
            on_progress(processed)
        chunk_idx += 1

    logger.info(f"Vehicle data load completed. Total records processed: {processed}")
    return processed
