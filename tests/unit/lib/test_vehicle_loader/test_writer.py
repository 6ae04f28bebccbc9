"""Tests for the chunked vehicle UPSERT writer."""

import threading
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError

from ev_api.lib.vehicle_loader.errors import ChunkWriteError
from ev_api.lib.vehicle_loader.writer import (
    UPDATE_COLUMNS,
    build_upsert_statement,
    load_vehicles,
    prepare_chunk,
    upsert_chunk,
)


def _rows(count: int, prefix: str = "VIN") -> list[dict[str, str | None]]:
    return [
        {"vin": f"{prefix}{i:07d}", "make": "TESLA", "dol_vehicle_id": str(100 + i), "vehicle_location": None}
        for i in range(count)
    ]


class TestBuildUpsertStatement:
    """Tests for build_upsert_statement."""

    def test_on_conflict_vin_updates_all_columns(self) -> None:
        stmt = build_upsert_statement(prepare_chunk(_rows(2)))
        sql = str(stmt.compile(dialect=postgresql.dialect()))
        assert "INSERT INTO electric_vehicle_population" in sql
        assert "ON CONFLICT (vin) DO UPDATE SET" in sql
        for column in UPDATE_COLUMNS:
            assert f"{column} = excluded.{column}" in sql

    def test_vin_not_in_update_columns(self) -> None:
        assert "vin" not in UPDATE_COLUMNS
        assert "vehicle_location_point" in UPDATE_COLUMNS
        assert len(UPDATE_COLUMNS) == 16


class TestPrepareChunk:
    """Tests for prepare_chunk."""

    def test_rows_without_vin_dropped(self) -> None:
        rows = [*_rows(2), {"vin": None, "make": "FORD"}]
        records = prepare_chunk(rows)
        assert [r["vin"] for r in records] == ["VIN0000000", "VIN0000001"]

    def test_repeated_vin_keeps_last_row(self) -> None:
        rows = [
            {"vin": "DUP0000001", "make": "TESLA", "dol_vehicle_id": "1"},
            {"vin": "OTHER00001", "make": "FORD", "dol_vehicle_id": "2"},
            {"vin": "DUP0000001", "make": "NISSAN", "dol_vehicle_id": "3"},
        ]
        records = prepare_chunk(rows)
        assert len(records) == 2
        dup = next(r for r in records if r["vin"] == "DUP0000001")
        assert dup["make"] == "NISSAN"
        assert dup["dol_vehicle_id"] == 3


class TestUpsertChunk:
    """Tests for upsert_chunk."""

    @staticmethod
    def _patched_scope(session: MagicMock):
        @asynccontextmanager
        async def scope(_factory):
            yield session

        return patch("ev_api.lib.vehicle_loader.writer.transaction_scope", scope)

    async def test_empty_chunk_opens_no_transaction(self) -> None:
        factory = MagicMock()
        await upsert_chunk(factory, [])
        factory.assert_not_called()

    async def test_large_chunk_split_into_sub_statements(self) -> None:
        session = MagicMock()
        session.execute = AsyncMock()
        records = prepare_chunk(_rows(2500))
        with self._patched_scope(session):
            await upsert_chunk(MagicMock(), records)
        assert session.execute.await_count == 3


class TestLoadVehicles:
    """Tests for load_vehicles."""

    async def test_rejects_non_positive_batch_size(self) -> None:
        with pytest.raises(ValueError, match="batch_size"):
            await load_vehicles(MagicMock(), _rows(1), batch_size=0)

    async def test_chunks_follow_batch_size(self) -> None:
        progress: list[int] = []
        with patch("ev_api.lib.vehicle_loader.writer.upsert_chunk", new_callable=AsyncMock) as mock_upsert:
            total = await load_vehicles(MagicMock(), iter(_rows(5)), batch_size=2, on_progress=progress.append)

        assert total == 5
        assert [len(call.args[1]) for call in mock_upsert.await_args_list] == [2, 2, 1]
        assert progress == [2, 4, 5]

    async def test_failing_chunk_stops_load(self) -> None:
        progress: list[int] = []
        failure = IntegrityError("INSERT ...", {}, Exception("duplicate key value violates unique constraint"))
        with patch(
            "ev_api.lib.vehicle_loader.writer.upsert_chunk",
            new_callable=AsyncMock,
            side_effect=[None, failure, None],
        ) as mock_upsert:
            with pytest.raises(ChunkWriteError) as exc_info:
                await load_vehicles(MagicMock(), iter(_rows(5)), batch_size=2, on_progress=progress.append)

        assert mock_upsert.await_count == 2
        assert progress == [2]
        assert exc_info.value.chunk_index == 1
        assert exc_info.value.records_committed == 2
        assert "batch 2 after 2 committed records" in str(exc_info.value)
        assert "duplicate key" in str(exc_info.value)
        assert exc_info.value.__cause__ is failure

    async def test_rows_without_vin_still_counted(self) -> None:
        rows = [*_rows(2), {"vin": "", "make": "FORD"}]
        with patch("ev_api.lib.vehicle_loader.writer.upsert_chunk", new_callable=AsyncMock) as mock_upsert:
            total = await load_vehicles(MagicMock(), rows, batch_size=10)
        assert total == 3
        assert len(mock_upsert.await_args.args[1]) == 2

    async def test_empty_input(self) -> None:
        progress: list[int] = []
        with patch("ev_api.lib.vehicle_loader.writer.upsert_chunk", new_callable=AsyncMock) as mock_upsert:
            total = await load_vehicles(MagicMock(), [], batch_size=10, on_progress=progress.append)
        assert total == 0
        assert progress == []
        mock_upsert.assert_not_awaited()

    async def test_rows_consumed_lazily(self) -> None:
        consumed: list[int] = []
        seen_at_write: list[int] = []

        def gen():
            for i, row in enumerate(_rows(4)):
                consumed.append(i)
                yield row

        async def record_consumed(_factory, _records):
            seen_at_write.append(len(consumed))

        with patch("ev_api.lib.vehicle_loader.writer.upsert_chunk", new=AsyncMock(side_effect=record_consumed)):
            await load_vehicles(MagicMock(), gen(), batch_size=2)
        assert seen_at_write == [2, 4]

    async def test_rows_read_off_event_loop_thread(self) -> None:
        loop_thread = threading.get_ident()
        reader_threads: set[int] = set()

        def gen():
            for row in _rows(3):
                reader_threads.add(threading.get_ident())
                yield row

        with patch("ev_api.lib.vehicle_loader.writer.upsert_chunk", new_callable=AsyncMock):
            total = await load_vehicles(MagicMock(), gen(), batch_size=2)
        assert total == 3
        assert reader_threads
        assert loop_thread not in reader_threads
