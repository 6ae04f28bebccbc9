"""Data loader service: runs CSV vehicle loads as tracked background jobs."""

import asyncio
import uuid
from collections.abc import Callable
from contextlib import suppress
from pathlib import Path

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ev_api.core.background import BackgroundTaskRunner, TaskRejectedError
from ev_api.core.database import get_session_factory
from ev_api.core.logging import job_context
from ev_api.lib.vehicle_loader import (
    JobRegistry,
    JobState,
    JobStatus,
    count_records,
    iter_vehicle_rows,
    load_vehicles,
)


class DataLoaderJobService:
    """Submits load jobs and answers status queries.

    The registry is owned by this service; each job's entry is only written
    by the task running that job.
    """

    def __init__(
        self,
        registry: JobRegistry,
        task_runner: BackgroundTaskRunner,
        session_factory_provider: Callable[[], async_sessionmaker[AsyncSession]] = get_session_factory,
    ) -> None:
        self.registry = registry
        self._task_runner = task_runner
        self._session_factory_provider = session_factory_provider

    def register_job(self, location: str) -> str:
        """Create a QUEUED registry entry for a new job and return its id."""
        job_id = str(uuid.uuid4())
        self.registry.create(job_id, JobStatus(job_id=job_id, state=JobState.QUEUED, location=location))
        return job_id

    def start_load_job(self, location: str, batch_size: int, *, cleanup_path: Path | None = None) -> str:
        """Register a QUEUED job and hand it to the task runner.

        The job is registered before scheduling, so a status query made right
        after this returns never reports NOT_FOUND.

        Args:
            location: CSV location to load.
            batch_size: Rows per upsert transaction.
            cleanup_path: File to delete once the job finishes (e.g. an upload).

        Returns:
            The new job id.

        Raises:
            TaskRejectedError: If the runner cannot accept another job.  The
                job is recorded as FAILED before the error is re-raised.
        """
        job_id = self.register_job(location)

        try:
            self._task_runner.submit_task(
                self.run_load_job(job_id, location, batch_size, cleanup_path=cleanup_path),
                name=f"load-{job_id}",
                on_discard=lambda: self._discard_job(job_id, cleanup_path),
            )
        except TaskRejectedError as exc:
            self.registry.update(job_id, state=JobState.FAILED, error_message=str(exc))
            if cleanup_path is not None:
                cleanup_path.unlink(missing_ok=True)
            logger.warning(f"Rejected data loading job {job_id} for {location}: {exc}")
            raise

        logger.info(f"Queued asynchronous data loading job {job_id} for file: {location}")
        return job_id

    def _discard_job(self, job_id: str, cleanup_path: Path | None) -> None:
        """Record a job dropped before it started and remove its upload."""
        self.registry.update(job_id, state=JobState.FAILED, error_message="Job discarded at shutdown before it started")
        if cleanup_path is not None:
            cleanup_path.unlink(missing_ok=True)
        logger.warning(f"Data loading job {job_id} discarded at shutdown")

    def get_job_status(self, job_id: str) -> JobStatus:
        """Return the job snapshot, or a NOT_FOUND sentinel for unknown ids."""
        return self.registry.get(job_id)

    def list_jobs(self) -> list[JobStatus]:
        """Return snapshots of all jobs tracked by this process."""
        return self.registry.list_jobs()

    async def run_load_job(
        self,
        job_id: str,
        location: str,
        batch_size: int,
        *,
        cleanup_path: Path | None = None,
    ) -> int:
        """Execute a registered job: count, load, and record the outcome.

        Any error is recorded on the job as FAILED before being re-raised, so
        the task's own result reflects the outcome as well.

        Returns:
            Number of records processed.
        """
        with job_context(job_id):
            return await self._run(job_id, location, batch_size, cleanup_path)

    async def _run(self, job_id: str, location: str, batch_size: int, cleanup_path: Path | None) -> int:
        self.registry.update(job_id, state=JobState.RUNNING)
        logger.info(f"Starting data loading job {job_id}: {location}")

        try:
            total = await asyncio.to_thread(count_records, location)
            self.registry.update(job_id, total_records=total)
            if total == 0:
                logger.info(f"Job {job_id}: no record estimate, progress will report counts only")

            def on_progress(processed: int) -> None:
                self.registry.record_progress(job_id, processed)

            rows = iter_vehicle_rows(location, chunk_size=batch_size)
            try:
                processed = await load_vehicles(
                    self._session_factory_provider(),
                    rows,
                    batch_size,
                    on_progress,
                )
            finally:
                # after cancellation the worker thread may still be inside the generator
                with suppress(ValueError):
                    rows.close()
        except asyncio.CancelledError:
            logger.warning(f"Data loading job {job_id} cancelled")
            self.registry.update(job_id, state=JobState.FAILED, error_message="Job cancelled at shutdown")
            raise
        except Exception as exc:
            logger.exception(f"Data loading job {job_id} failed")
            self.registry.update(job_id, state=JobState.FAILED, error_message=str(exc))
            raise
        finally:
            if cleanup_path is not None:
                cleanup_path.unlink(missing_ok=True)

        self.registry.update(job_id, state=JobState.COMPLETED, records_processed=processed, progress=100.0)
        logger.info(f"Completed data loading job {job_id}. Records processed: {processed}")
        return processed
