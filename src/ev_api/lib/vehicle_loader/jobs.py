"""In-memory load job tracking.

Job state lives for the lifetime of the process.  Each job is written only by
the task that runs it, while any number of request handlers read it, so the
registry hands out copies taken under a lock rather than the live objects.
"""

import dataclasses
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class JobState(StrEnum):
    """Lifecycle state of a load job."""

    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    NOT_FOUND = "NOT_FOUND"


TERMINAL_STATES = frozenset({JobState.COMPLETED, JobState.FAILED})


@dataclass
class JobStatus:
    """Progress and outcome of a single load job.

    Attributes:
        job_id: Opaque job identifier.
        state: Current lifecycle state.
        records_processed: Rows committed so far; never decreases.
        total_records: Advisory row count estimated before loading (0 if unknown).
        progress: Percentage complete in ``[0, 100]``.
        start_time: When the job was submitted (None for NOT_FOUND).
        error_message: Failure reason, only set in the FAILED state.
        location: CSV location the job reads from.
    """

    job_id: str
    state: JobState = JobState.QUEUED
    records_processed: int = 0
    total_records: int = 0
    progress: float = 0.0
    start_time: datetime | None = field(default_factory=lambda: datetime.now(UTC))
    error_message: str | None = None
    location: str | None = None

    @classmethod
    def not_found(cls, job_id: str) -> "JobStatus":
        """Build the sentinel returned for unknown job ids."""
        return cls(job_id=job_id, state=JobState.NOT_FOUND, start_time=None)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


class JobRegistry:
    """Thread-safe map of job id to :class:`JobStatus`."""

    def __init__(self) -> None:
        self._jobs: dict[str, JobStatus] = {}
        self._lock = threading.Lock()

    def create(self, job_id: str, status: JobStatus) -> None:
        """Register a new job.

        Raises:
            KeyError: If ``job_id`` is already registered.
        """
        with self._lock:
            if job_id in self._jobs:
                msg = f"Job {job_id} already exists"
                raise KeyError(msg)
            self._jobs[job_id] = dataclasses.replace(status, job_id=job_id)

    def get(self, job_id: str) -> JobStatus:
        """Return a snapshot of the job, or the NOT_FOUND sentinel."""
        with self._lock:
            status = self._jobs.get(job_id)
            if status is None:
                return JobStatus.not_found(job_id)
            return dataclasses.replace(status)

    def list_jobs(self) -> list[JobStatus]:
        """Return snapshots of every tracked job, newest first."""
        with self._lock:
            snapshots = [dataclasses.replace(s) for s in self._jobs.values()]
        return sorted(snapshots, key=lambda s: s.start_time or datetime.min.replace(tzinfo=UTC), reverse=True)

    def update(self, job_id: str, **changes: Any) -> JobStatus:
        """Apply field changes to a job atomically.

        ``records_processed`` is clamped so it never moves backwards.

        Returns:
            A snapshot of the updated job.

        Raises:
            KeyError: If the job is not registered.
        """
        with self._lock:
            status = self._jobs[job_id]
            if "records_processed" in changes:
                changes["records_processed"] = max(status.records_processed, changes["records_processed"])
            for name, value in changes.items():
                setattr(status, name, value)
            return dataclasses.replace(status)

    def record_progress(self, job_id: str, processed: int) -> JobStatus:
        """Store a cumulative processed count and derive the percentage.

        The percentage is only computed when a total estimate is known, and
        is capped at 100 because the estimate may undercount.
        """
        with self._lock:
            status = self._jobs[job_id]
            status.records_processed = max(status.records_processed, processed)
            if status.total_records > 0:
                percent = min(status.records_processed / status.total_records * 100, 100.0)
                status.progress = max(status.progress, percent)
            return dataclasses.replace(status)
