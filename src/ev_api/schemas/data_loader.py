"""Data loader Pydantic v2 response schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from ev_api.lib.vehicle_loader import JobState, JobStatus


class LoadJobAcceptedResponse(BaseModel):
    """Returned when a CSV upload has been queued for loading."""

    message: str = "Data loading job started successfully"
    job_id: str
    status_endpoint: str = Field(description="Path to poll for the job's status")
    original_filename: str | None = None


class JobStatusResponse(BaseModel):
    """Point-in-time snapshot of a load job."""

    job_id: str
    status: JobState
    records_processed: int = Field(description="Rows committed so far")
    total_records: int = Field(description="Advisory row estimate; 0 when unknown")
    progress: float = Field(ge=0, le=100, description="Percent complete")
    start_time: datetime | None = None
    error_message: str | None = Field(default=None, description="Failure reason, present only for FAILED jobs")

    @classmethod
    def from_status(cls, status: JobStatus) -> "JobStatusResponse":
        return cls(
            job_id=status.job_id,
            status=status.state,
            records_processed=status.records_processed,
            total_records=status.total_records,
            progress=round(status.progress, 2),
            start_time=status.start_time,
            error_message=status.error_message if status.state == JobState.FAILED else None,
        )


class JobListResponse(BaseModel):
    """All load jobs tracked by the running process."""

    items: list[JobStatusResponse]
    total: int
