"""Data loader API endpoints.

POST /data-loader/load-csv (multipart upload, asynchronous load),
GET /data-loader/job-status/{job_id} (job status), GET /data-loader/jobs (all jobs).
"""

import tempfile
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, status
from loguru import logger

from ev_api.core.background import TaskRejectedError
from ev_api.core.config import Settings, get_settings
from ev_api.core.dependencies import get_data_loader_service
from ev_api.lib.vehicle_loader import JobState
from ev_api.schemas.data_loader import JobListResponse, JobStatusResponse, LoadJobAcceptedResponse
from ev_api.services.data_loader_service import DataLoaderJobService

data_loader_router = APIRouter(prefix="/data-loader", tags=["data-loader"])

_UPLOAD_READ_SIZE = 1024 * 1024


async def _save_upload(file: UploadFile, max_bytes: int) -> Path:
    """Stream an upload to a temporary file, enforcing a size limit."""
    suffix = Path(file.filename or "").suffix or ".csv"
    written = 0
    with tempfile.NamedTemporaryFile(delete=False, prefix="ev-upload-", suffix=suffix) as tmp:
        tmp_path = Path(tmp.name)
        while chunk := await file.read(_UPLOAD_READ_SIZE):
            written += len(chunk)
            if written > max_bytes:
                tmp.close()
                tmp_path.unlink(missing_ok=True)
                raise HTTPException(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    detail=f"File exceeds maximum size of {max_bytes // (1024 * 1024)} MB",
                )
            tmp.write(chunk)

    if written == 0:
        tmp_path.unlink(missing_ok=True)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")
    return tmp_path


@data_loader_router.post("/load-csv", response_model=LoadJobAcceptedResponse, status_code=202)
async def load_csv(
    file: UploadFile,
    service: Annotated[DataLoaderJobService, Depends(get_data_loader_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    batch_size: Annotated[int | None, Query(ge=1, description="Rows per upsert transaction")] = None,
) -> LoadJobAcceptedResponse:
    """Upload a vehicle CSV and load it asynchronously."""
    if not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")

    effective_batch_size = batch_size or settings.loader_batch_size
    tmp_path = await _save_upload(file, settings.loader_max_upload_mb * 1024 * 1024)
    logger.info(f"Received CSV file {file.filename!r} saved to {tmp_path} (batch_size={effective_batch_size})")

    try:
        job_id = service.start_load_job(str(tmp_path), effective_batch_size, cleanup_path=tmp_path)
    except TaskRejectedError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return LoadJobAcceptedResponse(
        job_id=job_id,
        status_endpoint=f"{settings.api_v1_prefix}/data-loader/job-status/{job_id}",
        original_filename=file.filename,
    )


@data_loader_router.get("/job-status/{job_id}", response_model=JobStatusResponse)
async def get_job_status(
    job_id: str,
    service: Annotated[DataLoaderJobService, Depends(get_data_loader_service)],
) -> JobStatusResponse:
    """Get the status of a data loading job."""
    job_status = service.get_job_status(job_id)
    if job_status.state == JobState.NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return JobStatusResponse.from_status(job_status)


@data_loader_router.get("/jobs", response_model=JobListResponse)
async def list_jobs(
    service: Annotated[DataLoaderJobService, Depends(get_data_loader_service)],
) -> JobListResponse:
    """List every data loading job tracked since the server started."""
    jobs = service.list_jobs()
    return JobListResponse(items=[JobStatusResponse.from_status(j) for j in jobs], total=len(jobs))
