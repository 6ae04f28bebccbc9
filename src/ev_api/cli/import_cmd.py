"""Import CLI commands for electric vehicle population CSV files."""

import asyncio

import typer

import_app = typer.Typer()


@import_app.command("vehicles")
def import_vehicles(
    location: str = typer.Argument(..., help="CSV location: a path, file:PATH, or classpath:NAME"),
    batch_size: int | None = typer.Option(  # noqa: B008
        None, "--batch-size", min=1, help="Records per transaction (default: LOADER_BATCH_SIZE)"
    ),
) -> None:
    """Load vehicles from a CSV file in this process, without the API server."""
    ok = asyncio.run(_import_vehicles(location, batch_size))
    if not ok:
        raise typer.Exit(code=1)


async def _import_vehicles(location: str, batch_size: int | None) -> bool:
    """Async implementation of vehicle import. Returns True on success."""
    from ev_api.core.background import BoundedTaskRunner
    from ev_api.core.config import get_settings
    from ev_api.core.database import dispose_engine, init_engine
    from ev_api.lib.vehicle_loader import JobRegistry, JobState
    from ev_api.services.data_loader_service import DataLoaderJobService

    settings = get_settings()
    batch_size = batch_size or settings.loader_batch_size
    init_engine(settings.database_url, schema=settings.database_schema)

    runner = BoundedTaskRunner(core_size=1, max_size=1, queue_capacity=0)
    service = DataLoaderJobService(JobRegistry(), runner)
    try:
        job_id = service.start_load_job(location, batch_size)
        typer.echo(f"Import job created: {job_id}")
        typer.echo(f"Processing {location} in batches of {batch_size}...")
        await runner.join()
    finally:
        await runner.shutdown()
        await dispose_engine()

    job = service.get_job_status(job_id)
    typer.echo(f"\nImport {'completed' if job.state == JobState.COMPLETED else 'failed'}:")
    typer.echo(f"  Records processed: {job.records_processed}")
    typer.echo(f"  Estimated total:   {job.total_records}")
    if job.error_message:
        typer.echo(f"  Error:             {job.error_message}")
    return job.state == JobState.COMPLETED
