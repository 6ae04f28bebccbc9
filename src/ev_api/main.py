"""FastAPI application factory.

Creates the FastAPI app with lifespan management, exception handlers,
and OpenAPI metadata.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ev_api.core.background import BoundedTaskRunner
from ev_api.core.config import get_settings
from ev_api.core.database import dispose_engine, init_engine
from ev_api.core.logging import setup_logging
from ev_api.lib.vehicle_loader import JobRegistry
from ev_api.services.data_loader_service import DataLoaderJobService


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifecycle.

    Startup initializes the engine and the load job service; shutdown stops
    outstanding load jobs before disposing the engine they write through.
    """
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)

    runner = BoundedTaskRunner(
        core_size=settings.loader_pool_core_size,
        max_size=settings.loader_pool_max_size,
        queue_capacity=settings.loader_queue_capacity,
    )
    app.state.data_loader_service = DataLoaderJobService(JobRegistry(), runner)

    yield

    await runner.shutdown()
    app.state.data_loader_service = None
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="EV API",
        description="Electric vehicle population data loading with geospatial capabilities",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc)},
        )

    from ev_api.api.router import create_router, setup_middleware

    setup_middleware(app, settings)
    app.include_router(create_router(settings))

    return app
