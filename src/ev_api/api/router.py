"""Root API router with /api/v1 prefix and middleware registration."""

from fastapi import APIRouter, FastAPI

from ev_api.api.middleware import SecurityHeadersMiddleware, setup_cors
from ev_api.core.config import Settings


def create_router(settings: Settings) -> APIRouter:
    """Create the root API router with all sub-routers included.

    Args:
        settings: Application settings.

    Returns:
        Configured API router.
    """
    from ev_api.api.v1.data_loader import data_loader_router
    from ev_api.api.v1.vehicles import vehicles_router

    root_router = APIRouter(prefix=settings.api_v1_prefix)
    root_router.include_router(data_loader_router)
    root_router.include_router(vehicles_router)

    return root_router


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware on the FastAPI app.

    Args:
        app: The FastAPI application.
        settings: Application settings.
    """
    setup_cors(app, settings)
    app.add_middleware(SecurityHeadersMiddleware)
