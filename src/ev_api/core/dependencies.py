"""FastAPI dependency injection for database sessions and the data loader service."""

from collections.abc import AsyncGenerator

from fastapi import HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ev_api.core.database import get_session_factory
from ev_api.services.data_loader_service import DataLoaderJobService


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Yield an async database session with per-request lifecycle."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


def get_data_loader_service(request: Request) -> DataLoaderJobService:
    """Return the job service created during application startup.

    Raises:
        HTTPException: 503 if the application lifespan has not started it.
    """
    service: DataLoaderJobService | None = getattr(request.app.state, "data_loader_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Data loader is not available",
        )
    return service
