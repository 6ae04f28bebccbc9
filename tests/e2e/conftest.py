"""E2E test fixtures: real PostGIS database, Alembic migrations, cleanup.

These tests run against a live PostgreSQL/PostGIS database.  The CI workflow
exports ``DATABASE_URL`` and runs ``alembic upgrade head`` before pytest, so
the vehicle table already exists.  Without ``DATABASE_URL`` every test here
is skipped.
"""

import os
from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ev_api.core.database import get_engine
from ev_api.main import create_app, lifespan
from ev_api.models.vehicle import ElectricVehicle

# Every VIN written by the e2e suite starts with this prefix.
E2E_VIN_PREFIX = "E2E"


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def app() -> AsyncGenerator[FastAPI]:
    """Create the FastAPI app and run its lifespan to initialise the DB engine.

    The lifespan calls ``init_engine()`` on entry and shuts the loader pool
    down before ``dispose_engine()`` on exit.
    """
    if not os.environ.get("DATABASE_URL", "").startswith("postgresql"):
        pytest.skip("DATABASE_URL does not point at a PostgreSQL database")
    _app = create_app()
    async with lifespan(_app):
        yield _app


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient]:
    """HTTP client bound to the in-process app."""
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://e2e") as c:
        yield c


@pytest_asyncio.fixture(loop_scope="session")
async def db_session(app: FastAPI) -> AsyncGenerator[AsyncSession]:
    """Session on the live engine for direct assertions."""
    factory = async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


async def _delete_e2e_vehicles() -> None:
    factory = async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        await session.execute(delete(ElectricVehicle).where(ElectricVehicle.vin.startswith(E2E_VIN_PREFIX)))
        await session.commit()


@pytest_asyncio.fixture(loop_scope="session", autouse=True)
async def clean_vehicles(app: FastAPI) -> AsyncGenerator[None]:
    """Remove e2e vehicles before and after each test."""
    await _delete_e2e_vehicles()
    yield
    await _delete_e2e_vehicles()
