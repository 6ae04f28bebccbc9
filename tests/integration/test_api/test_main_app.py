"""Integration tests for the application factory, lifespan, and middleware."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from ev_api.core.background import BoundedTaskRunner
from ev_api.main import create_app, lifespan
from ev_api.services.data_loader_service import DataLoaderJobService


class TestCreateApp:
    """Tests for create_app."""

    def test_routes_registered(self) -> None:
        app = create_app()
        paths = {route.path for route in app.routes}  # type: ignore[attr-defined]
        assert "/api/v1/data-loader/load-csv" in paths
        assert "/api/v1/data-loader/job-status/{job_id}" in paths
        assert "/api/v1/data-loader/jobs" in paths
        assert "/api/v1/vehicles" in paths
        assert "/api/v1/vehicles/{vin}" in paths

    async def test_security_headers_present(self) -> None:
        app = create_app()
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
            resp = await c.get("/api/v1/data-loader/jobs")

        # no lifespan ran, so the loader is unavailable
        assert resp.status_code == 503
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["X-Frame-Options"] == "DENY"

    async def test_cors_origin_allowed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CORS_ORIGINS", "http://dashboard.example.com")
        app = create_app()
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
            resp = await c.options(
                "/api/v1/vehicles",
                headers={"Origin": "http://dashboard.example.com", "Access-Control-Request-Method": "GET"},
            )
        assert resp.headers["access-control-allow-origin"] == "http://dashboard.example.com"


class TestLifespan:
    """Tests for the lifespan context."""

    async def test_service_created_and_torn_down(self) -> None:
        app = create_app()
        with (
            patch("ev_api.main.init_engine") as mock_init,
            patch("ev_api.main.dispose_engine", new_callable=AsyncMock) as mock_dispose,
            patch.object(BoundedTaskRunner, "shutdown", new_callable=AsyncMock) as mock_shutdown,
        ):
            async with lifespan(app):
                service = app.state.data_loader_service
                assert isinstance(service, DataLoaderJobService)
                mock_init.assert_called_once()

            mock_shutdown.assert_awaited_once()
            mock_dispose.assert_awaited_once()
        assert app.state.data_loader_service is None
