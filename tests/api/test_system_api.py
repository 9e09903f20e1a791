"""Tests for /api/system/ping, the health report, readiness and error handling."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from bergizi.api.deps import get_current_user
from bergizi.api.system import (
    HEALTH_CACHE_KEY,
    api_status,
    calculate_error_rate,
    grade_latency,
    overall_status,
)
from bergizi.common.exceptions import RealtimeError
from bergizi.common.models import User, UserRole
from bergizi.dashboard.summary import summary_key
from bergizi.main import app, create_app


class TestPing:
    @pytest.mark.asyncio
    async def test_get(self, client: AsyncClient):
        resp = await client.get("/api/system/ping")

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["server"] == "bergizi-id"
        assert "timestamp" in body
        assert resp.headers["cache-control"] == "no-cache, no-store, must-revalidate"

    @pytest.mark.asyncio
    async def test_head(self, client: AsyncClient):
        resp = await client.head("/api/system/ping")

        assert resp.status_code == 200
        assert resp.content == b""
        assert resp.headers["pragma"] == "no-cache"


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        resp = await client.get("/health")

        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": "0.1.0"}

    @pytest.mark.asyncio
    async def test_ready_when_dependencies_up(self, client: AsyncClient):
        redis_client = MagicMock()
        redis_client.ping = AsyncMock(return_value=True)

        with patch("bergizi.main.get_redis", return_value=redis_client):
            resp = await client.get("/ready")

        assert resp.status_code == 200
        assert resp.json()["checks"] == {"database": "ok", "redis": "ok"}

    @pytest.mark.asyncio
    async def test_ready_degraded_when_redis_down(self, client: AsyncClient):
        redis_client = MagicMock()
        redis_client.ping = AsyncMock(side_effect=ConnectionError("refused"))

        with patch("bergizi.main.get_redis", return_value=redis_client):
            resp = await client.get("/ready")

        assert resp.status_code == 503
        body = resp.json()
        assert body["status"] == "degraded"
        assert body["checks"]["redis"] == "error: ConnectionError"


class TestErrorHandling:
    @pytest.mark.asyncio
    async def test_unhandled_error_body_carries_request_id(self):
        failing_app = create_app()

        @failing_app.get("/boom")
        async def boom() -> dict:
            raise RuntimeError("kaboom")

        transport = ASGITransport(app=failing_app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/boom", headers={"X-Request-ID": "req-500"})

        assert resp.status_code == 500
        assert resp.json() == {
            "error": "InternalServerError",
            "message": "An unexpected error occurred",
            "request_id": "req-500",
        }

    @pytest.mark.asyncio
    async def test_realtime_error_is_503(self, client: AsyncClient, sppg, mock_redis):
        mock_redis.store[summary_key(sppg.id)] = "{}"
        with patch(
            "bergizi.dashboard.summary.broadcast_dashboard_update",
            new=AsyncMock(side_effect=RealtimeError("Failed to publish real-time event")),
        ):
            resp = await client.delete("/api/dashboard/cache")

        assert resp.status_code == 503
        assert resp.json()["error"] == "RealtimeError"

    @pytest.mark.asyncio
    async def test_response_has_request_id(self, client: AsyncClient):
        resp = await client.get("/health", headers={"X-Request-ID": "abc-123"})
        assert resp.headers["x-request-id"] == "abc-123"

    @pytest.mark.asyncio
    async def test_not_found_handler_body(self, client: AsyncClient):
        resp = await client.get("/api/nutrition/menus/missing")

        assert resp.status_code == 404
        body = resp.json()
        assert body["error"] == "NotFoundError"
        assert body["message"].startswith("Menu not found")


class TestStreamAuth:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/api/sse/dashboard", "/api/sse/menu"])
    async def test_streams_require_user(self, header_client: AsyncClient, path: str):
        resp = await header_client.get(path)
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_streams_require_sppg(self, header_client: AsyncClient, platform_admin):
        resp = await header_client.get(
            "/api/sse/dashboard", headers={"X-User-ID": platform_admin.id}
        )
        assert resp.status_code == 403


# ─── /api/system/health ───


@pytest_asyncio.fixture
async def sppg_admin(db, sppg) -> User:
    user = User(
        id="user-admin-01",
        email="admin@sppg-jkt.id",
        name="Budi Santoso",
        user_role=UserRole.SPPG_ADMIN,
        sppg_id=sppg.id,
    )
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def admin_client(client: AsyncClient, sppg_admin: User) -> AsyncClient:
    """The shared client, re-authenticated as an SPPG administrator."""
    app.dependency_overrides[get_current_user] = lambda: sppg_admin
    return client


class TestHealthGrading:
    """Tests for the pure grading helpers."""

    def test_latency_thresholds(self):
        assert grade_latency(1000, 1000) == "CONNECTED"
        assert grade_latency(1001, 1000) == "SLOW"

    @pytest.mark.parametrize(
        ("database", "redis", "expected"),
        [
            ("CONNECTED", "CONNECTED", 0),
            ("SLOW", "SLOW", 15),
            ("DISCONNECTED", "CONNECTED", 50),
            ("DISCONNECTED", "DISCONNECTED", 80),
        ],
    )
    def test_error_rate(self, database, redis, expected):
        assert calculate_error_rate(database, redis) == expected

    def test_overall_status(self):
        assert overall_status("CONNECTED", "CONNECTED", 10, 0) == "HEALTHY"
        assert overall_status("CONNECTED", "SLOW", 10, 5) == "WARNING"
        assert overall_status("CONNECTED", "CONNECTED", 2500, 0) == "WARNING"
        assert overall_status("CONNECTED", "DISCONNECTED", 10, 30) == "CRITICAL"

    def test_api_status(self):
        assert api_status(200) == "RESPONSIVE"
        assert api_status(1500) == "SLOW"
        assert api_status(3500) == "TIMEOUT"


class TestSystemHealthReport:
    """Tests for GET /api/system/health."""

    @pytest.mark.asyncio
    async def test_healthy_report_is_cached(self, admin_client: AsyncClient, mock_redis):
        resp = await admin_client.get("/api/system/health")

        assert resp.status_code == 200
        body = resp.json()
        assert body["overall"] == "HEALTHY"
        assert body["database"] == "CONNECTED"
        assert body["redis"] == "CONNECTED"
        assert body["apis"] == "RESPONSIVE"
        assert body["errorRate"] == 0
        assert body["uptime"] >= 0
        assert HEALTH_CACHE_KEY in mock_redis.store
        _, kwargs = mock_redis.set.call_args
        assert kwargs["ex"] == 10

    @pytest.mark.asyncio
    async def test_serves_cached_report(self, admin_client: AsyncClient, mock_redis):
        mock_redis.store[HEALTH_CACHE_KEY] = '{"overall": "WARNING", "errorRate": 5}'

        resp = await admin_client.get("/api/system/health")

        assert resp.json() == {"overall": "WARNING", "errorRate": 5}
        mock_redis.ping.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_redis_down_is_critical(self, admin_client: AsyncClient, mock_redis):
        mock_redis.get = AsyncMock(side_effect=ConnectionError("refused"))
        mock_redis.set = AsyncMock(side_effect=ConnectionError("refused"))
        mock_redis.ping = AsyncMock(side_effect=ConnectionError("refused"))

        resp = await admin_client.get("/api/system/health")

        assert resp.status_code == 200
        body = resp.json()
        assert body["redis"] == "DISCONNECTED"
        assert body["database"] == "CONNECTED"
        assert body["overall"] == "CRITICAL"
        assert body["errorRate"] == 30

    @pytest.mark.asyncio
    async def test_nutritionist_is_forbidden(self, client: AsyncClient):
        resp = await client.get("/api/system/health")

        assert resp.status_code == 403
        assert resp.json()["error"] == "PermissionDeniedError"

    @pytest.mark.asyncio
    async def test_platform_user_without_sppg_allowed(
        self, header_client: AsyncClient, platform_admin
    ):
        resp = await header_client.get(
            "/api/system/health", headers={"X-User-ID": platform_admin.id}
        )
        assert resp.status_code == 200
