"""Tests for the /api/notifications endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient


class TestNotificationState:
    """Read/delete flags are stored per user and pushed to the user's channel."""

    @pytest.mark.asyncio
    async def test_mark_read(self, client: AsyncClient, mock_redis, ahli_gizi):
        with patch("bergizi.api.notifications.notify_user", new=AsyncMock()) as mock_notify:
            resp = await client.patch("/api/notifications/n-42/read")

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Notification marked as read"}
        assert mock_redis.store[f"notification:n-42:read:{ahli_gizi.id}"] == "true"
        mock_redis.set.assert_awaited_once()
        assert mock_redis.set.await_args.kwargs["ex"] == 86400

        user_id, event_type, payload = mock_notify.await_args.args
        assert user_id == ahli_gizi.id
        assert event_type == "NOTIFICATION_READ"
        assert payload["notificationId"] == "n-42"

    @pytest.mark.asyncio
    async def test_mark_all_read(self, client: AsyncClient, mock_redis, ahli_gizi):
        with patch("bergizi.api.notifications.notify_user", new=AsyncMock()) as mock_notify:
            resp = await client.patch("/api/notifications/read-all")

        assert resp.status_code == 200
        assert resp.json()["message"] == "All notifications marked as read"
        assert f"notifications:all-read:{ahli_gizi.id}" in mock_redis.store
        assert mock_notify.await_args.args[1] == "ALL_NOTIFICATIONS_READ"

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, mock_redis, ahli_gizi):
        with patch("bergizi.api.notifications.notify_user", new=AsyncMock()) as mock_notify:
            resp = await client.delete("/api/notifications/n-7")

        assert resp.status_code == 200
        assert resp.json()["message"] == "Notification deleted"
        assert mock_redis.store[f"notification:n-7:deleted:{ahli_gizi.id}"] == "true"
        assert mock_notify.await_args.args[1] == "NOTIFICATION_DELETED"


class TestNotificationAuth:
    """Notifications use the X-User-ID header dependency."""

    @pytest.mark.asyncio
    async def test_missing_header_is_401(self, header_client: AsyncClient):
        resp = await header_client.patch("/api/notifications/n-1/read")
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_user_is_401(self, header_client: AsyncClient):
        resp = await header_client.patch(
            "/api/notifications/n-1/read", headers={"X-User-ID": "ghost"}
        )
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_platform_user_allowed(self, header_client: AsyncClient, platform_admin):
        with patch("bergizi.api.notifications.notify_user", new=AsyncMock()):
            resp = await header_client.patch(
                "/api/notifications/n-1/read", headers={"X-User-ID": platform_admin.id}
            )
        assert resp.status_code == 200
