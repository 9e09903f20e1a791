"""Tests for the real-time event envelope and publish helpers."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from bergizi.common.exceptions import RealtimeError
from bergizi.realtime.events import (
    RealtimeEvent,
    broadcast_dashboard_update,
    broadcast_inventory_update,
    broadcast_menu_update,
    broadcast_notification,
    broadcast_system_alert,
    notify_user,
    publish_event,
    publish_event_sync,
)


def _mock_redis(receivers: int = 1) -> AsyncMock:
    mock_redis = AsyncMock()
    mock_redis.publish = AsyncMock(return_value=receivers)
    mock_redis.aclose = AsyncMock()
    return mock_redis


def _published(mock_redis: AsyncMock, index: int = 0) -> tuple[str, dict]:
    channel, payload = mock_redis.publish.call_args_list[index][0]
    return channel, json.loads(payload)


# ─── RealtimeEvent Model Tests ───


class TestRealtimeEvent:
    """Tests for the RealtimeEvent Pydantic model."""

    def test_event_json_serialization(self):
        ts = datetime(2026, 3, 2, 7, 0, 0, tzinfo=UTC)
        event = RealtimeEvent(type="NOTIFICATION", sppg_id="s1", timestamp=ts, data={"a": 1})
        parsed = json.loads(event.model_dump_json())
        assert parsed["type"] == "NOTIFICATION"
        assert parsed["sppg_id"] == "s1"
        assert parsed["data"] == {"a": 1}

    def test_sppg_id_optional(self):
        event = RealtimeEvent(type="SYSTEM_ALERT", timestamp=datetime.now(UTC), data={})
        assert event.sppg_id is None


# ─── publish_event Tests ───


class TestPublishEvent:
    """Tests for the async publish_event function."""

    @pytest.mark.asyncio
    async def test_publishes_envelope_to_channel(self):
        mock_redis = _mock_redis(receivers=3)

        with patch("bergizi.realtime.events.aioredis") as mock_aioredis:
            mock_aioredis.from_url.return_value = mock_redis
            receivers = await publish_event("notification-s1", "NOTIFICATION", {"x": 1}, "s1")

        assert receivers == 3
        channel, parsed = _published(mock_redis)
        assert channel == "notification-s1"
        assert parsed["type"] == "NOTIFICATION"
        assert parsed["sppg_id"] == "s1"
        assert parsed["data"] == {"x": 1}
        assert datetime.fromisoformat(parsed["timestamp"].replace("Z", "+00:00")).tzinfo

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error", [ConnectionError("Redis down"), RedisConnectionError("Connection refused")]
    )
    async def test_publish_error_raises_realtime_error_and_closes(self, error):
        mock_redis = _mock_redis()
        mock_redis.publish = AsyncMock(side_effect=error)

        with (
            patch("bergizi.realtime.events.aioredis") as mock_aioredis,
            pytest.raises(RealtimeError) as exc_info,
        ):
            mock_aioredis.from_url.return_value = mock_redis
            await publish_event("system-alert", "SYSTEM_ALERT", {})

        assert exc_info.value.__cause__ is error
        assert exc_info.value.context["channel"] == "system-alert"
        mock_redis.aclose.assert_called_once()

    @pytest.mark.asyncio
    async def test_increments_published_metric(self):
        mock_redis = _mock_redis()

        with (
            patch("bergizi.realtime.events.aioredis") as mock_aioredis,
            patch("bergizi.realtime.events.REALTIME_EVENTS_PUBLISHED_TOTAL") as mock_counter,
        ):
            mock_aioredis.from_url.return_value = mock_redis
            await publish_event("menu:s1", "MENU_CREATED", {})

        mock_counter.labels.assert_called_once_with(event_type="MENU_CREATED")
        mock_counter.labels.return_value.inc.assert_called_once()


# ─── publish_event_sync Tests ───


class TestPublishEventSync:
    """Tests for the synchronous publish_event_sync wrapper."""

    def test_calls_publish_event(self):
        with patch("bergizi.realtime.events.async_to_sync") as mock_ats:
            mock_sync_fn = MagicMock()
            mock_ats.return_value = mock_sync_fn

            publish_event_sync("dashboard-update-s1", "DASHBOARD_UPDATE", {"section": "x"}, "s1")

            mock_ats.assert_called_once_with(publish_event)
            mock_sync_fn.assert_called_once_with(
                "dashboard-update-s1", "DASHBOARD_UPDATE", {"section": "x"}, "s1"
            )

    def test_logs_warning_on_failure(self):
        with (
            patch("bergizi.realtime.events.async_to_sync") as mock_ats,
            patch("bergizi.realtime.events.logger") as mock_logger,
        ):
            mock_ats.return_value = MagicMock(side_effect=ConnectionError("Redis down"))

            publish_event_sync("system-alert", "SYSTEM_ALERT", {})

            mock_logger.warning.assert_called_once()
            assert "Failed to publish" in mock_logger.warning.call_args[0][0]


# ─── Domain Helper Tests ───


class TestDomainHelpers:
    """Tests for the channel-picking broadcast helpers."""

    @pytest.mark.asyncio
    async def test_dashboard_update_merges_section(self):
        mock_redis = _mock_redis()
        with patch("bergizi.realtime.events.aioredis") as mock_aioredis:
            mock_aioredis.from_url.return_value = mock_redis
            await broadcast_dashboard_update("s1", "summary", {"activeMenus": 4})

        channel, parsed = _published(mock_redis)
        assert channel == "dashboard-update-s1"
        assert parsed["type"] == "DASHBOARD_UPDATE"
        assert parsed["data"] == {"section": "summary", "activeMenus": 4}

    @pytest.mark.asyncio
    async def test_notification_default_level(self):
        mock_redis = _mock_redis()
        with patch("bergizi.realtime.events.aioredis") as mock_aioredis:
            mock_aioredis.from_url.return_value = mock_redis
            await broadcast_notification("s1", "Judul", "Pesan")

        channel, parsed = _published(mock_redis)
        assert channel == "notification-s1"
        assert parsed["data"] == {"title": "Judul", "message": "Pesan", "level": "info"}

    @pytest.mark.asyncio
    async def test_system_alert_has_no_sppg(self):
        mock_redis = _mock_redis()
        with patch("bergizi.realtime.events.aioredis") as mock_aioredis:
            mock_aioredis.from_url.return_value = mock_redis
            await broadcast_system_alert("Maintenance", "Down at 22:00", "warning")

        channel, parsed = _published(mock_redis)
        assert channel == "system-alert"
        assert parsed["sppg_id"] is None
        assert parsed["data"]["severity"] == "warning"

    @pytest.mark.asyncio
    async def test_menu_update_event_type(self):
        mock_redis = _mock_redis()
        with patch("bergizi.realtime.events.aioredis") as mock_aioredis:
            mock_aioredis.from_url.return_value = mock_redis
            await broadcast_menu_update("s1", "ingredients_updated", {"id": "m1"})

        channel, parsed = _published(mock_redis)
        assert channel == "menu:s1"
        assert parsed["type"] == "MENU_INGREDIENTS_UPDATED"
        assert parsed["data"] == {"menu": {"id": "m1"}}

    @pytest.mark.asyncio
    async def test_menu_update_rejects_unknown_action(self):
        with (
            patch("bergizi.realtime.events.aioredis") as mock_aioredis,
            pytest.raises(ValueError, match="Unknown menu action"),
        ):
            await broadcast_menu_update("s1", "archived", {})
        mock_aioredis.from_url.assert_not_called()

    @pytest.mark.asyncio
    async def test_inventory_update_publishes_event_and_notification(self):
        mock_redis = _mock_redis()
        with patch("bergizi.realtime.events.aioredis") as mock_aioredis:
            mock_aioredis.from_url.return_value = mock_redis
            await broadcast_inventory_update(
                "s1", "low_stock_alert", {"id": "i1"}, "Stok beras rendah"
            )

        assert mock_redis.publish.call_count == 2
        channel, parsed = _published(mock_redis, 0)
        assert channel == "sppg:s1:inventory"
        assert parsed["type"] == "inventory_low_stock_alert"
        assert parsed["data"] == {"item": {"id": "i1"}, "message": "Stok beras rendah"}

        channel, parsed = _published(mock_redis, 1)
        assert channel == "sppg:s1:notifications"
        assert parsed["type"] == "inventory_notification"
        assert parsed["data"]["title"] == "Peringatan Stok Rendah"

    @pytest.mark.asyncio
    async def test_inventory_update_rejects_unknown_kind(self):
        with pytest.raises(ValueError, match="Unknown inventory event kind"):
            await broadcast_inventory_update("s1", "stock_take", {}, "")

    @pytest.mark.asyncio
    async def test_notify_user_channel(self):
        mock_redis = _mock_redis()
        with patch("bergizi.realtime.events.aioredis") as mock_aioredis:
            mock_aioredis.from_url.return_value = mock_redis
            await notify_user("u1", "notification:read", {"notificationId": "n1"})

        channel, parsed = _published(mock_redis)
        assert channel == "user:u1:notifications"
        assert parsed["type"] == "notification:read"
