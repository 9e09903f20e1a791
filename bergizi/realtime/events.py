"""Real-time event model and Redis publish functions.

Provides a Pydantic event envelope and publish functions for emitting
real-time events from Celery tasks (sync context) or async code, plus
domain helpers that pick the right channel and event type.

Usage from Celery tasks:
    from bergizi.realtime.events import publish_event_sync

    publish_event_sync("dashboard-update-sppg-1", "DASHBOARD_UPDATE", {"section": "summary"})

Usage from async code:
    from bergizi.realtime.events import broadcast_notification

    await broadcast_notification("sppg-1", "Stok Rendah", "Beras di bawah minimum", "warning")
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

import redis.asyncio as aioredis
from asgiref.sync import async_to_sync
from pydantic import BaseModel
from redis.exceptions import RedisError

from bergizi.common.config import get_settings
from bergizi.common.exceptions import RealtimeError
from bergizi.common.logging import get_logger
from bergizi.common.metrics import REALTIME_EVENTS_PUBLISHED_TOTAL
from bergizi.realtime.channels import (
    SYSTEM_ALERT_CHANNEL,
    dashboard_channel,
    menu_channel,
    notification_channel,
    sppg_channel,
    user_notification_channel,
)

logger = get_logger("REALTIME")

MENU_ACTIONS = frozenset(
    {"created", "updated", "deleted", "ingredients_updated", "status_toggled"}
)

InventoryEventKind = Literal["item_created", "item_updated", "stock_movement", "low_stock_alert"]

INVENTORY_NOTIFICATION_TITLES: dict[str, str] = {
    "item_created": "Item Baru Ditambahkan",
    "item_updated": "Item Diperbarui",
    "stock_movement": "Pergerakan Stok",
    "low_stock_alert": "Peringatan Stok Rendah",
}


class RealtimeEvent(BaseModel):
    """A real-time event pushed to connected clients.

    Attributes:
        type: Event type identifier (e.g., "DASHBOARD_UPDATE", "MENU_CREATED").
        sppg_id: Owning SPPG, or None for platform-wide events.
        timestamp: UTC timestamp of when the event was created.
        data: Event-specific payload dict.
    """

    type: str
    sppg_id: str | None = None
    timestamp: datetime
    data: dict[str, Any]


async def publish_event(
    channel: str,
    event_type: str,
    data: dict[str, Any],
    sppg_id: str | None = None,
) -> int:
    """Publish a RealtimeEvent to a Redis pub/sub channel.

    Args:
        channel: Target Redis channel name.
        event_type: Event type string.
        data: Event-specific payload dict.
        sppg_id: Owning SPPG, if any.

    Returns:
        Number of subscribers that received the message, as reported by Redis.

    Raises:
        RealtimeError: If Redis is unreachable or rejects the publish.
    """
    event = RealtimeEvent(
        type=event_type,
        sppg_id=sppg_id,
        timestamp=datetime.now(UTC),
        data=data,
    )

    settings = get_settings()
    r = aioredis.from_url(settings.redis_url)
    try:
        receivers = await r.publish(channel, event.model_dump_json())
    except (RedisError, OSError) as exc:
        raise RealtimeError(
            "Failed to publish real-time event",
            context={"channel": channel, "event_type": event_type, "error": str(exc)},
        ) from exc
    finally:
        await r.aclose()

    REALTIME_EVENTS_PUBLISHED_TOTAL.labels(event_type=event_type).inc()
    logger.debug(
        "Event published",
        extra={"data": {"channel": channel, "event_type": event_type, "receivers": receivers}},
    )
    return int(receivers)


def publish_event_sync(
    channel: str,
    event_type: str,
    data: dict[str, Any],
    sppg_id: str | None = None,
) -> None:
    """Synchronous wrapper for publish_event, safe for Celery tasks.

    Catches all exceptions so a Redis failure never crashes a scheduled
    job. Logs warnings on failure.
    """
    try:
        async_to_sync(publish_event)(channel, event_type, data, sppg_id)
    except Exception as exc:
        logger.warning(
            "Failed to publish real-time event",
            extra={
                "data": {
                    "channel": channel,
                    "event_type": event_type,
                    "error": str(exc),
                }
            },
        )


# ─── Domain Helpers ───


async def broadcast_dashboard_update(sppg_id: str, section: str, data: dict[str, Any]) -> int:
    return await publish_event(
        dashboard_channel(sppg_id),
        "DASHBOARD_UPDATE",
        {"section": section, **data},
        sppg_id=sppg_id,
    )


async def broadcast_notification(
    sppg_id: str,
    title: str,
    message: str,
    level: str = "info",
) -> int:
    return await publish_event(
        notification_channel(sppg_id),
        "NOTIFICATION",
        {"title": title, "message": message, "level": level},
        sppg_id=sppg_id,
    )


async def broadcast_system_alert(title: str, message: str, severity: str = "info") -> int:
    return await publish_event(
        SYSTEM_ALERT_CHANNEL,
        "SYSTEM_ALERT",
        {"title": title, "message": message, "severity": severity},
    )


async def broadcast_menu_update(sppg_id: str, action: str, menu: dict[str, Any]) -> int:
    """Publish a menu CRUD event on the SPPG's menu channel.

    Raises:
        ValueError: If ``action`` is not a known menu action.
    """
    if action not in MENU_ACTIONS:
        raise ValueError(f"Unknown menu action: {action!r}")
    return await publish_event(
        menu_channel(sppg_id),
        f"MENU_{action.upper()}",
        {"menu": menu},
        sppg_id=sppg_id,
    )


async def broadcast_inventory_update(
    sppg_id: str,
    kind: InventoryEventKind,
    item: dict[str, Any],
    message: str,
) -> None:
    """Publish an inventory event and its companion notification.

    The event goes to ``sppg:{id}:inventory``; a notification with an
    Indonesian title goes to ``sppg:{id}:notifications``.
    """
    if kind not in INVENTORY_NOTIFICATION_TITLES:
        raise ValueError(f"Unknown inventory event kind: {kind!r}")

    await publish_event(
        sppg_channel(sppg_id, "inventory"),
        f"inventory_{kind}",
        {"item": item, "message": message},
        sppg_id=sppg_id,
    )
    await publish_event(
        sppg_channel(sppg_id, "notifications"),
        "inventory_notification",
        {"title": INVENTORY_NOTIFICATION_TITLES[kind], "message": message},
        sppg_id=sppg_id,
    )


async def notify_user(user_id: str, event_type: str, payload: dict[str, Any]) -> int:
    return await publish_event(user_notification_channel(user_id), event_type, payload)
