"""Redis pub/sub subscriber that bridges events to WebSocket clients.

Pattern-subscribes to the dashboard, notification and system-alert
channels and hands each message to the ConnectionManager for
tenant-scoped routing. Handles Redis disconnection with exponential
backoff reconnection.

Both loops are started as asyncio.Tasks during FastAPI app lifespan.

Usage:
    from bergizi.realtime.manager import manager
    from bergizi.realtime.subscriber import heartbeat_loop, redis_subscriber

    task = asyncio.create_task(redis_subscriber(manager))
    beat = asyncio.create_task(heartbeat_loop(manager))
"""

from __future__ import annotations

import asyncio
import contextlib

import redis.asyncio as aioredis

from bergizi.common.config import get_settings
from bergizi.common.logging import get_logger
from bergizi.common.metrics import (
    REALTIME_EVENTS_RECEIVED_TOTAL,
    REALTIME_SUBSCRIBER_RECONNECTS_TOTAL,
)
from bergizi.realtime.channels import BRIDGE_PATTERNS, parse_bridge_channel
from bergizi.realtime.manager import ConnectionManager

logger = get_logger("REALTIME")


def _as_str(value: bytes | str) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


async def redis_subscriber(mgr: ConnectionManager, max_backoff: int | None = None) -> None:
    """Relay bridge channel messages from Redis to WebSocket clients.

    Runs as a long-lived background task. On any Redis error the pubsub
    is closed and the loop reconnects after ``min(2**attempt, max_backoff)``
    seconds.

    Args:
        mgr: The ConnectionManager to route messages through.
        max_backoff: Backoff cap in seconds. Defaults to settings.
    """
    settings = get_settings()
    if max_backoff is None:
        max_backoff = settings.realtime_max_backoff_seconds
    attempt = 0

    while True:
        pubsub = None
        try:
            r = aioredis.from_url(settings.redis_url)
            pubsub = r.pubsub()
            await pubsub.psubscribe(*BRIDGE_PATTERNS)

            logger.info(
                "Redis subscriber connected",
                extra={"data": {"patterns": list(BRIDGE_PATTERNS)}},
            )
            attempt = 0  # Reset backoff on successful subscribe

            async for message in pubsub.listen():
                if message["type"] != "pmessage":
                    continue

                try:
                    channel = _as_str(message["channel"])
                    data = _as_str(message["data"])
                except UnicodeDecodeError:
                    logger.warning(
                        "Dropping non-UTF-8 message",
                        extra={"data": {"channel": repr(message["channel"])}},
                    )
                    continue

                try:
                    kind, _ = parse_bridge_channel(channel)
                except ValueError:
                    kind = "unknown"
                REALTIME_EVENTS_RECEIVED_TOTAL.labels(channel_kind=kind).inc()

                await mgr.route(channel, data)

        except asyncio.CancelledError:
            logger.info("Redis subscriber shutting down")
            break

        except Exception as exc:
            wait = min(2**attempt, max_backoff)
            logger.warning(
                "Redis subscriber error, reconnecting",
                extra={
                    "data": {
                        "error": str(exc),
                        "attempt": attempt + 1,
                        "wait_seconds": wait,
                    }
                },
            )
            REALTIME_SUBSCRIBER_RECONNECTS_TOTAL.inc()
            attempt += 1
            if pubsub is not None:
                with contextlib.suppress(Exception):
                    await pubsub.aclose()
            await asyncio.sleep(wait)


async def heartbeat_loop(mgr: ConnectionManager, interval: float | None = None) -> None:
    """Sweep stale clients and ping live ones every ``interval`` seconds."""
    if interval is None:
        interval = get_settings().realtime_heartbeat_seconds

    while True:
        try:
            await asyncio.sleep(interval)
            removed = await mgr.sweep()
            if removed:
                logger.info(
                    "Heartbeat removed stale clients",
                    extra={"data": {"removed": len(removed), "active": mgr.active_count}},
                )
        except asyncio.CancelledError:
            logger.info("Heartbeat loop shutting down")
            break
