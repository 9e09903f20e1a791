"""Server-Sent Events streams for dashboards and menu updates.

Each SSE request owns a dedicated Redis pubsub. Messages on its channels
are re-emitted as ``data: <json>\\n\\n`` frames, with a heartbeat frame
every interval so proxies keep the connection open.
"""

from __future__ import annotations

import contextlib
import json
import time
from collections.abc import AsyncGenerator, Sequence
from typing import Any

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from bergizi.api.deps import require_tenant_user
from bergizi.common.config import get_settings
from bergizi.common.logging import get_logger
from bergizi.common.metrics import SSE_STREAMS_ACTIVE
from bergizi.common.models import User
from bergizi.realtime.channels import (
    SYSTEM_ALERT_CHANNEL,
    dashboard_channel,
    menu_channel,
    notification_channel,
)

logger = get_logger("REALTIME")

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _ms() -> int:
    return int(time.time() * 1000)


def _frame(payload: Any) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def _as_str(value: bytes | str) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


async def event_stream(
    request: Request,
    channels: Sequence[str],
    *,
    wrap: bool,
    heartbeat_type: str,
    interval: float | None = None,
    stream_name: str = "dashboard",
    connection_id: str | None = None,
) -> AsyncGenerator[str, None]:
    """Yield SSE frames for messages published on ``channels``.

    Args:
        request: Incoming request, polled for client disconnect.
        channels: Redis channels to subscribe to.
        wrap: Wrap each message as a DASHBOARD_UPDATE envelope carrying
            the source channel. When False the decoded message is re-emitted.
        heartbeat_type: ``type`` of the keep-alive frame.
        interval: Seconds between heartbeats. Defaults to settings.
        stream_name: Metric label for the active-streams gauge.
        connection_id: Echoed in the CONNECTED frame.
    """
    settings = get_settings()
    if interval is None:
        interval = settings.realtime_heartbeat_seconds

    connected: dict[str, Any] = {"type": "CONNECTED", "timestamp": _ms()}
    if connection_id:
        connected["connectionId"] = connection_id
    yield _frame(connected)

    r = None
    pubsub = None
    try:
        r = aioredis.from_url(settings.redis_url, decode_responses=True)
        pubsub = r.pubsub()
        await pubsub.subscribe(*channels)
    except Exception as exc:
        logger.error(
            "SSE Redis setup failed",
            extra={"data": {"channels": list(channels), "error": str(exc)}},
        )
        if pubsub is not None:
            with contextlib.suppress(Exception):
                await pubsub.aclose()
        if r is not None:
            with contextlib.suppress(Exception):
                await r.aclose()
        yield _frame(
            {
                "type": "ERROR",
                "message": "Failed to setup real-time updates",
                "timestamp": _ms(),
            }
        )
        return

    SSE_STREAMS_ACTIVE.labels(stream=stream_name).inc()
    logger.info("SSE stream opened", extra={"data": {"channels": list(channels)}})
    last_beat = time.monotonic()
    try:
        while not await request.is_disconnected():
            message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
            if message is not None and message.get("type") == "message":
                channel = _as_str(message["channel"])
                try:
                    parsed = json.loads(_as_str(message["data"]))
                except (json.JSONDecodeError, TypeError):
                    logger.warning(
                        "Skipping undecodable SSE message",
                        extra={"data": {"channel": channel}},
                    )
                else:
                    if wrap:
                        yield _frame(
                            {
                                "type": "DASHBOARD_UPDATE",
                                "channel": channel,
                                "data": parsed,
                                "timestamp": _ms(),
                            }
                        )
                    else:
                        yield _frame(parsed)

            if time.monotonic() - last_beat >= interval:
                yield _frame({"type": heartbeat_type, "timestamp": _ms()})
                last_beat = time.monotonic()
    finally:
        SSE_STREAMS_ACTIVE.labels(stream=stream_name).dec()
        with contextlib.suppress(Exception):
            await pubsub.unsubscribe()
        with contextlib.suppress(Exception):
            await pubsub.aclose()
        with contextlib.suppress(Exception):
            await r.aclose()
        logger.info("SSE stream closed", extra={"data": {"channels": list(channels)}})


@router.get("/dashboard")
async def dashboard_events(
    request: Request,
    user: User = Depends(require_tenant_user),
) -> StreamingResponse:
    """Stream dashboard, notification and system-alert events for the user's SPPG."""
    sppg_id = user.sppg_id
    channels = [dashboard_channel(sppg_id), notification_channel(sppg_id), SYSTEM_ALERT_CHANNEL]
    return StreamingResponse(
        event_stream(
            request,
            channels,
            wrap=True,
            heartbeat_type="HEARTBEAT",
            stream_name="dashboard",
            connection_id=f"{sppg_id}-{_ms()}",
        ),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/menu")
async def menu_events(
    request: Request,
    user: User = Depends(require_tenant_user),
) -> StreamingResponse:
    """Stream menu CRUD events for the user's SPPG."""
    return StreamingResponse(
        event_stream(
            request,
            [menu_channel(user.sppg_id)],
            wrap=False,
            heartbeat_type="PING",
            stream_name="menu",
        ),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
