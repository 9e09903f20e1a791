"""Per-SPPG dashboard activity history stored in a capped Redis list.

Redis key layout:
    dashboard:history:{sppg_id} → list of JSON entries, newest first,
                                   trimmed to dashboard_history_max_entries
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

import redis.asyncio as aioredis

from bergizi.common.cache import get_redis
from bergizi.common.config import get_settings
from bergizi.common.logging import get_logger
from bergizi.common.models import User
from bergizi.common.schemas import ActivityInput

logger = get_logger("DASHBOARD")

_CHANGE_DELTA = {"create": 1, "delete": -1}


def history_key(sppg_id: str) -> str:
    return f"dashboard:history:{sppg_id}"


async def save_activity(
    sppg_id: str,
    user: User,
    activity: ActivityInput,
    redis: aioredis.Redis | None = None,
) -> dict[str, Any]:
    """Prepend an activity entry to the SPPG's history and trim the list.

    Returns:
        The stored entry.
    """
    r = redis or get_redis()
    max_entries = get_settings().dashboard_history_max_entries

    entry = {
        "timestamp": datetime.now(UTC).isoformat(),
        "title": activity.title,
        "description": activity.description,
        "user": user.name or user.email,
        "userId": user.id,
        "changeType": activity.change_type,
        "data": activity.data,
        "change": _CHANGE_DELTA.get(activity.change_type, 0),
    }

    key = history_key(sppg_id)
    await r.lpush(key, json.dumps(entry))
    await r.ltrim(key, 0, max_entries - 1)

    logger.info(
        "Dashboard activity saved",
        extra={"data": {"sppg_id": sppg_id, "change_type": activity.change_type}},
    )
    return entry


async def get_history(
    sppg_id: str,
    limit: int = 50,
    redis: aioredis.Redis | None = None,
) -> dict[str, Any]:
    """Return up to ``limit`` newest entries as ``{"history", "total"}``.

    Undecodable entries are skipped.
    """
    r = redis or get_redis()
    raw_entries = await r.lrange(history_key(sppg_id), 0, limit - 1)

    history: list[dict[str, Any]] = []
    for raw in raw_entries:
        try:
            history.append(json.loads(raw))
        except (json.JSONDecodeError, TypeError):
            logger.warning(
                "Skipping undecodable history entry",
                extra={"data": {"sppg_id": sppg_id}},
            )

    return {"history": history, "total": len(history)}
