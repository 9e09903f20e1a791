"""Redis cache helpers shared by the API and Celery workers.

Provides the process-wide async Redis client, cache key construction,
and small JSON get/set/delete helpers.

Redis key layout:
    bergizi:{namespace}:{sppg_id}:{identifier}[:param...]  → generic JSON cache
    bergizi:dashboard:{sppg_id}:summary                    → DashboardSummary JSON
    dashboard:history:{sppg_id}                            → list of activity JSON
    notification:{id}:read:{user_id}                       → "true"
"""

from __future__ import annotations

import json
from enum import IntEnum
from typing import Any

import redis.asyncio as aioredis

from bergizi.common.config import get_settings
from bergizi.common.logging import get_logger

logger = get_logger("CACHE")

_redis: aioredis.Redis | None = None


class CacheTTL(IntEnum):
    """Standard cache lifetimes in seconds."""

    SHORT = 300
    MEDIUM = 1800
    LONG = 7200
    DAY = 86400
    WEEK = 604800


def generate_cache_key(
    namespace: str,
    sppg_id: str | None = None,
    identifier: str | None = None,
    *params: str | int,
) -> str:
    """Build a ``bergizi:``-prefixed key, skipping empty parts.

    Examples:
        generate_cache_key("menu", "sppg-1", "list")        -> "bergizi:menu:sppg-1:list"
        generate_cache_key("menu", None, "all", 2)          -> "bergizi:menu:all:2"
    """
    parts = ["bergizi", namespace, sppg_id, identifier, *params]
    return ":".join(str(p) for p in parts if p not in (None, ""))


def get_redis() -> aioredis.Redis:
    """Return the lazily created shared Redis client (str responses)."""
    global _redis
    if _redis is None:
        settings = get_settings()
        _redis = aioredis.from_url(settings.redis_url, decode_responses=True)
    return _redis


async def close_redis() -> None:
    """Close the shared client. Called on app shutdown."""
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


async def cache_get_json(key: str, redis: aioredis.Redis | None = None) -> Any | None:
    """Read and decode a JSON value.

    Returns:
        The decoded value, or None on a miss or undecodable data.
    """
    r = redis or get_redis()
    raw = await r.get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Discarding undecodable cache entry", extra={"data": {"key": key}})
        return None


async def cache_set_json(
    key: str,
    value: Any,
    ttl: int = CacheTTL.SHORT,
    redis: aioredis.Redis | None = None,
) -> None:
    """Serialize ``value`` as JSON and store it with a TTL."""
    r = redis or get_redis()
    await r.set(key, json.dumps(value, default=str), ex=int(ttl))


async def cache_delete_pattern(pattern: str, redis: aioredis.Redis | None = None) -> int:
    """Delete every key matching ``pattern`` using SCAN, never KEYS.

    Returns:
        Number of keys deleted.
    """
    r = redis or get_redis()
    deleted = 0
    batch: list[str] = []
    async for key in r.scan_iter(match=pattern, count=100):
        batch.append(key)
        if len(batch) >= 100:
            deleted += await r.delete(*batch)
            batch = []
    if batch:
        deleted += await r.delete(*batch)

    logger.debug(
        "Cache pattern invalidated",
        extra={"data": {"pattern": pattern, "deleted": deleted}},
    )
    return deleted
