"""System endpoints: the frontend's connectivity ping and the health report.

The health report grades the database and Redis by round-trip latency
and is cached briefly so dashboards polling it do not hammer either.

Redis key layout:
    system:health:status → last health report JSON (10 s TTL)
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Any, Literal

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from bergizi.api.deps import get_cache, require_health_viewer
from bergizi.common.cache import cache_get_json, cache_set_json
from bergizi.common.database import get_db
from bergizi.common.logging import get_logger
from bergizi.common.models import User

logger = get_logger("SYSTEM")

router = APIRouter()

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

HEALTH_CACHE_KEY = "system:health:status"
HEALTH_CACHE_TTL = 10

DB_SLOW_MS = 1000
REDIS_SLOW_MS = 500
API_SLOW_MS = 1000
API_TIMEOUT_MS = 3000
OVERALL_WARNING_MS = 2000

# Error-rate weight per component status; the sum is capped at 100.
ERROR_WEIGHTS: dict[tuple[str, str], int] = {
    ("database", "DISCONNECTED"): 50,
    ("database", "SLOW"): 10,
    ("redis", "DISCONNECTED"): 30,
    ("redis", "SLOW"): 5,
}

ComponentStatus = Literal["CONNECTED", "SLOW", "DISCONNECTED"]

_STARTED_AT = time.monotonic()


@router.api_route("/ping", methods=["GET", "HEAD"])
async def ping(request: Request) -> Response:
    """Lightweight reachability check. HEAD returns headers only."""
    if request.method == "HEAD":
        return Response(status_code=200, headers=NO_CACHE_HEADERS)
    return JSONResponse(
        content={
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat(),
            "server": "bergizi-id",
        },
        headers=NO_CACHE_HEADERS,
    )


# ─── Health Grading ───


def grade_latency(elapsed_ms: float, slow_after_ms: float) -> ComponentStatus:
    return "SLOW" if elapsed_ms > slow_after_ms else "CONNECTED"


def calculate_error_rate(database: str, redis: str) -> int:
    errors = ERROR_WEIGHTS.get(("database", database), 0) + ERROR_WEIGHTS.get(("redis", redis), 0)
    return min(errors, 100)


def overall_status(database: str, redis: str, response_ms: float, error_rate: int) -> str:
    """CRITICAL if anything is down, WARNING if anything is slow, else HEALTHY."""
    if "DISCONNECTED" in (database, redis):
        return "CRITICAL"
    if "SLOW" in (database, redis) or response_ms > OVERALL_WARNING_MS or error_rate > 10:
        return "WARNING"
    return "HEALTHY"


def api_status(response_ms: float) -> str:
    if response_ms > API_TIMEOUT_MS:
        return "TIMEOUT"
    if response_ms > API_SLOW_MS:
        return "SLOW"
    return "RESPONSIVE"


async def check_database(db: AsyncSession) -> tuple[ComponentStatus, int]:
    """Run ``SELECT 1`` and grade it. Returns (status, query time in ms)."""
    start = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("Database health check failed", extra={"data": {"error": str(exc)}})
        return "DISCONNECTED", 0
    elapsed = round((time.perf_counter() - start) * 1000)
    return grade_latency(elapsed, DB_SLOW_MS), elapsed


async def check_redis(redis: aioredis.Redis) -> tuple[ComponentStatus, int]:
    """PING Redis and grade it. Returns (status, response time in ms)."""
    start = time.perf_counter()
    try:
        await redis.ping()
    except (RedisError, OSError) as exc:
        logger.warning("Redis health check failed", extra={"data": {"error": str(exc)}})
        return "DISCONNECTED", 0
    elapsed = round((time.perf_counter() - start) * 1000)
    return grade_latency(elapsed, REDIS_SLOW_MS), elapsed


async def build_health_report(db: AsyncSession, redis: aioredis.Redis) -> dict[str, Any]:
    start = time.perf_counter()
    db_status, query_ms = await check_database(db)
    redis_status, redis_ms = await check_redis(redis)
    response_ms = round((time.perf_counter() - start) * 1000)

    error_rate = calculate_error_rate(db_status, redis_status)
    return {
        "overall": overall_status(db_status, redis_status, response_ms, error_rate),
        "database": db_status,
        "redis": redis_status,
        "apis": api_status(response_ms),
        "uptime": int(time.monotonic() - _STARTED_AT),
        "responseTime": response_ms,
        "errorRate": error_rate,
        "lastCheck": datetime.now(UTC).isoformat(),
        "details": {
            "database": {"queryTime": query_ms, "status": db_status},
            "redis": {"responseTime": redis_ms, "status": redis_status},
        },
    }


@router.get("/health")
async def system_health(
    user: User = Depends(require_health_viewer),
    db: AsyncSession = Depends(get_db),
    cache: aioredis.Redis = Depends(get_cache),
) -> JSONResponse:
    """Graded database/Redis health for platform and SPPG administrators."""
    try:
        cached = await cache_get_json(HEALTH_CACHE_KEY, redis=cache)
    except (RedisError, OSError) as exc:
        logger.warning("Health cache read failed", extra={"data": {"error": str(exc)}})
        cached = None
    if cached is not None:
        return JSONResponse(content=cached, headers=NO_CACHE_HEADERS)

    report = await build_health_report(db, cache)

    try:
        await cache_set_json(HEALTH_CACHE_KEY, report, ttl=HEALTH_CACHE_TTL, redis=cache)
    except (RedisError, OSError) as exc:
        logger.warning("Health cache write failed", extra={"data": {"error": str(exc)}})

    logger.info(
        f"System health: {report['overall']} ({report['responseTime']}ms)",
        extra={
            "data": {
                "database": report["database"],
                "redis": report["redis"],
                "error_rate": report["errorRate"],
                "user_id": user.id,
            }
        },
    )
    return JSONResponse(content=report, headers=NO_CACHE_HEADERS)
