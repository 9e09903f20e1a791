"""Dashboard summary counters for one SPPG.

Counts are computed from the ORM, cached in Redis for
dashboard_cache_ttl_seconds, and pushed to connected clients on refresh.
"Today" is the calendar date in Asia/Jakarta.

Redis key layout:
    bergizi:dashboard:{sppg_id}:summary → DashboardSummary JSON
    bergizi:dashboard:{sppg_id}:*       → every dashboard cache entry for one SPPG
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

import redis.asyncio as aioredis
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bergizi.common.cache import (
    cache_delete_pattern,
    cache_get_json,
    cache_set_json,
    generate_cache_key,
)
from bergizi.common.config import get_settings
from bergizi.common.logging import get_logger
from bergizi.common.metrics import DASHBOARD_CACHE_TOTAL
from bergizi.common.models import (
    Attendance,
    AttendanceStatus,
    Distribution,
    Feedback,
    InventoryItem,
    Menu,
    Procurement,
    ProcurementStatus,
    Production,
    ProductionStatus,
)
from bergizi.common.schemas import DashboardSummary
from bergizi.realtime.events import broadcast_dashboard_update

logger = get_logger("DASHBOARD")

WIB = ZoneInfo("Asia/Jakarta")

IN_PROGRESS_STATUSES = (
    ProductionStatus.PREPARING,
    ProductionStatus.COOKING,
    ProductionStatus.QUALITY_CHECK,
)


def summary_key(sppg_id: str) -> str:
    return generate_cache_key("dashboard", sppg_id, "summary")


def dashboard_cache_pattern(sppg_id: str) -> str:
    return generate_cache_key("dashboard", sppg_id, "*")


def _today() -> date:
    return datetime.now(WIB).date()


async def _count(db: AsyncSession, model, *conditions) -> int:  # noqa: ANN001
    result = await db.execute(select(func.count()).select_from(model).where(*conditions))
    return int(result.scalar() or 0)


async def compute_summary(
    db: AsyncSession,
    sppg_id: str,
    today: date | None = None,
) -> DashboardSummary:
    """Compute the summary straight from the database (no cache)."""
    today = today or _today()

    active_menus = await _count(db, Menu, Menu.sppg_id == sppg_id, Menu.is_active.is_(True))
    in_progress = await _count(
        db,
        Production,
        Production.sppg_id == sppg_id,
        Production.status.in_(IN_PROGRESS_STATUSES),
    )
    distributions_today = await _count(
        db,
        Distribution,
        Distribution.sppg_id == sppg_id,
        Distribution.distribution_date == today,
    )
    low_stock = await _count(
        db,
        InventoryItem,
        InventoryItem.sppg_id == sppg_id,
        InventoryItem.is_active.is_(True),
        InventoryItem.current_stock <= InventoryItem.min_stock,
    )
    pending_procurements = await _count(
        db,
        Procurement,
        Procurement.sppg_id == sppg_id,
        Procurement.status == ProcurementStatus.PENDING_APPROVAL,
    )
    present_today = await _count(
        db,
        Attendance,
        Attendance.sppg_id == sppg_id,
        Attendance.attendance_date == today,
        Attendance.status.in_((AttendanceStatus.PRESENT, AttendanceStatus.LATE)),
    )

    rating_result = await db.execute(
        select(func.avg(Feedback.rating)).where(Feedback.sppg_id == sppg_id)
    )
    avg_rating = rating_result.scalar()

    return DashboardSummary(
        sppg_id=sppg_id,
        active_menus=active_menus,
        productions_in_progress=in_progress,
        distributions_today=distributions_today,
        low_stock_items=low_stock,
        pending_procurements=pending_procurements,
        average_feedback_rating=round(float(avg_rating), 2) if avg_rating is not None else None,
        employees_present_today=present_today,
        generated_at=datetime.now(UTC),
    )


async def _store(summary: DashboardSummary, redis: aioredis.Redis | None) -> None:
    await cache_set_json(
        summary_key(summary.sppg_id),
        summary.model_dump(mode="json"),
        ttl=get_settings().dashboard_cache_ttl_seconds,
        redis=redis,
    )


async def get_summary(
    db: AsyncSession,
    sppg_id: str,
    redis: aioredis.Redis | None = None,
) -> DashboardSummary:
    """Serve the cached summary, computing and caching it on a miss."""
    cached = await cache_get_json(summary_key(sppg_id), redis=redis)
    if cached is not None:
        DASHBOARD_CACHE_TOTAL.labels(result="hit").inc()
        return DashboardSummary.model_validate(cached)

    DASHBOARD_CACHE_TOTAL.labels(result="miss").inc()
    summary = await compute_summary(db, sppg_id)
    await _store(summary, redis)
    return summary


async def refresh_summary(
    db: AsyncSession,
    sppg_id: str,
    redis: aioredis.Redis | None = None,
) -> DashboardSummary:
    """Recompute, cache and broadcast the summary as a DASHBOARD_UPDATE."""
    summary = await compute_summary(db, sppg_id)
    await _store(summary, redis)
    await broadcast_dashboard_update(sppg_id, "summary", summary.model_dump(mode="json"))
    logger.info("Dashboard summary refreshed", extra={"data": {"sppg_id": sppg_id}})
    return summary


async def invalidate_dashboard_cache(sppg_id: str, redis: aioredis.Redis | None = None) -> int:
    """Drop every cached dashboard entry for one SPPG.

    Connected clients get a ``system_status`` update when anything was
    removed, so they know to refetch.

    Returns:
        Number of keys deleted.
    """
    deleted = await cache_delete_pattern(dashboard_cache_pattern(sppg_id), redis=redis)
    if deleted:
        await broadcast_dashboard_update(
            sppg_id,
            "system_status",
            {"event": "CACHE_INVALIDATED", "keysInvalidated": deleted},
        )
        logger.info(
            "Dashboard cache invalidated",
            extra={"data": {"sppg_id": sppg_id, "keys": deleted}},
        )
    return deleted
