"""Dashboard endpoints -- cached summary, manual refresh and activity history."""

from __future__ import annotations

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bergizi.api.deps import get_cache, require_tenant_user
from bergizi.api.response_schemas import CacheInvalidationResponse, HistoryResponse
from bergizi.common.database import get_db
from bergizi.common.models import User
from bergizi.common.schemas import ActivityInput, DashboardSummary
from bergizi.dashboard.summary import get_summary, invalidate_dashboard_cache, refresh_summary
from bergizi.realtime.history import get_history, save_activity

router = APIRouter()

DATA_CHANGE_TYPES = frozenset({"create", "update", "delete"})


@router.get("/summary", response_model=DashboardSummary)
async def dashboard_summary(
    user: User = Depends(require_tenant_user),
    db: AsyncSession = Depends(get_db),
    cache: aioredis.Redis = Depends(get_cache),
) -> DashboardSummary:
    return await get_summary(db, user.sppg_id, redis=cache)


@router.post("/refresh", response_model=DashboardSummary)
async def dashboard_refresh(
    user: User = Depends(require_tenant_user),
    db: AsyncSession = Depends(get_db),
    cache: aioredis.Redis = Depends(get_cache),
) -> DashboardSummary:
    """Recompute the summary now and push it to connected clients."""
    return await refresh_summary(db, user.sppg_id, redis=cache)


@router.delete("/cache", response_model=CacheInvalidationResponse)
async def dashboard_cache_invalidate(
    user: User = Depends(require_tenant_user),
    cache: aioredis.Redis = Depends(get_cache),
) -> CacheInvalidationResponse:
    """Drop cached dashboard data so the next read recomputes it."""
    deleted = await invalidate_dashboard_cache(user.sppg_id, redis=cache)
    return CacheInvalidationResponse(success=True, keys_invalidated=deleted)


@router.get("/history", response_model=HistoryResponse)
async def dashboard_history(
    limit: int = Query(default=50, ge=1, le=100),
    user: User = Depends(require_tenant_user),
    cache: aioredis.Redis = Depends(get_cache),
) -> HistoryResponse:
    return HistoryResponse(**await get_history(user.sppg_id, limit, redis=cache))


@router.post("/history")
async def record_activity(
    activity: ActivityInput,
    user: User = Depends(require_tenant_user),
    cache: aioredis.Redis = Depends(get_cache),
) -> dict:
    entry = await save_activity(user.sppg_id, user, activity, redis=cache)
    if activity.change_type in DATA_CHANGE_TYPES:
        await invalidate_dashboard_cache(user.sppg_id, redis=cache)
    return {"success": True, "message": "Activity saved to history", "entry": entry}
