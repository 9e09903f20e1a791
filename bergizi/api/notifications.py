"""Notification state endpoints.

Read/deleted state is kept as per-user Redis flags with a 24 h TTL, and
each change is pushed to the user's notification channel so other open
tabs update.

Redis key layout:
    notification:{id}:read:{user_id}     → "true"
    notification:{id}:deleted:{user_id}  → "true"
    notifications:all-read:{user_id}     → ISO timestamp of the action
"""

from __future__ import annotations

from datetime import UTC, datetime

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends

from bergizi.api.deps import get_cache, get_current_user
from bergizi.api.response_schemas import SuccessResponse
from bergizi.common.config import get_settings
from bergizi.common.logging import get_logger
from bergizi.common.models import User
from bergizi.realtime.events import notify_user

logger = get_logger("NOTIFY")

router = APIRouter()


@router.patch("/read-all", response_model=SuccessResponse)
async def mark_all_read(
    user: User = Depends(get_current_user),
    cache: aioredis.Redis = Depends(get_cache),
) -> SuccessResponse:
    now = datetime.now(UTC).isoformat()
    ttl = get_settings().notification_read_ttl_seconds
    await cache.set(f"notifications:all-read:{user.id}", now, ex=ttl)
    await notify_user(user.id, "ALL_NOTIFICATIONS_READ", {"timestamp": now})

    logger.info("All notifications marked read", extra={"data": {"user_id": user.id}})
    return SuccessResponse(message="All notifications marked as read")


@router.patch("/{notification_id}/read", response_model=SuccessResponse)
async def mark_read(
    notification_id: str,
    user: User = Depends(get_current_user),
    cache: aioredis.Redis = Depends(get_cache),
) -> SuccessResponse:
    ttl = get_settings().notification_read_ttl_seconds
    await cache.set(f"notification:{notification_id}:read:{user.id}", "true", ex=ttl)
    await notify_user(
        user.id,
        "NOTIFICATION_READ",
        {"notificationId": notification_id, "timestamp": datetime.now(UTC).isoformat()},
    )

    logger.info(
        "Notification marked read",
        extra={"data": {"user_id": user.id, "notification_id": notification_id}},
    )
    return SuccessResponse(message="Notification marked as read")


@router.delete("/{notification_id}", response_model=SuccessResponse)
async def delete_notification(
    notification_id: str,
    user: User = Depends(get_current_user),
    cache: aioredis.Redis = Depends(get_cache),
) -> SuccessResponse:
    ttl = get_settings().notification_read_ttl_seconds
    await cache.set(f"notification:{notification_id}:deleted:{user.id}", "true", ex=ttl)
    await notify_user(
        user.id,
        "NOTIFICATION_DELETED",
        {"notificationId": notification_id, "timestamp": datetime.now(UTC).isoformat()},
    )

    logger.info(
        "Notification deleted",
        extra={"data": {"user_id": user.id, "notification_id": notification_id}},
    )
    return SuccessResponse(message="Notification deleted")
