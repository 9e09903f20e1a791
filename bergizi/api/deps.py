"""FastAPI dependencies for authenticated, tenant-scoped requests.

Session handling lives in the frontend's auth layer; by the time a
request reaches this service the caller's id is forwarded in the
``X-User-ID`` header. These dependencies resolve it to a User row.
"""

from __future__ import annotations

import redis.asyncio as aioredis
from fastapi import Depends, Header, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bergizi.common.cache import get_redis
from bergizi.common.database import get_db
from bergizi.common.exceptions import PermissionDeniedError, TenantAccessError
from bergizi.common.logging import get_logger
from bergizi.common.models import User, UserRole

logger = get_logger("API")


async def get_current_user(
    x_user_id: str | None = Header(default=None, alias="X-User-ID"),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Return the active user named by the ``X-User-ID`` header.

    Raises:
        HTTPException: 401 if the header is missing or the user is
            unknown or inactive.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")

    result = await db.execute(select(User).where(User.id == x_user_id))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        logger.warning("Rejected unknown or inactive user", extra={"data": {"user_id": x_user_id}})
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


async def require_tenant_user(user: User = Depends(get_current_user)) -> User:
    """Return the user if bound to an SPPG, else raise TenantAccessError (403)."""
    if not user.sppg_id:
        raise TenantAccessError(
            "User is not assigned to an SPPG",
            context={"user_id": user.id},
        )
    return user


HEALTH_REPORT_ROLES = frozenset(
    {
        UserRole.PLATFORM_SUPERADMIN,
        UserRole.PLATFORM_SUPPORT,
        UserRole.PLATFORM_ANALYST,
        UserRole.SPPG_KEPALA,
        UserRole.SPPG_ADMIN,
    }
)


async def require_health_viewer(user: User = Depends(get_current_user)) -> User:
    """Return the user if their role may read the system health report."""
    if user.user_role not in HEALTH_REPORT_ROLES:
        raise PermissionDeniedError(
            "Insufficient permissions",
            context={"user_id": user.id, "role": user.user_role.value},
        )
    return user


def get_cache() -> aioredis.Redis:
    """Provide the shared Redis client (overridden in tests)."""
    return get_redis()
