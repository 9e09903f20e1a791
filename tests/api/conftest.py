"""API test fixtures: httpx.AsyncClient wired to the app with dependency overrides.

The database override reuses the root conftest's per-test in-memory
engine; the cache override is the in-memory ``mock_redis`` fixture.
ASGITransport does not run the app lifespan, so no Redis relay starts.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from bergizi.api.deps import get_cache, get_current_user
from bergizi.common.database import get_db
from bergizi.common.models import User, UserRole
from bergizi.main import app


@pytest_asyncio.fixture
async def client(db: AsyncSession, ahli_gizi: User, mock_redis: MagicMock) -> AsyncClient:
    """Client authenticated as an SPPG nutritionist."""
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_current_user] = lambda: ahli_gizi
    app.dependency_overrides[get_cache] = lambda: mock_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def header_client(db: AsyncSession, mock_redis: MagicMock) -> AsyncClient:
    """Client that authenticates through the real X-User-ID dependency."""
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_cache] = lambda: mock_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def platform_admin(db: AsyncSession) -> User:
    """A platform user with no SPPG binding."""
    user = User(
        id="user-platform-01",
        email="admin@bergizi.id",
        name="Admin Platform",
        user_role=UserRole.PLATFORM_SUPERADMIN,
    )
    db.add(user)
    await db.commit()
    return user
