"""Root test configuration: shared fixtures for all test modules.

IMPORTANT: Environment variables are set BEFORE any bergizi imports
so that config.py can load Settings without a .env file.
"""

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")  # In-memory SQLite
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")  # Test DB 15
os.environ.setdefault("CELERY_BROKER_URL", "redis://localhost:6379/15")
os.environ.setdefault("CELERY_RESULT_BACKEND", "redis://localhost:6379/15")
os.environ.setdefault("ENVIRONMENT", "testing")

# Now safe to import bergizi modules
import fnmatch
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from bergizi.common.config import Settings, get_settings
from bergizi.common.models import (
    Base,
    InventoryItem,
    Menu,
    MenuIngredient,
    Sppg,
    User,
    UserRole,
)
from bergizi.common.schemas import IngredientInput, NutrientProfile

# ─── Clear cached settings so test env vars are used ───
get_settings.cache_clear()


# ─── Test Database ───


@pytest_asyncio.fixture
async def engine():
    """Create an in-memory SQLite engine with all tables."""
    test_engine = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    """Provide a fresh database session per test."""
    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def test_settings() -> Settings:
    return get_settings()


# ─── Redis Mock ───


@pytest.fixture
def mock_redis() -> MagicMock:
    """An in-memory stand-in for redis.asyncio.Redis.

    Supports get/set/lpush/ltrim/lrange/scan_iter/delete with real semantics so
    history and cache code can be exercised end to end.
    """
    store: dict[str, object] = {}

    async def _get(key):
        value = store.get(key)
        return value if isinstance(value, str) else None

    async def _set(key, value, ex=None):
        store[key] = value
        return True

    async def _lpush(key, *values):
        lst = store.setdefault(key, [])
        for v in values:
            lst.insert(0, v)
        return len(lst)

    async def _ltrim(key, start, end):
        lst = store.get(key, [])
        store[key] = lst[start : end + 1]
        return True

    async def _lrange(key, start, end):
        lst = store.get(key, [])
        return lst[start : end + 1]

    async def _scan_iter(match="*", count=None):
        for key in [k for k in store if fnmatch.fnmatchcase(k, match)]:
            yield key

    async def _delete(*keys):
        return sum(1 for k in keys if store.pop(k, None) is not None)

    r = MagicMock()
    r.store = store
    r.get = AsyncMock(side_effect=_get)
    r.set = AsyncMock(side_effect=_set)
    r.lpush = AsyncMock(side_effect=_lpush)
    r.ltrim = AsyncMock(side_effect=_ltrim)
    r.lrange = AsyncMock(side_effect=_lrange)
    r.scan_iter = MagicMock(side_effect=_scan_iter)
    r.delete = AsyncMock(side_effect=_delete)
    r.ping = AsyncMock(return_value=True)
    return r


# ─── Sample Data Fixtures ───


@pytest_asyncio.fixture
async def sppg(db) -> Sppg:
    tenant = Sppg(id="sppg-jakarta-01", code="SPPG-JKT-01", name="SPPG Jakarta Pusat")
    db.add(tenant)
    await db.commit()
    return tenant


@pytest_asyncio.fixture
async def ahli_gizi(db, sppg) -> User:
    user = User(
        id="user-gizi-01",
        email="gizi@sppg-jkt.id",
        name="Siti Rahma",
        user_role=UserRole.SPPG_AHLI_GIZI,
        sppg_id=sppg.id,
    )
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def rice_item(db, sppg) -> InventoryItem:
    item = InventoryItem(
        id="item-beras",
        sppg_id=sppg.id,
        item_name="Beras Putih",
        unit="kg",
        current_stock=50,
        min_stock=20,
        max_stock=200,
        last_price=12000,
        calories=360,
        protein=6.8,
        carbohydrates=78.9,
        fat=0.7,
        fiber=0.2,
    )
    db.add(item)
    await db.commit()
    return item


@pytest_asyncio.fixture
async def egg_item(db, sppg) -> InventoryItem:
    item = InventoryItem(
        id="item-telur",
        sppg_id=sppg.id,
        item_name="Telur Ayam",
        unit="kg",
        current_stock=5,
        min_stock=10,
        max_stock=40,
        average_price=28000,
        calories=154,
        protein=12.4,
        carbohydrates=0.7,
        fat=10.8,
        fiber=0,
        vitamin_a=104,
        iron=2.7,
    )
    db.add(item)
    await db.commit()
    return item


@pytest_asyncio.fixture
async def menu(db, sppg, rice_item, egg_item) -> Menu:
    m = Menu(
        id="menu-nasi-telur",
        sppg_id=sppg.id,
        menu_code="MN-001",
        menu_name="Nasi Telur Dadar",
        serving_size=250,
        ingredients=[
            MenuIngredient(
                ingredient_name="Beras",
                inventory_item_id=rice_item.id,
                quantity=150,
                unit="gram",
                total_cost=1800,
            ),
            MenuIngredient(
                ingredient_name="Telur",
                inventory_item_id=egg_item.id,
                quantity=100,
                unit="gram",
                total_cost=2800,
            ),
        ],
    )
    db.add(m)
    await db.commit()
    return m


@pytest.fixture
def rice_profile() -> NutrientProfile:
    return NutrientProfile(
        calories=360, protein=6.8, carbohydrates=78.9, fat=0.7, fiber=0.2, last_price=12000
    )


@pytest.fixture
def egg_profile() -> NutrientProfile:
    return NutrientProfile(
        calories=154,
        protein=12.4,
        carbohydrates=0.7,
        fat=10.8,
        fiber=0,
        vitamin_a=104,
        iron=2.7,
        average_price=28000,
    )


@pytest.fixture
def sample_ingredients(rice_profile, egg_profile) -> list[IngredientInput]:
    """150 g rice + 100 g egg, costs 1800 and 2800."""
    return [
        IngredientInput(quantity=150, unit="gram", total_cost=1800, item=rice_profile),
        IngredientInput(quantity=100, unit="g", total_cost=2800, item=egg_profile),
    ]


@pytest.fixture
def today() -> date:
    return date(2026, 3, 2)
