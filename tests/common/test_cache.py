"""Tests for the Redis cache helpers."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from bergizi.common import cache
from bergizi.common.cache import (
    CacheTTL,
    cache_delete_pattern,
    cache_get_json,
    cache_set_json,
    generate_cache_key,
)


class FakeScanIter:
    def __init__(self, keys: list[str]):
        self._keys = iter(keys)

    def __aiter__(self):
        return self

    async def __anext__(self):
        try:
            return next(self._keys)
        except StopIteration:
            raise StopAsyncIteration from None


class TestGenerateCacheKey:
    def test_full_key(self):
        assert generate_cache_key("menu", "sppg-1", "list") == "bergizi:menu:sppg-1:list"

    def test_skips_empty_parts(self):
        assert generate_cache_key("menu", None, "all", 2) == "bergizi:menu:all:2"

    def test_namespace_only(self):
        assert generate_cache_key("stats") == "bergizi:stats"


class TestCacheTTL:
    def test_values(self):
        assert CacheTTL.SHORT == 300
        assert CacheTTL.DAY == 86400


class TestJsonHelpers:
    @pytest.mark.asyncio
    async def test_set_then_get(self, mock_redis):
        await cache_set_json("k", {"a": 1}, ttl=CacheTTL.MEDIUM, redis=mock_redis)

        mock_redis.set.assert_awaited_once_with("k", json.dumps({"a": 1}), ex=1800)
        assert await cache_get_json("k", redis=mock_redis) == {"a": 1}

    @pytest.mark.asyncio
    async def test_miss_returns_none(self, mock_redis):
        assert await cache_get_json("absent", redis=mock_redis) is None

    @pytest.mark.asyncio
    async def test_undecodable_returns_none(self, mock_redis):
        mock_redis.store["bad"] = "{not json"
        assert await cache_get_json("bad", redis=mock_redis) is None


class TestDeletePattern:
    @pytest.mark.asyncio
    async def test_deletes_in_batches(self):
        keys = [f"bergizi:menu:s1:{i}" for i in range(150)]
        r = MagicMock()
        r.scan_iter = MagicMock(return_value=FakeScanIter(keys))
        r.delete = AsyncMock(side_effect=lambda *batch: len(batch))

        deleted = await cache_delete_pattern("bergizi:menu:s1:*", redis=r)

        assert deleted == 150
        assert r.delete.await_count == 2
        assert len(r.delete.await_args_list[0].args) == 100
        r.scan_iter.assert_called_once_with(match="bergizi:menu:s1:*", count=100)

    @pytest.mark.asyncio
    async def test_no_matches(self):
        r = MagicMock()
        r.scan_iter = MagicMock(return_value=FakeScanIter([]))
        r.delete = AsyncMock()

        assert await cache_delete_pattern("nothing:*", redis=r) == 0
        r.delete.assert_not_called()


class TestSharedClient:
    @pytest.mark.asyncio
    async def test_lazy_client_created_once_and_closed(self):
        mock_client = MagicMock()
        mock_client.aclose = AsyncMock()

        with (
            patch.object(cache, "_redis", None),
            patch("bergizi.common.cache.aioredis.from_url", return_value=mock_client) as from_url,
        ):
            assert cache.get_redis() is mock_client
            assert cache.get_redis() is mock_client
            from_url.assert_called_once()
            assert from_url.call_args.kwargs["decode_responses"] is True

            await cache.close_redis()
            mock_client.aclose.assert_awaited_once()
            assert cache._redis is None
