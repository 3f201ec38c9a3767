"""
Tests for the Redis adapter: errors come back as PrimaryResult values, never exceptions.
Uses a mocked redis.asyncio client, so no Redis server is needed.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
import redis

from storefront.cache.primary import PrimaryResult, RedisPrimaryStore


def _client(**overrides):
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.setex = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    for name, value in overrides.items():
        setattr(client, name, value)
    return client


class TestRedisPrimaryStore:
    @pytest.mark.asyncio
    async def test_get_hit(self):
        store = RedisPrimaryStore(_client(get=AsyncMock(return_value='{"a": 1}')))
        result = await store.get("k")
        assert result.ok
        assert result.value == '{"a": 1}'

    @pytest.mark.asyncio
    async def test_get_error_is_a_value(self):
        store = RedisPrimaryStore(_client(get=AsyncMock(side_effect=redis.ConnectionError("refused"))))
        result = await store.get("k")
        assert not result.ok
        assert "ConnectionError" in result.error

    @pytest.mark.asyncio
    async def test_set_uses_setex(self):
        client = _client()
        store = RedisPrimaryStore(client)
        result = await store.set("cart:1", "{}", 1800)
        assert result.ok
        client.setex.assert_awaited_once_with("cart:1", 1800, "{}")

    @pytest.mark.asyncio
    async def test_set_timeout(self):
        store = RedisPrimaryStore(_client(setex=AsyncMock(side_effect=redis.TimeoutError())))
        assert not (await store.set("k", "1", 10)).ok

    @pytest.mark.asyncio
    async def test_delete_without_keys_skips_redis(self):
        client = _client()
        store = RedisPrimaryStore(client)
        assert (await store.delete()).value == 0
        client.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_keys_scans_pattern(self):
        async def scan_iter(match=None, count=None):
            for key in ["cart:1", "cart:2"]:
                yield key

        client = _client()
        client.scan_iter = scan_iter
        result = await RedisPrimaryStore(client).keys("cart:*")
        assert result.ok
        assert result.value == ["cart:1", "cart:2"]

    @pytest.mark.asyncio
    async def test_ping_false_on_error(self):
        store = RedisPrimaryStore(_client(ping=AsyncMock(side_effect=OSError("no route"))))
        assert await store.ping() is False

    @pytest.mark.asyncio
    async def test_close(self):
        client = _client()
        await RedisPrimaryStore(client).close()
        client.aclose.assert_awaited_once()

    def test_from_url_does_not_connect(self):
        store = RedisPrimaryStore.from_url("redis://localhost:6399/15", socket_timeout=1)
        assert store.client is not None


def test_primary_result_helpers():
    assert PrimaryResult.success(5) == PrimaryResult(ok=True, value=5)
    failed = PrimaryResult.failure(ValueError("bad"))
    assert failed.ok is False
    assert failed.error == "ValueError: bad"
