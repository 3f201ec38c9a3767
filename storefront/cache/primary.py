"""
Redis adapter for the primary cache tier.

Redis is ONLY a cache, never the source of truth. Every call returns a
PrimaryResult instead of raising, so the two-tier cache can make the
degrade-to-local decision explicitly.

Supports both local Redis and Upstash (cloud-hosted, rediss://) URLs.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Protocol

import redis
import redis.asyncio as aioredis

from storefront.utils.logger import get_logger

logger = get_logger("cache.primary")


@dataclass(frozen=True)
class PrimaryResult:
    """Outcome of a primary-store call: ok with an optional value, or an error."""

    ok: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Any = None) -> "PrimaryResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "PrimaryResult":
        return cls(ok=False, error=f"{type(error).__name__}: {error}")


class PrimaryStore(Protocol):
    """What KeyValueCache needs from a remote store."""

    async def get(self, key: str) -> PrimaryResult: ...

    async def set(self, key: str, raw: str, ttl_seconds: int) -> PrimaryResult: ...

    async def delete(self, *keys: str) -> PrimaryResult: ...

    async def keys(self, pattern: str) -> PrimaryResult: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


class RedisPrimaryStore:
    """
    Async Redis client wrapper.

    Values cross this boundary as JSON strings; (de)serialization belongs
    to KeyValueCache.
    """

    def __init__(self, client: aioredis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str, socket_timeout: float = 2) -> "RedisPrimaryStore":
        """Build a store from redis:// or rediss:// URL. Does not connect yet."""
        client = aioredis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=socket_timeout,
            socket_timeout=socket_timeout,
        )
        return cls(client)

    async def ping(self) -> bool:
        """Check if Redis is reachable."""
        try:
            return bool(await self.client.ping())
        except (redis.RedisError, OSError):
            return False

    async def get(self, key: str) -> PrimaryResult:
        try:
            return PrimaryResult.success(await self.client.get(key))
        except (redis.RedisError, OSError) as e:
            return PrimaryResult.failure(e)

    async def set(self, key: str, raw: str, ttl_seconds: int) -> PrimaryResult:
        try:
            await self.client.setex(key, ttl_seconds, raw)
            return PrimaryResult.success(True)
        except (redis.RedisError, OSError) as e:
            return PrimaryResult.failure(e)

    async def delete(self, *keys: str) -> PrimaryResult:
        if not keys:
            return PrimaryResult.success(0)
        try:
            return PrimaryResult.success(await self.client.delete(*keys))
        except (redis.RedisError, OSError) as e:
            return PrimaryResult.failure(e)

    async def keys(self, pattern: str) -> PrimaryResult:
        """List keys matching a glob pattern (SCAN, not KEYS, to avoid blocking Redis)."""
        try:
            found: List[str] = [k async for k in self.client.scan_iter(match=pattern, count=100)]
            return PrimaryResult.success(found)
        except (redis.RedisError, OSError) as e:
            return PrimaryResult.failure(e)

    async def close(self) -> None:
        try:
            await self.client.aclose()
        except (redis.RedisError, OSError) as e:
            logger.warning("primary: method=close error=%s", e)
