"""
Two-tier key/value cache: Redis primary with an in-process fallback map.

Improvements over talking to Redis directly:
1. Primary failures degrade to the local map instead of failing the caller
2. Uniform TTL handling on both tiers
3. Pattern-based invalidation across both tiers
4. Cache statistics (hits, misses, sets, deletes, errors)
5. Read-through helper for expensive lookups

Usage:
    from storefront.cache import KeyValueCache, RedisPrimaryStore

    cache = KeyValueCache(RedisPrimaryStore.from_url("redis://localhost:6379/0"))
    await cache.set("product:1", {"name": "Lipstick"}, ttl=300)
    product = await cache.get("product:1")
    stats = cache.get_stats()
"""

import asyncio
import json
import re
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Set, Tuple

from storefront.cache.policy import DEFAULT_TTL, SWEEP_INTERVAL_SECONDS, invalidation_patterns
from storefront.cache.primary import PrimaryResult, PrimaryStore
from storefront.utils.logger import get_logger

logger = get_logger("cache")

Clock = Callable[[], float]
Loader = Callable[[], Awaitable[Any]]


class CacheUnavailable(RuntimeError):
    """Raised only when the local fallback tier itself is unusable."""


@dataclass
class CacheEntry:
    """A local fallback entry; `value` holds the JSON text."""

    value: str
    expiry_epoch_millis: int

    def is_expired(self, now_millis: int) -> bool:
        return self.expiry_epoch_millis <= now_millis


def glob_to_regex(pattern: str) -> "re.Pattern[str]":
    """Translate a `*`-wildcard glob into an anchored regex (other characters are literal)."""
    return re.compile("^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$")


def _new_stats() -> Dict[str, int]:
    return {
        "hits": 0,
        "misses": 0,
        "sets": 0,
        "deletes": 0,
        "errors": 0,
    }


class KeyValueCache:
    """
    Read-through / write-through cache over a primary store and a local map.

    - get: primary first; a primary miss or error falls back to the local map
    - set: best-effort primary write, always a local write
    - delete / clear_pattern: best-effort primary, always local
    - a background task sweeps expired local entries
    """

    def __init__(
        self,
        primary: Optional[PrimaryStore] = None,
        default_ttl: int = DEFAULT_TTL,
        sweep_interval: float = SWEEP_INTERVAL_SECONDS,
        clock: Clock = time.time,
    ):
        """
        Args:
            primary: Remote store adapter, or None to run on the local map only
            default_ttl: TTL in seconds when `set` is called without one
            sweep_interval: Seconds between background sweeps of the local map
            clock: Returns wall-clock epoch seconds (injectable for tests)
        """
        self.primary = primary
        self.default_ttl = default_ttl
        self.sweep_interval = sweep_interval
        self.clock = clock
        self.memory: Dict[str, CacheEntry] = {}
        self.stats = _new_stats()
        self._sweeper: Optional[asyncio.Task] = None

    def _now_millis(self) -> int:
        return int(self.clock() * 1000)

    def _primary_failed(self, method: str, key: str, result: PrimaryResult) -> None:
        self.stats["errors"] += 1
        logger.warning("cache: method=%s key=%s result=primary_error error=%s", method, key, result.error)

    #
    # Local fallback tier
    #

    def _local_get(self, key: str) -> Optional[Any]:
        entry = self.memory.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._now_millis()):
            del self.memory[key]
            return None
        try:
            return json.loads(entry.value)
        except (TypeError, ValueError) as e:
            self.stats["errors"] += 1
            del self.memory[key]
            logger.error("cache: method=get key=%s result=local_corrupt error=%s", key, e)
            raise CacheUnavailable(f"Local cache entry for {key!r} is corrupt") from e

    #
    # Core operations
    #

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Returns:
            Cached value, or None on a miss in both tiers
        """
        if self.primary is not None:
            result = await self.primary.get(key)
            if not result.ok:
                self._primary_failed("get", key, result)
            elif result.value is not None:
                try:
                    value = json.loads(result.value)
                except (TypeError, ValueError) as e:
                    self.stats["errors"] += 1
                    logger.warning("cache: method=get key=%s result=primary_decode_error error=%s", key, e)
                else:
                    self.stats["hits"] += 1
                    return value

        value = self._local_get(key)
        if value is None:
            self.stats["misses"] += 1
            return None
        self.stats["hits"] += 1
        return value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Set value in both tiers.

        Args:
            key: Cache key
            value: JSON-serializable value
            ttl: Time to live in seconds (default_ttl when omitted)

        Returns:
            True once the local tier holds the value

        Raises:
            ValueError: ttl is zero or negative
        """
        if ttl is None:
            ttl = self.default_ttl
        if ttl <= 0:
            raise ValueError(f"ttl must be a positive number of seconds, got {ttl}")
        raw = json.dumps(value)

        if self.primary is not None:
            result = await self.primary.set(key, raw, ttl)
            if not result.ok:
                self._primary_failed("set", key, result)

        self.memory[key] = CacheEntry(value=raw, expiry_epoch_millis=self._now_millis() + ttl * 1000)
        self.stats["sets"] += 1
        return True

    async def delete(self, key: str) -> bool:
        """Delete key from both tiers."""
        if self.primary is not None:
            result = await self.primary.delete(key)
            if not result.ok:
                self._primary_failed("delete", key, result)

        self.memory.pop(key, None)
        self.stats["deletes"] += 1
        return True

    async def clear_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a `*` glob from both tiers.

        Returns:
            Number of distinct keys removed; a key held by both tiers counts once
        """
        removed: Set[str] = set()
        if self.primary is not None:
            listed = await self.primary.keys(pattern)
            if not listed.ok:
                self._primary_failed("clear_pattern", pattern, listed)
            elif listed.value:
                deleted = await self.primary.delete(*listed.value)
                if deleted.ok:
                    removed.update(listed.value)
                else:
                    self._primary_failed("clear_pattern", pattern, deleted)

        regex = glob_to_regex(pattern)
        for key in [k for k in self.memory if regex.match(k)]:
            del self.memory[key]
            removed.add(key)

        logger.info("cache: method=clear_pattern pattern=%s removed=%s", pattern, len(removed))
        return len(removed)

    async def cache_query(
        self,
        key: str,
        loader: Loader,
        ttl: Optional[int] = None,
    ) -> Any:
        """
        Read-through helper: return the cached value or await `loader` and cache its result.

        Loader exceptions propagate and nothing is cached.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached
        result = await loader()
        if result is not None:
            await self.set(key, result, ttl)
        return result

    async def invalidate_entity(self, entity_type: str, entity_id: Any = None) -> int:
        """Clear every cached view that depends on an entity (see policy.invalidation_patterns)."""
        removed = 0
        for pattern in invalidation_patterns(entity_type, entity_id):
            removed += await self.clear_pattern(pattern)
        logger.info("cache: method=invalidate_entity entity_type=%s entity_id=%s removed=%s",
                    entity_type, entity_id, removed)
        return removed

    async def warmup(self, entries: Mapping[str, Tuple[Loader, int]]) -> int:
        """
        Preload frequently read keys (see policy.warmup_plan).

        A failing loader is logged and skipped; the rest still load.

        Returns:
            Number of keys written
        """
        logger.info("cache: method=warmup keys=%s", list(entries))
        warmed = 0
        for key, (loader, ttl) in entries.items():
            try:
                value = await loader()
            except Exception as e:
                logger.warning("cache: method=warmup key=%s result=loader_error error=%s", key, e)
                continue
            await self.set(key, value, ttl)
            warmed += 1
        logger.info("cache: method=warmup result=done warmed=%s", warmed)
        return warmed

    #
    # Expiry sweep
    #

    def sweep_expired(self) -> int:
        """Evict expired local entries. Returns the count removed."""
        now = self._now_millis()
        expired = [key for key, entry in self.memory.items() if entry.is_expired(now)]
        for key in expired:
            del self.memory[key]
        if expired:
            logger.debug("cache: method=sweep cleaned=%s remaining=%s", len(expired), len(self.memory))
        return len(expired)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.sweep_expired()

    def start_sweeper(self) -> None:
        """Start the periodic sweep on the running event loop (idempotent)."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._sweep_loop())

    async def close(self) -> None:
        """Stop the sweeper, close the primary connection and drop local entries."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None
        if self.primary is not None:
            await self.primary.close()
        self.memory.clear()
        logger.info("cache: method=close")

    #
    # Statistics
    #

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with counters, hit rate and fallback-map size
        """
        total_requests = self.stats["hits"] + self.stats["misses"]
        hit_rate = (self.stats["hits"] / total_requests * 100) if total_requests > 0 else 0

        return {
            **self.stats,
            "total_requests": total_requests,
            "hit_rate_percent": round(hit_rate, 2),
            "memory_size": len(self.memory),
            "primary_connected": self.primary is not None,
        }

    def reset_stats(self) -> None:
        """Reset cache statistics."""
        self.stats = _new_stats()
