"""Two-tier cache: Redis primary, in-process fallback."""

from storefront.cache.key_value_cache import CacheEntry, CacheUnavailable, KeyValueCache
from storefront.cache.policy import CacheKeys
from storefront.cache.primary import PrimaryResult, PrimaryStore, RedisPrimaryStore

__all__ = [
    "CacheEntry",
    "CacheKeys",
    "CacheUnavailable",
    "KeyValueCache",
    "PrimaryResult",
    "PrimaryStore",
    "RedisPrimaryStore",
]
