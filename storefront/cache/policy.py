"""
Caching policy: key naming, default TTLs, and entity invalidation patterns.

Architecture:
  SQL database → source of truth (products, stock, coupons)
  Redis        → primary cache tier (native TTL via SETEX)
  Local map    → in-process fallback tier (lazy expiry + periodic sweep)

Carts live only in the cache. A cart that falls out of both tiers is simply
recreated empty on the next read.
"""

import json
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

# ────────────────────────────────────────────────────────────────────────────
# Cache Policy Table
# ────────────────────────────────────────────────────────────────────────────
#
# Data Type        | Key Pattern                          | TTL
# -----------------+--------------------------------------+----------
# Cart             | cart:{user_id}                       | 30 min, sliding
# Product          | product:{id}                         | default (5 min)
# Product list     | products:list:{filters_json}         | default
# Category page    | products:category:{id}:page:{n}      | default
# Active categories| categories:active                    | 1 hour
# Featured/popular | products:featured, products:popular  | 30 min
# User orders      | orders:user:{user_id}:page:{n}       | default
# Coupon           | coupon:{code}                        | default
#
# Prices and stock are never served from cache when mutating a cart; the
# cart store always asks the product catalog for current inventory.

DEFAULT_TTL = 300               # 5 minutes
TTL_CART_SESSION = 1800         # 30 minutes
TTL_CATEGORIES = 3600           # 1 hour
TTL_FEATURED = 1800             # 30 minutes
SWEEP_INTERVAL_SECONDS = 60


def _filters_json(filters: Optional[Dict[str, Any]]) -> str:
    return json.dumps(filters or {}, sort_keys=True, separators=(",", ":"))


class CacheKeys:
    """Key builders shared by every cache user."""

    @staticmethod
    def product(product_id: Any) -> str:
        return f"product:{product_id}"

    @staticmethod
    def product_list(filters: Optional[Dict[str, Any]] = None) -> str:
        return f"products:list:{_filters_json(filters)}"

    @staticmethod
    def products_by_category(category_id: Any, page: int = 1) -> str:
        return f"products:category:{category_id}:page:{page}"

    @staticmethod
    def categories() -> str:
        return "categories:active"

    @staticmethod
    def featured_products() -> str:
        return "products:featured"

    @staticmethod
    def popular_products() -> str:
        return "products:popular"

    @staticmethod
    def user(user_id: Any) -> str:
        return f"user:{user_id}"

    @staticmethod
    def user_orders(user_id: Any, page: int = 1) -> str:
        return f"orders:user:{user_id}:page:{page}"

    @staticmethod
    def order(order_id: Any) -> str:
        return f"order:{order_id}"

    @staticmethod
    def cart(user_id: Any) -> str:
        return f"cart:{user_id}"

    @staticmethod
    def search(query: str, filters: Optional[Dict[str, Any]] = None) -> str:
        return f"search:{query}:{_filters_json(filters)}"

    @staticmethod
    def admin_orders(filters: Optional[Dict[str, Any]] = None, page: int = 1) -> str:
        return f"admin:orders:{_filters_json(filters)}:page:{page}"

    @staticmethod
    def stats(kind: str) -> str:
        return f"stats:{kind}"

    @staticmethod
    def coupon(code: str) -> str:
        return f"coupon:{code}"


def invalidation_patterns(entity_type: str, entity_id: Any = None) -> List[str]:
    """
    Glob patterns to clear when an entity changes.

    Unknown entity types yield no patterns.
    """
    patterns = {
        "product": [
            "products:*",
            f"product:{entity_id}",
            f"product:{entity_id}:*",
            "categories:*",
            "search:*",
        ],
        "order": [
            "orders:user:*",
            f"order:{entity_id}",
            f"order:{entity_id}:*",
            "admin:orders:*",
        ],
        "user": [
            f"user:{entity_id}",
            f"user:{entity_id}:*",
            f"orders:user:{entity_id}:*",
        ],
        "category": [
            "categories:*",
            "products:category:*",
            f"category:{entity_id}:*",
        ],
        "cart": [
            f"cart:{entity_id}",
        ],
        "coupon": [
            f"coupon:{entity_id}",
        ],
    }
    return patterns.get(entity_type, [])


def warmup_plan(
    categories: Optional[Callable[[], Awaitable[Any]]] = None,
    featured: Optional[Callable[[], Awaitable[Any]]] = None,
    popular: Optional[Callable[[], Awaitable[Any]]] = None,
) -> Dict[str, Tuple[Callable[[], Awaitable[Any]], int]]:
    """
    Key -> (loader, ttl) pairs for KeyValueCache.warmup.

    Only the loaders given are included.
    """
    plan = {}
    if categories is not None:
        plan[CacheKeys.categories()] = (categories, TTL_CATEGORIES)
    if featured is not None:
        plan[CacheKeys.featured_products()] = (featured, TTL_FEATURED)
    if popular is not None:
        plan[CacheKeys.popular_products()] = (popular, TTL_FEATURED)
    return plan
