"""
Composition root: builds one KeyValueCache, one CouponValidator and one
CartStore from a StorefrontConfig.

Whatever serves requests (HTTP handlers, workers) should call
build_cart_service() once at startup and pass the result around, rather than
importing module-level singletons.
"""
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from storefront.cache.key_value_cache import KeyValueCache
from storefront.cache.policy import warmup_plan
from storefront.cache.primary import RedisPrimaryStore
from storefront.cart.collaborators import CouponRepository, ProductCatalog
from storefront.cart.coupons import CouponValidator
from storefront.cart.pricing import PricingRules
from storefront.cart.store import CartStore
from storefront.core.config import StorefrontConfig, get_config
from storefront.data.database import make_session_factory
from storefront.data.repositories import SqlCouponRepository, SqlProductCatalog
from storefront.utils.logger import get_logger, set_log_level

logger = get_logger("container")


@dataclass
class CartService:
    cache: KeyValueCache
    coupons: CouponValidator
    carts: CartStore
    # key -> (loader, ttl), preloaded by start()
    warmup: Dict[str, Tuple[Callable[[], Awaitable[Any]], int]] = field(default_factory=dict)

    async def start(self) -> None:
        """Warm the configured keys, then begin background sweeping of the local fallback map."""
        if self.warmup:
            await self.cache.warmup(self.warmup)
        self.cache.start_sweeper()

    async def close(self) -> None:
        await self.cache.close()


def pricing_rules(config: StorefrontConfig) -> PricingRules:
    return PricingRules(
        free_shipping_threshold=config.free_shipping_threshold,
        flat_shipping_fee=config.flat_shipping_fee,
        cod_surcharge=config.cod_surcharge,
        tax_rate=config.tax_rate,
    )


def build_cart_service(
    config: Optional[StorefrontConfig] = None,
    products: Optional[ProductCatalog] = None,
    coupon_repository: Optional[CouponRepository] = None,
    clock: Callable[[], float] = time.time,
) -> CartService:
    """
    Wire the cart core.

    Product and coupon collaborators default to the SQL repositories over
    config.database_url; pass explicit ones to use another source. With the
    SQL catalog, start() also preloads the featured products list.
    """
    config = config or get_config()
    set_log_level(config.log_level)

    warmup = {}
    if products is None or coupon_repository is None:
        session_factory = make_session_factory(config.database_url)
        if session_factory is None:
            raise ValueError("No product/coupon collaborators given and DATABASE_URL is not set")
        if products is None:
            products = SqlProductCatalog(session_factory)
            warmup = warmup_plan(featured=products.featured_products)
        coupon_repository = coupon_repository or SqlCouponRepository(session_factory)

    primary = None
    if config.cache_enabled:
        primary = RedisPrimaryStore.from_url(config.redis_url, socket_timeout=config.redis_socket_timeout)

    cache = KeyValueCache(
        primary=primary,
        default_ttl=config.cache_default_ttl,
        sweep_interval=config.cache_sweep_interval,
        clock=clock,
    )
    coupons = CouponValidator(coupon_repository, clock=clock, currency_symbol=config.currency_symbol)
    carts = CartStore(
        cache=cache,
        products=products,
        coupons=coupons,
        session_timeout=config.cart_session_timeout,
        max_cart_items=config.max_cart_items,
        max_item_quantity=config.max_cart_item_quantity,
        rules=pricing_rules(config),
        clock=clock,
    )
    logger.info("container: cart service built primary=%s ttl=%s session_timeout=%s",
                "redis" if primary else "none", config.cache_default_ttl, config.cart_session_timeout)
    return CartService(cache=cache, coupons=coupons, carts=carts, warmup=warmup)
