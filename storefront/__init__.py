"""
Storefront cart core

Cart pricing and caching for the cosmetics storefront:
- Two-tier cache (Redis primary, in-process fallback) with TTL expiry
- Per-user carts with sliding expiry and stock re-validation
- Deterministic totals (subtotal → discount → shipping → tax → total)
- Coupon validation
"""

from storefront.core.config import StorefrontConfig, get_config, set_config
from storefront.core.container import CartService, build_cart_service

__all__ = [
    'CartService',
    'StorefrontConfig',
    'build_cart_service',
    'get_config',
    'set_config',
]

__version__ = '0.1.0'
