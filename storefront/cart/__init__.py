"""Cart store, pricing and coupon validation."""

from storefront.cart.coupons import CouponValidator
from storefront.cart.errors import (
    CartError,
    CartFull,
    CartInvalid,
    CouponError,
    EmptyCart,
    Expired,
    InvalidCoupon,
    InvalidQuantity,
    ItemNotFound,
    MinimumNotMet,
    NotYetActive,
    OutOfStock,
    ProductNotFound,
    UsageLimitExceeded,
)
from storefront.cart.models import Cart, CartItem, Coupon, CouponRef, CouponType, PaymentMethod, Totals
from storefront.cart.pricing import PricingRules, compute_totals
from storefront.cart.store import CartStore

__all__ = [
    "Cart",
    "CartError",
    "CartFull",
    "CartInvalid",
    "CartItem",
    "CartStore",
    "Coupon",
    "CouponError",
    "CouponRef",
    "CouponType",
    "CouponValidator",
    "EmptyCart",
    "Expired",
    "InvalidCoupon",
    "InvalidQuantity",
    "ItemNotFound",
    "MinimumNotMet",
    "NotYetActive",
    "OutOfStock",
    "PaymentMethod",
    "PricingRules",
    "ProductNotFound",
    "Totals",
    "UsageLimitExceeded",
    "compute_totals",
]
