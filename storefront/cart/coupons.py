"""
Coupon / discount code validation.

Checks run in a fixed order so the caller always gets the most specific reason:
  1. exists and active       → InvalidCoupon
  2. valid_from not reached  → NotYetActive
  3. valid_until passed      → Expired
  4. usage limit reached     → UsageLimitExceeded
  5. minimum order amount    → MinimumNotMet

Sample codes seeded in development databases:
  WELCOME10  : 10% off orders over ₹100, max ₹500
  SAVE50     : flat ₹50 off orders over ₹100
  FLAT100    : flat ₹100 off orders over ₹500
"""

from __future__ import annotations
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from storefront.cart.collaborators import CouponRepository
from storefront.cart.errors import (
    CouponError,
    Expired,
    InvalidCoupon,
    MinimumNotMet,
    NotYetActive,
    UsageLimitExceeded,
)
from storefront.cart.models import Coupon, CouponApplication, round_money, to_decimal
from storefront.cart.pricing import compute_discount
from storefront.utils.logger import get_logger

logger = get_logger("coupons")


def _as_utc(value: datetime) -> datetime:
    # SQL drivers may hand back naive timestamps; they are stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CouponValidator:
    """Validates coupon codes against the coupon store and computes the discount."""

    def __init__(
        self,
        repository: CouponRepository,
        clock: Callable[[], float] = time.time,
        currency_symbol: str = "₹",
    ):
        self.repository = repository
        self.clock = clock
        self.currency_symbol = currency_symbol

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self.clock(), tz=timezone.utc)

    def check(self, coupon: Optional[Coupon], code: str, subtotal: float) -> Coupon:
        """Apply the rule chain to an already-fetched coupon; raises a CouponError on rejection."""
        if coupon is None or not coupon.is_active:
            raise InvalidCoupon(code)

        now = self._now()
        if coupon.valid_from is not None and _as_utc(coupon.valid_from) > now:
            raise NotYetActive(code, coupon.valid_from)
        if coupon.valid_until is not None and _as_utc(coupon.valid_until) < now:
            raise Expired(code, coupon.valid_until)

        if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
            raise UsageLimitExceeded(code, coupon.usage_limit, coupon.used_count)

        if coupon.minimum_amount is not None and subtotal < coupon.minimum_amount:
            raise MinimumNotMet(code, coupon.minimum_amount, subtotal, self.currency_symbol)

        return coupon

    async def validate(self, code: str, subtotal: float) -> CouponApplication:
        """
        Validate a coupon code for a cart subtotal.

        Args:
            code: Coupon code exactly as stored (case-sensitive)
            subtotal: Cart subtotal before discount

        Returns:
            CouponApplication with the discount capped by maximum_discount and subtotal

        Raises:
            CouponError subclass describing the rejection
        """
        coupon = await self.repository.find_active_coupon(code)
        try:
            coupon = self.check(coupon, code, subtotal)
        except CouponError as e:
            logger.info("coupons: method=validate code=%s subtotal=%s result=rejected reason=%s",
                        code, subtotal, e.code)
            raise

        discount = compute_discount(
            to_decimal(subtotal),
            coupon.discount_type,
            coupon.discount_value,
            coupon.maximum_discount,
        )
        logger.info("coupons: method=validate code=%s subtotal=%s result=success discount=%s",
                    code, subtotal, discount)
        return CouponApplication(
            code=coupon.code,
            discount_type=coupon.discount_type,
            discount_value=coupon.discount_value,
            maximum_discount=coupon.maximum_discount,
            discount=round_money(discount),
            message=f"Coupon applied: {coupon.description or coupon.code}",
        )
