"""
Cart pricing: subtotal → coupon discount → shipping → tax → total.

Rules (defaults, INR):
  shipping   : free when (subtotal - discount) >= ₹500, else flat ₹50
  COD        : +₹25 handling charge added to shipping
  tax        : 18% GST on (subtotal - discount + shipping)

All arithmetic is exact (Decimal); each money field is rounded half-up to
2 places once, at final assignment, and total is the sum of those rounded
fields. Same inputs always give identical Totals.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Protocol, Union

from storefront.cart.models import (
    CouponRef,
    CouponType,
    PaymentMethod,
    Totals,
    round_money,
    to_decimal,
)

# ─── Defaults ────────────────────────────────────────────────────────────────

FREE_SHIPPING_THRESHOLD = 500
FLAT_SHIPPING_FEE = 50
COD_SURCHARGE = 25
TAX_RATE = 0.18

_ZERO = Decimal("0")


class PricedLine(Protocol):
    price: float
    quantity: int


@dataclass(frozen=True)
class PricingRules:
    free_shipping_threshold: float = FREE_SHIPPING_THRESHOLD
    flat_shipping_fee: float = FLAT_SHIPPING_FEE
    cod_surcharge: float = COD_SURCHARGE
    tax_rate: float = TAX_RATE


DEFAULT_RULES = PricingRules()


# ─── Public API ──────────────────────────────────────────────────────────────

def compute_subtotal(items: Iterable[PricedLine]) -> Decimal:
    return sum((to_decimal(item.price) * item.quantity for item in items), _ZERO)


def compute_discount(
    subtotal: Decimal,
    discount_type: Union[CouponType, str],
    value: float,
    maximum_discount: Optional[float] = None,
) -> Decimal:
    """
    Discount for a coupon against a subtotal.

    percentage: subtotal * value / 100, capped at maximum_discount
    fixed:      value
    Either way the result is clamped to [0, subtotal].
    """
    discount_type = CouponType(discount_type)
    if discount_type is CouponType.PERCENTAGE:
        discount = subtotal * to_decimal(value) / 100
        if maximum_discount is not None:
            discount = min(discount, to_decimal(maximum_discount))
    else:
        discount = to_decimal(value)
    return max(_ZERO, min(discount, subtotal))


def compute_totals(
    items: Iterable[PricedLine],
    coupon: Optional[CouponRef] = None,
    payment_method: Union[PaymentMethod, str] = PaymentMethod.ONLINE,
    rules: PricingRules = DEFAULT_RULES,
) -> Totals:
    """
    Price a list of cart lines.

    Args:
        items: Anything with `price` and `quantity` (CartItem in practice)
        coupon: Coupon attached to the cart, if any
        payment_method: "online" or "cod"; COD adds rules.cod_surcharge to shipping
        rules: Thresholds, fees and tax rate

    Returns:
        Totals; an empty list prices to all zeros.
    """
    items = list(items)
    if not items:
        return Totals()

    subtotal = compute_subtotal(items)

    discount = _ZERO
    if coupon is not None:
        discount = compute_discount(subtotal, coupon.type, coupon.value, coupon.maximum_discount)

    discounted = subtotal - discount
    if discounted >= to_decimal(rules.free_shipping_threshold):
        shipping = _ZERO
    else:
        shipping = to_decimal(rules.flat_shipping_fee)
    if PaymentMethod(payment_method) is PaymentMethod.COD:
        shipping += to_decimal(rules.cod_surcharge)

    tax = (discounted + shipping) * to_decimal(rules.tax_rate)

    parts = {
        "subtotal": round_money(subtotal),
        "discount": round_money(discount),
        "shipping": round_money(shipping),
        "tax": round_money(tax),
    }
    # total is summed from the displayed parts so the order summary always adds up
    total = (
        to_decimal(parts["subtotal"]) - to_decimal(parts["discount"])
        + to_decimal(parts["shipping"]) + to_decimal(parts["tax"])
    )
    return Totals(**parts, total=round_money(total))
