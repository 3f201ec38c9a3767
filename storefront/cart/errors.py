"""
Typed cart errors.

Every error carries a machine-readable `code` plus the ids, limits and actual
values involved, so callers can render a message without re-deriving context.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional


def _format_amount(amount: float) -> str:
    return f"{amount:.0f}" if float(amount).is_integer() else f"{amount:.2f}"


class CartError(Exception):
    """Base class for business-rule failures raised by the cart core."""

    code = "CART_ERROR"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ProductNotFound(CartError):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: Any):
        super().__init__("Product not found or inactive", product_id=product_id)
        self.product_id = product_id


class OutOfStock(CartError):
    code = "OUT_OF_STOCK"

    def __init__(self, product_id: Any, available: int, requested: int):
        super().__init__(
            f"Insufficient stock. Available: {available}, Requested: {requested}",
            product_id=product_id,
            available=available,
            requested=requested,
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class InvalidQuantity(CartError):
    code = "INVALID_QUANTITY"

    def __init__(self, product_id: Any, requested: int, maximum: int):
        super().__init__(
            f"Quantity must be between 1 and {maximum}",
            product_id=product_id,
            requested=requested,
            maximum=maximum,
        )
        self.product_id = product_id
        self.requested = requested
        self.maximum = maximum


class CartFull(CartError):
    code = "CART_FULL"

    def __init__(self, max_items: int):
        super().__init__(f"Cart cannot contain more than {max_items} different items", max=max_items)
        self.max = max_items


class ItemNotFound(CartError):
    code = "ITEM_NOT_FOUND"

    def __init__(self, product_id: Any):
        super().__init__("Item not found in cart", product_id=product_id)
        self.product_id = product_id


class EmptyCart(CartError):
    code = "EMPTY_CART"

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class CartInvalid(CartError):
    """Aggregate checkout failure listing every failing line."""

    code = "CART_INVALID"

    def __init__(self, failing_items: List[Dict[str, Any]]):
        super().__init__(
            f"Cart validation failed: {len(failing_items)} items have issues",
            failing_items=failing_items,
        )
        self.failing_items = failing_items


#
# Coupon rejections
#

class CouponError(CartError):
    code = "COUPON_ERROR"

    def __init__(self, message: str, coupon_code: str, **details: Any):
        super().__init__(message, coupon_code=coupon_code, **details)
        self.coupon_code = coupon_code


class InvalidCoupon(CouponError):
    code = "INVALID_COUPON"

    def __init__(self, coupon_code: str):
        super().__init__("Invalid coupon code", coupon_code)


class NotYetActive(CouponError):
    code = "COUPON_NOT_YET_ACTIVE"

    def __init__(self, coupon_code: str, date: datetime):
        super().__init__("Coupon is not yet active", coupon_code, date=date.isoformat())
        self.date = date


class Expired(CouponError):
    code = "COUPON_EXPIRED"

    def __init__(self, coupon_code: str, date: datetime):
        super().__init__("Coupon has expired", coupon_code, date=date.isoformat())
        self.date = date


class UsageLimitExceeded(CouponError):
    code = "COUPON_USAGE_LIMIT_EXCEEDED"

    def __init__(self, coupon_code: str, usage_limit: int, used_count: int):
        super().__init__(
            "Coupon usage limit exceeded",
            coupon_code,
            usage_limit=usage_limit,
            used_count=used_count,
        )
        self.usage_limit = usage_limit
        self.used_count = used_count


class MinimumNotMet(CouponError):
    code = "COUPON_MINIMUM_NOT_MET"

    def __init__(self, coupon_code: str, minimum: float, subtotal: float, currency_symbol: Optional[str] = "₹"):
        super().__init__(
            f"Minimum order amount of {currency_symbol}{_format_amount(minimum)} required for this coupon",
            coupon_code,
            minimum=minimum,
            subtotal=subtotal,
        )
        self.minimum = minimum
        self.subtotal = subtotal
