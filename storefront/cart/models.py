"""
Pydantic v2 models for the cart document and its reports.

The cart is persisted as JSON (model_dump(mode="json")) under cart:{user_id},
so every field here must survive a JSON round trip.
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

ProductId = Union[int, str]
UserId = Union[int, str]

_CENT = Decimal("0.01")


def to_decimal(value: Union[int, float, str, Decimal]) -> Decimal:
    """Exact decimal view of a money value (floats go through repr to avoid binary noise)."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def normalize_id(value: ProductId) -> ProductId:
    """Digit-only strings become ints, so "7" and 7 name the same product."""
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return value


def round_money(value: Union[int, float, Decimal]) -> float:
    """Round half-up to 2 places; the single rounding point for all money fields."""
    return float(to_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP))


class CouponType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class PaymentMethod(str, Enum):
    ONLINE = "online"
    COD = "cod"


class Totals(BaseModel):
    """Order totals; always recomputed as a whole, never patched."""
    subtotal: float = 0.0
    discount: float = 0.0
    shipping: float = 0.0
    tax: float = 0.0
    total: float = 0.0


class CartItem(BaseModel):
    """
    One product line.

    total_price is a cached copy of price * quantity; it is re-derived on load
    and by set_quantity(), never edited on its own.
    """
    product_id: ProductId
    name: str
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    total_price: float = 0.0
    stock_quantity_at_add: int = 0
    brand: Optional[str] = None
    sku: Optional[str] = None
    image_url: Optional[str] = None
    added_at: datetime
    updated_at: datetime

    @field_validator("product_id", mode="before")
    @classmethod
    def _normalize_product_id(cls, value: ProductId) -> ProductId:
        return normalize_id(value)

    @model_validator(mode="after")
    def _derive_total_price(self) -> "CartItem":
        self.total_price = round_money(to_decimal(self.price) * self.quantity)
        return self

    def set_quantity(self, quantity: int, at: datetime) -> None:
        self.quantity = quantity
        self.total_price = round_money(to_decimal(self.price) * quantity)
        self.updated_at = at


class CouponRef(BaseModel):
    """The coupon attached to a cart, as the pricing engine needs it."""
    code: str
    type: CouponType
    value: float = Field(..., ge=0)
    maximum_discount: Optional[float] = None
    applied_at: datetime


class Coupon(BaseModel):
    """A coupon row as stored by the data collaborator (read-only here)."""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    code: str
    description: Optional[str] = None
    discount_type: CouponType
    discount_value: float
    minimum_amount: Optional[float] = None
    maximum_discount: Optional[float] = None
    usage_limit: Optional[int] = None
    used_count: int = 0
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: bool = True


class CouponApplication(BaseModel):
    """A successful coupon validation with the discount already computed."""
    code: str
    discount_type: CouponType
    discount_value: float
    maximum_discount: Optional[float] = None
    discount: float
    message: str

    def to_ref(self, applied_at: datetime) -> CouponRef:
        return CouponRef(
            code=self.code,
            type=self.discount_type,
            value=self.discount_value,
            maximum_discount=self.maximum_discount,
            applied_at=applied_at,
        )


class Cart(BaseModel):
    """Per-user cart document."""
    user_id: UserId
    items: List[CartItem] = Field(default_factory=list)
    coupon: Optional[CouponRef] = None
    # Set when a coupon was dropped because the cart no longer qualifies
    coupon_notice: Optional[str] = None
    totals: Totals = Field(default_factory=Totals)
    updated_at: datetime
    expires_at: datetime

    def find_item(self, product_id: ProductId) -> Optional[CartItem]:
        product_id = normalize_id(product_id)
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)


class CartStats(BaseModel):
    item_count: int
    total_quantity: int
    subtotal: float
    total: float
    has_discount: bool
    has_coupon: bool
    updated_at: datetime
    expires_at: datetime


class ItemValidation(BaseModel):
    """Checkout-time stock check for one line."""
    product_id: ProductId
    valid: bool
    requested: int
    available: Optional[int] = None
    error: Optional[str] = None


class CheckoutValidation(BaseModel):
    valid: bool
    cart: Cart
    results: List[ItemValidation]
