"""
Interfaces the cart core consumes but does not implement.

storefront.data.repositories provides SQLAlchemy-backed implementations;
tests use small in-memory fakes.
"""

from typing import Optional, Protocol

from pydantic import BaseModel, ConfigDict

from storefront.cart.models import Coupon, ProductId


class ProductRecord(BaseModel):
    """Current catalog view of a product (price and stock are authoritative)."""
    model_config = ConfigDict(from_attributes=True)

    id: ProductId
    name: str
    price: float
    stock_quantity: int
    brand: Optional[str] = None
    sku: Optional[str] = None
    is_active: bool = True


class ProductCatalog(Protocol):
    async def find_active_product(self, product_id: ProductId) -> Optional[ProductRecord]:
        """Return the product if it exists and is active, else None."""
        ...

    async def find_primary_image(self, product_id: ProductId) -> Optional[str]:
        """Return the primary image URL, if any."""
        ...


class CouponRepository(Protocol):
    async def find_active_coupon(self, code: str) -> Optional[Coupon]:
        """Exact, case-sensitive code match among active coupons."""
        ...
