"""
SQLAlchemy database models for the tables the cart core reads.

Only the columns the cart needs are mapped:
- products        (price, stock, active flag)
- product_images  (primary image per product)
- coupons         (discount rules, validity window, usage counts)
"""

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.sql import func

from storefront.data.database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0)
    brand = Column(String(100), nullable=True)
    sku = Column(String(100), nullable=True, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ProductImage(Base):
    __tablename__ = "product_images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(String(500), nullable=False)
    is_primary = Column(Boolean, nullable=False, default=False)


class Coupon(Base):
    __tablename__ = "coupons"
    __table_args__ = (
        Index("idx_coupons_code_active", "code", "is_active"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(50), unique=True, nullable=False)
    description = Column(String(255), nullable=True)
    discount_type = Column(Enum("percentage", "fixed", name="discount_type"), nullable=False)
    discount_value = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    minimum_amount = Column(Numeric(10, 2, asdecimal=False), nullable=True, default=0)
    maximum_discount = Column(Numeric(10, 2, asdecimal=False), nullable=True)
    usage_limit = Column(Integer, nullable=True)
    used_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    valid_from = Column(DateTime(timezone=True), nullable=True)
    valid_until = Column(DateTime(timezone=True), nullable=True)
