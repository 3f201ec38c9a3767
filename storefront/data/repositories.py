"""
SQLAlchemy-backed product and coupon lookups for the cart core.

Implements storefront.cart.collaborators.ProductCatalog and CouponRepository.
Reads only; stock is decremented elsewhere at order time.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from storefront.cart.collaborators import ProductRecord
from storefront.cart.models import Coupon, ProductId
from storefront.data import models
from storefront.utils.logger import get_logger

logger = get_logger("data.repositories")


def _pk(product_id: ProductId) -> Optional[int]:
    """Integer primary key for an id, or None if it cannot be one."""
    try:
        return int(product_id)
    except (TypeError, ValueError):
        return None


class SqlProductCatalog:
    """Active-product and primary-image lookups."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    async def find_active_product(self, product_id: ProductId) -> Optional[ProductRecord]:
        pk = _pk(product_id)
        if pk is None:
            return None
        try:
            with self._session_factory() as session:
                row = session.execute(
                    select(models.Product).where(
                        models.Product.id == pk,
                        models.Product.is_active.is_(True),
                    )
                ).scalar_one_or_none()
                if row is None:
                    return None
                return ProductRecord.model_validate(row)
        except SQLAlchemyError as e:
            logger.error("sql_catalog: method=find_active_product product_id=%s error=%s", product_id, e)
            raise

    async def find_primary_image(self, product_id: ProductId) -> Optional[str]:
        pk = _pk(product_id)
        if pk is None:
            return None
        try:
            with self._session_factory() as session:
                return session.execute(
                    select(models.ProductImage.image_url)
                    .where(
                        models.ProductImage.product_id == pk,
                        models.ProductImage.is_primary.is_(True),
                    )
                    .limit(1)
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("sql_catalog: method=find_primary_image product_id=%s error=%s", product_id, e)
            raise

    async def featured_products(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Newest active, in-stock products with their primary image (storefront home page)."""
        primary_image = and_(
            models.ProductImage.product_id == models.Product.id,
            models.ProductImage.is_primary.is_(True),
        )
        try:
            with self._session_factory() as session:
                rows = session.execute(
                    select(models.Product, models.ProductImage.image_url)
                    .outerjoin(models.ProductImage, primary_image)
                    .where(
                        models.Product.is_active.is_(True),
                        models.Product.stock_quantity > 0,
                    )
                    .order_by(models.Product.created_at.desc(), models.Product.id.desc())
                    .limit(limit)
                ).all()
                return [
                    {**ProductRecord.model_validate(product).model_dump(), "image_url": image_url}
                    for product, image_url in rows
                ]
        except SQLAlchemyError as e:
            logger.error("sql_catalog: method=featured_products error=%s", e)
            raise


class SqlCouponRepository:
    """Coupon lookup by exact code among active coupons."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    async def find_active_coupon(self, code: str) -> Optional[Coupon]:
        try:
            with self._session_factory() as session:
                row = session.execute(
                    select(models.Coupon).where(
                        models.Coupon.code == code,
                        models.Coupon.is_active.is_(True),
                    )
                ).scalar_one_or_none()
                if row is None:
                    return None
                return Coupon.model_validate(row)
        except SQLAlchemyError as e:
            logger.error("sql_coupons: method=find_active_coupon code=%s error=%s", code, e)
            raise
