"""Shared fixtures: fake clock, fake primary store, in-memory catalog and coupons."""

import fnmatch
import os
import sys
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from storefront.cache.key_value_cache import KeyValueCache
from storefront.cache.primary import PrimaryResult
from storefront.cart.collaborators import ProductRecord
from storefront.cart.coupons import CouponValidator
from storefront.cart.models import Coupon, CouponType
from storefront.cart.store import CartStore

START = 1_760_000_000.0  # 2025-10-09T08:53:20Z


class FakeClock:
    """Epoch-seconds clock that only moves when told to."""

    def __init__(self, now: float = START):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def datetime(self) -> datetime:
        return datetime.fromtimestamp(self.now, tz=timezone.utc)


class FakePrimaryStore:
    """Dict-backed stand-in for RedisPrimaryStore; `failing = True` makes every call error."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.data: Dict[str, Tuple[str, float]] = {}
        self.failing = False
        self.closed = False

    def _error(self) -> PrimaryResult:
        return PrimaryResult.failure(ConnectionError("primary down"))

    def _live(self, key: str) -> Optional[str]:
        item = self.data.get(key)
        if item is None:
            return None
        raw, expires = item
        if expires <= self.clock():
            del self.data[key]
            return None
        return raw

    async def get(self, key):
        if self.failing:
            return self._error()
        return PrimaryResult.success(self._live(key))

    async def set(self, key, raw, ttl_seconds):
        if self.failing:
            return self._error()
        self.data[key] = (raw, self.clock() + ttl_seconds)
        return PrimaryResult.success(True)

    async def delete(self, *keys):
        if self.failing:
            return self._error()
        removed = sum(1 for k in keys if self.data.pop(k, None) is not None)
        return PrimaryResult.success(removed)

    async def keys(self, pattern):
        if self.failing:
            return self._error()
        return PrimaryResult.success([k for k in list(self.data) if fnmatch.fnmatchcase(k, pattern)])

    async def ping(self):
        return not self.failing

    async def close(self):
        self.closed = True


class FakeProductCatalog:
    def __init__(self):
        self.products: Dict[int, ProductRecord] = {}
        self.images: Dict[int, str] = {}

    def add(self, product_id: int, price: float, stock: int, name: str = None, **extra) -> ProductRecord:
        record = ProductRecord(
            id=product_id,
            name=name or f"Product {product_id}",
            price=price,
            stock_quantity=stock,
            **extra,
        )
        self.products[product_id] = record
        return record

    def set_stock(self, product_id: int, stock: int) -> None:
        self.products[product_id] = self.products[product_id].model_copy(update={"stock_quantity": stock})

    async def find_active_product(self, product_id):
        record = self.products.get(product_id)
        if record is None or not record.is_active:
            return None
        return record

    async def find_primary_image(self, product_id):
        return self.images.get(product_id)


class FakeCouponRepository:
    def __init__(self):
        self.coupons: Dict[str, Coupon] = {}

    def add(self, code: str, discount_type: str, value: float, **extra) -> Coupon:
        coupon = Coupon(code=code, discount_type=CouponType(discount_type), discount_value=value, **extra)
        self.coupons[code] = coupon
        return coupon

    async def find_active_coupon(self, code):
        coupon = self.coupons.get(code)
        if coupon is None or not coupon.is_active:
            return None
        return coupon


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def primary(clock):
    return FakePrimaryStore(clock)


@pytest.fixture
def cache(primary, clock):
    return KeyValueCache(primary=primary, default_ttl=300, sweep_interval=60, clock=clock)


@pytest.fixture
def catalog():
    c = FakeProductCatalog()
    c.add(1, price=100, stock=10, name="Rose Lipstick", brand="Riya", sku="LIP-001")
    c.add(2, price=250, stock=3, name="Kajal")
    c.add(3, price=49.99, stock=100, name="Nail Polish")
    c.images[1] = "/uploads/lipstick.jpg"
    return c


@pytest.fixture
def coupon_repo(clock):
    repo = FakeCouponRepository()
    now = clock.datetime()
    repo.add("SAVE50", "fixed", 50, minimum_amount=100, usage_limit=200,
             valid_from=now - timedelta(days=1), valid_until=now + timedelta(days=60))
    repo.add("WELCOME10", "percentage", 10, minimum_amount=100, maximum_discount=500)
    repo.add("BIG1000", "fixed", 100, minimum_amount=1000)
    return repo


@pytest.fixture
def validator(coupon_repo, clock):
    return CouponValidator(coupon_repo, clock=clock)


@pytest.fixture
def store(cache, catalog, validator, clock):
    return CartStore(
        cache=cache,
        products=catalog,
        coupons=validator,
        session_timeout=1800,
        max_cart_items=50,
        max_item_quantity=50,
        clock=clock,
    )
