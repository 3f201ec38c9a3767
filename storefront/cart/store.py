"""
Per-user cart store persisted through the two-tier cache.

Cart document lives at cart:{user_id} (see storefront.cache.policy) with a
sliding expiry: every save pushes expires_at forward by the session timeout.
Lifecycle per user:

    absent → fresh (empty) → populated → expired → fresh ...

Every mutation is read-modify-write (get_cart → change in memory → save_cart)
and last write wins; there is no locking or version token. Stock is always
checked against the product catalog, never against cached product data.
"""
from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Union

from pydantic import ValidationError

from storefront.cache.key_value_cache import KeyValueCache
from storefront.cache.policy import TTL_CART_SESSION, CacheKeys
from storefront.cart.collaborators import ProductCatalog, ProductRecord
from storefront.cart.coupons import CouponValidator
from storefront.cart.errors import (
    CartError,
    CartFull,
    CartInvalid,
    CouponError,
    EmptyCart,
    InvalidQuantity,
    ItemNotFound,
    OutOfStock,
    ProductNotFound,
)
from storefront.cart.models import (
    Cart,
    CartItem,
    CartStats,
    CheckoutValidation,
    ItemValidation,
    PaymentMethod,
    ProductId,
    Totals,
    UserId,
    normalize_id,
    round_money,
)
from storefront.cart.pricing import DEFAULT_RULES, PricingRules, compute_subtotal, compute_totals
from storefront.utils.logger import get_logger

logger = get_logger("cart")

MAX_CART_ITEMS = 50
MAX_CART_ITEM_QUANTITY = 50


class CartStore:
    """
    Cart operations keyed by user_id.

    All public methods are coroutines; each returns the full updated Cart (or
    a report) and raises a CartError subclass on business-rule failures.
    """

    def __init__(
        self,
        cache: KeyValueCache,
        products: ProductCatalog,
        coupons: CouponValidator,
        session_timeout: int = TTL_CART_SESSION,
        max_cart_items: int = MAX_CART_ITEMS,
        max_item_quantity: int = MAX_CART_ITEM_QUANTITY,
        rules: PricingRules = DEFAULT_RULES,
        clock: Callable[[], float] = time.time,
    ):
        self.cache = cache
        self.products = products
        self.coupons = coupons
        self.session_timeout = session_timeout
        self.max_cart_items = max_cart_items
        self.max_item_quantity = max_item_quantity
        self.rules = rules
        self.clock = clock

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self.clock(), tz=timezone.utc)

    def _new_cart(self, user_id: UserId) -> Cart:
        now = self._now()
        return Cart(
            user_id=user_id,
            updated_at=now,
            expires_at=now + timedelta(seconds=self.session_timeout),
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def _load(self, user_id: UserId) -> Optional[Cart]:
        key = CacheKeys.cart(user_id)
        raw = await self.cache.get(key)
        if raw is None:
            return None
        try:
            return Cart.model_validate(raw)
        except ValidationError as e:
            logger.warning("cart: method=get_cart user_id=%s result=unreadable error=%s", user_id, e)
            await self.cache.delete(key)
            return None

    async def get_cart(self, user_id: UserId) -> Cart:
        """Return the user's cart, creating (and persisting) a fresh one if absent or expired."""
        cart = await self._load(user_id)
        if cart is not None:
            if cart.expires_at > self._now():
                return cart
            logger.info("cart: method=get_cart user_id=%s result=expired expires_at=%s",
                        user_id, cart.expires_at.isoformat())
            await self.clear_cart(user_id)

        cart = self._new_cart(user_id)
        await self.save_cart(cart)
        return cart

    async def save_cart(self, cart: Cart) -> Cart:
        """Refresh the sliding expiry and write the cart through the cache."""
        now = self._now()
        cart.updated_at = now
        cart.expires_at = now + timedelta(seconds=self.session_timeout)
        await self.cache.set(
            CacheKeys.cart(cart.user_id),
            cart.model_dump(mode="json"),
            ttl=self.session_timeout,
        )
        logger.debug("cart: method=save_cart user_id=%s item_count=%s total=%s",
                     cart.user_id, len(cart.items), cart.totals.total)
        return cart

    async def clear_cart(self, user_id: UserId) -> bool:
        """Delete the cart entirely (no empty cart is left behind)."""
        await self.cache.delete(CacheKeys.cart(user_id))
        logger.info("cart: method=clear_cart user_id=%s result=success", user_id)
        return True

    # ------------------------------------------------------------------
    # Stock and pricing helpers
    # ------------------------------------------------------------------

    async def _check_stock(self, product_id: ProductId, quantity: int) -> ProductRecord:
        if quantity < 1 or quantity > self.max_item_quantity:
            raise InvalidQuantity(product_id, quantity, self.max_item_quantity)
        product = await self.products.find_active_product(product_id)
        if product is None or not product.is_active:
            raise ProductNotFound(product_id)
        if product.stock_quantity < quantity:
            raise OutOfStock(product_id, available=product.stock_quantity, requested=quantity)
        return product

    async def _reprice(self, cart: Cart) -> Totals:
        """
        Recompute totals from scratch.

        An attached coupon is re-validated against the new subtotal first; if the
        cart no longer qualifies the coupon is detached and the reason kept in
        cart.coupon_notice.
        """
        if cart.coupon is not None:
            if not cart.items:
                cart.coupon = None
            else:
                subtotal = round_money(compute_subtotal(cart.items))
                try:
                    application = await self.coupons.validate(cart.coupon.code, subtotal)
                except CouponError as e:
                    logger.warning("cart: method=reprice user_id=%s coupon=%s result=coupon_dropped reason=%s",
                                   cart.user_id, cart.coupon.code, e.code)
                    cart.coupon = None
                    cart.coupon_notice = e.message
                else:
                    cart.coupon = application.to_ref(cart.coupon.applied_at)

        cart.totals = compute_totals(cart.items, cart.coupon, rules=self.rules)
        return cart.totals

    # ------------------------------------------------------------------
    # Item operations
    # ------------------------------------------------------------------

    async def add_item(self, user_id: UserId, product_id: ProductId, quantity: int = 1) -> Cart:
        """
        Add a product, or increase its quantity if already present.

        The combined quantity is what gets checked against stock.
        """
        product_id = normalize_id(product_id)
        logger.info("cart: method=add_item user_id=%s product_id=%s quantity=%s", user_id, product_id, quantity)
        try:
            if quantity < 1:
                raise InvalidQuantity(product_id, quantity, self.max_item_quantity)
            cart = await self.get_cart(user_id)
            existing = cart.find_item(product_id)
            requested = quantity + (existing.quantity if existing else 0)
            product = await self._check_stock(product_id, requested)
            now = self._now()

            if existing is not None:
                existing.price = product.price
                existing.set_quantity(requested, now)
            else:
                if len(cart.items) >= self.max_cart_items:
                    raise CartFull(self.max_cart_items)
                cart.items.append(CartItem(
                    product_id=product_id,
                    name=product.name,
                    price=product.price,
                    quantity=quantity,
                    stock_quantity_at_add=product.stock_quantity,
                    brand=product.brand,
                    sku=product.sku,
                    image_url=await self.products.find_primary_image(product_id),
                    added_at=now,
                    updated_at=now,
                ))
        except CartError as e:
            logger.warning("cart: method=add_item user_id=%s product_id=%s result=error code=%s",
                           user_id, product_id, e.code)
            raise

        await self._reprice(cart)
        await self.save_cart(cart)
        logger.info("cart: method=add_item user_id=%s product_id=%s result=success total=%s",
                    user_id, product_id, cart.totals.total)
        return cart

    async def update_item(self, user_id: UserId, product_id: ProductId, quantity: int) -> Cart:
        """Set an item's absolute quantity; quantity <= 0 removes it."""
        product_id = normalize_id(product_id)
        if quantity <= 0:
            return await self.remove_item(user_id, product_id)

        logger.info("cart: method=update_item user_id=%s product_id=%s quantity=%s", user_id, product_id, quantity)
        try:
            cart = await self.get_cart(user_id)
            item = cart.find_item(product_id)
            if item is None:
                raise ItemNotFound(product_id)
            product = await self._check_stock(product_id, quantity)
            item.price = product.price
            item.set_quantity(quantity, self._now())
        except CartError as e:
            logger.warning("cart: method=update_item user_id=%s product_id=%s result=error code=%s",
                           user_id, product_id, e.code)
            raise

        await self._reprice(cart)
        await self.save_cart(cart)
        logger.info("cart: method=update_item user_id=%s product_id=%s result=success total=%s",
                    user_id, product_id, cart.totals.total)
        return cart

    async def remove_item(self, user_id: UserId, product_id: ProductId) -> Cart:
        product_id = normalize_id(product_id)
        logger.info("cart: method=remove_item user_id=%s product_id=%s", user_id, product_id)
        cart = await self.get_cart(user_id)
        item = cart.find_item(product_id)
        if item is None:
            logger.warning("cart: method=remove_item user_id=%s product_id=%s result=error code=%s",
                           user_id, product_id, ItemNotFound.code)
            raise ItemNotFound(product_id)

        cart.items.remove(item)
        await self._reprice(cart)
        await self.save_cart(cart)
        logger.info("cart: method=remove_item user_id=%s product_id=%s result=success total=%s",
                    user_id, product_id, cart.totals.total)
        return cart

    # ------------------------------------------------------------------
    # Coupons
    # ------------------------------------------------------------------

    async def apply_coupon(self, user_id: UserId, code: str) -> Cart:
        logger.info("cart: method=apply_coupon user_id=%s code=%s", user_id, code)
        try:
            cart = await self.get_cart(user_id)
            if not cart.items:
                raise EmptyCart("Cannot apply coupon to empty cart")
            subtotal = round_money(compute_subtotal(cart.items))
            application = await self.coupons.validate(code, subtotal)
        except CartError as e:
            logger.warning("cart: method=apply_coupon user_id=%s code=%s result=error code=%s",
                           user_id, code, e.code)
            raise

        cart.coupon = application.to_ref(self._now())
        cart.coupon_notice = None
        cart.totals = compute_totals(cart.items, cart.coupon, rules=self.rules)
        await self.save_cart(cart)
        logger.info("cart: method=apply_coupon user_id=%s code=%s result=success discount=%s total=%s",
                    user_id, code, cart.totals.discount, cart.totals.total)
        return cart

    async def remove_coupon(self, user_id: UserId) -> Cart:
        cart = await self.get_cart(user_id)
        cart.coupon = None
        cart.coupon_notice = None
        await self._reprice(cart)
        await self.save_cart(cart)
        logger.info("cart: method=remove_coupon user_id=%s result=success total=%s", user_id, cart.totals.total)
        return cart

    # ------------------------------------------------------------------
    # Checkout support
    # ------------------------------------------------------------------

    async def validate_cart_for_checkout(self, user_id: UserId) -> CheckoutValidation:
        """
        Re-check every line against current inventory.

        Raises:
            EmptyCart: no items
            CartInvalid: one or more lines fail; lists all of them
        """
        cart = await self.get_cart(user_id)
        if not cart.items:
            raise EmptyCart()

        results: List[ItemValidation] = []
        for item in cart.items:
            product = await self.products.find_active_product(item.product_id)
            if product is None or not product.is_active:
                results.append(ItemValidation(
                    product_id=item.product_id,
                    valid=False,
                    requested=item.quantity,
                    error=ProductNotFound(item.product_id).message,
                ))
            elif product.stock_quantity < item.quantity:
                results.append(ItemValidation(
                    product_id=item.product_id,
                    valid=False,
                    requested=item.quantity,
                    available=product.stock_quantity,
                    error=OutOfStock(item.product_id, product.stock_quantity, item.quantity).message,
                ))
            else:
                results.append(ItemValidation(
                    product_id=item.product_id,
                    valid=True,
                    requested=item.quantity,
                    available=product.stock_quantity,
                ))

        failing = [r.model_dump(mode="json") for r in results if not r.valid]
        if failing:
            logger.warning("cart: method=validate_cart_for_checkout user_id=%s result=invalid failing=%s",
                           user_id, [f["product_id"] for f in failing])
            raise CartInvalid(failing)

        logger.info("cart: method=validate_cart_for_checkout user_id=%s result=valid item_count=%s",
                    user_id, len(results))
        return CheckoutValidation(valid=True, cart=cart, results=results)

    async def get_cart_stats(self, user_id: UserId) -> CartStats:
        cart = await self.get_cart(user_id)
        return CartStats(
            item_count=len(cart.items),
            total_quantity=cart.total_quantity,
            subtotal=cart.totals.subtotal,
            total=cart.totals.total,
            has_discount=cart.totals.discount > 0,
            has_coupon=cart.coupon is not None,
            updated_at=cart.updated_at,
            expires_at=cart.expires_at,
        )

    async def quote(
        self,
        user_id: UserId,
        payment_method: Union[PaymentMethod, str] = PaymentMethod.ONLINE,
    ) -> Totals:
        """Checkout summary totals for a payment method (COD adds its surcharge). Not persisted."""
        cart = await self.get_cart(user_id)
        return compute_totals(cart.items, cart.coupon, payment_method=payment_method, rules=self.rules)
