"""
Application store.

Holds the shared catalog, the operator tools and one ``ShopperSession`` per
device. Every shopper-facing operation goes through here so it can be driven
without the HTTP layer.
"""
from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from . import pricing
from .admin import CatalogAdmin, CategoryList, CouponBook, SiteSettingsEditor
from .analytics import InventorySummary, OrderFilter, SalesSummary, summarize_inventory, summarize_sales
from .cart import Cart, CartStore
from .catalog import CatalogStore
from .checkout import CheckoutOrchestrator
from .config import Settings
from .errors import InvalidCoupon, ProductNotFound
from .ledger import StockLedger
from .notifications import NotificationDispatcher
from .schemas import CamelModel, CartLine, Coupon, Product
from .seed import SEED_CATEGORIES, SEED_COUPONS, SEED_PRODUCTS

logger = logging.getLogger(__name__)


class CartView(CamelModel):
    lines: list[CartLine]
    count: int
    subtotal: float
    discount: float
    total: float
    coupon: Optional[Coupon] = None


@dataclass
class ShopperSession:
    cart: Cart
    checkout: CheckoutOrchestrator

    def view(self) -> CartView:
        lines = self.cart.lines
        coupon = self.cart.coupon
        return CartView(
            lines=lines,
            count=self.cart.count,
            subtotal=pricing.subtotal(lines),
            discount=pricing.discount_amount(lines, coupon),
            total=pricing.total(lines, coupon),
            coupon=coupon,
        )


class Storefront:
    def __init__(
        self,
        products,
        orders,
        coupons,
        categories,
        site_settings,
        dispatcher: NotificationDispatcher,
        cart_store_factory: Callable[[str], CartStore],
        settings: Settings,
    ):
        self.products = products
        self.orders = orders
        self.dispatcher = dispatcher
        self.cart_store_factory = cart_store_factory
        self.settings = settings
        self.catalog = CatalogStore()
        self.ledger = StockLedger(self.catalog, products)
        self.admin = CatalogAdmin(self.catalog, self.ledger, products)
        self.coupons = CouponBook(coupons)
        self.categories = CategoryList(categories)
        self.site_settings = SiteSettingsEditor(site_settings)
        # least recently used first; carts are reloaded from their store
        self.sessions: OrderedDict[str, ShopperSession] = OrderedDict()

    async def load(self) -> None:
        await self.catalog.load(self.products, fallback=SEED_PRODUCTS)
        await self.coupons.load(SEED_COUPONS)
        await self.categories.load(SEED_CATEGORIES)
        await self.site_settings.load()

    async def seed(self) -> int:
        """Insert the starter catalog when the repository holds no products."""
        if await self.products.list():
            return 0
        for p in SEED_PRODUCTS:
            await self.products.insert(p.model_copy(update={"id": None}, deep=True))
        await self.catalog.load(self.products)
        return len(SEED_PRODUCTS)

    def session(self, session_id: str) -> ShopperSession:
        session = self.sessions.get(session_id)
        if session is not None:
            self.sessions.move_to_end(session_id)
            return session
        cart = Cart(self.ledger, self.cart_store_factory(session_id))
        checkout = CheckoutOrchestrator(cart, self.ledger, self.orders, self.dispatcher, self.settings)
        session = ShopperSession(cart=cart, checkout=checkout)
        self.sessions[session_id] = session
        while len(self.sessions) > self.settings.SESSION_CACHE_SIZE:
            evicted, _ = self.sessions.popitem(last=False)
            logger.debug("Evicted idle session %s", evicted)
        return session

    def visible_product(self, product_id: str) -> Product:
        """A product shoppers may see; hidden ones are reported as missing."""
        product = self.catalog.require(product_id)
        if not product.visible:
            raise ProductNotFound(product_id)
        return product

    def add_to_cart(self, session_id: str, product_id: str, color: str, size: str) -> CartLine:
        product = self.visible_product(product_id)
        return self.session(session_id).cart.add_line(product, color, size)

    def remove_from_cart(self, session_id: str, index: int) -> None:
        self.session(session_id).cart.remove_line(index)

    def apply_coupon(self, session_id: str, code: str) -> Coupon:
        cart = self.session(session_id).cart
        try:
            coupon = self.coupons.find(code)
        except InvalidCoupon:
            cart.apply_coupon(None)
            raise
        cart.apply_coupon(coupon)
        return coupon

    def remove_coupon(self, session_id: str) -> None:
        self.session(session_id).cart.apply_coupon(None)

    async def sales(self, criteria: Optional[OrderFilter] = None) -> SalesSummary:
        return summarize_sales(await self.orders.list(), criteria)

    def inventory(self) -> InventorySummary:
        return summarize_inventory(self.catalog.all())
