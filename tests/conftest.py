"""Shared pytest fixtures: in-memory repositories and a small catalog."""

import itertools

import pytest

from storefront.cart import Cart, JsonCartStore
from storefront.catalog import CatalogStore
from storefront.checkout import CheckoutOrchestrator
from storefront.config import Settings
from storefront.ledger import StockLedger
from storefront.schemas import Product, StockVariant
from storefront.store import Storefront


class FakeCatalogRepository:
    def __init__(self, products=(), fail=False):
        self.products = {p.id: p for p in products}
        self.updates = []
        self.deleted = []
        self.fail = fail
        self._ids = itertools.count(1)

    async def list(self):
        if self.fail:
            raise RuntimeError("database down")
        return list(self.products.values())

    async def update(self, product_id, partial):
        if self.fail:
            raise RuntimeError("database down")
        self.updates.append((product_id, partial))

    async def insert(self, product):
        if self.fail:
            raise RuntimeError("database down")
        saved = product.model_copy(update={"id": f"db-{next(self._ids)}"}, deep=True)
        self.products[saved.id] = saved
        return saved

    async def delete(self, product_id):
        if self.fail:
            raise RuntimeError("database down")
        self.deleted.append(product_id)
        self.products.pop(product_id, None)


class FakeOrderRepository:
    def __init__(self, fail=False):
        self.orders = []
        self.fail = fail
        self._ids = itertools.count(1)

    async def insert(self, order):
        if self.fail:
            raise RuntimeError("database down")
        saved = order.model_copy(update={"id": f"order-{next(self._ids)}"})
        self.orders.append(saved)
        return saved

    async def list(self):
        return sorted(self.orders, key=lambda o: o.created_at, reverse=True)


class FakeRecordRepository:
    """Coupons and categories: list/insert/delete keyed by ``key``."""

    def __init__(self, key, records=()):
        self.key = key
        self.records = list(records)

    async def list(self):
        return list(self.records)

    async def insert(self, record):
        self.records.append(record)
        return record

    async def delete(self, key):
        self.records = [r for r in self.records if getattr(r, self.key) != key]


class FakeSiteSettingsRepository:
    def __init__(self, stored=None, fail=False):
        self.stored = stored
        self.fail = fail

    async def get(self):
        if self.fail:
            raise RuntimeError("database down")
        return self.stored

    async def upsert(self, site_settings):
        if self.fail:
            raise RuntimeError("database down")
        self.stored = site_settings
        return site_settings


class MemoryCartStore:
    def __init__(self, lines=()):
        self.lines = list(lines)
        self.saves = 0

    def load(self):
        return list(self.lines)

    def save(self, lines):
        self.lines = list(lines)
        self.saves += 1


class RecordingDispatcher:
    def __init__(self):
        self.sent = []

    async def dispatch(self, message, destination):
        self.sent.append((message, destination))


@pytest.fixture
def settings(tmp_path):
    return Settings(
        ADMIN_PASSWORD="secret",
        STORE_NAME="BELLE LINGERIE",
        NOTIFY_DESTINATION="5500000000000",
        CURRENCY_SYMBOL="R$",
        PAYMENT_METHODS=["PIX", "Cartão de Crédito"],
        CART_STORAGE_DIR=tmp_path / "carts",
    )


@pytest.fixture
def product():
    return Product(
        id="p1",
        name="Product P",
        price=100,
        category="conjuntos",
        colors=["Black"],
        sizes=["M", "L"],
        stock=[
            StockVariant(color="Black", size="M", quantity=0),
            StockVariant(color="Black", size="L", quantity=3),
        ],
    )


@pytest.fixture
def promo_product():
    return Product(
        id="p2",
        name="Promo Body",
        price=80,
        promo_price=60,
        is_promotion=True,
        category="bodies",
        colors=["Red"],
        sizes=["P"],
        stock=[StockVariant(color="Red", size="P", quantity=10)],
    )


@pytest.fixture
def catalog(product, promo_product):
    return CatalogStore([product, promo_product])


@pytest.fixture
def catalog_repo(product, promo_product):
    return FakeCatalogRepository([product, promo_product])


@pytest.fixture
def ledger(catalog, catalog_repo):
    return StockLedger(catalog, catalog_repo)


@pytest.fixture
def cart_store():
    return MemoryCartStore()


@pytest.fixture
def cart(ledger, cart_store):
    return Cart(ledger, cart_store)


@pytest.fixture
def orders():
    return FakeOrderRepository()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def checkout(cart, ledger, orders, dispatcher, settings):
    return CheckoutOrchestrator(cart, ledger, orders, dispatcher, settings)


@pytest.fixture
def storefront(settings, dispatcher):
    """Application store over empty repositories, so it falls back to the seed catalog."""
    return Storefront(
        products=FakeCatalogRepository(),
        orders=FakeOrderRepository(),
        coupons=FakeRecordRepository("code"),
        categories=FakeRecordRepository("id"),
        site_settings=FakeSiteSettingsRepository(),
        dispatcher=dispatcher,
        cart_store_factory=lambda sid: JsonCartStore(settings.CART_STORAGE_DIR / f"{sid}.json"),
        settings=settings,
    )
