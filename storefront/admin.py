"""
Operator actions on the catalog, coupons, categories and site settings.

Each action updates local state immediately and returns a ``CommandResult``
whose ``pending`` future completes once the repository call has finished.
"""
from __future__ import annotations

import asyncio
import logging
import re
from typing import Dict, List, Optional
from uuid import uuid4

from pydantic import ValidationError

from .background import CommandResult, settle, spawn
from .catalog import ALL_CATEGORIES, TEMP_ID_PREFIX, CatalogStore, is_temporary
from .errors import ValidationFailure
from .ledger import StockLedger
from .pricing import find_coupon
from .schemas import DEFAULT_SIZES, Category, Coupon, Product, ProductDraft, SiteSettings, product_to_record

logger = logging.getLogger(__name__)


class CatalogAdmin:
    def __init__(self, catalog: CatalogStore, ledger: StockLedger, repository):
        self.catalog = catalog
        self.ledger = ledger
        self.repository = repository
        # temporary id -> insert still in flight
        self._inserts: Dict[str, asyncio.Task] = {}

    def save_product(self, draft: ProductDraft) -> CommandResult[Product]:
        existing = None
        if draft.id:
            existing = self.catalog.require(draft.id)

        data = existing.model_dump() if existing else {"sizes": list(DEFAULT_SIZES)}
        data.update(draft.model_dump(exclude_none=True))
        if not (data.get("name") or "").strip():
            raise ValidationFailure("Product name is required")
        if existing is not None:
            data["id"] = existing.id
        try:
            product = Product.model_validate(data)
        except ValidationError as exc:
            raise ValidationFailure(str(exc)) from exc
        self.ledger.reconcile(product, product.colors, product.sizes)

        if existing is None:
            product.id = f"{TEMP_ID_PREFIX}{uuid4().hex}"
        self.catalog.put(product)
        if not is_temporary(product.id):
            pending = spawn(
                f"update of {product.name}",
                self.repository.update(product.id, product_to_record(product)),
            )
        elif product.id in self._inserts:
            # the insert in flight writes this edit once it completes
            pending = self._inserts[product.id]
        else:
            pending = spawn(f"insert of {product.name}", self._insert(product))
            self._inserts[product.id] = pending
        return CommandResult(product, pending)

    async def _insert(self, product: Product) -> Product:
        temp_id = product.id
        try:
            saved = await self.repository.insert(product.model_copy(update={"id": None}))
        finally:
            self._inserts.pop(temp_id, None)

        current = self.catalog.get(temp_id)
        self.catalog.assign_id(temp_id, saved.id)
        logger.info("Product %s stored as %s", product.name, saved.id)
        if current is None:
            await self.repository.delete(saved.id)
            logger.info("Product %s was deleted while being stored", saved.id)
            return saved
        record = product_to_record(current)
        if record != product_to_record(saved):
            await self.repository.update(saved.id, record)
            saved = current.model_copy(deep=True)
        return saved

    def delete_product(self, product_id: str) -> CommandResult[None]:
        product = self.catalog.require(product_id)
        self.catalog.remove(product.id)
        if not is_temporary(product.id):
            pending = spawn(f"delete of {product.name}", self.repository.delete(product.id))
        else:
            pending = self._inserts.get(product.id) or settle([])
        return CommandResult(None, pending)

    def set_stock(self, product_id: str, color: str, size: str, quantity: int) -> CommandResult[int]:
        quantity = self.ledger.set_quantity(product_id, color, size, quantity)
        task = self.ledger.persist(product_id) or self._inserts.get(self.catalog.resolve_id(product_id))
        return CommandResult(quantity, settle([task] if task else []))


class CouponBook:
    def __init__(self, repository, coupons: Optional[List[Coupon]] = None):
        self.repository = repository
        self.coupons: List[Coupon] = list(coupons or [])

    async def load(self, fallback: List[Coupon]) -> None:
        try:
            coupons = await self.repository.list()
        except Exception:
            logger.exception("Coupons could not be loaded, using seed coupons")
            coupons = []
        self.coupons = coupons or [c.model_copy() for c in fallback]

    def find(self, code: str) -> Coupon:
        return find_coupon(self.coupons, code)

    def add(self, coupon: Coupon) -> CommandResult[Coupon]:
        if any(c.code == coupon.code for c in self.coupons):
            raise ValidationFailure(f"Coupon {coupon.code} already exists")
        self.coupons.append(coupon)
        return CommandResult(coupon, spawn(f"insert of coupon {coupon.code}", self.repository.insert(coupon)))

    def remove(self, code: str) -> CommandResult[None]:
        code = code.strip().upper()
        self.coupons = [c for c in self.coupons if c.code != code]
        return CommandResult(None, spawn(f"delete of coupon {code}", self.repository.delete(code)))


def slugify(label: str) -> str:
    return re.sub(r"\s", "-", label.strip().lower())


class CategoryList:
    def __init__(self, repository, categories: Optional[List[Category]] = None):
        self.repository = repository
        self.categories: List[Category] = list(categories or [])

    async def load(self, fallback: List[Category]) -> None:
        try:
            categories = await self.repository.list()
        except Exception:
            logger.exception("Categories could not be loaded, using seed categories")
            categories = []
        self.categories = categories or [c.model_copy() for c in fallback]

    def listing(self) -> List[Category]:
        return [Category(id=ALL_CATEGORIES, label="Todos")] + self.categories

    def add(self, label: str) -> CommandResult[Category]:
        if not label.strip():
            raise ValidationFailure("Category label is required")
        category = Category(id=slugify(label), label=label.strip())
        if category.id == ALL_CATEGORIES or any(c.id == category.id for c in self.categories):
            raise ValidationFailure(f"Category {category.id} already exists")
        self.categories.append(category)
        return CommandResult(category, spawn(f"insert of category {category.id}", self.repository.insert(category)))

    def remove(self, category_id: str) -> CommandResult[None]:
        self.categories = [c for c in self.categories if c.id != category_id]
        return CommandResult(None, spawn(f"delete of category {category_id}", self.repository.delete(category_id)))


class SiteSettingsEditor:
    def __init__(self, repository, current: Optional[SiteSettings] = None):
        self.repository = repository
        self.current = current or SiteSettings()

    async def load(self) -> None:
        try:
            stored = await self.repository.get()
        except Exception:
            logger.exception("Site settings could not be loaded, using defaults")
            stored = None
        self.current = stored or SiteSettings()

    def update(self, collection_title: str) -> CommandResult[SiteSettings]:
        title = collection_title.strip()
        if not title:
            raise ValidationFailure("Collection title is required")
        self.current = SiteSettings(collection_title=title)
        return CommandResult(self.current, spawn("site settings update", self.repository.upsert(self.current)))
