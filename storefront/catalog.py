"""In-memory catalog: the source of truth for price and availability."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from .errors import ProductNotFound
from .schemas import Product

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "all"

# products created locally carry this id until their insert completes
TEMP_ID_PREFIX = "tmp-"


def is_temporary(product_id: Optional[str]) -> bool:
    return bool(product_id) and product_id.startswith(TEMP_ID_PREFIX)


class CatalogStore:
    def __init__(self, products: Iterable[Product] = ()):
        self._products: List[Product] = list(products)
        self._aliases: Dict[str, str] = {}

    def all(self) -> List[Product]:
        return list(self._products)

    def resolve_id(self, product_id: Optional[str]) -> Optional[str]:
        """Follow a temporary id to the durable id it was swapped for."""
        return self._aliases.get(product_id, product_id)

    def get(self, product_id: Optional[str]) -> Optional[Product]:
        product_id = self.resolve_id(product_id)
        for p in self._products:
            if p.id == product_id:
                return p
        return None

    def require(self, product_id: str) -> Product:
        product = self.get(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product

    def replace_all(self, products: Iterable[Product]) -> None:
        self._products = list(products)
        self._aliases.clear()

    def put(self, product: Product) -> None:
        for i, p in enumerate(self._products):
            if p.id == product.id:
                self._products[i] = product
                return
        self._products.append(product)

    def remove(self, product_id: str) -> None:
        product_id = self.resolve_id(product_id)
        self._products = [p for p in self._products if p.id != product_id]

    def assign_id(self, old_id: str, new_id: str) -> None:
        product = self.get(old_id)
        if product is not None:
            product.id = new_id
        self._aliases[old_id] = new_id

    def browse(self, category: Optional[str] = None, q: Optional[str] = None) -> List[Product]:
        """Visible products outside the promotions shelf."""
        products = [p for p in self._products if p.visible and not p.is_promotion]
        if category and category != ALL_CATEGORIES:
            products = [p for p in products if p.category == category]
        if q:
            needle = q.lower()
            products = [p for p in products if needle in p.name.lower()]
        return products

    def promotions(self) -> List[Product]:
        return [p for p in self._products if p.visible and p.is_promotion]

    async def load(self, repository, fallback: Iterable[Product] = ()) -> None:
        try:
            products = await repository.list()
        except Exception:
            logger.exception("Catalog could not be loaded, using seed products")
            products = []
        if not products:
            products = [p.model_copy(deep=True) for p in fallback]
        self.replace_all(products)
        logger.info("Catalog loaded with %d products", len(self._products))
