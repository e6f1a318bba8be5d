"""Per-variant stock quantities held on the products of the catalog."""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional

from .background import spawn
from .catalog import CatalogStore, is_temporary
from .errors import ValidationFailure
from .schemas import Product, StockVariant, product_to_record

logger = logging.getLogger(__name__)


def reconcile_variants(stock: Iterable[StockVariant], colors: List[str], sizes: List[str]) -> List[StockVariant]:
    """Return the variant list for the selected colors and sizes.

    Surviving pairs keep their quantity and position, new pairs are appended
    with zero stock.
    """
    kept = [
        v.model_copy()
        for v in stock
        if v.color in colors and v.size in sizes
    ]
    present = {(v.color, v.size) for v in kept}
    for color in colors:
        for size in sizes:
            if (color, size) not in present:
                kept.append(StockVariant(color=color, size=size, quantity=0))
                present.add((color, size))
    return kept


class StockLedger:
    def __init__(self, catalog: CatalogStore, repository=None):
        self.catalog = catalog
        self.repository = repository

    def available_quantity(self, product_id: str, color: str, size: str) -> int:
        product = self.catalog.get(product_id)
        if product is None:
            return 0
        variant = product.variant(color, size)
        return variant.quantity if variant else 0

    def decrement(self, product_id: str, color: str, size: str, amount: int) -> int:
        product = self.catalog.get(product_id)
        variant = product.variant(color, size) if product else None
        if variant is None:
            logger.warning("No stock variant %s/%s/%s to decrement", product_id, color, size)
            return 0
        variant.quantity = max(0, variant.quantity - amount)
        return variant.quantity

    def set_quantity(self, product_id: str, color: str, size: str, quantity: int) -> int:
        product = self.catalog.require(product_id)
        quantity = max(0, quantity)
        variant = product.variant(color, size)
        if variant is None:
            if color not in product.colors or size not in product.sizes:
                raise ValidationFailure(f"{product.name} has no {color}/{size} variant")
            product.stock.append(StockVariant(color=color, size=size, quantity=quantity))
        else:
            variant.quantity = quantity
        return quantity

    def reconcile(self, product: Product, colors: List[str], sizes: List[str]) -> List[StockVariant]:
        product.stock = reconcile_variants(product.stock, colors, sizes)
        return product.stock

    def persist(self, product_id: str) -> Optional[asyncio.Task]:
        """Write the product's current stock back to the repository in the background."""
        product = self.catalog.get(product_id)
        if product is None or self.repository is None:
            return None
        if is_temporary(product.id):
            # the pending insert writes the whole product, stock included
            return None
        record = product_to_record(product, fields={"stock"})
        return spawn(f"stock update for {product.name}", self.repository.update(product.id, record))
