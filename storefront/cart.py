from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from pydantic import TypeAdapter, ValidationError

from .errors import CartLineNotFound, OutOfStock
from .ledger import StockLedger
from .schemas import CartLine, Coupon, Product

logger = logging.getLogger(__name__)

_lines_adapter = TypeAdapter(List[CartLine])


class CartStore(Protocol):
    def load(self) -> List[CartLine]: ...

    def save(self, lines: Sequence[CartLine]) -> None: ...


class JsonCartStore:
    """Cart lines for one shopper session, kept in a JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> List[CartLine]:
        if not self.path.exists():
            return []
        try:
            return _lines_adapter.validate_json(self.path.read_text(encoding="utf-8"))
        except ValidationError:
            logger.warning("Discarding unreadable cart at %s", self.path)
            return []

    def save(self, lines: Sequence[CartLine]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(_lines_adapter.dump_json(list(lines), by_alias=True))


# Reducers: each returns a new list and leaves its input untouched

def quantity_in_cart(lines: Sequence[CartLine], product_id: Optional[str], color: str, size: str) -> int:
    key = (product_id, color, size)
    return sum(line.quantity for line in lines if line.key == key)


def add_line(
    lines: Sequence[CartLine], product: Product, color: str, size: str, available: int
) -> List[CartLine]:
    current = quantity_in_cart(lines, product.id, color, size)
    if current + 1 > available:
        raise OutOfStock(product.name, color, size, available)
    key = (product.id, color, size)
    updated = []
    merged = False
    for line in lines:
        if not merged and line.key == key:
            line = line.model_copy(update={"quantity": line.quantity + 1})
            merged = True
        updated.append(line)
    if not merged:
        updated.append(
            CartLine(
                product=product.model_copy(deep=True),
                selected_color=color,
                selected_size=size,
                quantity=1,
            )
        )
    return updated


def remove_line(lines: Sequence[CartLine], index: int) -> List[CartLine]:
    if index < 0 or index >= len(lines):
        raise CartLineNotFound(index)
    return [line for i, line in enumerate(lines) if i != index]


class Cart:
    def __init__(self, ledger: StockLedger, store: CartStore):
        self.ledger = ledger
        self.store = store
        self.lines: List[CartLine] = store.load()
        self.coupon: Optional[Coupon] = None

    @property
    def count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def add_line(self, product: Product, color: str, size: str) -> CartLine:
        self._resolve_ids()
        available = self.ledger.available_quantity(product.id, color, size)
        self._commit(add_line(self.lines, product, color, size, available))
        key = (product.id, color, size)
        return next(line for line in self.lines if line.key == key)

    def remove_line(self, index: int) -> None:
        self._commit(remove_line(self.lines, index))

    def apply_coupon(self, coupon: Optional[Coupon]) -> None:
        self.coupon = coupon

    def clear(self) -> None:
        self.coupon = None
        self._commit([])

    def snapshot(self) -> List[CartLine]:
        self._resolve_ids()
        return [line.model_copy(deep=True) for line in self.lines]

    def _resolve_ids(self) -> None:
        """Move lines for products saved since they were added onto their durable id."""
        resolve = self.ledger.catalog.resolve_id
        if all(resolve(line.product.id) == line.product.id for line in self.lines):
            return
        self._commit([
            line.model_copy(update={"product": line.product.model_copy(update={"id": resolve(line.product.id)})})
            for line in self.lines
        ])

    def _commit(self, lines: List[CartLine]) -> None:
        self.lines = lines
        self.store.save(lines)
