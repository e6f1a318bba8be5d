"""Sales and inventory figures for the operator dashboard."""
from __future__ import annotations

from datetime import date
from typing import Iterable, List, NamedTuple, Optional

from pydantic import Field

from .pricing import effective_price
from .schemas import CamelModel, Order, Product

LOW_STOCK_THRESHOLD = 5


class OrderFilter(CamelModel):
    start: Optional[date] = None
    end: Optional[date] = None
    search: str = ""

    def matches(self, order: Order) -> bool:
        day = order.created_at.date()
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        needle = self.search.strip().lower()
        if needle:
            if needle in order.customer_name.lower():
                return True
            return any(needle in item.name.lower() for item in order.items)
        return True


class BestSeller(NamedTuple):
    name: Optional[str]
    quantity: int


NO_BEST_SELLER = BestSeller(name=None, quantity=0)


def filter_orders(orders: Iterable[Order], criteria: Optional[OrderFilter] = None) -> List[Order]:
    if criteria is None:
        return list(orders)
    return [o for o in orders if criteria.matches(o)]


def best_seller(orders: Iterable[Order]) -> BestSeller:
    """Line name with the most units sold. Ties go to the name seen first."""
    totals: dict[str, int] = {}
    for order in orders:
        for item in order.items:
            totals[item.name] = totals.get(item.name, 0) + item.quantity
    best = NO_BEST_SELLER
    for name, quantity in totals.items():
        if quantity > best.quantity:
            best = BestSeller(name, quantity)
    return best


class SalesSummary(CamelModel):
    total_revenue: float = 0
    total_orders: int = 0
    average_ticket: float = 0
    best_seller: Optional[str] = None
    best_seller_quantity: int = 0
    orders: List[Order] = Field(default_factory=list)


def summarize_sales(orders: Iterable[Order], criteria: Optional[OrderFilter] = None) -> SalesSummary:
    selected = filter_orders(orders, criteria)
    revenue = sum(o.total for o in selected)
    count = len(selected)
    top = best_seller(selected)
    return SalesSummary(
        total_revenue=revenue,
        total_orders=count,
        average_ticket=revenue / count if count else 0,
        best_seller=top.name,
        best_seller_quantity=top.quantity,
        orders=selected,
    )


class LowStockProduct(CamelModel):
    id: Optional[str] = None
    name: str
    total_stock: int


class InventorySummary(CamelModel):
    total_products: int = 0
    total_stock: int = 0
    stock_value: float = 0
    low_stock_count: int = 0
    low_stock: List[LowStockProduct] = Field(default_factory=list)


def summarize_inventory(products: Iterable[Product], threshold: int = LOW_STOCK_THRESHOLD) -> InventorySummary:
    summary = InventorySummary()
    for p in products:
        units = p.total_stock
        summary.total_products += 1
        summary.total_stock += units
        summary.stock_value += units * effective_price(p)
        if units < threshold:
            summary.low_stock.append(LowStockProduct(id=p.id, name=p.name, total_stock=units))
    summary.low_stock_count = len(summary.low_stock)
    return summary
