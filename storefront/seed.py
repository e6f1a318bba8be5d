"""Starter catalog, used to seed an empty database or when it is unreachable."""
from __future__ import annotations

from typing import List

from .schemas import Category, Coupon, Product, StockVariant


def _grid(colors: List[str], sizes: List[str], quantity: int) -> List[StockVariant]:
    return [StockVariant(color=c, size=s, quantity=quantity) for c in colors for s in sizes]


SEED_PRODUCTS: List[Product] = [
    Product(
        id="1",
        name="Conjunto Renda Noir",
        price=189.90,
        category="conjuntos",
        colors=["Preto", "Vinho"],
        sizes=["P", "M", "G", "GG"],
        stock=_grid(["Preto", "Vinho"], ["P", "M", "G", "GG"], 5),
        icon="🖤",
        description="Sofisticação em cada detalhe. Renda francesa premium.",
    ),
    Product(
        id="2",
        name="Sutiã Velvet",
        price=99.90,
        category="sutias",
        colors=["Bordeaux", "Preto"],
        sizes=["P", "M", "G", "GG"],
        stock=[
            StockVariant(color=v.color, size=v.size, quantity=0 if (v.color, v.size) == ("Bordeaux", "M") else 3)
            for v in _grid(["Bordeaux", "Preto"], ["P", "M", "G", "GG"], 3)
        ],
        icon="✨",
        description="Acabamento em veludo. Modelagem perfeita.",
    ),
]

SEED_CATEGORIES: List[Category] = [
    Category(id="conjuntos", label="Conjuntos"),
    Category(id="sutias", label="Sutiãs"),
    Category(id="calcinhas", label="Calcinhas"),
    Category(id="bodies", label="Bodies"),
    Category(id="camisolas", label="Camisolas"),
]

SEED_COUPONS: List[Coupon] = [Coupon(code="BELLE10", discount=10)]
