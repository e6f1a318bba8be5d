"""
Storefront schemas

Domain models are exposed to clients in camelCase (``promoPrice``,
``isPromotion``, ``selectedColor``); MongoDB documents use snake_case.
``ProductRecord`` is the parse step at the repository boundary and is the only
place that knows about missing or malformed stored fields.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

DEFAULT_SIZES = ["P", "M", "G"]
DEFAULT_ICON = "✨"
DEFAULT_COLLECTION_TITLE = "Nova Coleção"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StockVariant(CamelModel):
    color: str
    size: str
    quantity: int = Field(ge=0, default=0)


class Product(CamelModel):
    id: Optional[str] = None
    name: str
    price: float = Field(ge=0, default=0)
    promo_price: float = Field(ge=0, default=0)
    category: str = ""
    colors: List[str] = Field(default_factory=list)
    sizes: List[str] = Field(default_factory=list)
    stock: List[StockVariant] = Field(default_factory=list)
    icon: str = DEFAULT_ICON
    image: Optional[str] = None
    description: str = ""
    visible: bool = True
    is_promotion: bool = False
    is_multicolor: bool = False

    def variant(self, color: str, size: str) -> Optional[StockVariant]:
        for v in self.stock:
            if v.color == color and v.size == size:
                return v
        return None

    @property
    def total_stock(self) -> int:
        return sum(v.quantity for v in self.stock)


class ProductDraft(CamelModel):
    """Operator input for creating or editing a product. Every field is optional."""

    id: Optional[str] = None
    name: Optional[str] = None
    price: Optional[float] = None
    promo_price: Optional[float] = None
    category: Optional[str] = None
    colors: Optional[List[str]] = None
    sizes: Optional[List[str]] = None
    icon: Optional[str] = None
    image: Optional[str] = None
    description: Optional[str] = None
    visible: Optional[bool] = None
    is_promotion: Optional[bool] = None
    is_multicolor: Optional[bool] = None


class CartLine(CamelModel):
    product: Product
    selected_color: str
    selected_size: str
    quantity: int = Field(ge=1, default=1)

    @property
    def key(self) -> Tuple[Optional[str], str, str]:
        return (self.product.id, self.selected_color, self.selected_size)


class Coupon(CamelModel):
    code: str
    discount: float = Field(ge=0, le=100)

    @field_validator("code")
    @classmethod
    def _canonical_code(cls, value: str) -> str:
        return value.strip().upper()


class Category(CamelModel):
    id: str
    label: str


class SiteSettings(CamelModel):
    """Operator-editable storefront texts."""

    collection_title: str = DEFAULT_COLLECTION_TITLE


class CheckoutForm(CamelModel):
    name: str = ""
    address: str = ""
    payment: str = ""


class OrderLine(CamelModel):
    model_config = ConfigDict(frozen=True)

    product_id: Optional[str] = None
    name: str
    price: float
    selected_color: str
    selected_size: str
    quantity: int = Field(ge=1)


class Order(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    customer_name: str
    customer_address: str
    payment_method: str
    items: Tuple[OrderLine, ...]
    subtotal: float = Field(ge=0)
    discount_code: Optional[str] = None
    discount_amount: float = Field(ge=0, default=0)
    total: float = Field(ge=0)


# Repository wire format

class StockVariantRecord(BaseModel):
    color: str
    size: str
    quantity: int = 0

    @field_validator("quantity", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> int:
        try:
            return max(0, int(value or 0))
        except (TypeError, ValueError):
            return 0


class ProductRecord(BaseModel):
    id: Optional[str] = None
    name: str = ""
    price: float = 0
    promo_price: float = 0
    category: str = ""
    colors: List[str] = Field(default_factory=list)
    sizes: List[str] = Field(default_factory=list)
    stock: List[StockVariantRecord] = Field(default_factory=list)
    icon: str = DEFAULT_ICON
    image: Optional[str] = None
    description: str = ""
    visible: bool = True
    is_promotion: bool = False
    is_multicolor: bool = False

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("price", "promo_price", mode="before")
    @classmethod
    def _price(cls, value: Any) -> float:
        try:
            return max(0.0, float(value or 0))
        except (TypeError, ValueError):
            return 0.0

    @field_validator("colors", "sizes", mode="before")
    @classmethod
    def _strings_only(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [v for v in value if isinstance(v, str)]

    @field_validator("stock", mode="before")
    @classmethod
    def _well_formed_variants(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [
            v for v in value
            if isinstance(v, dict)
            and isinstance(v.get("color"), str) and v["color"]
            and isinstance(v.get("size"), str) and v["size"]
        ]

    @field_validator("icon", mode="before")
    @classmethod
    def _icon(cls, value: Any) -> Any:
        return value if isinstance(value, str) and value else DEFAULT_ICON

    @field_validator("image", mode="before")
    @classmethod
    def _image(cls, value: Any) -> Any:
        return value if isinstance(value, str) and value else None

    @field_validator("description", "category", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        return value if isinstance(value, str) else ""

    @field_validator("visible", mode="before")
    @classmethod
    def _visible(cls, value: Any) -> Any:
        return value if isinstance(value, bool) else True

    @field_validator("is_promotion", "is_multicolor", mode="before")
    @classmethod
    def _flag(cls, value: Any) -> Any:
        return value if isinstance(value, bool) else False

    @model_validator(mode="after")
    def _unique_variants(self) -> "ProductRecord":
        seen = set()
        unique = []
        for v in self.stock:
            if (v.color, v.size) in seen:
                continue
            seen.add((v.color, v.size))
            unique.append(v)
        self.stock = unique
        return self


def product_from_record(record: dict[str, Any]) -> Product:
    parsed = ProductRecord.model_validate(record)
    return Product.model_validate(parsed.model_dump())


def product_to_record(product: Product, fields: Optional[set[str]] = None) -> dict[str, Any]:
    """Map a product to its stored snake_case document, without the id.

    ``fields`` restricts the output to a partial document for updates.
    """
    data = ProductRecord.model_validate(product.model_dump()).model_dump(exclude={"id"})
    if fields is not None:
        data = {k: v for k, v in data.items() if k in fields}
    return data


def order_from_record(record: dict[str, Any]) -> Order:
    return Order.model_validate(record)


def order_to_record(order: Order) -> dict[str, Any]:
    data = order.model_dump(exclude={"id"})
    data["items"] = list(data["items"])
    return data
