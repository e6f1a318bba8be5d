from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Protocol

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pydantic import ValidationError

from .config import get_settings
from .errors import ProductNotFound
from .schemas import (
    DEFAULT_COLLECTION_TITLE,
    Category,
    Coupon,
    Order,
    Product,
    SiteSettings,
    order_from_record,
    order_to_record,
    product_from_record,
    product_to_record,
)

logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None
_db: Optional[AsyncIOMotorDatabase] = None


async def get_db() -> AsyncIOMotorDatabase:
    global _client, _db
    if _db is None:
        settings = get_settings()
        _client = AsyncIOMotorClient(settings.DATABASE_URL)
        _db = _client[settings.DATABASE_NAME]
    return _db


def to_str_id(doc: dict[str, Any]) -> dict[str, Any]:
    if doc and "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return doc


def ensure_object_id(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise ProductNotFound(id_str)


async def create_document(collection_name: str, data: dict[str, Any]) -> dict[str, Any]:
    db = await get_db()
    now = datetime.now(timezone.utc)
    data_with_meta = {"created_at": now, **data, "updated_at": now}
    result = await db[collection_name].insert_one(data_with_meta)
    inserted = await db[collection_name].find_one({"_id": result.inserted_id})
    return to_str_id(inserted) if inserted else {}


async def get_documents(
    collection_name: str,
    filter_dict: dict[str, Any] | None = None,
    sort: list[tuple[str, int]] | None = None,
    limit: int = 1000,
) -> list[dict[str, Any]]:
    db = await get_db()
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    docs = []
    async for d in cursor.limit(limit):
        docs.append(to_str_id(d))
    return docs


async def update_document(collection_name: str, key: Any, data: dict[str, Any]) -> None:
    db = await get_db()
    await db[collection_name].update_one(
        {"_id": key},
        {"$set": {**data, "updated_at": datetime.now(timezone.utc)}},
    )


async def upsert_document(collection_name: str, key: Any, data: dict[str, Any]) -> None:
    db = await get_db()
    now = datetime.now(timezone.utc)
    await db[collection_name].update_one(
        {"_id": key},
        {"$set": {**data, "updated_at": now}, "$setOnInsert": {"created_at": now}},
        upsert=True,
    )


async def delete_document(collection_name: str, key: Any) -> None:
    db = await get_db()
    await db[collection_name].delete_one({"_id": key})


# Repository interfaces consumed by the core

class CatalogRepository(Protocol):
    async def list(self) -> List[Product]: ...

    async def update(self, product_id: str, partial: dict[str, Any]) -> None: ...

    async def insert(self, product: Product) -> Product: ...

    async def delete(self, product_id: str) -> None: ...


class OrderRepository(Protocol):
    async def insert(self, order: Order) -> Order: ...

    async def list(self) -> List[Order]: ...


class CouponRepository(Protocol):
    async def list(self) -> List[Coupon]: ...

    async def insert(self, coupon: Coupon) -> Coupon: ...

    async def delete(self, code: str) -> None: ...


class CategoryRepository(Protocol):
    async def list(self) -> List[Category]: ...

    async def insert(self, category: Category) -> Category: ...

    async def delete(self, category_id: str) -> None: ...


class SiteSettingsRepository(Protocol):
    async def get(self) -> Optional[SiteSettings]: ...

    async def upsert(self, site_settings: SiteSettings) -> SiteSettings: ...


# MongoDB implementations, one collection per model (lowercased name)

class MongoCatalogRepository:
    collection = "product"

    async def list(self) -> List[Product]:
        docs = await get_documents(self.collection, sort=[("created_at", 1)])
        products = []
        for d in docs:
            try:
                products.append(product_from_record(d))
            except ValidationError as exc:
                logger.warning("Skipping unreadable product %s: %s", d.get("id"), exc)
        return products

    async def update(self, product_id: str, partial: dict[str, Any]) -> None:
        await update_document(self.collection, ensure_object_id(product_id), partial)

    async def insert(self, product: Product) -> Product:
        doc = await create_document(self.collection, product_to_record(product))
        return product_from_record(doc)

    async def delete(self, product_id: str) -> None:
        await delete_document(self.collection, ensure_object_id(product_id))


class MongoOrderRepository:
    collection = "order"

    async def insert(self, order: Order) -> Order:
        doc = await create_document(self.collection, order_to_record(order))
        return order_from_record(doc)

    async def list(self) -> List[Order]:
        docs = await get_documents(self.collection, sort=[("created_at", -1)], limit=10000)
        return [order_from_record(d) for d in docs]


class MongoCouponRepository:
    collection = "coupon"

    async def list(self) -> List[Coupon]:
        docs = await get_documents(self.collection)
        return [Coupon(code=d["id"], discount=d.get("discount", 0)) for d in docs]

    async def insert(self, coupon: Coupon) -> Coupon:
        doc = await create_document(self.collection, {"_id": coupon.code, "discount": coupon.discount})
        return Coupon(code=doc["id"], discount=doc["discount"])

    async def delete(self, code: str) -> None:
        await delete_document(self.collection, code.strip().upper())


class MongoCategoryRepository:
    collection = "category"

    async def list(self) -> List[Category]:
        docs = await get_documents(self.collection, sort=[("created_at", 1)])
        return [Category(id=d["id"], label=d.get("label", d["id"])) for d in docs]

    async def insert(self, category: Category) -> Category:
        doc = await create_document(self.collection, {"_id": category.id, "label": category.label})
        return Category(id=doc["id"], label=doc["label"])

    async def delete(self, category_id: str) -> None:
        await delete_document(self.collection, category_id)


class MongoSiteSettingsRepository:
    """A single settings document with a fixed id."""

    collection = "site_settings"
    key = 1

    async def get(self) -> Optional[SiteSettings]:
        db = await get_db()
        doc = await db[self.collection].find_one({"_id": self.key})
        if doc is None:
            return None
        return SiteSettings(collection_title=doc.get("collection_title") or DEFAULT_COLLECTION_TITLE)

    async def upsert(self, site_settings: SiteSettings) -> SiteSettings:
        await upsert_document(self.collection, self.key, {"collection_title": site_settings.collection_title})
        return site_settings
