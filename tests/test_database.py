"""Tests for the Mongo repositories, with the collection access replaced in memory."""

import asyncio

import pytest

from storefront import database
from storefront.catalog import CatalogStore
from storefront.database import MongoCatalogRepository, MongoSiteSettingsRepository
from storefront.schemas import SiteSettings
from storefront.seed import SEED_PRODUCTS

STORED_PRODUCTS = [
    {"id": "665f0c", "name": "Real Body", "price": 120, "colors": ["Preto"], "sizes": ["M"]},
    {"id": "665f0d", "name": "Broken", "price": -5, "colors": ["Preto", 9]},
    {"id": "665f0e", "name": {"pt": "Sem nome"}, "price": 10},
]


class FakeCollection:
    def __init__(self):
        self.docs = {}

    async def find_one(self, query):
        return self.docs.get(query["_id"])

    async def update_one(self, query, update, upsert=False):
        doc = self.docs.get(query["_id"])
        if doc is None:
            if not upsert:
                return
            doc = self.docs[query["_id"]] = {"_id": query["_id"], **update.get("$setOnInsert", {})}
        doc.update(update["$set"])


@pytest.fixture
def stored_products(monkeypatch):
    async def get_documents(collection_name, filter_dict=None, sort=None, limit=1000):
        assert collection_name == "product"
        return [dict(d) for d in STORED_PRODUCTS]

    monkeypatch.setattr(database, "get_documents", get_documents)


@pytest.fixture
def settings_collection(monkeypatch):
    collection = FakeCollection()

    async def get_db():
        return {"site_settings": collection}

    monkeypatch.setattr(database, "get_db", get_db)
    return collection


def test_unreadable_product_is_skipped_not_fatal(stored_products):
    products = asyncio.run(MongoCatalogRepository().list())

    assert [(p.id, p.name, p.price) for p in products] == [
        ("665f0c", "Real Body", 120),
        ("665f0d", "Broken", 0),
    ]
    assert products[1].colors == ["Preto"]


def test_one_bad_document_does_not_swap_in_seed_catalog(stored_products):
    catalog = CatalogStore()

    asyncio.run(catalog.load(MongoCatalogRepository(), fallback=SEED_PRODUCTS))

    assert [p.name for p in catalog.all()] == ["Real Body", "Broken"]


def test_site_settings_absent_until_saved(settings_collection):
    assert asyncio.run(MongoSiteSettingsRepository().get()) is None


def test_site_settings_upsert_keeps_a_single_document(settings_collection):
    repo = MongoSiteSettingsRepository()

    async def scenario():
        await repo.upsert(SiteSettings(collection_title="Inverno"))
        await repo.upsert(SiteSettings(collection_title="Verão"))
        return await repo.get()

    stored = asyncio.run(scenario())

    assert stored.collection_title == "Verão"
    assert list(settings_collection.docs) == [1]
    assert "created_at" in settings_collection.docs[1]


def test_empty_stored_title_falls_back_to_default(settings_collection):
    settings_collection.docs[1] = {"_id": 1, "collection_title": ""}

    assert asyncio.run(MongoSiteSettingsRepository().get()).collection_title == "Nova Coleção"
