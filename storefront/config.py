from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "storefront"
    ADMIN_PASSWORD: str = "change-me"
    STORE_NAME: str = "BELLE LINGERIE"
    NOTIFY_DESTINATION: str = "5584933004076"
    CURRENCY_SYMBOL: str = "R$"
    PAYMENT_METHODS: List[str] = ["PIX", "Cartão de Crédito"]
    CART_STORAGE_DIR: Path = Path(".carts")
    SESSION_CACHE_SIZE: int = 1000


@lru_cache
def get_settings() -> Settings:
    return Settings()
