"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from src.core.config import Settings
from src.core.models import Listing, MarketplaceReference, ShopType
from src.core.reconcile import ReconciliationEngine
from src.db.repository import CatalogRepository
from src.db.session import Database


@pytest.fixture
def settings() -> Settings:
    """Create default settings for testing."""
    s = Settings()
    s.database.url = "sqlite://"
    return s


@pytest.fixture
def database() -> Iterator[Database]:
    """In-memory catalog store with the schema created."""
    db = Database("sqlite://")
    db.init_schema(use_migrations=False)
    yield db
    db.close()


@pytest.fixture
def repository(database: Database) -> CatalogRepository:
    return CatalogRepository(database)


@pytest.fixture
def engine(repository: CatalogRepository, settings: Settings) -> ReconciliationEngine:
    return ReconciliationEngine(repository, settings)


@pytest.fixture
def scraped_items() -> list[dict[str, Any]]:
    """A scraped batch as a producer would hand it over."""
    return [
        {
            "name": "VT シカ デイリースージングマスク 30枚",
            "price": 3520,
            "salePrice": 2816,
            "imageURL": "https://shop.example.jp/img/cica-mask.jpg",
            "productURL": "https://shop.example.jp/item/cica-mask",
        },
        {
            "name": "VT リードルショット 100",
            "price": 3980,
            "salePrice": None,
            "imageURL": "https://shop.example.jp/img/reedle-100.jpg",
            "productURL": "https://shop.example.jp/item/reedle-100",
        },
        {
            "name": "VT CICA クリーム 50ml",
            "price": 2200,
            "imageURL": None,
            "productURL": "https://shop.example.jp/item/cica-cream",
        },
    ]


@pytest.fixture
def make_listing() -> Callable[..., Listing]:
    """Factory for listings with sensible defaults."""
    counter = {"n": 0}

    def factory(**overrides: Any) -> Listing:
        counter["n"] += 1
        n = counter["n"]
        values: dict[str, Any] = {
            "id": f"00000000-0000-0000-0000-{n:012d}",
            "shop_type": ShopType.OFFICIAL,
            "shop_name": "VT",
            "name": f"Product {n}",
            "price": Decimal("1000"),
            "source_url": f"https://shop.example.jp/item/{n}",
            "created_at": datetime(2024, 1, 1, 12, 0, n % 60),
            "updated_at": datetime(2024, 1, 1, 12, 0, n % 60),
        }
        values.update(overrides)
        return Listing(**values)

    return factory


@pytest.fixture
def sample_reference() -> MarketplaceReference:
    return MarketplaceReference(
        asin="B0C1234567",
        amazon_name="VT リードルショット 100 美容液",
        amazon_price=Decimal("2000"),
        fee_rate=Decimal("15"),
        fba_fee=Decimal("300"),
        monthly_sales=120,
    )


@pytest.fixture
def reference_csv_path(tmp_path: Path) -> Path:
    """A seller-tool export with a header row and positional columns."""
    csv_content = (
        "画像,URL: Amazon,ブランド,商品名,ASIN,先月の購入,Buy Box: 現在価格,紹介料％,FBA Pick&Pack 料金,商品コード: EAN\n"
        "https://img.example/1.jpg,https://www.amazon.co.jp/dp/B0C1234567,VT,リードルショット 100,B0C1234567,120,\"¥2,980\",10.5%,\"¥434\",8809695671234\n"
        "https://img.example/2.jpg,https://www.amazon.co.jp/dp/b0c7654321,VT,CICA クリーム,b0c7654321,35.9,1999.99,,,\n"
        ",,VT,Broken row,NOT-AN-ASIN,1,100,10,10,\n"
    )
    csv_file = tmp_path / "references.csv"
    csv_file.write_text(csv_content, encoding="utf-8-sig")
    return csv_file
