"""Database layer for Resale Arbitrage Catalog."""

from .models import (
    Base,
    ListingDB,
    ListingReferenceLinkDB,
    MarketplaceReferenceDB,
    ShopDiscountDB,
)
from .repository import CatalogRepository, StoreError
from .session import Database

__all__ = [
    "Base",
    "ListingDB",
    "MarketplaceReferenceDB",
    "ListingReferenceLinkDB",
    "ShopDiscountDB",
    "CatalogRepository",
    "StoreError",
    "Database",
]
