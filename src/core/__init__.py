"""Core business logic for Resale Arbitrage Catalog."""

from .config import Settings
from .discounts import DiscountResolver, apply_discount
from .identity import identity_key
from .models import (
    DashboardSummary,
    DeduplicationResult,
    DiscountType,
    EnrichedListing,
    ImportResult,
    Listing,
    ListingReferenceLink,
    MarketplaceReference,
    ProfitResult,
    ReconcileResult,
    ReferenceValidationError,
    ScrapedItem,
    ShopDiscount,
    ShopStats,
    ShopType,
)
from .profit import ProfitCalculator

__all__ = [
    "Settings",
    "DiscountResolver",
    "apply_discount",
    "identity_key",
    "DashboardSummary",
    "DeduplicationResult",
    "DiscountType",
    "EnrichedListing",
    "ImportResult",
    "Listing",
    "ListingReferenceLink",
    "MarketplaceReference",
    "ProfitResult",
    "ReconcileResult",
    "ReferenceValidationError",
    "ScrapedItem",
    "ShopDiscount",
    "ShopStats",
    "ShopType",
    "ProfitCalculator",
]
