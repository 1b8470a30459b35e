"""Core data models for Resale Arbitrage Catalog."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any


class ShopType(str, Enum):
    """Kind of storefront a listing was scraped from."""

    OFFICIAL = "official"
    RAKUTEN = "rakuten"
    YAHOO = "yahoo"

    @classmethod
    def from_string(cls, value: str) -> "ShopType":
        """Convert string to ShopType enum."""
        value_lower = value.lower()
        for shop_type in cls:
            if shop_type.value == value_lower:
                return shop_type
        raise ValueError(f"Unknown shop type: {value}")

    @classmethod
    def values(cls) -> list[str]:
        """Get list of shop type values."""
        return [s.value for s in cls]


class DiscountType(str, Enum):
    """How a shop discount is applied."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"


def to_money(value: Any) -> Decimal | None:
    """Coerce a scraped or stored price to Decimal, keeping None as None."""
    if value is None or value == "":
        return None
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid price value: {value!r}") from None


@dataclass
class Listing:
    """A catalog row: one product offer at one storefront."""

    id: str = ""
    shop_type: ShopType = ShopType.OFFICIAL
    shop_name: str = ""
    name: str = ""
    price: Decimal | None = None
    sale_price: Decimal | None = None
    image_url: str | None = None
    source_url: str | None = None
    is_hidden: bool = False
    is_favorite: bool = False
    memo: str | None = None
    original_listing_id: str | None = None  # Set only on user-made copies
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def is_copy(self) -> bool:
        return self.original_listing_id is not None


@dataclass
class MarketplaceReference:
    """Amazon-side record for the same product (the "ASIN record")."""

    id: int | None = None
    asin: str = ""
    amazon_name: str | None = None
    amazon_price: Decimal | None = None
    monthly_sales: int | None = None
    fee_rate: Decimal | None = None  # Percentage, 0-100
    fba_fee: Decimal | None = None
    jan_code: str | None = None
    image_url: str | None = None
    product_url: str | None = None
    has_amazon: bool = False
    has_official: bool = False
    complaint_count: int = 0
    is_dangerous: bool = False
    is_per_carry_ng: bool = False
    memo: str | None = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)


@dataclass
class ListingReferenceLink:
    """Link from a listing to its marketplace reference."""

    id: int | None = None
    listing_id: str = ""
    reference_id: int = 0
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class ShopDiscount:
    """Per-shop discount rule used to derive the effective purchase price."""

    id: int | None = None
    shop_name: str = ""
    discount_type: DiscountType = DiscountType.PERCENTAGE
    discount_value: Decimal = Decimal("0")
    is_enabled: bool = True
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)


@dataclass
class ScrapedItem:
    """Normalized listing record handed over by a scraping collaborator."""

    name: str
    price: Decimal | None = None
    sale_price: Decimal | None = None
    image_url: str | None = None
    product_url: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScrapedItem":
        """Build from a JSON-style dict, accepting camelCase or snake_case keys."""

        def pick(*keys: str) -> Any:
            for key in keys:
                if key in data:
                    return data[key]
            return None

        return cls(
            name=pick("name") or "",
            price=to_money(pick("price")),
            sale_price=to_money(pick("salePrice", "sale_price")),
            image_url=pick("imageURL", "imageUrl", "image_url"),
            product_url=pick("productURL", "productUrl", "product_url"),
        )


@dataclass
class ReconcileResult:
    """Report of one reconciliation run."""

    shop_type: str = ""
    shop_name: str = ""
    inserted_count: int = 0
    updated_count: int = 0
    deleted_count: int = 0
    skipped_count: int = 0
    invalid_count: int = 0
    duplicates_removed_count: int = 0
    errors: list[str] = field(default_factory=list)
    aborted: bool = False
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return not self.aborted and not self.errors

    @property
    def processed_count(self) -> int:
        return self.inserted_count + self.updated_count + self.deleted_count + self.skipped_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "shop_type": self.shop_type,
            "shop_name": self.shop_name,
            "inserted_count": self.inserted_count,
            "updated_count": self.updated_count,
            "deleted_count": self.deleted_count,
            "skipped_count": self.skipped_count,
            "invalid_count": self.invalid_count,
            "duplicates_removed_count": self.duplicates_removed_count,
            "errors": list(self.errors),
            "aborted": self.aborted,
            "success": self.success,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class DeduplicationResult:
    """Result of a duplicate sweep."""

    deleted_count: int = 0
    copies_skipped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass
class ProfitResult:
    """Profit figures for one listing."""

    effective_price: Decimal = Decimal("0")
    profit_amount: Decimal = Decimal("0")
    profit_rate: Decimal = Decimal("0")
    roi: Decimal = Decimal("0")
    commission_fee: Decimal = Decimal("0")
    total_cost: Decimal = Decimal("0")
    quantity: int = 1

    @property
    def is_profitable(self) -> bool:
        return self.profit_amount > 0


@dataclass
class EnrichedListing:
    """Listing joined with its reference and computed profit."""

    listing: Listing
    reference: MarketplaceReference | None = None
    profit: ProfitResult = field(default_factory=ProfitResult)

    @property
    def has_reference(self) -> bool:
        return self.reference is not None

    @property
    def has_priced_reference(self) -> bool:
        return self.reference is not None and bool(self.reference.amazon_price)

    def to_dict(self) -> dict[str, Any]:
        """Flatten to a JSON-friendly dict."""
        listing = self.listing
        ref = self.reference
        return {
            "id": listing.id,
            "shop_type": listing.shop_type.value,
            "shop_name": listing.shop_name,
            "name": listing.name,
            "price": _num(listing.price),
            "sale_price": _num(listing.sale_price),
            "image_url": listing.image_url,
            "source_url": listing.source_url,
            "is_hidden": listing.is_hidden,
            "is_favorite": listing.is_favorite,
            "memo": listing.memo,
            "original_listing_id": listing.original_listing_id,
            "created_at": listing.created_at.isoformat() if listing.created_at else None,
            "asin": ref.asin if ref else None,
            "amazon_name": ref.amazon_name if ref else None,
            "amazon_price": _num(ref.amazon_price) if ref else None,
            "fee_rate": _num(ref.fee_rate) if ref else None,
            "fba_fee": _num(ref.fba_fee) if ref else None,
            "effective_price": _num(self.profit.effective_price),
            "profit_amount": _num(self.profit.profit_amount),
            "profit_rate": _num(self.profit.profit_rate),
            "roi": _num(self.profit.roi),
        }


def _num(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def _floats(data: dict[str, Any]) -> dict[str, Any]:
    return {key: _num(value) if isinstance(value, Decimal) else value for key, value in data.items()}


@dataclass
class DashboardSummary:
    """Catalog-wide aggregate figures."""

    total_listings: int = 0
    linked_listings: int = 0
    link_rate: Decimal = Decimal("0")
    average_profit_rate: Decimal = Decimal("0")
    total_profit_amount: Decimal = Decimal("0")

    def to_dict(self) -> dict[str, Any]:
        return _floats(asdict(self))


@dataclass
class ShopStats:
    """Aggregate figures for one (shop type, shop name) pair."""

    shop_type: str = ""
    shop_name: str = ""
    listing_count: int = 0
    linked_count: int = 0
    link_rate: Decimal = Decimal("0")
    average_profit_rate: Decimal = Decimal("0")

    def to_dict(self) -> dict[str, Any]:
        return _floats(asdict(self))


@dataclass
class ImportResult:
    """Result of a marketplace reference import."""

    success: bool = False
    items_imported: int = 0
    items_skipped: int = 0
    errors: list[tuple[int, str]] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)


class ReferenceValidationError(ValueError):
    """User-supplied reference code or discount rule is invalid."""


ASIN_PATTERN = re.compile(r"^[A-Z0-9]{10}$")


def validate_asin(asin: str | None) -> str:
    """Normalize and check a marketplace catalog code.

    Raises:
        ReferenceValidationError: If the code is not 10 upper-case alphanumerics
    """
    code = (asin or "").strip().upper()
    if not ASIN_PATTERN.match(code):
        raise ReferenceValidationError(f"Invalid ASIN format: {asin!r}")
    return code
