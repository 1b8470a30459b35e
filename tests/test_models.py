"""Tests for core domain models."""

from decimal import Decimal

import pytest

from src.core.identity import identity_key
from src.core.models import (
    EnrichedListing,
    Listing,
    MarketplaceReference,
    ReconcileResult,
    ReferenceValidationError,
    ScrapedItem,
    ShopType,
    to_money,
    validate_asin,
)


class TestShopType:
    def test_from_string(self) -> None:
        assert ShopType.from_string("Rakuten") == ShopType.RAKUTEN
        assert ShopType.from_string("official") == ShopType.OFFICIAL

    def test_unknown(self) -> None:
        with pytest.raises(ValueError):
            ShopType.from_string("amazon")

    def test_values(self) -> None:
        assert ShopType.values() == ["official", "rakuten", "yahoo"]


class TestToMoney:
    def test_conversions(self) -> None:
        assert to_money(1000) == Decimal("1000")
        assert to_money(19.9) == Decimal("19.9")
        assert to_money("2816") == Decimal("2816")
        assert to_money(None) is None
        assert to_money("") is None

    def test_invalid(self) -> None:
        with pytest.raises(ValueError):
            to_money("free")


class TestScrapedItem:
    def test_camel_case_keys(self) -> None:
        item = ScrapedItem.from_dict({
            "name": "Toner",
            "price": 1000,
            "salePrice": 800,
            "imageURL": "https://img.example/1.jpg",
            "productURL": "https://shop.example/1",
        })

        assert item.sale_price == Decimal("800")
        assert item.image_url == "https://img.example/1.jpg"
        assert item.product_url == "https://shop.example/1"

    def test_snake_case_keys(self) -> None:
        item = ScrapedItem.from_dict({"name": "Toner", "sale_price": "800", "product_url": "u"})
        assert item.sale_price == Decimal("800")
        assert item.product_url == "u"
        assert item.price is None

    def test_missing_name(self) -> None:
        assert ScrapedItem.from_dict({}).name == ""


class TestIdentityKey:
    def test_literal_parts(self) -> None:
        assert identity_key("https://shop.example/1", "Toner") == "https://shop.example/1|||Toner"

    def test_missing_url(self) -> None:
        assert identity_key(None, "Toner") == "|||Toner"
        assert identity_key("", "Toner") == identity_key(None, "Toner")

    def test_no_normalization(self) -> None:
        assert identity_key("https://shop.example/1", "Toner ") != identity_key(
            "https://shop.example/1", "Toner"
        )
        assert identity_key("https://shop.example/1/", "Toner") != identity_key(
            "https://shop.example/1", "Toner"
        )


class TestValidateAsin:
    def test_normalizes(self) -> None:
        assert validate_asin(" b0c1234567 ") == "B0C1234567"

    @pytest.mark.parametrize("value", [None, "", "B0C12345", "B0C1234567A", "B0C_234567"])
    def test_rejects(self, value) -> None:
        with pytest.raises(ReferenceValidationError):
            validate_asin(value)

    def test_is_value_error(self) -> None:
        assert issubclass(ReferenceValidationError, ValueError)


class TestReconcileResult:
    def test_success_and_counts(self) -> None:
        result = ReconcileResult(inserted_count=2, updated_count=1, deleted_count=3, skipped_count=4)

        assert result.success is True
        assert result.processed_count == 10

    def test_errors_mean_failure(self) -> None:
        assert ReconcileResult(errors=["boom"]).success is False
        assert ReconcileResult(aborted=True).success is False

    def test_to_dict(self) -> None:
        data = ReconcileResult(shop_type="official", shop_name="VT", inserted_count=1).to_dict()

        assert data["shop_name"] == "VT"
        assert data["inserted_count"] == 1
        assert data["success"] is True
        assert data["errors"] == []


class TestListingModels:
    def test_is_copy(self) -> None:
        assert Listing().is_copy is False
        assert Listing(original_listing_id="abc").is_copy is True

    @pytest.mark.parametrize(
        "price,expected",
        [(Decimal("2000"), True), (Decimal("0"), False), (None, False)],
    )
    def test_priced_reference(self, price, expected) -> None:
        row = EnrichedListing(
            listing=Listing(),
            reference=MarketplaceReference(asin="B000000001", amazon_price=price),
        )
        assert row.has_reference is True
        assert row.has_priced_reference is expected

    def test_unlinked_to_dict(self) -> None:
        data = EnrichedListing(listing=Listing(id="x", price=Decimal("1000"))).to_dict()

        assert data["asin"] is None
        assert data["price"] == 1000.0
        assert data["sale_price"] is None
        assert data["profit_amount"] == 0.0
