"""Tests for the catalog read service."""

from __future__ import annotations

from decimal import Decimal

import pytest

from src.core.catalog import CatalogReadService
from src.core.discounts import DiscountResolver
from src.core.models import DiscountType, ShopType


@pytest.fixture
def service(repository, settings) -> CatalogReadService:
    return CatalogReadService(repository, settings)


@pytest.fixture
def linked_catalog(repository, make_listing, sample_reference):
    """Two shops, one linked listing each, one unlinked listing."""
    vt = make_listing(shop_name="VT", price=Decimal("1000"))
    dhc = make_listing(shop_name="DHC", price=Decimal("1000"), sale_price=Decimal("800"))
    unlinked = make_listing(shop_name="DHC", price=Decimal("500"), is_hidden=True)
    repository.insert_listings([vt, dhc, unlinked])
    repository.insert_references([sample_reference])
    repository.set_link(vt.id, sample_reference.id)
    repository.set_link(dhc.id, sample_reference.id)
    DiscountResolver(repository).save("VT", DiscountType.PERCENTAGE, 10)
    return vt, dhc, unlinked


class TestCatalogReadService:
    def test_empty_catalog(self, service) -> None:
        assert service.list_enriched() == []

    def test_enriches_with_reference_and_discount(self, service, linked_catalog) -> None:
        vt, dhc, unlinked = linked_catalog

        rows = {row.listing.id: row for row in service.list_enriched()}

        assert rows[vt.id].reference.asin == "B0C1234567"
        assert rows[vt.id].profit.effective_price == Decimal("900")
        assert rows[vt.id].profit.profit_amount == Decimal("500")
        assert rows[vt.id].profit.profit_rate == Decimal("33.33")
        assert rows[vt.id].profit.roi == Decimal("55.56")

        # No discount rule for DHC, sale price is the base
        assert rows[dhc.id].profit.effective_price == Decimal("800")
        assert rows[dhc.id].profit.profit_amount == Decimal("600")

        assert rows[unlinked.id].has_reference is False
        assert rows[unlinked.id].profit.profit_amount == 0
        assert rows[unlinked.id].profit.effective_price == Decimal("500")

    def test_discount_lookup_is_batched(self, service, repository, linked_catalog, monkeypatch) -> None:
        calls = []
        real_lookup = repository.get_discounts_for_shops

        def spy(names):
            calls.append(set(names))
            return real_lookup(names)

        monkeypatch.setattr(repository, "get_discounts_for_shops", spy)

        service.list_enriched()

        assert calls == [{"VT", "DHC"}]

    def test_disabled_discount_is_ignored(self, service, repository, linked_catalog) -> None:
        vt, _, _ = linked_catalog
        DiscountResolver(repository).set_enabled("VT", False)

        row = service.get_enriched(vt.id)

        assert row.profit.effective_price == Decimal("1000")

    def test_filters(self, service, repository, linked_catalog) -> None:
        vt, dhc, unlinked = linked_catalog
        repository.update_listing_fields(dhc.id, is_favorite=True)

        assert len(service.list_enriched(shop_name="DHC")) == 2
        assert len(service.list_enriched(shop_type=ShopType.RAKUTEN)) == 0
        assert [r.listing.id for r in service.list_enriched(favorites_only=True)] == [dhc.id]
        visible = {r.listing.id for r in service.list_enriched(include_hidden=False)}
        assert unlinked.id not in visible

    def test_get_enriched_missing(self, service) -> None:
        assert service.get_enriched("nope") is None

    def test_to_dict(self, service, linked_catalog) -> None:
        vt, _, _ = linked_catalog

        data = service.get_enriched(vt.id).to_dict()

        assert data["id"] == vt.id
        assert data["shop_type"] == "official"
        assert data["asin"] == "B0C1234567"
        assert data["profit_rate"] == pytest.approx(33.33)
        assert data["effective_price"] == 900.0
