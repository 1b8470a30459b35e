"""Tests for user edits to listings."""

from __future__ import annotations

from decimal import Decimal

import pytest

from src.core.listings import ListingNotFoundError, ListingService
from src.core.models import ReferenceValidationError


@pytest.fixture
def service(repository) -> ListingService:
    return ListingService(repository)


@pytest.fixture
def stored(repository, make_listing):
    listing = make_listing(name="VT リードルショット 100", is_favorite=True, memo="check stock")
    repository.insert_listings([listing])
    return listing


class TestCopyListing:
    def test_copy_points_at_source(self, service, repository, stored) -> None:
        copy = service.copy_listing(stored.id)

        assert copy.id != stored.id
        assert copy.original_listing_id == stored.id
        assert copy.is_favorite is False
        assert copy.is_hidden is False
        assert copy.name == stored.name
        assert copy.memo == "check stock"
        assert repository.get_listing(copy.id).is_copy is True

    def test_copy_of_copy_points_at_root(self, service, stored) -> None:
        first = service.copy_listing(stored.id)
        second = service.copy_listing(first.id)

        assert second.original_listing_id == stored.id

    def test_copy_has_no_reference(self, service, repository, stored) -> None:
        service.assign_reference(stored.id, "B0C1234567")

        copy = service.copy_listing(stored.id)

        assert repository.get_links_for_listings([copy.id]) == {}

    def test_missing_listing(self, service) -> None:
        with pytest.raises(ListingNotFoundError):
            service.copy_listing("missing")


class TestUpdateListing:
    def test_updates_fields(self, service, stored) -> None:
        updated = service.update_listing(
            stored.id, price="1200", sale_price=None, is_hidden=True, memo="restocked"
        )

        assert updated.price == Decimal("1200")
        assert updated.sale_price is None
        assert updated.is_hidden is True
        assert updated.memo == "restocked"

    def test_unknown_field(self, service, stored) -> None:
        with pytest.raises(ValueError):
            service.update_listing(stored.id, name="Renamed")

    def test_bad_price(self, service, stored) -> None:
        with pytest.raises(ValueError):
            service.update_listing(stored.id, price="cheap")

    def test_missing_listing(self, service) -> None:
        with pytest.raises(ListingNotFoundError):
            service.update_listing("missing", memo="x")


class TestDeleteListing:
    def test_deletes_copies_too(self, service, repository, stored, make_listing) -> None:
        other = make_listing()
        repository.insert_listings([other])
        service.copy_listing(stored.id)
        service.copy_listing(stored.id)

        assert service.delete_listing(stored.id) == 3

        remaining = repository.list_listings()
        assert [listing.id for listing in remaining] == [other.id]

    def test_deleting_copy_keeps_original(self, service, repository, stored) -> None:
        copy = service.copy_listing(stored.id)

        assert service.delete_listing(copy.id) == 1
        assert repository.get_listing(stored.id) is not None

    def test_missing_listing(self, service) -> None:
        assert service.delete_listing("missing") == 0


class TestReferenceAssignment:
    def test_creates_reference_on_first_use(self, service, repository, stored) -> None:
        reference = service.assign_reference(
            stored.id, " b0c1234567 ", amazon_price="2000", fee_rate=15, fba_fee=300
        )

        assert reference.id is not None
        assert reference.asin == "B0C1234567"
        assert reference.amazon_price == Decimal("2000")
        assert repository.get_links_for_listings([stored.id]) == {stored.id: reference.id}

    def test_reuses_existing_reference(self, service, repository, stored, make_listing) -> None:
        other = make_listing()
        repository.insert_listings([other])

        first = service.assign_reference(stored.id, "B0C1234567", amazon_price=2000)
        second = service.assign_reference(other.id, "B0C1234567", amazon_price=2100)

        assert second.id == first.id
        assert second.amazon_price == Decimal("2100")
        assert repository.get_reference(first.id).amazon_price == Decimal("2100")

    def test_reassign_replaces_link(self, service, repository, stored) -> None:
        service.assign_reference(stored.id, "B0C1234567")
        replacement = service.assign_reference(stored.id, "B0C7654321")

        assert repository.get_links_for_listings([stored.id]) == {stored.id: replacement.id}

    @pytest.mark.parametrize("asin", ["", "B0C123", "B0C1234567X", "B0C-234567", None])
    def test_invalid_code(self, service, stored, asin) -> None:
        with pytest.raises(ReferenceValidationError):
            service.assign_reference(stored.id, asin)

    def test_unknown_reference_field(self, service, stored) -> None:
        with pytest.raises(ValueError):
            service.assign_reference(stored.id, "B0C1234567", rank=3)

    def test_missing_listing(self, service, repository) -> None:
        with pytest.raises(ListingNotFoundError):
            service.assign_reference("missing", "B0C1234567")
        assert repository.get_reference_by_asin("B0C1234567") is None

    def test_clear_keeps_reference(self, service, repository, stored) -> None:
        reference = service.assign_reference(stored.id, "B0C1234567")

        assert service.clear_reference(stored.id) is True
        assert service.clear_reference(stored.id) is False
        assert repository.get_links_for_listings([stored.id]) == {}
        assert repository.get_reference(reference.id) is not None
