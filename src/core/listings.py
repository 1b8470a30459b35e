"""Direct user edits to catalog listings."""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from typing import TYPE_CHECKING, Any

from .models import Listing, MarketplaceReference, to_money, validate_asin

if TYPE_CHECKING:
    from src.db.repository import CatalogRepository

logger = logging.getLogger(__name__)

USER_EDITABLE_FIELDS = ("price", "sale_price", "is_hidden", "is_favorite", "memo")

REFERENCE_FIELDS = (
    "amazon_name",
    "amazon_price",
    "monthly_sales",
    "fee_rate",
    "fba_fee",
    "jan_code",
    "image_url",
    "product_url",
    "has_amazon",
    "has_official",
    "complaint_count",
    "is_dangerous",
    "is_per_carry_ng",
    "memo",
)


class ListingNotFoundError(LookupError):
    """No listing with the given ID."""


class ListingService:
    """Copy, edit and delete listings, and manage their reference link."""

    def __init__(self, repository: CatalogRepository) -> None:
        self.repository = repository

    def _get(self, listing_id: str) -> Listing:
        listing = self.repository.get_listing(listing_id)
        if listing is None:
            raise ListingNotFoundError(f"Listing not found: {listing_id}")
        return listing

    def copy_listing(self, listing_id: str) -> Listing:
        """Duplicate a listing as a user copy.

        The copy points at the root original, even when copying a copy, and
        starts without a reference link and with both flags cleared.
        """
        source = self._get(listing_id)
        now = datetime.now()
        copy = replace(
            source,
            id=str(uuid.uuid4()),
            original_listing_id=source.original_listing_id or source.id,
            is_favorite=False,
            is_hidden=False,
            created_at=now,
            updated_at=now,
        )
        self.repository.insert_listings([copy])
        logger.info(f"Copied listing {source.id} to {copy.id}")
        return copy

    def update_listing(self, listing_id: str, **fields: Any) -> Listing:
        """Apply user edits to price, sale price, flags or memo."""
        unknown = set(fields) - set(USER_EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Fields not editable: {', '.join(sorted(unknown))}")

        for key in ("price", "sale_price"):
            if key in fields:
                fields[key] = to_money(fields[key])

        self._get(listing_id)
        if fields:
            self.repository.update_listing_fields(listing_id, **fields)
        return self._get(listing_id)

    def delete_listing(self, listing_id: str) -> int:
        """Delete a listing and every copy made from it.

        Returns:
            Number of listings deleted
        """
        ids = [listing_id, *self.repository.get_copy_ids([listing_id])]
        deleted = self.repository.delete_listings(ids)
        logger.info(f"Deleted listing {listing_id} ({deleted} rows including copies)")
        return deleted

    def assign_reference(self, listing_id: str, asin: str, **reference_fields: Any) -> MarketplaceReference:
        """Link a listing to the reference with this code, creating it on first use.

        Extra fields update the reference record.

        Raises:
            ReferenceValidationError: If the code is malformed
            ListingNotFoundError: If the listing does not exist
        """
        code = validate_asin(asin)
        unknown = set(reference_fields) - set(REFERENCE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown reference fields: {', '.join(sorted(unknown))}")
        for key in ("amazon_price", "fee_rate", "fba_fee"):
            if key in reference_fields:
                reference_fields[key] = to_money(reference_fields[key])

        self._get(listing_id)

        reference = self.repository.get_reference_by_asin(code)
        if reference is None:
            reference = MarketplaceReference(asin=code, **reference_fields)
            self.repository.insert_references([reference])
            logger.info(f"Created marketplace reference {code}")
        elif reference_fields:
            self.repository.update_reference(reference.id, **reference_fields)
            reference = self.repository.get_reference(reference.id)

        self.repository.set_link(listing_id, reference.id)
        return reference

    def clear_reference(self, listing_id: str) -> bool:
        """Unlink a listing's reference. The reference record is kept."""
        return self.repository.delete_link(listing_id)
