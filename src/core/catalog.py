"""Read side of the catalog: listings joined with references and profit."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .discounts import DiscountResolver
from .models import EnrichedListing, Listing, ShopType
from .profit import ProfitCalculator

if TYPE_CHECKING:
    from src.db.repository import CatalogRepository

    from .config import Settings


class CatalogReadService:
    """Produces EnrichedListing rows for display, export and dashboards.

    Links, references and discount rules are each fetched with one query
    per call, whatever the number of rows.
    """

    def __init__(self, repository: CatalogRepository, settings: Settings) -> None:
        self.repository = repository
        self.discounts = DiscountResolver(repository)
        self.calculator = ProfitCalculator(settings.profit)

    def list_enriched(
        self,
        shop_type: ShopType | None = None,
        shop_name: str | None = None,
        favorites_only: bool = False,
        include_hidden: bool = True,
    ) -> list[EnrichedListing]:
        """Get enriched listings matching the filters, newest first."""
        listings = self.repository.list_listings(
            shop_type=shop_type,
            shop_name=shop_name,
            favorites_only=favorites_only,
            include_hidden=include_hidden,
        )
        return self.enrich(listings)

    def get_enriched(self, listing_id: str) -> EnrichedListing | None:
        listing = self.repository.get_listing(listing_id)
        if listing is None:
            return None
        return self.enrich([listing])[0]

    def enrich(self, listings: list[Listing]) -> list[EnrichedListing]:
        """Join listings with their reference and discount and compute profit."""
        if not listings:
            return []

        links = self.repository.get_links_for_listings(listing.id for listing in listings)
        references = self.repository.get_references_by_ids(links.values())
        discounts = self.discounts.resolve_many(listing.shop_name for listing in listings)

        rows = []
        for listing in listings:
            reference_id = links.get(listing.id)
            reference = references.get(reference_id) if reference_id is not None else None
            discount = discounts.get(listing.shop_name)
            rows.append(
                EnrichedListing(
                    listing=listing,
                    reference=reference,
                    profit=self.calculator.calculate(listing, reference, discount),
                )
            )
        return rows
