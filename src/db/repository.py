"""Repository pattern for catalog store operations."""

from __future__ import annotations

from collections.abc import Generator, Iterable
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import delete, desc, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.core.models import (
    DiscountType,
    Listing,
    MarketplaceReference,
    ShopDiscount,
    ShopType,
)

from .models import (
    ListingDB,
    ListingReferenceLinkDB,
    MarketplaceReferenceDB,
    ShopDiscountDB,
)
from .session import Database

# Fields a user (or a reconciliation update) may overwrite on a listing
LISTING_UPDATABLE_FIELDS = frozenset(
    {"price", "sale_price", "image_url", "is_hidden", "is_favorite", "memo"}
)


class StoreError(Exception):
    """A catalog store operation failed."""


class CatalogRepository:
    """Data access for listings, marketplace references, links and discounts."""

    def __init__(self, database: Database) -> None:
        self.database = database

    @contextmanager
    def _scope(self, action: str) -> Generator[Session, None, None]:
        try:
            with self.database.session_scope() as session:
                yield session
        except SQLAlchemyError as e:
            raise StoreError(f"{action} failed: {e}") from e

    # ==================== Listings ====================

    def get_listings_for_shop(self, shop_type: ShopType, shop_name: str) -> list[Listing]:
        """Get every listing of one shop, newest first."""
        return self._select_listings(shop_type, shop_name, False, True)

    def list_listings(
        self,
        shop_type: ShopType | None = None,
        shop_name: str | None = None,
        favorites_only: bool = False,
        include_hidden: bool = True,
    ) -> list[Listing]:
        """Get listings matching the filters, newest first."""
        return self._select_listings(shop_type, shop_name, favorites_only, include_hidden)

    def _select_listings(
        self,
        shop_type: ShopType | None,
        shop_name: str | None,
        favorites_only: bool,
        include_hidden: bool,
    ) -> list[Listing]:
        with self._scope("select listings") as session:
            query = select(ListingDB)
            if shop_type is not None:
                query = query.where(ListingDB.shop_type == shop_type.value)
            if shop_name is not None:
                query = query.where(ListingDB.shop_name == shop_name)
            if favorites_only:
                query = query.where(ListingDB.is_favorite == True)
            if not include_hidden:
                query = query.where(ListingDB.is_hidden == False)
            query = query.order_by(desc(ListingDB.created_at), ListingDB.id)

            result = session.execute(query).scalars().all()
            return [self._db_to_listing(db) for db in result]

    def get_listing(self, listing_id: str) -> Listing | None:
        """Get a listing by ID."""
        with self._scope("select listing") as session:
            db_listing = session.get(ListingDB, listing_id)
            if db_listing:
                return self._db_to_listing(db_listing)
            return None

    def get_shops(self) -> list[tuple[ShopType, str]]:
        """Get the distinct (shop type, shop name) pairs in the catalog."""
        with self._scope("select shops") as session:
            query = (
                select(ListingDB.shop_type, ListingDB.shop_name)
                .distinct()
                .order_by(ListingDB.shop_type, ListingDB.shop_name)
            )
            return [
                (ShopType.from_string(row.shop_type), row.shop_name)
                for row in session.execute(query).all()
            ]

    def insert_listings(self, listings: list[Listing]) -> list[Listing]:
        """Insert listings in one transaction."""
        with self._scope("insert listings") as session:
            for listing in listings:
                session.add(
                    ListingDB(
                        id=listing.id,
                        shop_type=listing.shop_type.value,
                        shop_name=listing.shop_name,
                        name=listing.name,
                        price=listing.price,
                        sale_price=listing.sale_price,
                        image_url=listing.image_url,
                        source_url=listing.source_url,
                        is_hidden=listing.is_hidden,
                        is_favorite=listing.is_favorite,
                        memo=listing.memo,
                        original_listing_id=listing.original_listing_id,
                        created_at=listing.created_at,
                        updated_at=listing.updated_at,
                    )
                )
            session.flush()
            return listings

    def update_listing_fields(self, listing_id: str, **fields: Any) -> bool:
        """Overwrite editable fields of one listing.

        Returns:
            True when a row was updated
        """
        unknown = set(fields) - LISTING_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {', '.join(sorted(unknown))}")
        if not fields:
            return False

        with self._scope(f"update listing {listing_id}") as session:
            result = session.execute(
                update(ListingDB)
                .where(ListingDB.id == listing_id)
                .values(**fields, updated_at=datetime.now())
            )
            return result.rowcount > 0

    def delete_listings(self, listing_ids: Iterable[str]) -> int:
        """Delete listings by ID. Their reference links go with them.

        Returns:
            Number of rows deleted
        """
        ids = list(listing_ids)
        if not ids:
            return 0
        with self._scope(f"delete {len(ids)} listings") as session:
            # Links are removed explicitly so backends without FK cascade agree
            session.execute(
                delete(ListingReferenceLinkDB).where(ListingReferenceLinkDB.listing_id.in_(ids))
            )
            result = session.execute(delete(ListingDB).where(ListingDB.id.in_(ids)))
            return result.rowcount

    def get_copy_ids(self, original_ids: Iterable[str]) -> list[str]:
        """Get the IDs of copies whose lineage points at any of the given listings."""
        ids = list(original_ids)
        if not ids:
            return []
        with self._scope("select copies") as session:
            query = select(ListingDB.id).where(ListingDB.original_listing_id.in_(ids))
            return list(session.execute(query).scalars().all())

    def _db_to_listing(self, db: ListingDB) -> Listing:
        """Convert DB model to domain model."""
        return Listing(
            id=db.id,
            shop_type=ShopType.from_string(db.shop_type),
            shop_name=db.shop_name,
            name=db.name,
            price=db.price,
            sale_price=db.sale_price,
            image_url=db.image_url,
            source_url=db.source_url,
            is_hidden=bool(db.is_hidden),
            is_favorite=bool(db.is_favorite),
            memo=db.memo,
            original_listing_id=db.original_listing_id,
            created_at=db.created_at,
            updated_at=db.updated_at,
        )

    # ==================== Marketplace References ====================

    def get_reference(self, reference_id: int) -> MarketplaceReference | None:
        """Get a marketplace reference by ID."""
        with self._scope("select reference") as session:
            db_ref = session.get(MarketplaceReferenceDB, reference_id)
            if db_ref:
                return self._db_to_reference(db_ref)
            return None

    def get_reference_by_asin(self, asin: str) -> MarketplaceReference | None:
        """Get a marketplace reference by its catalog code."""
        with self._scope("select reference") as session:
            db_ref = session.execute(
                select(MarketplaceReferenceDB).where(MarketplaceReferenceDB.asin == asin)
            ).scalar_one_or_none()
            if db_ref:
                return self._db_to_reference(db_ref)
            return None

    def get_references_by_ids(self, reference_ids: Iterable[int]) -> dict[int, MarketplaceReference]:
        """Get marketplace references keyed by ID."""
        ids = list(set(reference_ids))
        if not ids:
            return {}
        with self._scope("select references") as session:
            result = session.execute(
                select(MarketplaceReferenceDB).where(MarketplaceReferenceDB.id.in_(ids))
            ).scalars().all()
            return {db.id: self._db_to_reference(db) for db in result}

    def get_existing_asins(self, asins: Iterable[str]) -> set[str]:
        """Get which of the given catalog codes already exist."""
        codes = list(set(asins))
        if not codes:
            return set()
        with self._scope("select asins") as session:
            result = session.execute(
                select(MarketplaceReferenceDB.asin).where(MarketplaceReferenceDB.asin.in_(codes))
            ).scalars().all()
            return set(result)

    def insert_references(self, references: list[MarketplaceReference]) -> list[MarketplaceReference]:
        """Insert marketplace references in one transaction."""
        with self._scope("insert references") as session:
            db_refs = []
            for ref in references:
                db_ref = MarketplaceReferenceDB(
                    asin=ref.asin,
                    amazon_name=ref.amazon_name,
                    amazon_price=ref.amazon_price,
                    monthly_sales=ref.monthly_sales,
                    fee_rate=ref.fee_rate,
                    fba_fee=ref.fba_fee,
                    jan_code=ref.jan_code,
                    image_url=ref.image_url,
                    product_url=ref.product_url,
                    has_amazon=ref.has_amazon,
                    has_official=ref.has_official,
                    complaint_count=ref.complaint_count,
                    is_dangerous=ref.is_dangerous,
                    is_per_carry_ng=ref.is_per_carry_ng,
                    memo=ref.memo,
                )
                db_refs.append(db_ref)
                session.add(db_ref)

            session.flush()

            for ref, db_ref in zip(references, db_refs):
                ref.id = db_ref.id

            return references

    def update_reference(self, reference_id: int, **fields: Any) -> bool:
        """Overwrite fields of one marketplace reference."""
        if not fields:
            return False
        with self._scope(f"update reference {reference_id}") as session:
            result = session.execute(
                update(MarketplaceReferenceDB)
                .where(MarketplaceReferenceDB.id == reference_id)
                .values(**fields, updated_at=datetime.now())
            )
            return result.rowcount > 0

    def _db_to_reference(self, db: MarketplaceReferenceDB) -> MarketplaceReference:
        """Convert DB model to domain model."""
        return MarketplaceReference(
            id=db.id,
            asin=db.asin,
            amazon_name=db.amazon_name,
            amazon_price=db.amazon_price,
            monthly_sales=db.monthly_sales,
            fee_rate=db.fee_rate,
            fba_fee=db.fba_fee,
            jan_code=db.jan_code,
            image_url=db.image_url,
            product_url=db.product_url,
            has_amazon=bool(db.has_amazon),
            has_official=bool(db.has_official),
            complaint_count=db.complaint_count or 0,
            is_dangerous=bool(db.is_dangerous),
            is_per_carry_ng=bool(db.is_per_carry_ng),
            memo=db.memo,
            created_at=db.created_at,
            updated_at=db.updated_at,
        )

    # ==================== Links ====================

    def get_links_for_listings(self, listing_ids: Iterable[str]) -> dict[str, int]:
        """Map listing ID to linked reference ID for the given listings."""
        ids = list(listing_ids)
        if not ids:
            return {}
        with self._scope("select links") as session:
            query = select(
                ListingReferenceLinkDB.listing_id, ListingReferenceLinkDB.reference_id
            ).where(ListingReferenceLinkDB.listing_id.in_(ids))
            return {row.listing_id: row.reference_id for row in session.execute(query).all()}

    def set_link(self, listing_id: str, reference_id: int) -> None:
        """Link a listing to a reference, replacing any existing link."""
        with self._scope(f"link listing {listing_id}") as session:
            db_link = session.execute(
                select(ListingReferenceLinkDB).where(ListingReferenceLinkDB.listing_id == listing_id)
            ).scalar_one_or_none()

            if db_link:
                db_link.reference_id = reference_id
            else:
                session.add(ListingReferenceLinkDB(listing_id=listing_id, reference_id=reference_id))

    def delete_link(self, listing_id: str) -> bool:
        """Remove a listing's reference link. The reference itself is kept."""
        with self._scope(f"unlink listing {listing_id}") as session:
            result = session.execute(
                delete(ListingReferenceLinkDB).where(ListingReferenceLinkDB.listing_id == listing_id)
            )
            return result.rowcount > 0

    # ==================== Shop Discounts ====================

    def get_discount(self, shop_name: str) -> ShopDiscount | None:
        """Get the discount rule for one shop."""
        with self._scope("select discount") as session:
            db_discount = session.execute(
                select(ShopDiscountDB).where(ShopDiscountDB.shop_name == shop_name)
            ).scalar_one_or_none()
            if db_discount:
                return self._db_to_discount(db_discount)
            return None

    def get_discounts_for_shops(self, shop_names: Iterable[str]) -> dict[str, ShopDiscount]:
        """Get discount rules for many shops in one query."""
        names = list(set(shop_names))
        if not names:
            return {}
        with self._scope("select discounts") as session:
            result = session.execute(
                select(ShopDiscountDB).where(ShopDiscountDB.shop_name.in_(names))
            ).scalars().all()
            return {db.shop_name: self._db_to_discount(db) for db in result}

    def list_discounts(self) -> list[ShopDiscount]:
        """Get all discount rules ordered by shop name."""
        with self._scope("select discounts") as session:
            result = session.execute(
                select(ShopDiscountDB).order_by(ShopDiscountDB.shop_name)
            ).scalars().all()
            return [self._db_to_discount(db) for db in result]

    def save_discount(self, discount: ShopDiscount) -> ShopDiscount:
        """Create or update the discount rule for a shop."""
        with self._scope(f"save discount {discount.shop_name}") as session:
            db_discount = session.execute(
                select(ShopDiscountDB).where(ShopDiscountDB.shop_name == discount.shop_name)
            ).scalar_one_or_none()

            if db_discount:
                db_discount.discount_type = discount.discount_type.value
                db_discount.discount_value = discount.discount_value
                db_discount.is_enabled = discount.is_enabled
                db_discount.updated_at = datetime.now()
            else:
                db_discount = ShopDiscountDB(
                    shop_name=discount.shop_name,
                    discount_type=discount.discount_type.value,
                    discount_value=discount.discount_value,
                    is_enabled=discount.is_enabled,
                )
                session.add(db_discount)

            session.flush()
            return self._db_to_discount(db_discount)

    def delete_discount(self, shop_name: str) -> bool:
        """Delete the discount rule for a shop."""
        with self._scope(f"delete discount {shop_name}") as session:
            result = session.execute(
                delete(ShopDiscountDB).where(ShopDiscountDB.shop_name == shop_name)
            )
            return result.rowcount > 0

    def set_discount_enabled(self, shop_name: str, enabled: bool) -> bool:
        """Toggle a shop's discount rule."""
        with self._scope(f"toggle discount {shop_name}") as session:
            result = session.execute(
                update(ShopDiscountDB)
                .where(ShopDiscountDB.shop_name == shop_name)
                .values(is_enabled=enabled, updated_at=datetime.now())
            )
            return result.rowcount > 0

    def _db_to_discount(self, db: ShopDiscountDB) -> ShopDiscount:
        """Convert DB model to domain model."""
        return ShopDiscount(
            id=db.id,
            shop_name=db.shop_name,
            discount_type=DiscountType(db.discount_type),
            discount_value=db.discount_value,
            is_enabled=bool(db.is_enabled),
            created_at=db.created_at,
            updated_at=db.updated_at,
        )
