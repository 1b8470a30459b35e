"""Reconciliation of scraped listings into the catalog."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Iterator
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, TypeVar

from src.db.repository import StoreError

from .identity import identity_key
from .models import (
    DeduplicationResult,
    Listing,
    ReconcileResult,
    ScrapedItem,
    ShopType,
)
from .profit import CENTS, round_half_up

if TYPE_CHECKING:
    from src.db.repository import CatalogRepository

    from .config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ScrapedItemError(ValueError):
    """A scraped item cannot be stored."""


def chunked(values: list[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive slices of at most size elements."""
    for start in range(0, len(values), size):
        yield values[start : start + size]


def to_scraped_item(raw: ScrapedItem | dict[str, Any], position: int) -> ScrapedItem:
    """Validate one producer record.

    Raises:
        ScrapedItemError: If the record has no usable name or an unparseable price
    """
    if isinstance(raw, ScrapedItem):
        item = raw
    else:
        try:
            item = ScrapedItem.from_dict(raw)
        except (ValueError, TypeError, AttributeError) as e:
            raise ScrapedItemError(f"Item {position}: {e}") from e

    if not isinstance(item.name, str) or not item.name.strip():
        raise ScrapedItemError(f"Item {position}: name is empty")

    # Match the store's two-decimal money columns so unchanged prices compare equal
    try:
        return replace(
            item,
            price=_to_cents(item.price),
            sale_price=_to_cents(item.sale_price),
        )
    except ArithmeticError as e:
        raise ScrapedItemError(f"Item {position}: {e}") from e


def _to_cents(value: Decimal | None) -> Decimal | None:
    return round_half_up(value, CENTS) if value is not None else None


class ReconciliationEngine:
    """Merges one shop's freshly scraped batch into the catalog.

    Inserts new listings, refreshes price, sale price and image of known
    ones, deletes listings that vanished from the shop, then sweeps
    duplicates. Copies made by users are never deleted by the scrape; they
    only go when their original does. Individual write failures are recorded
    in the result and never stop the run.
    """

    def __init__(self, repository: CatalogRepository, settings: Settings) -> None:
        self.repository = repository
        self.settings = settings

    @property
    def delete_batch_size(self) -> int:
        return self.settings.reconcile.delete_batch_size

    @property
    def insert_batch_size(self) -> int:
        return self.settings.reconcile.insert_batch_size

    def reconcile(
        self,
        shop_type: ShopType,
        shop_name: str,
        items: Iterable[ScrapedItem | dict[str, Any]],
    ) -> ReconcileResult:
        """Reconcile a scraped batch for one (shop type, shop name) pair."""
        batch = list(items)
        result = ReconcileResult(
            shop_type=shop_type.value, shop_name=shop_name, started_at=datetime.now()
        )
        log_fields = {"shop_type": shop_type.value, "shop_name": shop_name}
        logger.info(
            f"Reconciling {len(batch)} scraped items for {shop_type.value}/{shop_name}",
            extra={"event": "reconcile.started", "item_count": len(batch), **log_fields},
        )

        try:
            existing = self.repository.get_listings_for_shop(shop_type, shop_name)
        except StoreError as e:
            result.aborted = True
            result.errors.append(f"Failed to fetch existing listings: {e}")
            logger.error(
                f"Reconciliation aborted for {shop_type.value}/{shop_name}: {e}",
                extra={"event": "reconcile.aborted", **log_fields},
            )
            return self._finish(result)

        # Newest first, so the newest of any duplicates is the one matched
        existing_by_key: dict[str, Listing] = {}
        for listing in existing:
            if listing.is_copy:
                continue
            existing_by_key.setdefault(identity_key(listing.source_url, listing.name), listing)

        scraped_keys: set[str] = set()
        to_insert: list[Listing] = []
        to_update: list[tuple[str, dict[str, Any]]] = []

        for position, raw in enumerate(batch):
            try:
                item = to_scraped_item(raw, position)
            except ScrapedItemError as e:
                result.invalid_count += 1
                result.errors.append(str(e))
                logger.warning(
                    f"Skipping invalid item: {e}",
                    extra={"event": "reconcile.invalid_item", "position": position, **log_fields},
                )
                continue

            key = identity_key(item.product_url, item.name)
            if key in scraped_keys:
                result.skipped_count += 1
                continue
            scraped_keys.add(key)

            current = existing_by_key.get(key)
            if current is None:
                to_insert.append(self._new_listing(shop_type, shop_name, item))
            elif self._has_changed(current, item):
                to_update.append(
                    (
                        current.id,
                        {
                            "price": item.price,
                            "sale_price": item.sale_price,
                            "image_url": item.image_url,
                        },
                    )
                )
            else:
                result.skipped_count += 1

        to_delete = [
            listing.id
            for listing in existing
            if not listing.is_copy
            and identity_key(listing.source_url, listing.name) not in scraped_keys
        ]

        logger.info(
            f"Classified {shop_type.value}/{shop_name}: {len(to_insert)} new, "
            f"{len(to_update)} changed, {result.skipped_count} unchanged, {len(to_delete)} gone",
            extra={
                "event": "reconcile.classified",
                "insert": len(to_insert),
                "update": len(to_update),
                "skip": result.skipped_count,
                "delete": len(to_delete),
                "invalid": result.invalid_count,
                **log_fields,
            },
        )

        self._insert(to_insert, result, log_fields)
        self._update(to_update, result, log_fields)
        deleted_ids = self._delete(to_delete, result, log_fields, phase="delete")
        self._delete_copies_of(deleted_ids, result, log_fields)

        dedup = self.deduplicate(shop_type, shop_name)
        result.duplicates_removed_count = dedup.deleted_count
        result.errors.extend(dedup.errors)

        return self._finish(result)

    def deduplicate(
        self, shop_type: ShopType | None = None, shop_name: str | None = None
    ) -> DeduplicationResult:
        """Delete older listings that share an identity key within a shop.

        Walks listings newest first and keeps the first of each key. Copies
        are never considered duplicates. Without arguments the whole catalog
        is swept, shop by shop.
        """
        result = DeduplicationResult()
        try:
            listings = self.repository.list_listings(shop_type=shop_type, shop_name=shop_name)
        except StoreError as e:
            result.errors.append(f"Failed to fetch listings for deduplication: {e}")
            logger.warning(
                f"Deduplication skipped: {e}", extra={"event": "reconcile.dedup_failed"}
            )
            return result

        seen: set[tuple[str, str, str]] = set()
        duplicate_ids: list[str] = []
        for listing in listings:
            if listing.is_copy:
                result.copies_skipped += 1
                continue
            key = (
                listing.shop_type.value,
                listing.shop_name,
                identity_key(listing.source_url, listing.name),
            )
            if key in seen:
                duplicate_ids.append(listing.id)
            else:
                seen.add(key)

        for number, chunk in enumerate(chunked(duplicate_ids, self.delete_batch_size), start=1):
            try:
                result.deleted_count += self.repository.delete_listings(chunk)
            except StoreError as e:
                result.errors.append(f"Duplicate delete batch {number} failed: {e}")
                logger.warning(
                    f"Duplicate delete batch {number} failed: {e}",
                    extra={"event": "reconcile.write_failed", "phase": "deduplicate", "batch": number},
                )

        if duplicate_ids:
            logger.info(
                f"Removed {result.deleted_count} duplicate listings",
                extra={
                    "event": "reconcile.deduplicated",
                    "deleted": result.deleted_count,
                    "copies_skipped": result.copies_skipped,
                    "shop_type": shop_type.value if shop_type else None,
                    "shop_name": shop_name,
                },
            )
        return result

    def _new_listing(self, shop_type: ShopType, shop_name: str, item: ScrapedItem) -> Listing:
        now = datetime.now()
        return Listing(
            id=str(uuid.uuid4()),
            shop_type=shop_type,
            shop_name=shop_name,
            name=item.name,
            price=item.price,
            sale_price=item.sale_price,
            image_url=item.image_url,
            source_url=item.product_url,
            is_hidden=False,
            is_favorite=False,
            memo=None,
            created_at=now,
            updated_at=now,
        )

    @staticmethod
    def _has_changed(current: Listing, item: ScrapedItem) -> bool:
        return (
            current.price != item.price
            or current.sale_price != item.sale_price
            or current.image_url != item.image_url
        )

    def _insert(
        self, listings: list[Listing], result: ReconcileResult, log_fields: dict[str, Any]
    ) -> None:
        for number, chunk in enumerate(chunked(listings, self.insert_batch_size), start=1):
            try:
                self.repository.insert_listings(chunk)
                result.inserted_count += len(chunk)
            except StoreError as e:
                result.errors.append(f"Insert batch {number} failed: {e}")
                logger.warning(
                    f"Insert batch {number} failed: {e}",
                    extra={"event": "reconcile.write_failed", "phase": "insert", "batch": number, **log_fields},
                )

    def _update(
        self,
        updates: list[tuple[str, dict[str, Any]]],
        result: ReconcileResult,
        log_fields: dict[str, Any],
    ) -> None:
        for listing_id, fields in updates:
            try:
                if self.repository.update_listing_fields(listing_id, **fields):
                    result.updated_count += 1
                else:
                    result.errors.append(f"Update failed for listing {listing_id}: not found")
            except StoreError as e:
                result.errors.append(f"Update failed for listing {listing_id}: {e}")
                logger.warning(
                    f"Update failed for listing {listing_id}: {e}",
                    extra={"event": "reconcile.write_failed", "phase": "update", "listing_id": listing_id, **log_fields},
                )

    def _delete(
        self,
        listing_ids: list[str],
        result: ReconcileResult,
        log_fields: dict[str, Any],
        phase: str,
    ) -> list[str]:
        """Delete in chunks, returning the IDs of chunks that went through."""
        deleted_ids: list[str] = []
        for number, chunk in enumerate(chunked(listing_ids, self.delete_batch_size), start=1):
            try:
                result.deleted_count += self.repository.delete_listings(chunk)
                deleted_ids.extend(chunk)
            except StoreError as e:
                result.errors.append(f"Delete batch {number} failed: {e}")
                logger.warning(
                    f"Delete batch {number} failed: {e}",
                    extra={"event": "reconcile.write_failed", "phase": phase, "batch": number, **log_fields},
                )
        return deleted_ids

    def _delete_copies_of(
        self, deleted_ids: list[str], result: ReconcileResult, log_fields: dict[str, Any]
    ) -> None:
        copy_ids: list[str] = []
        for chunk in chunked(deleted_ids, self.delete_batch_size):
            try:
                copy_ids.extend(self.repository.get_copy_ids(chunk))
            except StoreError as e:
                result.errors.append(f"Failed to look up copies of deleted listings: {e}")
                logger.warning(
                    f"Copy lookup failed: {e}",
                    extra={"event": "reconcile.write_failed", "phase": "cascade", **log_fields},
                )
        if copy_ids:
            self._delete(copy_ids, result, log_fields, phase="cascade")

    @staticmethod
    def _finish(result: ReconcileResult) -> ReconcileResult:
        result.completed_at = datetime.now()
        if result.started_at:
            result.duration_seconds = (result.completed_at - result.started_at).total_seconds()

        if not result.aborted:
            level = logging.WARNING if result.errors else logging.INFO
            logger.log(
                level,
                f"Reconciled {result.shop_type}/{result.shop_name}: "
                f"{result.inserted_count} inserted, {result.updated_count} updated, "
                f"{result.deleted_count} deleted, {result.skipped_count} skipped, "
                f"{result.duplicates_removed_count} duplicates removed, {len(result.errors)} errors",
                extra={"event": "reconcile.finished", **result.to_dict()},
            )
        return result
