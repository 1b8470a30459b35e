"""Per-shop discount rules."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal
from typing import TYPE_CHECKING

from .models import DiscountType, ReferenceValidationError, ShopDiscount, to_money

if TYPE_CHECKING:
    from src.db.repository import CatalogRepository

logger = logging.getLogger(__name__)


def apply_discount(price: Decimal, discount_type: DiscountType, discount_value: Decimal) -> Decimal:
    """Discounted price for display, never below zero."""
    if discount_type == DiscountType.PERCENTAGE:
        discounted = price * (1 - discount_value / 100)
    else:
        discounted = price - discount_value
    return max(discounted, Decimal("0"))


class DiscountResolver:
    """Looks up and manages discount rules, keyed by exact shop name."""

    def __init__(self, repository: CatalogRepository) -> None:
        self.repository = repository

    def resolve(self, shop_name: str) -> ShopDiscount | None:
        """Get the rule for a shop, enabled or not."""
        if not shop_name:
            return None
        return self.repository.get_discount(shop_name)

    def resolve_many(self, shop_names: Iterable[str]) -> dict[str, ShopDiscount]:
        """Get the rules for many shops with a single store query."""
        names = {name for name in shop_names if name}
        return self.repository.get_discounts_for_shops(names)

    def list_all(self) -> list[ShopDiscount]:
        return self.repository.list_discounts()

    def save(
        self,
        shop_name: str,
        discount_type: DiscountType | str,
        discount_value: Decimal | int | float | str,
        is_enabled: bool = True,
    ) -> ShopDiscount:
        """Create or replace the rule for a shop.

        Raises:
            ReferenceValidationError: If the rule is invalid
        """
        shop_name = (shop_name or "").strip()
        if not shop_name:
            raise ReferenceValidationError("Shop name is required")

        try:
            kind = DiscountType(discount_type)
            value = to_money(discount_value)
        except ValueError as e:
            raise ReferenceValidationError(str(e)) from e

        if value is None or value < 0:
            raise ReferenceValidationError(f"Discount value must be zero or more: {discount_value}")
        if kind == DiscountType.PERCENTAGE and value > 100:
            raise ReferenceValidationError(f"Percentage discount cannot exceed 100: {value}")

        saved = self.repository.save_discount(
            ShopDiscount(
                shop_name=shop_name,
                discount_type=kind,
                discount_value=value,
                is_enabled=is_enabled,
            )
        )
        logger.info(f"Saved {kind.value} discount {value} for shop {shop_name}")
        return saved

    def delete(self, shop_name: str) -> bool:
        deleted = self.repository.delete_discount(shop_name)
        if deleted:
            logger.info(f"Deleted discount for shop {shop_name}")
        return deleted

    def set_enabled(self, shop_name: str, enabled: bool) -> bool:
        return self.repository.set_discount_enabled(shop_name, enabled)
