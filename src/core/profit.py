"""Profit calculation for catalog listings."""

from __future__ import annotations

import logging
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from .models import DiscountType, Listing, MarketplaceReference, ProfitResult, ShopDiscount

if TYPE_CHECKING:
    from .config import ProfitConfig

logger = logging.getLogger(__name__)

# Pack quantity written into a product name, e.g. "3個", "2セット", "５本"
QUANTITY_PATTERNS = (
    re.compile(r"([0-9０-９]+)\s*(?:個|本|枚|袋|箱|缶|つ)"),
    re.compile(r"([0-9０-９]+)\s*(?:セット|set|SET)"),
)
MIN_QUANTITY = 2
MAX_QUANTITY = 99

WHOLE = Decimal("1")
CENTS = Decimal("0.01")


def round_half_up(value: Decimal, exponent: Decimal = WHOLE) -> Decimal:
    """Round like a till does: halves go away from zero."""
    return value.quantize(exponent, rounding=ROUND_HALF_UP)


def base_price(listing: Listing) -> Decimal:
    """Sale price if set, else list price, else 0. A price of 0 is a real price."""
    if listing.sale_price is not None:
        return listing.sale_price
    if listing.price is not None:
        return listing.price
    return Decimal("0")


def discounted_price(price: Decimal, discount: ShopDiscount | None) -> Decimal:
    """Apply an enabled discount rule. Disabled or missing rules leave the price alone."""
    if discount is None or not discount.is_enabled:
        return price
    if discount.discount_type == DiscountType.PERCENTAGE:
        return price * (1 - discount.discount_value / 100)
    return price - discount.discount_value


def extract_quantity(listing_name: str, reference_name: str | None = None) -> int:
    """Get the pack quantity to divide the purchase price by.

    Returns 1 when the listing name carries no usable quantity, or when the
    reference name already states the same quantity.
    """
    if not listing_name:
        return 1

    quantity = 1
    for pattern in QUANTITY_PATTERNS:
        match = pattern.search(listing_name)
        if match:
            parsed = int(match.group(1))
            if MIN_QUANTITY <= parsed <= MAX_QUANTITY:
                quantity = parsed
                break

    if quantity == 1:
        return 1

    if reference_name:
        for pattern in QUANTITY_PATTERNS:
            match = pattern.search(reference_name)
            if match and int(match.group(1)) == quantity:
                return 1

    return quantity


class ProfitCalculator:
    """Turns a listing, its linked reference and its shop discount into profit figures."""

    def __init__(self, config: ProfitConfig | None = None) -> None:
        self.quantity_correction = config.quantity_correction if config else False

    def calculate(
        self,
        listing: Listing,
        reference: MarketplaceReference | None = None,
        discount: ShopDiscount | None = None,
    ) -> ProfitResult:
        """Calculate profit for one listing. Never raises.

        profit_rate is profit over total cost and roi is profit over the
        effective purchase price.
        """
        try:
            return self._calculate(listing, reference, discount)
        except (ArithmeticError, TypeError) as e:
            logger.warning(f"Profit calculation failed for listing {listing.id}: {e}")
            return ProfitResult()

    def _calculate(
        self,
        listing: Listing,
        reference: MarketplaceReference | None,
        discount: ShopDiscount | None,
    ) -> ProfitResult:
        effective_price = discounted_price(base_price(listing), discount)

        if reference is None or not reference.amazon_price:
            return ProfitResult(effective_price=round_half_up(effective_price))

        quantity = 1
        if self.quantity_correction:
            quantity = extract_quantity(listing.name, reference.amazon_name)
            if quantity > 1:
                effective_price = effective_price / quantity

        reference_price = reference.amazon_price
        fee_rate = reference.fee_rate or Decimal("0")
        fulfillment_fee = reference.fba_fee or Decimal("0")

        commission_fee = reference_price * (fee_rate / 100)
        total_cost = effective_price + fulfillment_fee + commission_fee

        profit_amount = reference_price - total_cost
        profit_rate = profit_amount / total_cost * 100 if total_cost > 0 else Decimal("0")
        roi = profit_amount / effective_price * 100 if effective_price > 0 else Decimal("0")

        return ProfitResult(
            effective_price=round_half_up(effective_price),
            profit_amount=round_half_up(profit_amount),
            profit_rate=round_half_up(profit_rate, CENTS),
            roi=round_half_up(roi, CENTS),
            commission_fee=round_half_up(commission_fee, CENTS),
            total_cost=round_half_up(total_cost, CENTS),
            quantity=quantity,
        )
