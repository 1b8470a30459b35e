"""Dashboard aggregates over enriched listings."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from .models import DashboardSummary, EnrichedListing, ShopStats
from .profit import round_half_up

TENTHS = Decimal("0.1")


@dataclass
class _Tally:
    count: int = 0
    linked: int = 0
    profit_rate_sum: Decimal = Decimal("0")
    profit_amount_sum: Decimal = Decimal("0")
    profit_count: int = 0

    def add(self, row: EnrichedListing) -> None:
        self.count += 1
        if row.has_reference:
            self.linked += 1
        # Only rows with something to sell against and something paid count
        if row.has_priced_reference and row.profit.effective_price > 0:
            self.profit_rate_sum += row.profit.profit_rate
            self.profit_amount_sum += row.profit.profit_amount
            self.profit_count += 1

    @property
    def link_rate(self) -> Decimal:
        if not self.count:
            return Decimal("0")
        return round_half_up(Decimal(self.linked) / self.count * 100, TENTHS)

    @property
    def average_profit_rate(self) -> Decimal:
        if not self.profit_count:
            return Decimal("0")
        return round_half_up(self.profit_rate_sum / self.profit_count, TENTHS)


class DashboardAggregator:
    """Reduces enriched listings to summary and per-shop figures."""

    def summary(self, rows: Iterable[EnrichedListing]) -> DashboardSummary:
        tally = _Tally()
        for row in rows:
            tally.add(row)
        return DashboardSummary(
            total_listings=tally.count,
            linked_listings=tally.linked,
            link_rate=tally.link_rate,
            average_profit_rate=tally.average_profit_rate,
            total_profit_amount=round_half_up(tally.profit_amount_sum),
        )

    def shop_stats(self, rows: Iterable[EnrichedListing]) -> list[ShopStats]:
        """Per (shop type, shop name) figures, ordered by shop type then name."""
        tallies: dict[tuple[str, str], _Tally] = {}
        for row in rows:
            key = (row.listing.shop_type.value, row.listing.shop_name)
            tallies.setdefault(key, _Tally()).add(row)

        return [
            ShopStats(
                shop_type=shop_type,
                shop_name=shop_name,
                listing_count=tally.count,
                linked_count=tally.linked,
                link_rate=tally.link_rate,
                average_profit_rate=tally.average_profit_rate,
            )
            for (shop_type, shop_name), tally in sorted(tallies.items())
        ]
