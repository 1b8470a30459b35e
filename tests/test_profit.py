"""Tests for the profit calculator."""

from decimal import Decimal

import pytest

from src.core.config import ProfitConfig
from src.core.models import DiscountType, Listing, MarketplaceReference, ShopDiscount
from src.core.profit import (
    ProfitCalculator,
    base_price,
    discounted_price,
    extract_quantity,
    round_half_up,
)


@pytest.fixture
def calculator() -> ProfitCalculator:
    return ProfitCalculator()


def percent_off(value: str, enabled: bool = True) -> ShopDiscount:
    return ShopDiscount(
        shop_name="VT",
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal(value),
        is_enabled=enabled,
    )


class TestBasePrice:
    def test_sale_price_wins(self) -> None:
        listing = Listing(price=Decimal("1000"), sale_price=Decimal("800"))
        assert base_price(listing) == Decimal("800")

    def test_falls_back_to_price(self) -> None:
        assert base_price(Listing(price=Decimal("1000"))) == Decimal("1000")

    def test_zero_sale_price_is_used(self) -> None:
        listing = Listing(price=Decimal("1000"), sale_price=Decimal("0"))
        assert base_price(listing) == Decimal("0")

    def test_no_prices(self) -> None:
        assert base_price(Listing()) == Decimal("0")


class TestDiscountedPrice:
    def test_percentage(self) -> None:
        assert discounted_price(Decimal("1000"), percent_off("10")) == Decimal("900")

    def test_fixed(self) -> None:
        discount = ShopDiscount(discount_type=DiscountType.FIXED, discount_value=Decimal("150"))
        assert discounted_price(Decimal("1000"), discount) == Decimal("850")

    def test_fixed_is_not_clamped(self) -> None:
        discount = ShopDiscount(discount_type=DiscountType.FIXED, discount_value=Decimal("150"))
        assert discounted_price(Decimal("100"), discount) == Decimal("-50")

    def test_disabled_discount_ignored(self) -> None:
        assert discounted_price(Decimal("1000"), percent_off("10", enabled=False)) == Decimal("1000")

    def test_no_discount(self) -> None:
        assert discounted_price(Decimal("1000"), None) == Decimal("1000")


class TestProfitFormula:
    """Profit rate is over total cost, ROI is over the effective price."""

    def test_reference_example(self, calculator, sample_reference) -> None:
        listing = Listing(price=Decimal("1000"))

        result = calculator.calculate(listing, sample_reference, percent_off("10"))

        assert result.effective_price == Decimal("900")
        assert result.commission_fee == Decimal("300")
        assert result.total_cost == Decimal("1500")
        assert result.profit_amount == Decimal("500")
        assert result.profit_rate == Decimal("33.33")
        assert result.roi == Decimal("55.56")
        assert result.is_profitable is True

    def test_fixed_discount_same_figures(self, calculator, sample_reference) -> None:
        listing = Listing(price=Decimal("1000"))
        discount = ShopDiscount(discount_type=DiscountType.FIXED, discount_value=Decimal("100"))

        result = calculator.calculate(listing, sample_reference, discount)

        assert result.profit_amount == Decimal("500")
        assert result.profit_rate == Decimal("33.33")
        assert result.roi == Decimal("55.56")

    def test_loss(self, calculator, sample_reference) -> None:
        listing = Listing(price=Decimal("2500"))

        result = calculator.calculate(listing, sample_reference)

        # 2000 - (2500 + 300 + 300)
        assert result.profit_amount == Decimal("-1100")
        assert result.profit_rate == Decimal("-35.48")
        assert result.roi == Decimal("-44.00")
        assert result.is_profitable is False

    def test_missing_fees_count_as_zero(self, calculator) -> None:
        reference = MarketplaceReference(asin="B000000001", amazon_price=Decimal("1500"))

        result = calculator.calculate(Listing(price=Decimal("1000")), reference)

        assert result.profit_amount == Decimal("500")
        assert result.profit_rate == Decimal("50.00")
        assert result.roi == Decimal("50.00")

    def test_zero_effective_price(self, calculator, sample_reference) -> None:
        listing = Listing(price=Decimal("1000"), sale_price=Decimal("0"))

        result = calculator.calculate(listing, sample_reference)

        # cost is fees only
        assert result.profit_amount == Decimal("1400")
        assert result.roi == Decimal("0")
        assert result.profit_rate == Decimal("233.33")

    def test_zero_total_cost(self, calculator) -> None:
        reference = MarketplaceReference(asin="B000000001", amazon_price=Decimal("500"))

        result = calculator.calculate(Listing(), reference)

        assert result.profit_amount == Decimal("500")
        assert result.profit_rate == Decimal("0")
        assert result.roi == Decimal("0")

    def test_rounding_is_half_up(self, calculator) -> None:
        result = calculator.calculate(Listing(price=Decimal("100.5")))
        assert result.effective_price == Decimal("101")


class TestWithoutReference:
    def test_no_reference_gives_zeros(self, calculator) -> None:
        listing = Listing(price=Decimal("1000"))

        result = calculator.calculate(listing, None, percent_off("10"))

        assert result.effective_price == Decimal("900")
        assert result.profit_amount == 0
        assert result.profit_rate == 0
        assert result.roi == 0

    @pytest.mark.parametrize("price", [None, Decimal("0")])
    def test_reference_without_price(self, calculator, price) -> None:
        reference = MarketplaceReference(asin="B000000001", amazon_price=price)

        result = calculator.calculate(Listing(price=Decimal("1000")), reference)

        assert result.effective_price == Decimal("1000")
        assert result.profit_amount == 0
        assert result.roi == 0


class TestQuantityCorrection:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("緑茶 500ml 24本", 24),
            ("シートマスク 3枚", 3),
            ("ハンドクリーム 2個セット", 2),
            ("クッション 2set", 2),
            ("ボディソープ ３袋", 3),
            ("シャンプー 1本", 1),
            ("大容量 120個", 1),
            ("Toner", 1),
            ("", 1),
        ],
    )
    def test_extract_quantity(self, name: str, expected: int) -> None:
        assert extract_quantity(name) == expected

    def test_same_quantity_in_reference_name(self) -> None:
        assert extract_quantity("緑茶 24本", "伊藤園 緑茶 500ml×24本") == 1

    def test_different_quantity_in_reference_name(self) -> None:
        assert extract_quantity("緑茶 24本", "伊藤園 緑茶 500ml 1本") == 24

    def test_disabled_by_default(self, calculator) -> None:
        listing = Listing(name="お茶 3本", price=Decimal("3000"))
        reference = MarketplaceReference(asin="B000000001", amazon_name="お茶", amazon_price=Decimal("2000"))

        result = calculator.calculate(listing, reference)

        assert result.quantity == 1
        assert result.effective_price == Decimal("3000")

    def test_divides_effective_price_when_enabled(self) -> None:
        calculator = ProfitCalculator(ProfitConfig(quantity_correction=True))
        listing = Listing(name="お茶 3本", price=Decimal("3000"))
        reference = MarketplaceReference(
            asin="B000000001",
            amazon_name="お茶 500ml",
            amazon_price=Decimal("2000"),
            fee_rate=Decimal("10"),
            fba_fee=Decimal("100"),
        )

        result = calculator.calculate(listing, reference)

        assert result.quantity == 3
        assert result.effective_price == Decimal("1000")
        assert result.profit_amount == Decimal("700")
        assert result.profit_rate == Decimal("53.85")
        assert result.roi == Decimal("70.00")

    def test_not_applied_without_reference(self) -> None:
        calculator = ProfitCalculator(ProfitConfig(quantity_correction=True))
        result = calculator.calculate(Listing(name="お茶 3本", price=Decimal("3000")))
        assert result.effective_price == Decimal("3000")


def test_round_half_up() -> None:
    assert round_half_up(Decimal("2.5")) == Decimal("3")
    assert round_half_up(Decimal("-2.5")) == Decimal("-3")
    assert round_half_up(Decimal("33.335"), Decimal("0.01")) == Decimal("33.34")
