"""Unit tests for the merchant/platform split."""

from decimal import Decimal

import pytest

from storefront.domain.exceptions import ValidationError
from storefront.domain.model.value_objects import Money
from storefront.domain.service.split_calculator import SplitCalculator


class TestSplitCalculator:

    def test_five_percent_of_ten_thousand(self):
        split = SplitCalculator().split(Money(10000), Decimal("0.05"))
        assert split.merchant_amount == Money(9500)
        assert split.platform_amount == Money(500)
        assert split.merchant_percentage == Decimal("0.95")

    @pytest.mark.parametrize("pct", ["0", "0.05", "0.5", "1"])
    @pytest.mark.parametrize("total", [0, 1, 99, 333, 10000, 123457])
    def test_shares_always_add_up(self, total, pct):
        split = SplitCalculator().split(Money(total), Decimal(pct))
        assert split.merchant_amount + split.platform_amount == Money(total)

    def test_platform_share_rounds_down(self):
        split = SplitCalculator().split(Money(999), Decimal("0.05"))
        assert split.platform_amount == Money(49)
        assert split.merchant_amount == Money(950)

    def test_float_percentage_is_read_as_written(self):
        split = SplitCalculator().split(Money(10000), 0.05)
        assert split.platform_percentage == Decimal("0.05")

    @pytest.mark.parametrize("pct", ["-0.01", "1.01"])
    def test_out_of_range_rejected(self, pct):
        with pytest.raises(ValidationError, match="between 0 and 1"):
            SplitCalculator().split(Money(100), Decimal(pct))

    def test_garbage_rejected(self):
        with pytest.raises(ValidationError, match="Invalid platform percentage"):
            SplitCalculator().split(Money(100), "five")
