# Overview: Pytest coverage for discount resolution and line-total rounding.

from decimal import Decimal

import pytest

from retailpos.services.pricing_service import PricingResolver


@pytest.fixture
def pricing():
    return PricingResolver()


class TestResolvePrice:
    def test_discount_applied(self, pricing):
        assert pricing.resolve_price(Decimal("100.00"), Decimal("10")) == Decimal("90.00")

    def test_no_discount(self, pricing):
        assert pricing.resolve_price("25.50", None) == Decimal("25.50")
        assert pricing.resolve_price("25.50", 0) == Decimal("25.50")

    def test_full_discount_is_free(self, pricing):
        assert pricing.resolve_price("19.99", 100) == Decimal("0")

    def test_sub_cent_price_is_not_rounded(self, pricing):
        """4.99 at 15% off is 4.2415; rounding waits for the line total."""
        assert pricing.resolve_price("4.99", "15") == Decimal("4.2415")

    def test_float_input_goes_through_str(self, pricing):
        assert pricing.resolve_price(0.1, 0) == Decimal("0.1")

    @pytest.mark.parametrize("pct", ["-1", "100.01"])
    def test_out_of_range_discount_rejected(self, pricing, pct):
        with pytest.raises(ValueError):
            pricing.resolve_price("10.00", pct)


class TestLineSubtotal:
    def test_quantity_multiplies_discounted_price(self, pricing):
        unit = pricing.resolve_price("100.00", "10")
        assert pricing.line_subtotal(unit, 3) == Decimal("270.00")

    def test_rounds_half_up_once(self, pricing):
        unit = pricing.resolve_price("4.99", "15")
        # 4.2415 * 3 = 12.7245
        assert pricing.line_subtotal(unit, 3) == Decimal("12.72")
        # 4.2415 * 2 = 8.483
        assert pricing.line_subtotal(unit, 2) == Decimal("8.48")

    def test_half_cent_goes_up(self, pricing):
        assert pricing.line_subtotal("0.005", 1) == Decimal("0.01")
        assert pricing.quantize_money("2.345") == Decimal("2.35")
