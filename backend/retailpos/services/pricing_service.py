# Overview: Discount and line-total arithmetic shared by stock checks and invoices.

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from ..money import CENT, HUNDRED, ZERO, to_decimal


class PricingResolver:
    """
    Effective price = selling_price - selling_price * discount_percent / 100.

    RULES:
    - Everything is Decimal; no float ever enters the calculation.
    - resolve_price() never rounds. With 2dp prices and 2dp percentages the
      result has at most 6 decimal places and is stored exactly.
    - line_subtotal() is the single rounding point (half-up to cents).
    """

    def resolve_price(self, selling_price, discount_percent=None) -> Decimal:
        price = to_decimal(selling_price)
        pct = to_decimal(discount_percent) if discount_percent is not None else ZERO
        if pct < 0 or pct > HUNDRED:
            raise ValueError("discount_percent must be between 0 and 100")
        return price - price * pct / HUNDRED

    def line_subtotal(self, unit_price, quantity: int) -> Decimal:
        return (to_decimal(unit_price) * quantity).quantize(CENT, rounding=ROUND_HALF_UP)

    def quantize_money(self, value) -> Decimal:
        return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
