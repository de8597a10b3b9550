"""
Decimal helpers for currency amounts.

All prices are stored as NUMERIC with 2 decimal places. Nothing in the
codebase touches float for money; JSON input is converted through str()
so 0.1 arrives as Decimal("0.1") rather than its binary approximation.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

# Largest amount a NUMERIC(12, 2) column holds
MAX_AMOUNT = Decimal("9999999999.99")


def to_decimal(value) -> Decimal:
    """Convert int/str/float/Decimal to Decimal. Raises ValueError on garbage."""
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError("boolean is not a number")
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"{value!r} is not a number")
    else:
        raise ValueError(f"{value!r} is not a number")

    if not result.is_finite():
        raise ValueError(f"{value!r} is not a finite number")
    return result


def quantize_money(value) -> Decimal:
    """Round to cents, half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money_str(value) -> str | None:
    """Serialize a money value for JSON: "90.00", never scientific notation."""
    if value is None:
        return None
    return format(quantize_money(value), "f")


def price_str(value) -> str | None:
    """
    Serialize an exact (possibly sub-cent) unit price.

    Keeps at least 2 decimal places and drops trailing zeros beyond that,
    so 90.000000 -> "90.00" and 8.491500 -> "8.4915".
    """
    if value is None:
        return None
    d = to_decimal(value)
    if d == d.quantize(CENT):
        return format(d.quantize(CENT), "f")
    return format(d.normalize(), "f")
