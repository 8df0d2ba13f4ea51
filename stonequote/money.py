"""
Decimal helpers for money and measured quantities.

Every amount in the pricing engine is a Decimal. Floats coming out of the
database or request bodies go through `to_decimal` (via str) so 0.1 stays 0.1.
"""

from decimal import Decimal, ROUND_HALF_UP

ZERO = Decimal("0")
CENTS = Decimal("0.01")
THREE_PLACES = Decimal("0.001")
HUNDRED = Decimal("100")
MM_PER_METRE = Decimal("1000")
SQ_MM_PER_SQ_METRE = Decimal("1000000")


def to_decimal(value, default=None):
    """Convert a DB/JSON value to Decimal. None stays `default`."""
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value) -> Decimal:
    """Round to cents, half up."""
    return to_decimal(value, ZERO).quantize(CENTS, rounding=ROUND_HALF_UP)


def quantity(value) -> Decimal:
    """Round a measured quantity (m, m², count) to 3 places for display."""
    return to_decimal(value, ZERO).quantize(THREE_PLACES, rounding=ROUND_HALF_UP)


def floor_zero(value: Decimal) -> Decimal:
    return value if value > ZERO else ZERO


def mm_to_metres(mm) -> Decimal:
    return to_decimal(mm) / MM_PER_METRE


def area_sqm(length_mm, width_mm) -> Decimal:
    return to_decimal(length_mm) * to_decimal(width_mm) / SQ_MM_PER_SQ_METRE


def fmt_money(value, currency_symbol: str = "$") -> str:
    """Human-readable amount for effect strings, e.g. $30.00."""
    return f"{currency_symbol}{money(value):,.2f}"
