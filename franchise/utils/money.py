"""
Currency helpers.

All amounts are Decimal and settle to two decimal places using
round-half-away-from-zero (Decimal's ROUND_HALF_UP).
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Tuple, Union

CENT = Decimal("0.01")

Amount = Union[Decimal, int, float, str]


def to_decimal(value: Amount) -> Decimal:
    """Coerce a number to Decimal without binary float artefacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_currency(value: Amount) -> Decimal:
    """Round to cents, halves away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def sum_currency(values: Iterable[Amount]) -> Decimal:
    """Sum exactly, then round once."""
    total = Decimal("0")
    for value in values:
        total += to_decimal(value)
    return round_currency(total)


def split_revenue(total: Amount, licensee_percent: Amount) -> Tuple[Decimal, Decimal]:
    """
    Split a revenue amount between licensee and operator.

    The licensee share is rounded; the operator takes the remainder so the
    two shares always add back to the rounded total.
    """
    total = round_currency(total)
    percent = to_decimal(licensee_percent)
    licensee_share = round_currency(total * percent / Decimal("100"))
    operator_share = total - licensee_share
    return licensee_share, operator_share
