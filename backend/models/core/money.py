"""
Decimal helpers for ledger amounts
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from config import AMOUNT_QUANTUM

Number = Union[Decimal, int, str, float]


def to_decimal(value: Number) -> Decimal:
    """Coerce to Decimal without going through binary float formatting"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def quantize(value: Number) -> Decimal:
    """Round to ledger precision (8 dp, half-up)"""
    return to_decimal(value).quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percentage: Decimal) -> Decimal:
    """amount * percentage / 100 at ledger precision"""
    return quantize(amount * percentage / Decimal(100))
