"""
Core domain models - currencies and money helpers
"""
from models.core.currency import (
    CURRENCY_FLAGS,
    CURRENCY_NAMES,
    Currency,
    currency_flag,
    currency_name,
)
from models.core.money import percent_of, quantize, to_decimal

__all__ = [
    # Currency
    "Currency",
    "CURRENCY_NAMES",
    "CURRENCY_FLAGS",
    "currency_name",
    "currency_flag",
    # Money
    "quantize",
    "percent_of",
    "to_decimal",
]
