"""
Currency enum for settleable currencies, with static display metadata
"""

from enum import Enum
from typing import Dict


class Currency(str, Enum):
    """
    Settleable ISO 4217 currencies.
    Using str enum for easy serialization and comparison.
    """

    AOA = "AOA"
    USD = "USD"
    EUR = "EUR"
    NAD = "NAD"
    ZAR = "ZAR"

    @classmethod
    def get_all(cls) -> list[str]:
        """Get all currency codes as strings"""
        return [currency.value for currency in cls]

    @classmethod
    def is_valid(cls, code: str) -> bool:
        """Check if a currency code is settleable"""
        return code in cls._value2member_map_

    @classmethod
    def validate_or_raise(cls, code: str) -> None:
        """Validate currency code or raise ValueError"""
        if code not in cls._value2member_map_:
            raise ValueError(f"Unsupported currency: {code}")


CURRENCY_NAMES: Dict[str, str] = {
    "AOA": "Angolan Kwanza",
    "USD": "US Dollar",
    "EUR": "Euro",
    "NAD": "Namibian Dollar",
    "ZAR": "South African Rand",
}

CURRENCY_FLAGS: Dict[str, str] = {
    "AOA": "\U0001F1E6\U0001F1F4",
    "USD": "\U0001F1FA\U0001F1F8",
    "EUR": "\U0001F1EA\U0001F1FA",
    "NAD": "\U0001F1F3\U0001F1E6",
    "ZAR": "\U0001F1FF\U0001F1E6",
}


def currency_name(code: str) -> str:
    """Full currency name, or the code itself when unknown"""
    return CURRENCY_NAMES.get(code.upper(), code)


def currency_flag(code: str) -> str:
    """Flag emoji, or empty string when unknown"""
    return CURRENCY_FLAGS.get(code.upper(), "")
