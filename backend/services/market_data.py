"""
Display-only exchange rates from a public rates API.

Never used for settlement: listings carry their own rate. Every call
degrades to a fallback instead of raising, so pages keep rendering when the
provider is down.
"""
import logging
import time
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional, Tuple

import requests

from config import (
    EXCHANGE_RATE_API_KEY,
    EXCHANGE_RATE_API_URL,
    MARKET_DATA_CACHE_SECONDS,
    MARKET_DATA_FALLBACK_VARIATION,
    MARKET_DATA_TIMEOUT_SECONDS,
)
from models.core import CURRENCY_FLAGS, Currency, currency_flag, currency_name
from models.responses import CurrenciesResult, CurrencyInfo, RateInfo, RatesResult

logger = logging.getLogger(__name__)

RATE_PRECISION = Decimal("0.000001")


class CurrencyMarketService:
    def __init__(
        self,
        base_url: str = EXCHANGE_RATE_API_URL,
        api_key: Optional[str] = EXCHANGE_RATE_API_KEY,
        cache_seconds: int = MARKET_DATA_CACHE_SECONDS,
    ):
        self.base_url = base_url
        self.api_key = api_key
        self.cache_seconds = cache_seconds
        # base -> (fetched_at monotonic, fetched_at wall clock, rates)
        self._cache: Dict[str, Tuple[float, datetime, Dict[str, Decimal]]] = {}
        # base -> rates from the snapshot before the current one
        self._previous: Dict[str, Dict[str, Decimal]] = {}

    def get_rates(self, base: str = "USD") -> RatesResult:
        """Latest rates for `base`, cached for an hour. Empty fallback on failure."""
        base = base.upper()
        cached = self._cache.get(base)
        if cached and time.monotonic() - cached[0] < self.cache_seconds:
            return RatesResult(base=base, rates=cached[2], is_fallback=False, updated_at=cached[1])

        rates = self._fetch(base)
        if rates is None:
            if cached:
                # Stale beats nothing
                return RatesResult(base=base, rates=cached[2], is_fallback=True, updated_at=cached[1])
            return RatesResult(
                base=base, rates={}, is_fallback=True, updated_at=datetime.now(timezone.utc)
            )

        if cached:
            self._previous[base] = cached[2]
        now = datetime.now(timezone.utc)
        self._cache[base] = (time.monotonic(), now, rates)
        return RatesResult(base=base, rates=rates, is_fallback=False, updated_at=now)

    def get_24h_stats(
        self, base: str, target: str, fallback_rate: Optional[Decimal] = None
    ) -> RateInfo:
        """
        Current rate with change and a high/low band for a pair.

        Args:
            base: Base currency code
            target: Quote currency code
            fallback_rate: Rate to show when the provider has nothing,
                typically the listing's own rate (defaults to 1)
        """
        base, target = base.upper(), target.upper()
        result = self.get_rates(base)
        current = result.rates.get(target)

        if current is None:
            logger.warning(f"Using fallback rate for {base}/{target}")
            rate = Decimal(fallback_rate) if fallback_rate is not None else Decimal("1")
            return self._stats(base, target, rate, previous=rate, is_fallback=True)

        previous = self._previous.get(base, {}).get(target, current)
        return self._stats(base, target, current, previous=previous, is_fallback=result.is_fallback)

    def list_currencies(self) -> CurrenciesResult:
        return CurrenciesResult(
            currencies=[
                CurrencyInfo(code=code, name=currency_name(code), flag=currency_flag(code))
                for code in Currency.get_all()
            ]
        )

    def _fetch(self, base: str) -> Optional[Dict[str, Decimal]]:
        url = f"{self.base_url}/{base}"
        params = {"apikey": self.api_key} if self.api_key else {}
        try:
            response = requests.get(url, params=params, timeout=MARKET_DATA_TIMEOUT_SECONDS)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Exchange rate API request failed for {base}: {e}")
            return None

        if payload.get("result") not in (None, "success"):
            logger.error(f"Exchange rate API error for {base}: {payload.get('error-type')}")
            return None

        rates: Dict[str, Decimal] = {}
        for code, value in (payload.get("rates") or {}).items():
            # Only settleable currencies are shown
            if code not in CURRENCY_FLAGS:
                continue
            try:
                rates[code] = Decimal(str(value))
            except InvalidOperation:
                logger.warning(f"Skipping malformed rate {code}={value!r}")
        return rates

    @staticmethod
    def _stats(
        base: str, target: str, rate: Decimal, previous: Decimal, is_fallback: bool
    ) -> RateInfo:
        change = rate - previous
        change_percent = (change / previous * 100) if previous else Decimal("0")
        band = rate * MARKET_DATA_FALLBACK_VARIATION
        return RateInfo(
            base=base,
            target=target,
            rate=rate.quantize(RATE_PRECISION),
            change_24h=change.quantize(RATE_PRECISION),
            change_percent_24h=change_percent.quantize(Decimal("0.0001")),
            high_24h=(rate + band).quantize(RATE_PRECISION),
            low_24h=(rate - band).quantize(RATE_PRECISION),
            is_fallback=is_fallback,
            updated_at=datetime.now(timezone.utc),
        )


# Process-wide instance so the cache is shared
market_data_service = CurrencyMarketService()
