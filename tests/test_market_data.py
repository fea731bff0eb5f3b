"""
Display rates: caching, provider failures and the 24h stats fallback
"""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import requests

from services.market_data import CurrencyMarketService


def _response(rates):
    response = MagicMock()
    response.json.return_value = {"result": "success", "base_code": "USD", "rates": rates}
    response.raise_for_status.return_value = None
    return response


class TestGetRates:
    @patch("services.market_data.requests.get")
    def test_keeps_settleable_currencies_and_caches(self, mock_get):
        mock_get.return_value = _response({"EUR": 0.9, "GBP": 0.8, "ZAR": 18.5})
        service = CurrencyMarketService(base_url="https://rates.test")

        first = service.get_rates("usd")
        second = service.get_rates("USD")

        assert first.base == "USD"
        assert first.rates == {"EUR": Decimal("0.9"), "ZAR": Decimal("18.5")}
        assert first.is_fallback is False
        assert second.rates == first.rates
        mock_get.assert_called_once()
        assert mock_get.call_args.args[0] == "https://rates.test/USD"

    @patch("services.market_data.requests.get")
    def test_provider_down_returns_empty_fallback(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("offline")
        service = CurrencyMarketService(base_url="https://rates.test")

        result = service.get_rates("USD")

        assert result.rates == {}
        assert result.is_fallback is True

    @patch("services.market_data.requests.get")
    def test_stale_cache_beats_nothing(self, mock_get):
        mock_get.side_effect = [_response({"EUR": 0.9}), requests.Timeout("slow")]
        service = CurrencyMarketService(base_url="https://rates.test", cache_seconds=0)

        service.get_rates("USD")
        result = service.get_rates("USD")

        assert result.rates == {"EUR": Decimal("0.9")}
        assert result.is_fallback is True


class TestGet24hStats:
    @patch("services.market_data.requests.get")
    def test_falls_back_to_listing_rate(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("offline")
        service = CurrencyMarketService(base_url="https://rates.test")

        stats = service.get_24h_stats("USD", "AOA", fallback_rate=Decimal("0.9"))

        assert stats.is_fallback is True
        assert stats.rate == Decimal("0.9")
        assert stats.change_24h == Decimal("0")
        assert stats.high_24h == Decimal("0.909")
        assert stats.low_24h == Decimal("0.891")

    @patch("services.market_data.requests.get")
    def test_change_against_previous_snapshot(self, mock_get):
        mock_get.side_effect = [_response({"EUR": 0.9}), _response({"EUR": 0.99})]
        service = CurrencyMarketService(base_url="https://rates.test", cache_seconds=0)

        service.get_rates("USD")
        stats = service.get_24h_stats("USD", "EUR")

        assert stats.is_fallback is False
        assert stats.rate == Decimal("0.99")
        assert stats.change_24h == Decimal("0.09")
        assert stats.change_percent_24h == Decimal("10")


class TestListCurrencies:
    def test_lists_settleable_currencies_with_names(self):
        result = CurrencyMarketService().list_currencies()

        codes = {info.code: info.name for info in result.currencies}
        assert codes["AOA"] == "Angolan Kwanza"
        assert set(codes) == {"AOA", "USD", "EUR", "NAD", "ZAR"}
