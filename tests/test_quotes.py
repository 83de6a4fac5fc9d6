"""Tests for the quote sources with their network calls replaced."""

import pandas as pd
import pytest
import requests

from services.errors import QuoteLookupFailure
from services.quotes import RakutenQuoteSource, YahooFinanceQuoteSource


def test_yahoo_uses_current_price_and_normalizes_code() -> None:
    source = YahooFinanceQuoteSource(market_type="JP")
    seen = []

    def fake_info(symbol):
        seen.append(symbol)
        return {'currentPrice': 2750.5}

    source._fetch_ticker_info = fake_info
    assert source.lookup_price("7203") == 2750.5
    assert seen == ["7203.T"]


def test_yahoo_falls_back_to_history() -> None:
    source = YahooFinanceQuoteSource(market_type="US")
    source._fetch_ticker_info = lambda symbol: {}
    source._fetch_ticker_history = lambda symbol, period="1d": pd.DataFrame({'Close': [99.0, 101.5]})
    assert source.lookup_price("NVDA") == 101.5


def test_yahoo_without_any_price_fails() -> None:
    source = YahooFinanceQuoteSource(market_type="US")
    source._fetch_ticker_info = lambda symbol: {}
    source._fetch_ticker_history = lambda symbol, period="1d": pd.DataFrame()
    with pytest.raises(QuoteLookupFailure):
        source.lookup_price("NVDA")


def test_yahoo_transport_error_is_wrapped() -> None:
    source = YahooFinanceQuoteSource(market_type="US")

    def broken(symbol):
        raise ConnectionError("network down")

    source._fetch_ticker_info = broken
    with pytest.raises(QuoteLookupFailure) as excinfo:
        source.lookup_price("NVDA")
    assert excinfo.value.source == "yahoo"
    assert "network down" in excinfo.value.reason


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        return self.payload


def test_rakuten_takes_first_item_price(monkeypatch) -> None:
    calls = []

    def fake_get(url, params=None, timeout=None):
        calls.append(params)
        return FakeResponse({'Items': [{'Item': {'itemPrice': 3980}}, {'Item': {'itemPrice': 1}}]})

    monkeypatch.setattr(requests, "get", fake_get)
    source = RakutenQuoteSource(app_id="app-123")

    assert source.lookup_price(" Pikachu promo ") == 3980.0
    assert calls[0]['keyword'] == "Pikachu promo"
    assert calls[0]['applicationId'] == "app-123"


@pytest.mark.parametrize("response", [
    FakeResponse({'Items': []}),
    FakeResponse({'Items': [{'Item': {'itemPrice': 0}}]}),
    FakeResponse({}, status=500),
])
def test_rakuten_failures(monkeypatch, response) -> None:
    monkeypatch.setattr(requests, "get", lambda url, params=None, timeout=None: response)
    with pytest.raises(QuoteLookupFailure):
        RakutenQuoteSource(app_id="app-123").lookup_price("Pikachu")


def test_rakuten_requires_app_id() -> None:
    with pytest.raises(QuoteLookupFailure) as excinfo:
        RakutenQuoteSource().lookup_price("Pikachu")
    assert "application id" in excinfo.value.reason
