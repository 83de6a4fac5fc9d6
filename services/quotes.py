"""
Quote sources for reference prices.
Quotes are advisory: they fill an asset's sale price for valuation displays and
never feed the accounting engine. Every failure surfaces as QuoteLookupFailure.
Enhanced with tenacity for retry logic and resilience.
"""

import math
import logging
from typing import Any, Dict, Optional

import requests
import yfinance as yf
from tenacity import Retrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from config import get_settings
from services.common import normalize_symbol
from services.errors import QuoteLookupFailure

logger = logging.getLogger(__name__)


def _retrying(retry_on=Exception) -> Retrying:
    """Retry policy shared by the sources, attempts taken from settings."""
    settings = get_settings()
    return Retrying(
        stop=stop_after_attempt(max(1, settings.quote_retry_attempts)),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(retry_on),
        reraise=True
    )


def _validated_price(source: str, query: str, price: Any) -> float:
    try:
        value = float(price)
    except (TypeError, ValueError):
        raise QuoteLookupFailure(source, query, "no price in response")
    if not math.isfinite(value) or value <= 0:
        raise QuoteLookupFailure(source, query, f"unusable price {price!r}")
    return value


class QuoteSource:
    """A price source that answers a free-text query with one number."""

    name = "quote"

    def lookup_price(self, query: str) -> float:
        """
        Look up a reference price.

        Raises:
            QuoteLookupFailure: on transport errors, no match, or a non-positive price
        """
        raise NotImplementedError


class YahooFinanceQuoteSource(QuoteSource):
    """
    Listed securities by stock code, via yfinance.
    Codes are normalized for the configured market ("7203" -> "7203.T" for JP).
    """

    name = "yahoo"

    def __init__(self, market_type: Optional[str] = None):
        self.market_type = market_type or get_settings().default_market_type

    @staticmethod
    def _fetch_ticker_info(yf_symbol: str) -> Dict:
        ticker = yf.Ticker(yf_symbol)
        return ticker.info

    @staticmethod
    def _fetch_ticker_history(yf_symbol: str, period: str = "1d"):
        ticker = yf.Ticker(yf_symbol)
        return ticker.history(period=period)

    def lookup_price(self, query: str) -> float:
        if not query or not query.strip():
            raise QuoteLookupFailure(self.name, query or "", "empty stock code")

        yf_symbol = normalize_symbol(query, self.market_type)
        try:
            info = _retrying()(self._fetch_ticker_info, yf_symbol)
            # Try multiple price fields
            price = info.get('currentPrice') or info.get('regularMarketPrice') or info.get('lastPrice')

            if price is None:
                hist = _retrying()(self._fetch_ticker_history, yf_symbol, "1d")
                if hist is not None and not hist.empty:
                    price = hist['Close'].iloc[-1]
        except Exception as e:
            logger.error(f"Error fetching price for {yf_symbol}: {e}")
            raise QuoteLookupFailure(self.name, query, str(e)) from e

        return _validated_price(self.name, query, price)


class RakutenQuoteSource(QuoteSource):
    """Collectibles by product name, via the Rakuten Ichiba item search API (first hit)."""

    name = "rakuten"

    def __init__(self, app_id: Optional[str] = None, endpoint: Optional[str] = None,
                 timeout: Optional[float] = None):
        settings = get_settings()
        self.app_id = app_id or settings.rakuten_app_id
        self.endpoint = endpoint or settings.rakuten_endpoint
        self.timeout = timeout or settings.quote_timeout_seconds

    def _fetch_items(self, query: str) -> Dict:
        response = requests.get(
            self.endpoint,
            params={"applicationId": self.app_id, "keyword": query, "format": "json"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def lookup_price(self, query: str) -> float:
        if not query or not query.strip():
            raise QuoteLookupFailure(self.name, query or "", "empty product name")
        if not self.app_id:
            raise QuoteLookupFailure(self.name, query, "no Rakuten application id configured")

        try:
            data = _retrying((requests.ConnectionError, requests.Timeout))(self._fetch_items, query.strip())
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error searching Rakuten for '{query}': {e}")
            raise QuoteLookupFailure(self.name, query, str(e)) from e

        items = data.get("Items") or []
        if not items:
            raise QuoteLookupFailure(self.name, query, "no matching item")
        item = items[0].get("Item", items[0])
        return _validated_price(self.name, query, item.get("itemPrice"))
