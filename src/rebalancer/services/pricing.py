"""
Live fund prices from the Yahoo Finance chart endpoint.
"""

import logging
from typing import Any, Dict, Optional, Sequence
from urllib.parse import quote_plus

import requests

from rebalancer.errors import PriceLookupError
from rebalancer.models.portfolio import Fund

logger = logging.getLogger(__name__)

CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"
DEFAULT_HEADERS = {"User-Agent": "Mozilla/5.0 (compatible; fund-rebalancer)"}


class YahooPriceClient:
    """Most recent daily close per symbol."""

    def __init__(self, timeout_seconds: float = 15.0, session: Optional[requests.Session] = None):
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def latest_close(self, symbol: str) -> float:
        url = CHART_URL.format(symbol=quote_plus(symbol))
        try:
            response = self.session.get(
                url,
                params={"range": "5d", "interval": "1d"},
                headers=DEFAULT_HEADERS,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise PriceLookupError(symbol, f"request failed: {e}") from e
        except ValueError as e:
            raise PriceLookupError(symbol, "response was not JSON") from e

        closes = _closes(data)
        if not closes:
            raise PriceLookupError(symbol, "empty history returned")
        return closes[-1]


def refresh_prices(funds: Sequence[Fund], client: YahooPriceClient) -> Dict[str, float]:
    """
    Replace each fund's price with its latest close, in fund order.

    Any failure aborts before the remaining funds are touched.

    Returns:
        Mapping of symbol to the new price
    """
    prices = {}
    for fund in funds:
        fund.price = client.latest_close(fund.symbol)
        prices[fund.symbol] = fund.price
        logger.info("%s: $%.2f", fund.symbol, fund.price)
    return prices


def _closes(data: Any) -> list:
    results = ((data or {}).get("chart") or {}).get("result") or []
    if not results:
        return []
    quote = (((results[0] or {}).get("indicators") or {}).get("quote") or [{}])[0] or {}
    return [float(c) for c in (quote.get("close") or []) if isinstance(c, (int, float))]
