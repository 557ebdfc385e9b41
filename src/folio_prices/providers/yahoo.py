"""Yahoo Finance historical price provider over direct HTTP.

Uses the unauthenticated ``/v8/finance/chart/`` endpoint via httpx and asks
for a one-day UTC window around the requested day. Serves stocks and forex
pairs (e.g. ``AAPL``, ``EURUSD=X``).
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

import httpx

from folio_prices.core.models import PriceSource, day_start
from folio_prices.providers.base import positive_or_none, require_symbol

logger = logging.getLogger(__name__)

_BASE_URL = "https://query1.finance.yahoo.com"
_CHART_PATH = "/v8/finance/chart"
_USER_AGENT = "Mozilla/5.0 (compatible; folio-prices/0.1)"
_SECONDS_PER_DAY = 86400


def day_window(day: date) -> tuple[int, int]:
    """Return (period1, period2): the UTC day as epoch seconds."""
    start = int(day_start(day).timestamp())
    return start, start + _SECONDS_PER_DAY


def extract_close(raw_data: Any) -> float | None:
    """Pull the first usable close out of a ``chart.result[0]`` object.

    Returns None when the shape is unexpected or every close is null.
    """
    if not isinstance(raw_data, dict):
        return None
    indicators = raw_data.get("indicators")
    if not isinstance(indicators, dict):
        return None
    quotes = indicators.get("quote")
    if not isinstance(quotes, list) or not quotes or not isinstance(quotes[0], dict):
        return None
    closes = quotes[0].get("close")
    if not isinstance(closes, list):
        return None
    for close in closes:
        price = positive_or_none(close)
        if price is not None:
            return price
    return None


class YahooHistoryProvider:
    """Fetches daily closes from Yahoo Finance's chart API.

    Parameters
    ----------
    timeout : float
        HTTP request timeout in seconds. Default: 15.0.
    base_url : str
        Override base URL (useful for testing).
    user_agent : str
        User-Agent header sent with every request.
    """

    source = PriceSource.YAHOO

    def __init__(
        self,
        timeout: float = 15.0,
        base_url: str = _BASE_URL,
        user_agent: str = _USER_AGENT,
    ) -> None:
        self._timeout = timeout
        self._base_url = base_url.rstrip("/")
        self._user_agent = user_agent

    async def _fetch_chart(self, symbol: str, day: date) -> dict | None:
        """Fetch raw chart data for one symbol and day.

        Returns the ``chart.result[0]`` object, or None on error.
        """
        period1, period2 = day_window(day)
        url = f"{self._base_url}{_CHART_PATH}/{symbol}"
        params = {
            "interval": "1d",
            "period1": str(period1),
            "period2": str(period2),
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(
                    url,
                    params=params,
                    headers={"User-Agent": self._user_agent},
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Yahoo Finance HTTP error for %s on %s: %s %s",
                symbol,
                day,
                e.response.status_code,
                e.response.text[:200],
            )
            return None
        except httpx.RequestError as e:
            logger.error("Yahoo Finance request error for %s on %s: %s", symbol, day, e)
            return None
        except ValueError as e:
            logger.error("Yahoo Finance returned invalid JSON for %s: %s", symbol, e)
            return None

        if not isinstance(data, dict):
            return None

        chart = data.get("chart")
        if not isinstance(chart, dict):
            logger.warning("Yahoo Finance returned no chart for %s on %s", symbol, day)
            return None

        err = chart.get("error")
        if err:
            if isinstance(err, dict):
                err = f"{err.get('code')} ({err.get('description')})"
            logger.warning("Yahoo Finance API error for %s: %s", symbol, err)
            return None

        results = chart.get("result")
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            logger.warning("Yahoo Finance returned no results for %s on %s", symbol, day)
            return None

        return results[0]

    async def fetch_price(self, symbol: str, day: date) -> float | None:
        """Return the close for ``symbol`` on ``day``, or None."""
        symbol = require_symbol(symbol)
        raw = await self._fetch_chart(symbol, day)
        if raw is None:
            return None

        price = extract_close(raw)
        if price is None:
            logger.warning("Yahoo Finance has no close for %s on %s", symbol, day)
        return price
