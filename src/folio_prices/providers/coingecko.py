"""CoinGecko historical price provider.

Uses the public ``/coins/{id}/history`` endpoint, which returns a market
snapshot for a single day. The symbol is CoinGecko's coin id (``bitcoin``,
``ethereum``), not the display ticker. The free endpoint does not serve old
history reliably, so days beyond ``max_age_days`` are refused locally.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any

import httpx

from folio_prices.core.models import PriceSource
from folio_prices.providers.base import positive_or_none, require_symbol

logger = logging.getLogger(__name__)

_BASE_URL = "https://api.coingecko.com/api/v3"
_USER_AGENT = "Mozilla/5.0 (compatible; folio-prices/0.1)"
_DEFAULT_MAX_AGE_DAYS = 365


def format_history_date(day: date) -> str:
    """CoinGecko expects dd-mm-yyyy."""
    return day.strftime("%d-%m-%Y")


def extract_usd_price(raw_data: Any) -> float | None:
    """Read ``market_data.current_price.usd`` from a history response."""
    if not isinstance(raw_data, dict):
        return None
    market_data = raw_data.get("market_data")
    if not isinstance(market_data, dict):
        return None
    current = market_data.get("current_price")
    if not isinstance(current, dict):
        return None
    return positive_or_none(current.get("usd"))


class CoinGeckoHistoryProvider:
    """Fetches daily USD prices for crypto assets from CoinGecko.

    Parameters
    ----------
    timeout : float
        HTTP request timeout in seconds. Default: 15.0.
    base_url : str
        Override base URL (useful for testing).
    max_age_days : int
        Oldest day, in calendar days before today (UTC), that will be
        requested. Older days return None without a request.
    user_agent : str
        User-Agent header sent with every request.
    clock : Callable[[], datetime] | None
        Returns the current aware datetime. Defaults to ``datetime.now(UTC)``.
    """

    source = PriceSource.COINGECKO

    def __init__(
        self,
        timeout: float = 15.0,
        base_url: str = _BASE_URL,
        max_age_days: int = _DEFAULT_MAX_AGE_DAYS,
        user_agent: str = _USER_AGENT,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._timeout = timeout
        self._base_url = base_url.rstrip("/")
        self._max_age_days = max_age_days
        self._user_agent = user_agent
        self._clock = clock or (lambda: datetime.now(UTC))

    def is_within_range(self, day: date) -> bool:
        """True when ``day`` is at most ``max_age_days`` before today (UTC)."""
        today = self._clock().astimezone(UTC).date()
        return (today - day).days <= self._max_age_days

    async def fetch_price(self, symbol: str, day: date) -> float | None:
        """Return the USD price of coin ``symbol`` on ``day``, or None."""
        symbol = require_symbol(symbol)
        if not self.is_within_range(day):
            logger.warning(
                "CoinGecko date out of range for %s: %s (more than %d days ago)",
                symbol,
                day,
                self._max_age_days,
            )
            return None

        url = f"{self._base_url}/coins/{symbol}/history"
        params = {"date": format_history_date(day), "localization": "false"}

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
                "CoinGecko HTTP error for %s on %s: %s %s",
                symbol,
                day,
                e.response.status_code,
                e.response.text[:200],
            )
            return None
        except httpx.RequestError as e:
            logger.error("CoinGecko request error for %s on %s: %s", symbol, day, e)
            return None
        except ValueError as e:
            logger.error("CoinGecko returned invalid JSON for %s: %s", symbol, e)
            return None

        price = extract_usd_price(data)
        if price is None:
            logger.warning("CoinGecko has no USD price for %s on %s", symbol, day)
        return price
