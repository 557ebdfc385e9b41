"""Historical price provider protocol: the source-agnostic interface layer.

Architecture
------------
Each external market-data source is wrapped by one provider:

    (symbol, day) → HistoricalPriceProvider → price | None

- A provider answers exactly one question: what was the reference price of
  ``symbol`` on the UTC calendar day ``day``?
- ``None`` means "unknown" (no data, request failed, unexpected response).
  Providers never raise for missing data; they raise only when misused.
- Providers hold no cache. Caching is the job of ``HistoricalPriceService``.

Which provider serves which asset class is decided by an explicit mapping
built at service construction time (see ``build_providers``).
"""

from __future__ import annotations

from datetime import date
from typing import Protocol, runtime_checkable

from folio_prices.core.models import PriceSource


@runtime_checkable
class HistoricalPriceProvider(Protocol):
    """Fetches a single day's historical price from one external source.

    Attributes
    ----------
    source : PriceSource
        Provenance tag written on records created from this provider.
    """

    source: PriceSource

    async def fetch_price(self, symbol: str, day: date) -> float | None:
        """Return the day's price in USD, or None when it is unavailable."""
        ...


def require_symbol(symbol: str) -> str:
    """Validate a provider symbol argument. Raises ValueError when blank."""
    if not isinstance(symbol, str) or not symbol.strip():
        raise ValueError(f"symbol must be a non-empty string, got {symbol!r}")
    return symbol.strip()


def positive_or_none(value: object) -> float | None:
    """Coerce a raw JSON price to a positive float, or None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    price = float(value)
    return price if price > 0 else None
