"""Historical market-data providers.

Built-in implementations:

- ``CoinGeckoHistoryProvider``: crypto daily prices from CoinGecko.
- ``YahooHistoryProvider``: stock and forex daily closes from Yahoo Finance.

Adding a new price source:
1. Write a class with a ``source`` tag and ``async fetch_price(symbol, day)``.
2. Map the asset types it serves in ``build_providers``.
"""

from folio_prices.providers.base import HistoricalPriceProvider
from folio_prices.providers.coingecko import CoinGeckoHistoryProvider
from folio_prices.providers.factory import build_providers
from folio_prices.providers.yahoo import YahooHistoryProvider

__all__ = [
    "HistoricalPriceProvider",
    "CoinGeckoHistoryProvider",
    "YahooHistoryProvider",
    "build_providers",
]
