"""Asset-type → provider mapping."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from folio_prices.core.config import ProvidersConfig
from folio_prices.core.models import AssetType
from folio_prices.providers.base import HistoricalPriceProvider
from folio_prices.providers.coingecko import CoinGeckoHistoryProvider
from folio_prices.providers.yahoo import YahooHistoryProvider


def build_providers(
    config: ProvidersConfig,
    clock: Callable[[], datetime] | None = None,
) -> dict[AssetType, HistoricalPriceProvider]:
    """Build the provider for each supported asset class.

    Asset types missing from the mapping (``OTHER``) have no historical
    source; lookups for them resolve to None.
    """
    crypto = CoinGeckoHistoryProvider(
        timeout=config.request_timeout,
        base_url=config.coingecko_base_url,
        max_age_days=config.crypto_max_age_days,
        user_agent=config.user_agent,
        clock=clock,
    )
    equity = YahooHistoryProvider(
        timeout=config.request_timeout,
        base_url=config.yahoo_base_url,
        user_agent=config.user_agent,
    )
    return {
        AssetType.CRYPTO: crypto,
        AssetType.STOCK: equity,
        AssetType.FOREX: equity,
    }
