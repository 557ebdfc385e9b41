"""Historical price cache-aside service and preload."""

from folio_prices.history.service import (
    FetchResult,
    HistoricalPriceService,
    iter_days,
    one_year_before,
)

__all__ = [
    "FetchResult",
    "HistoricalPriceService",
    "iter_days",
    "one_year_before",
]
