"""Persistence for historical prices and the asset lookup."""

from folio_prices.storage.store import (
    AssetReader,
    HistoricalPriceStore,
    SqliteStore,
    create_store,
)

__all__ = [
    "AssetReader",
    "HistoricalPriceStore",
    "SqliteStore",
    "create_store",
]
