"""Shared pytest fixtures for folio-prices."""

from __future__ import annotations

from datetime import UTC, date, datetime

import pytest

from folio_prices.core.config import StorageConfig
from folio_prices.core.models import Asset, AssetType, PriceSource, StorageBackend
from folio_prices.storage.store import SqliteStore

FIXED_NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


class FakeProvider:
    """In-memory HistoricalPriceProvider that records its calls.

    ``prices`` maps day → price; days not listed return ``default``.
    Days in ``fail_on`` raise instead of answering.
    """

    def __init__(
        self,
        source: PriceSource = PriceSource.YAHOO,
        default: float | None = None,
        prices: dict[date, float | None] | None = None,
        fail_on: set[date] | None = None,
    ) -> None:
        self.source = source
        self.default = default
        self.prices = dict(prices or {})
        self.fail_on = set(fail_on or ())
        self.calls: list[tuple[str, date]] = []

    async def fetch_price(self, symbol: str, day: date) -> float | None:
        self.calls.append((symbol, day))
        if day in self.fail_on:
            raise RuntimeError(f"provider exploded on {day}")
        return self.prices.get(day, self.default)


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def fixed_today(fixed_now):
    return fixed_now.date()


@pytest.fixture
def fixed_clock(fixed_now):
    return lambda: fixed_now


@pytest.fixture
def make_provider():
    """Factory for FakeProvider instances."""

    def _make(**kwargs) -> FakeProvider:
        return FakeProvider(**kwargs)

    return _make


@pytest.fixture
def btc_asset() -> Asset:
    return Asset(id="asset-btc", symbol="bitcoin", type=AssetType.CRYPTO, name="Bitcoin")


@pytest.fixture
def aapl_asset() -> Asset:
    return Asset(id="asset-aapl", symbol="AAPL", type=AssetType.STOCK, name="Apple Inc.")


@pytest.fixture
def eur_asset() -> Asset:
    return Asset(id="asset-eur", symbol="EURUSD=X", type=AssetType.FOREX, name="Euro")


@pytest.fixture
def other_asset() -> Asset:
    return Asset(id="asset-art", symbol="MONA", type=AssetType.OTHER, name="Painting")


@pytest.fixture
async def store():
    """An initialized in-memory SqliteStore."""
    config = StorageConfig(backend=StorageBackend.SQLITE, sqlite_path=":memory:")
    s = SqliteStore(config)
    await s.initialize()
    yield s
    await s.close()
