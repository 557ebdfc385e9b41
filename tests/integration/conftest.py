"""Integration test fixtures: real SQLite files, mocked network."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from folio_prices.core.config import (
    FolioConfig,
    PreloadConfig,
    ProvidersConfig,
    StorageConfig,
)
from folio_prices.core.models import Asset, AssetType, StorageBackend
from folio_prices.storage.store import SqliteStore

INTEGRATION_NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def integration_config(tmp_path: Path) -> FolioConfig:
    return FolioConfig(
        storage=StorageConfig(
            backend=StorageBackend.SQLITE,
            sqlite_path=str(tmp_path / "integration.db"),
        ),
        providers=ProvidersConfig(),
        preload=PreloadConfig(request_delay=0),
    )


@pytest.fixture
async def integration_store(integration_config: FolioConfig) -> SqliteStore:
    """An initialized SqliteStore backed by a file."""
    store = SqliteStore(integration_config.storage)
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
async def seeded_store(integration_store: SqliteStore) -> SqliteStore:
    """A store with one asset of each class registered."""
    for asset in (
        Asset(id="btc", symbol="bitcoin", type=AssetType.CRYPTO, name="Bitcoin"),
        Asset(id="aapl", symbol="AAPL", type=AssetType.STOCK, name="Apple Inc."),
        Asset(id="eur", symbol="EURUSD=X", type=AssetType.FOREX, name="Euro", currency="USD"),
        Asset(id="house", symbol="HOUSE", type=AssetType.OTHER, name="Apartment"),
    ):
        await integration_store.save_asset(asset)
    return integration_store


@pytest.fixture
def integration_clock():
    return lambda: INTEGRATION_NOW
