"""Integration tests: CLI and REST API sharing one SQLite file."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from click.testing import CliRunner
from fastapi.testclient import TestClient

from folio_prices.api.app import create_app
from folio_prices.cli import cli
from folio_prices.core.models import AssetType, PriceSource

pytestmark = pytest.mark.integration


@pytest.fixture
def providers(make_provider):
    return {
        AssetType.CRYPTO: make_provider(source=PriceSource.COINGECKO, default=64000.0),
        AssetType.STOCK: make_provider(default=201.5),
        AssetType.FOREX: make_provider(default=1.09),
    }


@pytest.fixture
def cli_env(integration_config):
    return {
        "FOLIO_PRICES_STORAGE__SQLITE_PATH": integration_config.storage.sqlite_path,
        "FOLIO_PRICES_PRELOAD__REQUEST_DELAY": "0",
        "FOLIO_PRICES_CONFIG": None,
    }


def test_cli_registered_asset_served_by_api(integration_config, providers, cli_env):
    runner = CliRunner()
    result = runner.invoke(
        cli, ["add-asset", "aapl", "AAPL", "--type", "STOCK", "--name", "Apple"], env=cli_env
    )
    assert result.exit_code == 0, result.output

    with TestClient(create_app(integration_config, providers=providers)) as client:
        resp = client.get("/api/historical-prices/aapl/2024-03-01")
        assert resp.status_code == 200
        assert resp.json()["price"] == 201.5

    # The CLI sees the price the API cached, without another provider call
    with patch("folio_prices.cli.build_providers", return_value=providers):
        result = runner.invoke(cli, ["price", "aapl", "2024-03-01"], env=cli_env)
    assert result.exit_code == 0, result.output
    assert "2024-03-01\t201.5" in result.output
    assert len(providers[AssetType.STOCK].calls) == 1


def test_cache_persists_across_app_restarts(integration_config, providers, cli_env):
    runner = CliRunner()
    runner.invoke(cli, ["add-asset", "btc", "bitcoin", "--type", "CRYPTO"], env=cli_env)

    with TestClient(create_app(integration_config, providers=providers)) as client:
        created = client.post(
            "/api/historical-prices",
            json={"assetId": "btc", "date": "2024-03-01", "price": 61000.0},
        )
        assert created.status_code == 201
        assert client.get("/api/health").json()["totalPrices"] == 1

    with TestClient(create_app(integration_config, providers=providers)) as client:
        latest = client.get("/api/historical-prices/btc/latest")
        assert latest.status_code == 200
        assert latest.json()["price"]["price"] == 61000.0

        resp = client.get("/api/historical-prices/btc/2024-03-01")
        assert resp.json()["price"] == 61000.0

    assert providers[AssetType.CRYPTO].calls == []
