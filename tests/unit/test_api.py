"""Tests for the FastAPI REST API module."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from folio_prices.api.app import create_app
from folio_prices.core.config import FolioConfig, PreloadConfig, StorageConfig
from folio_prices.core.models import AssetType, PriceSource, StorageBackend
from folio_prices.storage.store import create_store


# -- Fixtures --


def _make_config(tmp_path):
    """Create a test config."""
    return FolioConfig(
        storage=StorageConfig(
            backend=StorageBackend.SQLITE,
            sqlite_path=str(tmp_path / "api.db"),
        ),
        preload=PreloadConfig(request_delay=0),
    )


def _utc_today():
    return datetime.now(UTC).date()


@pytest.fixture
def config(tmp_path):
    return _make_config(tmp_path)


@pytest.fixture
def providers(make_provider):
    return {
        AssetType.CRYPTO: make_provider(source=PriceSource.COINGECKO, default=65000.0),
        AssetType.STOCK: make_provider(default=180.0),
        AssetType.FOREX: make_provider(default=1.08),
    }


@pytest.fixture
def client(config, providers, btc_asset, aapl_asset, other_asset):
    """TestClient over a database seeded with three assets."""

    async def _seed():
        store = await create_store(config.storage)
        try:
            for asset in (btc_asset, aapl_asset, other_asset):
                await store.save_asset(asset)
        finally:
            await store.close()

    asyncio.run(_seed())
    app = create_app(config, providers=providers)
    with TestClient(app) as c:
        yield c


def _create(client, asset_id="asset-aapl", day="2024-03-01", price=150.0, **extra):
    return client.post(
        "/api/historical-prices",
        json={"assetId": asset_id, "date": day, "price": price, **extra},
    )


# -- Health --


class TestHealth:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["version"] == "0.1.0"
        assert data["storageBackend"] == "sqlite"
        assert data["totalAssets"] == 3
        assert data["totalPrices"] == 0


# -- Single-day lookup --


class TestGetPriceForDate:
    def test_cache_miss_fetches_and_caches(self, client, providers):
        resp = client.get("/api/historical-prices/asset-aapl/2024-03-01")
        assert resp.status_code == 200
        assert resp.json() == {
            "assetId": "asset-aapl",
            "date": "2024-03-01",
            "price": 180.0,
            "currency": "USD",
        }

        again = client.get("/api/historical-prices/asset-aapl/2024-03-01")
        assert again.json()["price"] == 180.0
        assert len(providers[AssetType.STOCK].calls) == 1

    def test_datetime_normalized_to_day(self, client, providers):
        resp = client.get("/api/historical-prices/asset-aapl/2024-03-01T23:00:00Z")
        assert resp.status_code == 200
        assert resp.json()["date"] == "2024-03-01"
        assert providers[AssetType.STOCK].calls[0][1].isoformat() == "2024-03-01"

    def test_currency_param(self, client):
        resp = client.get(
            "/api/historical-prices/asset-aapl/2024-03-01", params={"currency": "eur"}
        )
        assert resp.json()["currency"] == "EUR"

    def test_crypto_routed_to_crypto_provider(self, client, providers):
        resp = client.get("/api/historical-prices/asset-btc/2024-03-01")
        assert resp.json()["price"] == 65000.0
        assert providers[AssetType.STOCK].calls == []

    def test_unavailable_price_is_null(self, client, providers):
        providers[AssetType.STOCK].default = None
        resp = client.get("/api/historical-prices/asset-aapl/2024-03-01")
        assert resp.status_code == 200
        assert resp.json()["price"] is None

    def test_unsupported_asset_type_is_null(self, client, providers):
        resp = client.get("/api/historical-prices/asset-art/2024-03-01")
        assert resp.status_code == 200
        assert resp.json()["price"] is None
        assert all(p.calls == [] for p in providers.values())

    def test_unknown_asset(self, client):
        resp = client.get("/api/historical-prices/nope/2024-03-01")
        assert resp.status_code == 404
        assert resp.json()["error"] == "NotFoundError"

    def test_invalid_date(self, client):
        resp = client.get("/api/historical-prices/asset-aapl/not-a-date")
        assert resp.status_code == 400
        assert resp.json()["error"] == "ValidationError"


# -- Range and latest --


class TestRange:
    def test_range(self, client):
        for day, price in [("2024-03-03", 3.0), ("2024-03-01", 1.0), ("2024-03-02", 2.0)]:
            assert _create(client, day=day, price=price).status_code == 201

        resp = client.get(
            "/api/historical-prices/asset-aapl/range",
            params={"startDate": "2024-03-01", "endDate": "2024-03-02"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["assetId"] == "asset-aapl"
        assert data["startDate"] == "2024-03-01"
        assert data["endDate"] == "2024-03-02"
        assert [p["price"] for p in data["prices"]] == [1.0, 2.0]
        assert set(data["prices"][0]) == {
            "id",
            "assetId",
            "date",
            "price",
            "currency",
            "source",
            "createdAt",
        }

    def test_empty_range(self, client):
        resp = client.get(
            "/api/historical-prices/asset-aapl/range",
            params={"startDate": "2024-03-01", "endDate": "2024-03-31"},
        )
        assert resp.status_code == 200
        assert resp.json()["prices"] == []

    def test_missing_params(self, client):
        resp = client.get(
            "/api/historical-prices/asset-aapl/range", params={"startDate": "2024-03-01"}
        )
        assert resp.status_code == 400
        assert "endDate" in resp.json()["detail"]

    def test_invalid_date(self, client):
        resp = client.get(
            "/api/historical-prices/asset-aapl/range",
            params={"startDate": "garbage", "endDate": "2024-03-01"},
        )
        assert resp.status_code == 400

    def test_reversed_range(self, client):
        resp = client.get(
            "/api/historical-prices/asset-aapl/range",
            params={"startDate": "2024-03-05", "endDate": "2024-03-01"},
        )
        assert resp.status_code == 400


class TestLatest:
    def test_no_prices(self, client):
        resp = client.get("/api/historical-prices/asset-aapl/latest")
        assert resp.status_code == 404

    def test_latest(self, client):
        _create(client, day="2024-03-01", price=1.0)
        _create(client, day="2024-05-01", price=5.0)

        resp = client.get("/api/historical-prices/asset-aapl/latest")
        assert resp.status_code == 200
        assert resp.json()["price"]["date"] == "2024-05-01"
        assert resp.json()["price"]["price"] == 5.0


# -- Writes --


class TestCreate:
    def test_create(self, client):
        resp = _create(client, currency="eur")
        assert resp.status_code == 201
        record = resp.json()["historicalPrice"]
        assert record["assetId"] == "asset-aapl"
        assert record["date"] == "2024-03-01"
        assert record["price"] == 150.0
        assert record["currency"] == "EUR"
        assert record["source"] == "MANUAL"
        assert record["id"]

    def test_create_with_datetime(self, client):
        resp = _create(client, day="2024-03-01T18:45:00Z")
        assert resp.json()["historicalPrice"]["date"] == "2024-03-01"

    def test_duplicate_day_conflicts(self, client):
        assert _create(client, price=1.0).status_code == 201
        resp = _create(client, day="2024-03-01T09:00:00Z", price=2.0)
        assert resp.status_code == 409
        assert resp.json()["error"] == "DuplicateKeyError"

    def test_missing_price(self, client):
        resp = client.post(
            "/api/historical-prices", json={"assetId": "asset-aapl", "date": "2024-03-01"}
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "ValidationError"

    @pytest.mark.parametrize("price", [0, -5])
    def test_non_positive_price(self, client, price):
        assert _create(client, price=price).status_code == 400

    def test_invalid_date(self, client):
        assert _create(client, day="03/01/2024").status_code == 400

    def test_unknown_asset(self, client):
        assert _create(client, asset_id="nope").status_code == 404


class TestDelete:
    def test_delete(self, client):
        price_id = _create(client).json()["historicalPrice"]["id"]

        resp = client.delete(f"/api/historical-prices/{price_id}")
        assert resp.status_code == 200
        assert resp.json() == {"message": "Historical price deleted"}

        assert client.delete(f"/api/historical-prices/{price_id}").status_code == 404


class TestCleanup:
    def test_cleanup(self, client):
        today = _utc_today()
        _create(client, day=(today - timedelta(days=400)).isoformat(), price=1.0)
        _create(client, day=(today - timedelta(days=10)).isoformat(), price=2.0)

        resp = client.delete("/api/historical-prices/cleanup/old")
        assert resp.status_code == 200
        assert resp.json() == {"message": "Historical price cleanup completed", "deleted": 1}

        latest = client.get("/api/historical-prices/asset-aapl/latest").json()
        assert latest["price"]["price"] == 2.0


# -- Preload --


class TestPreload:
    def test_preload(self, client, providers):
        start = (_utc_today() - timedelta(days=2)).isoformat()

        resp = client.post(
            "/api/historical-prices/asset-aapl/preload",
            json={"firstTransactionDate": start},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["message"] == "Historical price preload completed"
        assert data["assetId"] == "asset-aapl"
        assert data["firstTransactionDate"] == start
        assert data["result"] == {"loaded": 3, "skipped": 0, "errors": 0}

        again = client.post(
            "/api/historical-prices/asset-aapl/preload",
            json={"firstTransactionDate": start},
        )
        assert again.json()["result"] == {"loaded": 0, "skipped": 3, "errors": 0}
        assert len(providers[AssetType.STOCK].calls) == 3

    def test_unknown_asset(self, client):
        resp = client.post(
            "/api/historical-prices/nope/preload",
            json={"firstTransactionDate": "2024-03-01"},
        )
        assert resp.status_code == 404

    def test_missing_body_field(self, client):
        resp = client.post("/api/historical-prices/asset-aapl/preload", json={})
        assert resp.status_code == 400

    def test_invalid_date(self, client):
        resp = client.post(
            "/api/historical-prices/asset-aapl/preload",
            json={"firstTransactionDate": "soon"},
        )
        assert resp.status_code == 400
