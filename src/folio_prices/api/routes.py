"""FastAPI route definitions for the Folio Prices API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

import folio_prices
from folio_prices.api.deps import get_config, get_service, get_store
from folio_prices.api.schemas import (
    CleanupResponse,
    CreatePriceRequest,
    CreatePriceResponse,
    HealthResponse,
    HistoricalPriceResponse,
    LatestPriceResponse,
    MessageResponse,
    PreloadCounts,
    PreloadRequest,
    PreloadResponse,
    PriceLookupResponse,
    PriceRangeResponse,
)
from folio_prices.core.exceptions import NotFoundError, ValidationError
from folio_prices.core.models import Asset, parse_day
from folio_prices.history.service import HistoricalPriceService
from folio_prices.storage.store import SqliteStore

router = APIRouter()


# -- Health --


@router.get("/health", response_model=HealthResponse)
async def health_check(
    store: SqliteStore = Depends(get_store),
    config=Depends(get_config),
):
    """System health and basic statistics."""
    stats = await store.get_statistics()
    return HealthResponse(
        status="ok",
        version=folio_prices.__version__,
        storage_backend=str(config.storage.backend.value),
        total_prices=stats["total_prices"],
        total_assets=stats["total_assets"],
    )


# -- Lookups --


@router.get("/historical-prices/{asset_id}/range", response_model=PriceRangeResponse)
async def get_price_range(
    asset_id: str,
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    service: HistoricalPriceService = Depends(get_service),
):
    """Cached prices for an inclusive date range."""
    start = parse_day(start_date or "", field="startDate")
    end = parse_day(end_date or "", field="endDate")
    if end < start:
        raise ValidationError(
            "endDate must not be before startDate",
            context={"field": "endDate", "value": end_date},
        )

    prices = await service.get_prices_in_range(asset_id, start, end)
    return PriceRangeResponse(
        asset_id=asset_id,
        start_date=start,
        end_date=end,
        prices=[HistoricalPriceResponse.from_record(p) for p in prices],
    )


@router.get("/historical-prices/{asset_id}/latest", response_model=LatestPriceResponse)
async def get_latest_price(
    asset_id: str,
    service: HistoricalPriceService = Depends(get_service),
):
    """Most recent cached price for an asset."""
    record = await service.get_latest_price(asset_id)
    if record is None:
        raise NotFoundError(
            f"No historical price found for asset '{asset_id}'",
            context={"asset_id": asset_id},
        )
    return LatestPriceResponse(price=HistoricalPriceResponse.from_record(record))


@router.get("/historical-prices/{asset_id}/{day}", response_model=PriceLookupResponse)
async def get_price_for_date(
    asset_id: str,
    day: str,
    currency: str = Query("USD", min_length=1, max_length=10),
    store: SqliteStore = Depends(get_store),
    service: HistoricalPriceService = Depends(get_service),
):
    """Price on one day, fetched from the provider on a cache miss.

    An unavailable price is returned as ``null``, not as an error.
    """
    target = parse_day(day)
    asset = await _require_asset(store, asset_id)
    price = await service.get_price(asset, target, currency.upper())
    return PriceLookupResponse(
        asset_id=asset_id, date=target, price=price, currency=currency.upper()
    )


# -- Writes --


@router.post(
    "/historical-prices", response_model=CreatePriceResponse, status_code=201
)
async def create_price(
    request: CreatePriceRequest,
    store: SqliteStore = Depends(get_store),
    service: HistoricalPriceService = Depends(get_service),
):
    """Record a price manually."""
    target = parse_day(request.date)
    await _require_asset(store, request.asset_id)
    record = await service.create_manual_price(
        asset_id=request.asset_id,
        when=target,
        price=request.price,
        currency=request.currency,
        source=request.source,
    )
    return CreatePriceResponse(
        historical_price=HistoricalPriceResponse.from_record(record)
    )


@router.delete("/historical-prices/cleanup/old", response_model=CleanupResponse)
async def cleanup_old_prices(
    service: HistoricalPriceService = Depends(get_service),
):
    """Delete prices dated a year ago or earlier."""
    deleted = await service.cleanup_old_prices()
    return CleanupResponse(
        message="Historical price cleanup completed", deleted=deleted
    )


@router.delete("/historical-prices/{price_id}", response_model=MessageResponse)
async def delete_price(
    price_id: str,
    service: HistoricalPriceService = Depends(get_service),
):
    """Delete one price record."""
    await service.delete_price(price_id)
    return MessageResponse(message="Historical price deleted")


# -- Preload --


@router.post(
    "/historical-prices/{asset_id}/preload", response_model=PreloadResponse
)
async def preload_prices(
    asset_id: str,
    request: PreloadRequest,
    store: SqliteStore = Depends(get_store),
    service: HistoricalPriceService = Depends(get_service),
):
    """Fill the cache from the first transaction date through today."""
    first_day = parse_day(request.first_transaction_date, field="firstTransactionDate")
    asset = await _require_asset(store, asset_id)
    result = await service.preload_historical_prices(asset, first_day)
    return PreloadResponse(
        message="Historical price preload completed",
        asset_id=asset_id,
        first_transaction_date=first_day,
        result=PreloadCounts(**result.model_dump()),
    )


# -- Helpers --


async def _require_asset(store: SqliteStore, asset_id: str) -> Asset:
    """Resolve an asset id or raise NotFoundError."""
    asset = await store.get_asset(asset_id)
    if asset is None:
        raise NotFoundError(
            f"Asset not found: '{asset_id}'", context={"asset_id": asset_id}
        )
    return asset
