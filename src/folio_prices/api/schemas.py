"""API-specific request/response schemas (Pydantic v2).

Wire format uses camelCase keys, matching the portfolio frontend.
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from folio_prices.core.models import HistoricalPrice, PriceSource


class CamelModel(BaseModel):
    """Base schema serialized with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -- Error --


class ErrorResponse(CamelModel):
    """Standard error envelope."""

    error: str
    detail: str | None = None


# -- Records --


class HistoricalPriceResponse(CamelModel):
    """One cached price record."""

    id: str
    asset_id: str
    date: date
    price: float
    currency: str
    source: PriceSource
    created_at: datetime

    @classmethod
    def from_record(cls, record: HistoricalPrice) -> HistoricalPriceResponse:
        return cls(**record.model_dump())


# -- Lookups --


class PriceLookupResponse(CamelModel):
    """Price of one asset on one day. ``price`` is null when unknown."""

    asset_id: str
    date: date
    price: float | None
    currency: str


class PriceRangeResponse(CamelModel):
    """Cached prices for an inclusive date range, oldest first."""

    asset_id: str
    start_date: date
    end_date: date
    prices: list[HistoricalPriceResponse]


class LatestPriceResponse(CamelModel):
    """Most recent cached record for an asset."""

    price: HistoricalPriceResponse


# -- Writes --


class CreatePriceRequest(CamelModel):
    """Request body for POST /api/historical-prices."""

    asset_id: str = Field(..., min_length=1)
    date: str = Field(..., min_length=1)
    price: float = Field(..., gt=0)
    currency: str = Field(default="USD", min_length=1, max_length=10)
    source: PriceSource = PriceSource.MANUAL


class CreatePriceResponse(CamelModel):
    """Response for a manual price creation."""

    historical_price: HistoricalPriceResponse


class MessageResponse(CamelModel):
    """Acknowledgement of a deletion."""

    message: str


class CleanupResponse(MessageResponse):
    """Result of the age-based cleanup sweep."""

    deleted: int


# -- Preload --


class PreloadRequest(CamelModel):
    """Request body for POST /api/historical-prices/{assetId}/preload."""

    first_transaction_date: str = Field(..., min_length=1)


class PreloadCounts(CamelModel):
    loaded: int
    skipped: int
    errors: int


class PreloadResponse(CamelModel):
    """Counters of a completed preload run."""

    message: str
    asset_id: str
    first_transaction_date: date
    result: PreloadCounts


# -- Health --


class HealthResponse(CamelModel):
    """Response for GET /api/health."""

    status: str = "ok"
    version: str
    storage_backend: str
    total_prices: int
    total_assets: int
