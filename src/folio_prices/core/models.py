"""Pydantic data models for assets and historical prices."""

from __future__ import annotations

from datetime import UTC, date, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator

from folio_prices.core.exceptions import ValidationError

# --- Type Aliases ---

AssetId = str
PriceId = str

# --- Enumerations ---


class AssetType(StrEnum):
    """Asset classes tracked by the portfolio."""

    CRYPTO = "CRYPTO"
    STOCK = "STOCK"
    FOREX = "FOREX"
    OTHER = "OTHER"


class PriceSource(StrEnum):
    """Provenance tag of a historical price record. Informational only."""

    COINGECKO = "COINGECKO"
    YAHOO = "YAHOO"
    MANUAL = "MANUAL"


class StorageBackend(StrEnum):
    """Supported storage backends."""

    SQLITE = "sqlite"


# --- Day Handling ---


def to_utc_day(value: date | datetime) -> date:
    """Truncate a date or datetime to its UTC calendar day.

    Naive datetimes are taken to already be in UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.date()
    return value


def day_start(day: date) -> datetime:
    """UTC midnight at the start of ``day``."""
    return datetime(day.year, day.month, day.day, tzinfo=UTC)


def parse_day(text: str, field: str = "date") -> date:
    """Parse an ISO date or datetime string into its UTC calendar day.

    Raises:
        ValidationError: If the text is empty or not ISO-8601.
    """
    raw = (text or "").strip()
    if not raw:
        raise ValidationError(
            f"{field} is required", context={"field": field, "value": text}
        )
    try:
        if len(raw) == 10:
            return date.fromisoformat(raw)
        return to_utc_day(datetime.fromisoformat(raw))
    except ValueError as e:
        raise ValidationError(
            f"Invalid {field}: {text!r}", context={"field": field, "value": text}
        ) from e


# --- Asset ---


class Asset(BaseModel):
    """A tracked holding. Owned by the host application; read-only here."""

    model_config = ConfigDict(frozen=True)

    id: AssetId
    symbol: str
    type: AssetType
    name: str
    currency: str = "USD"

    @field_validator("symbol")
    @classmethod
    def symbol_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("symbol must not be blank")
        return v.strip()


# --- Historical Prices ---


class NewHistoricalPrice(BaseModel):
    """A price observation that has not been persisted yet."""

    model_config = ConfigDict(frozen=True)

    asset_id: AssetId
    date: date
    price: float
    currency: str = "USD"
    source: PriceSource = PriceSource.MANUAL

    @field_validator("price")
    @classmethod
    def price_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"price must be > 0, got {v}")
        return v

    @field_validator("currency")
    @classmethod
    def currency_upper(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("currency must not be blank")
        return v.strip().upper()


class HistoricalPrice(NewHistoricalPrice):
    """One persisted price for one asset on one UTC calendar day."""

    id: PriceId
    created_at: datetime


class PreloadResult(BaseModel):
    """Counters returned by a preload run."""

    model_config = ConfigDict(frozen=True)

    loaded: int = 0
    skipped: int = 0
    errors: int = 0
