"""Custom exception hierarchy for folio-prices."""

from typing import Any


class FolioPricesError(Exception):
    """Base exception for all folio-prices errors.

    All exceptions carry an optional `context` dict for structured error
    metadata that can be logged or serialized without parsing the message.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(FolioPricesError):
    """Invalid or missing configuration.

    Raised by load_config() during startup. Should be treated as fatal.

    Context keys:
        field (str): the config field that failed validation
        value (Any): the invalid value
    """


class ValidationError(FolioPricesError):
    """Malformed or missing input at the API/CLI boundary.

    Policy: reject with HTTP 400. Never reaches the service layer.

    Context keys:
        field (str): the offending input field
        value (Any): the raw value received
    """


class NotFoundError(FolioPricesError):
    """Referenced asset or price record does not exist.

    Context keys:
        asset_id: str | None
        price_id: str | None
    """


class ProviderError(FolioPricesError):
    """A market-data provider failed to produce a price.

    Policy: absorbed by HistoricalPriceService. Callers see ``None``,
    never this exception.

    Context keys:
        provider (str): "COINGECKO" or "YAHOO"
        symbol (str): the provider-specific symbol
        day (str): ISO date that was requested
    """


class StorageError(FolioPricesError):
    """Database operation failed.

    Policy: absorbed on read/cache paths, raised for explicit writes
    (manual create, delete, cleanup).

    Context keys:
        operation (str): "insert", "query", "delete", "migrate", etc.
        table (str): the table involved
    """


class DuplicateKeyError(StorageError):
    """A price record already exists for the (asset_id, date) pair.

    Context keys:
        asset_id: str
        date (str): ISO date of the conflicting record
    """
