"""folio_prices.core: Foundation types, config, and exceptions."""

from folio_prices.core.config import (
    APIConfig,
    FolioConfig,
    PreloadConfig,
    ProvidersConfig,
    StorageConfig,
    load_config,
)
from folio_prices.core.exceptions import (
    ConfigError,
    DuplicateKeyError,
    FolioPricesError,
    NotFoundError,
    ProviderError,
    StorageError,
    ValidationError,
)
from folio_prices.core.models import (
    Asset,
    AssetId,
    AssetType,
    HistoricalPrice,
    NewHistoricalPrice,
    PreloadResult,
    PriceId,
    PriceSource,
    StorageBackend,
    day_start,
    parse_day,
    to_utc_day,
)

__all__ = [
    # Type aliases
    "AssetId",
    "PriceId",
    # Enums
    "AssetType",
    "PriceSource",
    "StorageBackend",
    # Models
    "Asset",
    "NewHistoricalPrice",
    "HistoricalPrice",
    "PreloadResult",
    # Day helpers
    "to_utc_day",
    "day_start",
    "parse_day",
    # Config
    "FolioConfig",
    "StorageConfig",
    "ProvidersConfig",
    "PreloadConfig",
    "APIConfig",
    "load_config",
    # Exceptions
    "FolioPricesError",
    "ConfigError",
    "ValidationError",
    "NotFoundError",
    "ProviderError",
    "StorageError",
    "DuplicateKeyError",
]
