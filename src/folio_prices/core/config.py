"""Configuration loading, validation, and access."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, field_validator

from folio_prices.core.exceptions import ConfigError
from folio_prices.core.models import StorageBackend


class StorageConfig(BaseModel):
    """Storage backend configuration."""

    model_config = ConfigDict(frozen=True)

    backend: StorageBackend = StorageBackend.SQLITE
    sqlite_path: str = "./data/folio_prices.db"


class ProvidersConfig(BaseModel):
    """Market-data provider access configuration."""

    model_config = ConfigDict(frozen=True)

    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    yahoo_base_url: str = "https://query1.finance.yahoo.com"
    request_timeout: float = 15.0
    crypto_max_age_days: int = 365
    user_agent: str = "Mozilla/5.0 (compatible; folio-prices/0.1)"

    @field_validator("coingecko_base_url", "yahoo_base_url")
    @classmethod
    def url_must_be_http(cls, v: str) -> str:
        if not v.startswith(("https://", "http://")):
            raise ValueError("provider base URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("request_timeout")
    @classmethod
    def timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("request_timeout must be > 0")
        return v

    @field_validator("crypto_max_age_days")
    @classmethod
    def max_age_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("crypto_max_age_days must be >= 1")
        return v


class PreloadConfig(BaseModel):
    """Bulk preload pacing."""

    model_config = ConfigDict(frozen=True)

    request_delay: float = 0.1

    @field_validator("request_delay")
    @classmethod
    def delay_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("request_delay must be >= 0")
        return v


class APIConfig(BaseModel):
    """FastAPI server configuration."""

    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 8000


class FolioConfig(BaseModel):
    """Root configuration for folio-prices."""

    model_config = ConfigDict(frozen=True)

    storage: StorageConfig = StorageConfig()
    providers: ProvidersConfig = ProvidersConfig()
    preload: PreloadConfig = PreloadConfig()
    api: APIConfig = APIConfig()


_ENV_PREFIX = "FOLIO_PRICES_"
_CONFIG_ENV_VAR = f"{_ENV_PREFIX}CONFIG"
_DEFAULT_CONFIG_FILE = "folio-prices.yml"


def load_config(
    config_path: str | None = None,
    env_prefix: str = _ENV_PREFIX,
) -> FolioConfig:
    """Build a FolioConfig from the built-in defaults, a YAML file and the environment.

    The YAML file is the first of: ``config_path``, the file named by
    ``FOLIO_PRICES_CONFIG``, or ``./folio-prices.yml`` when it exists.
    Running with no file at all is fine; every section has defaults
    (SQLite at ``./data/folio_prices.db``, a 0.1 s preload delay, crypto
    lookups limited to 365 days back).

    Environment variables win over the file. Sections and keys are joined
    with a double underscore::

        FOLIO_PRICES_PROVIDERS__CRYPTO_MAX_AGE_DAYS=30   providers.crypto_max_age_days
        FOLIO_PRICES_PRELOAD__REQUEST_DELAY=0            preload.request_delay

    Raises:
        ConfigError: missing or unreadable file, malformed YAML, or a value
            the models reject.
    """
    try:
        path = _resolve_config_path(config_path)
        raw = _load_yaml(path) if path is not None else {}
        return FolioConfig.model_validate(_merge_env_vars(raw, env_prefix))
    except ConfigError:
        raise
    except Exception as e:
        raise ConfigError(str(e), context={"source": "load_config"}) from e


def _resolve_config_path(explicit: str | None) -> Path | None:
    """Pick the YAML file to read, or None to run on defaults alone.

    A path given explicitly or through the environment must exist; the
    default file in the working directory is optional.
    """
    candidates = (
        (explicit, "config_path", "Config file not found"),
        (
            os.environ.get(_CONFIG_ENV_VAR),
            _CONFIG_ENV_VAR,
            f"Config file from {_CONFIG_ENV_VAR} not found",
        ),
    )
    for value, field, message in candidates:
        if not value:
            continue
        path = Path(value)
        if not path.exists():
            raise ConfigError(f"{message}: {value}", context={"field": field, "value": value})
        return path

    default = Path(_DEFAULT_CONFIG_FILE)
    return default if default.exists() else None


def _load_yaml(path: Path) -> dict:
    context = {"field": "config_file", "value": str(path)}
    try:
        data = yaml.safe_load(path.read_text())
    except OSError as e:
        raise ConfigError(f"Cannot read config file: {e}", context=context) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config: {e}", context=context) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"YAML config must be a mapping, got {type(data).__name__}", context=context
        )
    return data


def _merge_env_vars(base: dict, prefix: str) -> dict:
    """Return a copy of ``base`` with ``<prefix>SECTION__KEY`` variables applied.

    Sections touched by a variable are copied before being written, so
    ``base`` is left as loaded. ``<prefix>CONFIG`` names the file and is
    not a setting. Names with an empty segment are ignored.
    """
    result = dict(base)
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        path = key[len(prefix) :].lower().split("__")
        if path == ["config"] or not all(path):
            continue

        section = result
        for name in path[:-1]:
            nested = section.get(name)
            section[name] = dict(nested) if isinstance(nested, dict) else {}
            section = section[name]
        section[path[-1]] = _auto_cast(value)
    return result


def _auto_cast(value: str) -> str | int | float | bool:
    """Turn "true"/"false" into bools and numeric strings into numbers."""
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            continue
    return value
