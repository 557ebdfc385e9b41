"""Dependency injection for FastAPI routes."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from folio_prices.core.config import FolioConfig
from folio_prices.history.service import HistoricalPriceService
from folio_prices.storage.store import SqliteStore


@dataclass
class AppState:
    """Shared application state, attached to app.state during lifespan."""

    config: FolioConfig
    store: SqliteStore
    service: HistoricalPriceService


def get_app_state(request: Request) -> AppState:
    """Dependency: retrieve AppState from the request."""
    return request.app.state.app_state


def get_config(request: Request) -> FolioConfig:
    """Dependency: retrieve config."""
    return request.app.state.app_state.config


def get_store(request: Request) -> SqliteStore:
    """Dependency: retrieve storage backend."""
    return request.app.state.app_state.store


def get_service(request: Request) -> HistoricalPriceService:
    """Dependency: retrieve the historical price service."""
    return request.app.state.app_state.service
