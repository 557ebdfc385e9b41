"""FastAPI application factory."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from folio_prices.api.deps import AppState
from folio_prices.api.routes import router
from folio_prices.core.config import FolioConfig, load_config
from folio_prices.core.exceptions import (
    ConfigError,
    DuplicateKeyError,
    FolioPricesError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from folio_prices.core.models import AssetType
from folio_prices.history.service import HistoricalPriceService
from folio_prices.providers import HistoricalPriceProvider, build_providers
from folio_prices.storage.store import create_store

logger = logging.getLogger(__name__)

_STATUS_MAP: dict[type[FolioPricesError], int] = {
    ValidationError: 400,
    ConfigError: 400,
    NotFoundError: 404,
    DuplicateKeyError: 409,
    StorageError: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown lifecycle."""
    config = app.state._pending_config or load_config()
    providers = app.state._pending_providers
    if providers is None:
        providers = build_providers(config.providers)
    store = await create_store(config.storage)
    service = HistoricalPriceService(
        store=store,
        providers=providers,
        request_delay=config.preload.request_delay,
    )

    app.state.app_state = AppState(config=config, store=store, service=service)

    yield

    await store.close()


def create_app(
    config: FolioConfig | None = None,
    providers: Mapping[AssetType, HistoricalPriceProvider] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    import folio_prices

    app = FastAPI(
        title="Folio Prices API",
        description="Historical price cache for the portfolio tracker",
        version=folio_prices.__version__,
        lifespan=lifespan,
    )

    # Stash config and providers so lifespan can retrieve them
    app.state._pending_config = config
    app.state._pending_providers = providers

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api")

    # Exception handlers
    @app.exception_handler(FolioPricesError)
    async def folio_exception_handler(request: Request, exc: FolioPricesError):
        status = next(
            (code for cls, code in _STATUS_MAP.items() if isinstance(exc, cls)), 500
        )
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status,
            content={"error": type(exc).__name__, "detail": str(exc)},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        detail = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
            for err in exc.errors()
        )
        return JSONResponse(
            status_code=400,
            content={"error": "ValidationError", "detail": detail},
        )

    return app
