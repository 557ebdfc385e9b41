"""Click-based CLI for folio-prices.

Thin wrapper around library modules. Zero business logic: every operation
delegates to the storage layer or HistoricalPriceService.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys

import click
from rich.console import Console
from rich.table import Table

from folio_prices.providers import build_providers

console = Console(stderr=True)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Run an async coroutine from synchronous Click code."""
    return asyncio.run(coro)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=_LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    # Suppress per-request transport logs
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _load_config(ctx: click.Context):
    """Load config lazily, caching on first call."""
    if "config" not in ctx.obj:
        from folio_prices.core import load_config

        ctx.obj["config"] = load_config(config_path=ctx.obj.get("config_path"))
    return ctx.obj["config"]


async def _create_store_async(config):
    """Create and initialize storage from config."""
    from folio_prices.storage import create_store

    return await create_store(config.storage)


def _create_service(config, store):
    from folio_prices.history import HistoricalPriceService

    return HistoricalPriceService(
        store=store,
        providers=build_providers(config.providers),
        request_delay=config.preload.request_delay,
    )


def _parse_day_arg(value: str, field: str):
    from folio_prices.core import ValidationError, parse_day

    try:
        return parse_day(value, field=field)
    except ValidationError as e:
        raise click.BadParameter(str(e), param_hint=field) from e


async def _require_asset(store, asset_id: str):
    asset = await store.get_asset(asset_id)
    if asset is None:
        console.print(f"[red]Asset not found: {asset_id}[/red]")
        raise SystemExit(1)
    return asset


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="FOLIO_PRICES_CONFIG",
    default=None,
    help="Path to folio-prices.yml config file.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable debug logging.",
)
@click.version_option(package_name="folio-prices")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """Folio Prices: historical price cache for the portfolio tracker."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["console"] = console
    _configure_logging(verbose)


# ---------------------------------------------------------------------------
# add-asset
# ---------------------------------------------------------------------------


@cli.command("add-asset")
@click.argument("asset_id")
@click.argument("symbol")
@click.option(
    "--type",
    "asset_type",
    type=click.Choice(["CRYPTO", "STOCK", "FOREX", "OTHER"], case_sensitive=False),
    required=True,
    help="Asset class; decides which provider serves it.",
)
@click.option("--name", type=str, default=None, help="Display name. Default: symbol.")
@click.option("--currency", type=str, default="USD", show_default=True)
@click.pass_context
def add_asset(
    ctx: click.Context,
    asset_id: str,
    symbol: str,
    asset_type: str,
    name: str | None,
    currency: str,
) -> None:
    """Register an asset so its prices can be looked up."""
    from folio_prices.core import Asset, AssetType

    config = _load_config(ctx)
    asset = Asset(
        id=asset_id,
        symbol=symbol,
        type=AssetType(asset_type.upper()),
        name=name or symbol,
        currency=currency.upper(),
    )

    async def _run():
        store = await _create_store_async(config)
        try:
            await store.save_asset(asset)
        finally:
            await store.close()

    _run_async(_run())
    console.print(
        f"[green]✓[/green] Registered {asset.name} ({asset.type}) as {asset.id}"
    )


# ---------------------------------------------------------------------------
# price
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("asset_id")
@click.argument("day")
@click.option("--currency", type=str, default="USD", show_default=True)
@click.pass_context
def price(ctx: click.Context, asset_id: str, day: str, currency: str) -> None:
    """Look up an asset's price on DAY (YYYY-MM-DD), fetching on a cache miss."""
    config = _load_config(ctx)
    target = _parse_day_arg(day, "day")

    async def _run():
        store = await _create_store_async(config)
        try:
            asset = await _require_asset(store, asset_id)
            service = _create_service(config, store)
            return await service.get_price(asset, target, currency.upper())
        finally:
            await store.close()

    value = _run_async(_run())
    click.echo(f"{target.isoformat()}\t{value if value is not None else '-'}")


# ---------------------------------------------------------------------------
# preload
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("asset_id")
@click.argument("first_date")
@click.option("--currency", type=str, default="USD", show_default=True)
@click.pass_context
def preload(ctx: click.Context, asset_id: str, first_date: str, currency: str) -> None:
    """Cache every day from FIRST_DATE through today."""
    config = _load_config(ctx)
    start = _parse_day_arg(first_date, "first_date")

    async def _run():
        store = await _create_store_async(config)
        try:
            asset = await _require_asset(store, asset_id)
            service = _create_service(config, store)
            with console.status(f"Preloading {asset.name} from {start}..."):
                return await service.preload_historical_prices(
                    asset, start, currency.upper()
                )
        finally:
            await store.close()

    result = _run_async(_run())
    console.print(
        f"[green]✓[/green] Preload finished: {result.loaded} loaded, "
        f"{result.skipped} skipped"
        + (f" ([red]{result.errors} errors[/red])" if result.errors else "")
    )


# ---------------------------------------------------------------------------
# cleanup
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def cleanup(ctx: click.Context) -> None:
    """Delete cached prices dated a year ago or earlier."""
    config = _load_config(ctx)

    async def _run():
        store = await _create_store_async(config)
        try:
            return await _create_service(config, store).cleanup_old_prices()
        finally:
            await store.close()

    deleted = _run_async(_run())
    console.print(f"[green]✓[/green] Deleted {deleted} old prices")


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--host", type=str, default=None, help="Bind address. Default: from config.")
@click.option("--port", "-p", type=int, default=None, help="Port number. Default: from config.")
@click.option("--reload", is_flag=True, default=False, help="Auto-reload on code changes.")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None, reload: bool) -> None:
    """Start the REST API server."""
    import uvicorn

    config = _load_config(ctx)
    if ctx.obj.get("config_path"):
        # The app factory runs in uvicorn and reads its config from the environment
        os.environ["FOLIO_PRICES_CONFIG"] = ctx.obj["config_path"]
    host = host or config.api.host
    port = port or config.api.port

    console.print(f"Starting folio-prices API on [bold]{host}:{port}[/bold]")
    console.print(f"API docs: http://{host}:{port}/docs")

    uvicorn.run(
        "folio_prices.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show storage statistics."""
    async def _run():
        config = _load_config(ctx)
        store = await _create_store_async(config)
        try:
            stats = await store.get_statistics()

            table = Table(title="Folio Prices Status")
            table.add_column("Metric", style="bold")
            table.add_column("Value", justify="right")

            table.add_row("Storage backend", config.storage.backend.value)
            table.add_row("Database path", config.storage.sqlite_path)
            table.add_section()
            table.add_row("Registered assets", str(stats["total_assets"]))
            table.add_row("Assets with prices", str(stats["assets_with_prices"]))
            table.add_row("Cached prices", str(stats["total_prices"]))
            table.add_row(
                "Date range",
                f"{stats['earliest_date']} → {stats['latest_date']}"
                if stats["total_prices"] > 0
                else "N/A",
            )

            console.print(table)
        finally:
            await store.close()

    _run_async(_run())


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
