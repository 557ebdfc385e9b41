"""Cache-aside orchestration of historical prices.

``HistoricalPriceService`` answers "what did asset X cost on day D?" by
checking the store first and only calling the external provider on a miss,
then writing the answer back. Past prices are immutable, so a cached record
is never refreshed: per (asset, day) the cache is either absent or present.

Failure policy
--------------
- Read/cache paths (``get_price``, range, latest, preload) degrade: they log
  and return ``None``/``[]``/counters, never raise for missing data.
- Deliberate writes (manual create, delete, cleanup) propagate storage
  errors so the caller knows the action did not take effect.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta

from folio_prices.core.exceptions import DuplicateKeyError, ProviderError, StorageError
from folio_prices.core.models import (
    Asset,
    AssetType,
    HistoricalPrice,
    NewHistoricalPrice,
    PreloadResult,
    PriceSource,
    to_utc_day,
)
from folio_prices.providers.base import HistoricalPriceProvider
from folio_prices.storage.store import HistoricalPriceStore

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one provider call: a price, nothing, or an error.

    ``price`` is None both when the provider had no data and when it failed;
    ``error`` tells the two apart.
    """

    price: float | None = None
    source: PriceSource | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.price is not None and self.price > 0


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from start through end, inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def one_year_before(day: date) -> date:
    """Same calendar day one year earlier (Feb 29 maps to Feb 28)."""
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        return day.replace(year=day.year - 1, day=28)


class HistoricalPriceService:
    """Cache-aside access to historical prices.

    Parameters
    ----------
    store : HistoricalPriceStore
        Persistent cache of price records.
    providers : Mapping[AssetType, HistoricalPriceProvider]
        The provider serving each asset class. Types absent from the
        mapping have no historical source.
    request_delay : float
        Seconds to pause after each provider call during preload.
    clock : Callable[[], datetime] | None
        Returns the current aware datetime. Defaults to ``datetime.now(UTC)``.
    """

    def __init__(
        self,
        store: HistoricalPriceStore,
        providers: Mapping[AssetType, HistoricalPriceProvider],
        request_delay: float = 0.1,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._providers = dict(providers)
        self._delay = request_delay
        self._clock = clock or (lambda: datetime.now(UTC))

    def today(self) -> date:
        """Current UTC calendar day according to the service clock."""
        return to_utc_day(self._clock())

    def provider_for(self, asset: Asset) -> HistoricalPriceProvider | None:
        return self._providers.get(asset.type)

    async def _fetch(self, asset: Asset, day: date) -> FetchResult:
        """Call the asset's provider, turning exceptions into data."""
        provider = self.provider_for(asset)
        if provider is None:
            return FetchResult()
        try:
            price = await provider.fetch_price(asset.symbol, day)
        except Exception as e:
            error = ProviderError(
                f"{provider.source} failed for {asset.symbol} on {day}: {e}",
                context={
                    "provider": str(provider.source),
                    "symbol": asset.symbol,
                    "day": day.isoformat(),
                },
            )
            error.__cause__ = e
            return FetchResult(source=provider.source, error=error)
        return FetchResult(price=price, source=provider.source)

    # --- Single Lookups ---

    async def get_price(
        self,
        asset: Asset,
        when: date | datetime,
        currency: str = DEFAULT_CURRENCY,
    ) -> float | None:
        """Return the asset's price on the UTC day of ``when``, or None.

        Serves from the store when cached; otherwise fetches from the
        asset's provider and caches a positive result. Never raises for
        unavailable data.
        """
        day = to_utc_day(when)

        try:
            cached = await self._store.find_by_asset_and_day(asset.id, day)
        except StorageError as e:
            logger.error("Cache lookup failed for %s on %s: %s", asset.id, day, e)
            cached = None
        if cached is not None:
            logger.debug("Cache hit: %s on %s = %s", asset.name, day, cached.price)
            return cached.price

        if self.provider_for(asset) is None:
            logger.debug("No historical provider for %s (%s)", asset.name, asset.type)
            return None

        result = await self._fetch(asset, day)
        if result.error is not None:
            logger.error("Price fetch failed for %s on %s: %s", asset.name, day, result.error)
            return None
        if not result.ok:
            logger.info("No price found for %s on %s", asset.name, day)
            return None

        return await self._persist_fetched(asset, day, result, currency)

    async def _persist_fetched(
        self, asset: Asset, day: date, result: FetchResult, currency: str
    ) -> float:
        """Write a fetched price back; the fetched value wins if the write fails."""
        record = NewHistoricalPrice(
            asset_id=asset.id,
            date=day,
            price=result.price,
            currency=currency,
            source=result.source,
        )
        try:
            await self._store.insert(record)
        except DuplicateKeyError:
            # A concurrent writer cached the day first; its record is canonical.
            try:
                existing = await self._store.find_by_asset_and_day(asset.id, day)
            except StorageError as e:
                logger.error("Re-read after duplicate failed for %s on %s: %s", asset.id, day, e)
                return result.price
            return existing.price if existing is not None else result.price
        except StorageError as e:
            logger.error("Could not cache price for %s on %s: %s", asset.name, day, e)
            return result.price

        logger.info("Saved price: %s on %s = %s (%s)", asset.name, day, result.price, result.source)
        return result.price

    async def get_prices_in_range(
        self, asset_id: str, start: date | datetime, end: date | datetime
    ) -> list[HistoricalPrice]:
        """Cached records between start and end (inclusive), oldest first."""
        try:
            return await self._store.find_by_asset_and_range(
                asset_id, to_utc_day(start), to_utc_day(end)
            )
        except StorageError as e:
            logger.error("Failed to read prices for asset %s: %s", asset_id, e)
            return []

    async def get_latest_price(self, asset_id: str) -> HistoricalPrice | None:
        """Most recent cached record for the asset, or None."""
        try:
            return await self._store.find_latest(asset_id)
        except StorageError as e:
            logger.error("Failed to read latest price for asset %s: %s", asset_id, e)
            return None

    # --- Explicit Writes ---

    async def create_manual_price(
        self,
        asset_id: str,
        when: date | datetime,
        price: float,
        currency: str = DEFAULT_CURRENCY,
        source: PriceSource = PriceSource.MANUAL,
    ) -> HistoricalPrice:
        """Record a price without a provider.

        Raises:
            DuplicateKeyError: A record already exists for that day.
            StorageError: The write failed.
        """
        record = NewHistoricalPrice(
            asset_id=asset_id,
            date=to_utc_day(when),
            price=price,
            currency=currency,
            source=source,
        )
        stored = await self._store.insert(record)
        logger.info(
            "Created %s price for asset %s on %s = %s",
            stored.source,
            asset_id,
            stored.date,
            stored.price,
        )
        return stored

    async def delete_price(self, price_id: str) -> None:
        """Delete one record. Raises NotFoundError or StorageError."""
        await self._store.delete_by_id(price_id)
        logger.info("Deleted historical price %s", price_id)

    async def cleanup_old_prices(self) -> int:
        """Delete records dated on or before the same day last year. Returns the count."""
        last_year = one_year_before(self.today())
        deleted = await self._store.delete_older_than(last_year + timedelta(days=1))
        logger.info("Cleaned up %d prices dated on or before %s", deleted, last_year)
        return deleted

    async def record_current_price(self, asset: Asset, current_price: float | None) -> None:
        """Store a live quote as today's MANUAL record unless today is cached.

        Failures are logged and swallowed; this runs as a side effect of
        current-price refreshes.
        """
        if current_price is None or current_price <= 0:
            return
        day = self.today()
        try:
            if await self._store.find_by_asset_and_day(asset.id, day) is not None:
                return
            await self._store.insert(
                NewHistoricalPrice(
                    asset_id=asset.id,
                    date=day,
                    price=current_price,
                    currency=asset.currency,
                    source=PriceSource.MANUAL,
                )
            )
            logger.info("Saved current price for %s: %s", asset.name, current_price)
        except DuplicateKeyError:
            return
        except StorageError as e:
            logger.error("Could not save current price for %s: %s", asset.name, e)

    # --- Bulk Preload ---

    async def preload_historical_prices(
        self,
        asset: Asset,
        first_date: date | datetime,
        currency: str = DEFAULT_CURRENCY,
    ) -> PreloadResult:
        """Cache every day from ``first_date`` through today.

        Days are processed strictly in order, one at a time, pausing
        ``request_delay`` seconds after every provider call. Days the
        provider has no price for are left uncached and uncounted.
        Re-running is safe: cached days are counted as skipped.
        """
        start = to_utc_day(first_date)
        end = self.today()
        loaded = skipped = errors = 0

        logger.info("Starting preload for %s from %s to %s", asset.name, start, end)

        for day in iter_days(start, end):
            try:
                if await self._store.find_by_asset_and_day(asset.id, day) is not None:
                    skipped += 1
                    continue
            except StorageError as e:
                logger.error("Preload cache check failed for %s on %s: %s", asset.name, day, e)
                errors += 1
                continue

            if self.provider_for(asset) is None:
                continue

            result = await self._fetch(asset, day)
            try:
                if result.error is not None:
                    logger.error("Preload fetch failed for %s on %s: %s", asset.name, day, result.error)
                    errors += 1
                elif not result.ok:
                    logger.debug("No price for %s on %s", asset.name, day)
                else:
                    await self._store.insert(
                        NewHistoricalPrice(
                            asset_id=asset.id,
                            date=day,
                            price=result.price,
                            currency=currency,
                            source=result.source,
                        )
                    )
                    loaded += 1
            except DuplicateKeyError:
                skipped += 1
            except StorageError as e:
                logger.error("Preload could not cache %s on %s: %s", asset.name, day, e)
                errors += 1
            finally:
                await asyncio.sleep(self._delay)

        logger.info(
            "Preload completed for %s: %d loaded, %d skipped, %d errors",
            asset.name,
            loaded,
            skipped,
            errors,
        )
        return PreloadResult(loaded=loaded, skipped=skipped, errors=errors)
