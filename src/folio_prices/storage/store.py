"""Storage backend: Protocol definition, SQLite implementation, factory."""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime
from typing import ClassVar, Protocol, runtime_checkable
from uuid import uuid4

import aiosqlite

from folio_prices.core.config import StorageConfig
from folio_prices.core.exceptions import DuplicateKeyError, NotFoundError, StorageError
from folio_prices.core.models import (
    Asset,
    AssetType,
    HistoricalPrice,
    NewHistoricalPrice,
    PriceSource,
    StorageBackend as StorageBackendEnum,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class HistoricalPriceStore(Protocol):
    """Persistence interface for historical price records.

    Dates are UTC calendar days. At most one record exists per
    (asset_id, date); ``insert`` raises DuplicateKeyError otherwise.
    """

    async def find_by_asset_and_day(
        self, asset_id: str, day: date
    ) -> HistoricalPrice | None: ...
    async def find_by_asset_and_range(
        self, asset_id: str, start: date, end: date
    ) -> list[HistoricalPrice]: ...
    async def find_latest(self, asset_id: str) -> HistoricalPrice | None: ...
    async def insert(self, record: NewHistoricalPrice) -> HistoricalPrice: ...
    async def delete_by_id(self, price_id: str) -> None: ...
    async def delete_older_than(self, cutoff: date) -> int: ...


@runtime_checkable
class AssetReader(Protocol):
    """Read access to the host application's assets."""

    async def get_asset(self, asset_id: str) -> Asset | None: ...


class SqliteStore:
    """SQLite implementation of the historical price store.

    Uses aiosqlite for async access, WAL mode for concurrent reads,
    and a version-tracked migration system. The ``assets`` table mirrors
    the host application's assets so lookups can resolve symbol and type.
    """

    _MIGRATIONS: ClassVar[dict[int, tuple[str, list[str]]]] = {
        1: (
            "Initial schema",
            [
                """CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT DEFAULT (datetime('now'))
                )""",
                """CREATE TABLE IF NOT EXISTS assets (
                    id TEXT PRIMARY KEY,
                    symbol TEXT NOT NULL,
                    type TEXT NOT NULL,
                    name TEXT NOT NULL,
                    currency TEXT NOT NULL DEFAULT 'USD'
                )""",
                """CREATE TABLE IF NOT EXISTS historical_prices (
                    id TEXT PRIMARY KEY,
                    asset_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    price REAL NOT NULL CHECK (price > 0),
                    currency TEXT NOT NULL DEFAULT 'USD',
                    source TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    UNIQUE(asset_id, date)
                )""",
                "CREATE INDEX IF NOT EXISTS idx_prices_date ON historical_prices(date)",
            ],
        ),
    }

    def __init__(self, config: StorageConfig) -> None:
        self._path = config.sqlite_path
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open connection, enable WAL, run migrations."""
        try:
            self._db = await aiosqlite.connect(self._path)
            self._db.row_factory = aiosqlite.Row
            await self._db.execute("PRAGMA journal_mode=WAL")
            current = await self._get_schema_version()
            await self._apply_migrations(current)
            await self._db.commit()
        except Exception as e:
            raise StorageError(
                f"Failed to initialize SQLite store: {e}",
                context={"operation": "initialize", "path": self._path},
            ) from e

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def health_check(self) -> bool:
        if self._db is None:
            return False
        try:
            async with self._db.execute("SELECT 1") as cursor:
                row = await cursor.fetchone()
            return row is not None
        except Exception:
            return False

    @property
    def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            raise StorageError(
                "Store is not initialized",
                context={"operation": "connect", "path": self._path},
            )
        return self._db

    # --- Schema Migration ---

    async def _get_schema_version(self) -> int:
        try:
            async with self._db.execute(
                "SELECT MAX(version) FROM schema_version"
            ) as cursor:
                row = await cursor.fetchone()
            return row[0] if row[0] is not None else 0
        except aiosqlite.OperationalError:
            return 0

    async def _apply_migrations(self, current_version: int) -> None:
        for version in sorted(self._MIGRATIONS.keys()):
            if version <= current_version:
                continue
            desc, statements = self._MIGRATIONS[version]
            logger.info("Applying migration %d: %s", version, desc)
            for sql in statements:
                await self._db.execute(sql)
            await self._db.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )

    # --- Asset Operations ---

    async def get_asset(self, asset_id: str) -> Asset | None:
        try:
            async with self._conn.execute(
                "SELECT * FROM assets WHERE id = ?", (asset_id,)
            ) as cursor:
                row = await cursor.fetchone()
            if row is None:
                return None
            return Asset(
                id=row["id"],
                symbol=row["symbol"],
                type=AssetType(row["type"]),
                name=row["name"],
                currency=row["currency"],
            )
        except Exception as e:
            if isinstance(e, StorageError):
                raise
            raise StorageError(
                f"Failed to get asset: {e}",
                context={"operation": "query", "table": "assets", "asset_id": asset_id},
            ) from e

    async def save_asset(self, asset: Asset) -> None:
        try:
            await self._conn.execute(
                """INSERT OR REPLACE INTO assets (id, symbol, type, name, currency)
                   VALUES (?, ?, ?, ?, ?)""",
                (asset.id, asset.symbol, str(asset.type), asset.name, asset.currency),
            )
            await self._conn.commit()
        except Exception as e:
            if isinstance(e, StorageError):
                raise
            raise StorageError(
                f"Failed to save asset: {e}",
                context={"operation": "insert", "table": "assets", "asset_id": asset.id},
            ) from e

    # --- Historical Price Operations ---

    async def find_by_asset_and_day(
        self, asset_id: str, day: date
    ) -> HistoricalPrice | None:
        try:
            async with self._conn.execute(
                "SELECT * FROM historical_prices WHERE asset_id = ? AND date = ?",
                (asset_id, day.isoformat()),
            ) as cursor:
                row = await cursor.fetchone()
            return self._row_to_price(row) if row is not None else None
        except Exception as e:
            if isinstance(e, StorageError):
                raise
            raise StorageError(
                f"Failed to find price: {e}",
                context={
                    "operation": "query",
                    "table": "historical_prices",
                    "asset_id": asset_id,
                    "date": day.isoformat(),
                },
            ) from e

    async def find_by_asset_and_range(
        self, asset_id: str, start: date, end: date
    ) -> list[HistoricalPrice]:
        try:
            async with self._conn.execute(
                """SELECT * FROM historical_prices
                   WHERE asset_id = ? AND date >= ? AND date <= ?
                   ORDER BY date""",
                (asset_id, start.isoformat(), end.isoformat()),
            ) as cursor:
                rows = await cursor.fetchall()
            return [self._row_to_price(r) for r in rows]
        except Exception as e:
            if isinstance(e, StorageError):
                raise
            raise StorageError(
                f"Failed to query price range: {e}",
                context={
                    "operation": "query",
                    "table": "historical_prices",
                    "asset_id": asset_id,
                },
            ) from e

    async def find_latest(self, asset_id: str) -> HistoricalPrice | None:
        try:
            async with self._conn.execute(
                """SELECT * FROM historical_prices
                   WHERE asset_id = ?
                   ORDER BY date DESC LIMIT 1""",
                (asset_id,),
            ) as cursor:
                row = await cursor.fetchone()
            return self._row_to_price(row) if row is not None else None
        except Exception as e:
            if isinstance(e, StorageError):
                raise
            raise StorageError(
                f"Failed to get latest price: {e}",
                context={
                    "operation": "query",
                    "table": "historical_prices",
                    "asset_id": asset_id,
                },
            ) from e

    async def insert(self, record: NewHistoricalPrice) -> HistoricalPrice:
        stored = HistoricalPrice(
            id=uuid4().hex,
            created_at=datetime.now(UTC),
            **record.model_dump(),
        )
        try:
            await self._conn.execute(
                """INSERT INTO historical_prices
                   (id, asset_id, date, price, currency, source, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    stored.id,
                    stored.asset_id,
                    stored.date.isoformat(),
                    stored.price,
                    stored.currency,
                    str(stored.source),
                    stored.created_at.isoformat(),
                ),
            )
            await self._conn.commit()
        except aiosqlite.IntegrityError as e:
            await self._conn.rollback()
            if "UNIQUE" in str(e).upper():
                raise DuplicateKeyError(
                    f"Price already recorded for asset {record.asset_id} "
                    f"on {record.date.isoformat()}",
                    context={
                        "asset_id": record.asset_id,
                        "date": record.date.isoformat(),
                    },
                ) from e
            raise StorageError(
                f"Failed to insert price: {e}",
                context={"operation": "insert", "table": "historical_prices"},
            ) from e
        except Exception as e:
            if isinstance(e, StorageError):
                raise
            raise StorageError(
                f"Failed to insert price: {e}",
                context={
                    "operation": "insert",
                    "table": "historical_prices",
                    "asset_id": record.asset_id,
                },
            ) from e
        return stored

    async def delete_by_id(self, price_id: str) -> None:
        try:
            cursor = await self._conn.execute(
                "DELETE FROM historical_prices WHERE id = ?", (price_id,)
            )
            deleted = cursor.rowcount
            await self._conn.commit()
        except Exception as e:
            if isinstance(e, StorageError):
                raise
            raise StorageError(
                f"Failed to delete price: {e}",
                context={
                    "operation": "delete",
                    "table": "historical_prices",
                    "price_id": price_id,
                },
            ) from e
        if deleted == 0:
            raise NotFoundError(
                f"Historical price not found: {price_id!r}",
                context={"price_id": price_id},
            )

    async def delete_older_than(self, cutoff: date) -> int:
        try:
            cursor = await self._conn.execute(
                "DELETE FROM historical_prices WHERE date < ?", (cutoff.isoformat(),)
            )
            deleted = cursor.rowcount
            await self._conn.commit()
            return deleted
        except Exception as e:
            if isinstance(e, StorageError):
                raise
            raise StorageError(
                f"Failed to delete old prices: {e}",
                context={
                    "operation": "delete",
                    "table": "historical_prices",
                    "cutoff": cutoff.isoformat(),
                },
            ) from e

    # --- Statistics ---

    async def get_statistics(self) -> dict:
        try:
            async with self._conn.execute(
                """SELECT COUNT(*) AS total, COUNT(DISTINCT asset_id) AS assets,
                          MIN(date) AS earliest, MAX(date) AS latest
                   FROM historical_prices"""
            ) as cursor:
                prices = await cursor.fetchone()
            async with self._conn.execute("SELECT COUNT(*) FROM assets") as cursor:
                assets = await cursor.fetchone()
        except Exception as e:
            if isinstance(e, StorageError):
                raise
            raise StorageError(
                f"Failed to gather statistics: {e}",
                context={"operation": "query", "table": "historical_prices"},
            ) from e
        return {
            "total_prices": prices["total"],
            "assets_with_prices": prices["assets"],
            "earliest_date": prices["earliest"],
            "latest_date": prices["latest"],
            "total_assets": assets[0],
        }

    # --- Row Mapping ---

    @staticmethod
    def _row_to_price(row: aiosqlite.Row) -> HistoricalPrice:
        return HistoricalPrice(
            id=row["id"],
            asset_id=row["asset_id"],
            date=date.fromisoformat(row["date"]),
            price=row["price"],
            currency=row["currency"],
            source=PriceSource(row["source"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


async def create_store(config: StorageConfig) -> SqliteStore:
    """Create and initialize a storage backend based on configuration."""
    if config.backend == StorageBackendEnum.SQLITE:
        store = SqliteStore(config)
        await store.initialize()
        return store
    raise StorageError(
        f"Unsupported storage backend: {config.backend}",
        context={"operation": "create_store", "backend": str(config.backend)},
    )
