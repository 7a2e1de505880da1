"""Typed read/write gateway for the rates table.

Every write is a single-row upsert keyed by rate name, committed on its
own; there is no transaction spanning several rates, so one rate's
failure never undoes another's write.

Prices are stored as TEXT to preserve Decimal precision and restored as
Decimal on read.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal

import aiosqlite

from tasa.exceptions import StoreError
from tasa.logging import get_logger
from tasa.models import RateRecord
from tasa.store.database import RatesDatabase

logger = get_logger(__name__)

_COLUMNS = "name, display_name, price, updated_at, created_at"

_ORDER_BY = {
    "created_at": "created_at DESC, name ASC",
    "display_name": "display_name ASC",
}


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_record(row: aiosqlite.Row) -> RateRecord:
    return RateRecord(
        name=row["name"],
        display_name=row["display_name"],
        price=Decimal(row["price"]),
        updated_at=row["updated_at"],
        created_at=row["created_at"],
    )


class RateStore:
    """Upserts and lists rate records.

    Usage:
        async with RatesDatabase("data/rates.db") as database:
            store = RateStore(database)
            rows = await store.upsert_rate("USD_BCV", "Dólar BCV", Decimal("36.70"))
    """

    def __init__(self, database: RatesDatabase) -> None:
        self._database = database

    async def upsert_rate(
        self,
        name: str,
        display_name: str,
        price: Decimal,
    ) -> list[RateRecord]:
        """Insert or overwrite the row for ``name`` and return the affected row.

        ``created_at`` is kept from the first insert; ``updated_at`` is set
        to the current time. Raises StoreError with the backend message.
        """
        now = _utc_now_iso()
        db = self._database.db
        try:
            await db.execute(
                f"INSERT INTO rates ({_COLUMNS}) VALUES (?, ?, ?, ?, ?) "
                "ON CONFLICT(name) DO UPDATE SET "
                "display_name = excluded.display_name, "
                "price = excluded.price, "
                "updated_at = excluded.updated_at",
                (name, display_name, str(price), now, now),
            )
            await db.commit()
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM rates WHERE name = ?", (name,)
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            await db.rollback()
            logger.error("rate_upsert_failed", name=name, error=str(e))
            raise StoreError(str(e)) from e

        logger.info("rate_upserted", name=name, price=str(price))
        return [_row_to_record(row) for row in rows]

    async def list_rates(
        self, order: Literal["created_at", "display_name"] = "created_at"
    ) -> list[RateRecord]:
        """Return every persisted rate; an empty table yields an empty list."""
        try:
            cursor = await self._database.db.execute(
                f"SELECT {_COLUMNS} FROM rates ORDER BY {_ORDER_BY[order]}"
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StoreError(str(e)) from e
        return [_row_to_record(row) for row in rows]

    async def get_rate(self, name: str) -> RateRecord | None:
        """Return the row for ``name`` or None."""
        try:
            cursor = await self._database.db.execute(
                f"SELECT {_COLUMNS} FROM rates WHERE name = ?", (name,)
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreError(str(e)) from e
        return _row_to_record(row) if row is not None else None
