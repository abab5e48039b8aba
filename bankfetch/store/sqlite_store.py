"""SQLite-backed balance store.

Each balance is committed as soon as it is added, so a crash later in a run
keeps everything written before it.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from bankfetch.models import AccountBalance
from bankfetch.store.base import DataStore, DataStoreError

logger = structlog.get_logger(__name__)


class SqliteBalanceStore(DataStore):
    """Balance store on a local SQLite database.

    Balances are stored as TEXT to keep ``Decimal`` precision.

    Attributes:
        db_path: Path to the SQLite database file.
        run_id: Identifier stamped on every row written while open.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self.run_id: str | None = None
        self._lock = asyncio.Lock()
        self._db: aiosqlite.Connection | None = None

    @property
    def is_open(self) -> bool:
        return self._db is not None

    async def open(self) -> None:
        """Connect and create the ``balances`` table if needed.

        Raises:
            DataStoreError: If the store is already open.
        """
        async with self._lock:
            if self.is_open:
                raise DataStoreError("Data store is already open")

            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            self._db = await aiosqlite.connect(self.db_path)
            self._db.row_factory = aiosqlite.Row

            await self._db.execute(
                """
                CREATE TABLE IF NOT EXISTS balances (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    run_id TEXT NOT NULL,
                    institution TEXT NOT NULL,
                    account_name TEXT NOT NULL,
                    account_number TEXT NOT NULL,
                    balance TEXT NOT NULL,
                    recorded_at TEXT NOT NULL
                )
                """
            )
            await self._db.execute(
                "CREATE INDEX IF NOT EXISTS idx_balances_recorded_at ON balances(recorded_at)"
            )
            await self._db.commit()

            self.run_id = uuid.uuid4().hex
            logger.info("data_store_opened", db_path=self.db_path, run_id=self.run_id)

    async def add_balance(self, balance: AccountBalance) -> None:
        """Insert and commit one balance.

        Raises:
            DataStoreError: If the store is not open.
        """
        async with self._lock:
            if self._db is None:
                raise DataStoreError("add_balance called while the data store is closed")

            await self._db.execute(
                """
                INSERT INTO balances
                    (run_id, institution, account_name, account_number, balance, recorded_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    self.run_id,
                    balance.institution,
                    balance.account_name,
                    balance.account_number,
                    str(balance.balance),
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            await self._db.commit()

            logger.debug(
                "balance_written",
                institution=balance.institution,
                account_number=balance.account_number,
            )

    async def list_balances(self, limit: int = 50) -> list[dict[str, Any]]:
        """Return the most recent balance rows, newest first.

        Raises:
            DataStoreError: If the store is not open.
        """
        async with self._lock:
            if self._db is None:
                raise DataStoreError("list_balances called while the data store is closed")

            cursor = await self._db.execute(
                """
                SELECT run_id, institution, account_name, account_number, balance, recorded_at
                FROM balances
                ORDER BY id DESC
                LIMIT ?
                """,
                (limit,),
            )
            rows = await cursor.fetchall()

        return [
            {
                "run_id": row["run_id"],
                "institution": row["institution"],
                "account_name": row["account_name"],
                "account_number": row["account_number"],
                "balance": Decimal(row["balance"]),
                "recorded_at": row["recorded_at"],
            }
            for row in rows
        ]

    async def close(self) -> None:
        """Close database connection."""
        async with self._lock:
            if self._db:
                await self._db.close()
                self._db = None
                logger.info("data_store_closed", db_path=self.db_path, run_id=self.run_id)
