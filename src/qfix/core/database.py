"""Persistent quota storage.

SQLite is the default backend. Every store call opens its own connection on a
worker thread, so the event loop is never blocked on disk I/O and nothing is
shared between concurrent requests except the database file itself.
Transactions start with ``BEGIN IMMEDIATE``, which takes the database write
lock up front: two overlapping reservations, in one process or many, can
never both read the same pre-reservation state.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Callable, TypeVar

from qfix.core.errors import QuotaInfrastructureFault
from qfix.core.models import QuotaRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

# fn(current record or None) -> (result, record to upsert or None for no write)
TransactionFn = Callable[[QuotaRecord | None], tuple[T, QuotaRecord | None]]

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_SCHEMA = """
CREATE TABLE IF NOT EXISTS user_quotas (
    user_id                 TEXT PRIMARY KEY,
    is_special              INTEGER NOT NULL DEFAULT 0,
    last_reservation_date   TEXT,
    reservations_today      INTEGER NOT NULL DEFAULT 0,
    last_reservation_at     TEXT,
    updated_at              TEXT
);
"""

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _date_to_str(d: date | None) -> str | None:
    return d.isoformat() if d is not None else None


def _datetime_to_str(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


def _str_to_date(s: str | None) -> date | None:
    return date.fromisoformat(s) if s else None


def _str_to_datetime(s: str | None) -> datetime | None:
    return datetime.fromisoformat(s) if s else None


# ---------------------------------------------------------------------------
# Init
# ---------------------------------------------------------------------------


def init_db(path: Path, *, busy_timeout: float = 5.0) -> sqlite3.Connection:
    """Create / open the SQLite database and ensure the quota table exists.

    The returned connection is in autocommit mode; callers open explicit
    transactions with ``BEGIN IMMEDIATE``.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path), timeout=busy_timeout, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.executescript(_SCHEMA)
    return conn


# ---------------------------------------------------------------------------
# Quota record CRUD (no commits; callers own the transaction)
# ---------------------------------------------------------------------------


def _row_to_quota_record(row: sqlite3.Row) -> QuotaRecord:
    return QuotaRecord(
        user_id=row["user_id"],
        is_special=bool(row["is_special"]),
        last_reservation_date=_str_to_date(row["last_reservation_date"]),
        reservations_today=row["reservations_today"],
        last_reservation_at=_str_to_datetime(row["last_reservation_at"]),
        updated_at=_str_to_datetime(row["updated_at"]),
    )


def get_quota_record(conn: sqlite3.Connection, user_id: str) -> QuotaRecord | None:
    cur = conn.execute("SELECT * FROM user_quotas WHERE user_id = ?", (user_id,))
    row = cur.fetchone()
    return _row_to_quota_record(row) if row else None


def save_quota_record(conn: sqlite3.Connection, record: QuotaRecord) -> None:
    conn.execute(
        """
        INSERT INTO user_quotas
            (user_id, is_special, last_reservation_date, reservations_today,
             last_reservation_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(user_id) DO UPDATE SET
            is_special = excluded.is_special,
            last_reservation_date = excluded.last_reservation_date,
            reservations_today = excluded.reservations_today,
            last_reservation_at = excluded.last_reservation_at,
            updated_at = excluded.updated_at
        """,
        (
            record.user_id,
            int(record.is_special),
            _date_to_str(record.last_reservation_date),
            record.reservations_today,
            _datetime_to_str(record.last_reservation_at),
            _datetime_to_str(record.updated_at),
        ),
    )


# ---------------------------------------------------------------------------
# Store interface
# ---------------------------------------------------------------------------


class QuotaStore(ABC):
    """Keyed quota records with atomic read-modify-write transactions."""

    @abstractmethod
    async def get(self, user_id: str) -> QuotaRecord | None:
        """Plain read, no isolation guarantees."""

    @abstractmethod
    async def run_transaction(self, user_id: str, fn: TransactionFn[T]) -> T:
        """Run *fn* on the user's record in an isolated transaction.

        If *fn* returns a record it is upserted before commit. Two concurrent
        transactions on the same user must behave as if run one at a time.
        """

    async def set_special(self, user_id: str, is_special: bool) -> QuotaRecord:
        """Flag or unflag a user as exempt from the daily quota."""

        def _apply(record: QuotaRecord | None) -> tuple[QuotaRecord, QuotaRecord]:
            current = record or QuotaRecord(user_id=user_id)
            updated = current.model_copy(
                update={
                    "is_special": is_special,
                    "updated_at": datetime.now(timezone.utc),
                }
            )
            return updated, updated

        return await self.run_transaction(user_id, _apply)

    async def close(self) -> None:
        """Release backend resources. Default: nothing to release."""


class SqliteQuotaStore(QuotaStore):
    """Quota store backed by a SQLite file."""

    def __init__(self, path: Path, *, busy_timeout: float = 5.0):
        self.path = path
        self.busy_timeout = busy_timeout

    def initialize(self) -> None:
        """Create the database file and schema. Raises QuotaInfrastructureFault."""
        try:
            init_db(self.path, busy_timeout=self.busy_timeout).close()
        except (sqlite3.Error, OSError) as exc:
            raise QuotaInfrastructureFault(
                f"Cannot initialise quota database at {self.path}: {exc}"
            ) from exc
        logger.debug("Quota database ready at %s", self.path)

    def _connect(self) -> sqlite3.Connection:
        if not self.path.exists():
            raise QuotaInfrastructureFault(f"Quota database not found at {self.path}")
        try:
            conn = sqlite3.connect(
                str(self.path), timeout=self.busy_timeout, isolation_level=None
            )
            conn.row_factory = sqlite3.Row
            return conn
        except sqlite3.Error as exc:
            raise QuotaInfrastructureFault(
                f"Cannot open quota database at {self.path}: {exc}"
            ) from exc

    # -- sync bodies, executed on worker threads -----------------------------

    def _get_sync(self, user_id: str) -> QuotaRecord | None:
        conn = self._connect()
        try:
            return get_quota_record(conn, user_id)
        except sqlite3.Error as exc:
            raise QuotaInfrastructureFault(f"Quota read failed for {user_id}: {exc}") from exc
        finally:
            conn.close()

    def _run_transaction_sync(self, user_id: str, fn: TransactionFn[T]) -> T:
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                record = get_quota_record(conn, user_id)
                result, updated = fn(record)
                if updated is not None:
                    save_quota_record(conn, updated)
                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            return result
        except sqlite3.Error as exc:
            raise QuotaInfrastructureFault(
                f"Quota transaction failed for {user_id}: {exc}"
            ) from exc
        finally:
            conn.close()

    # -- async API -----------------------------------------------------------

    async def get(self, user_id: str) -> QuotaRecord | None:
        return await asyncio.to_thread(self._get_sync, user_id)

    async def run_transaction(self, user_id: str, fn: TransactionFn[T]) -> T:
        return await asyncio.to_thread(self._run_transaction_sync, user_id, fn)
