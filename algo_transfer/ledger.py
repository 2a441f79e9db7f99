"""
SQLite-backed transaction ledger.

The local, durable record of transfer intents and their last known
outcome. The ledger is the only component that writes records.

One table, keyed by the network transaction id:
    - transfer_transactions: one row per submitted transfer.

Invariants:
    - tx_id is unique and immutable. A second insert with the same id
      raises DuplicateIdentifier and leaves the stored row untouched.
    - Status is monotonic: pending → confirmed | failed. The terminal
      write is a conditional UPDATE keyed on status = 'pending', so it
      applies at most once even under concurrent reconciliation.
    - Repeating the identical terminal write is a no-op.
    - Rows are never deleted here.
    - All timestamps are RFC3339 UTC.

SQLite patterns:
    - _get_conn() with persistent connection for :memory:
    - _transaction() context manager with commit/rollback
    - _init_schema() via executescript
    - sqlite3.Row row factory
    - WAL mode for file-backed databases
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from algo_transfer.errors import DuplicateIdentifier, InvalidTransition, UnknownTransaction
from algo_transfer.models import TransactionRecord, TransactionStatus

logger = logging.getLogger(__name__)

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS transfer_transactions (
    tx_id TEXT PRIMARY KEY,
    sender TEXT NOT NULL,
    recipient TEXT NOT NULL,
    amount INTEGER NOT NULL,
    note TEXT,
    status TEXT NOT NULL DEFAULT 'pending',
    confirmed_round INTEGER,
    failure_reason TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_transfers_created
ON transfer_transactions(created_at);

CREATE INDEX IF NOT EXISTS idx_transfers_status
ON transfer_transactions(status, created_at);
"""


def _now_utc() -> str:
    """RFC3339 UTC timestamp with microseconds (keeps listing order stable)."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def _row_to_record(row: sqlite3.Row) -> TransactionRecord:
    return TransactionRecord(
        tx_id=row["tx_id"],
        sender=row["sender"],
        recipient=row["recipient"],
        amount=row["amount"],
        note=row["note"],
        status=TransactionStatus(row["status"]),
        confirmed_round=row["confirmed_round"],
        failure_reason=row["failure_reason"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class TransactionLedger:
    """Durable store of transaction records.

    Args:
        db_path: Path to SQLite database file, or ":memory:" for in-memory.
    """

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        self._db_path = str(db_path)
        self._is_memory = self._db_path == ":memory:"

        if self._is_memory:
            self._persistent_conn = sqlite3.connect(":memory:", check_same_thread=False)
            self._persistent_conn.row_factory = sqlite3.Row
        else:
            self._persistent_conn = None

        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get a database connection with proper settings."""
        if self._persistent_conn is not None:
            return self._persistent_conn

        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for a database transaction."""
        conn = self._get_conn()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            if self._persistent_conn is None:
                conn.close()

    def _init_schema(self) -> None:
        """Create tables if they don't exist."""
        with self._transaction() as conn:
            conn.executescript(_SCHEMA)

    # -----------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------

    def insert(self, record: TransactionRecord) -> TransactionRecord:
        """Insert a new record.

        Raises:
            DuplicateIdentifier: If tx_id already exists. The stored row
                is left unchanged.
        """
        with self._transaction() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO transfer_transactions
                    (tx_id, sender, recipient, amount, note, status,
                     confirmed_round, failure_reason, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.tx_id,
                        record.sender,
                        record.recipient,
                        record.amount,
                        record.note,
                        record.status.value,
                        record.confirmed_round,
                        record.failure_reason,
                        record.created_at,
                        record.updated_at,
                    ),
                )
            except sqlite3.IntegrityError as e:
                raise DuplicateIdentifier(
                    f"transaction {record.tx_id} already recorded",
                    details={"tx_id": record.tx_id},
                ) from e
        return record

    def record_pending(
        self,
        *,
        tx_id: str,
        sender: str,
        recipient: str,
        amount: int,
        note: str | None = None,
        created_at: str | None = None,
    ) -> TransactionRecord:
        """Insert a fresh pending record stamped with the current time."""
        record = TransactionRecord(
            tx_id=tx_id,
            sender=sender,
            recipient=recipient,
            amount=amount,
            note=note,
            status=TransactionStatus.PENDING,
            created_at=created_at or _now_utc(),
        )
        return self.insert(record)

    def update_terminal_status(
        self,
        tx_id: str,
        status: TransactionStatus,
        *,
        confirmed_round: int | None = None,
        failure_reason: str | None = None,
        updated_at: str | None = None,
    ) -> TransactionRecord:
        """Move a pending record to a terminal status, at most once.

        Repeating the identical terminal write (same status, and the
        same round for confirmed) returns the stored record unchanged.

        Raises:
            ValueError: If status is not terminal, or confirmed without
                a round.
            UnknownTransaction: If tx_id is not recorded.
            InvalidTransition: If the record is already in a different
                terminal state.
        """
        if not status.is_terminal:
            raise ValueError(f"status must be terminal, got: {status.value!r}")
        if status == TransactionStatus.CONFIRMED and confirmed_round is None:
            raise ValueError("confirmed_round is required for confirmed status")
        if status == TransactionStatus.FAILED:
            confirmed_round = None

        with self._transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE transfer_transactions
                SET status = ?, confirmed_round = ?, failure_reason = ?, updated_at = ?
                WHERE tx_id = ? AND status = 'pending'
                """,
                (
                    status.value,
                    confirmed_round,
                    failure_reason if status == TransactionStatus.FAILED else None,
                    updated_at or _now_utc(),
                    tx_id,
                ),
            )
            applied = cursor.rowcount == 1

        current = self.find_by_identifier(tx_id)
        if current is None:
            raise UnknownTransaction(
                f"transaction {tx_id} is not recorded",
                details={"tx_id": tx_id},
            )
        if applied:
            logger.info("transaction %s is now %s", tx_id, status.value)
            return current

        if current.status == status and current.confirmed_round == confirmed_round:
            return current

        raise InvalidTransition(
            f"transaction {tx_id} is already {current.status.value}",
            details={
                "tx_id": tx_id,
                "current_status": current.status.value,
                "requested_status": status.value,
            },
        )

    # -----------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------

    def find_by_identifier(self, tx_id: str) -> TransactionRecord | None:
        """Get a record by tx_id. None if not recorded."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM transfer_transactions WHERE tx_id = ?",
                (tx_id,),
            ).fetchone()
        if row is None:
            return None
        return _row_to_record(row)

    def list_recent(self, limit: int = 50, *, newest_first: bool = True) -> list[TransactionRecord]:
        """List records ordered by creation time (newest first by default)."""
        if limit < 1:
            return []
        direction = "DESC" if newest_first else "ASC"
        with self._transaction() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM transfer_transactions
                ORDER BY created_at {direction}, rowid {direction}
                LIMIT ?
                """,
                (limit,),
            ).fetchall()
        return [_row_to_record(row) for row in rows]

    def list_pending(self, limit: int = 50) -> list[TransactionRecord]:
        """List pending records, oldest first."""
        if limit < 1:
            return []
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM transfer_transactions
                WHERE status = 'pending'
                ORDER BY created_at, rowid
                LIMIT ?
                """,
                (limit,),
            ).fetchall()
        return [_row_to_record(row) for row in rows]

    def count(self) -> int:
        """Return total number of stored records."""
        with self._transaction() as conn:
            row = conn.execute("SELECT COUNT(*) FROM transfer_transactions").fetchone()
        return row[0] if row else 0

