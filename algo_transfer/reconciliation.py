"""
Reconciliation service — sync local records with the network's view.

One call to ``reconcile(tx_id)`` does:
    1. Load the record. UnknownTransaction if absent (no network call).
    2. If already terminal, return it as-is (no network call).
    3. Query the gateway for the outcome.
    4. CONFIRMED → ledger confirmed with round; REJECTED → ledger failed;
       PENDING / NOT_FOUND → record unchanged, still pending.

Network errors are soft: the record is left untouched and
NetworkUnavailable propagates, distinct from a failed outcome.

Reconciliation of one tx_id is serialized in-process by a per-id lock.
Across processes the ledger's conditional update keeps the terminal
write at-most-once.

``reconcile_pending()`` runs one pass over the oldest pending records.
No loops, no scheduling, no backoff: the caller owns the loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from algo_transfer.errors import NetworkUnavailable, UnknownTransaction
from algo_transfer.ledger import TransactionLedger
from algo_transfer.models import OutcomeKind, TransactionRecord, TransactionStatus
from algo_transfer.network.gateway import NetworkGateway

logger = logging.getLogger(__name__)


class _KeyedLocks:
    """asyncio locks keyed by string, dropped when no coroutine holds or awaits them."""

    def __init__(self) -> None:
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock, users = self._locks.get(key, (asyncio.Lock(), 0))
        self._locks[key] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[key]
            if users <= 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    def __len__(self) -> int:
        return len(self._locks)


@dataclass(frozen=True)
class SweepResult:
    """Summary of one reconcile_pending() pass.

    Attributes:
        checked: Number of pending records examined.
        confirmed: tx ids that became confirmed.
        failed: tx ids that became failed.
        still_pending: tx ids the network still reports as pending/unknown.
        errors: tx id → error message for soft failures.
    """

    checked: int = 0
    confirmed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    still_pending: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)


class ReconciliationService:
    """Reconciles ledger records against the network.

    Args:
        ledger: Transaction ledger (the only writer of records).
        gateway: Network gateway (shared, read-only).
    """

    def __init__(self, ledger: TransactionLedger, gateway: NetworkGateway) -> None:
        self._ledger = ledger
        self._gateway = gateway
        self._locks = _KeyedLocks()

    async def reconcile(self, tx_id: str) -> TransactionRecord:
        """Reconcile one transaction.

        Raises:
            UnknownTransaction: If tx_id is not in the local ledger.
            NetworkUnavailable: If the network could not be queried.
                The record is unchanged.
        """
        record = self._load(tx_id)
        if record.is_terminal:
            return record

        async with self._locks.hold(tx_id):
            # another reconciliation may have finished while we waited
            record = self._load(tx_id)
            if record.is_terminal:
                return record

            try:
                outcome = await self._gateway.query_outcome(tx_id)
            except NetworkUnavailable as e:
                logger.warning(
                    "reconciliation of %s deferred, network unavailable: %s",
                    tx_id,
                    e.message,
                )
                raise

            if outcome.kind == OutcomeKind.CONFIRMED:
                return self._ledger.update_terminal_status(
                    tx_id,
                    TransactionStatus.CONFIRMED,
                    confirmed_round=outcome.confirmed_round,
                )
            if outcome.kind == OutcomeKind.REJECTED:
                return self._ledger.update_terminal_status(
                    tx_id,
                    TransactionStatus.FAILED,
                    failure_reason=outcome.reason,
                )

            logger.debug("transaction %s still %s", tx_id, outcome.kind.value)
            return record

    async def reconcile_pending(self, limit: int = 50) -> SweepResult:
        """Reconcile the oldest pending records once.

        Soft failures are collected per transaction, not raised.
        """
        pending = self._ledger.list_pending(limit=limit)
        confirmed: list[str] = []
        failed: list[str] = []
        still_pending: list[str] = []
        errors: dict[str, str] = {}

        for record in pending:
            try:
                updated = await self.reconcile(record.tx_id)
            except NetworkUnavailable as e:
                errors[record.tx_id] = e.message
                continue

            if updated.status == TransactionStatus.CONFIRMED:
                confirmed.append(updated.tx_id)
            elif updated.status == TransactionStatus.FAILED:
                failed.append(updated.tx_id)
            else:
                still_pending.append(updated.tx_id)

        return SweepResult(
            checked=len(pending),
            confirmed=confirmed,
            failed=failed,
            still_pending=still_pending,
            errors=errors,
        )

    def _load(self, tx_id: str) -> TransactionRecord:
        record = self._ledger.find_by_identifier(tx_id)
        if record is None:
            raise UnknownTransaction(
                f"transaction {tx_id} is not recorded",
                details={"tx_id": tx_id},
            )
        return record
