"""
Submission coordinator — one transfer request, end to end.

One call to ``submit_transfer()`` does, in order:
    1. Connectivity check (fatal on failure).
    2. Structural validation of the request, address checksums included.
    3. Credential resolution + sender ownership check.
    4. Fetch fresh suggested parameters (never cached).
    5. Build and sign the payment; release the keypair.
    6. Submit to the network.
    7. Record a pending TransactionRecord (best effort).

Any failure in steps 1-6 raises and leaves no local record. Once step 6
returns, the transfer is irreversible: step 7 failing is reported as
``submitted_not_recorded`` on the result, never raised.

Steps 6-7 run in a shielded task. Cancelling the caller after the
signed bytes were handed to the network does not cancel the submit or
the persistence attempt. Only the public transfer fields are handed to
that task; the request and its recovery phrase stay behind.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from algo_transfer.credentials import acquire_keypair
from algo_transfer.errors import NetworkUnavailable, RejectedByNetwork
from algo_transfer.ledger import TransactionLedger
from algo_transfer.models import (
    ADDRESS_LENGTH,
    SubmissionOutcome,
    SubmissionResult,
    TransferRequest,
)
from algo_transfer.network.gateway import NetworkGateway
from algo_transfer.network.tx import (
    SignedPayment,
    build_payment,
    check_addresses,
    sign_payment,
)

logger = logging.getLogger(__name__)


class SubmissionCoordinator:
    """Drives a transfer request from validation to a pending record.

    Args:
        gateway: Network gateway (shared, read-only).
        ledger: Transaction ledger for the pending record.
        address_length: Required address string length.
        now_fn: Callable returning RFC3339 UTC timestamps for created_at.
            Inject for deterministic tests. Default: ledger's wall clock.
    """

    def __init__(
        self,
        gateway: NetworkGateway,
        ledger: TransactionLedger,
        *,
        address_length: int = ADDRESS_LENGTH,
        now_fn: Callable[[], str] | None = None,
    ) -> None:
        self._gateway = gateway
        self._ledger = ledger
        self._address_length = address_length
        self._now_fn = now_fn
        self._in_flight: set[asyncio.Task[SubmissionResult]] = set()

    async def submit_transfer(self, request: TransferRequest) -> SubmissionResult:
        """Submit a transfer and record it as pending.

        Raises:
            NetworkUnavailable: Node unreachable (steps 1, 4, 6). Retryable.
                If raised by step 6, ``details["tx_id"]`` holds the locally
                computed id; reconcile it before retrying.
            ValidationError: Malformed request or address checksum (step 2).
            InvalidCredential: Phrase cannot be parsed (step 3).
            SenderMismatch: Phrase does not control the sender (step 3).
            RejectedByNetwork: Network refused the transaction (step 6).
        """
        # 1. Connectivity
        await self._gateway.check_connectivity()

        # 2. Structural validation
        request.validate(self._address_length)
        check_addresses(request.sender, request.recipient)

        # 3-5. Credentials, parameters, signing. The keypair is released
        # when the block exits, whatever the outcome.
        with acquire_keypair(request.recovery_phrase, request.sender) as keypair:
            params = await self._gateway.fetch_suggested_parameters()
            txn = build_payment(
                request.sender,
                request.recipient,
                request.amount,
                params,
                note=request.note,
            )
            signed = sign_payment(txn, keypair)

        # 6-7. Past this point the transfer may already be on the network.
        task = asyncio.ensure_future(
            self._submit_and_record(
                signed,
                sender=request.sender,
                recipient=request.recipient,
                amount=request.amount,
                note=request.note,
            )
        )
        self._in_flight.add(task)
        task.add_done_callback(self._forget)
        return await asyncio.shield(task)

    def _forget(self, task: asyncio.Task[SubmissionResult]) -> None:
        self._in_flight.discard(task)
        # marks the exception retrieved when the caller was cancelled
        if not task.cancelled() and task.exception() is not None:
            logger.debug("submission task finished with %r", task.exception())

    async def _submit_and_record(
        self,
        signed: SignedPayment,
        *,
        sender: str,
        recipient: str,
        amount: int,
        note: str | None,
    ) -> SubmissionResult:
        try:
            result = await self._gateway.submit(signed.raw)
        except NetworkUnavailable as e:
            e.details.setdefault("tx_id", signed.tx_id)
            raise

        if not result.accepted:
            raise RejectedByNetwork(
                result.reason or "no reason given",
                error_code=result.error_code,
                details={"tx_id": signed.tx_id},
            )

        tx_id = result.tx_id or signed.tx_id
        if tx_id != signed.tx_id:
            logger.warning(
                "network assigned tx id %s, locally computed %s", tx_id, signed.tx_id
            )
        logger.info("transaction %s accepted by network", tx_id)

        return self._record(
            tx_id, sender=sender, recipient=recipient, amount=amount, note=note
        )

    def _record(
        self,
        tx_id: str,
        *,
        sender: str,
        recipient: str,
        amount: int,
        note: str | None,
    ) -> SubmissionResult:
        try:
            record = self._ledger.record_pending(
                tx_id=tx_id,
                sender=sender,
                recipient=recipient,
                amount=amount,
                note=note,
                created_at=self._now_fn() if self._now_fn is not None else None,
            )
        except Exception as exc:
            logger.error(
                "transaction %s submitted but not recorded: %s", tx_id, exc
            )
            return SubmissionResult(
                tx_id=tx_id,
                outcome=SubmissionOutcome.SUBMITTED_NOT_RECORDED,
                persistence_error=str(exc),
            )

        return SubmissionResult(
            tx_id=tx_id,
            outcome=SubmissionOutcome.SUBMITTED,
            record=record,
        )
