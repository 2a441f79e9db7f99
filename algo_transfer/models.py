"""
Data model for transfer submission and reconciliation.

Types:
    - ``TransferRequest`` — ephemeral, caller-supplied. Holds the secret
      recovery phrase, which is hidden from repr and never persisted.
    - ``TransactionRecord`` — durable, owned by the TransactionLedger.
      Keyed by the network-assigned transaction id.
    - ``SuggestedParameters`` — fetched fresh for every submission.
    - ``TxOutcome`` — the network's view of a transaction.
    - ``SubmissionResult`` — what the coordinator returns.

Status transitions (monotonic):
    PENDING → CONFIRMED (with confirmed_round)
    PENDING → FAILED
    CONFIRMED, FAILED → (terminal)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from algo_transfer.errors import ValidationError

# Length of an Algorand address string (base32, with checksum).
ADDRESS_LENGTH = 58

# Maximum size of the on-chain note field.
MAX_NOTE_BYTES = 1024


# =========================================================================
# Enums
# =========================================================================


class TransactionStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not TransactionStatus.PENDING


class OutcomeKind(StrEnum):
    """What the network reports for a transaction id."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"
    NOT_FOUND = "NOT_FOUND"


class SubmissionOutcome(StrEnum):
    SUBMITTED = "submitted"
    SUBMITTED_NOT_RECORDED = "submitted_not_recorded"


# =========================================================================
# TransferRequest
# =========================================================================


@dataclass(frozen=True)
class TransferRequest:
    """A signed-transfer request as supplied by the caller.

    Not validated on construction: structural validation is an explicit
    step of the submission pipeline (see ``validate``).
    """

    sender: str
    recipient: str
    amount: int
    recovery_phrase: str = field(repr=False)
    note: str | None = None

    def validate(self, address_length: int = ADDRESS_LENGTH) -> None:
        """Raise ValidationError listing every structural problem."""
        issues: list[dict[str, str]] = []

        for name in ("sender", "recipient"):
            value = getattr(self, name)
            if not isinstance(value, str):
                issues.append({"field": name, "problem": "must be a string"})
            elif len(value) != address_length:
                issues.append({
                    "field": name,
                    "problem": f"must be exactly {address_length} characters, got {len(value)}",
                })

        # bool is an int subclass; reject it explicitly
        if not isinstance(self.amount, int) or isinstance(self.amount, bool):
            issues.append({"field": "amount", "problem": "must be an integer"})
        elif self.amount < 0:
            issues.append({"field": "amount", "problem": "must be >= 0"})

        if not isinstance(self.recovery_phrase, str):
            issues.append({"field": "recovery_phrase", "problem": "must be a string"})

        if self.note is not None:
            if not isinstance(self.note, str):
                issues.append({"field": "note", "problem": "must be a string"})
            elif len(self.note.encode("utf-8")) > MAX_NOTE_BYTES:
                issues.append({
                    "field": "note",
                    "problem": f"exceeds {MAX_NOTE_BYTES} bytes",
                })

        if issues:
            raise ValidationError(
                "invalid transfer request",
                details={"issues": issues},
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransferRequest:
        """Build from an inbound payload. Missing keys are a ValidationError."""
        missing = [
            key for key in ("sender", "recipient", "amount", "recovery_phrase")
            if key not in data
        ]
        if missing:
            raise ValidationError(
                "invalid transfer request",
                details={"issues": [
                    {"field": key, "problem": "is required"} for key in missing
                ]},
            )
        return cls(
            sender=data["sender"],
            recipient=data["recipient"],
            amount=data["amount"],
            recovery_phrase=data["recovery_phrase"],
            note=data.get("note"),
        )


# =========================================================================
# TransactionRecord
# =========================================================================


@dataclass(frozen=True)
class TransactionRecord:
    """Local record of a submitted transfer and its last known outcome.

    Attributes:
        tx_id: Network-assigned transaction id. Primary key, immutable.
        sender: Sender address.
        recipient: Recipient address.
        amount: Amount in microAlgos.
        status: Current status.
        created_at: RFC3339 UTC insert time. Immutable.
        note: Optional free-text note.
        confirmed_round: Round the transaction was confirmed in.
            Present only when status is CONFIRMED.
        failure_reason: Network rejection reason. Present only when
            status is FAILED (may still be None if the network gave none).
        updated_at: RFC3339 UTC time of the terminal transition.
    """

    tx_id: str
    sender: str
    recipient: str
    amount: int
    status: TransactionStatus
    created_at: str
    note: str | None = None
    confirmed_round: int | None = None
    failure_reason: str | None = None
    updated_at: str | None = None

    def __post_init__(self) -> None:
        if not self.tx_id:
            raise ValueError("tx_id must be non-empty")
        if self.status == TransactionStatus.CONFIRMED and self.confirmed_round is None:
            raise ValueError("confirmed_round is required when status is confirmed")
        if self.status != TransactionStatus.CONFIRMED and self.confirmed_round is not None:
            raise ValueError("confirmed_round is only allowed when status is confirmed")

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "tx_id": self.tx_id,
            "sender": self.sender,
            "recipient": self.recipient,
            "amount": self.amount,
            "status": self.status.value,
            "created_at": self.created_at,
        }
        if self.note is not None:
            result["note"] = self.note
        if self.confirmed_round is not None:
            result["confirmed_round"] = self.confirmed_round
        if self.failure_reason is not None:
            result["failure_reason"] = self.failure_reason
        if self.updated_at is not None:
            result["updated_at"] = self.updated_at
        return result


# =========================================================================
# Network-side types
# =========================================================================


@dataclass(frozen=True)
class SuggestedParameters:
    """Network parameters needed to build a valid transaction.

    Must be fetched fresh per submission: the validity window
    (first_valid..last_valid) expires.
    """

    fee: int
    min_fee: int
    first_valid: int
    last_valid: int
    genesis_id: str
    genesis_hash: str
    consensus_version: str | None = None


@dataclass(frozen=True)
class TxOutcome:
    """The network's current view of a transaction.

    NOT_FOUND is not a failure: the id may simply not have propagated.
    """

    kind: OutcomeKind
    confirmed_round: int | None = None
    reason: str | None = None

    @classmethod
    def pending(cls) -> TxOutcome:
        return cls(OutcomeKind.PENDING)

    @classmethod
    def confirmed(cls, confirmed_round: int) -> TxOutcome:
        return cls(OutcomeKind.CONFIRMED, confirmed_round=confirmed_round)

    @classmethod
    def rejected(cls, reason: str) -> TxOutcome:
        return cls(OutcomeKind.REJECTED, reason=reason)

    @classmethod
    def not_found(cls) -> TxOutcome:
        return cls(OutcomeKind.NOT_FOUND)


@dataclass(frozen=True)
class SubmissionResult:
    """Result of a submission that reached the network.

    ``success`` is always True here: any failure before the network
    accepted the transaction is raised instead. ``recorded`` is False
    when the local record could not be written; the transfer is still
    in flight and must be reconciled manually by tx_id.
    """

    tx_id: str
    outcome: SubmissionOutcome
    record: TransactionRecord | None = None
    persistence_error: str | None = None
    success: bool = True

    @property
    def recorded(self) -> bool:
        return self.outcome == SubmissionOutcome.SUBMITTED

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": self.success,
            "tx_id": self.tx_id,
            "outcome": self.outcome.value,
            "recorded": self.recorded,
        }
        if self.persistence_error is not None:
            result["persistence_error"] = self.persistence_error
        return result
