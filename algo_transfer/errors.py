"""
Error taxonomy for transfer submission and reconciliation.

Every domain error carries:
    - a human-readable message,
    - a machine-readable ``error_code``,
    - a ``details`` dict for diagnostics (never secrets),
    - a response ``category`` used by the inbound surface.

Where an error happens decides what the caller must do:
    - Before network submission: nothing to undo. Fix the request or retry.
    - After submission, before persistence: not an error at all from the
      network's point of view. Reported as ``submitted_not_recorded`` on
      the SubmissionResult, never raised.
    - During reconciliation: soft. The local record is untouched and the
      last known status stays authoritative.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCategory(StrEnum):
    """Literal response categories exposed to the inbound surface."""

    SUCCESS = "success"
    VALIDATION_FAILURE = "validation_failure"
    CREDENTIAL_FAILURE = "credential_failure"
    NETWORK_UNAVAILABLE = "network_unavailable"
    NOT_FOUND = "not_found"
    INTERNAL_FAILURE = "internal_failure"


class TransferError(Exception):
    """Base class for all transfer domain errors."""

    category: ErrorCategory = ErrorCategory.INTERNAL_FAILURE
    retryable: bool = False
    default_code: str = "INTERNAL"

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "category": str(self.category),
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = dict(self.details)
        return result


# ---------------------------------------------------------------------------
# Local, pre-network
# ---------------------------------------------------------------------------


class ValidationError(TransferError):
    """Malformed request shape. Never reaches the network."""

    category = ErrorCategory.VALIDATION_FAILURE
    default_code = "INVALID_REQUEST"


class CredentialError(TransferError):
    category = ErrorCategory.CREDENTIAL_FAILURE
    default_code = "CREDENTIAL"


class InvalidCredential(CredentialError):
    """The recovery phrase does not parse into a keypair."""

    default_code = "INVALID_CREDENTIAL"


class SenderMismatch(CredentialError):
    """The phrase derives an address other than the claimed sender."""

    default_code = "SENDER_MISMATCH"


# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------


class NetworkUnavailable(TransferError):
    """Connectivity or transport failure. Retryable by the caller."""

    category = ErrorCategory.NETWORK_UNAVAILABLE
    retryable = True
    default_code = "NETWORK_UNAVAILABLE"


class RejectedByNetwork(TransferError):
    """The network refused the transaction. Not retryable as-is."""

    default_code = "REJECTED"

    def __init__(
        self,
        reason: str,
        *,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            f"transaction rejected by network: {reason}",
            error_code=error_code,
            details=details,
        )
        self.reason = reason


# ---------------------------------------------------------------------------
# Ledger consistency
# ---------------------------------------------------------------------------


class DuplicateIdentifier(TransferError):
    default_code = "DUPLICATE_IDENTIFIER"


class InvalidTransition(TransferError):
    default_code = "INVALID_TRANSITION"


class UnknownTransaction(TransferError):
    """Reconciliation target is not in the local ledger."""

    category = ErrorCategory.NOT_FOUND
    default_code = "UNKNOWN_TRANSACTION"


def classify_error(exc: BaseException) -> ErrorCategory:
    """Map any exception to its response category.

    Domain errors carry their own category. Anything else is an
    internal failure.
    """
    if isinstance(exc, TransferError):
        return exc.category
    return ErrorCategory.INTERNAL_FAILURE
