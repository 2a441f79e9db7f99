"""
algo-transfer: submit Algorand payments and reconcile their local record.

A transfer request is validated, signed, submitted to the network and
recorded locally as pending. Reconciliation later moves the record to
its terminal status (confirmed or failed) from the network's
authoritative view.
"""

__version__ = "0.1.0"

from algo_transfer.config import TransferSettings
from algo_transfer.coordinator import SubmissionCoordinator
from algo_transfer.credentials import Keypair, acquire_keypair, resolve, verify_ownership
from algo_transfer.errors import (
    CredentialError,
    DuplicateIdentifier,
    ErrorCategory,
    InvalidCredential,
    InvalidTransition,
    NetworkUnavailable,
    RejectedByNetwork,
    SenderMismatch,
    TransferError,
    UnknownTransaction,
    ValidationError,
    classify_error,
)
from algo_transfer.ledger import TransactionLedger
from algo_transfer.log import setup_logging
from algo_transfer.models import (
    ADDRESS_LENGTH,
    OutcomeKind,
    SubmissionOutcome,
    SubmissionResult,
    SuggestedParameters,
    TransactionRecord,
    TransactionStatus,
    TransferRequest,
    TxOutcome,
)
from algo_transfer.network import AlgodGateway, NetworkGateway
from algo_transfer.reconciliation import ReconciliationService, SweepResult
from algo_transfer.tool import ToolResult, TransferTools

__all__ = [
    "ADDRESS_LENGTH",
    "AlgodGateway",
    "CredentialError",
    "DuplicateIdentifier",
    "ErrorCategory",
    "InvalidCredential",
    "InvalidTransition",
    "Keypair",
    "NetworkGateway",
    "NetworkUnavailable",
    "OutcomeKind",
    "ReconciliationService",
    "RejectedByNetwork",
    "SenderMismatch",
    "SubmissionCoordinator",
    "SubmissionOutcome",
    "SubmissionResult",
    "SuggestedParameters",
    "SweepResult",
    "ToolResult",
    "TransactionLedger",
    "TransactionRecord",
    "TransactionStatus",
    "TransferError",
    "TransferRequest",
    "TransferSettings",
    "TxOutcome",
    "UnknownTransaction",
    "ValidationError",
    "acquire_keypair",
    "classify_error",
    "resolve",
    "setup_logging",
    "verify_ownership",
]
