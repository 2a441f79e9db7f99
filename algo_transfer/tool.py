"""
Tool entrypoints for algo_transfer.

Three tools:
- send: Submit a transfer and record it as pending
- status: Reconcile one transaction and return its record
- transactions: List recent transactions, newest first

Each tool returns a ToolResult whose ``category`` is one of the literal
response categories (success, validation_failure, credential_failure,
network_unavailable, not_found, internal_failure). Tools never raise
domain errors and never echo the recovery phrase.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from algo_transfer.config import TransferSettings
from algo_transfer.coordinator import SubmissionCoordinator
from algo_transfer.errors import (
    ErrorCategory,
    NetworkUnavailable,
    TransferError,
    ValidationError,
    classify_error,
)
from algo_transfer.ledger import TransactionLedger
from algo_transfer.log import setup_logging
from algo_transfer.models import TransferRequest
from algo_transfer.network.algod import AlgodGateway
from algo_transfer.network.gateway import NetworkGateway
from algo_transfer.reconciliation import ReconciliationService

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    """Result from a tool invocation."""

    success: bool
    category: ErrorCategory = ErrorCategory.SUCCESS
    data: dict[str, Any] = field(default_factory=lambda: {})
    error: str | None = None
    error_code: str | None = None
    details: dict[str, Any] = field(default_factory=lambda: {})

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success, "category": str(self.category)}
        if self.success:
            result.update(self.data)
        else:
            result["error"] = self.error
            result["error_code"] = self.error_code
            if self.details:
                result["details"] = self.details
        return result

    @classmethod
    def ok(cls, **data: Any) -> ToolResult:
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, exc: BaseException) -> ToolResult:
        if isinstance(exc, TransferError):
            return cls(
                success=False,
                category=exc.category,
                error=exc.message,
                error_code=exc.error_code,
                details=dict(exc.details),
            )
        return cls(
            success=False,
            category=classify_error(exc),
            error="internal error",
            error_code="INTERNAL",
        )


class TransferTools:
    """
    Tool implementations for transfer submission and status.

    Usage:
        tools = TransferTools.from_settings(TransferSettings.from_env())

        result = await tools.send({
            "sender": "...", "recipient": "...", "amount": 1000,
            "recovery_phrase": "...", "note": "rent",
        })
        status = await tools.status(result.data["tx_id"])
        recent = tools.transactions()

        await tools.aclose()
    """

    def __init__(
        self,
        gateway: NetworkGateway,
        ledger: TransactionLedger,
        *,
        recent_limit: int = 50,
    ) -> None:
        self.gateway = gateway
        self.ledger = ledger
        self.coordinator = SubmissionCoordinator(gateway, ledger)
        self.reconciler = ReconciliationService(ledger, gateway)
        self._recent_limit = recent_limit

    @classmethod
    def from_settings(cls, settings: TransferSettings) -> TransferTools:
        setup_logging(settings.log_level)
        gateway = AlgodGateway(
            settings.algod_url,
            token=settings.algod_token,
            timeout=settings.algod_timeout,
        )
        ledger = TransactionLedger(settings.db_path)
        return cls(gateway, ledger, recent_limit=settings.recent_limit)

    async def aclose(self) -> None:
        aclose = getattr(self.gateway, "aclose", None)
        if aclose is not None:
            await aclose()

    async def send(self, payload: dict[str, Any]) -> ToolResult:
        """Submit a transfer from an inbound payload."""
        try:
            if not isinstance(payload, dict):
                raise ValidationError("request body must be an object")
            request = TransferRequest.from_dict(payload)
            result = await self.coordinator.submit_transfer(request)
        except TransferError as e:
            return ToolResult.failure(e)
        except Exception as e:
            logger.exception("send failed")
            return ToolResult.failure(e)

        data = result.to_dict()
        data.pop("success")
        data["message"] = (
            "Transaction submitted successfully"
            if result.recorded
            else "Transaction submitted but not recorded; reconcile it by tx_id"
        )
        return ToolResult.ok(**data)

    async def status(self, tx_id: str) -> ToolResult:
        """Reconcile a transaction and return its record.

        On a soft network failure the last known record is returned
        with ``stale=True``.
        """
        try:
            record = await self.reconciler.reconcile(tx_id)
        except NetworkUnavailable as e:
            record = self.ledger.find_by_identifier(tx_id)
            if record is None:
                return ToolResult.failure(e)
            return ToolResult.ok(
                transaction=record.to_dict(),
                stale=True,
                stale_reason=e.message,
            )
        except TransferError as e:
            return ToolResult.failure(e)
        except Exception as e:
            logger.exception("status failed for %s", tx_id)
            return ToolResult.failure(e)

        return ToolResult.ok(transaction=record.to_dict(), stale=False)

    def transactions(self, limit: int | None = None) -> ToolResult:
        """List recent transactions, newest first."""
        try:
            records = self.ledger.list_recent(
                self._recent_limit if limit is None else limit
            )
        except Exception as e:
            logger.exception("listing transactions failed")
            return ToolResult.failure(e)
        return ToolResult.ok(transactions=[r.to_dict() for r in records])
