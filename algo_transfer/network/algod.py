"""
algod gateway — real network implementation of NetworkGateway.

Translates algod REST v2 responses into NodeStatus, SuggestedParameters,
SubmitResult and TxOutcome. Uses an injectable transport (HttpTransport)
so the HTTP layer can be swapped for test fakes without changing
parsing logic.

No retry loops. No secrets. No logic beyond request/response mapping.

Endpoints:
    - GET  /v2/status                        → liveness + last round
    - GET  /v2/transactions/params           → suggested parameters
    - POST /v2/transactions                  → submit raw signed bytes
    - GET  /v2/transactions/pending/{txid}   → outcome

Response conventions:
    - Success bodies use kebab-case keys ("last-round", "genesis-hash").
    - Submit success: {"txId": "..."}.
    - Errors: 4xx with {"message": "..."}.
    - Pending: 404 when the node has never seen the id, otherwise
      "confirmed-round" (> 0 once confirmed) and "pool-error"
      (non-empty once the pool dropped it).
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from algo_transfer.errors import NetworkUnavailable
from algo_transfer.models import SuggestedParameters, TxOutcome
from algo_transfer.network.errors import classify_rejection
from algo_transfer.network.gateway import NodeStatus, SubmitResult
from algo_transfer.network.transport import HttpTransport, HttpxTransport, TransportResponse

logger = logging.getLogger(__name__)

# Validity window length, in rounds, applied to fetched parameters.
VALIDITY_WINDOW = 1000


class AlgodGateway:
    """algod REST gateway implementing the NetworkGateway protocol.

    Args:
        url: algod endpoint URL. Ignored when ``transport`` is given.
        token: API token. Ignored when ``transport`` is given.
        timeout: Per-request timeout in seconds.
        transport: Injectable transport. Defaults to HttpxTransport.
    """

    def __init__(
        self,
        url: str = "",
        *,
        token: str = "",
        timeout: float = 10.0,
        transport: HttpTransport | None = None,
    ) -> None:
        if transport is None:
            if not url:
                raise ValueError("url is required when no transport is given")
            transport = HttpxTransport(url, token=token, timeout=timeout)
        self._transport = transport

    async def aclose(self) -> None:
        await self._transport.aclose()

    # -----------------------------------------------------------------
    # NetworkGateway protocol methods
    # -----------------------------------------------------------------

    async def check_connectivity(self) -> NodeStatus:
        response = await self._transport.get_json("/v2/status")
        if not response.ok:
            raise NetworkUnavailable(
                "node status check failed",
                error_code="NODE_UNHEALTHY",
                details={"status_code": response.status_code, **_message(response)},
            )
        status = _parse_status(response.body)
        logger.info("connected to algod, last round %s", status.last_round)
        return status

    async def fetch_suggested_parameters(self) -> SuggestedParameters:
        response = await self._transport.get_json("/v2/transactions/params")
        if not response.ok:
            raise NetworkUnavailable(
                "could not fetch transaction parameters",
                error_code="PARAMS_UNAVAILABLE",
                details={"status_code": response.status_code, **_message(response)},
            )
        return _parse_params(response.body)

    async def submit(self, signed_txn: bytes) -> SubmitResult:
        """Submit raw signed bytes.

        Transport exceptions propagate as NetworkUnavailable.
        """
        response = await self._transport.post_bytes("/v2/transactions", signed_txn)
        return _parse_submit_response(response)

    async def query_outcome(self, tx_id: str) -> TxOutcome:
        path = f"/v2/transactions/pending/{quote(tx_id, safe='')}"
        response = await self._transport.get_json(path)
        return _parse_pending_response(response)


# =====================================================================
# Response parsing (pure functions, no I/O)
# =====================================================================


def _message(response: TransportResponse) -> dict[str, Any]:
    message = response.body.get("message")
    return {"message": message} if message else {}


def _require_int(body: dict[str, Any], key: str) -> int:
    value = body.get(key)
    if not isinstance(value, int) or isinstance(value, bool):
        raise NetworkUnavailable(
            f"malformed node response: {key!r} missing or not an integer",
            error_code="INVALID_RESPONSE",
            details={"field": key},
        )
    return value


def _require_str(body: dict[str, Any], key: str) -> str:
    value = body.get(key)
    if not isinstance(value, str) or not value:
        raise NetworkUnavailable(
            f"malformed node response: {key!r} missing or not a string",
            error_code="INVALID_RESPONSE",
            details={"field": key},
        )
    return value


def _parse_status(body: dict[str, Any]) -> NodeStatus:
    return NodeStatus(last_round=_require_int(body, "last-round"))


def _parse_params(body: dict[str, Any]) -> SuggestedParameters:
    last_round = _require_int(body, "last-round")
    return SuggestedParameters(
        fee=_require_int(body, "fee"),
        min_fee=_require_int(body, "min-fee"),
        first_valid=last_round,
        last_valid=last_round + VALIDITY_WINDOW,
        genesis_id=_require_str(body, "genesis-id"),
        genesis_hash=_require_str(body, "genesis-hash"),
        consensus_version=body.get("consensus-version"),
    )


def _parse_submit_response(response: TransportResponse) -> SubmitResult:
    """Parse a submit response.

    Handles:
        - 200 with txId → accepted
        - 4xx with message → rejected, classified
        - 200 without txId → treated as an unusable node answer
    """
    if response.ok:
        tx_id = response.body.get("txId")
        if not isinstance(tx_id, str) or not tx_id:
            raise NetworkUnavailable(
                "no txId in submit response",
                error_code="INVALID_RESPONSE",
            )
        return SubmitResult(accepted=True, tx_id=tx_id)

    reason = response.body.get("message") or f"HTTP {response.status_code}"
    return SubmitResult(
        accepted=False,
        reason=reason,
        error_code=str(classify_rejection(reason)),
    )


def _parse_pending_response(response: TransportResponse) -> TxOutcome:
    """Parse a pending-transaction response.

    Handles:
        - 404 → NOT_FOUND (may not have propagated yet)
        - confirmed-round > 0 → CONFIRMED
        - non-empty pool-error → REJECTED
        - anything else found → PENDING
    """
    if response.status_code == 404:
        return TxOutcome.not_found()
    if not response.ok:
        raise NetworkUnavailable(
            "pending transaction query failed",
            error_code="HTTP_ERROR",
            details={"status_code": response.status_code, **_message(response)},
        )

    confirmed_round = response.body.get("confirmed-round")
    if isinstance(confirmed_round, int) and confirmed_round > 0:
        return TxOutcome.confirmed(confirmed_round)

    pool_error = response.body.get("pool-error")
    if pool_error:
        return TxOutcome.rejected(str(pool_error))

    return TxOutcome.pending()
