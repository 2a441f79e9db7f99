"""
Consensus-network boundary.

Protocols (for dependency injection):
    - ``NetworkGateway`` — connectivity, parameters, submit, outcome.
    - ``HttpTransport`` — injectable HTTP layer under the gateway.

Concrete:
    - ``AlgodGateway`` — algod REST v2 implementation.
    - ``HttpxTransport`` — default httpx-based transport.

Transaction building:
    - ``check_addresses``, ``build_payment``, ``sign_payment`` — pure, no network.

Rejection mapping:
    - ``classify_rejection()`` — algod message → RejectionCode.
"""

from algo_transfer.network.algod import AlgodGateway
from algo_transfer.network.errors import RejectionCode, classify_rejection
from algo_transfer.network.gateway import NetworkGateway, NodeStatus, SubmitResult
from algo_transfer.network.transport import HttpTransport, HttpxTransport, TransportResponse
from algo_transfer.network.tx import SignedPayment, build_payment, check_addresses, sign_payment

__all__ = [
    "AlgodGateway",
    "HttpTransport",
    "HttpxTransport",
    "NetworkGateway",
    "NodeStatus",
    "RejectionCode",
    "SignedPayment",
    "SubmitResult",
    "TransportResponse",
    "build_payment",
    "check_addresses",
    "classify_rejection",
    "sign_payment",
]
