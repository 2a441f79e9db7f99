"""
Network gateway protocol — the consensus-network boundary.

Defines the interface the coordinator and reconciliation service depend
on, not a concrete implementation. The gateway is injected at
construction time so tests can substitute a fake.

Concrete implementations:
    - AlgodGateway (algod REST v2 over an injectable transport)
    - FakeGateway (tests)

Contract:
    - Every method is one remote call. No retries inside the gateway;
      retry policy belongs to the caller.
    - Transport failures raise NetworkUnavailable.
    - "Expected" network answers are captured in result objects:
      a refused submission is ``SubmitResult(accepted=False)``, an unknown
      id is ``TxOutcome.not_found()``.
    - The gateway holds no mutable state beyond its shared connection.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from algo_transfer.models import SuggestedParameters, TxOutcome


@dataclass(frozen=True)
class NodeStatus:
    """Liveness probe result.

    Attributes:
        last_round: Latest round the node has seen.
    """

    last_round: int


@dataclass(frozen=True)
class SubmitResult:
    """Result of submitting signed transaction bytes.

    Attributes:
        accepted: Whether the network took the transaction into its
            pending pool. True does NOT mean final.
        tx_id: Network-assigned transaction id. Present when accepted.
        reason: Network's rejection message when accepted is False.
        error_code: Coarse rejection category (see network/errors.py).
    """

    accepted: bool
    tx_id: str | None = None
    reason: str | None = None
    error_code: str | None = None


@runtime_checkable
class NetworkGateway(Protocol):
    """Interface for consensus-network operations."""

    async def check_connectivity(self) -> NodeStatus:
        """Lightweight liveness probe.

        Raises:
            NetworkUnavailable: If the node cannot be reached.
        """
        ...

    async def fetch_suggested_parameters(self) -> SuggestedParameters:
        """Fetch fresh transaction parameters.

        Raises:
            NetworkUnavailable: If the node cannot be reached.
        """
        ...

    async def submit(self, signed_txn: bytes) -> SubmitResult:
        """Submit raw signed transaction bytes.

        Raises:
            NetworkUnavailable: If the node cannot be reached. The
                transaction may or may not have been accepted.
        """
        ...

    async def query_outcome(self, tx_id: str) -> TxOutcome:
        """Query the current outcome of a transaction.

        Raises:
            NetworkUnavailable: If the node cannot be reached.
        """
        ...
