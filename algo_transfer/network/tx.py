"""
Payment transaction builder and signer.

Builds an Algorand payment from a transfer's fields and freshly fetched
SuggestedParameters, signs it with a resolved keypair, and returns the
raw bytes ready for submission.

The transaction id is a pure function of the unsigned transaction, so
it is known before the network sees anything. The coordinator uses it
to point the caller at the right id when a submit call fails ambiguously.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass

from algosdk import encoding, transaction

from algo_transfer.credentials import Keypair
from algo_transfer.errors import ValidationError
from algo_transfer.models import SuggestedParameters


@dataclass(frozen=True)
class SignedPayment:
    """A signed payment ready for submission.

    Attributes:
        raw: msgpack-encoded signed transaction bytes.
        tx_id: Transaction id computed locally at signing time.
    """

    raw: bytes
    tx_id: str


def to_sdk_params(params: SuggestedParameters) -> transaction.SuggestedParams:
    return transaction.SuggestedParams(
        fee=params.fee,
        first=params.first_valid,
        last=params.last_valid,
        gh=params.genesis_hash,
        gen=params.genesis_id,
        flat_fee=False,
        consensus_version=params.consensus_version,
        min_fee=params.min_fee,
    )


def check_addresses(sender: str, recipient: str) -> None:
    """Raise ValidationError if either address fails checksum validation."""
    for name, address in (("sender", sender), ("recipient", recipient)):
        if not encoding.is_valid_address(address):
            raise ValidationError(
                "invalid transfer request",
                details={"issues": [{"field": name, "problem": "is not a valid address"}]},
            )


def build_payment(
    sender: str,
    recipient: str,
    amount: int,
    params: SuggestedParameters,
    note: str | None = None,
) -> transaction.PaymentTxn:
    """Build an unsigned payment (amount in microAlgos).

    Raises:
        ValidationError: If either address fails checksum validation.
    """
    check_addresses(sender, recipient)

    return transaction.PaymentTxn(
        sender=sender,
        sp=to_sdk_params(params),
        receiver=recipient,
        amt=amount,
        note=note.encode("utf-8") if note else None,
    )


def sign_payment(txn: transaction.PaymentTxn, keypair: Keypair) -> SignedPayment:
    signed = txn.sign(keypair.private_key)
    raw = base64.b64decode(encoding.msgpack_encode(signed))
    return SignedPayment(raw=raw, tx_id=txn.get_txid())
