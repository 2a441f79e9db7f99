"""
Credential resolver — the secrets boundary.

Turns a 25-word recovery phrase into a signing keypair and checks that
it controls the claimed sender address. Nothing outside this module
and the signing step ever touches the private key.

Key material is scoped: ``acquire_keypair()`` resolves, verifies, yields,
and releases the keypair on every exit path. Python cannot wipe
immutable strings, so release means dropping the only reference the
keypair holds.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from algosdk import account, mnemonic

from algo_transfer.errors import InvalidCredential, SenderMismatch


class Keypair:
    """A resolved signing keypair.

    The private key is available until ``release()`` is called.
    """

    __slots__ = ("_address", "_private_key")

    def __init__(self, address: str, private_key: str) -> None:
        self._address = address
        self._private_key: str | None = private_key

    @property
    def address(self) -> str:
        """Public address derived from the keypair. Safe to log."""
        return self._address

    @property
    def private_key(self) -> str:
        if self._private_key is None:
            raise RuntimeError("keypair has been released")
        return self._private_key

    @property
    def released(self) -> bool:
        return self._private_key is None

    def release(self) -> None:
        self._private_key = None

    def __repr__(self) -> str:
        return f"Keypair(address={self._address!r})"


def resolve(recovery_phrase: str) -> Keypair:
    """Derive a keypair from a recovery phrase.

    Raises:
        InvalidCredential: If the phrase is not a valid mnemonic. The
            phrase itself is never included in the error.
    """
    try:
        private_key = mnemonic.to_private_key(recovery_phrase)
        address = account.address_from_private_key(private_key)
    except Exception as exc:
        # algosdk raises a mix of its own errors, ValueError and KeyError
        raise InvalidCredential(
            "invalid recovery phrase format",
            details={"reason": type(exc).__name__},
        ) from None
    return Keypair(address, private_key)


def verify_ownership(keypair: Keypair, claimed_address: str) -> bool:
    """True if the keypair's derived address is exactly claimed_address."""
    return keypair.address == claimed_address


@contextmanager
def acquire_keypair(recovery_phrase: str, claimed_address: str) -> Iterator[Keypair]:
    """Resolve and verify a keypair, releasing it when the block exits.

    Raises:
        InvalidCredential: If the phrase cannot be parsed.
        SenderMismatch: If the phrase does not control claimed_address.
    """
    keypair = resolve(recovery_phrase)
    try:
        if not verify_ownership(keypair, claimed_address):
            raise SenderMismatch(
                "sender address does not match recovery phrase",
                details={"sender": claimed_address},
            )
        yield keypair
    finally:
        keypair.release()
