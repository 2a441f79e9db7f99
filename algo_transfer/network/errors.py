"""
Rejection mapping — translates algod rejection messages to coarse codes.

algod reports refusals as free text (HTTP 400 on submit, ``pool-error``
on the pending endpoint). The mapping is deliberately coarse and
conservative: unknown messages map to UNKNOWN rather than guessing.

Typical messages:
    - "... overspend (account ..., data {...}, tried to spend {...})"
    - "... balance 0 below min 100000 ..."
    - "txn dead: round 41 outside of 10--20"
    - "... fee 0 below threshold 1000 ..."
    - "msgpack decode error ..." / "... malformed ..."
"""

from __future__ import annotations

from enum import StrEnum


class RejectionCode(StrEnum):
    OVERSPEND = "OVERSPEND"
    EXPIRED = "EXPIRED"
    FEE = "FEE"
    MALFORMED = "MALFORMED"
    UNKNOWN = "UNKNOWN"


# Checked in order; first match wins.
_SUBSTRING_MAP: tuple[tuple[str, RejectionCode], ...] = (
    ("overspend", RejectionCode.OVERSPEND),
    ("below min", RejectionCode.OVERSPEND),
    ("txn dead", RejectionCode.EXPIRED),
    ("outside of", RejectionCode.EXPIRED),
    ("fee", RejectionCode.FEE),
    ("decode", RejectionCode.MALFORMED),
    ("malformed", RejectionCode.MALFORMED),
    ("signature", RejectionCode.MALFORMED),
)


def classify_rejection(reason: str | None) -> RejectionCode:
    """Map an algod rejection message to a RejectionCode.

    Args:
        reason: The node's message. None means the node gave no reason.

    Returns:
        RejectionCode. UNKNOWN for unrecognized or missing messages.
    """
    if not reason:
        return RejectionCode.UNKNOWN

    lowered = reason.lower()
    for needle, code in _SUBSTRING_MAP:
        if needle in lowered:
            return code

    return RejectionCode.UNKNOWN
