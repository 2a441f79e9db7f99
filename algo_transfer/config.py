"""
Runtime settings.

Read once at wiring time, from explicit values or the environment.
Never mutated at request time.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_ALGOD_SERVER = "https://testnet-api.algonode.cloud"


@dataclass(frozen=True)
class TransferSettings:
    """Settings for the gateway, ledger and logging.

    Attributes:
        algod_server: algod base URL (scheme + host).
        algod_port: Port appended to algod_server. Empty for none.
        algod_token: API token sent as X-Algo-API-Token.
        algod_timeout: Per-request timeout in seconds.
        db_path: SQLite database path for the ledger.
        log_level: Logging level name.
        recent_limit: Default size of the recent-transactions listing.
    """

    algod_server: str = DEFAULT_ALGOD_SERVER
    algod_port: str = "443"
    algod_token: str = ""
    algod_timeout: float = 10.0
    db_path: str = "transfers.db"
    log_level: str = "INFO"
    recent_limit: int = 50

    @property
    def algod_url(self) -> str:
        server = self.algod_server.rstrip("/")
        if not self.algod_port:
            return server
        return f"{server}:{self.algod_port}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TransferSettings:
        """Build settings from environment variables.

        Raises:
            ValueError: If a numeric variable does not parse.
        """
        env = os.environ if environ is None else environ
        return cls(
            algod_server=env.get("ALGOD_SERVER", DEFAULT_ALGOD_SERVER),
            algod_port=env.get("ALGOD_PORT", "443"),
            algod_token=env.get("ALGOD_TOKEN", ""),
            algod_timeout=_parse_number(env, "ALGOD_TIMEOUT", 10.0, float),
            db_path=env.get("TRANSFER_DB", "transfers.db"),
            log_level=env.get("TRANSFER_LOG_LEVEL", "INFO").upper(),
            recent_limit=_parse_number(env, "TRANSFER_RECENT_LIMIT", 50, int),
        )


def _parse_number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got: {raw!r}") from None
