"""
Transport protocol for algod REST calls.

The gateway depends on this protocol, not on httpx directly, so the
HTTP layer can be swapped for a fake without editing parsing logic.

Concrete implementations:
    - HttpxTransport (default, one shared httpx.AsyncClient)
    - FakeTransport (tests, returns canned responses)

Transport-level failures (timeout, refused connection, TLS, 5xx) are
raised as NetworkUnavailable. 4xx responses are returned to the caller,
since algod uses them for "expected" answers (rejected transaction,
unknown id).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import httpx

from algo_transfer.errors import NetworkUnavailable

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-Algo-API-Token"


@dataclass(frozen=True)
class TransportResponse:
    """A decoded HTTP response.

    Attributes:
        status_code: HTTP status code (always < 500).
        body: Parsed JSON object. Empty dict for an empty body.
    """

    status_code: int
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@runtime_checkable
class HttpTransport(Protocol):
    """Async transport for algod requests."""

    async def get_json(self, path: str) -> TransportResponse:
        ...

    async def post_bytes(
        self,
        path: str,
        body: bytes,
        content_type: str = "application/x-binary",
    ) -> TransportResponse:
        ...

    async def aclose(self) -> None:
        ...


class HttpxTransport:
    """Default transport using one shared httpx.AsyncClient.

    The client is created on first use and lives until ``aclose()``.
    Configuration is fixed at construction.

    Args:
        base_url: algod endpoint, e.g. "https://testnet-api.algonode.cloud".
        token: API token sent as X-Algo-API-Token. Empty for public nodes.
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, base_url: str, token: str = "", timeout: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = {TOKEN_HEADER: token} if token else {}
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._headers,
                timeout=self._timeout,
            )
        return self._client

    async def get_json(self, path: str) -> TransportResponse:
        return await self._send("GET", path)

    async def post_bytes(
        self,
        path: str,
        body: bytes,
        content_type: str = "application/x-binary",
    ) -> TransportResponse:
        return await self._send(
            "POST", path, content=body, headers={"Content-Type": content_type}
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _send(self, method: str, path: str, **kwargs: Any) -> TransportResponse:
        url = f"{self._base_url}{path}"
        try:
            response = await self._get_client().request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise NetworkUnavailable(
                f"request timed out after {self._timeout}s",
                error_code="TIMEOUT",
                details={"url": url, "timeout_s": self._timeout},
            ) from e
        except httpx.ConnectError as e:
            raise NetworkUnavailable(
                f"failed to connect to {url}",
                error_code="CONNECTION_FAILED",
                details={"url": url},
            ) from e
        except httpx.HTTPError as e:
            raise NetworkUnavailable(
                f"HTTP error: {e}",
                error_code="HTTP_ERROR",
                details={"url": url, "error": str(e)},
            ) from e

        logger.debug("%s %s -> %s", method, path, response.status_code)
        if response.status_code >= 500:
            raise NetworkUnavailable(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                error_code="HTTP_ERROR",
                details={"url": url, "status_code": response.status_code},
            )

        return TransportResponse(
            status_code=response.status_code,
            body=_decode_body(response, url),
        )


def _decode_body(response: httpx.Response, url: str) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        body = response.json()
    except ValueError as e:  # bad JSON or undecodable bytes
        raise NetworkUnavailable(
            "response was not valid JSON",
            error_code="INVALID_JSON",
            details={
                "url": url,
                "status_code": response.status_code,
                "body_preview": response.text[:200],
            },
        ) from e
    if not isinstance(body, dict):
        raise NetworkUnavailable(
            "response JSON was not an object",
            error_code="INVALID_JSON",
            details={"url": url, "type": type(body).__name__},
        )
    return body
