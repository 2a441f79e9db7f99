"""
Tests for AlgodGateway and HttpxTransport against canned algod responses.

HTTP is intercepted with pytest-httpx; no real node is contacted.

Test plan:
- Status: last round parsed, token header sent, non-2xx → NODE_UNHEALTHY
- Params: fields mapped, validity window applied, malformed body rejected
- Submit: raw bytes posted as application/x-binary, txId parsed,
  4xx → rejected with classified code, 200 without txId rejected
- Pending: confirmed-round → CONFIRMED, pool-error → REJECTED,
  neither → PENDING, 404 → NOT_FOUND
- Transport: timeout, refused connection, 5xx, bad JSON, non-object JSON
  all surface as NetworkUnavailable
- Rejection mapping: algod messages → coarse codes
"""

from __future__ import annotations

from typing import Any

import httpx
import pytest
from pytest_httpx import HTTPXMock

from algo_transfer.errors import NetworkUnavailable
from algo_transfer.models import OutcomeKind
from algo_transfer.network.algod import VALIDITY_WINDOW, AlgodGateway
from algo_transfer.network.errors import RejectionCode, classify_rejection
from algo_transfer.network.transport import TransportResponse

BASE_URL = "https://algod.test"
TX_ID = "QK5PVRK6EMPQ7YBZ5ZV7CBGB2RXCJL3ZIUHWMMSYPQKQ4BNFJYQA"

PARAMS_BODY = {
    "consensus-version": "https://github.com/algorandfoundation/specs/tree/abd3d4823c6f77349fc04c3af7b1e99fe4df699f",
    "fee": 0,
    "genesis-hash": "SGO1GKSzyE7IEPItTxCByw9x8FmnrCDexi9/cOUJOiI=",
    "genesis-id": "testnet-v1.0",
    "last-round": 41_000_000,
    "min-fee": 1000,
}


# ---------------------------------------------------------------------------
# Fake transport
# ---------------------------------------------------------------------------


class FakeTransport:
    """Returns one canned response for every request."""

    def __init__(self, response: TransportResponse) -> None:
        self._response = response
        self.calls: list[tuple[str, str, Any]] = []
        self.closed = False

    async def get_json(self, path: str) -> TransportResponse:
        self.calls.append(("GET", path, None))
        return self._response

    async def post_bytes(
        self,
        path: str,
        body: bytes,
        content_type: str = "application/x-binary",
    ) -> TransportResponse:
        self.calls.append(("POST", path, body))
        return self._response

    async def aclose(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_url_required_without_transport(self) -> None:
        with pytest.raises(ValueError):
            AlgodGateway()

    @pytest.mark.asyncio
    async def test_aclose_closes_transport(self) -> None:
        transport = FakeTransport(TransportResponse(200, {}))
        gateway = AlgodGateway(transport=transport)
        await gateway.aclose()
        assert transport.closed is True


# ---------------------------------------------------------------------------
# Connectivity
# ---------------------------------------------------------------------------


class TestCheckConnectivity:
    @pytest.mark.asyncio
    async def test_parses_last_round(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/v2/status",
            json={"last-round": 41_000_123, "catchup-time": 0},
        )
        gateway = AlgodGateway(BASE_URL)
        status = await gateway.check_connectivity()
        await gateway.aclose()

        assert status.last_round == 41_000_123

    @pytest.mark.asyncio
    async def test_sends_token_header(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/v2/status",
            json={"last-round": 1},
        )
        gateway = AlgodGateway(BASE_URL, token="s3cret")
        await gateway.check_connectivity()
        await gateway.aclose()

        requests = httpx_mock.get_requests()
        assert len(requests) == 1
        assert requests[0].headers["X-Algo-API-Token"] == "s3cret"

    @pytest.mark.asyncio
    async def test_no_token_header_for_public_node(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/v2/status",
            json={"last-round": 1},
        )
        gateway = AlgodGateway(BASE_URL)
        await gateway.check_connectivity()
        await gateway.aclose()

        assert "X-Algo-API-Token" not in httpx_mock.get_requests()[0].headers

    @pytest.mark.asyncio
    async def test_unauthorized_is_network_unavailable(self) -> None:
        gateway = AlgodGateway(
            transport=FakeTransport(TransportResponse(401, {"message": "Invalid API Token"}))
        )
        with pytest.raises(NetworkUnavailable) as exc:
            await gateway.check_connectivity()
        assert exc.value.error_code == "NODE_UNHEALTHY"
        assert exc.value.details["status_code"] == 401
        assert exc.value.details["message"] == "Invalid API Token"

    @pytest.mark.asyncio
    async def test_connection_error(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(
            httpx.ConnectError("Connection refused"),
            method="GET",
            url=f"{BASE_URL}/v2/status",
        )
        gateway = AlgodGateway(BASE_URL)
        with pytest.raises(NetworkUnavailable) as exc:
            await gateway.check_connectivity()
        await gateway.aclose()

        assert exc.value.error_code == "CONNECTION_FAILED"
        assert exc.value.retryable is True
        assert exc.value.__cause__ is not None

    @pytest.mark.asyncio
    async def test_timeout(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(
            httpx.ReadTimeout("Request timed out"),
            method="GET",
            url=f"{BASE_URL}/v2/status",
        )
        gateway = AlgodGateway(BASE_URL, timeout=2.5)
        with pytest.raises(NetworkUnavailable) as exc:
            await gateway.check_connectivity()
        await gateway.aclose()

        assert exc.value.error_code == "TIMEOUT"
        assert exc.value.details["timeout_s"] == 2.5

    @pytest.mark.asyncio
    async def test_server_error(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/v2/status",
            status_code=503,
            text="Service Unavailable",
        )
        gateway = AlgodGateway(BASE_URL)
        with pytest.raises(NetworkUnavailable) as exc:
            await gateway.check_connectivity()
        await gateway.aclose()

        assert exc.value.error_code == "HTTP_ERROR"
        assert exc.value.details["status_code"] == 503

    @pytest.mark.asyncio
    async def test_invalid_json(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/v2/status",
            text="not json",
        )
        gateway = AlgodGateway(BASE_URL)
        with pytest.raises(NetworkUnavailable) as exc:
            await gateway.check_connectivity()
        await gateway.aclose()

        assert exc.value.error_code == "INVALID_JSON"

    @pytest.mark.asyncio
    async def test_json_not_object(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/v2/status",
            json=["not", "an", "object"],
        )
        gateway = AlgodGateway(BASE_URL)
        with pytest.raises(NetworkUnavailable) as exc:
            await gateway.check_connectivity()
        await gateway.aclose()

        assert exc.value.error_code == "INVALID_JSON"

    @pytest.mark.asyncio
    async def test_undecodable_body(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/v2/status",
            content=b"\xff\xfe\xfa garbage",
        )
        gateway = AlgodGateway(BASE_URL)
        with pytest.raises(NetworkUnavailable) as exc:
            await gateway.check_connectivity()
        await gateway.aclose()

        assert exc.value.error_code == "INVALID_JSON"
        assert exc.value.__cause__ is not None


# ---------------------------------------------------------------------------
# Suggested parameters
# ---------------------------------------------------------------------------


class TestFetchSuggestedParameters:
    @pytest.mark.asyncio
    async def test_maps_fields(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/v2/transactions/params",
            json=PARAMS_BODY,
        )
        gateway = AlgodGateway(BASE_URL)
        params = await gateway.fetch_suggested_parameters()
        await gateway.aclose()

        assert params.fee == 0
        assert params.min_fee == 1000
        assert params.first_valid == 41_000_000
        assert params.last_valid == 41_000_000 + VALIDITY_WINDOW
        assert params.genesis_id == "testnet-v1.0"
        assert params.genesis_hash == PARAMS_BODY["genesis-hash"]
        assert params.consensus_version == PARAMS_BODY["consensus-version"]

    @pytest.mark.asyncio
    async def test_missing_field_is_invalid_response(self) -> None:
        body = {k: v for k, v in PARAMS_BODY.items() if k != "genesis-hash"}
        gateway = AlgodGateway(transport=FakeTransport(TransportResponse(200, body)))
        with pytest.raises(NetworkUnavailable) as exc:
            await gateway.fetch_suggested_parameters()
        assert exc.value.error_code == "INVALID_RESPONSE"
        assert exc.value.details["field"] == "genesis-hash"

    @pytest.mark.asyncio
    async def test_non_2xx_is_params_unavailable(self) -> None:
        gateway = AlgodGateway(transport=FakeTransport(TransportResponse(403, {})))
        with pytest.raises(NetworkUnavailable) as exc:
            await gateway.fetch_suggested_parameters()
        assert exc.value.error_code == "PARAMS_UNAVAILABLE"


# ---------------------------------------------------------------------------
# Submit
# ---------------------------------------------------------------------------


class TestSubmit:
    @pytest.mark.asyncio
    async def test_accepted(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE_URL}/v2/transactions",
            json={"txId": TX_ID},
        )
        gateway = AlgodGateway(BASE_URL)
        result = await gateway.submit(b"\x82\xa3sig")
        await gateway.aclose()

        assert result.accepted is True
        assert result.tx_id == TX_ID

    @pytest.mark.asyncio
    async def test_posts_raw_bytes(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE_URL}/v2/transactions",
            json={"txId": TX_ID},
        )
        gateway = AlgodGateway(BASE_URL)
        await gateway.submit(b"\x82\xa3sig")
        await gateway.aclose()

        requests = httpx_mock.get_requests()
        assert len(requests) == 1
        assert requests[0].content == b"\x82\xa3sig"
        assert requests[0].headers["Content-Type"] == "application/x-binary"

    @pytest.mark.asyncio
    async def test_rejected_overspend(self, httpx_mock: HTTPXMock) -> None:
        message = (
            f"TransactionPool.Remember: transaction {TX_ID}: overspend "
            "(account ABC, data {_struct:{} Status:Offline MicroAlgos:{Raw:1000}}, "
            "tried to spend {250000})"
        )
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE_URL}/v2/transactions",
            status_code=400,
            json={"message": message},
        )
        gateway = AlgodGateway(BASE_URL)
        result = await gateway.submit(b"raw")
        await gateway.aclose()

        assert result.accepted is False
        assert result.tx_id is None
        assert result.reason == message
        assert result.error_code == "OVERSPEND"

    @pytest.mark.asyncio
    async def test_rejected_without_message(self) -> None:
        gateway = AlgodGateway(transport=FakeTransport(TransportResponse(400, {})))
        result = await gateway.submit(b"raw")
        assert result.accepted is False
        assert result.reason == "HTTP 400"
        assert result.error_code == "UNKNOWN"

    @pytest.mark.asyncio
    async def test_ok_without_tx_id(self) -> None:
        gateway = AlgodGateway(transport=FakeTransport(TransportResponse(200, {})))
        with pytest.raises(NetworkUnavailable) as exc:
            await gateway.submit(b"raw")
        assert exc.value.error_code == "INVALID_RESPONSE"

    @pytest.mark.asyncio
    async def test_timeout_propagates(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(
            httpx.ReadTimeout("Request timed out"),
            method="POST",
            url=f"{BASE_URL}/v2/transactions",
        )
        gateway = AlgodGateway(BASE_URL)
        with pytest.raises(NetworkUnavailable) as exc:
            await gateway.submit(b"raw")
        await gateway.aclose()

        assert exc.value.error_code == "TIMEOUT"


# ---------------------------------------------------------------------------
# Pending outcome
# ---------------------------------------------------------------------------


class TestQueryOutcome:
    @pytest.mark.asyncio
    async def test_confirmed(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/v2/transactions/pending/{TX_ID}",
            json={"confirmed-round": 500, "pool-error": "", "txn": {}},
        )
        gateway = AlgodGateway(BASE_URL)
        outcome = await gateway.query_outcome(TX_ID)
        await gateway.aclose()

        assert outcome.kind == OutcomeKind.CONFIRMED
        assert outcome.confirmed_round == 500

    @pytest.mark.asyncio
    async def test_pool_error_is_rejected(self) -> None:
        transport = FakeTransport(
            TransportResponse(200, {"pool-error": "txn dead: round 41 outside of 10--20"})
        )
        outcome = await AlgodGateway(transport=transport).query_outcome(TX_ID)
        assert outcome.kind == OutcomeKind.REJECTED
        assert outcome.reason == "txn dead: round 41 outside of 10--20"
        assert transport.calls == [("GET", f"/v2/transactions/pending/{TX_ID}", None)]

    @pytest.mark.asyncio
    async def test_in_pool_is_pending(self) -> None:
        transport = FakeTransport(TransportResponse(200, {"pool-error": "", "txn": {}}))
        outcome = await AlgodGateway(transport=transport).query_outcome(TX_ID)
        assert outcome.kind == OutcomeKind.PENDING
        assert outcome.confirmed_round is None

    @pytest.mark.asyncio
    async def test_zero_round_is_pending(self) -> None:
        transport = FakeTransport(TransportResponse(200, {"confirmed-round": 0}))
        outcome = await AlgodGateway(transport=transport).query_outcome(TX_ID)
        assert outcome.kind == OutcomeKind.PENDING

    @pytest.mark.asyncio
    async def test_404_is_not_found(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/v2/transactions/pending/{TX_ID}",
            status_code=404,
            json={"message": "txn does not exist"},
        )
        gateway = AlgodGateway(BASE_URL)
        outcome = await gateway.query_outcome(TX_ID)
        await gateway.aclose()

        assert outcome.kind == OutcomeKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_undecodable_body(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/v2/transactions/pending/{TX_ID}",
            content=b"\xff\xfe\xfa",
        )
        gateway = AlgodGateway(BASE_URL)
        with pytest.raises(NetworkUnavailable) as exc:
            await gateway.query_outcome(TX_ID)
        await gateway.aclose()

        assert exc.value.error_code == "INVALID_JSON"

    @pytest.mark.asyncio
    async def test_other_4xx_is_network_unavailable(self) -> None:
        transport = FakeTransport(TransportResponse(401, {"message": "Invalid API Token"}))
        with pytest.raises(NetworkUnavailable):
            await AlgodGateway(transport=transport).query_outcome(TX_ID)


# ---------------------------------------------------------------------------
# Rejection mapping
# ---------------------------------------------------------------------------


class TestClassifyRejection:
    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            ("transaction XYZ: overspend (account ABC ...)", RejectionCode.OVERSPEND),
            ("account ABC balance 0 below min 100000 (0 assets)", RejectionCode.OVERSPEND),
            ("txn dead: round 41 outside of 10--20", RejectionCode.EXPIRED),
            ("transaction XYZ: round 5 outside of 10--1010", RejectionCode.EXPIRED),
            ("transaction had fee 0, which is less than the minimum 1000", RejectionCode.FEE),
            ("msgpack decode error [pos 1]: no data", RejectionCode.MALFORMED),
            ("At least one signature didn't pass verification", RejectionCode.MALFORMED),
            ("something new", RejectionCode.UNKNOWN),
        ],
    )
    def test_known_messages(self, message: str, expected: RejectionCode) -> None:
        assert classify_rejection(message) == expected

    def test_case_insensitive(self) -> None:
        assert classify_rejection("OVERSPEND") == RejectionCode.OVERSPEND

    def test_missing_reason(self) -> None:
        assert classify_rejection(None) == RejectionCode.UNKNOWN
        assert classify_rejection("") == RejectionCode.UNKNOWN
