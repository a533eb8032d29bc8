"""
Tests for zilstake/rpc/client.py

Tests the batch JSON-RPC client against an in-process mock transport.
"""

import json

import httpx
import pytest

from zilstake.rpc.client import (
    JsonRpcClient,
    ProtocolError,
    RpcError,
    TransportError,
)


# ============================================================================
# HELPERS
# ============================================================================

URL = "https://node.test"


def make_client(handler) -> JsonRpcClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return JsonRpcClient(URL, client=http)


def echo_batch(request: httpx.Request) -> httpx.Response:
    """Answer every request in reverse order with its own id as result."""
    payload = json.loads(request.content)
    body = [{"jsonrpc": "2.0", "id": r["id"], "result": hex(r["id"])} for r in reversed(payload)]
    return httpx.Response(200, json=body)


REQUESTS = [
    {"jsonrpc": "2.0", "method": "eth_blockNumber", "params": [], "id": 1},
    {"jsonrpc": "2.0", "method": "eth_blockNumber", "params": [], "id": 2},
]


# ============================================================================
# ERROR HIERARCHY TESTS
# ============================================================================

class TestErrors:
    """Tests for the exception hierarchy."""

    def test_hierarchy(self):
        assert issubclass(TransportError, RpcError)
        assert issubclass(ProtocolError, RpcError)
        assert not issubclass(TransportError, ProtocolError)


# ============================================================================
# BATCH TESTS
# ============================================================================

class TestBatch:
    """Tests for JsonRpcClient.batch()."""

    @pytest.mark.trio
    async def test_batch_returns_raw_entries(self):
        sent = []

        def handler(request):
            sent.append(json.loads(request.content))
            return echo_batch(request)

        client = make_client(handler)
        raw = await client.batch(REQUESTS)

        assert len(sent) == 1
        assert sent[0] == REQUESTS
        assert [entry["id"] for entry in raw] == [2, 1]

    @pytest.mark.trio
    async def test_empty_batch_skips_round_trip(self):
        def handler(request):
            raise AssertionError("no request expected")

        client = make_client(handler)
        assert await client.batch([]) == []

    @pytest.mark.trio
    async def test_http_error_status(self):
        client = make_client(lambda request: httpx.Response(500, text="oops"))
        with pytest.raises(TransportError):
            await client.batch(REQUESTS)

    @pytest.mark.trio
    async def test_network_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)
        with pytest.raises(TransportError):
            await client.batch(REQUESTS)

    @pytest.mark.trio
    async def test_single_error_object(self):
        body = {"jsonrpc": "2.0", "id": None, "error": {"code": -32600, "message": "Invalid request"}}
        client = make_client(lambda request: httpx.Response(200, json=body))
        with pytest.raises(ProtocolError, match="Invalid request"):
            await client.batch(REQUESTS)

    @pytest.mark.trio
    async def test_non_array_body(self):
        client = make_client(lambda request: httpx.Response(200, json="hello"))
        with pytest.raises(ProtocolError):
            await client.batch(REQUESTS)

    @pytest.mark.trio
    async def test_invalid_json(self):
        client = make_client(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(ProtocolError):
            await client.batch(REQUESTS)

    @pytest.mark.trio
    async def test_partial_response_passed_through(self):
        body = [{"jsonrpc": "2.0", "id": 2, "result": "0x2"}]
        client = make_client(lambda request: httpx.Response(200, json=body))
        assert await client.batch(REQUESTS) == body


# ============================================================================
# SINGLE CALL TESTS
# ============================================================================

class TestCall:
    """Tests for JsonRpcClient.call()."""

    @pytest.mark.trio
    async def test_call(self):
        sent = []

        def handler(request):
            payload = json.loads(request.content)
            sent.append(payload)
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": "0x64"})

        client = make_client(handler)
        assert await client.call("eth_blockNumber") == "0x64"
        await client.call("GetSmartContractSubState", "abc", "ssnlist", [])

        assert sent[0]["method"] == "eth_blockNumber"
        assert sent[0]["params"] == []
        assert sent[1]["params"] == ["abc", "ssnlist", []]
        assert sent[1]["id"] == sent[0]["id"] + 1

    @pytest.mark.trio
    async def test_call_error(self):
        body = {"jsonrpc": "2.0", "id": 1, "error": {"code": -5, "message": "Address not contract"}}
        client = make_client(lambda request: httpx.Response(200, json=body))
        with pytest.raises(ProtocolError, match="Address not contract"):
            await client.call("GetSmartContractSubState", "abc", "ssnlist", [])

    @pytest.mark.trio
    async def test_call_unexpected_array(self):
        client = make_client(lambda request: httpx.Response(200, json=[]))
        with pytest.raises(ProtocolError):
            await client.call("eth_blockNumber")


# ============================================================================
# LIFECYCLE TESTS
# ============================================================================

class TestLifecycle:
    """Tests for client ownership."""

    @pytest.mark.trio
    async def test_injected_client_not_closed(self):
        http = httpx.AsyncClient(transport=httpx.MockTransport(echo_batch))
        async with JsonRpcClient(URL, client=http):
            pass
        assert not http.is_closed
        await http.aclose()

    @pytest.mark.trio
    async def test_owned_client_closed(self):
        client = JsonRpcClient(URL)
        async with client:
            pass
        assert client._client.is_closed
