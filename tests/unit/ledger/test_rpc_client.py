"""Tests for the JSON-RPC ledger client."""

from __future__ import annotations

import json

import httpx
import pytest
from httpx import Response

from ledgerstate.core.exceptions import LedgerUnavailableError
from ledgerstate.ledger.client import (
    LedgerClient,
    LedgerClientConfig,
    RpcLedgerClient,
    data_size_filter,
    memcmp_filter,
)

RPC_URL = "https://rpc.ledger.test"


@pytest.fixture
def client() -> RpcLedgerClient:
    """Create a client against the test endpoint."""
    return RpcLedgerClient(LedgerClientConfig(url=RPC_URL, name="primary", timeout=5.0))


def sent_payload(route) -> dict:
    return json.loads(route.calls.last.request.content)


# ============================================================================
# Configuration Tests
# ============================================================================


class TestRpcLedgerClientConfig:
    """Tests for client configuration."""

    def test_satisfies_protocol(self, client: RpcLedgerClient):
        assert isinstance(client, LedgerClient)

    def test_name_defaults_to_url(self):
        client = RpcLedgerClient(LedgerClientConfig(url=RPC_URL))
        assert client.name == RPC_URL

    def test_filters(self):
        assert data_size_filter(165) == {"dataSize": 165}
        assert memcmp_filter(0, "Mint") == {"memcmp": {"offset": 0, "bytes": "Mint"}}

    def test_backoff_uses_retry_after(self, client: RpcLedgerClient):
        assert client._backoff(1, "5") == 5.0
        assert client._backoff(1, "999") == 30.0

    def test_backoff_exponential(self, client: RpcLedgerClient):
        assert client._backoff(1, None) == 1.0
        assert client._backoff(2, None) == 2.0
        assert client._backoff(3, "soon") == 4.0


# ============================================================================
# Query Tests
# ============================================================================


class TestRpcLedgerClientQueries:
    """Tests for the three ledger queries."""

    async def test_query_accounts_by_filter(self, client, respx_mock, mock_responses):
        route = respx_mock.post(RPC_URL).mock(
            return_value=mock_responses["result"](
                [
                    mock_responses["token_account"]("Acc1", "WalletA"),
                    mock_responses["token_account"]("Acc2", None),
                ]
            )
        )
        filters = [data_size_filter(165), memcmp_filter(0, "Mint")]
        accounts = await client.query_accounts_by_filter("TokenProgram", filters)

        assert [a.address for a in accounts] == ["Acc1", "Acc2"]
        assert accounts[0].token_owner == "WalletA"
        assert accounts[1].token_owner is None

        payload = sent_payload(route)
        assert payload["method"] == "getProgramAccounts"
        assert payload["params"][0] == "TokenProgram"
        assert payload["params"][1]["filters"] == filters
        assert payload["params"][1]["encoding"] == "jsonParsed"

    async def test_query_account_info(self, client, respx_mock, mock_responses):
        value = mock_responses["token_account"]("Acc1", "WalletA")["account"]
        respx_mock.post(RPC_URL).mock(
            return_value=mock_responses["result"]({"context": {"slot": 1}, "value": value})
        )
        account = await client.query_account_info("Acc1")

        assert account.address == "Acc1"
        assert account.token_owner == "WalletA"
        assert account.lamports == 2039280

    async def test_query_account_info_missing(self, client, respx_mock, mock_responses):
        respx_mock.post(RPC_URL).mock(
            return_value=mock_responses["result"]({"context": {"slot": 1}, "value": None})
        )
        assert await client.query_account_info("Nope") is None

    async def test_query_latest_checkpoint(self, client, respx_mock, mock_responses):
        route = respx_mock.post(RPC_URL).mock(
            return_value=mock_responses["result"](
                {"context": {"slot": 1}, "value": {"blockhash": "Hash111", "lastValidBlockHeight": 9}}
            )
        )
        assert await client.query_latest_checkpoint() == "Hash111"
        assert sent_payload(route)["method"] == "getLatestBlockhash"

    async def test_query_latest_checkpoint_empty(self, client, respx_mock, mock_responses):
        respx_mock.post(RPC_URL).mock(return_value=mock_responses["result"](None))
        with pytest.raises(LedgerUnavailableError):
            await client.query_latest_checkpoint()

    async def test_request_ids_increase(self, client, respx_mock, mock_responses):
        route = respx_mock.post(RPC_URL).mock(return_value=mock_responses["result"](None))
        await client.query_account_info("A")
        await client.query_account_info("B")
        ids = [json.loads(call.request.content)["id"] for call in route.calls]
        assert ids == [1, 2]


# ============================================================================
# Error Handling Tests
# ============================================================================


class TestRpcLedgerClientErrors:
    """Tests for error mapping and 429 handling."""

    async def test_rpc_error(self, client, respx_mock, mock_responses):
        respx_mock.post(RPC_URL).mock(
            return_value=mock_responses["error"](-32005, "Node is behind")
        )
        with pytest.raises(LedgerUnavailableError) as exc_info:
            await client.query_account_info("A")

        assert exc_info.value.rpc_code == -32005
        assert "Node is behind" in exc_info.value.message
        assert exc_info.value.source == "primary"

    async def test_http_error_status(self, client, respx_mock):
        respx_mock.post(RPC_URL).mock(return_value=Response(503))
        with pytest.raises(LedgerUnavailableError) as exc_info:
            await client.query_latest_checkpoint()
        assert exc_info.value.status_code == 503

    async def test_invalid_json(self, client, respx_mock):
        respx_mock.post(RPC_URL).mock(return_value=Response(200, content=b"<html>"))
        with pytest.raises(LedgerUnavailableError):
            await client.query_latest_checkpoint()

    @pytest.mark.parametrize("body", [b"[]", b"null", b"\"x\""])
    async def test_non_object_body(self, client, respx_mock, body: bytes):
        respx_mock.post(RPC_URL).mock(return_value=Response(200, content=body))
        with pytest.raises(LedgerUnavailableError) as exc_info:
            await client.query_latest_checkpoint()
        assert "Malformed response" in exc_info.value.message

    async def test_non_object_error(self, client, respx_mock):
        respx_mock.post(RPC_URL).mock(
            return_value=Response(200, json={"jsonrpc": "2.0", "id": 1, "error": "boom"})
        )
        with pytest.raises(LedgerUnavailableError) as exc_info:
            await client.query_account_info("A")

        assert "boom" in exc_info.value.message
        assert exc_info.value.rpc_code is None

    async def test_transport_error(self, client, respx_mock):
        respx_mock.post(RPC_URL).mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(LedgerUnavailableError) as exc_info:
            await client.query_latest_checkpoint()
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    async def test_retries_429(self, client, respx_mock, mock_responses):
        route = respx_mock.post(RPC_URL).mock(
            side_effect=[
                Response(429, headers={"Retry-After": "0"}),
                mock_responses["result"]({"value": {"blockhash": "Hash111"}}),
            ]
        )
        assert await client.query_latest_checkpoint() == "Hash111"
        assert route.call_count == 2

    async def test_gives_up_after_429_retries(self, client, respx_mock):
        route = respx_mock.post(RPC_URL).mock(
            return_value=Response(429, headers={"Retry-After": "0"})
        )
        with pytest.raises(LedgerUnavailableError) as exc_info:
            await client.query_latest_checkpoint()

        assert exc_info.value.status_code == 429
        assert route.call_count == 3

    async def test_no_retry_when_disabled(self, respx_mock):
        client = RpcLedgerClient(LedgerClientConfig(url=RPC_URL, retry_on_429=False))
        route = respx_mock.post(RPC_URL).mock(return_value=Response(429))
        with pytest.raises(LedgerUnavailableError):
            await client.query_latest_checkpoint()
        assert route.call_count == 1


# ============================================================================
# Lifecycle Tests
# ============================================================================


class TestRpcLedgerClientLifecycle:
    """Tests for HTTP client management."""

    async def test_context_manager_closes(self, respx_mock, mock_responses):
        respx_mock.post(RPC_URL).mock(return_value=mock_responses["result"](None))
        async with RpcLedgerClient(LedgerClientConfig(url=RPC_URL)) as client:
            await client.query_account_info("A")
            assert client._client is not None
        assert client._client is None

    async def test_close_twice(self, client):
        await client.close()
        await client.close()
