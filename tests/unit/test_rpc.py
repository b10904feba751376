"""Unit tests for the JSON-RPC transport."""

import json

import pytest
import requests
import responses

from dao_deployments.exceptions import RpcConnectionError, RpcError
from dao_deployments.rpc import JsonRpcClient

RPC_URL = "https://rpc.example.org"


class TestJsonRpcClient:
    """Test the JsonRpcClient class."""

    @responses.activate
    def test_returns_result_member(self):
        """Test a successful call returns the result."""
        responses.add(responses.POST, RPC_URL, json={"jsonrpc": "2.0", "id": 1, "result": "0x10"})

        assert JsonRpcClient(RPC_URL).request("eth_blockNumber") == "0x10"

    @responses.activate
    def test_sends_json_rpc_envelope(self):
        """Test the request body is a JSON-RPC 2.0 envelope with incrementing ids."""
        responses.add(responses.POST, RPC_URL, json={"jsonrpc": "2.0", "id": 1, "result": None})
        responses.add(responses.POST, RPC_URL, json={"jsonrpc": "2.0", "id": 2, "result": None})

        client = JsonRpcClient(RPC_URL)
        client.request("eth_getCode", ["0x01", "latest"])
        client.request("eth_chainId")

        first = json.loads(responses.calls[0].request.body)
        second = json.loads(responses.calls[1].request.body)
        assert first == {
            "jsonrpc": "2.0",
            "method": "eth_getCode",
            "params": ["0x01", "latest"],
            "id": 1,
        }
        assert second["params"] == []
        assert second["id"] == 2

    @responses.activate
    def test_none_result_is_returned(self):
        """Test a null result (e.g. pending receipt) is not an error."""
        responses.add(responses.POST, RPC_URL, json={"jsonrpc": "2.0", "id": 1, "result": None})

        assert JsonRpcClient(RPC_URL).request("eth_getTransactionReceipt", ["0x01"]) is None

    @responses.activate
    def test_error_member_raises_rpc_error(self):
        """Test a JSON-RPC error object is raised with its code and data."""
        responses.add(
            responses.POST,
            RPC_URL,
            json={
                "jsonrpc": "2.0",
                "id": 1,
                "error": {"code": -32000, "message": "insufficient funds", "data": "0xdead"},
            },
        )

        with pytest.raises(RpcError, match="insufficient funds") as exc_info:
            JsonRpcClient(RPC_URL).request("eth_sendRawTransaction", ["0x00"])

        assert exc_info.value.code == -32000
        assert exc_info.value.data == "0xdead"

    @responses.activate
    def test_http_error_raises_connection_error(self):
        """Test a non-200 status is a connection error."""
        responses.add(responses.POST, RPC_URL, status=503)

        with pytest.raises(RpcConnectionError, match="503"):
            JsonRpcClient(RPC_URL).request("eth_blockNumber")

    @responses.activate
    def test_network_error_raises_connection_error(self):
        """Test transport failures are wrapped."""
        responses.add(responses.POST, RPC_URL, body=requests.ConnectionError("refused"))

        with pytest.raises(RpcConnectionError, match="Network error"):
            JsonRpcClient(RPC_URL).request("eth_blockNumber")

    @responses.activate
    def test_non_json_body_raises_connection_error(self):
        """Test an HTML error page is not mistaken for a result."""
        responses.add(responses.POST, RPC_URL, body="<html>bad gateway</html>", status=200)

        with pytest.raises(RpcConnectionError, match="not JSON"):
            JsonRpcClient(RPC_URL).request("eth_blockNumber")
