"""JSON-RPC transport for dao-deployments library."""

import itertools
from typing import Any, List, Optional

import requests

from .exceptions import RpcConnectionError, RpcError


class JsonRpcClient:
    """Thin JSON-RPC 2.0 client over HTTP."""

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            rpc_url: RPC endpoint URL
            timeout: Per-request timeout in seconds
            session: Optional requests session to reuse connections
        """
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._session = session or requests.Session()
        self._ids = itertools.count(1)

    def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Perform a single JSON-RPC call.

        Args:
            method: RPC method name, e.g. "eth_blockNumber"
            params: Positional parameters

        Returns:
            The "result" member of the response (may be None)

        Raises:
            RpcError: If the node returns an error object
            RpcConnectionError: If a network error or non-200 status occurs
        """
        try:
            response = self._session.post(
                self.rpc_url,
                json={
                    "jsonrpc": "2.0",
                    "method": method,
                    "params": params or [],
                    "id": next(self._ids),
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RpcConnectionError(f"Network error during RPC call {method}: {e}") from e

        # Check for HTTP errors
        if response.status_code != 200:
            raise RpcConnectionError(
                f"RPC request {method} failed with status {response.status_code}"
            )

        try:
            result = response.json()
        except ValueError as e:
            raise RpcConnectionError(f"RPC response to {method} is not JSON") from e

        # Check for RPC errors
        if "error" in result:
            error = result["error"] or {}
            raise RpcError(
                f"RPC error from {method}: {error.get('message', error)}",
                code=error.get("code"),
                data=error.get("data"),
            )

        return result.get("result")
