"""
zilstake/rpc/client.py

Batch JSON-RPC client over HTTP.

One call to batch() is one round trip: the requests are POSTed as a JSON
array and the raw response array is returned as-is (order not guaranteed,
entries may be missing or carry an error). Correlation is the caller's job,
see zilstake.rpc.correlator.
"""

import logging
import time
from typing import Any, List, Optional

import httpx

from ..config import DEFAULT_RPC_URL, DEFAULT_TIMEOUT

logger = logging.getLogger("zilstake.rpc.client")


# ============================================================================
# ERRORS
# ============================================================================

class RpcError(Exception):
    """Exception raised for JSON-RPC failures that abort a run."""
    pass


class TransportError(RpcError):
    """Network or HTTP-level failure."""
    pass


class ProtocolError(RpcError):
    """Server answered with an error object or a malformed body instead of results."""
    pass


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message", error))
    return str(error)


# ============================================================================
# CLIENT
# ============================================================================

class JsonRpcClient:
    """
    Async JSON-RPC client for a Zilliqa node.

    Runs on trio (httpx speaks anyio). Owns its httpx.AsyncClient unless one
    is passed in.

    Example:
        async with JsonRpcClient("https://api.zilliqa.com") as client:
            raw = await client.batch(requests)
            height = await client.call("eth_blockNumber")
    """

    def __init__(
        self,
        url: str = DEFAULT_RPC_URL,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            url: JSON-RPC endpoint
            timeout: Request timeout in seconds
            client: Pre-configured httpx client (not closed by us)
        """
        self.url = url
        self.timeout = timeout

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._request_id = 0

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "JsonRpcClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def _post(self, payload: Any) -> Any:
        try:
            response = await self._client.post(self.url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {self.url} failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise ProtocolError(f"Invalid JSON response from {self.url}") from e

    async def batch(self, requests: List[dict]) -> List[dict]:
        """
        Send requests as one batch.

        Args:
            requests: JSON-RPC request objects with unique ids

        Returns:
            Raw response entries, in whatever order the server chose

        Raises:
            TransportError: On network or HTTP failure
            ProtocolError: If the server returned a single error object
        """
        if not requests:
            return []

        start = time.monotonic()
        logger.info(f"Sending batch of {len(requests)} requests to {self.url}")

        body = await self._post(requests)

        if isinstance(body, dict):
            raise ProtocolError(f"Batch rejected: {_error_message(body.get('error', body))}")
        if not isinstance(body, list):
            raise ProtocolError(f"Unexpected batch response type: {type(body).__name__}")

        elapsed = time.monotonic() - start
        logger.info(f"Batch returned {len(body)}/{len(requests)} entries in {elapsed:.2f}s")
        return body

    async def call(self, method: str, *params) -> Any:
        """
        Make a single JSON-RPC call.

        Raises:
            TransportError: On network or HTTP failure
            ProtocolError: On server error or malformed response
        """
        request = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": method,
            "params": list(params),
        }

        response = await self._post(request)
        if not isinstance(response, dict):
            raise ProtocolError(f"Unexpected response type: {type(response).__name__}")
        if "error" in response and response["error"]:
            raise ProtocolError(f"Server error: {_error_message(response['error'])}")

        return response.get("result")
