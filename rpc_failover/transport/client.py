"""JSON-RPC 2.0 over HTTP client bound to a single endpoint.

The client pins the chain id it was created for, so ``chain_id()`` never
issues a handshake call. Every transport failure is raised as an
``RpcTransportError`` carrying a typed ``ErrorKind``; this is the only place
where raw ``httpx`` exceptions and HTTP status codes are interpreted.
"""

from __future__ import annotations

import itertools
import logging
import socket
from typing import Any, Protocol, runtime_checkable

import httpx

from rpc_failover.middleware.error_handler import (
    ErrorKind,
    JsonRpcError,
    RateLimitedError,
    RpcTimeoutError,
    RpcTransportError,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class Connection(Protocol):
    """Anything an operation can issue JSON-RPC requests through.

    Wallet connections supplied by the application only need ``request``;
    an optional ``url`` attribute lets the denylist recognise the endpoint
    behind them.
    """

    async def request(self, method: str, params: list[Any] | None = None) -> Any: ...


def connection_url(connection: object) -> str | None:
    """The endpoint URL behind a connection, if it exposes one."""
    url = getattr(connection, "url", None)
    return url if isinstance(url, str) else None


def _is_dns_failure(exc: httpx.ConnectError) -> bool:
    cause: BaseException | None = exc
    while cause is not None:
        if isinstance(cause, socket.gaierror):
            return True
        cause = cause.__cause__ or cause.__context__
    return False


class JsonRpcClient:
    """Reusable, stateless JSON-RPC client for one endpoint URL.

    Parameters
    ----------
    url:
        Endpoint URL.
    chain_id:
        Chain id of the network the endpoint serves, pinned at construction.
    timeout_seconds:
        Per-request HTTP timeout (the failover deadline is enforced separately).
    client:
        Optional pre-built ``httpx.AsyncClient`` (tests pass one with a mock
        transport).
    """

    def __init__(
        self,
        url: str,
        chain_id: int,
        *,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._chain_id = chain_id
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))
        self._ids = itertools.count(1)

    @property
    def url(self) -> str:
        return self._url

    def chain_id(self) -> int:
        """Pinned chain id, no network round-trip."""
        return self._chain_id

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        """Send one JSON-RPC request and return its ``result``.

        Raises
        ------
        RateLimitedError
            On HTTP 429.
        RpcTimeoutError
            When the HTTP request times out.
        JsonRpcError
            When the response carries a JSON-RPC ``error`` object.
        RpcTransportError
            For any other transport or HTTP failure.
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        logger.debug("RPC %s -> %s", method, self._url)

        try:
            response = await self._client.post(self._url, json=payload)
        except httpx.TimeoutException as exc:
            raise RpcTimeoutError(
                f"RPC request to {self._url} timed out", endpoint_url=self._url
            ) from exc
        except httpx.ConnectError as exc:
            kind = ErrorKind.DNS_FAILURE if _is_dns_failure(exc) else ErrorKind.NETWORK
            raise RpcTransportError(
                f"Cannot connect to {self._url}: {exc}", kind=kind, endpoint_url=self._url
            ) from exc
        except (httpx.RemoteProtocolError, httpx.ReadError, httpx.WriteError) as exc:
            raise RpcTransportError(
                f"Connection to {self._url} was reset: {exc}",
                kind=ErrorKind.CONNECTION_RESET,
                endpoint_url=self._url,
            ) from exc
        except httpx.TransportError as exc:
            raise RpcTransportError(
                f"Network error talking to {self._url}: {exc}", endpoint_url=self._url
            ) from exc

        if response.status_code == 429:
            raise RateLimitedError(endpoint_url=self._url, http_status=429)
        if response.status_code >= 400:
            kind = ErrorKind.SERVER_ERROR if response.status_code >= 500 else ErrorKind.NETWORK
            raise RpcTransportError(
                f"HTTP {response.status_code} from {self._url}",
                kind=kind,
                endpoint_url=self._url,
                http_status=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise RpcTransportError(
                f"Invalid JSON from {self._url}", endpoint_url=self._url
            ) from exc

        if not isinstance(body, dict):
            raise RpcTransportError(
                f"Unexpected JSON-RPC response from {self._url}", endpoint_url=self._url
            )

        error = body.get("error")
        if error is not None:
            if not isinstance(error, dict):
                error = {"code": 0, "message": str(error)}
            raise JsonRpcError(
                str(error.get("message") or "JSON-RPC error"),
                code=int(error.get("code", 0)),
                data=error.get("data"),
                endpoint_url=self._url,
            )

        return body.get("result")

    # ------------------------------------------------------------------
    # Convenience calls
    # ------------------------------------------------------------------

    async def get_block_number(self) -> int:
        return int(await self.request("eth_blockNumber"), 16)

    async def get_network_chain_id(self) -> int:
        """Chain id as reported by the remote node (used by health probes)."""
        return int(await self.request("eth_chainId"), 16)

    async def get_balance(self, address: str, block: str = "latest") -> int:
        return int(await self.request("eth_getBalance", [address, block]), 16)

    async def call(self, transaction: dict[str, Any], block: str = "latest") -> str:
        return await self.request("eth_call", [transaction, block])

    async def aclose(self) -> None:
        await self._client.aclose()

    def __repr__(self) -> str:
        return f"JsonRpcClient(url={self._url!r}, chain_id={self._chain_id})"


async def close_quietly(client: JsonRpcClient) -> None:
    """Close a client, logging rather than raising transport errors on shutdown."""
    try:
        await client.aclose()
    except (httpx.HTTPError, RuntimeError) as exc:
        logger.debug("Error closing client for %s: %r", client.url, exc)
