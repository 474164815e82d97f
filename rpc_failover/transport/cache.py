"""Memoized JSON-RPC clients, one per endpoint URL."""

from __future__ import annotations

import logging
from collections.abc import Callable

from rpc_failover.transport.client import JsonRpcClient, close_quietly

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], JsonRpcClient]


class ConnectionCache:
    """Lazily creates and keeps one ``JsonRpcClient`` per URL.

    Handles are built with the network's chain id pinned and reused for the
    lifetime of the cache. Concurrent first use of the same URL is harmless:
    construction has no awaits, so the event loop never interleaves it.

    Args:
        chain_id: Chain id pinned on every handle.
        timeout_seconds: Per-request HTTP timeout for new handles.
        factory: Optional override for handle construction (tests).
    """

    def __init__(
        self,
        chain_id: int,
        *,
        timeout_seconds: float = 10.0,
        factory: ClientFactory | None = None,
    ) -> None:
        self._chain_id = chain_id
        self._timeout_seconds = timeout_seconds
        self._factory = factory if factory is not None else self._default_factory
        self._clients: dict[str, JsonRpcClient] = {}

    def _default_factory(self, url: str) -> JsonRpcClient:
        return JsonRpcClient(url, self._chain_id, timeout_seconds=self._timeout_seconds)

    def get(self, url: str) -> JsonRpcClient:
        client = self._clients.get(url)
        if client is None:
            client = self._factory(url)
            self._clients[url] = client
            logger.debug("Created RPC client for %s", url)
        return client

    def cached_urls(self) -> list[str]:
        return list(self._clients)

    async def invalidate_all(self) -> None:
        """Drop every cached handle and close its HTTP connection pool."""
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await close_quietly(client)
        if clients:
            logger.info("Connection cache cleared (%d clients closed)", len(clients))

    def __len__(self) -> int:
        return len(self._clients)
