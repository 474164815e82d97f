"""Background health probing of registry endpoints.

Every ``interval_seconds`` each non-blacklisted endpoint receives a cheap
``eth_blockNumber`` call. A reply resets its failure counter, so excluded
endpoints come back without waiting for live traffic to pass through them;
an error counts as one more consecutive failure.
"""

from __future__ import annotations

import asyncio
import logging

from rpc_failover.endpoints.health import HealthTracker
from rpc_failover.endpoints.registry import EndpointRegistry
from rpc_failover.middleware.error_handler import RpcTransportError
from rpc_failover.resilience.timeout import TimeoutGuard
from rpc_failover.transport.cache import ConnectionCache

logger = logging.getLogger(__name__)


class HealthProber:
    """Periodically probes endpoints and feeds the results to the health tracker."""

    def __init__(
        self,
        registry: EndpointRegistry,
        tracker: HealthTracker,
        cache: ConnectionCache,
        interval_seconds: int = 60,
        probe_timeout_ms: int = 3000,
        guard: TimeoutGuard | None = None,
    ) -> None:
        self._registry = registry
        self._tracker = tracker
        self._cache = cache
        self._interval_seconds = interval_seconds
        self._probe_timeout_ms = probe_timeout_ms
        self._guard = guard if guard is not None else TimeoutGuard()

    async def run(self) -> None:
        """Probe forever; cancel the task to stop."""
        while True:
            await asyncio.sleep(self._interval_seconds)
            await self.probe_once()

    async def probe_once(self) -> dict[str, bool]:
        """Execute a single round of probes on all eligible endpoints."""
        targets = [e for e in self._registry if not e.is_blacklisted]
        results = await asyncio.gather(*(self._probe(e.url) for e in targets))
        return dict(zip((e.url for e in targets), results))

    async def _probe(self, url: str) -> bool:
        client = self._cache.get(url)
        try:
            block = await self._guard.race(
                client.get_block_number(), self._probe_timeout_ms, endpoint_url=url
            )
        except (RpcTransportError, ValueError, TypeError) as exc:
            self._tracker.mark_failure(url)
            logger.debug("Health probe failed for %s: %s", url, exc)
            return False

        self._tracker.mark_success(url)
        logger.debug("Health probe passed for %s (block %d)", url, block)
        return True
