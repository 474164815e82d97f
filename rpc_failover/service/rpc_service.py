"""Consumer-facing RPC service.

One ``RpcService`` instance owns the endpoint registry, health tracker,
connection cache, mode selector and orchestrator for a single network. Nothing
is module-global, so several instances (e.g. one per network) can coexist.

Typical use::

    service = RpcService.from_settings(RpcSettings())
    block = await service.with_fallback(lambda conn: conn.get_block_number())
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any, TypeVar

from rpc_failover.config.networks import NetworkConfig, resolve_network
from rpc_failover.config.settings import RpcSettings
from rpc_failover.endpoints.health import HealthTracker
from rpc_failover.endpoints.prober import HealthProber
from rpc_failover.endpoints.registry import EndpointRegistry
from rpc_failover.middleware.error_handler import EndpointNotFoundError
from rpc_failover.models.diagnostics import DiagnosticsSnapshot
from rpc_failover.resilience.denylist import Denylist
from rpc_failover.resilience.timeout import TimeoutGuard
from rpc_failover.service.diagnostics import DiagnosticsAggregator
from rpc_failover.service.orchestrator import FailoverOrchestrator, Operation
from rpc_failover.service.selector import ModeSelector
from rpc_failover.transport.cache import ClientFactory, ConnectionCache

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RpcService:
    """Resilient multi-endpoint JSON-RPC client.

    Args:
        endpoints: Ordered endpoint URLs, primary first.
        chain_id: Chain id pinned on every pool connection.
        network: Network name reported in diagnostics.
        denylist: Host substrings of endpoints never to select.
        failure_threshold: Consecutive failures that exclude an endpoint.
        default_timeout_ms: Deadline used when a call passes none.
        max_cascade_attempts: Upper bound on fallback attempts per call.
        backoff_base_ms: Inter-attempt wait, multiplied by the attempt index.
        rate_limit_cooldown_ms: Extra wait after a rate-limited attempt.
        cascade_timeout_fraction: Share of the deadline given to each cascade attempt.
        max_concurrent_requests: Optional bound on concurrent operations.
        http_timeout_seconds: Per-request HTTP timeout of pool connections.
        client_factory: Optional override for pool connection construction.
    """

    def __init__(
        self,
        endpoints: Sequence[str],
        *,
        chain_id: int,
        network: str | None = None,
        denylist: Iterable[str] = (),
        failure_threshold: int = 3,
        default_timeout_ms: int = 5000,
        max_cascade_attempts: int = 3,
        backoff_base_ms: int = 500,
        rate_limit_cooldown_ms: int = 1000,
        cascade_timeout_fraction: float = 0.7,
        max_concurrent_requests: int | None = None,
        http_timeout_seconds: float = 10.0,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._denylist = Denylist(denylist)
        self._registry = EndpointRegistry(endpoints, self._denylist)
        self._tracker = HealthTracker(self._registry, failure_threshold=failure_threshold)
        self._cache = ConnectionCache(
            chain_id, timeout_seconds=http_timeout_seconds, factory=client_factory
        )
        self._selector = ModeSelector(self._registry, self._tracker, self._cache, self._denylist)
        self._guard = TimeoutGuard()
        self._orchestrator = FailoverOrchestrator(
            registry=self._registry,
            tracker=self._tracker,
            selector=self._selector,
            default_timeout_ms=default_timeout_ms,
            max_cascade_attempts=max_cascade_attempts,
            backoff_base_ms=backoff_base_ms,
            rate_limit_cooldown_ms=rate_limit_cooldown_ms,
            cascade_timeout_fraction=cascade_timeout_fraction,
            max_concurrent_requests=max_concurrent_requests,
            guard=self._guard,
        )
        self._diagnostics = DiagnosticsAggregator(
            self._registry, self._tracker, self._selector, network=network, chain_id=chain_id
        )

        logger.info(
            "RPC service initialized for %s with %d fallback endpoints",
            network or f"chain {chain_id}",
            len(self._registry),
            extra={"network": network},
        )

    @classmethod
    def from_settings(
        cls,
        settings: RpcSettings,
        network: NetworkConfig | None = None,
        **overrides: Any,
    ) -> RpcService:
        """Build a service for the configured network."""
        network = network or resolve_network(settings)
        options: dict[str, Any] = {
            "chain_id": network.chain_id,
            "network": network.name,
            "denylist": settings.denylist,
            "failure_threshold": settings.failure_threshold,
            "default_timeout_ms": settings.default_timeout_ms,
            "max_cascade_attempts": settings.max_cascade_attempts,
            "backoff_base_ms": settings.backoff_base_ms,
            "rate_limit_cooldown_ms": settings.rate_limit_cooldown_ms,
            "cascade_timeout_fraction": settings.cascade_timeout_fraction,
            "max_concurrent_requests": settings.max_concurrent_requests,
            "http_timeout_seconds": settings.http_timeout_seconds,
        }
        options.update(overrides)
        return cls(network.rpc_urls, **options)

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def registry(self) -> EndpointRegistry:
        return self._registry

    @property
    def tracker(self) -> HealthTracker:
        return self._tracker

    @property
    def cache(self) -> ConnectionCache:
        return self._cache

    @property
    def selector(self) -> ModeSelector:
        return self._selector

    @property
    def guard(self) -> TimeoutGuard:
        return self._guard

    # ------------------------------------------------------------------
    # Consumer API
    # ------------------------------------------------------------------

    async def with_fallback(
        self,
        operation: Operation[T],
        timeout_ms: float | None = None,
        *,
        force_read_only: bool = False,
    ) -> T:
        """Run ``operation(connection)`` with wallet demotion and pool failover."""
        return await self._orchestrator.with_fallback(
            operation, timeout_ms, force_read_only=force_read_only
        )

    def get_connection(self, force_read_only: bool = False) -> Any:
        """The connection the next call would start on."""
        selection = self._selector.select(force_read_only)
        if self._selector.is_denylisted(selection.url):
            selection = self._selector.select_pool(exclude=[selection.url])
        return selection.connection

    def set_wallet_connection(self, connection: Any) -> None:
        self._selector.set_wallet_connection(connection)

    def has_wallet_connection(self) -> bool:
        return self._selector.has_wallet_connection()

    def reset_health(self, url: str | None = None) -> None:
        """Clear failure counters for one registry endpoint, or all of them.

        Raises:
            EndpointNotFoundError: If ``url`` is not in the registry.
        """
        if url is not None and url not in self._registry:
            raise EndpointNotFoundError(f"Endpoint not in registry: {url}", url=url)
        self._tracker.reset(url)

    def get_diagnostics_snapshot(self) -> DiagnosticsSnapshot:
        return self._diagnostics.snapshot()

    def create_prober(self, interval_seconds: int = 60) -> HealthProber:
        """Background prober wired to this service's registry and cache."""
        return HealthProber(
            self._registry,
            self._tracker,
            self._cache,
            interval_seconds=interval_seconds,
            guard=self._guard,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def reset(self) -> None:
        """Full recovery: clear health, forget the primary, drop cached connections."""
        self._tracker.reset()
        self._selector.forget_primary()
        await self._cache.invalidate_all()

    async def aclose(self) -> None:
        await self._cache.invalidate_all()

    async def __aenter__(self) -> RpcService:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
