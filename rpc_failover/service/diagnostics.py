"""Read-only diagnostics over the endpoint registry and health tracker."""

from __future__ import annotations

from rpc_failover.endpoints.health import HealthTracker
from rpc_failover.endpoints.registry import EndpointRegistry
from rpc_failover.models.diagnostics import DiagnosticsSnapshot, EndpointStatus, RpcStatus
from rpc_failover.service.selector import ModeSelector


def rpc_status(healthy_count: int, total: int) -> RpcStatus:
    """Map the healthy ratio to good / degraded / poor / offline."""
    if total == 0 or healthy_count == 0:
        return RpcStatus.OFFLINE
    ratio = healthy_count / total
    if ratio < 0.3:
        return RpcStatus.POOR
    if ratio < 0.7:
        return RpcStatus.DEGRADED
    return RpcStatus.GOOD


class DiagnosticsAggregator:
    """Builds ``DiagnosticsSnapshot`` objects on demand; holds no state of its own."""

    def __init__(
        self,
        registry: EndpointRegistry,
        tracker: HealthTracker,
        selector: ModeSelector,
        *,
        network: str | None = None,
        chain_id: int | None = None,
    ) -> None:
        self._registry = registry
        self._tracker = tracker
        self._selector = selector
        self._network = network
        self._chain_id = chain_id

    def snapshot(self) -> DiagnosticsSnapshot:
        current = self._selector.current_primary
        endpoints = [
            EndpointStatus(
                url=endpoint.url,
                healthy=self._tracker.is_healthy(endpoint.url),
                consecutive_failures=endpoint.consecutive_failures,
                last_success_at=endpoint.last_success_at,
                is_blacklisted=endpoint.is_blacklisted,
                is_current_primary=endpoint.url == current,
            )
            for endpoint in self._registry
        ]
        healthy_count = sum(1 for e in endpoints if e.healthy)

        return DiagnosticsSnapshot(
            endpoints=endpoints,
            mode=self._selector.mode.value,
            has_wallet_connection=self._selector.has_wallet_connection(),
            network=self._network,
            chain_id=self._chain_id,
            status=rpc_status(healthy_count, len(endpoints)),
            healthy_count=healthy_count,
            total=len(endpoints),
        )
