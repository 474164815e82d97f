"""Consecutive-failure health tracking for RPC endpoints.

An endpoint with ``consecutive_failures >= failure_threshold`` is excluded from
healthy selection until a call through it succeeds or its counter is reset.
Blacklisted endpoints are always excluded. When every endpoint is excluded,
``healthy()`` still returns the first one: degraded service beats none.

Counters are plain attribute writes shared across concurrent call chains on the
event loop. Slight over- or under-counting under concurrency is acceptable;
the counters steer selection, they are not a ledger.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Sequence

from rpc_failover.endpoints.types import Endpoint

logger = logging.getLogger(__name__)


class HealthTracker:
    """Tracks per-endpoint consecutive failures and last success time.

    Args:
        endpoints: Endpoints to track (usually the registry entries).
        failure_threshold: Consecutive failures that exclude an endpoint.
    """

    def __init__(self, endpoints: Iterable[Endpoint] = (), failure_threshold: int = 3) -> None:
        self._failure_threshold = failure_threshold
        self._endpoints: dict[str, Endpoint] = {e.url: e for e in endpoints}

    @property
    def failure_threshold(self) -> int:
        return self._failure_threshold

    def _get_or_create(self, url: str) -> Endpoint:
        """Get the tracked endpoint for a URL, tracking unknown URLs lazily."""
        if url not in self._endpoints:
            self._endpoints[url] = Endpoint(url=url)
        return self._endpoints[url]

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def mark_success(self, url: str) -> None:
        """Reset the failure counter and stamp the success time."""
        endpoint = self._get_or_create(url)
        recovered = endpoint.consecutive_failures >= self._failure_threshold
        endpoint.consecutive_failures = 0
        endpoint.last_success_at = time.time()
        if recovered:
            logger.info("Endpoint recovered: %s", url)

    def mark_failure(self, url: str) -> None:
        """Increment the consecutive failure counter."""
        endpoint = self._get_or_create(url)
        endpoint.consecutive_failures += 1
        if endpoint.consecutive_failures == self._failure_threshold:
            logger.warning(
                "Endpoint excluded after %d consecutive failures: %s",
                endpoint.consecutive_failures,
                url,
            )
        else:
            logger.debug(
                "Endpoint failure recorded: %s (consecutive: %d)",
                url,
                endpoint.consecutive_failures,
            )

    def reset(self, url: str | None = None) -> None:
        """Clear counters for one endpoint, or for all when ``url`` is None."""
        if url is None:
            targets = list(self._endpoints.values())
        else:
            targets = [self._endpoints[url]] if url in self._endpoints else []

        for endpoint in targets:
            endpoint.consecutive_failures = 0
        logger.info("Health counters reset for %s", url or "all endpoints")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def consecutive_failures(self, url: str) -> int:
        endpoint = self._endpoints.get(url)
        return endpoint.consecutive_failures if endpoint else 0

    def is_healthy(self, url: str) -> bool:
        endpoint = self._endpoints.get(url)
        if endpoint is None:
            return True
        return self._is_selectable(endpoint)

    def healthy(self, endpoints: Sequence[Endpoint]) -> list[Endpoint]:
        """Filter out excluded endpoints, never returning an empty list for non-empty input."""
        selectable = [e for e in endpoints if self._is_selectable(self._tracked(e))]
        if not selectable and endpoints:
            logger.warning("No healthy endpoints left, using primary %s", endpoints[0].url)
            return [endpoints[0]]
        return selectable

    def _tracked(self, endpoint: Endpoint) -> Endpoint:
        return self._endpoints.get(endpoint.url, endpoint)

    def _is_selectable(self, endpoint: Endpoint) -> bool:
        return (
            not endpoint.is_blacklisted
            and endpoint.consecutive_failures < self._failure_threshold
        )
