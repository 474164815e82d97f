"""Failover orchestrator: runs one operation with wallet demotion and a pool cascade.

Lifecycle of a call:

1. select a connection (wallet unless forced read-only or none registered);
   a denylisted selection is swapped for a pool endpoint up front
2. race ``operation(connection)`` against the caller's deadline
3. success → record it for pool endpoints and return
4. wallet failure that is not an endpoint problem → re-raise unchanged
5. retryable wallet failure → one demotion attempt on the first healthy pool
   endpoint in registry order, with half the deadline
6. cascade over the remaining healthy endpoints in priority order, with a
   growing backoff, an extra cooldown after rate limiting, and a reduced
   per-attempt deadline
7. nothing worked → ``AllEndpointsFailedError`` wrapping the last error

The total number of attempts of one call never exceeds
``1 + min(max_cascade_attempts, len(registry))``; the demotion attempt counts
against the cascade budget.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from rpc_failover.endpoints.health import HealthTracker
from rpc_failover.endpoints.registry import EndpointRegistry
from rpc_failover.middleware.error_handler import AllEndpointsFailedError
from rpc_failover.resilience.classification import (
    Classification,
    classify,
    error_kind,
    is_rate_limited,
)
from rpc_failover.resilience.timeout import TimeoutGuard
from rpc_failover.service.selector import Mode, ModeSelector, Selection

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[Any], Awaitable[T]]


class FailoverOrchestrator:
    """Executes caller operations against the selected connection with failover.

    Dependencies are injected via the constructor so the orchestrator is
    testable with fake connections and no network.
    """

    def __init__(
        self,
        *,
        registry: EndpointRegistry,
        tracker: HealthTracker,
        selector: ModeSelector,
        default_timeout_ms: int = 5000,
        max_cascade_attempts: int = 3,
        backoff_base_ms: int = 500,
        rate_limit_cooldown_ms: int = 1000,
        cascade_timeout_fraction: float = 0.7,
        max_concurrent_requests: int | None = None,
        guard: TimeoutGuard | None = None,
    ) -> None:
        self._registry = registry
        self._tracker = tracker
        self._selector = selector
        self._default_timeout_ms = default_timeout_ms
        self._max_cascade_attempts = max_cascade_attempts
        self._backoff_base_ms = backoff_base_ms
        self._rate_limit_cooldown_ms = rate_limit_cooldown_ms
        self._cascade_timeout_fraction = cascade_timeout_fraction
        self._guard = guard if guard is not None else TimeoutGuard()
        self._limiter = (
            asyncio.Semaphore(max_concurrent_requests) if max_concurrent_requests else None
        )

    @property
    def attempt_budget(self) -> int:
        """Cascade attempts allowed after the first call."""
        return min(self._max_cascade_attempts, len(self._registry))

    async def with_fallback(
        self,
        operation: Operation[T],
        timeout_ms: float | None = None,
        *,
        force_read_only: bool = False,
    ) -> T:
        """Run ``operation`` with failover.

        Raises
        ------
        AllEndpointsFailedError
            If every attempt failed; ``last_error`` holds the final cause.
        Exception
            A non-retryable wallet error, re-raised unmodified.
        """
        if timeout_ms is None:
            timeout_ms = self._default_timeout_ms

        if self._limiter is None:
            return await self._execute(operation, timeout_ms, force_read_only)
        async with self._limiter:
            return await self._execute(operation, timeout_ms, force_read_only)

    # ------------------------------------------------------------------
    # Algorithm
    # ------------------------------------------------------------------

    async def _execute(
        self,
        operation: Operation[T],
        timeout_ms: float,
        force_read_only: bool,
    ) -> T:
        selection = self._selector.select(force_read_only)
        if self._selector.is_denylisted(selection.url):
            logger.warning(
                "Selected endpoint %s is denylisted, switching to fallback pool",
                selection.url,
                extra={"endpoint_url": selection.url, "mode": selection.mode.value},
            )
            selection = self._selector.select_pool(exclude=[selection.url])

        try:
            return await self._attempt(selection, operation, timeout_ms, attempt=1)
        except Exception as exc:
            if (
                selection.mode is Mode.WALLET
                and classify(exc) is Classification.NON_RETRYABLE
            ):
                logger.info(
                    "Wallet call failed with %s, not failing over",
                    error_kind(exc).value,
                    extra={"mode": Mode.WALLET.value, "error_kind": error_kind(exc).value},
                )
                raise
            last_error: BaseException = exc

        attempts = 1
        budget = self.attempt_budget
        tried = {selection.url} if selection.url else set()

        if selection.mode is Mode.WALLET:
            demoted = self._selector.select_pool(reuse_primary=False)
            logger.warning(
                "Wallet call failed (%s), demoting to fallback endpoint %s",
                error_kind(last_error).value,
                demoted.url,
                extra={"endpoint_url": demoted.url, "mode": Mode.FALLBACK_POOL.value},
            )
            attempts += 1
            budget -= 1
            tried.add(demoted.url)
            try:
                return await self._attempt(demoted, operation, timeout_ms / 2, attempt=attempts)
            except Exception as exc:
                last_error = exc

        return await self._cascade(operation, timeout_ms, tried, last_error, budget, attempts)

    async def _cascade(
        self,
        operation: Operation[T],
        timeout_ms: float,
        tried: set[str | None],
        last_error: BaseException,
        budget: int,
        attempts: int,
    ) -> T:
        attempt_timeout_ms = timeout_ms * self._cascade_timeout_fraction
        candidates = [
            endpoint.url
            for endpoint in self._tracker.healthy(self._registry.list())
            if endpoint.url not in tried
        ][: max(budget, 0)]

        for index, url in enumerate(candidates):
            # No backoff before the first cascade attempt, but a rate limit always cools down
            delay_ms = self._backoff_base_ms * index
            if is_rate_limited(last_error):
                delay_ms += self._rate_limit_cooldown_ms
            if delay_ms > 0:
                logger.debug("Waiting %dms before next fallback attempt", delay_ms)
                await asyncio.sleep(delay_ms / 1000.0)

            attempts += 1
            try:
                result = await self._attempt(
                    self._selector.connection_for(url),
                    operation,
                    attempt_timeout_ms,
                    attempt=attempts,
                )
            except Exception as exc:
                last_error = exc
                continue

            self._selector.promote(url)
            logger.info(
                "RPC fallback successful via %s",
                url,
                extra={"endpoint_url": url, "attempt": attempts},
            )
            return result

        logger.error(
            "All RPC fallback attempts failed after %d attempts: %s",
            attempts,
            last_error,
            extra={"attempt": attempts, "error_kind": error_kind(last_error).value},
        )
        raise AllEndpointsFailedError(last_error, attempts) from last_error

    async def _attempt(
        self,
        selection: Selection,
        operation: Operation[T],
        timeout_ms: float,
        *,
        attempt: int,
    ) -> T:
        """One raced call; pool endpoints get their health updated either way."""
        start = time.monotonic()
        try:
            result = await self._guard.race(
                operation(selection.connection), timeout_ms, endpoint_url=selection.url
            )
        except Exception as exc:
            duration_ms = round((time.monotonic() - start) * 1000, 1)
            if selection.mode is Mode.FALLBACK_POOL and selection.url:
                self._tracker.mark_failure(selection.url)
            logger.warning(
                "RPC attempt %d via %s failed: %s",
                attempt,
                selection.url or selection.mode.value,
                exc,
                extra={
                    "endpoint_url": selection.url,
                    "mode": selection.mode.value,
                    "attempt": attempt,
                    "error_kind": error_kind(exc).value,
                    "duration_ms": duration_ms,
                },
            )
            raise

        if selection.mode is Mode.FALLBACK_POOL and selection.url:
            self._tracker.mark_success(selection.url)
        logger.debug(
            "RPC attempt %d via %s succeeded",
            attempt,
            selection.url or selection.mode.value,
            extra={
                "endpoint_url": selection.url,
                "mode": selection.mode.value,
                "attempt": attempt,
                "duration_ms": round((time.monotonic() - start) * 1000, 1),
            },
        )
        return result
