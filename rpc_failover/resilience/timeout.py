"""Timeout guard that races an operation against a timer.

The slower side of the race is not cancelled: when the timer wins, the
operation keeps running in the background until it settles on its own. Each
guard keeps its own orphaned tasks referenced until then and retrieves their
outcome so the event loop does not report them as never retrieved.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from rpc_failover.middleware.error_handler import RpcTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TimeoutGuard:
    """Races awaitables against deadlines and tracks the ones that lost."""

    def __init__(self) -> None:
        self._orphans: set[asyncio.Future] = set()

    @property
    def pending(self) -> int:
        """Number of timed-out operations still running in the background."""
        return len(self._orphans)

    def _reap(self, task: asyncio.Future) -> None:
        self._orphans.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("Timed-out operation finished later with error: %r", exc)

    async def race(
        self,
        awaitable: Awaitable[T],
        timeout_ms: float,
        *,
        endpoint_url: str | None = None,
    ) -> T:
        """Resolve with ``awaitable`` or raise ``RpcTimeoutError`` after ``timeout_ms``.

        Args:
            awaitable: The operation to run.
            timeout_ms: Deadline in milliseconds.
            endpoint_url: Attached to the timeout error for diagnostics.
        """
        task = asyncio.ensure_future(awaitable)
        # Reaped even when the caller is cancelled while waiting
        self._orphans.add(task)
        task.add_done_callback(self._reap)

        done, _pending = await asyncio.wait({task}, timeout=max(timeout_ms, 0) / 1000.0)

        if task in done:
            self._orphans.discard(task)
            return task.result()

        raise RpcTimeoutError(
            f"RPC call timed out after {timeout_ms:g}ms",
            endpoint_url=endpoint_url,
            timeout_ms=timeout_ms,
        )
