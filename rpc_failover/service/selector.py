"""Mode selection between the wallet connection and the fallback pool.

The wallet connection, when one is registered, is preferred for every call
that is not forced read-only. Otherwise a pool endpoint is chosen: the
remembered "current primary fallback" while it stays healthy, else the first
healthy endpoint in registry order. Denylisted endpoints are skipped before
they get a chance to fail.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from rpc_failover.endpoints.health import HealthTracker
from rpc_failover.endpoints.registry import EndpointRegistry
from rpc_failover.resilience.denylist import Denylist
from rpc_failover.transport.cache import ConnectionCache
from rpc_failover.transport.client import connection_url

logger = logging.getLogger(__name__)


class Mode(str, Enum):
    """Where calls are currently being sent."""

    WALLET = "wallet"
    FALLBACK_POOL = "fallback_pool"


@dataclass(frozen=True)
class Selection:
    """A connection chosen for one attempt."""

    connection: Any
    mode: Mode
    url: str | None


class ModeSelector:
    """Chooses the connection for a call and remembers the current pool primary."""

    def __init__(
        self,
        registry: EndpointRegistry,
        tracker: HealthTracker,
        cache: ConnectionCache,
        denylist: Denylist | None = None,
    ) -> None:
        self._registry = registry
        self._tracker = tracker
        self._cache = cache
        self._denylist = denylist if denylist is not None else registry.denylist
        self._wallet: Any = None
        self._current_primary: str | None = None
        self._mode = Mode.FALLBACK_POOL

    # ------------------------------------------------------------------
    # Wallet connection
    # ------------------------------------------------------------------

    def set_wallet_connection(self, connection: Any) -> None:
        self._wallet = connection
        logger.info("Wallet connection %s", "registered" if connection is not None else "cleared")

    def has_wallet_connection(self) -> bool:
        return self._wallet is not None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def current_primary(self) -> str | None:
        return self._current_primary

    def promote(self, url: str) -> None:
        """Make ``url`` the pool endpoint reused by subsequent calls."""
        if url != self._current_primary:
            logger.info("Fallback primary promoted: %s -> %s", self._current_primary, url)
        self._current_primary = url

    def forget_primary(self) -> None:
        self._current_primary = None

    def is_denylisted(self, url: str | None) -> bool:
        return self._denylist.matches(url)

    def _set_mode(self, mode: Mode) -> None:
        if mode is not self._mode:
            logger.info("RPC mode switched: %s -> %s", self._mode.value, mode.value)
        self._mode = mode

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, force_read_only: bool = False) -> Selection:
        """Pick the wallet connection, or a pool endpoint when forced or walletless."""
        if force_read_only or self._wallet is None:
            return self.select_pool()

        self._set_mode(Mode.WALLET)
        return Selection(self._wallet, Mode.WALLET, connection_url(self._wallet))

    def select_pool(
        self, exclude: Iterable[str] = (), *, reuse_primary: bool = True
    ) -> Selection:
        """Pick a pool endpoint and remember it as the current primary.

        With ``reuse_primary=False`` the remembered primary is ignored and the
        first healthy endpoint in registry order wins, as on wallet demotion.
        """
        url = self._pick_pool_url(set(exclude), reuse_primary)
        self._current_primary = url
        self._set_mode(Mode.FALLBACK_POOL)
        return Selection(self._cache.get(url), Mode.FALLBACK_POOL, url)

    def connection_for(self, url: str) -> Selection:
        """Pool selection for a specific endpoint, without changing the primary."""
        return Selection(self._cache.get(url), Mode.FALLBACK_POOL, url)

    def _pick_pool_url(self, excluded: set[str], reuse_primary: bool = True) -> str:
        current = self._current_primary
        if (
            reuse_primary
            and current is not None
            and current not in excluded
            and current in self._registry
            and self._tracker.is_healthy(current)
            and not self.is_denylisted(current)
        ):
            return current

        for endpoint in self._tracker.healthy(self._registry.list()):
            if endpoint.url in excluded:
                continue
            if self.is_denylisted(endpoint.url):
                logger.debug("Skipping denylisted endpoint %s", endpoint.url)
                continue
            return endpoint.url

        # Everything healthy was excluded or denylisted: degrade rather than fail
        for endpoint in self._registry:
            if endpoint.url not in excluded and not self.is_denylisted(endpoint.url):
                logger.warning("No healthy pool endpoint, using degraded %s", endpoint.url)
                return endpoint.url

        logger.warning("Every pool endpoint is denylisted, using primary %s", self._registry.primary.url)
        return self._registry.primary.url
