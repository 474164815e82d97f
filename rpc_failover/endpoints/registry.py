"""Static, network-scoped registry of candidate RPC endpoints.

The registry is built once from the resolved network's URL list and never
grows or shrinks afterwards; only the health fields of its entries change.
Index 0 is the primary endpoint and is always consulted first.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from rpc_failover.endpoints.types import Endpoint
from rpc_failover.middleware.error_handler import ConfigurationError
from rpc_failover.resilience.denylist import Denylist

logger = logging.getLogger(__name__)


class EndpointRegistry:
    """Ordered endpoint list for the active network."""

    def __init__(self, urls: Iterable[str], denylist: Denylist | None = None) -> None:
        self._denylist = denylist if denylist is not None else Denylist()
        self._endpoints: list[Endpoint] = []
        seen: set[str] = set()

        for raw_url in urls:
            url = raw_url.strip()
            if not url or url in seen:
                continue
            seen.add(url)
            self._endpoints.append(
                Endpoint(url=url, is_blacklisted=self._denylist.matches(url))
            )

        if not self._endpoints:
            raise ConfigurationError("No RPC endpoints configured")

        blacklisted = [e.url for e in self._endpoints if e.is_blacklisted]
        if blacklisted:
            logger.warning("Denylisted endpoints will not be selected: %s", ", ".join(blacklisted))
        logger.info("Endpoint registry initialized with %d endpoints", len(self._endpoints))

    @property
    def denylist(self) -> Denylist:
        return self._denylist

    def list(self) -> list[Endpoint]:
        """Endpoints in priority order (a copy; entries are shared)."""
        return list(self._endpoints)

    def get(self, url: str) -> Endpoint | None:
        for endpoint in self._endpoints:
            if endpoint.url == url:
                return endpoint
        return None

    @property
    def primary(self) -> Endpoint:
        return self._endpoints[0]

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and self.get(url) is not None

    def __iter__(self) -> Iterator[Endpoint]:
        return iter(list(self._endpoints))

    def __len__(self) -> int:
        return len(self._endpoints)
