"""Denylist of endpoint hosts known to rate-limit aggressively."""

from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import urlparse


class Denylist:
    """Host-substring patterns whose endpoints are treated as permanently unhealthy.

    A URL matches when any pattern occurs (case-insensitively) in its host.
    ``None`` never matches, so connections without a known URL pass through.
    """

    def __init__(self, patterns: Iterable[str] = ()) -> None:
        self._patterns = tuple(p.strip().lower() for p in patterns if p and p.strip())

    @property
    def patterns(self) -> tuple[str, ...]:
        return self._patterns

    def matches(self, url: str | None) -> bool:
        if not url or not self._patterns:
            return False
        host = (urlparse(url).hostname or url).lower()
        return any(pattern in host for pattern in self._patterns)

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and self.matches(url)

    def __len__(self) -> int:
        return len(self._patterns)
