"""Endpoint data model shared by the registry and the health tracker."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Endpoint:
    """A single RPC endpoint with health tracking."""

    url: str
    is_blacklisted: bool = False  # Permanent, from the denylist
    consecutive_failures: int = 0
    last_success_at: float | None = None  # time.time() of the last success
