"""Resilience components: failure classification, denylist and timeout guard."""

from rpc_failover.resilience.classification import (
    RETRYABLE_KINDS,
    Classification,
    classify,
    error_kind,
    is_rate_limited,
)
from rpc_failover.resilience.denylist import Denylist
from rpc_failover.resilience.timeout import TimeoutGuard

__all__ = [
    "RETRYABLE_KINDS",
    "Classification",
    "Denylist",
    "TimeoutGuard",
    "classify",
    "error_kind",
    "is_rate_limited",
]
