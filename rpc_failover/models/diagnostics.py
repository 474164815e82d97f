"""Diagnostics snapshot models returned to monitoring and reset actions."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class RpcStatus(str, Enum):
    """Overall pool condition derived from the healthy ratio."""

    GOOD = "good"
    DEGRADED = "degraded"
    POOR = "poor"
    OFFLINE = "offline"


class EndpointStatus(BaseModel):
    """Health view of a single endpoint."""

    url: str
    healthy: bool
    consecutive_failures: int
    last_success_at: float | None = None
    is_blacklisted: bool = False
    is_current_primary: bool = False


class DiagnosticsSnapshot(BaseModel):
    """Point-in-time view over the registry and health state."""

    endpoints: list[EndpointStatus]
    mode: str
    has_wallet_connection: bool
    network: str | None = None
    chain_id: int | None = None
    status: RpcStatus
    healthy_count: int
    total: int
