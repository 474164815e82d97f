"""Pydantic Settings for the RPC failover client.

All environment variables use the RPC_ prefix.
Example: RPC_NETWORK=mainnet, RPC_DEFAULT_TIMEOUT_MS=8000
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class RpcSettings(BaseSettings):
    """RPC failover configuration validated from environment variables."""

    # Service
    port: int = 8002
    log_level: str = "INFO"

    # Network / endpoint registry
    network: str = "testnet"  # mainnet | testnet | any name from networks_path
    networks_path: str = "rpc_failover/config/networks.yaml"
    endpoints: list[str] = []  # Overrides the network's rpc_urls when non-empty
    denylist: list[str] = ["drpc.org"]  # Host substrings treated as permanently degraded

    # Failover
    default_timeout_ms: int = Field(default=5000, ge=1)
    failure_threshold: int = Field(default=3, ge=1)
    max_cascade_attempts: int = Field(default=3, ge=1)
    backoff_base_ms: int = Field(default=500, ge=0)
    rate_limit_cooldown_ms: int = Field(default=1000, ge=0)
    cascade_timeout_fraction: float = Field(default=0.7, gt=0.0, le=1.0)

    # Transport
    http_timeout_seconds: float = Field(default=10.0, gt=0.0)
    max_concurrent_requests: int | None = Field(default=None, ge=1)  # None = unbounded

    # Background health probing
    health_check_enabled: bool = False
    health_check_interval_seconds: int = Field(default=60, ge=1)

    model_config = {"env_prefix": "RPC_"}
