"""Configuration module: settings and network registry."""

from rpc_failover.config.networks import (
    BUILTIN_NETWORKS,
    NativeCurrency,
    NetworkConfig,
    load_networks,
    resolve_network,
)
from rpc_failover.config.settings import RpcSettings

__all__ = [
    "BUILTIN_NETWORKS",
    "NativeCurrency",
    "NetworkConfig",
    "RpcSettings",
    "load_networks",
    "resolve_network",
]
