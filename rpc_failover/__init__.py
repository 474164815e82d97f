"""Resilient multi-endpoint JSON-RPC client with wallet demotion and pool failover."""

from rpc_failover.config.settings import RpcSettings
from rpc_failover.middleware.error_handler import (
    AllEndpointsFailedError,
    ConfigurationError,
    ErrorKind,
    JsonRpcError,
    RateLimitedError,
    RpcFailoverError,
    RpcTimeoutError,
    RpcTransportError,
)
from rpc_failover.service.rpc_service import RpcService
from rpc_failover.service.selector import Mode
from rpc_failover.transport.client import JsonRpcClient

__all__ = [
    "AllEndpointsFailedError",
    "ConfigurationError",
    "ErrorKind",
    "JsonRpcClient",
    "JsonRpcError",
    "Mode",
    "RateLimitedError",
    "RpcFailoverError",
    "RpcService",
    "RpcSettings",
    "RpcTimeoutError",
    "RpcTransportError",
]
