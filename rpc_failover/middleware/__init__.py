"""Middleware package: error hierarchy and FastAPI exception handlers."""

from rpc_failover.middleware.error_handler import (
    AllEndpointsFailedError,
    ConfigurationError,
    EndpointNotFoundError,
    ErrorKind,
    JsonRpcError,
    RateLimitedError,
    RpcFailoverError,
    RpcTimeoutError,
    RpcTransportError,
    register_error_handlers,
)

__all__ = [
    "AllEndpointsFailedError",
    "ConfigurationError",
    "EndpointNotFoundError",
    "ErrorKind",
    "JsonRpcError",
    "RateLimitedError",
    "RpcFailoverError",
    "RpcTimeoutError",
    "RpcTransportError",
    "register_error_handlers",
]
