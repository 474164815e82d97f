"""Public models for the RPC failover service."""

from rpc_failover.models.diagnostics import DiagnosticsSnapshot, EndpointStatus, RpcStatus
from rpc_failover.models.responses import ApiResponse

__all__ = [
    "ApiResponse",
    "DiagnosticsSnapshot",
    "EndpointStatus",
    "RpcStatus",
]
