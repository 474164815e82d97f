"""Failover service: mode selection, orchestration and diagnostics."""

from rpc_failover.service.diagnostics import DiagnosticsAggregator, rpc_status
from rpc_failover.service.orchestrator import FailoverOrchestrator
from rpc_failover.service.rpc_service import RpcService
from rpc_failover.service.selector import Mode, ModeSelector, Selection

__all__ = [
    "DiagnosticsAggregator",
    "FailoverOrchestrator",
    "Mode",
    "ModeSelector",
    "RpcService",
    "Selection",
    "rpc_status",
]
