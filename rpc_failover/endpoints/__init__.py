"""Endpoint management: registry, health tracking and background probes."""

from rpc_failover.endpoints.health import HealthTracker
from rpc_failover.endpoints.prober import HealthProber
from rpc_failover.endpoints.registry import EndpointRegistry
from rpc_failover.endpoints.types import Endpoint

__all__ = ["Endpoint", "EndpointRegistry", "HealthProber", "HealthTracker"]
