"""JSON-RPC transport: per-endpoint clients and the connection cache."""

from rpc_failover.transport.cache import ConnectionCache
from rpc_failover.transport.client import Connection, JsonRpcClient, connection_url

__all__ = ["Connection", "ConnectionCache", "JsonRpcClient", "connection_url"]
