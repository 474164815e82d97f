"""Shared test fixtures, fakes and hypothesis strategies for the RPC failover suite."""

from __future__ import annotations

from typing import Any

import pytest
from hypothesis import strategies as st

from rpc_failover.config.settings import RpcSettings
from rpc_failover.endpoints.health import HealthTracker
from rpc_failover.endpoints.registry import EndpointRegistry
from rpc_failover.middleware.error_handler import (
    USER_REJECTED_CODE,
    JsonRpcError,
    RateLimitedError,
    RpcTransportError,
)
from rpc_failover.service.rpc_service import RpcService


# ---------------------------------------------------------------------------
# Fake connections
# ---------------------------------------------------------------------------


class FakeConnection:
    """Scripted stand-in for a JSON-RPC connection.

    Each call consumes the next outcome; exceptions are raised, anything else
    is returned. When the script runs out, ``default`` is used.
    """

    def __init__(self, url: str | None = None, outcomes: list[Any] | None = None) -> None:
        self.url = url
        self.calls = 0
        self.closed = False
        self.default: Any = "0x10"
        self._outcomes = list(outcomes or [])

    def script(self, *outcomes: Any) -> None:
        self._outcomes.extend(outcomes)

    def fail_always(self, error: BaseException) -> None:
        self.default = error

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        self.calls += 1
        outcome = self._outcomes.pop(0) if self._outcomes else self.default
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def aclose(self) -> None:
        self.closed = True


class FakePool(dict):
    """URL → FakeConnection map usable as a connection-cache factory."""

    def __call__(self, url: str) -> FakeConnection:
        if url not in self:
            self[url] = FakeConnection(url)
        return self[url]

    def conn(self, url: str) -> FakeConnection:
        return self(url)

    def total_calls(self) -> int:
        return sum(c.calls for c in self.values())


async def block_number(connection: Any) -> Any:
    """The operation most tests run through the orchestrator."""
    return await connection.request("eth_blockNumber")


def make_service(urls: list[str], pool: FakePool | None = None, **overrides: Any) -> RpcService:
    """RpcService over fake connections with backoff disabled."""
    options: dict[str, Any] = {
        "chain_id": 97,
        "network": "test",
        "backoff_base_ms": 0,
        "rate_limit_cooldown_ms": 0,
        "client_factory": pool if pool is not None else FakePool(),
    }
    options.update(overrides)
    return RpcService(urls, **options)


def rate_limited(url: str | None = None) -> RateLimitedError:
    return RateLimitedError(endpoint_url=url, http_status=429)


def network_error(url: str | None = None) -> RpcTransportError:
    return RpcTransportError("connection refused", endpoint_url=url)


def user_rejected() -> JsonRpcError:
    return JsonRpcError("User rejected the request", code=USER_REJECTED_CODE)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

URLS = ["https://a.example", "https://b.example", "https://c.example"]


@pytest.fixture
def settings() -> RpcSettings:
    """Test settings with safe defaults."""
    return RpcSettings(
        network="testnet",
        networks_path="does/not/exist.yaml",
        backoff_base_ms=0,
        rate_limit_cooldown_ms=0,
    )


@pytest.fixture
def pool() -> FakePool:
    return FakePool()


@pytest.fixture
def service(pool: FakePool) -> RpcService:
    return make_service(URLS, pool)


@pytest.fixture
def registry() -> EndpointRegistry:
    return EndpointRegistry(URLS)


@pytest.fixture
def tracker(registry: EndpointRegistry) -> HealthTracker:
    return HealthTracker(registry, failure_threshold=3)


# ---------------------------------------------------------------------------
# Hypothesis strategies (reusable across property tests)
# ---------------------------------------------------------------------------

# 1-8 unique endpoint URLs
endpoint_url_lists = st.integers(min_value=1, max_value=8).flatmap(
    lambda n: st.lists(
        st.integers(min_value=1, max_value=999).map(lambda i: f"https://node{i}.example"),
        min_size=n,
        max_size=n,
        unique=True,
    )
)

# Per-attempt outcomes: True = success, False = retryable failure
attempt_outcomes = st.lists(st.booleans(), min_size=0, max_size=10)

thresholds = st.integers(min_value=1, max_value=6)
