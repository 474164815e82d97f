"""Tests for the diagnostics HTTP surface and the error envelope."""

import pytest
from conftest import URLS, FakePool, make_service
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from rpc_failover.config.settings import RpcSettings
from rpc_failover.main import create_app
from rpc_failover.middleware.error_handler import (
    AllEndpointsFailedError,
    RateLimitedError,
    register_error_handlers,
)

A, B, C = URLS


@pytest.fixture
def client(settings: RpcSettings, pool: FakePool):
    service = make_service(URLS, pool)
    app = create_app(settings, rpc_service=service)
    return TestClient(app), service


class TestHealthEndpoints:
    def test_health(self, client):
        http, _ = client
        response = http.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"] == {"status": "good", "mode": "fallback_pool", "healthy": 3, "total": 3}

    def test_readiness_ok(self, client):
        http, _ = client
        response = http.get("/readiness")
        assert response.status_code == 200
        assert response.json()["data"]["ready"] is True

    def test_readiness_fails_when_all_blacklisted(self, settings: RpcSettings):
        service = make_service(["https://bsc.drpc.org"], FakePool(), denylist=["drpc.org"])
        http = TestClient(create_app(settings, rpc_service=service))
        response = http.get("/readiness")
        assert response.status_code == 503
        assert response.json()["success"] is False
        assert response.json()["error"] == "No healthy RPC endpoints"

    def test_diagnostics(self, client):
        http, service = client
        for _ in range(3):
            service.tracker.mark_failure(A)
        body = http.get("/diagnostics").json()
        assert body["data"]["status"] == "degraded"
        assert body["data"]["endpoints"][0]["healthy"] is False
        assert body["data"]["chain_id"] == 97

    def test_reset_all(self, client):
        http, service = client
        for url in URLS:
            service.tracker.mark_failure(url)
        body = http.post("/diagnostics/reset").json()
        assert body["meta"] == {"reset": "all"}
        assert all(e["consecutive_failures"] == 0 for e in body["data"]["endpoints"])

    def test_reset_single(self, client):
        http, service = client
        service.tracker.mark_failure(A)
        service.tracker.mark_failure(B)
        body = http.post("/diagnostics/reset", params={"url": A}).json()
        assert body["meta"] == {"reset": A}
        assert service.tracker.consecutive_failures(B) == 1

    def test_reset_unknown_url_is_404(self, client):
        http, _ = client
        response = http.post("/diagnostics/reset", params={"url": "https://other.example"})
        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["meta"] == {"url": "https://other.example"}


class _Payload(BaseModel):
    count: int


def _error_app() -> FastAPI:
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/rate-limited")
    async def rate_limited_route():
        raise RateLimitedError(endpoint_url=A)

    @app.get("/exhausted")
    async def exhausted_route():
        raise AllEndpointsFailedError(RateLimitedError(), attempts=3)

    @app.post("/validate")
    async def validate_route(payload: _Payload):
        return payload

    @app.get("/boom")
    async def boom_route():
        raise KeyError("boom")

    return app


class TestErrorEnvelope:
    def test_failover_error(self):
        response = TestClient(_error_app()).get("/rate-limited")
        assert response.status_code == 429
        assert response.json() == {
            "success": False,
            "data": None,
            "error": "Too Many Requests",
            "meta": {"error_kind": "rate_limited", "endpoint_url": A},
        }

    def test_all_endpoints_failed(self):
        response = TestClient(_error_app()).get("/exhausted")
        assert response.status_code == 503
        body = response.json()
        assert body["error"] == "RPC operation failed after 3 attempts: Too Many Requests"
        assert body["meta"] == {"attempts": 3, "error_kind": "rate_limited"}

    def test_validation_error(self):
        response = TestClient(_error_app()).post("/validate", json={"count": "many"})
        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "Validation error"
        assert body["meta"]["fields"][0]["field"].endswith("count")

    def test_unhandled_error(self):
        http = TestClient(_error_app(), raise_server_exceptions=False)
        response = http.get("/boom")
        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"
