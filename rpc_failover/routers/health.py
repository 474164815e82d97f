"""Health, readiness and diagnostics endpoints.

- GET /health: pool status, mode and healthy/total counts
- GET /readiness: 200 only when at least one endpoint is healthy
- GET /diagnostics: full diagnostics snapshot
- POST /diagnostics/reset: clear health counters (one ``url`` or all)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Response

from rpc_failover.models.responses import ApiResponse

if TYPE_CHECKING:
    from rpc_failover.service.rpc_service import RpcService


def create_health_router(*, rpc_service: RpcService) -> APIRouter:
    """Factory that creates the health router bound to one ``RpcService``."""

    health_router = APIRouter(tags=["health"])

    @health_router.get("/health")
    async def health() -> dict:
        snapshot = rpc_service.get_diagnostics_snapshot()
        return ApiResponse.ok(
            {
                "status": snapshot.status.value,
                "mode": snapshot.mode,
                "healthy": snapshot.healthy_count,
                "total": snapshot.total,
            }
        )

    @health_router.get("/readiness")
    async def readiness(response: Response) -> dict:
        """Readiness probe: 200 iff at least one endpoint is healthy."""
        snapshot = rpc_service.get_diagnostics_snapshot()
        data = {"ready": snapshot.healthy_count > 0, "healthy_endpoints": snapshot.healthy_count}

        if not data["ready"]:
            response.status_code = 503
            return ApiResponse.fail("No healthy RPC endpoints", data=data)
        return ApiResponse.ok(data)

    @health_router.get("/diagnostics")
    async def diagnostics() -> dict:
        return ApiResponse.ok(rpc_service.get_diagnostics_snapshot())

    @health_router.post("/diagnostics/reset")
    async def reset(url: str | None = None) -> dict:
        """Reset health counters; unknown URLs answer 404."""
        rpc_service.reset_health(url)
        return ApiResponse.ok(
            rpc_service.get_diagnostics_snapshot(), meta={"reset": url or "all"}
        )

    return health_router
