"""FastAPI application exposing RPC pool health and diagnostics.

Startup: configure logging, start the background health prober when enabled.
Shutdown: cancel the prober, close every cached RPC connection.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from rpc_failover.config.settings import RpcSettings
from rpc_failover.logging_config import configure_logging
from rpc_failover.middleware.error_handler import register_error_handlers
from rpc_failover.routers.health import create_health_router
from rpc_failover.service.rpc_service import RpcService

logger = logging.getLogger(__name__)


def create_app(
    settings: RpcSettings | None = None,
    rpc_service: RpcService | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Resolves the network and builds the ``RpcService`` eagerly so that an
    unknown network or an empty endpoint list fails at startup rather than on
    the first request.
    """
    settings = settings or RpcSettings()
    service = rpc_service or RpcService.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan: startup and shutdown logic."""
        configure_logging(settings.log_level)
        logger.info("Starting RPC diagnostics service on port %d", settings.port)

        probe_task: asyncio.Task[None] | None = None
        if settings.health_check_enabled:
            prober = service.create_prober(settings.health_check_interval_seconds)
            probe_task = asyncio.create_task(prober.run())

        yield

        # --- Shutdown ---
        logger.info("Shutting down RPC diagnostics service…")
        if probe_task is not None:
            probe_task.cancel()
            try:
                await probe_task
            except asyncio.CancelledError:
                pass
        await service.aclose()
        logger.info("RPC diagnostics service shut down")

    app = FastAPI(
        title="RPC Failover Service",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.rpc_service = service

    register_error_handlers(app)
    app.include_router(create_health_router(rpc_service=service))

    return app


app = create_app()
