"""Global error hierarchy and FastAPI exception handlers.

All failover-specific errors extend RpcFailoverError. Transport failures carry a
typed ``ErrorKind`` assigned at the transport boundary, so callers classify by
kind instead of by message text. The FastAPI exception handlers catch these
errors (plus Pydantic's RequestValidationError and unhandled exceptions) and
return a consistent JSON envelope: { success, data, error, meta }.
"""

from __future__ import annotations

import logging
import traceback
from enum import Enum

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from rpc_failover.logging_config import redact_url

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Failure kinds recognised at the transport boundary."""

    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    CONNECTION_RESET = "connection_reset"
    DNS_FAILURE = "dns_failure"
    NETWORK = "network"
    SERVER_ERROR = "server_error"
    USER_REJECTED = "user_rejected"
    REQUEST_PENDING = "request_pending"
    RPC_ERROR = "rpc_error"
    UNKNOWN = "unknown"


# EIP-1193 / JSON-RPC error codes with a dedicated kind
USER_REJECTED_CODE = 4001
REQUEST_PENDING_CODE = -32002
LIMIT_EXCEEDED_CODE = -32005

_CODE_KINDS: dict[int, ErrorKind] = {
    USER_REJECTED_CODE: ErrorKind.USER_REJECTED,
    REQUEST_PENDING_CODE: ErrorKind.REQUEST_PENDING,
    LIMIT_EXCEEDED_CODE: ErrorKind.RATE_LIMITED,
}


# ---------------------------------------------------------------------------
# Error hierarchy
# ---------------------------------------------------------------------------


class RpcFailoverError(Exception):
    """Base error for all failover-specific errors."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, **kwargs: object) -> None:
        self.message = message or self.__class__.message
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(RpcFailoverError):
    """Invalid static configuration, fatal at construction time."""

    status_code = 500
    message = "Invalid RPC configuration"


class EndpointNotFoundError(RpcFailoverError):
    """Endpoint URL is not part of the active registry."""

    status_code = 404
    message = "Endpoint not found"


class RpcTransportError(RpcFailoverError):
    """A remote call failed; ``kind`` says how."""

    status_code = 502
    message = "RPC transport error"
    default_kind: ErrorKind = ErrorKind.NETWORK

    def __init__(
        self,
        message: str | None = None,
        *,
        kind: ErrorKind | None = None,
        endpoint_url: str | None = None,
        http_status: int | None = None,
        **kwargs: object,
    ) -> None:
        self.kind = kind or self.__class__.default_kind
        self.endpoint_url = endpoint_url
        self.http_status = http_status
        super().__init__(message, **kwargs)


class RpcTimeoutError(RpcTransportError):
    """The call did not settle before its deadline."""

    status_code = 504
    message = "RPC call timed out"
    default_kind = ErrorKind.TIMEOUT


class RateLimitedError(RpcTransportError):
    """The endpoint answered with a rate-limit response (HTTP 429)."""

    status_code = 429
    message = "Too Many Requests"
    default_kind = ErrorKind.RATE_LIMITED


class JsonRpcError(RpcTransportError):
    """The endpoint (or wallet) returned a JSON-RPC error object."""

    message = "JSON-RPC error"
    default_kind = ErrorKind.RPC_ERROR

    def __init__(
        self,
        message: str | None = None,
        *,
        code: int,
        data: object = None,
        endpoint_url: str | None = None,
    ) -> None:
        self.code = code
        self.data = data
        super().__init__(
            message,
            kind=_CODE_KINDS.get(code, ErrorKind.RPC_ERROR),
            endpoint_url=endpoint_url,
            code=code,
        )


class AllEndpointsFailedError(RpcFailoverError):
    """Every attempt of a failover cascade was exhausted."""

    status_code = 503
    message = "All RPC endpoints failed"

    def __init__(
        self,
        last_error: BaseException | None = None,
        attempts: int = 0,
    ) -> None:
        self.last_error = last_error
        self.attempts = attempts
        detail = f": {last_error}" if last_error is not None else ""
        super().__init__(
            f"RPC operation failed after {attempts} attempts{detail}",
            attempts=attempts,
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------


def _envelope(
    status_code: int,
    error: str,
    meta: dict | None = None,
) -> JSONResponse:
    """Build a JSON envelope error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "data": None,
            "error": error,
            "meta": meta,
        },
    )


def _error_meta(exc: RpcFailoverError) -> dict | None:
    """Error details plus the failure kind and redacted endpoint, when known."""
    meta = dict(exc.details)
    cause = exc.last_error if isinstance(exc, AllEndpointsFailedError) else exc
    if isinstance(cause, RpcTransportError):
        meta["error_kind"] = cause.kind.value
    if isinstance(exc, RpcTransportError) and exc.endpoint_url:
        meta["endpoint_url"] = redact_url(exc.endpoint_url)
    return meta or None


async def _failover_error_handler(_request: Request, exc: RpcFailoverError) -> JSONResponse:
    """Handle RpcFailoverError subclasses."""
    return _envelope(exc.status_code, exc.message, meta=_error_meta(exc))


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle FastAPI / Pydantic RequestValidationError (422)."""
    field_errors = [
        {
            "field": " -> ".join(str(loc) for loc in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    return _envelope(
        status_code=422,
        error="Validation error",
        meta={"fields": field_errors},
    )


async def _unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions: log the traceback and return a generic 500."""
    logger.error(
        "Unhandled exception: %s\n%s",
        exc,
        traceback.format_exc(),
    )
    return _envelope(status_code=500, error="Internal server error")


# ---------------------------------------------------------------------------
# Registration helper
# ---------------------------------------------------------------------------


def register_error_handlers(app: FastAPI) -> None:
    """Wire up all exception handlers on the FastAPI application."""
    app.add_exception_handler(RpcFailoverError, _failover_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)  # type: ignore[arg-type]
