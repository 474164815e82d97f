"""Failure classification for the failover cascade.

Errors are mapped to an ``ErrorKind`` and then to a binary decision:

- RETRYABLE: endpoint problems (rate limiting, timeouts, connection resets,
  DNS failures, generic network errors, HTTP 5xx). These justify moving on to
  another endpoint.
- NON_RETRYABLE: wallet-state problems (user rejection, request already
  pending), JSON-RPC error objects such as reverts, and anything unrecognised.
  These are surfaced to the caller instead of demoting a wallet call.

Classification never looks at message text; kinds are assigned where the
error is raised (see ``rpc_failover.transport.client``).
"""

from __future__ import annotations

import asyncio
import socket
from enum import Enum

import httpx

from rpc_failover.middleware.error_handler import ErrorKind, RpcTransportError


class Classification(str, Enum):
    """Whether a failure should move the call to another endpoint."""

    RETRYABLE = "retryable"
    NON_RETRYABLE = "non_retryable"


RETRYABLE_KINDS = frozenset(
    {
        ErrorKind.RATE_LIMITED,
        ErrorKind.TIMEOUT,
        ErrorKind.CONNECTION_RESET,
        ErrorKind.DNS_FAILURE,
        ErrorKind.NETWORK,
        ErrorKind.SERVER_ERROR,
    }
)


def error_kind(error: BaseException) -> ErrorKind:
    """Map any exception raised by an operation to an ``ErrorKind``."""
    if isinstance(error, RpcTransportError):
        return error.kind

    # Raw transport exceptions escaping a caller's own client
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        if status == 429:
            return ErrorKind.RATE_LIMITED
        return ErrorKind.SERVER_ERROR if status >= 500 else ErrorKind.NETWORK
    if isinstance(error, httpx.TimeoutException):
        return ErrorKind.TIMEOUT
    if isinstance(error, (httpx.RemoteProtocolError, httpx.ReadError)):
        return ErrorKind.CONNECTION_RESET
    if isinstance(error, httpx.TransportError):
        return ErrorKind.NETWORK

    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return ErrorKind.TIMEOUT
    if isinstance(error, socket.gaierror):
        return ErrorKind.DNS_FAILURE
    if isinstance(error, (ConnectionResetError, ConnectionAbortedError, BrokenPipeError)):
        return ErrorKind.CONNECTION_RESET
    if isinstance(error, ConnectionError):
        return ErrorKind.NETWORK

    return ErrorKind.UNKNOWN


def classify(error: BaseException) -> Classification:
    """Decide whether ``error`` is an endpoint problem worth failing over."""
    if error_kind(error) in RETRYABLE_KINDS:
        return Classification.RETRYABLE
    return Classification.NON_RETRYABLE


def is_rate_limited(error: BaseException) -> bool:
    """True when the endpoint signalled rate limiting (HTTP 429 / -32005)."""
    return error_kind(error) is ErrorKind.RATE_LIMITED
