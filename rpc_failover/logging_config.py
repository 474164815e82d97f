"""Structured JSON logging configuration.

Every entry carries timestamp, level, logger, message and request_id. Failover
log calls attach their context through ``extra``: endpoint_url, network, mode,
attempt, error_kind, duration_ms.

SECURITY: Provider API keys travel inside endpoint URLs (``?apikey=...``,
``/v2/<key>``). They are redacted from messages, URL fields and tracebacks,
and httpx's own per-request logger is capped at WARNING so it never prints
full request URLs.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone

# Provider keys carried in endpoint URLs
_URL_KEY_PATTERNS = re.compile(
    r"([?&](?:api[-_]?key|key|token)=)[^&\s\"']+"
    r"|(/v[23]/)[A-Za-z0-9_-]{16,}",
    re.IGNORECASE,
)

# Secrets written as key=value / key: value in free text
_SENSITIVE_PATTERNS = re.compile(
    r"(api.key|apikey|secret|password|token|authorization)"
    r"[\s]*[=:]\s*(?!\[REDACTED\])[^\s&]+",
    re.IGNORECASE,
)

_CONTEXT_FIELDS = ("network", "mode", "attempt", "error_kind", "duration_ms")

# Third-party loggers that echo request URLs at INFO
_NOISY_LOGGERS = ("httpx", "httpcore")


def redact_url(url: str) -> str:
    """Strip provider keys from an endpoint URL, leaving host and path readable."""
    return _URL_KEY_PATTERNS.sub(lambda m: f"{m.group(1) or m.group(2)}[REDACTED]", url)


def redact(text: str) -> str:
    """Redact URL keys and free-text secrets."""
    return _SENSITIVE_PATTERNS.sub("[REDACTED]", redact_url(text))


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with failover context fields when present."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": redact(record.getMessage()),
            "request_id": getattr(record, "request_id", None),
        }

        endpoint_url = getattr(record, "endpoint_url", None)
        if endpoint_url is not None:
            entry["endpoint_url"] = redact_url(str(endpoint_url))
        for name in _CONTEXT_FIELDS:
            if hasattr(record, name):
                entry[name] = getattr(record, name)

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = redact(self.formatException(record.exc_info))

        return json.dumps(entry, default=str)


def configure_logging(level: str = "INFO") -> None:
    """Install the JSON formatter on the root logger.

    Parameters
    ----------
    level:
        Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
