"""Unit tests for JSON logging and credential redaction."""

import json
import logging
import sys

from rpc_failover.logging_config import JsonFormatter, configure_logging, redact_url


def _record(msg, *args, **extra):
    record = logging.LogRecord("rpc_failover.test", logging.WARNING, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def _format(msg, *args, **extra):
    return json.loads(JsonFormatter().format(_record(msg, *args, **extra)))


class TestJsonFormatter:
    def test_required_fields(self):
        entry = _format("hello %s", "world")
        assert entry["message"] == "hello world"
        assert entry["level"] == "WARNING"
        assert entry["logger"] == "rpc_failover.test"
        assert "timestamp" in entry
        assert entry["request_id"] is None

    def test_failover_context_fields(self):
        entry = _format(
            "attempt failed",
            endpoint_url="https://a.example",
            network="BSC Testnet",
            mode="fallback_pool",
            attempt=2,
            error_kind="rate_limited",
            duration_ms=12.5,
        )
        assert entry["endpoint_url"] == "https://a.example"
        assert entry["network"] == "BSC Testnet"
        assert entry["mode"] == "fallback_pool"
        assert entry["attempt"] == 2
        assert entry["error_kind"] == "rate_limited"
        assert entry["duration_ms"] == 12.5

    def test_absent_context_omitted(self):
        entry = _format("plain")
        assert "endpoint_url" not in entry
        assert "attempt" not in entry

    def test_query_api_key_redacted(self):
        entry = _format(
            "failed via %s",
            "https://rpc.example/bsc?api-key=abcdef123456",
            endpoint_url="https://rpc.example/bsc?api-key=abcdef123456",
        )
        assert "abcdef123456" not in entry["message"]
        assert entry["endpoint_url"] == "https://rpc.example/bsc?api-key=[REDACTED]"

    def test_path_key_redacted(self):
        entry = _format(
            "x", endpoint_url="https://bnb-mainnet.g.alchemy.com/v2/AbCdEfGhIjKlMnOpQrStUv"
        )
        assert entry["endpoint_url"] == "https://bnb-mainnet.g.alchemy.com/v2/[REDACTED]"

    def test_free_text_secret_redacted(self):
        entry = _format("connecting with token=s3cr3t and password: hunter2")
        assert "s3cr3t" not in entry["message"]
        assert "hunter2" not in entry["message"]

    def test_plain_urls_untouched(self):
        entry = _format("x", endpoint_url="https://bsc-dataseed.bnbchain.org")
        assert entry["endpoint_url"] == "https://bsc-dataseed.bnbchain.org"

    def test_exception_included(self):
        try:
            raise ValueError("broken")
        except ValueError:
            record = _record("failed")
            record.exc_info = sys.exc_info()
        entry = json.loads(JsonFormatter().format(record))
        assert "ValueError: broken" in entry["exception"]


class TestConfigureLogging:
    def test_installs_single_json_handler(self):
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            configure_logging("debug")
            configure_logging("debug")
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JsonFormatter)
            assert root.level == logging.DEBUG
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
            logging.getLogger("httpx").setLevel(logging.NOTSET)
            logging.getLogger("httpcore").setLevel(logging.NOTSET)


class TestRedactUrl:
    def test_keeps_host_and_path(self):
        assert (
            redact_url("https://bsc-mainnet.nodereal.io/v1/ping?apikey=0123456789abcdef")
            == "https://bsc-mainnet.nodereal.io/v1/ping?apikey=[REDACTED]"
        )

    def test_short_path_segments_untouched(self):
        assert redact_url("https://rpc.example/v2/bsc") == "https://rpc.example/v2/bsc"

    def test_only_key_parameter_redacted(self):
        assert (
            redact_url("https://rpc.example/?chain=56&key=secretvalue")
            == "https://rpc.example/?chain=56&key=[REDACTED]"
        )
