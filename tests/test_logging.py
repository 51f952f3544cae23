"""Tests for shopmate.config.logging - formatters and script helpers."""

import json
import logging
import sys

from shopmate.config.logging import (
    ConsoleFormatter,
    JSONFormatter,
    log_kv,
    request_id_var,
)


def _record(msg="Provider failed", args=(), **extra):
    record = logging.LogRecord(
        name="shopmate.services.manager",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_fields_and_extras(self):
        line = JSONFormatter().format(_record(provider="openai", attempt=2))
        entry = json.loads(line)
        assert entry["level"] == "WARNING"
        assert entry["logger"] == "shopmate.services.manager"
        assert entry["message"] == "Provider failed"
        assert entry["provider"] == "openai"
        assert entry["attempt"] == 2
        assert "timestamp" in entry

    def test_message_args_are_interpolated(self):
        entry = json.loads(JSONFormatter().format(_record("%s retry %d", ("grok", 3))))
        assert entry["message"] == "grok retry 3"

    def test_exception_is_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record()
            record.exc_info = sys.exc_info()
        entry = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in entry["exception"]


class TestConsoleFormatter:
    def test_line_shape(self):
        line = ConsoleFormatter().format(_record(provider="claude"))
        assert "WARNING" in line
        assert "shopmate.services.manager: Provider failed" in line
        assert line.endswith("[provider=claude]")

    def test_private_attributes_are_not_extras(self):
        line = ConsoleFormatter().format(_record(_internal="hidden"))
        assert "hidden" not in line


class TestLogKv:
    def test_value_formatting(self, caplog):
        logger = logging.getLogger("shopmate.test.kv")
        with caplog.at_level(logging.INFO, logger="shopmate.test.kv"):
            log_kv(logger, "available", True)
            log_kv(logger, "latency", 1.23456)
            log_kv(logger, "model", "gpt-4o-mini", indent=4)
        assert caplog.messages == [
            "  available: yes",
            "  latency: 1.23",
            "    model: gpt-4o-mini",
        ]


class TestRequestContext:
    def test_request_id_is_attached_while_bound(self):
        token = request_id_var.set("abc123def456")
        try:
            entry = json.loads(JSONFormatter().format(_record()))
            line = ConsoleFormatter(use_colors=False).format(_record(provider="grok"))
        finally:
            request_id_var.reset(token)
        assert entry["request_id"] == "abc123def456"
        assert line.endswith("[request_id=abc123def456, provider=grok]")

    def test_no_request_id_outside_requests(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert "request_id" not in entry

    def test_colors_only_when_enabled(self):
        assert "\033[" in ConsoleFormatter(use_colors=True).format(_record())
        assert "\033[" not in ConsoleFormatter(use_colors=False).format(_record())
