"""
Logging setup for Shopmate.

One root handler, chosen by ``SHOPMATE_LOG_FORMAT``:
- ``console``: short colored lines for local runs and scripts
- ``json``: one object per line for hosted log sinks

Both formats append ``extra=`` fields and, inside an HTTP request, the
request id set by ``LatencyMiddleware``, so a provider retry logged deep in
the adapter manager can be tied back to the request that caused it.

Usage:
    from shopmate.config.logging import get_logger

    logger = get_logger(__name__)
    logger.warning("Provider failed", extra={"provider": "openai", "attempt": 2})
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

LOG_LEVEL = os.getenv("SHOPMATE_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("SHOPMATE_LOG_FORMAT", "console")  # "console" or "json"

# Set per HTTP request by shopmate.api.middleware.LatencyMiddleware
request_id_var: ContextVar[str | None] = ContextVar("shopmate_request_id", default=None)

# Attributes every LogRecord carries; anything else came in through extra=
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}

# Provider SDKs and HTTP transports log each request at INFO
_QUIET_LOGGERS = (
    "httpx",
    "httpcore",
    "openai",
    "anthropic",
    "google_genai",
    "uvicorn.access",
)

_LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}
_RESET = "\033[0m"


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Fields to append to a record: the request id, then ``extra=`` values."""
    context: dict[str, Any] = {}
    request_id = request_id_var.get()
    if request_id:
        context["request_id"] = request_id
    for key, value in record.__dict__.items():
        if key not in _RECORD_ATTRS and not key.startswith("_"):
            context[key] = value
    return context


class ConsoleFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL logger: message [key=value, ...]``"""

    def __init__(self, use_colors: bool | None = None):
        super().__init__()
        if use_colors is None:
            use_colors = getattr(sys.stdout, "isatty", lambda: False)()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:<8}"
        if self.use_colors:
            level = f"{_LEVEL_COLORS.get(record.levelno, '')}{level}{_RESET}"

        line = f"{self.formatTime(record, '%H:%M:%S')} {level} {record.name}: {record.getMessage()}"
        context = record_context(record)
        if context:
            line += " [" + ", ".join(f"{k}={v}" for k, v in context.items()) + "]"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class JSONFormatter(logging.Formatter):
    """One JSON object per record, timestamped from the record itself."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **record_context(record),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


_configured = False


def configure_logging() -> None:
    """Install the root handler once; later calls are no-ops."""
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if LOG_FORMAT == "json" else ConsoleFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)`` after making sure logging is configured."""
    configure_logging()
    return logging.getLogger(name)


# ---------------------------------------------------------------------------
# Script output helpers
# ---------------------------------------------------------------------------


def log_banner(logger: logging.Logger, title: str, char: str = "=", width: int = 60) -> None:
    rule = char * width
    for line in (rule, title, rule):
        logger.info(line)


def log_section(logger: logging.Logger, title: str, char: str = "-", width: int = 60) -> None:
    logger.info("")
    log_banner(logger, title, char, width)


def log_kv(logger: logging.Logger, key: str, value: Any, indent: int = 2) -> None:
    """Log ``key: value``; booleans as yes/no, floats to two places."""
    if isinstance(value, bool):
        value = "yes" if value else "no"
    elif isinstance(value, float):
        value = f"{value:.2f}"
    logger.info("%s%s: %s", " " * indent, key, value)


__all__ = [
    "get_logger",
    "configure_logging",
    "log_banner",
    "log_section",
    "log_kv",
    "record_context",
    "request_id_var",
    "ConsoleFormatter",
    "JSONFormatter",
    "LOG_LEVEL",
    "LOG_FORMAT",
]
