"""
Error taxonomy and classification for provider failures.

Every failure an adapter sees is reduced to an ``ErrorKind``. The kind
decides whether the adapter manager retries the same provider, moves to
the next provider in the fallback chain, or gives up.

Classification order:
1. HTTP status on the exception (``status_code`` on openai/anthropic SDK
   errors, integer ``code`` on google-genai errors)
2. Exception type (timeouts, connection errors)
3. Message heuristics for errors re-raised as plain exceptions
"""

from __future__ import annotations

import asyncio
import json
from enum import Enum


class ErrorKind(str, Enum):
    """Failure categories with their retry semantics."""

    INVALID_INPUT = "invalid_input"
    AUTH = "auth"
    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    RATE_LIMIT = "rate_limit"
    NETWORK = "network"
    TIMEOUT = "timeout"
    SERVER = "server"
    RESPONSE_FORMAT = "response_format"
    UNAVAILABLE = "unavailable"
    ALL_PROVIDERS_EXHAUSTED = "all_providers_exhausted"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        """True for transient failures worth another attempt."""
        return self in _RETRYABLE_KINDS


_RETRYABLE_KINDS = frozenset(
    {
        ErrorKind.RATE_LIMIT,
        ErrorKind.NETWORK,
        ErrorKind.TIMEOUT,
        ErrorKind.SERVER,
        ErrorKind.RESPONSE_FORMAT,
    }
)

_STATUS_KINDS = {
    400: ErrorKind.BAD_REQUEST,
    401: ErrorKind.AUTH,
    403: ErrorKind.AUTH,
    404: ErrorKind.NOT_FOUND,
    408: ErrorKind.TIMEOUT,
    429: ErrorKind.RATE_LIMIT,
    500: ErrorKind.SERVER,
    502: ErrorKind.SERVER,
    503: ErrorKind.SERVER,
    504: ErrorKind.SERVER,
}

# (kind, needles) checked in order against the lowercased message
_MESSAGE_RULES = (
    (ErrorKind.TIMEOUT, ("timeout", "timed out")),
    (ErrorKind.NETWORK, ("network", "enotfound", "econnrefused", "econnreset", "connection", "fetch")),
    (ErrorKind.RATE_LIMIT, ("rate limit", "rate_limit", "429", "quota")),
    (ErrorKind.SERVER, ("500", "502", "503", "504", "server error", "overloaded")),
    (ErrorKind.AUTH, ("auth", "401", "403", "api key", "api_key", "permission")),
    (ErrorKind.NOT_FOUND, ("model_not_found", "not found", "404")),
    (ErrorKind.BAD_REQUEST, ("invalid request", "bad request", "400")),
)


class AdapterInitializationError(RuntimeError):
    """Raised by ``BaseAIAdapter.initialize`` when a provider cannot be used."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.reason = message


def _status_of(exc: BaseException) -> int | None:
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status
    code = getattr(exc, "code", None)
    if isinstance(code, int) and not isinstance(code, bool):
        return code
    return None


def classify_status(status: int) -> ErrorKind:
    """Map an HTTP status code to an error kind."""
    if status in _STATUS_KINDS:
        return _STATUS_KINDS[status]
    if status >= 500:
        return ErrorKind.SERVER
    if status >= 400:
        return ErrorKind.BAD_REQUEST
    return ErrorKind.UNKNOWN


def classify_error(exc: BaseException) -> ErrorKind:
    """Classify an exception raised while calling a provider."""
    status = _status_of(exc)
    if status is not None:
        return classify_status(status)

    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return ErrorKind.TIMEOUT
    # SDK hierarchies: APITimeoutError subclasses APIConnectionError
    type_names = [cls.__name__.lower() for cls in type(exc).__mro__]
    if any("timeout" in name for name in type_names):
        return ErrorKind.TIMEOUT
    if isinstance(exc, ConnectionError) or any(
        "connection" in name for name in type_names
    ):
        return ErrorKind.NETWORK
    if isinstance(exc, json.JSONDecodeError):
        return ErrorKind.RESPONSE_FORMAT

    message = str(exc).lower()
    for kind, needles in _MESSAGE_RULES:
        if any(needle in message for needle in needles):
            return kind
    return ErrorKind.UNKNOWN


__all__ = [
    "ErrorKind",
    "AdapterInitializationError",
    "classify_error",
    "classify_status",
]
