"""
Shared utility functions.
"""

from __future__ import annotations

import asyncio
import importlib
import time
from contextlib import contextmanager
from types import ModuleType
from typing import TYPE_CHECKING, Awaitable, Callable, Generator, TypeVar

if TYPE_CHECKING:
    import logging

T = TypeVar("T")

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


# ---------------------------------------------------------------------------
# Import Utilities
# ---------------------------------------------------------------------------


def require_import(
    package: str,
    *,
    pip_name: str | None = None,
) -> ModuleType:
    """Import a package with a standardized error message.

    Adapters import their provider SDK through this so that a missing SDK
    makes only that provider unavailable instead of breaking the package.

    Usage:
        openai = require_import("openai")
        genai = require_import("google.genai", pip_name="google-genai")

    Args:
        package: The Python package name to import.
        pip_name: The pip install name if different from package name.

    Returns:
        The imported module.

    Raises:
        ImportError: With a helpful message including install command.
    """
    try:
        return importlib.import_module(package)
    except ImportError as e:
        install_name = pip_name or package
        raise ImportError(
            f"{package} package required. Install with: pip install {install_name}"
        ) from e


# ---------------------------------------------------------------------------
# Environment Parsing
# ---------------------------------------------------------------------------


def env_flag(value: str | None, default: bool = False) -> bool:
    """Parse a boolean environment value ("true", "0", "yes", ...).

    Unset or unrecognized values fall back to ``default``.
    """
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return default


def split_csv(value: str | None) -> list[str]:
    """Split a comma-separated setting, dropping blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


# ---------------------------------------------------------------------------
# Timing Utilities
# ---------------------------------------------------------------------------


async def call_with_timeout(awaitable: Awaitable[T], timeout: float, label: str) -> T:
    """Await ``awaitable`` with a deadline.

    On expiry the pending call is cancelled and its result discarded; the
    caller gets a ``TimeoutError`` whose message names ``label`` so error
    classification can recognize it.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise TimeoutError(f"{label} request timed out after {timeout:.1f}s") from e


@contextmanager
def timed_operation(
    name: str,
    logger: logging.Logger | None = None,
    metrics_observer: Callable[[float], None] | None = None,
    log_format: str = "%s: %.0fms",
) -> Generator[None, None, None]:
    """Context manager for timing operations with optional logging and metrics.

    Usage:
        with timed_operation("openai attempt", logger, observe_provider_latency):
            result = await adapter.generate_recommendations(product)

    Args:
        name: Operation name for logging.
        logger: Logger instance for debug-level timing output.
        metrics_observer: Callback that receives duration in seconds.
        log_format: Format string for log message (name, ms).

    Yields:
        None. Duration is computed and reported on exit.
    """
    t0 = time.perf_counter()
    try:
        yield
    finally:
        duration = time.perf_counter() - t0
        if metrics_observer is not None:
            metrics_observer(duration)
        if logger is not None:
            logger.debug(log_format, name, duration * 1000)
