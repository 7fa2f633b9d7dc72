"""
Stage timing for trace processing.

Enabled with DUML_TRACE_PERF_TRACKING; stages slower than
DUML_TRACE_PERF_THRESHOLD_MS are logged at WARNING, the rest at DEBUG.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from duml_trace.logging_abstraction import TraceLogger, get_logger

__all__ = [
    "measure_time",
    "timed",
    "timed_async",
]

P = ParamSpec("P")
T = TypeVar("T")


def measure_time(start_time: float) -> float:
    """
    Calculate elapsed time in milliseconds.

    Args:
        start_time: Start time from time.perf_counter()
    """
    return (time.perf_counter() - start_time) * 1000


def timed(operation_name: str | None = None) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """
    Decorator timing a synchronous stage.

    Example:
        @timed("pairing")
        def pair_packets(packets): ...
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            from duml_trace import const

            if not const.DUML_TRACE_PERF_TRACKING:
                return func(*args, **kwargs)

            start_time = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                _log_timing(
                    get_logger(__name__),
                    operation_name or func.__name__,
                    measure_time(start_time),
                    const.DUML_TRACE_PERF_THRESHOLD_MS,
                )

        return wrapper

    return decorator


def timed_async(operation_name: str | None = None) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Async counterpart of ``timed``."""

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            from duml_trace import const

            if not const.DUML_TRACE_PERF_TRACKING:
                return await func(*args, **kwargs)

            start_time = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                _log_timing(
                    get_logger(__name__),
                    operation_name or func.__name__,
                    measure_time(start_time),
                    const.DUML_TRACE_PERF_THRESHOLD_MS,
                )

        return wrapper

    return decorator


def _log_timing(logger: TraceLogger, operation_name: str, elapsed_ms: float, threshold_ms: int) -> None:
    context = {
        "operation": operation_name,
        "duration_ms": round(elapsed_ms, 2),
        "threshold_ms": threshold_ms,
        "exceeded_threshold": elapsed_ms > threshold_ms,
    }
    if elapsed_ms > threshold_ms:
        logger.warning(
            "[%s] completed in %.1fms (threshold: %dms)",
            operation_name,
            elapsed_ms,
            threshold_ms,
            extra=context,
        )
    else:
        logger.debug("[%s] completed in %.1fms", operation_name, elapsed_ms, extra=context)
