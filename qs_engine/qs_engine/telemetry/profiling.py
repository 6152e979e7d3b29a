"""Timing for hot-path operations.

Provides a ``@profile_operation(name)`` decorator that times a function
with ``perf_counter_ns`` and logs the duration at DEBUG level.  Nothing is
recorded in process-wide state, so decorated functions stay free of side
effects.

Usage::

    from qs_engine.telemetry.profiling import profile_operation

    @profile_operation("sql.normalize")
    def normalize_query(sql):
        ...
"""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def profile_operation(name: str) -> Callable[[F], F]:
    """Decorator that logs how long each call to the function takes."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if not logger.isEnabledFor(logging.DEBUG):
                return func(*args, **kwargs)
            start_ns = time.perf_counter_ns()
            try:
                return func(*args, **kwargs)
            finally:
                duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
                logger.debug("PROFILE %s: %.3f ms", name, duration_ms)

        return wrapper  # type: ignore[return-value]

    return decorator
