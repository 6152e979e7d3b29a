"""SQL scanner factory.

Provides :func:`get_scanner`, the single entry point for consumer code.
Thread-safe per-dialect cache with configurable implementation backend.
"""

from __future__ import annotations

import threading
from typing import Callable

from ._protocols import SqlScanner
from ._types import Dialect

_lock = threading.Lock()
_instances: dict[Dialect, SqlScanner] = {}
_factory_fn: Callable[[Dialect], SqlScanner] | None = None


def register_implementation(factory_fn: Callable[[Dialect], SqlScanner]) -> None:
    """Register a factory function for creating :class:`SqlScanner` instances.

    Called once at application startup.  If not called, the default SQLGlot
    implementation is used.
    """
    global _factory_fn
    with _lock:
        _factory_fn = factory_fn
        _instances.clear()  # force re-creation on next access


def get_scanner(dialect: Dialect = Dialect.POSTGRES) -> SqlScanner:
    """Return the cached :class:`SqlScanner` for *dialect*.

    Thread-safe.  Lazily instantiated on first call per dialect.  Defaults
    to the SQLGlot-backed implementation if no custom factory has been
    registered.
    """
    dialect = Dialect(dialect)
    scanner = _instances.get(dialect)
    if scanner is not None:
        return scanner

    with _lock:
        # Double-checked locking
        scanner = _instances.get(dialect)
        if scanner is not None:
            return scanner

        if _factory_fn is not None:
            scanner = _factory_fn(dialect)
        else:
            from .impl.sqlglot_impl import SqlGlotScanner

            scanner = SqlGlotScanner(dialect)

        _instances[dialect] = scanner
        return scanner


def reset_scanner() -> None:
    """Reset the cache and the registered factory.  **For testing only.**"""
    global _factory_fn
    with _lock:
        _instances.clear()
        _factory_fn = None
