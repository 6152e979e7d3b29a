"""SQL Toolkit: implementation-agnostic SQL scanning.

Usage::

    from qs_engine.sql_toolkit import get_scanner, Dialect

    scanner = get_scanner(Dialect.POSTGRES)
    for token in scanner.scan("SELECT * FROM orders WHERE id = 1"):
        ...

The default implementation delegates lexing to SQLGlot.  A different
backend can be swapped in via ``register_implementation()`` without
touching consumer code.
"""

from ._factory import get_scanner, register_implementation, reset_scanner
from ._protocols import SqlScanner
from ._types import (
    Dialect,
    SqlToolkitError,
    Token,
    TokenClass,
    UnsupportedDialectError,
    end_token,
    error_token,
)

__all__ = [
    # Factory
    "get_scanner",
    "register_implementation",
    "reset_scanner",
    # Protocols
    "SqlScanner",
    # Types
    "Dialect",
    "Token",
    "TokenClass",
    "end_token",
    "error_token",
    # Exceptions
    "SqlToolkitError",
    "UnsupportedDialectError",
]
