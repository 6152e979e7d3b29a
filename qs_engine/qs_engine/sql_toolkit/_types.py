"""SQL toolkit shared types.

Every type here is implementation-agnostic.  The normalizer operates on
these types exclusively; the backing scanner (SQLGlot today) converts its
native tokens into :class:`Token` instances internally.

ZERO dependency on any SQL parsing library.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Dialect
# ---------------------------------------------------------------------------


class Dialect(str, enum.Enum):
    """Supported SQL dialects for scanning."""

    POSTGRES = "postgres"
    REDSHIFT = "redshift"
    DUCKDB = "duckdb"
    MYSQL = "mysql"


# ---------------------------------------------------------------------------
# Token classes
# ---------------------------------------------------------------------------


class TokenClass(str, enum.Enum):
    """Lexical classes the normalizer distinguishes.

    END and ERROR are terminal signals: a scan yields exactly one of them
    as its final token.
    """

    IDENTIFIER = "identifier"
    KEYWORD = "keyword"
    OPERATOR = "operator"
    CONSTANT = "constant"
    PUNCTUATION = "punctuation"
    END = "end"
    ERROR = "error"

    @property
    def is_content(self) -> bool:
        """True for classes that carry words or values rather than layout."""
        return self in _CONTENT_CLASSES

    @property
    def is_terminal(self) -> bool:
        return self is TokenClass.END or self is TokenClass.ERROR


_CONTENT_CLASSES: frozenset[TokenClass] = frozenset(
    {
        TokenClass.IDENTIFIER,
        TokenClass.KEYWORD,
        TokenClass.OPERATOR,
        TokenClass.CONSTANT,
    }
)


# ---------------------------------------------------------------------------
# Token
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Token:
    """A classified lexical unit.

    ``start`` and ``end`` form a half-open range into the scanned source.
    ``text`` is the raw source slice (quotes and all), never a cooked
    value.  Terminal tokens have an empty span at the point where
    scanning stopped.
    """

    kind: TokenClass
    start: int
    end: int
    text: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.kind.is_terminal

    @property
    def width(self) -> int:
        return self.end - self.start


def end_token(position: int) -> Token:
    """Build the end-of-input sentinel at *position*."""
    return Token(kind=TokenClass.END, start=position, end=position)


def error_token(position: int) -> Token:
    """Build the scan-failure signal at *position*."""
    return Token(kind=TokenClass.ERROR, start=position, end=position)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class SqlToolkitError(Exception):
    """Base exception for all sql_toolkit errors."""


class UnsupportedDialectError(SqlToolkitError):
    """The requested dialect is not known to the scanner backend."""
