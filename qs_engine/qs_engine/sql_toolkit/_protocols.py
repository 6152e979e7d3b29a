"""SQL toolkit protocol definitions.

These define the interface contract that ANY scanner backend must satisfy.
The normalizer depends on these protocols, never on concrete implementations.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol, runtime_checkable

from ._types import Dialect, Token


@runtime_checkable
class SqlScanner(Protocol):
    """Turn SQL text into a lazy stream of classified tokens."""

    @property
    def dialect(self) -> Dialect:
        """The dialect whose lexical rules this scanner applies."""
        ...

    def scan(self, sql: str) -> Iterator[Token]:
        """Yield the tokens of *sql* in source order.

        The stream always ends with exactly one terminal token: END when
        the whole input was scanned, ERROR when scanning stopped early
        (e.g. an unterminated quoted literal).  Malformed input never
        raises; the ERROR token marks where usable output ends.

        Contract for non-terminal tokens:

        * spans are non-empty, ascending and non-overlapping;
        * a run of operator characters is reported as OPERATOR tokens
          whose text consists only of those characters;
        * literal values, including ``NULL``, ``TRUE``, ``FALSE``,
          ``CURRENT_DATE``, ``CURRENT_TIME``, ``LOCALTIME`` and
          ``LOCALTIMESTAMP``, are CONSTANT;
        * a lone ``?`` placeholder is CONSTANT.
        """
        ...
