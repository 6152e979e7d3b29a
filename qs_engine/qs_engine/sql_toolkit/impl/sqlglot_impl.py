"""SQLGlot-backed implementation of the SQL scanner protocol.

This is the ONLY file in the codebase that imports ``sqlglot`` directly.
All consumer code goes through :class:`~qs_engine.sql_toolkit.SqlScanner`.

SQLGlot does the lexing.  This module only classifies its tokens into
:class:`TokenClass` values and re-splits runs of operator characters the
way PostgreSQL's scanner groups them, because SQLGlot stops at the
operators it knows (``<>``, ``->>``, ...) while PostgreSQL accepts any run
of operator characters as one operator.

Supports SQLGlot v25.x and later.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import Any

from sqlglot.dialects.dialect import Dialect as SqlGlotDialect
from sqlglot.errors import TokenError
from sqlglot.tokens import Tokenizer

from .._types import (
    Dialect,
    Token,
    TokenClass,
    UnsupportedDialectError,
    end_token,
    error_token,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Character classes
# ---------------------------------------------------------------------------

# Must stay in sync with PostgreSQL's op_chars in scan.l.
OPERATOR_CHARS: frozenset[str] = frozenset("~!@#^&|`?+-*/%<>=")

# An operator containing one of these may end in '+' or '-'.
_NON_ARITHMETIC_OPERATOR_CHARS: frozenset[str] = frozenset("~!@#^&|`?%")

# '?' opens an operator only in front of these (?| ?& ?# ...).
_QUESTION_OPERATOR_FOLLOWERS: frozenset[str] = frozenset("|&#")

# ---------------------------------------------------------------------------
# Token type classification
# ---------------------------------------------------------------------------

# Compared by name so that token types missing from older SQLGlot releases
# do not break the import.
_CONSTANT_TOKEN_TYPES: frozenset[str] = frozenset(
    {
        "NUMBER",
        "STRING",
        "BIT_STRING",
        "HEX_STRING",
        "BYTE_STRING",
        "NATIONAL_STRING",
        "RAW_STRING",
        "HEREDOC_STRING",
        "UNICODE_STRING",
        "NULL",
        "TRUE",
        "FALSE",
        "CURRENT_DATE",
        "CURRENT_TIME",
    }
)

_IDENTIFIER_TOKEN_TYPES: frozenset[str] = frozenset({"VAR", "IDENTIFIER"})

# Bind parameters such as $1 are copied verbatim like identifiers.
# SQLGlot lexes "$1" as "$" then 1; realign_tokens() joins them again.
_PARAMETER_TOKEN_TYPES: frozenset[str] = frozenset({"PARAMETER", "SESSION_PARAMETER"})

# A "." directly after one of these is member access, not a decimal point.
_OPERAND_END_TOKEN_TYPES: frozenset[str] = frozenset({"VAR", "IDENTIFIER", "R_PAREN", "R_BRACKET"})

# Keyword-literals masked like constants.  CURRENT_TIMESTAMP is deliberately
# absent: PostgreSQL deparses it as a function call.
LITERAL_KEYWORDS: frozenset[str] = frozenset(
    {
        "NULL",
        "TRUE",
        "FALSE",
        "CURRENT_DATE",
        "CURRENT_TIME",
        "LOCALTIME",
        "LOCALTIMESTAMP",
    }
)


def _dialect_value(dialect: Dialect) -> str:
    """Convert our Dialect enum to the sqlglot dialect string."""
    return dialect.value


def _is_operator_text(text: str) -> bool:
    return bool(text) and all(ch in OPERATOR_CHARS for ch in text)


def classify(token_type_name: str, text: str) -> TokenClass:
    """Map a SQLGlot token onto a :class:`TokenClass`.

    *text* is the raw source slice of the token (quotes included).
    Operator-character tokens are classified as OPERATOR here; grouping
    them into runs happens in :func:`split_operator_run`.
    """
    if token_type_name in _CONSTANT_TOKEN_TYPES:
        return TokenClass.CONSTANT
    if token_type_name in _IDENTIFIER_TOKEN_TYPES:
        if token_type_name == "VAR" and text.upper() in LITERAL_KEYWORDS:
            return TokenClass.CONSTANT
        return TokenClass.IDENTIFIER
    if _is_operator_text(text):
        return TokenClass.OPERATOR
    if token_type_name in _PARAMETER_TOKEN_TYPES:
        return TokenClass.IDENTIFIER
    if text.upper() in LITERAL_KEYWORDS:
        return TokenClass.CONSTANT
    if text[:1].isalpha() or text[:1] == "_":
        return TokenClass.KEYWORD
    return TokenClass.PUNCTUATION


def _operator_length(text: str) -> int:
    """Length of the operator PostgreSQL would cut from the front of *text*.

    A multi-character operator may not end in ``+`` or ``-`` unless it also
    contains one of ``~!@#^&|`?%``; such trailing signs are left for the
    following tokens (``=-1`` is ``=`` then ``-`` then ``1``).
    """
    length = len(text)
    if length > 1 and not _NON_ARITHMETIC_OPERATOR_CHARS.intersection(text):
        while length > 1 and text[length - 1] in "+-":
            length -= 1
    return length


def split_operator_run(sql: str, start: int, end: int) -> Iterator[Token]:
    """Split the operator-character run ``sql[start:end]`` into tokens.

    A ``?`` never continues a run.  It opens one only when followed by a
    character of a PostgreSQL ``?``-operator; otherwise it is a lone
    placeholder and comes out as a CONSTANT.
    """
    pos = start
    while pos < end:
        if sql[pos] == "?" and (pos + 1 >= end or sql[pos + 1] not in _QUESTION_OPERATOR_FOLLOWERS):
            yield Token(kind=TokenClass.CONSTANT, start=pos, end=pos + 1, text="?")
            pos += 1
            continue

        stop = sql.find("?", pos + 1, end)
        if stop == -1:
            stop = end
        op_end = pos + _operator_length(sql[pos:stop])
        yield Token(kind=TokenClass.OPERATOR, start=pos, end=op_end, text=sql[pos:op_end])
        pos = op_end


Span = tuple[str, int, int]


def realign_tokens(sql: str, raw_tokens: Iterable[Any]) -> Iterator[Span]:
    """Yield ``(token type name, start, end)`` spans for SQLGlot tokens.

    Token boundaries are moved where SQLGlot cuts differently from
    PostgreSQL:

    * ``$1``: a ``$`` PARAMETER and the NUMBER right after it become one
      PARAMETER;
    * ``.5``: a DOT and the NUMBER right after it become one NUMBER, unless
      the dot directly follows an identifier or a closing bracket;
    * ``?::``: a token starting with ``?`` followed by non-operator
      characters is cut into a ``?`` PLACEHOLDER and the rest.
    """
    held: Span | None = None
    previous: Span | None = None

    for raw in raw_tokens:
        span: Span = (raw.token_type.name, raw.start, raw.end + 1)
        name, start, end = span

        if held is not None:
            held_name, held_start, held_end = held
            held = None
            if name == "NUMBER" and start == held_end:
                previous = ("PARAMETER" if held_name == "PARAMETER" else "NUMBER", held_start, end)
                yield previous
                continue
            previous = (held_name, held_start, held_end)
            yield previous

        text = sql[start:end]
        if name == "PARAMETER" and text == "$":
            held = span
            continue
        if name == "DOT" and not (
            previous is not None and previous[2] == start and previous[0] in _OPERAND_END_TOKEN_TYPES
        ):
            held = span
            continue
        if len(text) > 1 and text[0] == "?" and not _is_operator_text(text):
            yield ("PLACEHOLDER", start, start + 1)
            previous = (name, start + 1, end)
            yield previous
            continue

        previous = span
        yield span

    if held is not None:
        yield held


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------


def _tokenizer_class_for(dialect: SqlGlotDialect) -> type[Tokenizer]:
    """Return the dialect's tokenizer with command swallowing disabled.

    SQLGlot turns the remainder of statements such as ``EXPLAIN ...`` or
    ``VACUUM ...`` into a single string token.  That would mask the whole
    statement, so every word must be scanned instead.
    """
    base = dialect.tokenizer_class
    return type(f"{base.__name__}NoCommands", (base,), {"COMMANDS": set()})


class SqlGlotScanner:
    """Scan SQL with the SQLGlot tokenizer of one dialect.

    Instances are safe to share between threads: every :meth:`scan` call
    builds its own tokenizer.
    """

    def __init__(self, dialect: Dialect = Dialect.POSTGRES) -> None:
        self._dialect = Dialect(dialect)
        try:
            self._sqlglot_dialect = SqlGlotDialect.get_or_raise(_dialect_value(self._dialect))
        except ValueError as exc:
            raise UnsupportedDialectError(f"SQLGlot has no dialect {self._dialect.value!r}") from exc
        self._tokenizer_cls = _tokenizer_class_for(self._sqlglot_dialect)

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    def scan(self, sql: str) -> Iterator[Token]:
        tokenizer = self._tokenizer_cls(dialect=self._sqlglot_dialect)
        try:
            raw_tokens = tokenizer.tokenize(sql)
        except TokenError as exc:
            # Tokens scanned before the failure are complete; keep them and
            # report where usable input ends.
            raw_tokens = list(tokenizer.tokens)
            failed_at = raw_tokens[-1].end + 1 if raw_tokens else 0
            logger.debug("SQL scan stopped at offset %d: %s", failed_at, exc)
            yield from self._classified(sql, raw_tokens)
            yield error_token(failed_at)
            return

        yield from self._classified(sql, raw_tokens)
        yield end_token(len(sql))

    @staticmethod
    def _classified(sql: str, raw_tokens: Iterable[Any]) -> Iterator[Token]:
        """Classify SQLGlot tokens, merging adjacent operator characters."""
        run_start = run_end = -1

        for token_type_name, start, end in realign_tokens(sql, raw_tokens):
            text = sql[start:end]
            kind = classify(token_type_name, text)

            if kind is TokenClass.OPERATOR:
                if start == run_end:
                    run_end = end
                    continue
                if run_start >= 0:
                    yield from split_operator_run(sql, run_start, run_end)
                run_start, run_end = start, end
                continue

            if run_start >= 0:
                yield from split_operator_run(sql, run_start, run_end)
                run_start = run_end = -1
            yield Token(kind=kind, start=start, end=end, text=text)

        if run_start >= 0:
            yield from split_operator_run(sql, run_start, run_end)
