"""Query text normalisation for fingerprinting.

Rewrites a SQL statement or bare expression into a canonical form so that
queries differing only in literal values, whitespace, comments and keyword
casing normalise to the same text.  The text is then handed to
:mod:`qs_engine.parser.fingerprint` to obtain a query id.

**Rewrite rules**:

1. Every constant (numbers, strings, bit/hex strings, ``NULL``, ``TRUE``,
   ``FALSE``, ``CURRENT_DATE``, ``CURRENT_TIME``, ``LOCALTIME``,
   ``LOCALTIMESTAMP`` and ``?`` placeholders) becomes a single ``?``.
   Adjacent constants share one ``?``; a unary minus is masked with its
   number; parentheses wrapped directly around a masked constant go too.
2. Keywords and punctuation are upper-cased (ASCII only).  Identifiers keep
   their source casing.
3. A run of two or more operator characters becomes ``=``.
4. Whitespace and comments between tokens collapse to at most one space.
   By default a space is kept only between two content tokens
   (identifiers, keywords, operators, constants); ``preserve_space`` keeps
   one for every separated pair.
5. A trailing semicolon is dropped.

The output is never longer than the input.  Malformed input never raises:
scanning stops at the first token it cannot read and whatever was already
written is the result.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass

from qs_engine.sql_toolkit import Dialect, SqlScanner, Token, TokenClass, get_scanner
from qs_engine.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)

MASK = "?"
GENERIC_OPERATOR = "="

_ASCII_UPPER = str.maketrans("abcdefghijklmnopqrstuvwxyz", "ABCDEFGHIJKLMNOPQRSTUVWXYZ")
_INNER_SPACE_RE = re.compile(r"\s+")

_CLOSING_PUNCTUATION = frozenset({")", "]"})


def _upcase(text: str) -> str:
    """Upper-case ASCII letters only, so the length never changes."""
    return text.translate(_ASCII_UPPER)


# ---------------------------------------------------------------------------
# Token stream with one token of lookahead
# ---------------------------------------------------------------------------


class _TokenStream:
    """Pull tokens from a scanner one at a time, with a single peek slot."""

    def __init__(self, tokens: Iterator[Token]) -> None:
        self._tokens = tokens
        self._peeked: Token | None = None

    def next(self) -> Token:
        if self._peeked is not None:
            token, self._peeked = self._peeked, None
            return token
        return next(self._tokens)

    def peek(self) -> Token:
        if self._peeked is None:
            self._peeked = next(self._tokens)
        return self._peeked


# ---------------------------------------------------------------------------
# Output buffer
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _Written:
    token: Token
    mark: int  # output length before this token's separator


class _OutputBuffer:
    """Append-only output with the ability to take back the last token.

    Every written token is recorded together with the write position it
    started at, so that parenthesis elision can rewind past an opening
    parenthesis that has already been emitted.
    """

    def __init__(self, preserve_space: bool) -> None:
        self._preserve_space = preserve_space
        self._parts: list[str] = []
        self._written: list[_Written] = []

    @property
    def last(self) -> Token | None:
        return self._written[-1].token if self._written else None

    @property
    def before_last(self) -> Token | None:
        return self._written[-2].token if len(self._written) > 1 else None

    def write(self, token: Token, text: str) -> None:
        mark = len(self._parts)
        previous = self.last
        if previous is not None and self._separated(previous, token):
            self._parts.append(" ")
        self._parts.append(text)
        self._written.append(_Written(token=token, mark=mark))

    def rewind(self) -> Token:
        """Remove the last written token and its separator; return it."""
        written = self._written.pop()
        del self._parts[written.mark :]
        return written.token

    def getvalue(self) -> str:
        return "".join(self._parts)

    def _separated(self, previous: Token, token: Token) -> bool:
        # Never add a space where the source had none: keeps the output
        # no longer than the input.
        if previous.end >= token.start:
            return False
        if self._preserve_space:
            return True
        return previous.kind.is_content and token.kind.is_content


# ---------------------------------------------------------------------------
# Normalizer
# ---------------------------------------------------------------------------


class QueryNormalizer:
    """Canonicalise SQL text for fingerprinting.

    Parameters
    ----------
    scanner:
        Token source.  Defaults to the registered scanner for *dialect*.
    dialect:
        Dialect used to look up the default scanner.
    drop_trailing_semicolon:
        Omit a final ``;``.  PostgreSQL 10 and later store query text
        without it, so keeping it would split fingerprints of the same
        statement.
    """

    def __init__(
        self,
        scanner: SqlScanner | None = None,
        *,
        dialect: Dialect = Dialect.POSTGRES,
        drop_trailing_semicolon: bool = True,
    ) -> None:
        self._scanner = scanner if scanner is not None else get_scanner(dialect)
        self._drop_trailing_semicolon = drop_trailing_semicolon

    @property
    def scanner(self) -> SqlScanner:
        return self._scanner

    def normalize(self, sql: str, preserve_space: bool = False) -> str:
        """Return the canonical form of *sql*.

        Parameters
        ----------
        sql:
            A full statement or a bare expression; it need not be valid.
        preserve_space:
            Keep one space for every place the source separated two tokens,
            trading uniqueness for readability.
        """
        out = _OutputBuffer(preserve_space)
        stream = _TokenStream(self._scanner.scan(sql))

        while True:
            token = stream.next()
            if token.is_terminal:
                if token.kind is TokenClass.ERROR:
                    logger.debug("Normalisation truncated at offset %d", token.start)
                break

            if self._is_unary_minus(token, out.last):
                following = stream.peek()
                if following.kind is TokenClass.ERROR:
                    continue
                if following.kind is TokenClass.CONSTANT:
                    stream.next()
                    token = Token(kind=TokenClass.CONSTANT, start=token.start, end=following.end)

            if token.kind is TokenClass.CONSTANT:
                constant = self._consume_constant(token, stream, out)
                if constant is None:
                    continue
                out.write(constant, MASK)
                continue

            if token.text == ";" and self._drop_trailing_semicolon:
                if stream.peek().kind is TokenClass.END or stream.peek().text == ";":
                    continue

            out.write(token, self._render(token))

        return out.getvalue()

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _is_unary_minus(token: Token, previous: Token | None) -> bool:
        """A ``-`` with no operand to its left is a sign, not a subtraction."""
        if token.kind is not TokenClass.OPERATOR or token.text != "-":
            return False
        if previous is None:
            return True
        if previous.kind in (TokenClass.OPERATOR, TokenClass.KEYWORD):
            return True
        return previous.kind is TokenClass.PUNCTUATION and previous.text not in _CLOSING_PUNCTUATION

    @staticmethod
    def _consume_constant(token: Token, stream: _TokenStream, out: _OutputBuffer) -> Token | None:
        """Extend *token* over following constants and enclosing parentheses.

        Returns ``None`` when the lookahead runs into a scan error: the end
        of the constant is then unknown and nothing more may be written.
        """
        while True:
            following = stream.peek()
            if following.kind is TokenClass.ERROR:
                return None
            if following.kind is not TokenClass.CONSTANT:
                break
            stream.next()
            token = Token(kind=TokenClass.CONSTANT, start=token.start, end=following.end)

        # Deparsers wrap negative numbers in parentheses; "( const )" is
        # masked as a whole, repeatedly for nested parentheses.  A sign
        # already written in front of the parentheses joins the constant.
        while out.last is not None:
            if out.last.text == "(" and stream.peek().text == ")":
                closing = stream.next()
                opening = out.rewind()
                token = Token(kind=TokenClass.CONSTANT, start=opening.start, end=closing.end)
            elif QueryNormalizer._is_unary_minus(out.last, out.before_last):
                sign = out.rewind()
                token = Token(kind=TokenClass.CONSTANT, start=sign.start, end=token.end)
            else:
                break

        return token

    @staticmethod
    def _render(token: Token) -> str:
        if token.kind is TokenClass.IDENTIFIER:
            return token.text
        if token.kind is TokenClass.OPERATOR:
            return GENERIC_OPERATOR if token.width > 1 else token.text
        if token.kind is TokenClass.KEYWORD:
            return _upcase(_INNER_SPACE_RE.sub(" ", token.text))
        return _upcase(token.text)


# ---------------------------------------------------------------------------
# Module-level entry points
# ---------------------------------------------------------------------------


@profile_operation("sql.normalize")
def normalize_query(
    sql: str,
    preserve_space: bool = False,
    *,
    dialect: Dialect = Dialect.POSTGRES,
    drop_trailing_semicolon: bool = True,
) -> str:
    """Return the canonical form of *sql*.  See :class:`QueryNormalizer`."""
    normalizer = QueryNormalizer(dialect=dialect, drop_trailing_semicolon=drop_trailing_semicolon)
    return normalizer.normalize(sql, preserve_space)


def normalize_into(
    buffer: bytearray,
    preserve_space: bool = False,
    *,
    dialect: Dialect = Dialect.POSTGRES,
    drop_trailing_semicolon: bool = True,
) -> int:
    """Normalise the UTF-8 text held in *buffer* in place.

    The text runs up to the first NUL byte, or to the end of the buffer.
    The canonical bytes are written back from offset 0 and followed by a
    NUL when there is room for one.  Bytes that are not valid UTF-8 pass
    through unchanged.

    Returns
    -------
    int
        The logical length of the normalised text, terminator excluded.
    """
    terminator = buffer.find(0)
    length = len(buffer) if terminator < 0 else terminator
    sql = bytes(buffer[:length]).decode("utf-8", errors="surrogateescape")

    normalized = normalize_query(
        sql,
        preserve_space,
        dialect=dialect,
        drop_trailing_semicolon=drop_trailing_semicolon,
    ).encode("utf-8", errors="surrogateescape")

    size = len(normalized)
    buffer[:size] = normalized
    if size < len(buffer):
        buffer[size] = 0
    return size
