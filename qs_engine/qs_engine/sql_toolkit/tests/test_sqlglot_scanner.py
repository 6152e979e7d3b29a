"""Tests for the SQLGlot-backed scanner and its token classification."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from qs_engine.sql_toolkit import Dialect, Token, TokenClass
from qs_engine.sql_toolkit.impl.sqlglot_impl import (
    SqlGlotScanner,
    classify,
    realign_tokens,
    split_operator_run,
)


@pytest.fixture(scope="module")
def scanner() -> SqlGlotScanner:
    return SqlGlotScanner(Dialect.POSTGRES)


def _kinds(tokens: list[Token]) -> list[TokenClass]:
    return [t.kind for t in tokens]


def _raw(sql: str, *spans: tuple[str, str, int]) -> list[SimpleNamespace]:
    """Build SQLGlot-shaped tokens (inclusive end) from (type, text, start)."""
    tokens = []
    for type_name, text, start in spans:
        assert sql[start : start + len(text)] == text
        tokens.append(SimpleNamespace(token_type=SimpleNamespace(name=type_name), start=start, end=start + len(text) - 1))
    return tokens


# ---------------------------------------------------------------------------
# classify
# ---------------------------------------------------------------------------


class TestClassify:
    @pytest.mark.parametrize(
        ("token_type", "text", "expected"),
        [
            ("NUMBER", "42", TokenClass.CONSTANT),
            ("STRING", "'abc'", TokenClass.CONSTANT),
            ("NULL", "null", TokenClass.CONSTANT),
            ("VAR", "localtimestamp", TokenClass.CONSTANT),
            ("VAR", "orders", TokenClass.IDENTIFIER),
            ("IDENTIFIER", '"Orders"', TokenClass.IDENTIFIER),
            ("EQ", "=", TokenClass.OPERATOR),
            ("NEQ", "<>", TokenClass.OPERATOR),
            ("PLACEHOLDER", "?", TokenClass.OPERATOR),
            ("SELECT", "select", TokenClass.KEYWORD),
            ("ORDER_BY", "ORDER BY", TokenClass.KEYWORD),
            ("L_PAREN", "(", TokenClass.PUNCTUATION),
            ("COMMA", ",", TokenClass.PUNCTUATION),
            ("SEMICOLON", ";", TokenClass.PUNCTUATION),
        ],
    )
    def test_classification(self, token_type: str, text: str, expected: TokenClass) -> None:
        assert classify(token_type, text) is expected


# ---------------------------------------------------------------------------
# split_operator_run
# ---------------------------------------------------------------------------


class TestSplitOperatorRun:
    def _split(self, run: str) -> list[tuple[TokenClass, str]]:
        return [(t.kind, t.text) for t in split_operator_run(run, 0, len(run))]

    def test_single_operator(self) -> None:
        assert self._split("<=") == [(TokenClass.OPERATOR, "<=")]

    def test_trailing_minus_split_off(self) -> None:
        assert self._split("=-") == [(TokenClass.OPERATOR, "="), (TokenClass.OPERATOR, "-")]

    def test_trailing_minus_kept_after_non_arithmetic_char(self) -> None:
        assert self._split("@-") == [(TokenClass.OPERATOR, "@-")]

    def test_lone_question_mark_is_placeholder(self) -> None:
        assert self._split("?") == [(TokenClass.CONSTANT, "?")]

    def test_question_mark_never_continues_a_run(self) -> None:
        assert self._split("=?") == [(TokenClass.OPERATOR, "="), (TokenClass.CONSTANT, "?")]

    def test_question_operator(self) -> None:
        assert self._split("?|") == [(TokenClass.OPERATOR, "?|")]

    def test_spans_are_contiguous(self) -> None:
        tokens = list(split_operator_run("a=-?b", 1, 4))
        assert [(t.start, t.end) for t in tokens] == [(1, 2), (2, 3), (3, 4)]


# ---------------------------------------------------------------------------
# realign_tokens
# ---------------------------------------------------------------------------


class TestRealignTokens:
    def test_dollar_parameter_joined(self) -> None:
        sql = "SELECT $1"
        raw = _raw(sql, ("SELECT", "SELECT", 0), ("PARAMETER", "$", 7), ("NUMBER", "1", 8))
        assert list(realign_tokens(sql, raw)) == [("SELECT", 0, 6), ("PARAMETER", 7, 9)]

    def test_lone_dollar_kept(self) -> None:
        sql = "$ 1"
        raw = _raw(sql, ("PARAMETER", "$", 0), ("NUMBER", "1", 2))
        assert list(realign_tokens(sql, raw)) == [("PARAMETER", 0, 1), ("NUMBER", 2, 3)]

    def test_leading_dot_joins_number(self) -> None:
        sql = "SELECT .5"
        raw = _raw(sql, ("SELECT", "SELECT", 0), ("DOT", ".", 7), ("NUMBER", "5", 8))
        assert list(realign_tokens(sql, raw)) == [("SELECT", 0, 6), ("NUMBER", 7, 9)]

    def test_member_access_dot_kept(self) -> None:
        sql = "t.5"
        raw = _raw(sql, ("VAR", "t", 0), ("DOT", ".", 1), ("NUMBER", "5", 2))
        assert list(realign_tokens(sql, raw)) == [("VAR", 0, 1), ("DOT", 1, 2), ("NUMBER", 2, 3)]

    def test_dot_after_closing_paren_kept(self) -> None:
        sql = "(a).5"
        raw = _raw(sql, ("L_PAREN", "(", 0), ("VAR", "a", 1), ("R_PAREN", ")", 2), ("DOT", ".", 3), ("NUMBER", "5", 4))
        assert ("DOT", 3, 4) in list(realign_tokens(sql, raw))

    def test_trailing_held_token_flushed(self) -> None:
        sql = "a ."
        raw = _raw(sql, ("VAR", "a", 0), ("DOT", ".", 2))
        assert list(realign_tokens(sql, raw)) == [("VAR", 0, 1), ("DOT", 2, 3)]

    def test_placeholder_cast_split(self) -> None:
        sql = "?::int"
        raw = _raw(sql, ("QDCOLON", "?::", 0), ("INT", "int", 3))
        assert list(realign_tokens(sql, raw)) == [("PLACEHOLDER", 0, 1), ("QDCOLON", 1, 3), ("INT", 3, 6)]

    def test_question_operator_not_split(self) -> None:
        sql = "a ?| b"
        raw = _raw(sql, ("VAR", "a", 0), ("QMARK_PIPE", "?|", 2), ("VAR", "b", 5))
        assert list(realign_tokens(sql, raw)) == [("VAR", 0, 1), ("QMARK_PIPE", 2, 4), ("VAR", 5, 6)]


# ---------------------------------------------------------------------------
# scan
# ---------------------------------------------------------------------------


class TestScan:
    def test_ends_with_single_end_token(self, scanner: SqlGlotScanner) -> None:
        tokens = list(scanner.scan("SELECT 1"))
        assert tokens[-1].kind is TokenClass.END
        assert tokens[-1].start == len("SELECT 1")
        assert sum(1 for t in tokens if t.is_terminal) == 1

    def test_empty_input(self, scanner: SqlGlotScanner) -> None:
        tokens = list(scanner.scan(""))
        assert _kinds(tokens) == [TokenClass.END]

    def test_token_text_is_raw_source(self, scanner: SqlGlotScanner) -> None:
        sql = "select Id from T where Name = 'x'"
        for token in scanner.scan(sql):
            if not token.is_terminal:
                assert token.text == sql[token.start : token.end]

    def test_classes(self, scanner: SqlGlotScanner) -> None:
        tokens = list(scanner.scan("SELECT id FROM t WHERE id = 42"))
        assert _kinds(tokens) == [
            TokenClass.KEYWORD,
            TokenClass.IDENTIFIER,
            TokenClass.KEYWORD,
            TokenClass.IDENTIFIER,
            TokenClass.KEYWORD,
            TokenClass.IDENTIFIER,
            TokenClass.OPERATOR,
            TokenClass.CONSTANT,
            TokenClass.END,
        ]

    def test_spans_ascending_and_disjoint(self, scanner: SqlGlotScanner) -> None:
        tokens = [t for t in scanner.scan("SELECT a+b, 'x' FROM t WHERE c >= -1") if not t.is_terminal]
        for token in tokens:
            assert token.width > 0
        for left, right in zip(tokens, tokens[1:]):
            assert left.end <= right.start

    def test_comments_are_not_tokens(self, scanner: SqlGlotScanner) -> None:
        tokens = list(scanner.scan("SELECT /* note */ 1 -- trailing"))
        assert _kinds(tokens) == [TokenClass.KEYWORD, TokenClass.CONSTANT, TokenClass.END]

    def test_adjacent_operator_tokens_merge(self, scanner: SqlGlotScanner) -> None:
        tokens = [t for t in scanner.scan("a <> b") if t.kind is TokenClass.OPERATOR]
        assert [t.text for t in tokens] == ["<>"]

    def test_placeholder_is_constant(self, scanner: SqlGlotScanner) -> None:
        tokens = list(scanner.scan("id = ?"))
        assert tokens[-2].kind is TokenClass.CONSTANT
        assert tokens[-2].text == "?"

    def test_null_is_constant(self, scanner: SqlGlotScanner) -> None:
        tokens = list(scanner.scan("a IS NULL"))
        assert tokens[-2].kind is TokenClass.CONSTANT

    def test_unterminated_string_ends_with_error(self, scanner: SqlGlotScanner) -> None:
        tokens = list(scanner.scan("SELECT 'abc"))
        assert tokens[-1].kind is TokenClass.ERROR
        assert _kinds(tokens[:-1]) == [TokenClass.KEYWORD]
        assert sum(1 for t in tokens if t.is_terminal) == 1

    def test_command_statements_are_scanned_word_by_word(self, scanner: SqlGlotScanner) -> None:
        tokens = list(scanner.scan("EXPLAIN SELECT 1"))
        assert TokenClass.CONSTANT in _kinds(tokens)
        assert len(tokens) == 4

    def test_scan_is_lazy(self, scanner: SqlGlotScanner) -> None:
        stream = scanner.scan("SELECT 1")
        assert next(stream).kind is TokenClass.KEYWORD

    def test_bind_parameter_is_one_identifier(self, scanner: SqlGlotScanner) -> None:
        tokens = list(scanner.scan("SELECT $1"))
        assert [(t.kind, t.text) for t in tokens[:-1]] == [
            (TokenClass.KEYWORD, "SELECT"),
            (TokenClass.IDENTIFIER, "$1"),
        ]

    def test_leading_dot_number_is_constant(self, scanner: SqlGlotScanner) -> None:
        tokens = list(scanner.scan("SELECT .5"))
        assert [(t.kind, t.text) for t in tokens[:-1]] == [
            (TokenClass.KEYWORD, "SELECT"),
            (TokenClass.CONSTANT, ".5"),
        ]

    def test_qualified_name_dot_is_punctuation(self, scanner: SqlGlotScanner) -> None:
        tokens = list(scanner.scan("t.a"))
        assert [(t.kind, t.text) for t in tokens[:-1]] == [
            (TokenClass.IDENTIFIER, "t"),
            (TokenClass.PUNCTUATION, "."),
            (TokenClass.IDENTIFIER, "a"),
        ]

    def test_placeholder_before_cast(self, scanner: SqlGlotScanner) -> None:
        tokens = list(scanner.scan("?::int"))
        assert [(t.kind, t.text) for t in tokens[:-1]] == [
            (TokenClass.CONSTANT, "?"),
            (TokenClass.PUNCTUATION, "::"),
            (TokenClass.KEYWORD, "int"),
        ]
