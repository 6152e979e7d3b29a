"""Tests for qs_cli/qs_cli/app.py -- the pgqs CLI application.

Uses typer.testing.CliRunner to invoke each command against the real
engine; no database is involved.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from qs_cli.app import app
from qs_engine.parser.fingerprint import fingerprint_query

runner = CliRunner()

_QUERY = "select * from orders where id = 42"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    for name in ["PGQS_DIALECT", "PGQS_PRESERVE_SPACE", "PGQS_DROP_TRAILING_SEMICOLON", "PGQS_RULES_FILE"]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def rules_file(tmp_path: Path) -> Path:
    path = tmp_path / "rules.yaml"
    path.write_text(
        "rules:\n"
        f"  - query: {_QUERY}\n"
        "    settings:\n"
        "      work_mem: 64MB\n"
        "      enable_seqscan: off\n"
    )
    return path


# ---------------------------------------------------------------------------
# normalize
# ---------------------------------------------------------------------------


class TestNormalize:
    def test_argument(self):
        result = runner.invoke(app, ["normalize", _QUERY])
        assert result.exit_code == 0, f"Output: {result.output}\n{result.exception}"
        assert result.stdout.strip() == "SELECT * FROM orders WHERE id = ?"

    def test_file(self, tmp_path: Path):
        sql_file = tmp_path / "query.sql"
        sql_file.write_text("SELECT 1;\n")
        result = runner.invoke(app, ["normalize", "--file", str(sql_file)])
        assert result.exit_code == 0
        assert result.stdout.strip() == "SELECT ?"

    def test_stdin(self):
        result = runner.invoke(app, ["normalize"], input="select a from t where b = 'x'\n")
        assert result.exit_code == 0
        assert result.stdout.strip() == "SELECT a FROM t WHERE b = ?"

    def test_keep_semicolon(self):
        result = runner.invoke(app, ["normalize", "--keep-semicolon", "SELECT 1;"])
        assert result.exit_code == 0
        assert result.stdout.strip() == "SELECT ?;"

    def test_preserve_space(self):
        result = runner.invoke(app, ["normalize", "--preserve-space", "f ( 1 )"])
        assert result.exit_code == 0
        assert result.stdout.strip() == "f ?"

    def test_dialect_option(self):
        result = runner.invoke(app, ["normalize", "--dialect", "duckdb", "SELECT 1"])
        assert result.exit_code == 0
        assert result.stdout.strip() == "SELECT ?"

    def test_json(self):
        result = runner.invoke(app, ["--json", "normalize", "SELECT 1"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload == {"normalized": "SELECT ?", "length": 8, "original_length": 8}

    def test_no_sql_exits_1(self):
        result = runner.invoke(app, ["normalize"], input="")
        assert result.exit_code == 1

    def test_argument_and_file_conflict(self, tmp_path: Path):
        sql_file = tmp_path / "query.sql"
        sql_file.write_text("SELECT 1")
        result = runner.invoke(app, ["normalize", "SELECT 2", "--file", str(sql_file)])
        assert result.exit_code == 1

    def test_missing_file_exits_1(self, tmp_path: Path):
        result = runner.invoke(app, ["normalize", "--file", str(tmp_path / "missing.sql")])
        assert result.exit_code == 1


# ---------------------------------------------------------------------------
# fingerprint
# ---------------------------------------------------------------------------


class TestFingerprint:
    def test_json(self):
        result = runner.invoke(app, ["--json", "fingerprint", _QUERY])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        expected = fingerprint_query(_QUERY)
        assert payload["query_id"] == expected.query_id
        assert payload["digest"] == expected.digest
        assert payload["version"] == "v1"
        assert payload["normalized"] == "SELECT * FROM orders WHERE id = ?"

    def test_human_output(self):
        result = runner.invoke(app, ["fingerprint", _QUERY])
        assert result.exit_code == 0
        assert str(fingerprint_query(_QUERY).query_id) in result.output

    def test_same_shape_same_id(self):
        first = json.loads(runner.invoke(app, ["--json", "fingerprint", "SELECT a FROM t WHERE b = 1"]).stdout)
        second = json.loads(runner.invoke(app, ["--json", "fingerprint", "select a  from t where b = 2"]).stdout)
        assert first["query_id"] == second["query_id"]


# ---------------------------------------------------------------------------
# settings
# ---------------------------------------------------------------------------


class TestSettingsCommand:
    def test_json(self, rules_file: Path):
        result = runner.invoke(app, ["--json", "settings", "SELECT * FROM orders WHERE id = 7", "--rules", str(rules_file)])
        assert result.exit_code == 0, f"Output: {result.output}\n{result.exception}"
        payload = json.loads(result.stdout)
        assert payload["query_id"] == fingerprint_query(_QUERY).query_id
        assert payload["settings"] == [
            {"name": "work_mem", "value": "64MB"},
            {"name": "enable_seqscan", "value": "off"},
        ]

    def test_no_match(self, rules_file: Path):
        result = runner.invoke(app, ["--json", "settings", "SELECT 1", "--rules", str(rules_file)])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["settings"] == []

    def test_human_output(self, rules_file: Path):
        result = runner.invoke(app, ["settings", _QUERY, "--rules", str(rules_file)])
        assert result.exit_code == 0
        assert "work_mem" in result.output
        assert "64MB" in result.output

    def test_rules_from_env(self, rules_file: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PGQS_RULES_FILE", str(rules_file))
        result = runner.invoke(app, ["--json", "settings", _QUERY])
        assert result.exit_code == 0
        assert len(json.loads(result.stdout)["settings"]) == 2

    def test_missing_rules_option(self):
        result = runner.invoke(app, ["settings", _QUERY])
        assert result.exit_code == 1

    def test_invalid_rules_file(self, tmp_path: Path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("rules:\n  - settings:\n      work_mem: 1MB\n")
        result = runner.invoke(app, ["settings", _QUERY, "--rules", str(bad)])
        assert result.exit_code == 1

    def test_rules_fingerprinted_with_configured_normalisation(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PGQS_DROP_TRAILING_SEMICOLON", "false")
        rules = tmp_path / "semicolon.yaml"
        rules.write_text('rules:\n  - query: "SELECT 1;"\n    settings:\n      work_mem: 8MB\n')

        result = runner.invoke(app, ["--json", "settings", "SELECT 1;", "--rules", str(rules)])

        assert result.exit_code == 0, f"Output: {result.output}\n{result.exception}"
        assert json.loads(result.stdout)["settings"] == [{"name": "work_mem", "value": "8MB"}]

    def test_missing_rules_file_exits_1(self, tmp_path: Path):
        result = runner.invoke(app, ["settings", _QUERY, "--rules", str(tmp_path / "absent.yaml")])
        assert result.exit_code == 1


class TestApp:
    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "normalize" in result.output

    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ["normalize", "fingerprint", "settings"]:
            assert command in result.output
