"""pgqs CLI application -- Typer-based front end to the query settings engine.

Provides commands to normalise SQL, fingerprint it, and preview the
per-query settings a rules file would apply.  Human-readable output goes
to *stderr* via Rich; machine-readable output (normalised text, JSON) goes
to *stdout* so that pipelines can compose cleanly.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import typer
from rich.console import Console

from qs_cli.display import display_error, display_fingerprint
from qs_engine.config import Settings, load_settings
from qs_engine.parser.fingerprint import fingerprint_query
from qs_engine.parser.normalizer import QueryNormalizer
from qs_engine.sql_toolkit import Dialect, UnsupportedDialectError
from qs_engine.telemetry.log_setup import configure_logging

# ---------------------------------------------------------------------------
# App & global state
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="pgqs",
    help="pgqs - normalise, fingerprint and configure SQL queries by query id",
    no_args_is_help=True,
)
console = Console(stderr=True)

from qs_cli.commands.settings import settings_command  # noqa: E402

app.command(name="settings")(settings_command)

# Mutable global options populated by the Typer callback.
_json_output: bool = False


# ---------------------------------------------------------------------------
# Callback -- global options
# ---------------------------------------------------------------------------


@app.callback()
def _global_options(
    json_mode: bool = typer.Option(
        False,
        "--json/--no-json",
        help="Emit structured JSON to stdout instead of human-readable output.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log engine activity to stderr.",
    ),
) -> None:
    """Global options applied to every command."""
    global _json_output  # noqa: PLW0603
    _json_output = json_mode
    if verbose:
        configure_logging(load_settings(debug=True))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _read_sql(sql: str | None, file: Path | None) -> str:
    """Return query text from the argument, ``--file``, or piped stdin."""
    if sql is not None and file is not None:
        display_error(console, "Pass either a SQL argument or --file, not both.")
        raise typer.Exit(code=1)

    if file is not None:
        try:
            return file.read_text(encoding="utf-8")
        except OSError as exc:
            display_error(console, f"Cannot read {file}: {exc}")
            raise typer.Exit(code=1) from exc

    if sql is None and not sys.stdin.isatty():
        sql = sys.stdin.read()

    if not sql or not sql.strip():
        display_error(console, "No SQL given. Pass it as an argument, with --file, or on stdin.")
        raise typer.Exit(code=1)
    return sql


def _build_normalizer(settings: Settings, dialect: Dialect | None, keep_semicolon: bool) -> QueryNormalizer:
    try:
        return QueryNormalizer(
            dialect=dialect or settings.dialect,
            drop_trailing_semicolon=settings.drop_trailing_semicolon and not keep_semicolon,
        )
    except UnsupportedDialectError as exc:
        display_error(console, str(exc))
        raise typer.Exit(code=1) from exc


# ---------------------------------------------------------------------------
# normalize
# ---------------------------------------------------------------------------


@app.command()
def normalize(
    sql: str | None = typer.Argument(None, help="Query text. Omit to use --file or stdin."),
    file: Path | None = typer.Option(None, "--file", "-f", help="Read the query from this file."),
    preserve_space: bool = typer.Option(
        False,
        "--preserve-space",
        help="Keep one space wherever the source separated two tokens.",
    ),
    keep_semicolon: bool = typer.Option(False, "--keep-semicolon", help="Do not drop a trailing ';'."),
    dialect: Dialect | None = typer.Option(None, "--dialect", help="SQL dialect to scan with."),
) -> None:
    """Print the normalised form of a query."""
    text = _read_sql(sql, file)
    settings = load_settings()
    normalizer = _build_normalizer(settings, dialect, keep_semicolon)
    normalized = normalizer.normalize(text, preserve_space or settings.preserve_space)

    if _json_output:
        result = {"normalized": normalized, "length": len(normalized), "original_length": len(text)}
        sys.stdout.write(json.dumps(result, indent=2) + "\n")
    else:
        sys.stdout.write(normalized + "\n")


# ---------------------------------------------------------------------------
# fingerprint
# ---------------------------------------------------------------------------


@app.command()
def fingerprint(
    sql: str | None = typer.Argument(None, help="Query text. Omit to use --file or stdin."),
    file: Path | None = typer.Option(None, "--file", "-f", help="Read the query from this file."),
    preserve_space: bool = typer.Option(False, "--preserve-space", help="Normalise with preserved spacing."),
    keep_semicolon: bool = typer.Option(False, "--keep-semicolon", help="Do not drop a trailing ';'."),
    dialect: Dialect | None = typer.Option(None, "--dialect", help="SQL dialect to scan with."),
) -> None:
    """Show the query id and digest of a query."""
    text = _read_sql(sql, file)
    settings = load_settings()
    normalizer = _build_normalizer(settings, dialect, keep_semicolon)
    result = fingerprint_query(
        text,
        preserve_space=preserve_space or settings.preserve_space,
        normalizer=normalizer,
    )

    if _json_output:
        payload = {
            "query_id": result.query_id,
            "digest": result.digest,
            "version": result.version.value,
            "normalized": result.normalized,
        }
        sys.stdout.write(json.dumps(payload, indent=2) + "\n")
    else:
        display_fingerprint(console, result)
