"""``pgqs settings``: preview the session parameters a query would get.

Loads a rules file, fingerprints the query and applies the matching
settings to an in-memory session, then resets them again.  Nothing is
sent to a database; the command shows what the applier would do.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import typer

logger = logging.getLogger(__name__)


def settings_command(
    sql: str | None = typer.Argument(None, help="Query text. Omit to use --file or stdin."),
    file: Path | None = typer.Option(None, "--file", "-f", help="Read the query from this file."),
    rules: Path | None = typer.Option(
        None,
        "--rules",
        "-r",
        help="YAML or JSON rules file. Defaults to PGQS_RULES_FILE.",
        envvar="PGQS_RULES_FILE",
    ),
) -> None:
    """Show the settings registered for a query's id.

    Examples::

        pgqs settings "SELECT * FROM orders WHERE id = 7" --rules rules.yaml
        pgqs --json settings --file query.sql --rules rules.yaml
    """
    from qs_cli.app import _json_output, _read_sql, console
    from qs_cli.display import display_error, display_settings
    from qs_engine.config import load_settings
    from qs_engine.settings import (
        InMemorySession,
        SessionSettingsApplier,
        SettingsError,
        load_registry,
    )

    text = _read_sql(sql, file)
    if rules is None:
        display_error(console, "No rules file. Pass --rules or set PGQS_RULES_FILE.")
        raise typer.Exit(code=1)

    settings = load_settings(rules_file=rules, enabled=True)
    try:
        registry = load_registry(settings)
    except SettingsError as exc:
        display_error(console, str(exc))
        raise typer.Exit(code=1) from exc

    # Every parameter named in the rules gets an empty default, so the
    # preview never trips over an unknown name.
    session = InMemorySession({setting.name: "" for setting in registry})
    applier = SessionSettingsApplier.from_settings(settings, session, registry=registry)

    try:
        with applier.for_query(text) as applied:
            query_id = applied.query_id
            matched = applied.settings
    except SettingsError as exc:
        display_error(console, str(exc))
        raise typer.Exit(code=1) from exc

    if query_id is None:
        display_error(console, "Settings are disabled; no query id was computed.")
        raise typer.Exit(code=1)
    logger.debug("Previewed %d setting(s) for query id %d", len(matched), query_id)

    if _json_output:
        payload = {
            "query_id": query_id,
            "settings": [{"name": s.name, "value": s.value} for s in matched],
        }
        sys.stdout.write(json.dumps(payload, indent=2) + "\n")
    else:
        display_settings(console, query_id, matched)
