"""Rich output formatting for the pgqs CLI.

All functions write to a :class:`rich.console.Console` instance (typically
bound to *stderr*) so that machine-readable output on *stdout* is never
polluted with human-readable decoration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from rich.console import Console

    from qs_engine.parser.fingerprint import QueryFingerprint
    from qs_engine.settings.rules import QuerySetting


def display_fingerprint(console: Console, fingerprint: QueryFingerprint) -> None:
    """Render one query's fingerprint as a panel.

    Parameters
    ----------
    console:
        Rich console to write to (typically stderr).
    fingerprint:
        The fingerprint to display.
    """
    lines = [
        f"[bold]Query ID:[/bold]   {fingerprint.query_id}",
        f"[bold]Digest:[/bold]     {fingerprint.digest[:16]}...",
        f"[bold]Version:[/bold]    {fingerprint.version.value}",
        f"[bold]Normalized:[/bold] {escape(fingerprint.normalized)}",
    ]
    console.print(Panel("\n".join(lines), title="Query Fingerprint", border_style="blue"))


def display_settings(console: Console, query_id: int, settings: tuple[QuerySetting, ...]) -> None:
    """Render the session parameters registered for *query_id*."""
    if not settings:
        console.print(f"[dim]No settings registered for query id {query_id}.[/dim]")
        return

    table = Table(title=f"Settings for query id {query_id}", show_lines=False)
    table.add_column("Parameter", style="bold cyan")
    table.add_column("Value")
    for setting in settings:
        table.add_row(setting.name, escape(setting.value))
    console.print(table)


def display_error(console: Console, message: str) -> None:
    console.print(f"[red]{escape(message)}[/red]")
