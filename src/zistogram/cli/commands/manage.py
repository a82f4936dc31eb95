"""Store management commands: record, export, clear and config."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.markup import escape
from rich.table import Table

from zistogram.cli.helpers import console, get_store_or_exit, load_config_or_exit
from zistogram.config import config_file_path
from zistogram.errors import HistoryError
from zistogram.history.capture import capture
from zistogram.history.export import DEFAULT_EXPORT_FILE, export_csv


def record(
    command_line: str = typer.Argument("", help="Command line exactly as the shell ran it"),
    include_private: bool = typer.Option(
        False,
        "--include-private",
        help="Also record commands that start with whitespace",
    ),
) -> None:
    """Record one command. Intended to be called from a shell preexec hook.

    Always exits 0 so a broken history file never gets in the way of the
    shell.
    """
    if not command_line.strip():
        return
    if command_line[0].isspace() and not include_private:
        return
    capture(command_line)


def export(
    output: Path = typer.Argument(Path(DEFAULT_EXPORT_FILE), help="Destination CSV file"),
) -> None:
    """Export all records as CSV (commas escaped with a backslash)."""
    store = get_store_or_exit()
    try:
        rows = export_csv(store.scan(), output)
    except HistoryError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from None

    console.print(f"Exported {rows} record(s) to {escape(str(output))}", soft_wrap=True)


def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Clear all recorded history."""
    store = get_store_or_exit()
    if not yes and not typer.confirm("Clear all command history?", default=False):
        console.print("Aborted.")
        return

    try:
        store.clear()
    except HistoryError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from None

    console.print("Command history cleared.")


def config(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the resolved configuration."""
    resolved = load_config_or_exit()
    payload = resolved.to_dict()
    payload["config_file"] = str(config_file_path())

    if json_output:
        print(json.dumps(payload, indent=2))
        return

    table = Table(title="zistogram configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in payload.items():
        table.add_row(key, escape(str(value)))
    console.print(table)
