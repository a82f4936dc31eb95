"""CLI command modules for zistogram."""

from __future__ import annotations

import typer

from .manage import clear, config, export, record
from .report import detail_cmd, stats_cmd, timeline_cmd, top


def register_commands(app: typer.Typer) -> None:
    """Attach every zistogram command to *app*."""
    app.command("record")(record)
    app.command("top")(top)
    app.command("timeline")(timeline_cmd)
    app.command("detail")(detail_cmd)
    app.command("stats")(stats_cmd)
    app.command("export")(export)
    app.command("clear")(clear)
    app.command("config")(config)


__all__ = ["register_commands"]
