"""Shared helpers for zistogram CLI commands."""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.markup import escape
from rich.logging import RichHandler

from zistogram.config import HistogramConfig, load_config
from zistogram.errors import ConfigError
from zistogram.history.store import HistoryStore

console = Console()

NO_HISTORY_MESSAGE = "No command history found."


def configure_logging(verbose: bool) -> None:
    """Route library logs through Rich when ``--verbose`` is given."""
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def load_config_or_exit() -> HistogramConfig:
    try:
        return load_config()
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from None


def get_store_or_exit() -> HistoryStore:
    """Return the configured store, exiting with status 1 if it is missing."""
    store = HistoryStore(load_config_or_exit())
    if not store.exists():
        console.print(NO_HISTORY_MESSAGE)
        raise typer.Exit(code=1)
    return store


def require_command(command: str | None, usage: str) -> str:
    """Exit with status 1 and a usage line when *command* is missing."""
    if not command:
        console.print(f"Usage: {usage}", markup=False)
        raise typer.Exit(code=1)
    return command
