"""Report commands: top, timeline, detail and stats."""

from __future__ import annotations

import json
from typing import NoReturn

import typer
from rich.markup import escape
from rich.table import Table

from zistogram.cli.helpers import console, get_store_or_exit, require_command
from zistogram.errors import HistoryError
from zistogram.history.query import (
    CommandCount,
    TimelineBucket,
    detail,
    frequency,
    normalize_period,
    resolve_period,
    stats,
    timeline,
)


def _fail(error: HistoryError) -> NoReturn:
    console.print(f"[red]Error:[/red] {escape(str(error))}")
    raise typer.Exit(code=1) from None


def top(
    period: str = typer.Argument("all", help="Period: hour|day|week|month|year|all"),
    limit: int = typer.Argument(20, help="Number of commands to show"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the most frequently used commands."""
    store = get_store_or_exit()
    try:
        ranked = frequency(store.scan(), since=resolve_period(period), limit=limit)
    except HistoryError as e:
        _fail(e)

    if json_output:
        print(json.dumps([c.to_dict() for c in ranked], indent=2))
        return

    _print_counts(ranked, title=f"Top commands ({normalize_period(period)})")


def _print_counts(counts: list[CommandCount], title: str) -> None:
    table = Table(title=title)
    table.add_column("Count", justify="right", style="green")
    table.add_column("Command", style="cyan")
    for entry in counts:
        table.add_row(str(entry.count), escape(entry.command))
    console.print(table)


def timeline_cmd(
    command: str | None = typer.Argument(None, help="Base command to chart"),
    period: str = typer.Argument("day", help="Bucket size: hour|day|week|month"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show how often a command was used over time."""
    base_command = require_command(command, "zistogram timeline <command> [hour|day|week|month]")
    store = get_store_or_exit()
    try:
        buckets = timeline(store.scan(), base_command, granularity=period)
    except HistoryError as e:
        _fail(e)

    if json_output:
        print(json.dumps([b.to_dict() for b in buckets], indent=2))
        return

    if not buckets:
        console.print(f"No uses of [cyan]{escape(base_command)}[/cyan] recorded.")
        return

    _print_buckets(buckets, title=f"Timeline for {escape(base_command)}")


def _print_buckets(buckets: list[TimelineBucket], title: str) -> None:
    peak = max(b.count for b in buckets)
    table = Table(title=title)
    table.add_column("Bucket", style="cyan")
    table.add_column("Count", justify="right", style="green")
    table.add_column("", style="magenta")
    for bucket in buckets:
        bar = "#" * max(1, round(20 * bucket.count / peak))
        table.add_row(bucket.label, str(bucket.count), bar)
    console.print(table)


def detail_cmd(
    command: str | None = typer.Argument(None, help="Base command to break down"),
    limit: int = typer.Argument(10, help="Number of variants to show"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the most common full command lines for a base command."""
    base_command = require_command(command, "zistogram detail <command> [limit]")
    store = get_store_or_exit()
    try:
        result = detail(store.scan(), base_command, limit=limit)
    except HistoryError as e:
        _fail(e)

    if json_output:
        print(json.dumps(result.to_dict(), indent=2))
        return

    console.print(f"Total uses of [cyan]{escape(base_command)}[/cyan]: {result.total}")
    if result.variants:
        _print_counts(result.variants, title=f"Top {escape(base_command)} variants")


def stats_cmd(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show overall statistics."""
    store = get_store_or_exit()
    try:
        summary = stats(store.scan())
    except HistoryError as e:
        _fail(e)

    if json_output:
        payload = summary.to_dict()
        payload["data_file"] = str(store.path)
        print(json.dumps(payload, indent=2))
        return

    console.print("[bold]Statistics:[/bold]")
    console.print(f"  Total commands: {summary.total_records}")
    console.print(f"  Unique commands: {summary.unique_base_commands}")
    console.print(f"  Days tracked: {summary.days_tracked:.1f}")
    console.print(f"  Average per day: {summary.average_per_day:.1f}")
    console.print(f"  Data file: {escape(str(store.path))}", soft_wrap=True)
