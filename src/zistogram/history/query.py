"""Aggregation queries over scanned command records.

All functions take any iterable of :class:`CommandRecord` (normally
``HistoryStore.scan()``), consume it once, and never touch the store.
"""

from __future__ import annotations

import time
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from zistogram.history.codec import CommandRecord

SECONDS_PER_DAY = 86400

# Fixed-length month and year; kept for compatibility with existing reports.
PERIOD_SECONDS: dict[str, int] = {
    "hour": 3600,
    "day": SECONDS_PER_DAY,
    "week": 604800,
    "month": 2592000,
    "year": 31536000,
    "all": 0,
}

PERIOD_ALIASES: dict[str, str] = {
    "1h": "hour",
    "1d": "day",
    "1w": "week",
    "1m": "month",
    "1y": "year",
}

TIMELINE_FORMATS: dict[str, str] = {
    "hour": "%Y-%m-%d %H:00",
    "day": "%Y-%m-%d",
    "week": "%Y-W%U",
    "month": "%Y-%m",
}

DEFAULT_GRANULARITY = "day"


@dataclass(frozen=True)
class CommandCount:
    """A command (base or full) and how often it was seen."""

    command: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"command": self.command, "count": self.count}


@dataclass(frozen=True)
class TimelineBucket:
    """Number of uses of a command within one formatted time bucket."""

    label: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"bucket": self.label, "count": self.count}


@dataclass(frozen=True)
class CommandDetail:
    """Breakdown of one base command into its full command lines."""

    base_command: str
    total: int
    variants: list[CommandCount] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_command": self.base_command,
            "total": self.total,
            "variants": [v.to_dict() for v in self.variants],
        }


@dataclass(frozen=True)
class HistoryStats:
    """Summary statistics over the whole log."""

    total_records: int
    unique_base_commands: int
    days_tracked: float
    average_per_day: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_records": self.total_records,
            "unique_base_commands": self.unique_base_commands,
            "days_tracked": round(self.days_tracked, 6),
            "average_per_day": round(self.average_per_day, 6),
        }


def normalize_period(period: str) -> str:
    """Map a period name or alias to its canonical name (``all`` if unknown)."""
    key = period.strip().lower()
    key = PERIOD_ALIASES.get(key, key)
    return key if key in PERIOD_SECONDS else "all"


def resolve_period(period: str, now: int | None = None) -> int:
    """Return the ``since`` timestamp for a named period.

    ``all`` and unrecognized names mean all time (``0``).
    """
    window = PERIOD_SECONDS[normalize_period(period)]
    if window == 0:
        return 0
    current = int(time.time()) if now is None else now
    return current - window


def _ranked(counts: Counter[str], limit: int | None) -> list[CommandCount]:
    # sorted() is stable, so equal counts keep first-encounter order.
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    if limit is not None:
        ranked = ranked[: max(limit, 0)]
    return [CommandCount(command=cmd, count=n) for cmd, n in ranked]


def frequency(
    records: Iterable[CommandRecord],
    since: int = 0,
    limit: int | None = 20,
) -> list[CommandCount]:
    """Rank base commands used at or after *since*.

    Args:
        records: Records to aggregate.
        since: Epoch seconds lower bound; ``0`` means all time.
        limit: Maximum number of entries returned; ``None`` for all.

    Returns:
        Base commands ordered by count descending, ties in the order
        they were first seen.
    """
    counts: Counter[str] = Counter()
    for record in records:
        if record.timestamp >= since:
            counts[record.base_command] += 1
    return _ranked(counts, limit)


def bucket_label(timestamp: int, granularity: str = DEFAULT_GRANULARITY) -> str:
    """Format *timestamp* (local time) into its timeline bucket label."""
    fmt = TIMELINE_FORMATS.get(granularity, TIMELINE_FORMATS[DEFAULT_GRANULARITY])
    return datetime.fromtimestamp(timestamp).strftime(fmt)


def timeline(
    records: Iterable[CommandRecord],
    base_command: str,
    granularity: str = DEFAULT_GRANULARITY,
) -> list[TimelineBucket]:
    """Count uses of *base_command* per time bucket.

    Unknown granularities fall back to ``day``. Buckets come back sorted by
    label, which is chronological for every supported format.
    """
    counts: Counter[str] = Counter()
    for record in records:
        if record.base_command == base_command:
            counts[bucket_label(record.timestamp, granularity)] += 1
    return [TimelineBucket(label=label, count=counts[label]) for label in sorted(counts)]


def detail(
    records: Iterable[CommandRecord],
    base_command: str,
    limit: int | None = 10,
) -> CommandDetail:
    """Break *base_command* down into its distinct full command lines."""
    counts: Counter[str] = Counter()
    for record in records:
        if record.base_command == base_command:
            counts[record.full_command] += 1
    return CommandDetail(
        base_command=base_command,
        total=sum(counts.values()),
        variants=_ranked(counts, limit),
    )


def stats(records: Iterable[CommandRecord]) -> HistoryStats:
    """Summarize the log.

    The tracked span is measured between the first and last records in
    file order, not between the smallest and largest timestamps. With
    several shells writing out of order the span can be skewed or even
    negative; in that case ``average_per_day`` is reported as ``0``.
    """
    total = 0
    commands: set[str] = set()
    first_time: int | None = None
    last_time = 0

    for record in records:
        total += 1
        commands.add(record.base_command)
        if first_time is None:
            first_time = record.timestamp
        last_time = record.timestamp

    days = 0.0 if first_time is None else (last_time - first_time) / SECONDS_PER_DAY
    average = total / days if days > 0 else 0.0

    return HistoryStats(
        total_records=total,
        unique_base_commands=len(commands),
        days_tracked=days,
        average_per_day=average,
    )
