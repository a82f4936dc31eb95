"""Command history package.

Provides the line-oriented record log, the aggregation queries built on
top of it, CSV export, and the capture entry point used by shell hooks.
"""

from zistogram.history.codec import CommandRecord, decode, derive_base_command, encode
from zistogram.history.store import CompactionResult, HistoryStore
from zistogram.history.query import (
    CommandCount,
    CommandDetail,
    HistoryStats,
    TimelineBucket,
    detail,
    frequency,
    resolve_period,
    stats,
    timeline,
)
from zistogram.history.export import export_csv
from zistogram.history.capture import capture

__all__ = [
    "CommandRecord",
    "decode",
    "derive_base_command",
    "encode",
    "CompactionResult",
    "HistoryStore",
    "CommandCount",
    "CommandDetail",
    "HistoryStats",
    "TimelineBucket",
    "detail",
    "frequency",
    "resolve_period",
    "stats",
    "timeline",
    "export_csv",
    "capture",
]
