"""CSV-style export of the command log.

Commas inside fields are escaped as ``\\,`` rather than quoted. Existing
exports use this form, so consumers must read backslash-comma, not
RFC 4180 quoting. Line breaks inside a field become ``\\n`` so each
record stays on one row.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from zistogram.errors import StoreWriteError
from zistogram.history.codec import CommandRecord

logger = logging.getLogger(__name__)

CSV_HEADER = "timestamp,command,full_command"
DEFAULT_EXPORT_FILE = "command_histogram.csv"


def escape_field(value: str) -> str:
    return value.replace(",", "\\,").replace("\n", "\\n").replace("\r", "\\r")


def format_row(record: CommandRecord) -> str:
    return f"{record.timestamp},{escape_field(record.base_command)},{escape_field(record.full_command)}"


def export_csv(records: Iterable[CommandRecord], output_path: Path) -> int:
    """Write *records* to *output_path* and return the number of rows.

    Raises:
        StoreWriteError: If the output file cannot be written.
    """
    rows = 0
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(CSV_HEADER + "\n")
            for record in records:
                f.write(format_row(record) + "\n")
                rows += 1
    except OSError as e:
        raise StoreWriteError(f"Cannot write export to {output_path}: {e}") from e

    logger.debug("Exported %d record(s) to %s", rows, output_path)
    return rows
