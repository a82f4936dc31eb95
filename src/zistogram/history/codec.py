"""Line codec for command history records.

Each record is one line of the store file::

    timestamp|base_command|full_command

The delimiter is not escaped inside ``full_command``; decoding splits on the
first two delimiters only, so piped command lines survive a round trip.

Line breaks inside ``full_command`` are written as ``\\n`` / ``\\r`` and a
literal backslash as ``\\\\``, so a multi-line command stays on one line.
Any other backslash sequence is read back unchanged.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass

from zistogram.errors import MalformedRecordError

DELIMITER = "|"

# The base command stops at whitespace or at the first pipe/redirect.
_BASE_COMMAND_STOP = re.compile(r"[\s|<>]")

_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r"}
_UNESCAPES = {"\\": "\\", "n": "\n", "r": "\r"}
_NEEDS_ESCAPE = re.compile(r"[\\\n\r]")
_ESCAPE_SEQUENCE = re.compile(r"\\([\\nr])")


def escape_full_command(text: str) -> str:
    return _NEEDS_ESCAPE.sub(lambda m: _ESCAPES[m.group()], text)


def unescape_full_command(text: str) -> str:
    return _ESCAPE_SEQUENCE.sub(lambda m: _UNESCAPES[m.group(1)], text)


def derive_base_command(command_line: str) -> str:
    """Return the aggregation key for *command_line*.

    Leading whitespace is ignored. Returns an empty string when the line has
    no usable first token (e.g. blank, or starting with ``|``).
    """
    stripped = command_line.lstrip()
    return _BASE_COMMAND_STOP.split(stripped, maxsplit=1)[0]


@dataclass(frozen=True)
class CommandRecord:
    """One captured command invocation."""

    timestamp: int
    base_command: str
    full_command: str

    @classmethod
    def now(cls, command_line: str, *, timestamp: int | None = None) -> "CommandRecord":
        """Build a record for *command_line* stamped with the current time."""
        return cls(
            timestamp=int(time.time()) if timestamp is None else int(timestamp),
            base_command=derive_base_command(command_line),
            full_command=command_line,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "timestamp": self.timestamp,
            "base_command": self.base_command,
            "full_command": self.full_command,
        }


def encode(record: CommandRecord) -> str:
    """Serialize *record* to a single newline-terminated store line."""
    full_command = escape_full_command(record.full_command)
    return f"{record.timestamp}{DELIMITER}{record.base_command}{DELIMITER}{full_command}\n"


def decode(line: str) -> CommandRecord:
    """Parse one store line.

    Raises:
        MalformedRecordError: If the line has fewer than two delimiters, a
            non-integer timestamp, or an empty base command.
    """
    text = line.rstrip("\r\n")
    parts = text.split(DELIMITER, 2)
    if len(parts) < 3:
        raise MalformedRecordError(f"Expected 2 delimiters, found {len(parts) - 1}")

    raw_timestamp, base_command, full_command = parts
    try:
        timestamp = int(raw_timestamp)
    except ValueError as exc:
        raise MalformedRecordError(f"Invalid timestamp: {raw_timestamp[:40]!r}") from exc

    if not base_command:
        raise MalformedRecordError("Empty base command")

    return CommandRecord(
        timestamp=timestamp,
        base_command=base_command,
        full_command=unescape_full_command(full_command),
    )
