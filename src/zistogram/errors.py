"""Error kinds raised by the command history store and its readers."""

from __future__ import annotations

from pathlib import Path


class HistoryError(Exception):
    """Base class for command history failures."""


class MissingStoreError(HistoryError):
    """Raised when a read, export or clear finds no store file."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"No command history found at {path}")
        self.path = path


class MalformedRecordError(HistoryError, ValueError):
    """Raised when a store line cannot be decoded into a record."""


class StoreWriteError(HistoryError):
    """Raised when the store (or an export target) cannot be written."""


class ConfigError(HistoryError):
    """Raised when the histogram configuration is invalid."""
