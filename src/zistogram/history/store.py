"""HistoryStore: append-only, line-oriented command log.

Provides file-backed persistence for :class:`CommandRecord` objects using
one ``timestamp|base_command|full_command`` line per record. Supports:

- Single-write appends (safe to interleave across shell sessions)
- Stream-parsed reads (line-by-line iteration, restartable)
- Malformed line tolerance (corrupt or truncated lines skipped)
- Retention-bounded compaction via temp file + ``os.replace``
- Automatic parent directory creation

Compaction can drop an append that lands between the tail copy and the
rename. That window is accepted; no lock is taken on the append path.
"""

from __future__ import annotations

import logging
import os
import random
import tempfile
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from filelock import FileLock, Timeout

from zistogram.config import HistogramConfig
from zistogram.errors import MalformedRecordError, MissingStoreError, StoreWriteError
from zistogram.history.codec import CommandRecord, decode, encode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompactionResult:
    """Outcome of a :meth:`HistoryStore.compact` call."""

    performed: bool
    lines_before: int
    lines_after: int

    @property
    def discarded(self) -> int:
        return self.lines_before - self.lines_after


class HistoryStore:
    """Line-oriented command history log.

    Args:
        config: Resolved histogram configuration. The store never reads
            the environment itself.
    """

    def __init__(self, config: HistogramConfig) -> None:
        self._config = config
        self._file_path = config.store_path

    @property
    def path(self) -> Path:
        return self._file_path

    @property
    def config(self) -> HistogramConfig:
        return self._config

    def exists(self) -> bool:
        return self._file_path.is_file()

    def append(self, record: CommandRecord) -> None:
        """Append *record* as one line.

        The whole line goes out in a single ``write`` so concurrent
        appenders interleave at line granularity. Undecodable bytes that
        arrived as surrogate escapes (see :func:`os.fsdecode`) are written
        back as the original bytes.

        Raises:
            StoreWriteError: If the store cannot be written.
        """
        line = encode(record)
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._file_path, "a", encoding="utf-8", errors="surrogateescape") as f:
                f.write(line)
        except (OSError, UnicodeError) as e:
            raise StoreWriteError(f"Cannot append to {self._file_path}: {e}") from e

    def scan(self) -> Iterator[CommandRecord]:
        """Yield records in file order, skipping malformed lines.

        Each call re-reads the file from the start. Lines that fail to
        decode (including a line truncated by a concurrent writer) are
        skipped and only reported at DEBUG level.

        Raises:
            MissingStoreError: If the store file does not exist.
        """
        if not self.exists():
            raise MissingStoreError(self._file_path)
        return self._iter_records()

    def _iter_records(self) -> Iterator[CommandRecord]:
        skipped = 0
        with open(self._file_path, "r", encoding="utf-8", errors="replace") as f:
            for line_number, line in enumerate(f, start=1):
                try:
                    yield decode(line)
                except MalformedRecordError as e:
                    skipped += 1
                    logger.debug("Skipping malformed line %d: %s", line_number, e)

        if skipped:
            logger.debug("Skipped %d malformed line(s) in %s", skipped, self._file_path)

    def line_count(self) -> int:
        """Return the number of lines in the store (0 when missing)."""
        if not self.exists():
            return 0
        with open(self._file_path, "rb") as f:
            return sum(1 for _ in f)

    def compact(self, max_entries: int | None = None) -> CompactionResult:
        """Keep only the newest *max_entries* lines once over the threshold.

        Does nothing unless the line count exceeds
        ``config.cleanup_threshold``. The tail is written to a temporary
        file in the store's directory and swapped in with ``os.replace``,
        so readers see either the old log or the new one. Only one process
        compacts at a time; a concurrent call returns without work.

        Raises:
            StoreWriteError: If the rewrite fails. The original log is left
                untouched.
        """
        keep = self._config.max_entries if max_entries is None else max_entries
        lines_before = self.line_count()
        if lines_before <= self._config.cleanup_threshold:
            return CompactionResult(False, lines_before, lines_before)

        lock = FileLock(self._file_path.with_name(self._file_path.name + ".lock"), timeout=0)
        try:
            with lock:
                return self._rewrite_tail(keep)
        except Timeout:
            logger.debug("Compaction already running for %s", self._file_path)
            return CompactionResult(False, lines_before, lines_before)
        except OSError as e:
            raise StoreWriteError(f"Cannot compact {self._file_path}: {e}") from e

    def _rewrite_tail(self, keep: int) -> CompactionResult:
        with open(self._file_path, "rb") as f:
            lines_before = 0
            tail: deque[bytes] = deque(maxlen=keep)
            for raw_line in f:
                lines_before += 1
                tail.append(raw_line)

        fd, tmp_path = tempfile.mkstemp(
            dir=self._file_path.parent,
            prefix=f".{self._file_path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.writelines(tail)
            os.replace(tmp_path, self._file_path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

        logger.info(
            "Compacted %s: %d -> %d lines", self._file_path, lines_before, len(tail)
        )
        return CompactionResult(True, lines_before, len(tail))

    def maybe_compact(self, rng: random.Random | None = None) -> CompactionResult | None:
        """Run :meth:`compact` with ``config.compaction_probability``.

        This is the soft-bound maintenance trigger: with the default 1-in-100
        chance, the log may run past the threshold by roughly a hundred
        appends before a check fires. Returns ``None`` when no check ran.
        """
        roll = (rng or random).random()
        if roll >= self._config.compaction_probability:
            return None
        return self.compact()

    def clear(self) -> None:
        """Truncate the store to empty. Irreversible.

        Raises:
            MissingStoreError: If there is no store to clear.
            StoreWriteError: If the store cannot be truncated.
        """
        if not self.exists():
            raise MissingStoreError(self._file_path)
        try:
            with open(self._file_path, "w", encoding="utf-8"):
                pass
        except OSError as e:
            raise StoreWriteError(f"Cannot clear {self._file_path}: {e}") from e
