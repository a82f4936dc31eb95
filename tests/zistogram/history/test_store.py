"""Tests for HistoryStore, the line-oriented command log.

Covers append, streaming scan with malformed-line tolerance, retention
compaction (threshold, tail kept, atomic swap), the probabilistic trigger,
and clear.
"""

from __future__ import annotations

import os
import random
from pathlib import Path

import pytest
from filelock import FileLock

from zistogram.config import HistogramConfig
from zistogram.errors import MissingStoreError, StoreWriteError
from zistogram.history.codec import CommandRecord
from zistogram.history.store import HistoryStore


def make_record(n: int, command: str = "ls") -> CommandRecord:
    return CommandRecord.now(f"{command} {n}", timestamp=1_700_000_000 + n)


def small_store(path: Path, **overrides: object) -> HistoryStore:
    settings: dict[str, object] = {"store_path": path, "cleanup_threshold": 50, "max_entries": 20}
    settings.update(overrides)
    return HistoryStore(HistogramConfig(**settings))


# ---------------------------------------------------------------------------
# Append
# ---------------------------------------------------------------------------


class TestAppend:
    def test_creates_parent_directory(self, store: HistoryStore) -> None:
        assert not store.path.parent.exists()
        store.append(make_record(1))
        assert store.path.is_file()

    def test_appends_one_line_per_record(self, store: HistoryStore) -> None:
        store.append(make_record(1))
        store.append(make_record(2, "git"))

        lines = store.path.read_text(encoding="utf-8").splitlines()
        assert lines == ["1700000001|ls|ls 1", "1700000002|git|git 2"]

    def test_unwritable_path_raises_store_write_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        store = HistoryStore(HistogramConfig(store_path=blocker / "history.db"))

        with pytest.raises(StoreWriteError):
            store.append(make_record(1))

    def test_surrogate_escaped_bytes_written_verbatim(self, store: HistoryStore) -> None:
        store.append(CommandRecord.now(os.fsdecode(b"echo caf\xe9"), timestamp=3))

        assert store.path.read_bytes() == b"3|echo|echo caf\xe9\n"

    def test_unencodable_text_raises_store_write_error(self, store: HistoryStore) -> None:
        with pytest.raises(StoreWriteError):
            store.append(CommandRecord(3, "echo", "echo \ud800"))


# ---------------------------------------------------------------------------
# Scan
# ---------------------------------------------------------------------------


class TestScan:
    def test_missing_store_raises(self, store: HistoryStore) -> None:
        with pytest.raises(MissingStoreError):
            store.scan()

    def test_yields_records_in_file_order(self, store: HistoryStore) -> None:
        records = [make_record(3), make_record(1), make_record(2)]
        for record in records:
            store.append(record)

        assert list(store.scan()) == records

    def test_skips_malformed_lines(self, history_path: Path, store: HistoryStore) -> None:
        history_path.parent.mkdir(parents=True)
        history_path.write_text(
            "1700000000|git|git status\nthis line has no delimiters\n",
            encoding="utf-8",
        )

        assert list(store.scan()) == [CommandRecord(1700000000, "git", "git status")]

    def test_skips_truncated_trailing_line(self, history_path: Path, store: HistoryStore) -> None:
        history_path.parent.mkdir(parents=True)
        history_path.write_text("1|ls|ls\n2|gi", encoding="utf-8")

        assert [r.base_command for r in store.scan()] == ["ls"]

    def test_scan_is_restartable(self, store: HistoryStore) -> None:
        store.append(make_record(1))
        assert list(store.scan()) == list(store.scan())

    def test_scan_is_lazy(self, store: HistoryStore) -> None:
        store.append(make_record(1))
        iterator = store.scan()
        store.append(make_record(2))

        assert len(list(iterator)) == 2

    def test_tolerates_invalid_utf8(self, history_path: Path, store: HistoryStore) -> None:
        history_path.parent.mkdir(parents=True)
        history_path.write_bytes(b"1|ls|ls \xff\n2|git|git\n")

        assert [r.base_command for r in store.scan()] == ["ls", "git"]

    def test_multi_line_command_is_one_record(self, store: HistoryStore) -> None:
        record = CommandRecord.now("cat <<EOF\n1|rm|rm -rf /\nEOF", timestamp=1700000000)
        store.append(record)
        store.append(make_record(1))

        assert store.line_count() == 2
        assert list(store.scan()) == [record, make_record(1)]


# ---------------------------------------------------------------------------
# Compaction
# ---------------------------------------------------------------------------


class TestCompact:
    def test_keeps_last_entries_in_order(self, history_path: Path) -> None:
        store = small_store(history_path)
        records = [make_record(n) for n in range(100)]
        for record in records:
            store.append(record)

        result = store.compact()

        assert result.performed
        assert result.lines_before == 100
        assert result.lines_after == 20
        assert result.discarded == 80
        assert list(store.scan()) == records[-20:]

    def test_under_threshold_is_noop(self, history_path: Path) -> None:
        store = small_store(history_path)
        for n in range(10):
            store.append(make_record(n))
        before = history_path.read_bytes()

        result = store.compact()

        assert not result.performed
        assert result.lines_before == result.lines_after == 10
        assert history_path.read_bytes() == before

    def test_exactly_at_threshold_is_noop(self, history_path: Path) -> None:
        store = small_store(history_path)
        for n in range(50):
            store.append(make_record(n))

        assert not store.compact().performed
        assert store.line_count() == 50

    def test_explicit_max_entries_overrides_config(self, history_path: Path) -> None:
        store = small_store(history_path)
        for n in range(60):
            store.append(make_record(n))

        store.compact(max_entries=5)

        assert [r.timestamp for r in store.scan()] == [1_700_000_000 + n for n in range(55, 60)]

    def test_malformed_lines_count_toward_retention(self, history_path: Path) -> None:
        store = small_store(history_path, cleanup_threshold=3, max_entries=2)
        history_path.parent.mkdir(parents=True)
        history_path.write_text("1|a|a\n2|b|b\nbroken\n4|d|d\n", encoding="utf-8")

        store.compact()

        assert history_path.read_text(encoding="utf-8") == "broken\n4|d|d\n"

    def test_missing_store_is_noop(self, store: HistoryStore) -> None:
        result = store.compact()
        assert not result.performed
        assert result.lines_before == 0

    def test_leaves_no_temp_files(self, history_path: Path) -> None:
        store = small_store(history_path)
        for n in range(60):
            store.append(make_record(n))

        store.compact()

        leftovers = [p.name for p in history_path.parent.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    def test_failed_replace_keeps_original(
        self, history_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        store = small_store(history_path)
        for n in range(60):
            store.append(make_record(n))
        before = history_path.read_bytes()

        def broken_replace(src: str, dst: object) -> None:
            raise OSError("disk full")

        monkeypatch.setattr("zistogram.history.store.os.replace", broken_replace)

        with pytest.raises(StoreWriteError):
            store.compact()

        assert history_path.read_bytes() == before
        assert not [p for p in history_path.parent.iterdir() if p.name.endswith(".tmp")]

    def test_skipped_while_lock_is_held(self, history_path: Path) -> None:
        store = small_store(history_path)
        for n in range(60):
            store.append(make_record(n))

        with FileLock(history_path.with_name(history_path.name + ".lock")):
            result = store.compact()

        assert not result.performed
        assert store.line_count() == 60

    def test_lock_released_after_compaction(self, history_path: Path) -> None:
        store = small_store(history_path)
        for n in range(60):
            store.append(make_record(n))
        store.compact()

        with FileLock(history_path.with_name(history_path.name + ".lock"), timeout=0):
            pass


class TestMaybeCompact:
    def test_probability_one_always_checks(self, history_path: Path) -> None:
        store = small_store(history_path, compaction_probability=1.0)
        for n in range(60):
            store.append(make_record(n))

        result = store.maybe_compact()

        assert result is not None
        assert result.performed
        assert store.line_count() == 20

    def test_probability_zero_never_checks(self, history_path: Path) -> None:
        store = small_store(history_path, compaction_probability=0.0)
        for n in range(60):
            store.append(make_record(n))

        assert store.maybe_compact() is None
        assert store.line_count() == 60

    def test_uses_supplied_random_source(self, history_path: Path) -> None:
        store = small_store(history_path, compaction_probability=0.5)

        class FixedRandom(random.Random):
            def __init__(self, value: float) -> None:
                super().__init__()
                self._value = value

            def random(self) -> float:
                return self._value

        assert store.maybe_compact(FixedRandom(0.9)) is None
        assert store.maybe_compact(FixedRandom(0.1)) is not None


# ---------------------------------------------------------------------------
# Clear / line count
# ---------------------------------------------------------------------------


class TestClear:
    def test_truncates_to_empty(self, store: HistoryStore) -> None:
        store.append(make_record(1))

        store.clear()

        assert store.exists()
        assert store.path.read_text(encoding="utf-8") == ""
        assert list(store.scan()) == []

    def test_missing_store_raises(self, store: HistoryStore) -> None:
        with pytest.raises(MissingStoreError):
            store.clear()


def test_line_count(store: HistoryStore) -> None:
    assert store.line_count() == 0
    for n in range(7):
        store.append(make_record(n))
    assert store.line_count() == 7


@pytest.mark.skipif(os.name == "nt", reason="POSIX append semantics")
def test_interleaved_appends_from_two_handles(store: HistoryStore) -> None:
    """Two stores on one file (two shells) interleave whole lines."""
    other = HistoryStore(store.config)
    for n in range(50):
        store.append(make_record(n, "ls"))
        other.append(make_record(n, "git"))

    records = list(store.scan())
    assert len(records) == 100
    assert {r.base_command for r in records} == {"ls", "git"}
