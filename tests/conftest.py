from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable

import pytest

from zistogram.config import HistogramConfig
from zistogram.history.store import HistoryStore

_HISTOGRAM_ENV = (
    "COMMAND_HISTOGRAM_FILE",
    "COMMAND_HISTOGRAM_MAX_ENTRIES",
    "COMMAND_HISTOGRAM_CLEANUP_THRESHOLD",
    "COMMAND_HISTOGRAM_COMPACT_PROBABILITY",
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's real history and config out of every test."""
    for name in _HISTOGRAM_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ZISTOGRAM_CONFIG", str(tmp_path / "no-such-config.yaml"))


@pytest.fixture()
def history_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "history.db"


@pytest.fixture()
def histogram_config(history_path: Path) -> HistogramConfig:
    return HistogramConfig(store_path=history_path)


@pytest.fixture()
def store(histogram_config: HistogramConfig) -> HistoryStore:
    return HistoryStore(histogram_config)


@pytest.fixture()
def seed_store(store: HistoryStore) -> Callable[[Iterable], HistoryStore]:
    """Append the given records to the test store and return it."""

    def _seed(records: Iterable) -> HistoryStore:
        for record in records:
            store.append(record)
        return store

    return _seed
