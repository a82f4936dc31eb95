"""Histogram configuration resolved once per process.

Resolution order (highest first):

1. ``COMMAND_HISTOGRAM_*`` environment variables
2. Optional YAML file: ``$ZISTOGRAM_CONFIG`` or
   ``<user config dir>/zistogram/config.yaml``
3. Built-in defaults
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

from platformdirs import user_config_dir
from ruamel.yaml import YAML

from zistogram.errors import ConfigError

DEFAULT_STORE_PATH = Path("~/.zsh_command_history.db")
DEFAULT_MAX_ENTRIES = 10000
DEFAULT_CLEANUP_THRESHOLD = 50000
DEFAULT_COMPACTION_PROBABILITY = 0.01

ENV_STORE_PATH = "COMMAND_HISTOGRAM_FILE"
ENV_MAX_ENTRIES = "COMMAND_HISTOGRAM_MAX_ENTRIES"
ENV_CLEANUP_THRESHOLD = "COMMAND_HISTOGRAM_CLEANUP_THRESHOLD"
ENV_COMPACTION_PROBABILITY = "COMMAND_HISTOGRAM_COMPACT_PROBABILITY"
ENV_CONFIG_FILE = "ZISTOGRAM_CONFIG"

_ENV_KEYS = {
    "store_path": ENV_STORE_PATH,
    "max_entries": ENV_MAX_ENTRIES,
    "cleanup_threshold": ENV_CLEANUP_THRESHOLD,
    "compaction_probability": ENV_COMPACTION_PROBABILITY,
}


@dataclass(frozen=True, slots=True)
class HistogramConfig:
    """Settings consumed by :class:`~zistogram.history.store.HistoryStore`.

    Attributes:
        store_path: Location of the record log.
        max_entries: Records retained after a compaction.
        cleanup_threshold: Line count above which compaction rewrites the log.
        compaction_probability: Chance that a capture checks the threshold.
            ``1.0`` turns the soft bound into a strict one.
    """

    store_path: Path = DEFAULT_STORE_PATH
    max_entries: int = DEFAULT_MAX_ENTRIES
    cleanup_threshold: int = DEFAULT_CLEANUP_THRESHOLD
    compaction_probability: float = DEFAULT_COMPACTION_PROBABILITY

    def __post_init__(self) -> None:
        object.__setattr__(self, "store_path", Path(self.store_path).expanduser())
        if self.max_entries < 1:
            raise ConfigError(f"max_entries must be >= 1, got {self.max_entries}")
        if self.cleanup_threshold < 1:
            raise ConfigError(f"cleanup_threshold must be >= 1, got {self.cleanup_threshold}")
        if not 0.0 <= self.compaction_probability <= 1.0:
            raise ConfigError(
                f"compaction_probability must be between 0 and 1, got {self.compaction_probability}"
            )

    def to_dict(self) -> dict[str, object]:
        return {
            "store_path": str(self.store_path),
            "max_entries": self.max_entries,
            "cleanup_threshold": self.cleanup_threshold,
            "compaction_probability": self.compaction_probability,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object] | None) -> "HistogramConfig":
        """Build a config from loosely typed values (YAML or environment)."""
        if not data:
            return cls()
        return cls()._with_overrides(data)

    def _with_overrides(self, data: Mapping[str, object]) -> "HistogramConfig":
        changes: dict[str, object] = {}
        if data.get("store_path") not in (None, ""):
            changes["store_path"] = Path(str(data["store_path"]))
        if data.get("max_entries") not in (None, ""):
            changes["max_entries"] = _as_int("max_entries", data["max_entries"])
        if data.get("cleanup_threshold") not in (None, ""):
            changes["cleanup_threshold"] = _as_int("cleanup_threshold", data["cleanup_threshold"])
        if data.get("compaction_probability") not in (None, ""):
            changes["compaction_probability"] = _as_float(
                "compaction_probability", data["compaction_probability"]
            )
        return replace(self, **changes) if changes else self


def _as_int(name: str, value: object) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc


def _as_float(name: str, value: object) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be a number, got {value!r}")
    try:
        return float(str(value).strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc


def config_file_path(environ: Mapping[str, str] | None = None) -> Path:
    """Return the YAML config file location (it may not exist)."""
    env = os.environ if environ is None else environ
    if env_path := env.get(ENV_CONFIG_FILE):
        return Path(env_path).expanduser()
    return Path(user_config_dir("zistogram")) / "config.yaml"


def _load_config_file(path: Path) -> dict[str, object]:
    if not path.is_file():
        return {}

    yaml = YAML(typ="safe")
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.load(handle) or {}
    except Exception as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigError(f"Expected a mapping in {path}, got {type(payload).__name__}")
    return payload


def load_config(environ: Mapping[str, str] | None = None) -> HistogramConfig:
    """Resolve the process configuration from file and environment.

    Raises:
        ConfigError: If any value is invalid or the config file is malformed.
    """
    env = os.environ if environ is None else environ
    file_values = _load_config_file(config_file_path(env))
    env_values = {key: env.get(var) for key, var in _ENV_KEYS.items()}
    return HistogramConfig.from_dict(file_values)._with_overrides(env_values)
