"""Record shell commands into the history log.

Provides a fire-and-forget ``capture()`` that:
- Derives the base command and stamps the current time
- Appends one record to the configured store
- Occasionally triggers compaction (soft-bound retention)
- Swallows store failures so the user's shell is never disrupted
"""

from __future__ import annotations

import logging
import random

from zistogram.config import HistogramConfig, load_config
from zistogram.errors import HistoryError
from zistogram.history.codec import CommandRecord
from zistogram.history.store import HistoryStore

logger = logging.getLogger(__name__)


def capture(
    command_line: str,
    config: HistogramConfig | None = None,
    *,
    now: int | None = None,
    rng: random.Random | None = None,
) -> CommandRecord | None:
    """Append *command_line* to the history log.

    This function is **fire-and-forget**: any storage or configuration
    error is logged as a warning and ``None`` is returned.

    Deciding which commands are private (e.g. a leading space) is up to
    the caller; everything with a non-empty base command is recorded.

    Args:
        command_line: The command exactly as the shell ran it.
        config: Resolved configuration; loaded from the environment if
            omitted.
        now: Override for the capture timestamp (epoch seconds).
        rng: Random source for the compaction check.

    Returns:
        The appended record, or ``None`` when nothing was written.
    """
    record = CommandRecord.now(command_line, timestamp=now)
    if not record.base_command:
        return None

    try:
        store = HistoryStore(config or load_config())
        store.append(record)
    except (HistoryError, OSError) as e:
        logger.warning("Command capture failed for %r: %s", record.base_command, e)
        return None

    try:
        store.maybe_compact(rng)
    except (HistoryError, OSError) as e:
        logger.warning("History compaction failed for %s: %s", store.path, e)

    return record
