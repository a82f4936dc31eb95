"""CLI helpers exposed for other modules."""

from .helpers import NO_HISTORY_MESSAGE, configure_logging, console, get_store_or_exit

__all__ = ["NO_HISTORY_MESSAGE", "configure_logging", "console", "get_store_or_exit"]
