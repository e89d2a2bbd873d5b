"""
Persistence Toggle Registry
===========================

Per-stream flag deciding whether received frames are written to disk.
A stream that was never toggled is treated as disabled.
"""

import logging

from frame_relay.store.table import ShardedTable


logger = logging.getLogger(__name__)


SAVE_ENABLED_MESSAGE = "Frames will be saved"
SAVE_DISABLED_MESSAGE = "Frames will not be saved"


class ToggleRegistry:
    """Thread-safe stream name -> save flag table."""

    def __init__(self, shards: int = 16) -> None:
        self._flags: ShardedTable[bool] = ShardedTable(shards=shards)

    def set(self, name: str, enabled: bool) -> str:
        """
        Record the save flag for a stream.

        Returns:
            Human-readable confirmation for the caller.
        """
        self._flags.set(name, bool(enabled))
        logger.info(f"Saving {'enabled' if enabled else 'disabled'} for stream '{name}'")
        return SAVE_ENABLED_MESSAGE if enabled else SAVE_DISABLED_MESSAGE

    def is_enabled(self, name: str) -> bool:
        return bool(self._flags.get(name, False))

    def enabled_streams(self) -> int:
        return sum(1 for name in self._flags.keys() if self.is_enabled(name))
