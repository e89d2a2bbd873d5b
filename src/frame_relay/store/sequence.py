"""
Sequence Counter
================

Next disk-write index per stream name.

Every stream has its own lock. A writer reserves the current index, holds the
lock while the frame goes to disk, and only advances the counter if it
commits. Two writers for the same name therefore never share an index, and a
failed write leaves the index free for the next attempt. Writers for
different names never wait on each other.

Example:
    counter = SequenceCounter()
    with counter.reserve("cam1") as slot:
        write_file(slot.index)
        slot.commit()
"""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from frame_relay.store.table import ShardedTable


logger = logging.getLogger(__name__)


class SequenceSlot:
    """An index reserved for one write attempt."""

    __slots__ = ("name", "index", "committed")

    def __init__(self, name: str, index: int) -> None:
        self.name = name
        self.index = index
        self.committed = False

    def commit(self) -> None:
        """Mark the write as done; the counter advances on release."""
        self.committed = True


class _Entry:
    __slots__ = ("lock", "next_index", "seeded")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.next_index = 0
        self.seeded = False


class SequenceCounter:
    """
    Thread-safe stream name -> next index table with per-name locking.

    Attributes:
        seed: Optional callable giving the starting index for a name the first
            time it is reserved. Without it every stream starts at 0.
    """

    def __init__(
        self,
        shards: int = 16,
        seed: Optional[Callable[[str], int]] = None,
    ) -> None:
        self._entries: ShardedTable[_Entry] = ShardedTable(shards=shards)
        self.seed = seed

    @contextmanager
    def reserve(self, name: str) -> Iterator[SequenceSlot]:
        """
        Hold the counter for a name and yield its current index.

        The counter is incremented by exactly one on exit if, and only if,
        the slot was committed and no exception escaped the block.
        """
        entry = self._entries.setdefault(name, _Entry)
        with entry.lock:
            if not entry.seeded:
                if self.seed is not None:
                    entry.next_index = self.seed(name)
                    logger.info(f"Stream '{name}' resumes at index {entry.next_index}")
                entry.seeded = True

            slot = SequenceSlot(name, entry.next_index)
            yield slot

            if slot.committed:
                entry.next_index = slot.index + 1

    def peek(self, name: str) -> Optional[int]:
        """
        Current next index for a name, or None if it was never reserved.

        Waits for any write in progress on that name.
        """
        entry = self._entries.get(name)
        if entry is None:
            return None
        with entry.lock:
            return entry.next_index
