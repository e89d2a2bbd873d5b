"""
Frame Store
===========

In-memory "latest frame" per stream name.

Producers overwrite, consumers read. There is no history: each put fully
replaces the previous frame for that name (last-write-wins). A stream comes
into existence on its first put and is never removed.

Frames are stored as ``bytes``, which are immutable, so a value returned by
``get`` is already an independent snapshot that later puts cannot touch.
"""

import logging
from typing import List, Optional, Union

from frame_relay.store.table import ShardedTable


logger = logging.getLogger(__name__)


class FrameStore:
    """
    Thread-safe latest-frame table.

    Example:
        store = FrameStore()
        store.put("cam1", jpeg_bytes)
        frame = store.get("cam1")   # bytes or None
    """

    def __init__(self, shards: int = 16) -> None:
        self._frames: ShardedTable[bytes] = ShardedTable(shards=shards)

    def put(self, name: str, frame: Union[bytes, bytearray, memoryview]) -> None:
        """
        Replace the latest frame for a stream.

        Args:
            name: Stream name
            frame: Raw frame bytes. Mutable buffers are copied.
        """
        created = self._frames.set(name, bytes(frame))
        if created:
            logger.info(f"New stream '{name}' ({len(frame)} bytes first frame)")

    def get(self, name: str) -> Optional[bytes]:
        """
        Get the latest frame for a stream.

        Returns:
            Frame bytes, or None if the stream was never written.
        """
        return self._frames.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._frames

    def __len__(self) -> int:
        return len(self._frames)

    def streams(self) -> List[str]:
        """Names of all streams that have received a frame."""
        return sorted(self._frames.keys())

    @property
    def shard_count(self) -> int:
        return self._frames.shard_count
