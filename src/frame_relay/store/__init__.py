"""
Store Module
============

Process-lifetime, in-memory state shared by all connections.

    - FrameStore: latest frame per stream (last-write-wins)
    - ToggleRegistry: per-stream "save to disk" flag
    - SequenceCounter: next disk-write index per stream

Each table is guarded independently; none of them is persisted.

Example:
    from frame_relay.store import FrameStore, ToggleRegistry

    store = FrameStore()
    toggles = ToggleRegistry()

    store.put("cam1", jpeg_bytes)
    if toggles.is_enabled("cam1"):
        ...
"""

from frame_relay.store.table import ShardedTable
from frame_relay.store.frames import FrameStore
from frame_relay.store.toggles import (
    SAVE_DISABLED_MESSAGE,
    SAVE_ENABLED_MESSAGE,
    ToggleRegistry,
)
from frame_relay.store.sequence import SequenceCounter, SequenceSlot


__all__ = [
    "ShardedTable",
    "FrameStore",
    "ToggleRegistry",
    "SAVE_ENABLED_MESSAGE",
    "SAVE_DISABLED_MESSAGE",
    "SequenceCounter",
    "SequenceSlot",
]
