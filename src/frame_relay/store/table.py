"""
Sharded Table
=============

Thread-safe mapping keyed by stream name.

The table is split into a fixed number of shards, each a plain dict guarded
by its own lock. Two stream names only ever contend if they hash into the
same shard, and then only for the duration of a single dict operation.

Design Rules:
    - No I/O or suspension while a shard lock is held
    - Values are stored as given; callers store immutable values
    - Entries are never deleted (streams live for the process lifetime)
"""

import threading
from typing import Callable, Dict, Generic, List, Optional, Tuple, TypeVar


V = TypeVar("V")


class ShardedTable(Generic[V]):
    """
    Mapping of stream name -> value, sharded by key hash.

    Example:
        table: ShardedTable[bytes] = ShardedTable(shards=16)
        table.set("cam1", b"...")
        table.get("cam1")
    """

    def __init__(self, shards: int = 16) -> None:
        """
        Initialize an empty table.

        Args:
            shards: Number of independently locked shards. Must be >= 1.
        """
        if shards < 1:
            raise ValueError("shards must be >= 1")

        self._shards: List[Tuple[threading.Lock, Dict[str, V]]] = [
            (threading.Lock(), {}) for _ in range(shards)
        ]

    @property
    def shard_count(self) -> int:
        """Number of shards."""
        return len(self._shards)

    def _shard(self, key: str) -> Tuple[threading.Lock, Dict[str, V]]:
        return self._shards[hash(key) % len(self._shards)]

    def get(self, key: str, default: Optional[V] = None) -> Optional[V]:
        lock, data = self._shard(key)
        with lock:
            return data.get(key, default)

    def set(self, key: str, value: V) -> bool:
        """
        Store a value, replacing any previous one.

        Returns:
            True if the key was not present before.
        """
        lock, data = self._shard(key)
        with lock:
            created = key not in data
            data[key] = value
            return created

    def setdefault(self, key: str, factory: Callable[[], V]) -> V:
        """Return the value for key, creating it with factory() if missing."""
        lock, data = self._shard(key)
        with lock:
            value = data.get(key)
            if value is None:
                value = factory()
                data[key] = value
            return value

    def keys(self) -> List[str]:
        """Snapshot of all keys, shard by shard."""
        result: List[str] = []
        for lock, data in self._shards:
            with lock:
                result.extend(data.keys())
        return result

    def __contains__(self, key: str) -> bool:
        lock, data = self._shard(key)
        with lock:
            return key in data

    def __len__(self) -> int:
        total = 0
        for lock, data in self._shards:
            with lock:
                total += len(data)
        return total
