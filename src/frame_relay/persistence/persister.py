"""
Frame Persister
===============

Writes frames of save-enabled streams to disk.

File Layout:
    <base>/<name>/<name>_<index>.jpeg

    index is the stream's sequence number, zero-padded to 7 digits
    (cam1_0000003.jpeg). Indices past 9999999 simply use more digits.

Design Rules:
    - Async callers queue per stream name on the event loop; a worker thread
      is only taken once the write can start
    - The stream directory is (re)created before every write
    - Writes are whole-file but NOT atomic: no temp file + rename, so a crash
      mid-write can leave a truncated frame on disk
    - The sequence counter advances only after the file is fully written
    - Failures raise FramePersistError and never advance the counter
"""

import asyncio
import logging
import os
import re
from pathlib import Path
from typing import Union

from frame_relay.store.sequence import SequenceCounter
from frame_relay.store.table import ShardedTable


logger = logging.getLogger(__name__)


INDEX_WIDTH = 7
FRAME_EXTENSION = ".jpeg"


class FramePersistError(Exception):
    """A frame could not be written to disk."""

    def __init__(self, name: str, path: Union[str, Path], reason: str) -> None:
        self.name = name
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Cannot save frame for stream '{name}' to {self.path}: {reason}")


def frame_filename(name: str, index: int) -> str:
    """File name of the index-th saved frame of a stream."""
    if index < 0:
        raise ValueError("index must be >= 0")
    return f"{name}_{index:0{INDEX_WIDTH}d}{FRAME_EXTENSION}"


def is_safe_component(name: str) -> bool:
    """Whether a stream name can be used as a single directory/file component."""
    if name in ("", ".", ".."):
        return False
    if "\x00" in name or "/" in name or os.sep in name:
        return False
    if os.altsep and os.altsep in name:
        return False
    return True


class FramePersister:
    """
    Save frames under a base directory with per-stream sequence numbers.

    Example:
        persister = FramePersister("/data/frames", SequenceCounter())
        path = persister.persist("cam1", jpeg_bytes)
        # /data/frames/cam1/cam1_0000000.jpeg
    """

    def __init__(
        self,
        base_path: Union[str, Path],
        counter: SequenceCounter,
        shards: int = 16,
    ) -> None:
        self.base_path = Path(base_path)
        self.counter = counter
        self._gates: ShardedTable[asyncio.Lock] = ShardedTable(shards=shards)

    def stream_dir(self, name: str) -> Path:
        return self.base_path / name

    def frame_path(self, name: str, index: int) -> Path:
        return self.stream_dir(name) / frame_filename(name, index)

    def persist(self, name: str, frame: bytes) -> Path:
        """
        Write one frame to disk and advance the stream's counter.

        Blocks on disk I/O; call it from a worker thread in async code.

        Args:
            name: Stream name
            frame: Raw frame bytes

        Returns:
            Path of the written file.

        Raises:
            FramePersistError: The name is not a usable path component, the
                directory could not be created or the file could not be written.
        """
        if not is_safe_component(name):
            raise FramePersistError(name, self.base_path, "stream name is not a valid path component")

        with self.counter.reserve(name) as slot:
            directory = self.stream_dir(name)
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise FramePersistError(name, directory, str(e)) from e

            path = self.frame_path(name, slot.index)
            try:
                path.write_bytes(frame)
            except OSError as e:
                raise FramePersistError(name, path, str(e)) from e

            slot.commit()

        logger.debug(f"Saved {len(frame)} bytes to {path}")
        return path

    async def persist_async(self, name: str, frame: bytes) -> Path:
        """
        Async variant of persist for request handlers.

        Writers for the same name wait their turn on a per-name asyncio.Lock,
        so a slow disk on one stream holds at most one worker thread and
        saves for other streams still get a thread right away.
        """
        gate = self._gates.setdefault(name, asyncio.Lock)
        async with gate:
            return await asyncio.to_thread(self.persist, name, frame)

    def scan_next_index(self, name: str) -> int:
        """
        One past the highest saved index found on disk for a stream.

        Used to seed the sequence counter after a restart so earlier files
        are not overwritten. Returns 0 when nothing has been saved yet.
        """
        directory = self.stream_dir(name)
        pattern = re.compile(rf"^{re.escape(name)}_(\d+){re.escape(FRAME_EXTENSION)}$")

        try:
            entries = os.listdir(directory)
        except (FileNotFoundError, NotADirectoryError):
            return 0
        except OSError as e:
            raise FramePersistError(name, directory, str(e)) from e

        highest = -1
        for entry in entries:
            match = pattern.match(entry)
            if match:
                highest = max(highest, int(match.group(1)))
        return highest + 1
