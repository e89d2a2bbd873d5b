"""
MJPEG Streaming Loop
====================

Serves one stream name as a multipart/x-mixed-replace body.

Each consumer gets its own poll loop against the shared FrameStore:
sleep a fixed interval, read the latest frame, emit it as one part.
Frames overwritten between two polls are never seen by that consumer, and
the same frame is re-emitted until a producer replaces it.

Part Framing:
    --<boundary>\\r\\n
    Content-Type: image/jpeg\\r\\n
    Content-Length: <N>\\r\\n
    \\r\\n
    <N bytes>\\r\\n

Design Rules:
    - No buffering between polls, no per-consumer queues
    - Never blocks producers or other consumers
    - Ends only on disconnect (cancellation) or a missing stream
"""

import asyncio
import logging
import time
from typing import AsyncIterator, Optional

from frame_relay.metrics import RelayMetrics
from frame_relay.store.frames import FrameStore


logger = logging.getLogger(__name__)


DEFAULT_BOUNDARY = "--FRAME"
DEFAULT_POLL_INTERVAL = 0.001  # seconds


class StreamNotFound(Exception):
    """No frame has ever been written for the requested stream."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Frame not found for stream '{name}'")


def multipart_content_type(boundary: str = DEFAULT_BOUNDARY) -> str:
    return f"multipart/x-mixed-replace;boundary={boundary}"


def encode_part(frame: bytes, boundary: str = DEFAULT_BOUNDARY) -> bytes:
    """Wrap one JPEG frame as a multipart body part."""
    header = (
        f"--{boundary}\r\n"
        f"Content-Type: image/jpeg\r\n"
        f"Content-Length: {len(frame)}\r\n"
        f"\r\n"
    ).encode("ascii")
    return header + frame + b"\r\n"


class MjpegStreamer:
    """
    Poll-and-emit MJPEG generator factory.

    Attributes:
        store: Shared FrameStore to read from
        poll_interval: Seconds to sleep before each read
        boundary: Multipart boundary token
        first_frame_timeout: Seconds a new consumer may wait for a stream
            that has no frame yet (0 = fail immediately)

    Example:
        streamer = MjpegStreamer(store)
        if await streamer.wait_for_stream("cam1"):
            return StreamingResponse(streamer.frames("cam1"),
                                     media_type=streamer.media_type)
    """

    def __init__(
        self,
        store: FrameStore,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        boundary: str = DEFAULT_BOUNDARY,
        first_frame_timeout: float = 0.0,
        metrics: Optional[RelayMetrics] = None,
    ) -> None:
        if poll_interval < 0:
            raise ValueError("poll_interval must be >= 0")
        if first_frame_timeout < 0:
            raise ValueError("first_frame_timeout must be >= 0")

        self.store = store
        self.poll_interval = poll_interval
        self.boundary = boundary
        self.first_frame_timeout = first_frame_timeout
        self.metrics = metrics or RelayMetrics()

    @property
    def media_type(self) -> str:
        return multipart_content_type(self.boundary)

    async def wait_for_stream(self, name: str) -> bool:
        """
        Check whether a stream has a frame, waiting up to first_frame_timeout.

        Returns:
            True once a frame exists, False if the timeout ran out.
        """
        if name in self.store:
            return True
        if self.first_frame_timeout <= 0:
            return False

        deadline = time.monotonic() + self.first_frame_timeout
        while time.monotonic() < deadline:
            await asyncio.sleep(max(self.poll_interval, 0.01))
            if name in self.store:
                return True
        return False

    async def frames(self, name: str) -> AsyncIterator[bytes]:
        """
        Yield multipart parts for a stream until cancelled.

        Raises:
            StreamNotFound: The stream has no frame at poll time.
        """
        self.metrics.incr("consumers_total")
        self.metrics.incr("consumers_active")
        logger.info(f"Consumer connected to stream '{name}'")
        try:
            while True:
                await asyncio.sleep(self.poll_interval)

                frame = self.store.get(name)
                if frame is None:
                    raise StreamNotFound(name)

                yield encode_part(frame, self.boundary)
        finally:
            self.metrics.incr("consumers_active", -1)
            logger.info(f"Consumer disconnected from stream '{name}'")
