"""
Stream Module
=============

Live MJPEG output for consumers.

    - MjpegStreamer: per-connection poll loop over the FrameStore
    - encode_part: multipart framing for a single JPEG frame
    - StreamNotFound: raised when a stream has never received a frame

Example:
    from frame_relay.stream import MjpegStreamer

    streamer = MjpegStreamer(store, poll_interval=0.001)
    async for part in streamer.frames("cam1"):
        await send(part)
"""

from frame_relay.stream.mjpeg import (
    DEFAULT_BOUNDARY,
    DEFAULT_POLL_INTERVAL,
    MjpegStreamer,
    StreamNotFound,
    encode_part,
    multipart_content_type,
)


__all__ = [
    "MjpegStreamer",
    "StreamNotFound",
    "encode_part",
    "multipart_content_type",
    "DEFAULT_BOUNDARY",
    "DEFAULT_POLL_INTERVAL",
]
