"""
FrameRelay
==========

Multi-stream JPEG frame relay with live MJPEG output.

Producers push frames for a named stream, consumers watch a live
multipart/x-mixed-replace stream of the latest frame, and streams can be
switched to save every received frame to disk.

Components:
    - store: latest-frame, save-toggle and sequence tables
    - persistence: sequential on-disk frame sink
    - stream: MJPEG poll-and-emit loop
    - main: FastAPI application

Example:
    uvicorn frame_relay.main:app --port 8080
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
