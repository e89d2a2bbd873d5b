"""
Persistence Module
==================

Disk sink for frames of streams with saving enabled.
"""

from frame_relay.persistence.persister import (
    FRAME_EXTENSION,
    INDEX_WIDTH,
    FramePersister,
    FramePersistError,
    frame_filename,
    is_safe_component,
)


__all__ = [
    "FramePersister",
    "FramePersistError",
    "frame_filename",
    "is_safe_component",
    "INDEX_WIDTH",
    "FRAME_EXTENSION",
]
