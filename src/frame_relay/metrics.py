"""Relay counters for the /metrics endpoint."""

import threading


class RelayMetrics:
    """Metrics for relay observability."""

    __slots__ = (
        "_lock",
        "frames_received",
        "frames_persisted",
        "persist_errors",
        "consumers_total",
        "consumers_active",
    )

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.frames_received: int = 0
        self.frames_persisted: int = 0
        self.persist_errors: int = 0
        self.consumers_total: int = 0
        self.consumers_active: int = 0

    def incr(self, field: str, amount: int = 1) -> None:
        # persistence runs in worker threads
        with self._lock:
            setattr(self, field, getattr(self, field) + amount)

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        with self._lock:
            return {
                "frames_received": self.frames_received,
                "frames_persisted": self.frames_persisted,
                "persist_errors": self.persist_errors,
                "consumers_total": self.consumers_total,
                "consumers_active": self.consumers_active,
            }
