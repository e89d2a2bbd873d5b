"""
Test Configuration
==================

Pytest fixtures and test configuration for the frame relay.
"""

import asyncio
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from frame_relay.config import Settings
from frame_relay.main import create_app


@pytest.fixture
def fake_jpeg():
    """Ten-byte stand-in for a JPEG frame (contents are never validated)."""
    return b"FAKEJPEG01"


@pytest.fixture
def save_path(tmp_path):
    """Base directory for saved frames."""
    return tmp_path / "frames"


@pytest.fixture
def settings(save_path):
    """Settings pointing storage at a temporary directory."""
    return Settings.model_validate({
        "storage": {"frame_save_path": str(save_path)},
        "stream": {"poll_interval_ms": 1.0},
    })


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    return TestClient(app)


async def _read_first_part(app, path: str, timeout: float = 5.0):
    """
    Drive the ASGI app for one GET and stop after the first body chunk.

    TestClient waits for the whole body, which never ends for a live MJPEG
    stream, so this sends http.disconnect once a chunk has arrived.
    """
    got_body = asyncio.Event()
    messages = []

    async def receive():
        await got_body.wait()
        return {"type": "http.disconnect"}

    async def send(message):
        messages.append(message)
        if message["type"] == "http.response.body" and message.get("body"):
            got_body.set()

    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": b"",
        "headers": [(b"host", b"testserver")],
        "client": ("testclient", 50000),
        "server": ("testserver", 80),
    }

    task = asyncio.create_task(app(scope, receive, send))
    await asyncio.wait_for(got_body.wait(), timeout=timeout)
    try:
        await asyncio.wait_for(task, timeout=timeout)
    except asyncio.TimeoutError:
        pass

    start = next(m for m in messages if m["type"] == "http.response.start")
    headers = {k.decode().lower(): v.decode() for k, v in start["headers"]}
    body = next(
        m["body"] for m in messages
        if m["type"] == "http.response.body" and m.get("body")
    )
    return start["status"], headers, body


@pytest.fixture
def first_stream_part(app):
    """Callable returning (status, headers, first body chunk) for a GET path."""

    def read(path: str):
        return asyncio.run(_read_first_part(app, path))

    return read


SLOW_WRITE_SECONDS = 0.3


@pytest.fixture
def slow_burst(monkeypatch):
    """
    Time one save on stream "fast" while stream "slow" has a burst queued.

    Writes into a "slow" directory take SLOW_WRITE_SECONDS. The event loop
    gets a two-thread default executor, so a burst that parks more than one
    thread on the "slow" stream would leave "fast" waiting for a full write.

    The returned coroutine function takes save(name, frame) and yields the
    seconds the "fast" save took.
    """
    original = Path.write_bytes

    def write_bytes(self, data):
        if self.parent.name == "slow":
            time.sleep(SLOW_WRITE_SECONDS)
        return original(self, data)

    monkeypatch.setattr(Path, "write_bytes", write_bytes)

    async def measure(save, burst: int = 4) -> float:
        asyncio.get_running_loop().set_default_executor(ThreadPoolExecutor(max_workers=2))

        pending = [asyncio.create_task(save("slow", f"slow{i}".encode())) for i in range(burst)]
        await asyncio.sleep(0.05)

        started = time.perf_counter()
        await save("fast", b"fast")
        elapsed = time.perf_counter() - started

        await asyncio.gather(*pending)
        return elapsed

    return measure
