"""
HTTP API Tests
==============

End-to-end behaviour of the relay endpoints.
"""

import asyncio

import httpx
from fastapi.testclient import TestClient

from frame_relay.config import Settings
from frame_relay.main import create_app


def split_part(part: bytes):
    head, _, rest = part.partition(b"\r\n\r\n")
    return head.split(b"\r\n"), rest[:-2]


class TestServiceEndpoints:
    """Tests for the informational endpoints."""

    def test_hello(self, client):
        response = client.get("/test")
        assert response.status_code == 200
        assert response.text == "Hello, yiannis!"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root_lists_streams(self, client, fake_jpeg):
        client.post("/v1/stream/cam1", content=fake_jpeg)
        assert client.get("/").json()["streams"] == ["cam1"]

    def test_metrics(self, client, fake_jpeg):
        client.post("/v1/stream/set_save/cam1", json={"toggle": True})
        client.post("/v1/stream/cam1", content=fake_jpeg)
        client.post("/v1/stream/cam2", content=fake_jpeg)

        data = client.get("/metrics").json()
        assert data["streams"] == 2
        assert data["streams_saving"] == 1
        assert data["frames_received"] == 2
        assert data["frames_persisted"] == 1
        assert data["persist_errors"] == 0
        assert data["store_shards"] == 16


class TestFrameUpload:
    """Tests for POST /v1/stream/{name}."""

    def test_stores_latest_frame(self, app, client):
        for payload in (b"one", b"two", b"three"):
            response = client.post("/v1/stream/cam1", content=payload)
            assert response.status_code == 200
            assert response.text == "Last frame saved"
        assert app.state.relay.store.get("cam1") == b"three"

    def test_not_saved_without_toggle(self, client, save_path, fake_jpeg):
        client.post("/v1/stream/cam1", content=fake_jpeg)
        assert not save_path.exists()


class TestSaveToggle:
    """Tests for POST /v1/stream/set_save/{name}."""

    def test_enable_and_disable(self, client):
        on = client.post("/v1/stream/set_save/cam1", json={"toggle": True})
        assert on.status_code == 200
        assert on.text == "Frames will be saved"

        off = client.post("/v1/stream/set_save/cam1", json={"toggle": False})
        assert off.status_code == 200
        assert off.text == "Frames will not be saved"

    def test_malformed_body_is_client_error(self, client):
        response = client.post(
            "/v1/stream/set_save/cam1",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 422

    def test_missing_field_is_client_error(self, client):
        response = client.post("/v1/stream/set_save/cam1", json={})
        assert response.status_code == 422

    def test_saved_file_matches_upload(self, client, save_path, fake_jpeg):
        toggle = client.post("/v1/stream/set_save/cam1", json={"toggle": True})
        assert toggle.text == "Frames will be saved"

        response = client.post("/v1/stream/cam1", content=fake_jpeg)
        assert response.status_code == 200
        assert (save_path / "cam1" / "cam1_0000000.jpeg").read_bytes() == fake_jpeg

    def test_off_then_on(self, client, save_path):
        client.post("/v1/stream/set_save/cam1", json={"toggle": False})
        for i in range(3):
            client.post("/v1/stream/cam1", content=f"off{i}".encode())
        assert not (save_path / "cam1").exists()

        client.post("/v1/stream/set_save/cam1", json={"toggle": True})
        for i in range(3):
            client.post("/v1/stream/cam1", content=f"on{i}".encode())

        files = sorted(p.name for p in (save_path / "cam1").iterdir())
        assert files == ["cam1_0000000.jpeg", "cam1_0000001.jpeg", "cam1_0000002.jpeg"]
        assert (save_path / "cam1" / "cam1_0000002.jpeg").read_bytes() == b"on2"

    def test_disk_failure(self, tmp_path, fake_jpeg):
        blocker = tmp_path / "blocker"
        blocker.write_bytes(b"")
        app = create_app(Settings.model_validate({"storage": {"frame_save_path": str(blocker)}}))
        relay = app.state.relay

        client = TestClient(app)
        client.post("/v1/stream/set_save/cam1", json={"toggle": True})

        response = client.post("/v1/stream/cam1", content=fake_jpeg)

        assert response.status_code == 500
        assert relay.store.get("cam1") == fake_jpeg
        assert relay.counter.peek("cam1") == 0
        assert relay.metrics.persist_errors == 1

    def test_resume_sequence(self, save_path, fake_jpeg):
        (save_path / "cam1").mkdir(parents=True)
        (save_path / "cam1" / "cam1_0000004.jpeg").write_bytes(b"old")

        app = create_app(Settings.model_validate({
            "storage": {"frame_save_path": str(save_path), "resume_sequence": True},
        }))

        client = TestClient(app)
        client.post("/v1/stream/set_save/cam1", json={"toggle": True})
        client.post("/v1/stream/cam1", content=fake_jpeg)

        assert (save_path / "cam1" / "cam1_0000005.jpeg").read_bytes() == fake_jpeg
        assert (save_path / "cam1" / "cam1_0000004.jpeg").read_bytes() == b"old"

    def test_slow_disk_on_one_stream_does_not_delay_others(self, app, save_path, slow_burst):
        async def run():
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://relay") as http:
                for name in ("slow", "fast"):
                    await http.post(f"/v1/stream/set_save/{name}", json={"toggle": True})

                async def save(name, frame):
                    response = await http.post(f"/v1/stream/{name}", content=frame)
                    assert response.status_code == 200

                return await slow_burst(save)

        elapsed = asyncio.run(run())

        assert elapsed < 0.15
        assert len(list((save_path / "slow").iterdir())) == 4
        assert app.state.relay.metrics.frames_persisted == 5


class TestMjpegEndpoint:
    """Tests for GET /v1/stream/{name}.mjpg."""

    def test_unknown_stream_is_not_found(self, client):
        response = client.get("/v1/stream/ghost.mjpg")
        assert response.status_code == 404

    def test_first_part_carries_posted_frame(self, client, first_stream_part, fake_jpeg):
        client.post("/v1/stream/cam1", content=fake_jpeg)

        status, headers, part = first_stream_part("/v1/stream/cam1.mjpg")

        assert status == 200
        assert headers["content-type"] == "multipart/x-mixed-replace;boundary=--FRAME"
        lines, body = split_part(part)
        assert lines[0] == b"----FRAME"
        assert b"Content-Type: image/jpeg" in lines
        assert b"Content-Length: 10" in lines
        assert body == fake_jpeg

    def test_stream_name_with_dots(self, client, first_stream_part):
        client.post("/v1/stream/cam.left", content=b"dotted")
        status, _, part = first_stream_part("/v1/stream/cam.left.mjpg")
        assert status == 200
        assert split_part(part)[1] == b"dotted"

    def test_unknown_stream_via_asgi(self, first_stream_part):
        status, _, body = first_stream_part("/v1/stream/ghost.mjpg")
        assert status == 404
        assert body == b"Frame not found"
