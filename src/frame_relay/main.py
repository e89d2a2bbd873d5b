"""
Frame Relay Main Application
============================

FastAPI entry point for the multi-stream frame relay.

Producers POST raw JPEG frames per stream name; consumers GET a live MJPEG
stream of the latest frame; streams with saving enabled also get every
received frame written to disk with a per-stream sequence number.

Endpoints:
    GET  /                           - Service information
    GET  /health                     - Liveness probe
    GET  /metrics                    - Relay counters
    GET  /test                       - Connectivity check
    POST /v1/stream/set_save/{name}  - Enable/disable saving for a stream
    POST /v1/stream/{name}           - Push the latest frame of a stream
    GET  /v1/stream/{name}.mjpg      - Live multipart/x-mixed-replace stream
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse

from frame_relay.config import Settings, settings as default_settings
from frame_relay.metrics import RelayMetrics
from frame_relay.models import ToggleRequest
from frame_relay.persistence import FramePersister, FramePersistError
from frame_relay.store import FrameStore, SequenceCounter, ToggleRegistry
from frame_relay.stream import MjpegStreamer


logger = logging.getLogger(__name__)


# =============================================================================
# Relay State
# =============================================================================

class Relay:
    """
    Process-lifetime state shared by every connection.

    Attributes:
        store: Latest frame per stream
        toggles: Save flag per stream
        counter: Next disk index per stream
        persister: Disk sink for save-enabled streams
        streamer: MJPEG poll loop factory
        metrics: Relay counters
    """

    def __init__(self, settings: Settings) -> None:
        shards = settings.store.shards

        self.metrics = RelayMetrics()
        self.store = FrameStore(shards=shards)
        self.toggles = ToggleRegistry(shards=shards)
        self.counter = SequenceCounter(shards=shards)
        self.persister = FramePersister(
            settings.storage.frame_save_path, self.counter, shards=shards
        )
        if settings.storage.resume_sequence:
            self.counter.seed = self.persister.scan_next_index

        self.streamer = MjpegStreamer(
            self.store,
            poll_interval=settings.stream.poll_interval_seconds,
            boundary=settings.stream.boundary,
            first_frame_timeout=settings.stream.first_frame_timeout_seconds,
            metrics=self.metrics,
        )
        self.started_at = time.time()


# =============================================================================
# FastAPI Application
# =============================================================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Configuration to use. Defaults to the global settings.

    Returns:
        A FastAPI app with its own Relay state on app.state.relay.
    """
    settings = settings or default_settings
    relay = Relay(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(f"Starting {settings.service.name} {settings.service.version}")
        logger.info(f"Saving frames under: {relay.persister.base_path}")
        logger.info(
            f"Stream poll interval: {settings.stream.poll_interval_ms} ms, "
            f"first frame timeout: {settings.stream.first_frame_timeout_seconds} s"
        )

        yield

        logger.info(f"Shutting down, {len(relay.store)} streams in memory")

    app = FastAPI(
        title="FrameRelay",
        description="Multi-stream JPEG frame relay with live MJPEG output",
        version=settings.service.version,
        lifespan=lifespan,
    )
    app.state.relay = relay

    # -------------------------------------------------------------------------
    # Service endpoints
    # -------------------------------------------------------------------------

    @app.get("/")
    async def root() -> JSONResponse:
        """Service information endpoint."""
        return JSONResponse({
            "service": settings.service.name,
            "version": settings.service.version,
            "status": "running",
            "streams": relay.store.streams(),
        })

    @app.get("/health")
    async def health() -> JSONResponse:
        """Liveness probe - always 200 while the process is up."""
        return JSONResponse({
            "status": "healthy",
            "uptime_seconds": round(time.time() - relay.started_at, 1),
        })

    @app.get("/metrics")
    async def metrics() -> JSONResponse:
        """Detailed metrics for observability."""
        return JSONResponse({
            "uptime_seconds": round(time.time() - relay.started_at, 1),
            "streams": len(relay.store),
            "streams_saving": relay.toggles.enabled_streams(),
            "store_shards": relay.store.shard_count,
            **relay.metrics.to_dict(),
        })

    @app.get("/test")
    async def test() -> PlainTextResponse:
        return PlainTextResponse("Hello, yiannis!")

    # -------------------------------------------------------------------------
    # Stream endpoints
    # -------------------------------------------------------------------------

    @app.post("/v1/stream/set_save/{name}")
    async def set_save_frames(name: str, toggle_request: ToggleRequest) -> PlainTextResponse:
        """Enable or disable saving of received frames for a stream."""
        message = relay.toggles.set(name, toggle_request.toggle)
        return PlainTextResponse(message)

    @app.post("/v1/stream/{name}")
    async def save_last_frame(name: str, request: Request) -> PlainTextResponse:
        """
        Store the request body as the latest frame of a stream.

        The in-memory frame is replaced even if saving to disk fails.
        """
        body = await request.body()

        relay.store.put(name, body)
        relay.metrics.incr("frames_received")

        if relay.toggles.is_enabled(name):
            try:
                await relay.persister.persist_async(name, body)
            except FramePersistError as e:
                relay.metrics.incr("persist_errors")
                logger.error(f"Persist error: {e}")
                return PlainTextResponse("Failed to save frame", status_code=500)
            relay.metrics.incr("frames_persisted")

        return PlainTextResponse("Last frame saved")

    @app.get("/v1/stream/{name}.mjpg")
    async def stream_frame(name: str):
        """Live MJPEG stream of the latest frame; 404 if the stream is unknown."""
        streamer = relay.streamer

        if not await streamer.wait_for_stream(name):
            logger.info(f"Stream '{name}' requested but has no frame")
            return PlainTextResponse("Frame not found", status_code=404)

        return StreamingResponse(
            streamer.frames(name),
            media_type=streamer.media_type,
        )

    return app


app = create_app()


# =============================================================================
# Main Entry Point
# =============================================================================

def run() -> None:
    """Run the relay with uvicorn on the configured host and port."""
    import uvicorn

    uvicorn.run(
        "frame_relay.main:app",
        host=default_settings.server.host,
        port=default_settings.server.port,
        reload=False,
    )


if __name__ == "__main__":
    run()
