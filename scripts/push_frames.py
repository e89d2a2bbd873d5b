#!/usr/bin/env python3
"""
Frame Producer Script
=====================

Standalone producer that feeds a running frame relay.

This script:
    1. Opens a camera index or video file with OpenCV
    2. Optionally enables saving for the target stream
    3. Encodes frames as JPEG and POSTs them at a target rate
    4. Logs throughput every few seconds and a final summary

Prerequisites:
    - The relay must be running at the configured URL
    - Install tool dependencies: pip install -e ".[tools]"

Usage:
    python scripts/push_frames.py --source 0 --stream cam1
    python scripts/push_frames.py --source clip.mp4 --stream cam2 --save --fps 10
"""

import argparse
import logging
import os
import time
from typing import Optional

import cv2
import numpy as np
import requests


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


def encode_jpeg(frame: np.ndarray, quality: int) -> Optional[bytes]:
    """Encode a BGR frame to JPEG bytes."""
    ok, buf = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
    if not ok:
        return None
    return buf.tobytes()


def open_source(source: str) -> cv2.VideoCapture:
    """Open a camera index ("0") or a video file/URL."""
    if source.isdigit():
        return cv2.VideoCapture(int(source))
    return cv2.VideoCapture(source)


def set_save(session: requests.Session, url: str, stream: str, enabled: bool) -> None:
    response = session.post(
        f"{url}/v1/stream/set_save/{stream}",
        json={"toggle": enabled},
        timeout=5,
    )
    response.raise_for_status()
    logger.info(f"Relay: {response.text}")


def run(
    url: str,
    stream: str,
    source: str,
    fps: float,
    quality: int,
    save: bool,
    duration: int,
    report_interval: int,
) -> dict:
    """
    Push frames until the source ends or the duration runs out.

    Returns:
        Final stats dict
    """
    logger.info("=" * 60)
    logger.info(f"Relay URL: {url}")
    logger.info(f"Stream: {stream}")
    logger.info(f"Source: {source}")
    logger.info(f"Target FPS: {fps}")
    logger.info("=" * 60)

    session = requests.Session()
    if save:
        set_save(session, url, stream, True)

    cap = open_source(source)
    if not cap.isOpened():
        raise RuntimeError(f"Cannot open source: {source}")

    frame_period = 1.0 / fps if fps > 0 else 0.0
    start_time = time.time()
    last_report_time = start_time
    last_sent = 0
    sent = 0
    failed = 0
    bytes_sent = 0

    try:
        while True:
            if duration > 0 and time.time() - start_time >= duration:
                logger.info(f"Duration ({duration}s) reached")
                break

            tick = time.time()
            ok, frame = cap.read()
            if not ok:
                logger.info("Source exhausted")
                break

            payload = encode_jpeg(frame, quality)
            if payload is None:
                failed += 1
                continue

            try:
                response = session.post(
                    f"{url}/v1/stream/{stream}",
                    data=payload,
                    headers={"Content-Type": "image/jpeg"},
                    timeout=5,
                )
                if response.status_code == 200:
                    sent += 1
                    bytes_sent += len(payload)
                else:
                    failed += 1
                    logger.warning(f"Relay returned {response.status_code}: {response.text}")
            except requests.RequestException as e:
                failed += 1
                logger.error(f"POST failed: {e}")

            now = time.time()
            if now - last_report_time >= report_interval:
                rate = (sent - last_sent) / (now - last_report_time)
                logger.info(f"Sent: {sent}  Failed: {failed}  Current FPS: {rate:.1f}")
                last_report_time = now
                last_sent = sent

            remaining = frame_period - (time.time() - tick)
            if remaining > 0:
                time.sleep(remaining)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        cap.release()

    total_time = time.time() - start_time
    avg_fps = sent / total_time if total_time > 0 else 0

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total runtime: {total_time:.1f} seconds")
    logger.info(f"Frames sent: {sent}")
    logger.info(f"Frames failed: {failed}")
    logger.info(f"Average FPS: {avg_fps:.1f}")
    logger.info(f"Bytes sent: {bytes_sent}")
    logger.info("=" * 60)

    return {
        "duration": total_time,
        "frames_sent": sent,
        "frames_failed": failed,
        "avg_fps": avg_fps,
        "bytes_sent": bytes_sent,
    }


def main():
    parser = argparse.ArgumentParser(description="Push camera or video frames to a frame relay")
    parser.add_argument(
        "--url",
        type=str,
        default=os.environ.get("RELAY_URL", "http://localhost:8080"),
        help="Base URL of the relay",
    )
    parser.add_argument("--stream", type=str, default="cam1", help="Stream name")
    parser.add_argument("--source", type=str, default="0", help="Camera index or video path")
    parser.add_argument("--fps", type=float, default=15.0, help="Target frames per second (0 = unthrottled)")
    parser.add_argument("--quality", type=int, default=80, help="JPEG quality (default: 80)")
    parser.add_argument("--save", action="store_true", help="Enable saving on the relay first")
    parser.add_argument("--duration", type=int, default=0, help="Seconds to run (0 = until source ends)")
    parser.add_argument("--report-interval", type=int, default=5, help="Seconds between reports")

    args = parser.parse_args()

    run(
        url=args.url.rstrip("/"),
        stream=args.stream,
        source=args.source,
        fps=args.fps,
        quality=args.quality,
        save=args.save,
        duration=args.duration,
        report_interval=args.report_interval,
    )


if __name__ == "__main__":
    main()
