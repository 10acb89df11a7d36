"""
============================================================
 Acuity Check — Screening Camera
 Caller-owned webcam: opened by enable_camera, closed by
 disable_camera. A lost device is reported, never reopened
 behind the caller's back.

 Each captured frame is published together with its JPEG
 as one snapshot, so the detector and /video_feed always
 see the same picture.
============================================================
"""

import logging
import threading
import time
from typing import NamedTuple

import cv2
import numpy as np

import config

log = logging.getLogger(__name__)


class Snapshot(NamedTuple):
    frame: np.ndarray
    jpeg: bytes | None
    captured_at: float


class Camera:
    """Latest-snapshot webcam for distance guidance and the MJPEG preview."""

    def __init__(self, src=None):
        self.src = src if src is not None else config.CAMERA_INDEX
        self.cap = None
        self.lost = False
        self.fps = 0.0
        self._snapshot: Snapshot | None = None
        self._running = False
        self._thread = None

    def start(self):
        """Open the device and start capturing. Check is_opened afterwards."""
        cap = cv2.VideoCapture(self.src)
        if not cap.isOpened():
            log.warning("[CAMERA] Failed to open source %s", self.src)
            cap.release()
            return self

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, config.CAMERA_WIDTH)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, config.CAMERA_HEIGHT)
        cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        log.info("[CAMERA] Opened source %s (%dx%d)", self.src,
                 int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
                 int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)))

        self.cap = cap
        self._running = True
        self._thread = threading.Thread(target=self._capture, daemon=True, name="Camera")
        self._thread.start()
        return self

    def _capture(self):
        failures = 0
        while self._running:
            ok, frame = self.cap.read()
            if not ok or frame is None:
                failures += 1
                if failures >= config.CAMERA_MAX_READ_FAILURES:
                    log.warning("[CAMERA] Source %s stopped delivering frames; "
                                "re-enable the camera to retry", self.src)
                    self.lost = True
                    self._running = False
                    break
                time.sleep(0.01)
                continue
            failures = 0

            if config.CAMERA_FLIP_HORIZONTAL:
                frame = cv2.flip(frame, 1)
            ok_j, buf = cv2.imencode(".jpg", frame,
                                     [cv2.IMWRITE_JPEG_QUALITY, config.CAMERA_JPEG_QUALITY])
            now = time.time()
            previous = self._snapshot
            self._snapshot = Snapshot(frame, buf.tobytes() if ok_j else None, now)
            if previous is not None and now > previous.captured_at:
                # smoothed, good enough for a status readout
                self.fps = 0.9 * self.fps + 0.1 / (now - previous.captured_at)

    def read(self):
        """Latest frame as (ok, frame)."""
        snap = self._snapshot
        if snap is None:
            return False, None
        return True, snap.frame

    @property
    def jpeg(self) -> bytes | None:
        snap = self._snapshot
        return snap.jpeg if snap is not None else None

    @property
    def is_opened(self) -> bool:
        return self._running and self.cap is not None

    def stop(self):
        """Stop capturing and release the device."""
        self._running = False
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=3)
        self._thread = None
        if self.cap is not None:
            self.cap.release()
            self.cap = None
        self._snapshot = None
        log.info("[CAMERA] Stopped and released.")
