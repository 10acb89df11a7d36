"""
============================================================
 Acuity Check — Face Detector
 MediaPipe FaceLandmarker (VIDEO mode, one face) wrapped to
 return MeshPrediction point clouds in pixel coordinates.
============================================================
"""

import logging

import cv2
import mediapipe as mp
import numpy as np

import config
from acuity.geometry import MeshPrediction, points_from_landmarks

log = logging.getLogger(__name__)

# ── MediaPipe task API ──────────────────────────────────────
BaseOptions = mp.tasks.BaseOptions
FaceLandmarker = mp.tasks.vision.FaceLandmarker
FaceLandmarkerOptions = mp.tasks.vision.FaceLandmarkerOptions
VisionRunningMode = mp.tasks.vision.RunningMode


class FaceMeshDetector:
    """Black-box face detector: BGR frame → list of MeshPrediction."""

    def __init__(self, model_path: str | None = None) -> None:
        options = FaceLandmarkerOptions(
            base_options=BaseOptions(
                model_asset_path=model_path or config.FACE_LANDMARKER_MODEL_PATH
            ),
            running_mode=VisionRunningMode.VIDEO,
            num_faces=1,
            min_face_detection_confidence=config.FACE_MIN_DETECTION_CONFIDENCE,
            min_face_presence_confidence=config.FACE_MIN_PRESENCE_CONFIDENCE,
            min_tracking_confidence=config.FACE_MIN_TRACKING_CONFIDENCE,
            output_face_blendshapes=False,
            output_facial_transformation_matrixes=False,
        )
        self._landmarker = FaceLandmarker.create_from_options(options)
        self._mp_ts: int = 0
        log.info("[DETECTOR] FaceLandmarker loaded")

    def detect(self, frame: np.ndarray) -> list:
        h, w = frame.shape[:2]
        # VIDEO mode needs monotonically increasing timestamps
        self._mp_ts += 33
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        result = self._landmarker.detect_for_video(mp_image, self._mp_ts)
        return [
            MeshPrediction(points_from_landmarks(landmarks, w, h))
            for landmarks in (result.face_landmarks or [])
        ]

    def release(self) -> None:
        self._landmarker.close()
        log.info("[DETECTOR] Released resources.")


def load_detector(model_path: str | None = None) -> FaceMeshDetector | None:
    """Load the model; None when it is unavailable (missing file, bad build)."""
    try:
        return FaceMeshDetector(model_path)
    except Exception as e:
        log.warning("[DETECTOR] Face model failed to load: %s", e)
        return None
