"""
============================================================
 Acuity Check — Geometry Estimator
 Face prediction → FaceBox → viewing distance + forward gaze.

 Distance uses a first-order pinhole-camera relation with
 fixed constants (160mm face, 4.15mm focal, 6.4mm sensor).
 It is an estimate, not a calibrated measurement.
============================================================
"""

import math
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np

import config


# ═════════════════════════════════════════════════════════════
#  PREDICTION SHAPES
# ═════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BoxPrediction:
    """Detector output with explicit box corners."""
    top_left: tuple
    bottom_right: tuple


@dataclass(frozen=True)
class LegacyCornerPrediction:
    """Older detector output with top-left / bottom-right fields."""
    top_left: tuple
    bottom_right: tuple


@dataclass(frozen=True)
class MeshPrediction:
    """Detector output carrying only a landmark point cloud (pixels)."""
    points: Any  # (N, 2+) array-like


FacePrediction = BoxPrediction | LegacyCornerPrediction | MeshPrediction


@dataclass(frozen=True)
class FaceBox:
    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def is_degenerate(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def to_dict(self) -> dict:
        return {
            "left": self.left,
            "top": self.top,
            "right": self.right,
            "bottom": self.bottom,
        }


EMPTY_BOX = FaceBox(0.0, 0.0, 0.0, 0.0)


def _field(raw, name):
    if isinstance(raw, dict):
        return raw.get(name)
    return getattr(raw, name, None)


def _corner(value) -> tuple:
    return (float(value[0]), float(value[1]))


def coerce_prediction(raw) -> FacePrediction | None:
    """
    Convert a duck-typed detector record (dict or object) into one of
    the recognized prediction shapes. Returns None if none matches.
    A shape whose corners are malformed is skipped, not raised.
    """
    if isinstance(raw, (BoxPrediction, LegacyCornerPrediction, MeshPrediction)):
        return raw

    box = _field(raw, "box")
    if box is not None:
        tl, br = _field(box, "topLeft"), _field(box, "bottomRight")
        if tl is not None and br is not None:
            try:
                return BoxPrediction(_corner(tl), _corner(br))
            except (TypeError, ValueError, IndexError):
                pass

    tl, br = _field(raw, "topLeft"), _field(raw, "bottomRight")
    if tl is not None and br is not None:
        try:
            return LegacyCornerPrediction(_corner(tl), _corner(br))
        except (TypeError, ValueError, IndexError):
            pass

    points = _field(raw, "scaledMesh")
    if points is None:
        points = _field(raw, "mesh")
    if points is not None:
        return MeshPrediction(points)

    return None


# ═════════════════════════════════════════════════════════════
#  BOX DERIVATION
# ═════════════════════════════════════════════════════════════

def to_face_box(prediction) -> FaceBox:
    """
    Normalize a prediction to a FaceBox: box corners, then legacy
    corners, then the bounding box of the point cloud. Anything else
    yields the degenerate {0,0,0,0} box.
    """
    prediction = coerce_prediction(prediction) if prediction is not None else None

    if isinstance(prediction, (BoxPrediction, LegacyCornerPrediction)):
        try:
            (left, top), (right, bottom) = prediction.top_left, prediction.bottom_right
            return FaceBox(float(left), float(top), float(right), float(bottom))
        except (TypeError, ValueError):
            return EMPTY_BOX

    if isinstance(prediction, MeshPrediction):
        try:
            pts = np.asarray(prediction.points, dtype=np.float64)
        except (TypeError, ValueError):
            return EMPTY_BOX
        if pts.ndim != 2 or pts.shape[0] == 0 or pts.shape[1] < 2:
            return EMPTY_BOX
        xs, ys = pts[:, 0], pts[:, 1]
        return FaceBox(float(xs.min()), float(ys.min()),
                       float(xs.max()), float(ys.max()))

    return EMPTY_BOX


# ═════════════════════════════════════════════════════════════
#  DISTANCE
# ═════════════════════════════════════════════════════════════

def estimate_distance(box: FaceBox, frame_width: float | None) -> float:
    """
    Viewing distance in meters; NaN when the box has zero area.

        d = (face_mm × focal_mm) / (box_px × sensor_mm / frame_px) / 1000
    """
    if box.is_degenerate:
        return math.nan
    frame_px = frame_width or config.FALLBACK_FRAME_WIDTH
    face_px = max(1.0, box.right - box.left)
    distance_mm = (config.AVERAGE_FACE_WIDTH_MM * config.FOCAL_LENGTH_MM) / (
        face_px * (config.SENSOR_WIDTH_MM / frame_px)
    )
    return distance_mm / 1000.0


# ═════════════════════════════════════════════════════════════
#  GAZE
# ═════════════════════════════════════════════════════════════

def gaze_offsets(box: FaceBox, frame_width: float | None,
                 frame_height: float | None) -> tuple:
    """Box centre relative to frame centre, as fractions of the frame."""
    w = frame_width or config.FALLBACK_FRAME_WIDTH
    h = frame_height or config.FALLBACK_FRAME_HEIGHT
    cx = (box.left + box.right) / 2
    cy = (box.top + box.bottom) / 2
    return cx / w - 0.5, cy / h - 0.5


def estimate_gaze_forward(box: FaceBox, frame_width: float | None,
                          frame_height: float | None) -> bool:
    """Centered within the middle 36% on both axes AND roughly frontal."""
    nx, ny = gaze_offsets(box, frame_width, frame_height)
    tol = config.GAZE_CENTER_TOLERANCE
    centered = abs(nx) < tol and abs(ny) < tol
    ratio = box.width / max(1.0, box.height)
    frontal = config.GAZE_MIN_ASPECT < ratio < config.GAZE_MAX_ASPECT
    return centered and frontal


def points_from_landmarks(landmarks: Sequence, width: int, height: int) -> np.ndarray:
    """Normalized landmarks (x, y in 0..1) → pixel point cloud."""
    n = len(landmarks)
    xs = np.fromiter((lm.x for lm in landmarks), dtype=np.float64, count=n)
    ys = np.fromiter((lm.y for lm in landmarks), dtype=np.float64, count=n)
    return np.column_stack((xs * width, ys * height))
