"""
============================================================
 Acuity Check — Readiness Gate
 Distance + gaze → ready flag and user-facing guidance.
 Advisory only: never blocks answering once a test runs.
============================================================
"""

import math
from dataclasses import dataclass

import config

MSG_NO_FACE = "No face detected. Make sure your face is visible."
MSG_ADJUST_DISTANCE = "Please move farther or closer to the screen to start the test."
MSG_FACE_CAMERA = "Please face the camera for accurate results."


@dataclass(frozen=True)
class Readiness:
    ready: bool
    warning: str
    distance: float
    adjustment: str | None = None  # "closer" / "farther" when out of range

    @property
    def badge(self) -> str:
        return "Ready" if self.ready else "Adjust"

    @property
    def status_text(self) -> str:
        if math.isnan(self.distance):
            return "Distance: No face detected"
        return f"Distance: {self.distance:.2f} m"

    def to_dict(self) -> dict:
        return {
            "distance_m": None if math.isnan(self.distance) else round(self.distance, 3),
            "ready": self.ready,
            "warning": self.warning,
            "adjustment": self.adjustment,
            "badge": self.badge,
            "status_text": self.status_text,
        }


def evaluate(distance: float, gaze_forward: bool,
             ideal_min: float = config.IDEAL_DISTANCE_MIN,
             ideal_max: float = config.IDEAL_DISTANCE_MAX) -> Readiness:
    if distance is None or math.isnan(distance):
        return Readiness(False, MSG_NO_FACE, math.nan)
    if distance < ideal_min:
        return Readiness(False, MSG_ADJUST_DISTANCE, distance, "farther")
    if distance > ideal_max:
        return Readiness(False, MSG_ADJUST_DISTANCE, distance, "closer")
    if not gaze_forward:
        return Readiness(False, MSG_FACE_CAMERA, distance)
    return Readiness(True, "", distance)
