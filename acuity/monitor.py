"""
============================================================
 Acuity Check — Distance Monitor
 One detection cycle per camera frame:
   detector → FaceBox → distance + gaze → Readiness
 A failing detector or an unreadable prediction counts as
 "no face" for that frame only.
============================================================
"""

import logging
import math

from acuity import geometry, readiness

log = logging.getLogger(__name__)


class DistanceMonitor:
    """Per-frame distance/gaze guidance. Holds no test state."""

    def __init__(self, detector) -> None:
        self.detector = detector
        self.last: readiness.Readiness = readiness.evaluate(math.nan, False)
        self.last_box: geometry.FaceBox = geometry.EMPTY_BOX
        self._errors = 0

    def evaluate_predictions(self, predictions, frame_width, frame_height) -> readiness.Readiness:
        """Readiness for one frame's detector output (first face only)."""
        if not predictions:
            box = geometry.EMPTY_BOX
        else:
            box = geometry.to_face_box(predictions[0])
        return self._evaluate_box(box, frame_width, frame_height)

    def _evaluate_box(self, box, frame_width, frame_height) -> readiness.Readiness:
        distance = geometry.estimate_distance(box, frame_width)
        forward = (not box.is_degenerate
                   and geometry.estimate_gaze_forward(box, frame_width, frame_height))
        self.last_box = box
        self.last = readiness.evaluate(distance, forward)
        return self.last

    def process_frame(self, frame) -> readiness.Readiness:
        h, w = frame.shape[:2]
        try:
            return self.evaluate_predictions(self.detector.detect(frame), w, h)
        except Exception as e:
            self._errors += 1
            if self._errors <= 10 or self._errors % 100 == 0:
                log.warning("[MONITOR] Detection error #%d: %s", self._errors, e)
            return self._evaluate_box(geometry.EMPTY_BOX, w, h)

    def to_dict(self) -> dict:
        out = self.last.to_dict()
        out["face_box"] = None if self.last_box.is_degenerate else self.last_box.to_dict()
        return out
