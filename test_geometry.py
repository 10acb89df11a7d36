"""Geometry estimator checks: no camera or model needed."""
import math

import numpy as np

from acuity import geometry
from acuity.geometry import (
    BoxPrediction, FaceBox, LegacyCornerPrediction, MeshPrediction,
)


def test_box_prediction_used_first():
    raw = {
        "box": {"topLeft": [100, 50], "bottomRight": [260, 230]},
        "topLeft": [0, 0], "bottomRight": [10, 10],
        "scaledMesh": [[1, 1], [2, 2]],
    }
    pred = geometry.coerce_prediction(raw)
    assert isinstance(pred, BoxPrediction), f"Expected BoxPrediction, got {pred!r}"
    assert geometry.to_face_box(raw) == FaceBox(100, 50, 260, 230)


def test_legacy_corners_when_no_box():
    raw = {"topLeft": (10, 20), "bottomRight": (110, 140), "mesh": [[0, 0]]}
    assert isinstance(geometry.coerce_prediction(raw), LegacyCornerPrediction)
    assert geometry.to_face_box(raw) == FaceBox(10, 20, 110, 140)


def test_point_cloud_bounding_box():
    pts = [[120, 80], [300, 90], [200, 310], [150, 200]]
    box = geometry.to_face_box({"scaledMesh": pts})
    assert box == FaceBox(120, 80, 300, 310)
    assert geometry.to_face_box(MeshPrediction(np.array(pts))) == box


def test_object_shaped_prediction():
    class Box:
        topLeft = (5, 6)
        bottomRight = (55, 66)

    class Pred:
        box = Box()

    assert geometry.to_face_box(Pred()) == FaceBox(5, 6, 55, 66)


def test_unrecognized_shape_is_degenerate():
    for raw in ({}, {"foo": 1}, None, {"scaledMesh": []}):
        box = geometry.to_face_box(raw)
        assert box == geometry.EMPTY_BOX, f"{raw!r} → {box!r}"
        assert box.is_degenerate
        assert math.isnan(geometry.estimate_distance(box, 640))


def test_distance_reference_case():
    box = FaceBox(240, 160, 400, 320)  # 160px wide
    d = geometry.estimate_distance(box, 640)
    assert math.isclose(d, 0.415, rel_tol=1e-9), f"Expected 0.415m, got {d}"


def test_distance_decreases_with_box_width():
    widths = [40, 80, 120, 160, 240, 320]
    dists = [geometry.estimate_distance(FaceBox(0, 0, w, w), 640) for w in widths]
    assert all(a > b for a, b in zip(dists, dists[1:])), dists


def test_distance_frame_width_fallback():
    box = FaceBox(0, 0, 160, 160)
    assert geometry.estimate_distance(box, 0) == geometry.estimate_distance(box, 640)


def test_gaze_forward_centered_frontal():
    box = FaceBox(240, 160, 400, 320)  # centre (320, 240), square
    assert geometry.estimate_gaze_forward(box, 640, 480)


def test_gaze_off_center_excluded_at_boundary():
    # centre at 0.68 of the frame → offset 0.18 → not centered
    box = FaceBox(630, 450, 730, 550)
    nx, ny = geometry.gaze_offsets(box, 1000, 1000)
    assert math.isclose(nx, 0.18) and ny == 0.0
    assert not geometry.estimate_gaze_forward(box, 1000, 1000)

    box = FaceBox(620, 450, 720, 550)  # offset 0.17
    assert geometry.estimate_gaze_forward(box, 1000, 1000)


def test_gaze_vertical_offset():
    cy = (0.5 - 0.2) * 480
    box = FaceBox(270, cy - 50, 370, cy + 50)
    assert not geometry.estimate_gaze_forward(box, 640, 480)


def test_gaze_aspect_ratio_strict():
    # ratio exactly 0.7 and 1.4 are rejected
    assert not geometry.estimate_gaze_forward(FaceBox(285, 190, 355, 290), 640, 480)
    assert not geometry.estimate_gaze_forward(FaceBox(250, 190, 390, 290), 640, 480)
    # just inside
    assert geometry.estimate_gaze_forward(FaceBox(284, 190, 355, 290), 640, 480)
    assert geometry.estimate_gaze_forward(FaceBox(251, 190, 390, 290), 640, 480)


def test_points_from_landmarks_scales_to_pixels():
    class Lm:
        def __init__(self, x, y):
            self.x, self.y = x, y

    pts = geometry.points_from_landmarks([Lm(0.25, 0.5), Lm(0.75, 1.0)], 640, 480)
    assert pts.tolist() == [[160.0, 240.0], [480.0, 480.0]]


def test_points_from_no_landmarks():
    assert geometry.points_from_landmarks([], 640, 480).shape == (0, 2)


def test_malformed_predictions_give_empty_box():
    bad = [
        {"topLeft": 5, "bottomRight": 6},
        {"box": {"topLeft": None, "bottomRight": None}, "topLeft": "ab", "bottomRight": "cd"},
        {"scaledMesh": [[1, 2], [3]]},
        {"box": {"topLeft": [1], "bottomRight": [2, 3]}},
    ]
    for raw in bad:
        assert geometry.to_face_box(raw) == geometry.EMPTY_BOX, raw


def test_malformed_box_falls_through_to_mesh():
    raw = {"box": {"topLeft": "x", "bottomRight": "y"}, "mesh": [[10, 20], [30, 50]]}
    assert geometry.to_face_box(raw) == FaceBox(10, 20, 30, 50)
