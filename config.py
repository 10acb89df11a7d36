"""
============================================================
 Acuity Check — Central Configuration
 All tunable thresholds and constants live here.
============================================================
"""

import os
from dotenv import load_dotenv

load_dotenv()

# ── Camera ──────────────────────────────────────────────────
CAMERA_INDEX = int(os.getenv("CAMERA_INDEX", 0))
CAMERA_WIDTH = 640
CAMERA_HEIGHT = 480
CAMERA_MAX_READ_FAILURES = 50  # consecutive failed reads before the device counts as lost
CAMERA_JPEG_QUALITY = 70
CAMERA_FLIP_HORIZONTAL = False  # Keep raw geometry for distance estimation
CAMERA_ENABLED = os.getenv("CAMERA_ENABLED", "1") not in ("0", "false", "False")

# ── Flask ───────────────────────────────────────────────────
FLASK_SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "change-me")
FLASK_HOST = "0.0.0.0"
FLASK_PORT = int(os.getenv("FLASK_PORT", 5000))
FLASK_DEBUG = False

# ── MediaPipe Face Landmarker ───────────────────────────────
FACE_LANDMARKER_MODEL_PATH = os.getenv("FACE_LANDMARKER_MODEL_PATH", "face_landmarker.task")
FACE_MIN_DETECTION_CONFIDENCE = 0.5
FACE_MIN_PRESENCE_CONFIDENCE = 0.5
FACE_MIN_TRACKING_CONFIDENCE = 0.5

# ── Viewing Distance (phone / arm's length) ─────────────────
IDEAL_DISTANCE_MIN = 0.30  # meters
IDEAL_DISTANCE_MAX = 0.50  # meters
STANDARD_TEST_DISTANCE = 0.4  # meters, reported in the results table

# ── Pinhole Camera Model ────────────────────────────────────
# First-order estimate, not a calibrated measurement.
AVERAGE_FACE_WIDTH_MM = 160.0
FOCAL_LENGTH_MM = 4.15
SENSOR_WIDTH_MM = 6.4
FALLBACK_FRAME_WIDTH = 640
FALLBACK_FRAME_HEIGHT = 480

# ── Gaze Heuristic ──────────────────────────────────────────
GAZE_CENTER_TOLERANCE = 0.18  # fraction of frame from the centre, per axis
GAZE_MIN_ASPECT = 0.7
GAZE_MAX_ASPECT = 1.4

# ── Staircase ───────────────────────────────────────────────
STREAK_THRESHOLD = 3  # consecutive answers to advance / stop

# ── Scoring ─────────────────────────────────────────────────
SIMILARITY_THRESHOLD = 0.1  # logMAR difference below which eyes are "similar"
SEVERITY_NORMAL_MAX = 0.1
SEVERITY_MILD_MAX = 0.3

# ── Database ────────────────────────────────────────────────
DATABASE_URI = os.getenv("DATABASE_URI", "sqlite:///vision_history.db")
HISTORY_LIMIT = 50

# ── Firebase ────────────────────────────────────────────────
FIREBASE_CREDENTIALS = os.getenv("FIREBASE_CREDENTIALS", "")
FIREBASE_COLLECTION = "visionTests"

# ── Dashboard ───────────────────────────────────────────────
SOCKETIO_EMIT_INTERVAL = 0.1  # distance_status throttle (seconds)

# ── Version ─────────────────────────────────────────────────
VERSION = "1.0.0"
