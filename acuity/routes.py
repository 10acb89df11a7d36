"""
============================================================
 Acuity Check — Routes & Engine Controller
 Flask routes, MJPEG video streaming, SocketIO events, and
 the background detection loop (Camera → Monitor → emit).

 The detection loop only produces guidance. Answers are
 handled on request/socket handlers and never wait on it.
============================================================
"""

import logging
import threading
import time

from flask import Response, jsonify, request

import config
from acuity.camera import Camera
from acuity.database import get_recent_tests
from acuity.monitor import DistanceMonitor
from acuity.session import TestController
from acuity.staircase import StaircaseError

log = logging.getLogger(__name__)

# ── Module-level references (populated by register_routes) ──
_camera: Camera | None = None
_detector = None
_monitor: DistanceMonitor | None = None
_controller: TestController | None = None
_socketio = None

_detection_running = False
_detection_thread: threading.Thread | None = None


# ═════════════════════════════════════════════════════════════
#  PUBLIC API — called from __init__.py and main.py
# ═════════════════════════════════════════════════════════════

def register_routes(app, socketio, sink=None, start_engine=True):
    """Register all Flask routes and optionally start the camera."""
    global _socketio, _controller
    _socketio = socketio
    _controller = TestController(sink=sink)

    # ── Readiness / camera status ──
    @app.route("/api/status")
    def api_status():
        return jsonify({
            "camera_active": _detection_running,
            "distance": _monitor.to_dict() if _monitor is not None else None,
            "test_active": _controller.active,
            "version": config.VERSION,
        })

    # ── Start or retry a test ──
    @app.route("/api/test/start", methods=["POST"])
    def api_start():
        trial = _controller.start()
        _emit("trial", trial)
        return jsonify({"status": "Test started", "trial": trial})

    # ── Current trial ──
    @app.route("/api/test")
    def api_test():
        summary = _controller.summary
        return jsonify({
            "active": _controller.active,
            "trial": _controller.current_trial(),
            "summary": summary.to_dict() if summary is not None else None,
        })

    # ── Subject answer ──
    @app.route("/api/test/answer", methods=["POST"])
    def api_answer():
        data = request.get_json(silent=True) or {}
        body, status = handle_answer(data.get("direction"))
        return jsonify(body), status

    # ── Saved history ──
    @app.route("/api/history")
    def api_history():
        limit = request.args.get("limit", config.HISTORY_LIMIT, type=int)
        return jsonify(get_recent_tests(limit=limit))

    # ── Camera toggle ──
    @app.route("/api/camera", methods=["POST"])
    def api_camera():
        data = request.get_json(silent=True) or {}
        enabled = data.get("enabled")
        if enabled is None:
            enabled = not _detection_running
        if enabled:
            ok = enable_camera()
        else:
            disable_camera()
            ok = True
        return jsonify({"camera_active": _detection_running, "ok": ok})

    # ── MJPEG video feed ──
    @app.route("/video_feed")
    def video_feed():
        if _camera is None or not _camera.is_opened:
            return jsonify({"error": "Camera not available"}), 503
        return Response(
            _mjpeg_generator(),
            mimetype="multipart/x-mixed-replace; boundary=frame",
        )

    # ── SocketIO events ──
    @socketio.on("connect")
    def on_connect():
        socketio.emit("system_status", {
            "message": f"Acuity Check {config.VERSION} online.",
            "camera_active": _detection_running,
        })

    @socketio.on("answer")
    def on_answer(data):
        direction = data.get("direction") if isinstance(data, dict) else data
        body, status = handle_answer(direction)
        if status != 200:
            socketio.emit("answer_error", body)

    if start_engine:
        enable_camera()


def handle_answer(direction):
    """Shared by HTTP and SocketIO: apply an answer and emit UI events."""
    if not direction:
        return {"error": "Missing direction"}, 400
    try:
        out = _controller.answer(direction)
    except StaircaseError as e:
        return {"error": str(e)}, 409
    except ValueError as e:
        return {"error": str(e)}, 400

    if "eye_result" in out:
        _emit("eye_result", out["eye_result"])
    if "trial" in out:
        _emit("trial", out["trial"])
    if "summary" in out:
        _emit("test_complete", out["summary"])
    return out, 200


def _emit(event, payload):
    if _socketio is None:
        return
    try:
        _socketio.emit(event, payload)
    except Exception as e:
        log.warning("[ENGINE] Emit %s failed: %s", event, e)


# ═════════════════════════════════════════════════════════════
#  CAMERA + DETECTION LIFECYCLE (caller-controlled)
# ═════════════════════════════════════════════════════════════

def enable_camera() -> bool:
    """Open the camera, load the model once, start the detection loop."""
    global _camera, _detector, _monitor, _detection_running, _detection_thread
    if _detection_running:
        return True

    if _camera is not None:
        _camera.stop()
    _camera = Camera().start()
    if not _camera.is_opened:
        log.warning("[ENGINE] Camera not available, test still works without it")
        _camera.stop()
        _camera = None
        return False

    if _detector is None:
        from acuity.face_detector import load_detector
        _detector = load_detector()
    if _detector is None:
        _camera.stop()
        _camera = None
        _emit("distance_status", {"warning": "Face model failed to load.", "ready": False})
        return False

    _monitor = DistanceMonitor(_detector)
    _detection_running = True
    _detection_thread = threading.Thread(
        target=_detection_loop,
        daemon=True,
        name="Detection",
    )
    _detection_thread.start()
    log.info("[ENGINE] Detection loop started")
    return True


def disable_camera() -> None:
    """Stop detection and release the camera. Nothing restarts it implicitly."""
    global _detection_running, _camera, _detection_thread
    _detection_running = False
    if _detection_thread is not None:
        _detection_thread.join(timeout=2)
        _detection_thread = None
    if _camera is not None:
        _camera.stop()
        _camera = None
    log.info("[ENGINE] Camera disabled")


def stop_engine():
    """Gracefully shut down all background threads and resources."""
    global _detector
    disable_camera()
    if _detector is not None:
        _detector.release()
        _detector = None
    log.info("[ENGINE] All resources released.")


def _detection_loop():
    """Read camera → monitor → emit distance_status (throttled)."""
    global _detection_running
    try:
        _run_detection()
    except Exception:
        log.exception("[ENGINE] Detection loop crashed")
    finally:
        if _detection_thread is threading.current_thread():
            _detection_running = False


def _run_detection():
    last_emit = 0.0
    while _detection_running:
        camera = _camera
        if camera is None:
            break
        if camera.lost:
            _emit("distance_status", {"warning": "Camera disconnected.", "ready": False})
            break
        ok, frame = camera.read()
        if not ok or frame is None:
            time.sleep(0.005)
            continue

        status = _monitor.process_frame(frame)

        now = time.time()
        if now - last_emit >= config.SOCKETIO_EMIT_INTERVAL:
            payload = status.to_dict()
            payload["camera_fps"] = int(camera.fps)
            _emit("distance_status", payload)
            last_emit = now


# ═════════════════════════════════════════════════════════════
#  MJPEG GENERATOR
# ═════════════════════════════════════════════════════════════

def _mjpeg_generator():
    """Yield MJPEG frames from the camera thread."""
    last_jpeg = None
    while True:
        camera = _camera
        if camera is None or not camera.is_opened:
            break
        jpeg_bytes = camera.jpeg
        if jpeg_bytes is None or jpeg_bytes is last_jpeg:
            time.sleep(0.005)
            continue
        last_jpeg = jpeg_bytes
        yield (
            b"--frame\r\n"
            b"Content-Type: image/jpeg\r\n\r\n"
            + jpeg_bytes
            + b"\r\n"
        )
