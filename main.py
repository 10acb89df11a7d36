"""
============================================================
 Acuity Check — Main Entry Point
 Run: python main.py
============================================================
"""

import signal
import sys
import types

from acuity import create_app, socketio
import config


def signal_handler(sig: int, frame: types.FrameType | None) -> None:
    """Handle Ctrl+C gracefully."""
    print("\n\n[ACUITY] Shutting down gracefully...")
    from acuity.routes import stop_engine
    stop_engine()
    sys.exit(0)


def main():
    print(f"""
    ╔═══════════════════════════════════════════════════════╗
    ║   Acuity Check {config.VERSION:<8}                               ║
    ║   Self-administered visual acuity screening           ║
    ╚═══════════════════════════════════════════════════════╝
    """)

    print(f"  🌐 API:        http://localhost:{config.FLASK_PORT}/api/status")
    print(f"  📷 Camera:     {'Source ' + str(config.CAMERA_INDEX) if config.CAMERA_ENABLED else 'disabled'}")
    print(f"  🧠 Face model: {config.FACE_LANDMARKER_MODEL_PATH}")
    print(f"  💾 Database:   {config.DATABASE_URI}")
    print()

    app = create_app()

    signal.signal(signal.SIGINT, signal_handler)

    socketio.run(
        app,
        host=config.FLASK_HOST,
        port=config.FLASK_PORT,
        debug=config.FLASK_DEBUG,
        use_reloader=False,
        log_output=False,
        allow_unsafe_werkzeug=True,
    )


if __name__ == "__main__":
    main()
