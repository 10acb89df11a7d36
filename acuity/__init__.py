"""
============================================================
 Acuity Check — Flask Application Factory
============================================================
"""

import logging

from flask import Flask
from flask_socketio import SocketIO

socketio = SocketIO()


def create_app(database_uri=None, start_engine=None):
    """Create and configure the Flask application."""
    app = Flask(__name__)

    import config
    app.config["SECRET_KEY"] = config.FLASK_SECRET_KEY
    app.config["SQLALCHEMY_DATABASE_URI"] = database_uri or config.DATABASE_URI

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    socketio.init_app(app, async_mode="threading", cors_allowed_origins="*")

    from acuity.database import init_db
    init_db(app.config["SQLALCHEMY_DATABASE_URI"])

    # Remote store when credentials exist, local SQLite otherwise
    from acuity.firebase_db import FirebaseDB
    from acuity.history import build_sink
    firebase = FirebaseDB()
    firebase.initialize()
    sink = build_sink(firebase)

    if start_engine is None:
        start_engine = config.CAMERA_ENABLED

    from acuity.routes import register_routes
    register_routes(app, socketio, sink=sink, start_engine=start_engine)

    return app
