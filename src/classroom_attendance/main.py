from __future__ import annotations

import importlib
import logging
from typing import Any, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_socketio import SocketIO
from werkzeug.exceptions import HTTPException

from .attendance.controller import register as register_attendance
from .common.clock import Clock
from .common.logging import configure_logging
from .container import build_container
from .core.exceptions import DomainError
from .database.bootstrap import apply_schema
from .enrollment.controller import register as register_enrollment
from .realtime.controller import register as register_realtime
from .realtime.transport import SocketIOTransport
from .sessions.controller import register as register_sessions
from .settings import get_settings_module

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Any] = None, *, clock: Optional[Clock] = None) -> Flask:
    load_dotenv(override=False)
    if settings is None:
        settings = importlib.import_module(get_settings_module())

    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app = Flask(__name__)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    socketio = SocketIO(app, cors_allowed_origins=getattr(settings, "CORS_ALLOWED_ORIGINS", "*"))
    container = build_container(settings=settings, transport=SocketIOTransport(socketio), clock=clock)
    app.extensions["container"] = container

    if container.conn is not None:
        db = container.conn.config
        logger.info("Storage: mysql %s@%s:%s/%s", db.user, db.host, db.port, db.database)
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(container.conn)
    else:
        logger.info("Storage: in-memory (data is lost on restart)")

    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        return jsonify(e.to_dict()), e.http_status

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        if isinstance(e, HTTPException):
            return e
        logger.exception("Unhandled error")
        return jsonify({"success": False, "error": "InternalError", "message": "Internal server error"}), 500

    @app.route("/api/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"status": "ok", "activeSessions": len(container.live_sessions)}), 200

    register_sessions(app, container)
    register_attendance(app, container)
    register_enrollment(app, container)
    register_realtime(socketio, container)

    if bool(getattr(settings, "START_SWEEPER", False)):
        socketio.start_background_task(container.sweeper.run_forever, socketio.sleep)

    return app


def run() -> None:
    app = create_app()
    socketio: SocketIO = app.extensions["socketio"]
    socketio.run(app, host="0.0.0.0", port=5000, debug=app.config["DEBUG"], allow_unsafe_werkzeug=app.config["DEBUG"])


if __name__ == "__main__":
    run()
