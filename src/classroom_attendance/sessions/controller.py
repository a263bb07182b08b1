from __future__ import annotations

from flask import Flask, jsonify, request, send_file

from ..auth.decorators import current_identity, make_auth_required
from ..common.clock import to_iso
from ..common.validators import as_bool
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import Unauthorized
from .model import Session
from .qr_image import render_png


def _session_row(session: Session) -> dict:
    return {
        "sessionId": session.session_id,
        "subject": session.subject,
        "room": session.room,
        "createdAt": to_iso(session.created_at),
        "expiresAt": to_iso(session.expires_at),
        "endedAt": to_iso(session.ended_at) if session.ended_at else None,
        "geoRequired": session.geo_required,
        "location": session.location.to_dict() if session.location else None,
    }


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container.tokens)
    lifecycle = container.lifecycle

    @app.route("/api/faculty/sessions", methods=["POST"], endpoint="create_session")
    @auth_required(Role.FACULTY)
    def create_session():
        data = request.get_json(silent=True) or {}
        faculty_id = current_identity().user_id

        claimed = data.get("facultyId")
        if claimed and str(claimed) != faculty_id:
            raise Unauthorized("Access denied: You can only create sessions for yourself")

        descriptor = lifecycle.create(
            faculty_id,
            data.get("subject"),
            room=data.get("room"),
            geo_required=as_bool(data.get("geoRequired", False)),
            location=data.get("location"),
        )
        body = {"success": True}
        body.update(descriptor.to_dict())
        return jsonify(body), 201

    @app.route("/api/faculty/sessions/<session_id>/regenerate", methods=["POST"], endpoint="regenerate_session")
    @auth_required(Role.FACULTY)
    def regenerate_session(session_id: str):
        descriptor = lifecycle.regenerate(session_id, current_identity().user_id)
        body = {"success": True}
        body.update(descriptor.to_dict())
        return jsonify(body), 200

    @app.route("/api/faculty/sessions/<session_id>/end", methods=["POST"], endpoint="end_session")
    @auth_required(Role.FACULTY)
    def end_session(session_id: str):
        ended = lifecycle.end(session_id, current_identity().user_id)
        return jsonify(
            {
                "success": True,
                "message": "Session ended successfully",
                "sessionId": ended.session_id,
                "endedAt": to_iso(ended.ended_at),
            }
        ), 200

    @app.route("/api/faculty/sessions", methods=["GET"], endpoint="list_sessions")
    @auth_required(Role.FACULTY)
    def list_sessions():
        limit = request.args.get("limit", default=50, type=int)
        sessions = lifecycle.list_for_faculty(current_identity().user_id, limit=max(1, min(limit, 500)))
        return jsonify({"success": True, "sessions": [_session_row(s) for s in sessions]}), 200

    @app.route("/api/faculty/sessions/<session_id>/qr.png", methods=["GET"], endpoint="session_qr_image")
    @auth_required(Role.FACULTY)
    def session_qr_image(session_id: str):
        session = lifecycle.get_owned(session_id, current_identity().user_id)
        buf = render_png(lifecycle.check_in_url(session))
        return send_file(buf, mimetype="image/png")

    @app.route("/api/sessions/<session_id>", methods=["GET"], endpoint="session_info")
    def session_info(session_id: str):
        # Public: the check-in page needs subject/room/geo before the student logs in.
        body = {"success": True}
        body.update(lifecycle.describe(session_id).to_dict())
        body.pop("facultyId", None)
        return jsonify(body), 200
