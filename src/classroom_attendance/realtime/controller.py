from __future__ import annotations

import logging

from flask import request
from flask_socketio import SocketIO, emit

from ..container import Container
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationFailed

logger = logging.getLogger(__name__)


def register(socketio: SocketIO, container: Container) -> None:
    broadcaster = container.broadcaster

    def _join(role: Role, data) -> None:
        data = data if isinstance(data, dict) else {}
        claimed = data.get(f"{role.value}Id")
        try:
            scope = broadcaster.register(request.sid, role, claimed, data.get("authToken"))
        except AuthenticationError:
            emit("error", {"message": "Authentication failed"})
            return
        except AuthorizationFailed:
            emit("error", {"message": "Authorization failed"})
            return

        emit(
            "room_joined",
            {
                "roomName": scope.room,
                f"{role.value}Id": scope.identity,
                "authenticated": True,
                "message": "Successfully joined real-time updates",
            },
        )

    def _leave(role: Role, data) -> None:
        claimed = data.get(f"{role.value}Id") if isinstance(data, dict) else data
        if isinstance(claimed, str):
            broadcaster.unregister(request.sid, role, claimed)

    @socketio.on("connect")
    def on_connect():
        logger.debug("Client connected: %s", request.sid)

    @socketio.on("join_faculty_dashboard")
    def join_faculty_dashboard(data=None):
        _join(Role.FACULTY, data)

    @socketio.on("join_student_dashboard")
    def join_student_dashboard(data=None):
        _join(Role.STUDENT, data)

    @socketio.on("leave_faculty_dashboard")
    def leave_faculty_dashboard(data=None):
        _leave(Role.FACULTY, data)

    @socketio.on("leave_student_dashboard")
    def leave_student_dashboard(data=None):
        _leave(Role.STUDENT, data)

    @socketio.on("disconnect")
    def on_disconnect(*args):
        logger.debug("Client disconnected: %s", request.sid)
