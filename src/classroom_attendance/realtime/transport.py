from __future__ import annotations

from typing import Any, Protocol

from flask_socketio import SocketIO

NAMESPACE = "/"


class Transport(Protocol):
    def emit(self, event: str, payload: dict[str, Any], room: str) -> None:
        raise NotImplementedError

    def join(self, sid: str, room: str) -> None:
        raise NotImplementedError

    def leave(self, sid: str, room: str) -> None:
        raise NotImplementedError


class SocketIOTransport(Transport):
    def __init__(self, socketio: SocketIO):
        self._socketio = socketio

    def emit(self, event: str, payload: dict[str, Any], room: str) -> None:
        self._socketio.emit(event, payload, to=room, namespace=NAMESPACE)

    def join(self, sid: str, room: str) -> None:
        self._socketio.server.enter_room(sid, room, namespace=NAMESPACE)

    def leave(self, sid: str, room: str) -> None:
        self._socketio.server.leave_room(sid, room, namespace=NAMESPACE)
