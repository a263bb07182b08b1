from __future__ import annotations

import importlib
from datetime import datetime, timedelta, timezone

import pytest

from classroom_attendance.container import build_container
from classroom_attendance.core.enums import Role

T0 = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = T0):
        self._now = now

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> datetime:
        self._now = self._now + timedelta(seconds=seconds)
        return self._now

    def set(self, value: datetime) -> None:
        self._now = value


class RecordingTransport:
    def __init__(self):
        self.emitted: list[tuple[str, dict, str]] = []
        self.joined: list[tuple[str, str]] = []
        self.left: list[tuple[str, str]] = []
        self.broken_rooms: set[str] = set()

    def emit(self, event, payload, room):
        if room in self.broken_rooms:
            raise ConnectionError(f"room {room} is gone")
        self.emitted.append((event, payload, room))

    def join(self, sid, room):
        self.joined.append((sid, room))

    def leave(self, sid, room):
        self.left.append((sid, room))

    def events(self, name=None, room=None):
        return [
            (e, p, r)
            for e, p, r in self.emitted
            if (name is None or e == name) and (room is None or r == room)
        ]


@pytest.fixture
def settings():
    return importlib.import_module("classroom_attendance.settings.testing")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def container(settings, transport, clock):
    return build_container(settings=settings, transport=transport, clock=clock)


@pytest.fixture
def tokens(container):
    return container.tokens


@pytest.fixture
def lifecycle(container):
    return container.lifecycle


@pytest.fixture
def admission(container):
    return container.admission


@pytest.fixture
def auth_headers(tokens):
    def _headers(user_id: str, role: Role) -> dict:
        return {"Authorization": f"Bearer {tokens.issue(user_id, role)}"}

    return _headers


@pytest.fixture
def app(settings, clock):
    from classroom_attendance.main import create_app

    return create_app(settings, clock=clock)


@pytest.fixture
def client(app):
    return app.test_client()
