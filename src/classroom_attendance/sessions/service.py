from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Callable, Optional, Sequence

from ..common.clock import Clock, to_millis
from ..common.validators import optional_str, require_non_empty
from ..core.exceptions import (
    AlreadyEnded,
    AlreadyExpired,
    InvalidLocationConfig,
    InvalidSession,
    NotFound,
    Unauthorized,
)
from ..core.policy import AttendancePolicy
from ..enrollment.repository import EnrollmentRepository
from ..geo.validator import validate_coordinates
from ..realtime.broadcaster import EventBroadcaster
from .checkin_url import build_check_in_url
from .model import GeoFence, Session, SessionDescriptor
from .repository import SessionRepository
from .store import LiveSessionStore

logger = logging.getLogger(__name__)


def _short(session_id: str) -> str:
    return session_id[:8]


class SessionLifecycleManager:
    """Owns the create / regenerate / end transitions of attendance sessions.

    The live store is what admission reads; the repository is the durable
    record that survives termination. Only this class mutates either of them
    (admission may evict an expired live entry, which is idempotent).
    """

    def __init__(
        self,
        live: LiveSessionStore,
        sessions: SessionRepository,
        enrollments: EnrollmentRepository,
        broadcaster: EventBroadcaster,
        clock: Clock,
        *,
        policy: AttendancePolicy,
        public_base_url: str,
        id_factory: Callable[[], str] | None = None,
    ):
        self._live = live
        self._sessions = sessions
        self._enrollments = enrollments
        self._broadcaster = broadcaster
        self._clock = clock
        self._policy = policy
        self._base_url = public_base_url
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))
        self._lock = threading.Lock()

    # -- helpers -------------------------------------------------------------

    def _descriptor(self, session: Session) -> SessionDescriptor:
        return SessionDescriptor.of(session, build_check_in_url(self._base_url, session))

    def _geofence(self, geo_required: bool, location: Optional[dict[str, Any]]) -> Optional[GeoFence]:
        if not geo_required:
            return None
        if not isinstance(location, dict):
            raise InvalidLocationConfig("Latitude and longitude are required for geo-fenced sessions")

        lat, lon = location.get("latitude"), location.get("longitude")
        if lat in (None, "") or lon in (None, ""):
            raise InvalidLocationConfig("Latitude and longitude are required for geo-fenced sessions")
        if isinstance(lat, bool) or isinstance(lon, bool):
            raise InvalidLocationConfig("Latitude and longitude must be numeric")
        try:
            float(lat), float(lon)
        except (TypeError, ValueError):
            raise InvalidLocationConfig("Latitude and longitude must be numeric") from None
        lat, lon = validate_coordinates(lat, lon)

        radius = location.get("maxDistance", location.get("radius"))
        try:
            radius = float(radius) if radius not in (None, "") else self._policy.default_radius_meters
        except (TypeError, ValueError):
            raise InvalidLocationConfig("Radius must be a number of meters") from None
        if radius <= 0:
            raise InvalidLocationConfig("Radius must be positive")

        return GeoFence(latitude=lat, longitude=lon, radius_meters=radius)

    def _owned(self, session_id: str, faculty_id: str) -> Session:
        session = self._sessions.get_by_id(session_id)
        if not session:
            raise NotFound("Session not found")
        if session.faculty_id != faculty_id:
            logger.warning("Faculty %s tried to modify session %s owned by %s", faculty_id, _short(session_id), session.faculty_id)
            raise Unauthorized("You can only manage your own sessions")
        return session

    # -- transitions ---------------------------------------------------------

    def create(
        self,
        faculty_id: str,
        subject: str,
        room: Optional[str] = None,
        geo_required: bool = False,
        location: Optional[dict[str, Any]] = None,
    ) -> SessionDescriptor:
        faculty_id = require_non_empty(faculty_id, "facultyId")
        subject = require_non_empty(subject, "subject")
        fence = self._geofence(bool(geo_required), location)

        now = to_millis(self._clock.now())
        session = Session(
            session_id=self._new_id(),
            faculty_id=faculty_id,
            subject=subject,
            room=optional_str(room, self._policy.default_room),
            created_at=now,
            expires_at=now + self._policy.session_window,
            geo_required=fence is not None,
            location=fence,
        )

        self._sessions.create(session)
        self._live.put(session)
        descriptor = self._descriptor(session)
        logger.info(
            "Session created: %s - %s (expires %s, geo=%s)",
            subject,
            _short(session.session_id),
            session.expires_at.isoformat(),
            session.geo_required,
        )

        try:
            enrolled = self._enrollments.students_for_subject(subject=subject, faculty_id=faculty_id)
        except Exception:
            logger.exception("Could not load enrolled students for %s; skipping notifications", subject)
            enrolled = []
        self._broadcaster.session_created(descriptor, enrolled)
        return descriptor

    def regenerate(self, session_id: str, faculty_id: str) -> SessionDescriptor:
        with self._lock:
            session = self._owned(session_id, faculty_id)
            now = to_millis(self._clock.now())
            if session.is_ended:
                raise AlreadyEnded("Session already ended")
            if session.is_expired(now):
                raise AlreadyExpired("Cannot regenerate QR for expired session")

            new_expiry = now + self._policy.regen_window
            if not self._sessions.update_expiry(session_id=session_id, expires_at=new_expiry):
                raise AlreadyEnded("Session already ended")

            live = self._live.get(session_id) or session
            refreshed = live.with_expiry(new_expiry)
            self._live.put(refreshed)

        logger.info("Session regenerated: %s - %s (new expiry %s)", refreshed.subject, _short(session_id), new_expiry.isoformat())
        descriptor = self._descriptor(refreshed)
        self._broadcaster.session_regenerated(descriptor)
        return descriptor

    def end(self, session_id: str, faculty_id: str) -> Session:
        with self._lock:
            session = self._owned(session_id, faculty_id)
            if session.is_ended:
                raise AlreadyEnded("Session already ended")

            now = to_millis(self._clock.now())
            if not self._sessions.mark_ended(session_id=session_id, ended_at=now):
                self._live.delete(session_id)
                raise AlreadyEnded("Session already ended")
            self._live.delete(session_id)
            ended = session.ended(now)

        logger.info("Session ended: %s - %s by faculty %s", ended.subject, _short(session_id), faculty_id)
        self._broadcaster.session_ended(ended)
        return ended

    def sweep_expired(self) -> list[str]:
        evicted = self._live.sweep(self._clock.now())
        if evicted:
            logger.info("Evicted %d expired sessions from the live store", len(evicted))
        return evicted

    # -- queries -------------------------------------------------------------

    def describe(self, session_id: str) -> SessionDescriptor:
        session = self._live.get(session_id)
        if not session or session.is_expired(self._clock.now()):
            raise InvalidSession("Session not found or expired")
        return self._descriptor(session)

    def get_owned(self, session_id: str, faculty_id: str) -> Session:
        return self._owned(session_id, faculty_id)

    def check_in_url(self, session: Session) -> str:
        return build_check_in_url(self._base_url, session)

    def list_for_faculty(self, faculty_id: str, *, limit: int = 50) -> Sequence[Session]:
        return self._sessions.list_for_faculty(faculty_id, limit)
