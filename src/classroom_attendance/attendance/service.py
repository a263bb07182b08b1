from __future__ import annotations

import logging
import threading
from datetime import datetime

from ..common.clock import Clock, to_iso, to_millis
from ..core.exceptions import (
    DuplicateAttendanceError,
    GateError,
    InvalidSession,
    PersistenceError,
    RateLimited,
    SessionExpired,
    StateError,
)
from ..core.policy import AttendancePolicy
from ..ratelimit.limiter import RateLimiter
from ..realtime.broadcaster import EventBroadcaster
from ..sessions.repository import SessionRepository
from ..sessions.store import LiveSessionStore
from .factory import AttendanceStrategyFactory, elapsed_since_start
from .gates import face_gate, geofence_gate
from .model import AdmissionRequest, AdmissionResult, AttendanceRecord
from .repository import AttendanceLedger

logger = logging.getLogger(__name__)

_LOCK_STRIPES = 64


class AdmissionPipeline:
    """Decides whether a check-in attempt produces an attendance record.

    Checks run in a fixed order and stop at the first failure:

    1. rate limit per (student, session)
    2. session present in the live store
    3. session not past ``expires_at`` (evicted when it is)
    4. face gate
    5. geofence gate (geo-fenced sessions only)
    6. idempotency: an existing record is returned as ``already_marked``
    7. present/late from server time since the nominal start
    8. ledger insert; a unique-key conflict means another request won

    Steps 2-6 run under a lock striped by (session, student) so they are
    atomic with respect to other attempts for the same pair. The insert runs
    outside the lock and relies on the ledger's uniqueness constraint.
    """

    def __init__(
        self,
        live: LiveSessionStore,
        ledger: AttendanceLedger,
        rate_limiter: RateLimiter,
        broadcaster: EventBroadcaster,
        clock: Clock,
        *,
        policy: AttendancePolicy,
        sessions: SessionRepository | None = None,
        strategy_factory: AttendanceStrategyFactory | None = None,
    ):
        self._live = live
        self._ledger = ledger
        self._rate_limiter = rate_limiter
        self._broadcaster = broadcaster
        self._clock = clock
        self._policy = policy
        self._sessions = sessions
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._locks = [threading.Lock() for _ in range(_LOCK_STRIPES)]

    def _lock_for(self, session_id: str, student_id: str) -> threading.Lock:
        return self._locks[hash((session_id, student_id)) % _LOCK_STRIPES]

    def mark(self, req: AdmissionRequest) -> AdmissionResult:
        session_id, student_id = req.session_id, req.student_id

        decision = self._rate_limiter.check((student_id, session_id))
        if not decision.allowed:
            logger.info("Rate limited %s on session %s (%d attempts)", student_id, session_id[:8], decision.count)
            raise RateLimited(decision.retry_after)

        with self._lock_for(session_id, student_id):
            now = to_millis(self._clock.now())
            session = self._live.get(session_id)
            if session is None:
                raise self._not_live(session_id, now)

            if session.is_expired(now):
                self._live.delete(session_id)
                raise SessionExpired("QR code has expired", expiresAt=to_iso(session.expires_at))

            try:
                face_gate(req.face_verified, req.face_distance, threshold=self._policy.face_distance_threshold)
                geofence_gate(session, req.location, strict=self._policy.strict_geofence)
            except GateError as e:
                logger.info("Check-in by %s rejected on %s: %s", student_id, session_id[:8], e.code)
                raise

            existing = self._ledger.get(session_id, student_id)
            if existing is not None:
                return self._already_marked(existing, session.subject)

            elapsed = elapsed_since_start(
                now=now,
                expires_at=session.expires_at,
                session_window=self._policy.session_window,
            )
            strategy = self._factory.for_checkin(elapsed=elapsed, grace_period=self._policy.grace_period)
            status = strategy.decide_checkin(elapsed=elapsed, grace_period=self._policy.grace_period).status

        record = AttendanceRecord(session_id=session_id, student_id=student_id, status=status, timestamp=now)
        try:
            self._ledger.insert(record)
        except DuplicateAttendanceError:
            winner = self._ledger.get(session_id, student_id)
            if winner is None:
                raise PersistenceError("Attendance conflict could not be resolved")
            logger.info("Concurrent check-in for %s on %s resolved to the first writer", student_id, session_id[:8])
            return self._already_marked(winner, session.subject)

        logger.info(
            "Attendance marked: %s %s in %s (%.0fs after start)",
            student_id,
            status.value,
            session.subject,
            elapsed.total_seconds(),
        )
        self._broadcaster.attendance_marked(session, record)
        return AdmissionResult(
            status=status,
            timestamp=record.timestamp,
            already_marked=False,
            session_id=session_id,
            subject=session.subject,
        )

    def _not_live(self, session_id: str, now: datetime) -> StateError:
        # An evicted session keeps answering "expired" rather than "unknown".
        durable = self._sessions.get_by_id(session_id) if self._sessions is not None else None
        if durable is not None and not durable.is_ended and durable.is_expired(now):
            return SessionExpired("QR code has expired", expiresAt=to_iso(durable.expires_at))
        return InvalidSession("Invalid or expired QR code")

    @staticmethod
    def _already_marked(record: AttendanceRecord, subject: str) -> AdmissionResult:
        return AdmissionResult(
            status=record.status,
            timestamp=record.timestamp,
            already_marked=True,
            session_id=record.session_id,
            subject=subject,
        )
