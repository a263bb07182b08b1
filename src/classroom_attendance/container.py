from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .attendance.memory_attendance_repository import InMemoryAttendanceLedger
from .attendance.mysql_attendance_repository import MySQLAttendanceLedger
from .attendance.report import AttendanceReportService
from .attendance.repository import AttendanceLedger
from .attendance.service import AdmissionPipeline
from .auth.tokens import TokenService
from .common.clock import Clock, SystemClock
from .core.enums import StorageBackend
from .core.policy import AttendancePolicy
from .database.connection import DBConfig, DatabaseConnection
from .enrollment.memory_enrollment_repository import InMemoryEnrollmentRepository
from .enrollment.mysql_enrollment_repository import MySQLEnrollmentRepository
from .enrollment.repository import EnrollmentRepository
from .enrollment.service import EnrollmentService
from .ratelimit.limiter import RateLimiter
from .ratelimit.store import InMemoryCounterStore
from .realtime.broadcaster import EventBroadcaster
from .realtime.transport import Transport
from .sessions.memory_session_repository import InMemorySessionRepository
from .sessions.mysql_session_repository import MySQLSessionRepository
from .sessions.repository import SessionRepository
from .sessions.service import SessionLifecycleManager
from .sessions.store import InMemoryLiveSessionStore, LiveSessionStore
from .sweeper import Sweeper


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    clock: Clock
    policy: AttendancePolicy
    tokens: TokenService

    live_sessions: LiveSessionStore
    sessions_repo: SessionRepository
    attendance_ledger: AttendanceLedger
    enrollments_repo: EnrollmentRepository

    rate_limiter: RateLimiter
    broadcaster: EventBroadcaster
    lifecycle: SessionLifecycleManager
    admission: AdmissionPipeline
    reports: AttendanceReportService
    enrollment: EnrollmentService
    sweeper: Sweeper


def build_container(*, settings: Any, transport: Transport, clock: Clock | None = None) -> Container:
    clock = clock or SystemClock()
    policy = AttendancePolicy.from_settings(settings)
    tokens = TokenService(str(getattr(settings, "JWT_SECRET")))

    backend = StorageBackend(str(getattr(settings, "STORAGE_BACKEND", "mysql")).lower())
    conn: Optional[DatabaseConnection] = None
    if backend is StorageBackend.MYSQL:
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(getattr(settings, "DB_CONFIG")))
        sessions_repo: SessionRepository = MySQLSessionRepository(conn)
        attendance_ledger: AttendanceLedger = MySQLAttendanceLedger(conn)
        enrollments_repo: EnrollmentRepository = MySQLEnrollmentRepository(conn)
    else:
        sessions_repo = InMemorySessionRepository()
        attendance_ledger = InMemoryAttendanceLedger()
        enrollments_repo = InMemoryEnrollmentRepository()

    live_sessions = InMemoryLiveSessionStore()
    rate_limiter = RateLimiter(
        InMemoryCounterStore(),
        clock,
        max_attempts=policy.rate_limit_max_attempts,
        window=policy.rate_limit_window,
    )
    broadcaster = EventBroadcaster(transport, tokens, clock)

    lifecycle = SessionLifecycleManager(
        live_sessions,
        sessions_repo,
        enrollments_repo,
        broadcaster,
        clock,
        policy=policy,
        public_base_url=str(getattr(settings, "PUBLIC_BASE_URL", "http://localhost:5000")),
    )
    admission = AdmissionPipeline(
        live_sessions,
        attendance_ledger,
        rate_limiter,
        broadcaster,
        clock,
        policy=policy,
        sessions=sessions_repo,
    )
    reports = AttendanceReportService(attendance_ledger, sessions_repo)
    sweeper = Sweeper(lifecycle, rate_limiter, interval=policy.sweep_interval)

    return Container(
        conn=conn,
        clock=clock,
        policy=policy,
        tokens=tokens,
        live_sessions=live_sessions,
        sessions_repo=sessions_repo,
        attendance_ledger=attendance_ledger,
        enrollments_repo=enrollments_repo,
        rate_limiter=rate_limiter,
        broadcaster=broadcaster,
        lifecycle=lifecycle,
        admission=admission,
        reports=reports,
        enrollment=EnrollmentService(enrollments_repo),
        sweeper=sweeper,
    )
