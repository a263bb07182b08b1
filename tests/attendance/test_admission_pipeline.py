import threading
from datetime import timedelta

import pytest

from classroom_attendance.attendance.memory_attendance_repository import InMemoryAttendanceLedger
from classroom_attendance.attendance.model import AdmissionRequest, AttendanceRecord, Coordinates
from classroom_attendance.attendance.service import AdmissionPipeline
from classroom_attendance.core.enums import AttendanceStatus
from classroom_attendance.core.exceptions import (
    DuplicateAttendanceError,
    FaceMatchBelowThreshold,
    FaceVerificationRequired,
    InvalidCoordinates,
    InvalidFaceDistance,
    InvalidSession,
    OutsideGeofence,
    PersistenceError,
    RateLimited,
    SessionExpired,
)
from classroom_attendance.core.policy import AttendancePolicy
from classroom_attendance.ratelimit.limiter import RateLimiter
from classroom_attendance.ratelimit.store import InMemoryCounterStore
from conftest import T0


def _req(session_id, student_id="S1", face_verified=True, **kwargs):
    return AdmissionRequest(session_id=session_id, student_id=student_id, face_verified=face_verified, **kwargs)


@pytest.fixture
def session(lifecycle):
    return lifecycle.create("F1", "Math", room="A1")


@pytest.fixture
def geo_session(lifecycle):
    return lifecycle.create("F1", "Math", geo_required=True, location={"latitude": 0, "longitude": 0, "maxDistance": 100})


def test_scenario_a_present_within_grace(admission, session, clock, transport):
    clock.advance(10)

    result = admission.mark(_req(session.session_id))

    assert result.status is AttendanceStatus.PRESENT
    assert result.already_marked is False
    assert result.timestamp == T0 + timedelta(seconds=10)
    assert result.to_dict()["alreadyMarked"] is False

    rooms = sorted(r for _, _, r in transport.events("attendance_marked"))
    assert rooms == ["faculty_F1", "student_S1"]


def test_scenario_b_late_after_grace(admission, session, clock):
    clock.advance(10)
    admission.mark(_req(session.session_id, "S1"))
    clock.advance(80)

    result = admission.mark(_req(session.session_id, "S2"))

    assert result.status is AttendanceStatus.LATE


def test_scenario_c_outside_geofence(admission, geo_session):
    with pytest.raises(OutsideGeofence) as exc:
        admission.mark(_req(geo_session.session_id, location=Coordinates(0, 0.002)))

    assert exc.value.distance == pytest.approx(222.39, abs=0.1)
    assert exc.value.radius == 100
    assert exc.value.to_dict()["requiredRadius"] == 100


def test_scenario_d_ended_session_rejects(admission, lifecycle, session):
    lifecycle.end(session.session_id, "F1")

    with pytest.raises(InvalidSession):
        admission.mark(_req(session.session_id))


def test_scenario_e_second_mark_is_idempotent(admission, container, session, clock, transport):
    clock.advance(5)
    first = admission.mark(_req(session.session_id))
    clock.advance(30)

    second = admission.mark(_req(session.session_id))

    assert second.already_marked is True
    assert second.timestamp == first.timestamp
    assert second.status is first.status
    assert len(container.attendance_ledger) == 1
    assert len(transport.events("attendance_marked")) == 2


@pytest.mark.parametrize("elapsed,expected", [(0, "present"), (60, "present"), (60.001, "late"), (119, "late")])
def test_status_boundary(admission, session, clock, elapsed, expected):
    clock.advance(elapsed)
    assert admission.mark(_req(session.session_id)).status.value == expected


def test_status_uses_nominal_start_after_regeneration(admission, lifecycle, session, clock):
    clock.advance(100)
    lifecycle.regenerate(session.session_id, "F1")
    clock.advance(5)

    # nominal start is now expires_at - 2min, i.e. 8 minutes in the future
    assert admission.mark(_req(session.session_id)).status is AttendanceStatus.PRESENT


def test_expired_session_is_evicted(admission, container, session, clock):
    clock.advance(121)

    with pytest.raises(SessionExpired) as exc:
        admission.mark(_req(session.session_id))

    assert session.session_id not in container.live_sessions
    assert exc.value.to_dict()["expiresAt"] == "2026-03-02T09:02:00.000Z"


def test_expiry_is_monotonic(admission, session, clock):
    clock.advance(10)
    admission.mark(_req(session.session_id, "S1"))
    clock.advance(111)

    for student in ("S2", "S3", "S4"):
        with pytest.raises(SessionExpired):
            admission.mark(_req(session.session_id, student))


def test_mark_at_exact_expiry_is_accepted(admission, session, clock):
    clock.advance(120)
    assert admission.mark(_req(session.session_id)).status is AttendanceStatus.LATE


def test_unknown_session(admission):
    with pytest.raises(InvalidSession):
        admission.mark(_req("no-such-session"))


@pytest.mark.parametrize("flag", [False, None, "true", 1])
def test_face_gate_requires_literal_true(admission, container, session, flag):
    with pytest.raises(FaceVerificationRequired):
        admission.mark(_req(session.session_id, face_verified=flag))
    assert len(container.attendance_ledger) == 0


def test_face_distance_above_threshold(admission, session):
    with pytest.raises(FaceMatchBelowThreshold) as exc:
        admission.mark(_req(session.session_id, face_distance=0.46))

    assert exc.value.to_dict()["threshold"] == 0.45
    assert exc.value.to_dict()["distance"] == 0.46


def test_face_distance_at_threshold_is_accepted(admission, session):
    assert admission.mark(_req(session.session_id, face_distance=0.45)).already_marked is False


def test_geofence_inside_radius(admission, geo_session):
    result = admission.mark(_req(geo_session.session_id, location=Coordinates(0.0005, 0)))
    assert result.status is AttendanceStatus.PRESENT


def test_geofence_missing_location_is_lenient_by_default(admission, geo_session, caplog):
    result = admission.mark(_req(geo_session.session_id))

    assert result.status is AttendanceStatus.PRESENT
    assert "not provided" in caplog.text


def test_geofence_missing_location_rejected_when_strict(container, geo_session, clock):
    strict = AdmissionPipeline(
        container.live_sessions,
        container.attendance_ledger,
        container.rate_limiter,
        container.broadcaster,
        clock,
        policy=AttendancePolicy(strict_geofence=True),
    )

    with pytest.raises(OutsideGeofence) as exc:
        strict.mark(_req(geo_session.session_id))
    assert exc.value.distance is None


def test_geofence_invalid_student_coordinates(admission, geo_session):
    with pytest.raises(InvalidCoordinates):
        admission.mark(_req(geo_session.session_id, location=Coordinates("abc", 0)))


def test_rate_limit_applies_before_other_checks(admission, session):
    for _ in range(5):
        with pytest.raises(FaceVerificationRequired):
            admission.mark(_req(session.session_id, face_verified=False))

    with pytest.raises(RateLimited) as exc:
        admission.mark(_req(session.session_id))
    assert exc.value.to_dict()["retryAfter"] == 60


def test_rate_limit_counts_unknown_sessions_too(admission):
    for _ in range(5):
        with pytest.raises(InvalidSession):
            admission.mark(_req("ghost"))
    with pytest.raises(RateLimited):
        admission.mark(_req("ghost"))


def test_rate_limit_resets_after_window(admission, session, clock):
    for _ in range(6):
        with pytest.raises((FaceVerificationRequired, RateLimited)):
            admission.mark(_req(session.session_id, face_verified=False))
    clock.advance(61)
    result = admission.mark(_req(session.session_id, "S1"))
    # session window is two minutes, still open at t+61
    assert result.status is AttendanceStatus.LATE


def test_concurrent_marks_produce_one_record(container, session, clock, transport):
    pipeline = AdmissionPipeline(
        container.live_sessions,
        container.attendance_ledger,
        RateLimiter(InMemoryCounterStore(), clock, max_attempts=100, window=timedelta(seconds=60)),
        container.broadcaster,
        clock,
        policy=container.policy,
    )
    barrier = threading.Barrier(16)
    results = []
    errors = []

    def worker():
        barrier.wait()
        try:
            results.append(pipeline.mark(_req(session.session_id)))
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(container.attendance_ledger) == 1
    assert len({(r.status, r.timestamp) for r in results}) == 1
    assert sum(not r.already_marked for r in results) == 1
    assert len(transport.events("attendance_marked", room="student_S1")) == 1


class _LosingLedger(InMemoryAttendanceLedger):
    """Simulates another process committing between our read and our insert."""

    def __init__(self, winner: AttendanceRecord):
        super().__init__()
        self._winner = winner

    def insert(self, record):
        super().insert(self._winner)
        raise DuplicateAttendanceError((record.session_id, record.student_id))


def test_insert_conflict_returns_the_winner(container, session, clock, transport):
    winner = AttendanceRecord(session.session_id, "S1", AttendanceStatus.PRESENT, T0 + timedelta(seconds=1))
    pipeline = AdmissionPipeline(
        container.live_sessions,
        _LosingLedger(winner),
        container.rate_limiter,
        container.broadcaster,
        clock,
        policy=container.policy,
    )
    clock.advance(70)

    result = pipeline.mark(_req(session.session_id))

    assert result.already_marked is True
    assert result.status is AttendanceStatus.PRESENT
    assert result.timestamp == winner.timestamp
    assert not transport.events("attendance_marked")


class _BrokenLedger(InMemoryAttendanceLedger):
    def insert(self, record):
        raise PersistenceError()


def test_persistence_failure_propagates(container, session, clock, transport):
    pipeline = AdmissionPipeline(
        container.live_sessions,
        _BrokenLedger(),
        container.rate_limiter,
        container.broadcaster,
        clock,
        policy=container.policy,
    )

    with pytest.raises(PersistenceError):
        pipeline.mark(_req(session.session_id))
    assert not transport.events("attendance_marked")


def test_broadcast_failure_does_not_fail_the_mark(admission, container, session, transport):
    transport.broken_rooms.add("faculty_F1")

    result = admission.mark(_req(session.session_id))

    assert result.already_marked is False
    assert len(container.attendance_ledger) == 1
    assert [r for _, _, r in transport.events("attendance_marked")] == ["student_S1"]


def test_timestamps_are_kept_at_millisecond_precision(admission, container, session, clock):
    clock.set(T0 + timedelta(seconds=10, microseconds=123600))

    first = admission.mark(_req(session.session_id))
    second = admission.mark(_req(session.session_id))

    assert first.timestamp == T0 + timedelta(seconds=10, milliseconds=123)
    assert container.attendance_ledger.get(session.session_id, "S1").timestamp == first.timestamp
    assert second.to_dict()["timestamp"] == first.to_dict()["timestamp"] == "2026-03-02T09:00:10.123Z"


@pytest.mark.parametrize("distance", ["0.95", " 0.46 ", "inf"])
def test_face_distance_strings_are_checked_against_threshold(admission, container, session, distance):
    with pytest.raises(FaceMatchBelowThreshold):
        admission.mark(_req(session.session_id, face_distance=distance))
    assert len(container.attendance_ledger) == 0


def test_face_distance_numeric_string_within_threshold(admission, session):
    assert admission.mark(_req(session.session_id, face_distance="0.30")).status is AttendanceStatus.PRESENT


@pytest.mark.parametrize("distance", ["close", True, [0.1], {"d": 0.1}])
def test_face_distance_must_be_numeric(admission, container, session, distance):
    with pytest.raises(InvalidFaceDistance):
        admission.mark(_req(session.session_id, face_distance=distance))
    assert len(container.attendance_ledger) == 0


@pytest.mark.parametrize("distance", [float("nan"), "NaN"])
def test_nan_face_distance_is_rejected_without_nan_in_details(admission, session, distance):
    with pytest.raises(FaceMatchBelowThreshold) as exc:
        admission.mark(_req(session.session_id, face_distance=distance))

    assert exc.value.to_dict()["distance"] is None
