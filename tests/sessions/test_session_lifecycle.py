from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import pytest

from classroom_attendance.core.exceptions import (
    AlreadyEnded,
    AlreadyExpired,
    InvalidCoordinates,
    InvalidLocationConfig,
    InvalidSession,
    MissingRequiredFields,
    NotFound,
    PersistenceError,
    Unauthorized,
)
from conftest import T0


def test_create_sets_two_minute_window_and_defaults(lifecycle, container):
    d = lifecycle.create("F1", "Math")

    assert d.expires_at == T0 + timedelta(minutes=2)
    assert d.room == "Classroom"
    assert d.geo_required is False
    assert d.location is None
    assert d.session_id in container.live_sessions
    assert container.sessions_repo.get_by_id(d.session_id).created_at == T0


def test_create_builds_check_in_url(lifecycle):
    d = lifecycle.create("F1", "Data Structures", room="B-204")

    url = urlparse(d.check_in_url)
    assert url.netloc == "testserver"
    assert url.path == "/checkin.html"
    assert parse_qs(url.query) == {"session": [d.session_id], "subject": ["Data Structures"], "room": ["B-204"]}


def test_create_assigns_unique_ids(lifecycle):
    ids = {lifecycle.create("F1", "Math").session_id for _ in range(20)}
    assert len(ids) == 20


@pytest.mark.parametrize("faculty,subject", [("", "Math"), ("F1", ""), ("F1", "   "), (None, "Math")])
def test_create_requires_faculty_and_subject(lifecycle, faculty, subject):
    with pytest.raises(MissingRequiredFields):
        lifecycle.create(faculty, subject)


def test_create_geo_session_uses_default_radius(lifecycle):
    d = lifecycle.create("F1", "Math", geo_required=True, location={"latitude": 40.0, "longitude": -74.0})

    assert d.geo_required is True
    assert d.location.radius_meters == 100
    assert d.to_dict()["location"] == {"latitude": 40.0, "longitude": -74.0, "maxDistance": 100}


def test_create_geo_session_with_custom_radius(lifecycle):
    d = lifecycle.create(
        "F1", "Math", geo_required=True, location={"latitude": "40.0", "longitude": "-74.0", "maxDistance": 250}
    )
    assert d.location.radius_meters == 250.0
    assert d.location.latitude == 40.0


@pytest.mark.parametrize(
    "location",
    [
        None,
        {},
        {"latitude": 40.0},
        {"latitude": "", "longitude": -74.0},
        {"latitude": "abc", "longitude": -74.0},
        {"latitude": 40.0, "longitude": -74.0, "maxDistance": 0},
        {"latitude": 40.0, "longitude": -74.0, "maxDistance": "far"},
    ],
)
def test_create_geo_session_rejects_bad_location(lifecycle, container, location):
    with pytest.raises(InvalidLocationConfig):
        lifecycle.create("F1", "Math", geo_required=True, location=location)
    assert len(container.live_sessions) == 0


def test_create_geo_session_rejects_out_of_range_anchor(lifecycle):
    with pytest.raises(InvalidCoordinates):
        lifecycle.create("F1", "Math", geo_required=True, location={"latitude": 95, "longitude": 0})


def test_location_ignored_when_not_geo_required(lifecycle):
    d = lifecycle.create("F1", "Math", location={"latitude": 40.0, "longitude": -74.0})
    assert d.location is None


def test_create_broadcasts_to_faculty_and_enrolled_students(lifecycle, container, transport):
    container.enrollments_repo.enroll(student_id="S1", subject="Math", faculty_id="F1")
    container.enrollments_repo.enroll(student_id="S2", subject="Math", faculty_id="F1")
    container.enrollments_repo.enroll(student_id="S3", subject="Physics", faculty_id="F1")

    d = lifecycle.create("F1", "Math")

    created = transport.events("session_created")
    assert [r for _, _, r in created] == ["faculty_F1"]
    assert created[0][1]["sessionId"] == d.session_id

    qr = transport.events("qr_available")
    assert sorted(r for _, _, r in qr) == ["student_S1", "student_S2"]
    assert qr[0][1]["message"] == "New QR code available for Math"


def test_regenerate_extends_to_ten_minutes_from_now(lifecycle, container, clock, transport):
    d = lifecycle.create("F1", "Math")
    clock.advance(90)

    r = lifecycle.regenerate(d.session_id, "F1")

    assert r.expires_at == T0 + timedelta(seconds=90) + timedelta(minutes=10)
    assert container.live_sessions.get(d.session_id).expires_at == r.expires_at
    assert container.sessions_repo.get_by_id(d.session_id).expires_at == r.expires_at
    assert transport.events("session_regenerated", room="faculty_F1")


def test_regenerate_after_expiry_is_rejected_without_mutation(lifecycle, container, clock):
    d = lifecycle.create("F1", "Math")
    clock.advance(121)

    with pytest.raises(AlreadyExpired):
        lifecycle.regenerate(d.session_id, "F1")
    assert container.sessions_repo.get_by_id(d.session_id).expires_at == d.expires_at


def test_regenerate_at_exact_expiry_is_allowed(lifecycle, clock):
    d = lifecycle.create("F1", "Math")
    clock.advance(120)

    assert lifecycle.regenerate(d.session_id, "F1").expires_at > d.expires_at


def test_regenerate_reinserts_swept_live_entry(lifecycle, container):
    d = lifecycle.create("F1", "Math")
    container.live_sessions.delete(d.session_id)

    lifecycle.regenerate(d.session_id, "F1")

    assert d.session_id in container.live_sessions


def test_regenerate_checks_owner(lifecycle):
    d = lifecycle.create("F1", "Math")

    with pytest.raises(NotFound):
        lifecycle.regenerate("nope", "F1")
    with pytest.raises(Unauthorized):
        lifecycle.regenerate(d.session_id, "F2")


def test_regenerate_ended_session(lifecycle):
    d = lifecycle.create("F1", "Math")
    lifecycle.end(d.session_id, "F1")

    with pytest.raises(AlreadyEnded):
        lifecycle.regenerate(d.session_id, "F1")


def test_end_evicts_and_records_end_time(lifecycle, container, clock, transport):
    d = lifecycle.create("F1", "Math")
    clock.advance(30)

    ended = lifecycle.end(d.session_id, "F1")

    assert ended.ended_at == T0 + timedelta(seconds=30)
    assert d.session_id not in container.live_sessions
    assert container.sessions_repo.get_by_id(d.session_id).ended_at == ended.ended_at
    (_, payload, room), = transport.events("session_ended")
    assert room == "faculty_F1"
    assert payload["sessionId"] == d.session_id


def test_end_twice_is_rejected(lifecycle):
    d = lifecycle.create("F1", "Math")
    lifecycle.end(d.session_id, "F1")

    with pytest.raises(AlreadyEnded):
        lifecycle.end(d.session_id, "F1")


def test_end_by_other_faculty_is_unauthorized(lifecycle, container):
    d = lifecycle.create("F1", "Math")

    with pytest.raises(Unauthorized):
        lifecycle.end(d.session_id, "F2")
    assert d.session_id in container.live_sessions


def test_end_unknown_session(lifecycle):
    with pytest.raises(NotFound):
        lifecycle.end("missing", "F1")


def test_end_after_expiry_is_allowed(lifecycle, clock):
    d = lifecycle.create("F1", "Math")
    clock.advance(600)

    assert lifecycle.end(d.session_id, "F1").is_ended


def test_sweep_expired_evicts_only_past_sessions(lifecycle, container, clock):
    old = lifecycle.create("F1", "Math")
    clock.advance(100)
    fresh = lifecycle.create("F1", "Physics")
    clock.advance(21)

    assert lifecycle.sweep_expired() == [old.session_id]
    assert fresh.session_id in container.live_sessions
    # the durable record survives the sweep
    assert container.sessions_repo.get_by_id(old.session_id) is not None


def test_describe_live_session(lifecycle, clock):
    d = lifecycle.create("F1", "Math", room="A1")
    assert lifecycle.describe(d.session_id).room == "A1"

    clock.advance(121)
    with pytest.raises(InvalidSession):
        lifecycle.describe(d.session_id)


def test_list_for_faculty_is_newest_first(lifecycle, clock):
    first = lifecycle.create("F1", "Math")
    clock.advance(5)
    second = lifecycle.create("F1", "Physics")
    lifecycle.create("F2", "Chemistry")

    sessions = lifecycle.list_for_faculty("F1")

    assert [s.session_id for s in sessions] == [second.session_id, first.session_id]


def test_enrollment_failure_does_not_block_creation(lifecycle, container, transport, monkeypatch):
    def boom(**kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(container.enrollments_repo, "students_for_subject", boom)

    d = lifecycle.create("F1", "Math")

    assert d.session_id in container.live_sessions
    assert transport.events("session_created")
    assert not transport.events("qr_available")


def test_end_keeps_session_live_when_store_fails(lifecycle, container, monkeypatch):
    d = lifecycle.create("F1", "Math")

    def boom(**kwargs):
        raise PersistenceError("Database unavailable")

    monkeypatch.setattr(container.sessions_repo, "mark_ended", boom)

    with pytest.raises(PersistenceError):
        lifecycle.end(d.session_id, "F1")

    assert d.session_id in container.live_sessions
    assert container.sessions_repo.get_by_id(d.session_id).ended_at is None


def test_create_stores_millisecond_timestamps(lifecycle, container, clock):
    clock.set(T0 + timedelta(microseconds=123600))

    d = lifecycle.create("F1", "Math")

    stored = container.sessions_repo.get_by_id(d.session_id)
    assert stored.created_at == T0 + timedelta(milliseconds=123)
    assert d.expires_at == stored.expires_at == stored.created_at + timedelta(minutes=2)
