from datetime import timedelta

import pytest

from classroom_attendance.ratelimit.limiter import RateLimiter
from classroom_attendance.ratelimit.store import InMemoryCounterStore


@pytest.fixture
def store():
    return InMemoryCounterStore()


@pytest.fixture
def limiter(store, clock):
    return RateLimiter(store, clock, max_attempts=5, window=timedelta(seconds=60))


def test_five_attempts_allowed_sixth_rejected(limiter):
    decisions = [limiter.check(("s1", "sess")) for _ in range(6)]

    assert [d.allowed for d in decisions] == [True] * 5 + [False]
    assert decisions[-1].count == 6
    assert decisions[-1].retry_after == pytest.approx(60.0)


def test_retry_after_shrinks_as_window_elapses(limiter, clock):
    for _ in range(5):
        limiter.check("k")
    clock.advance(45)

    decision = limiter.check("k")

    assert not decision.allowed
    assert decision.retry_after == pytest.approx(15.0)


def test_window_resets_after_it_elapses(limiter, clock):
    for _ in range(6):
        limiter.check("k")
    clock.advance(61)

    decision = limiter.check("k")

    assert decision.allowed
    assert decision.count == 1


def test_window_does_not_reset_at_exact_boundary(limiter, clock):
    for _ in range(5):
        limiter.check("k")
    clock.advance(60)

    assert not limiter.check("k").allowed


def test_keys_are_independent(limiter):
    for _ in range(5):
        limiter.check(("s1", "sess"))

    assert not limiter.check(("s1", "sess")).allowed
    assert limiter.check(("s2", "sess")).allowed
    assert limiter.check(("s1", "other")).allowed


def test_reset_clears_the_counter(limiter):
    for _ in range(6):
        limiter.check("k")
    limiter.reset("k")

    assert limiter.check("k").count == 1


def test_sweep_removes_only_idle_counters(limiter, store, clock):
    limiter.check("old")
    clock.advance(90)
    limiter.check("fresh")
    clock.advance(31)

    removed = limiter.sweep()

    assert removed == 1
    assert store.get("old") is None
    assert store.get("fresh") is not None
    assert len(store) == 1
