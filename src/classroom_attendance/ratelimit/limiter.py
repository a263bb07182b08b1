from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import timedelta
from typing import Hashable

from ..common.clock import Clock
from .store import CounterStore, RateLimitCounter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    count: int
    retry_after: float = 0.0


class RateLimiter:
    """Windowed attempt counter keyed by an arbitrary hashable key."""

    def __init__(self, store: CounterStore, clock: Clock, *, max_attempts: int, window: timedelta):
        self._store = store
        self._clock = clock
        self._max_attempts = int(max_attempts)
        self._window = window
        self._lock = threading.Lock()

    def check(self, key: Hashable) -> RateLimitDecision:
        now = self._clock.now()
        with self._lock:
            counter = self._store.get(key)
            if counter is None or now - counter.window_started_at > self._window:
                counter = RateLimitCounter(count=1, window_started_at=now, last_attempt_at=now)
            else:
                counter = RateLimitCounter(
                    count=counter.count + 1,
                    window_started_at=counter.window_started_at,
                    last_attempt_at=now,
                )
            self._store.put(key, counter)

        if counter.count > self._max_attempts:
            retry_after = (counter.window_started_at + self._window - now).total_seconds()
            return RateLimitDecision(allowed=False, count=counter.count, retry_after=max(retry_after, 0.0))
        return RateLimitDecision(allowed=True, count=counter.count)

    def reset(self, key: Hashable) -> None:
        self._store.delete(key)

    def sweep(self) -> int:
        now = self._clock.now()
        idle_limit = self._window * 2
        removed = self._store.sweep(lambda c: now - c.last_attempt_at > idle_limit)
        if removed:
            logger.debug("Evicted %d idle rate-limit counters", removed)
        return removed
