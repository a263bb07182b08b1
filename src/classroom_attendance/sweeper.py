from __future__ import annotations

import logging
from datetime import timedelta
from typing import Callable

from .ratelimit.limiter import RateLimiter
from .sessions.service import SessionLifecycleManager

logger = logging.getLogger(__name__)


class Sweeper:
    """Periodic cleanup of expired live sessions and idle rate-limit counters.

    Admission re-checks expiry on every attempt, so a missed sweep only costs
    memory, never correctness.
    """

    def __init__(self, lifecycle: SessionLifecycleManager, rate_limiter: RateLimiter, *, interval: timedelta):
        self._lifecycle = lifecycle
        self._rate_limiter = rate_limiter
        self._interval = interval
        self._running = False

    def run_once(self) -> tuple[int, int]:
        sessions = len(self._lifecycle.sweep_expired())
        counters = self._rate_limiter.sweep()
        return sessions, counters

    def run_forever(self, sleep: Callable[[float], None]) -> None:
        self._running = True
        logger.info("Sweeper started (every %ss)", int(self._interval.total_seconds()))
        while self._running:
            sleep(self._interval.total_seconds())
            if not self._running:
                break
            try:
                self.run_once()
            except Exception:
                logger.exception("Sweep failed; retrying next interval")

    def stop(self) -> None:
        self._running = False
