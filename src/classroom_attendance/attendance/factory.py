from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from .strategies.base import AttendanceStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.present_strategy import PresentStrategy


def elapsed_since_start(*, now: datetime, expires_at: datetime, session_window: timedelta) -> timedelta:
    """Time since the session's nominal start (``expires_at - session_window``)."""
    return now - (expires_at - session_window)


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def for_checkin(self, *, elapsed: timedelta, grace_period: timedelta) -> AttendanceStrategy:
        # Inclusive boundary: exactly ``grace_period`` after start is still present.
        if elapsed <= grace_period:
            return PresentStrategy()
        return LateStrategy()
