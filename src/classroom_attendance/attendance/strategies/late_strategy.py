from __future__ import annotations

from datetime import timedelta

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Late check-in."""

    def decide_checkin(self, *, elapsed: timedelta, grace_period: timedelta) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.LATE, elapsed=elapsed)
