from __future__ import annotations

from datetime import timedelta

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class PresentStrategy(AttendanceStrategy):
    """Check-in within the grace period of the session start."""

    def decide_checkin(self, *, elapsed: timedelta, grace_period: timedelta) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT, elapsed=elapsed)
