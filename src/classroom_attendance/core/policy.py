from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from . import constants


@dataclass(frozen=True)
class AttendancePolicy:
    """Session and admission policy, loaded once from settings."""

    session_window: timedelta = timedelta(seconds=constants.DEFAULT_SESSION_WINDOW_SECONDS)
    regen_window: timedelta = timedelta(seconds=constants.DEFAULT_REGEN_WINDOW_SECONDS)
    grace_period: timedelta = timedelta(seconds=constants.DEFAULT_GRACE_PERIOD_SECONDS)
    face_distance_threshold: float = constants.DEFAULT_FACE_DISTANCE_THRESHOLD
    rate_limit_max_attempts: int = constants.DEFAULT_RATE_LIMIT_MAX_ATTEMPTS
    rate_limit_window: timedelta = timedelta(seconds=constants.DEFAULT_RATE_LIMIT_WINDOW_SECONDS)
    sweep_interval: timedelta = timedelta(seconds=constants.DEFAULT_SWEEP_INTERVAL_SECONDS)
    strict_geofence: bool = False
    default_radius_meters: float = constants.DEFAULT_RADIUS_METERS
    default_room: str = constants.DEFAULT_ROOM

    @classmethod
    def from_settings(cls, settings: Any) -> "AttendancePolicy":
        def seconds(name: str, default: int) -> timedelta:
            return timedelta(seconds=float(getattr(settings, name, default)))

        return cls(
            session_window=seconds("SESSION_WINDOW_SECONDS", constants.DEFAULT_SESSION_WINDOW_SECONDS),
            regen_window=seconds("REGEN_WINDOW_SECONDS", constants.DEFAULT_REGEN_WINDOW_SECONDS),
            grace_period=seconds("GRACE_PERIOD_SECONDS", constants.DEFAULT_GRACE_PERIOD_SECONDS),
            face_distance_threshold=float(
                getattr(settings, "FACE_DISTANCE_THRESHOLD", constants.DEFAULT_FACE_DISTANCE_THRESHOLD)
            ),
            rate_limit_max_attempts=int(
                getattr(settings, "RATE_LIMIT_MAX_ATTEMPTS", constants.DEFAULT_RATE_LIMIT_MAX_ATTEMPTS)
            ),
            rate_limit_window=seconds("RATE_LIMIT_WINDOW_SECONDS", constants.DEFAULT_RATE_LIMIT_WINDOW_SECONDS),
            sweep_interval=seconds("SWEEP_INTERVAL_SECONDS", constants.DEFAULT_SWEEP_INTERVAL_SECONDS),
            strict_geofence=bool(getattr(settings, "STRICT_GEOFENCE", False)),
            default_radius_meters=float(getattr(settings, "DEFAULT_RADIUS_METERS", constants.DEFAULT_RADIUS_METERS)),
            default_room=str(getattr(settings, "DEFAULT_ROOM", constants.DEFAULT_ROOM)),
        )
