"""Constants and defaults.

Note: Keep policy defaults here; runtime values come from settings through
``AttendancePolicy``.
"""

DEFAULT_SESSION_WINDOW_SECONDS = 120
DEFAULT_REGEN_WINDOW_SECONDS = 600
DEFAULT_GRACE_PERIOD_SECONDS = 60
DEFAULT_FACE_DISTANCE_THRESHOLD = 0.45
DEFAULT_RATE_LIMIT_MAX_ATTEMPTS = 5
DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 60
DEFAULT_RADIUS_METERS = 100
DEFAULT_ROOM = "Classroom"
DEFAULT_HISTORY_LIMIT = 50

EARTH_RADIUS_METERS = 6_371_000
