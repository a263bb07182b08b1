"""Settings shared by every environment; each module below overrides a few."""

import os


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
JWT_SECRET = os.getenv("JWT_SECRET", "dev-jwt-secret")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "classroom_attendance"),
}

# "mysql" or "memory"
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "mysql")

# Base URL students' phones can reach; embedded in every QR code.
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:5000")

CORS_ALLOWED_ORIGINS = os.getenv("CORS_ALLOWED_ORIGINS", "*")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
DEBUG = _env_bool("DEBUG", False)

AUTO_INIT_DB = _env_bool("AUTO_INIT_DB", False)
START_SWEEPER = _env_bool("START_SWEEPER", True)

# Attendance policy
SESSION_WINDOW_SECONDS = int(os.getenv("SESSION_WINDOW_SECONDS", "120"))
REGEN_WINDOW_SECONDS = int(os.getenv("REGEN_WINDOW_SECONDS", "600"))
GRACE_PERIOD_SECONDS = int(os.getenv("GRACE_PERIOD_SECONDS", "60"))
FACE_DISTANCE_THRESHOLD = float(os.getenv("FACE_DISTANCE_THRESHOLD", "0.45"))
RATE_LIMIT_MAX_ATTEMPTS = int(os.getenv("RATE_LIMIT_MAX_ATTEMPTS", "5"))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
SWEEP_INTERVAL_SECONDS = int(os.getenv("SWEEP_INTERVAL_SECONDS", "60"))
STRICT_GEOFENCE = _env_bool("STRICT_GEOFENCE", False)
DEFAULT_RADIUS_METERS = int(os.getenv("DEFAULT_RADIUS_METERS", "100"))
DEFAULT_ROOM = os.getenv("DEFAULT_ROOM", "Classroom")
