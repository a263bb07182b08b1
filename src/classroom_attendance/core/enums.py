from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Identity kinds carried by bearer tokens."""

    FACULTY = "faculty"
    STUDENT = "student"


class AttendanceStatus(str, Enum):
    """Outcome stored for an admitted check-in."""

    PRESENT = "present"
    LATE = "late"


class EventType(str, Enum):
    SESSION_CREATED = "session_created"
    QR_AVAILABLE = "qr_available"
    SESSION_REGENERATED = "session_regenerated"
    SESSION_ENDED = "session_ended"
    ATTENDANCE_MARKED = "attendance_marked"


class StorageBackend(str, Enum):
    MYSQL = "mysql"
    MEMORY = "memory"
