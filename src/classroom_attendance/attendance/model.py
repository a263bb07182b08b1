from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..common.clock import to_iso
from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """One student's outcome for one session; written once, never updated."""

    session_id: str
    student_id: str
    status: AttendanceStatus
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "studentId": self.student_id,
            "status": self.status.value,
            "timestamp": to_iso(self.timestamp),
        }


@dataclass(frozen=True)
class Coordinates:
    latitude: Any
    longitude: Any

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["Coordinates"]:
        """Build from a ``{"latitude": .., "longitude": ..}`` body field.

        Missing or empty objects mean "no location supplied".
        """
        if not isinstance(payload, dict):
            return None
        lat = payload.get("latitude")
        lon = payload.get("longitude")
        if lat in (None, "") and lon in (None, ""):
            return None
        return cls(latitude=lat, longitude=lon)


@dataclass(frozen=True)
class AdmissionRequest:
    session_id: str
    student_id: str
    face_verified: Any
    face_distance: Any = None
    location: Optional[Coordinates] = None


@dataclass(frozen=True)
class AdmissionResult:
    status: AttendanceStatus
    timestamp: datetime
    already_marked: bool
    session_id: str
    subject: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "status": self.status.value,
            "timestamp": to_iso(self.timestamp),
            "alreadyMarked": self.already_marked,
            "sessionId": self.session_id,
            "subject": self.subject,
        }
