from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Optional

from ..common.clock import to_iso


@dataclass(frozen=True)
class GeoFence:
    """Anchor coordinate and allowed radius of a geo-fenced session."""

    latitude: float
    longitude: float
    radius_meters: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "maxDistance": self.radius_meters,
        }


@dataclass(frozen=True)
class Session:
    """One faculty-initiated attendance window."""

    session_id: str
    faculty_id: str
    subject: str
    room: str
    created_at: datetime
    expires_at: datetime
    geo_required: bool = False
    location: Optional[GeoFence] = None
    ended_at: Optional[datetime] = None

    @property
    def is_ended(self) -> bool:
        return self.ended_at is not None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def with_expiry(self, expires_at: datetime) -> "Session":
        return replace(self, expires_at=expires_at)

    def ended(self, at: datetime) -> "Session":
        return replace(self, ended_at=at)


@dataclass(frozen=True)
class SessionDescriptor:
    """What the faculty client needs to render the QR code."""

    session_id: str
    faculty_id: str
    subject: str
    room: str
    expires_at: datetime
    check_in_url: str
    geo_required: bool
    location: Optional[GeoFence]

    @classmethod
    def of(cls, session: Session, check_in_url: str) -> "SessionDescriptor":
        return cls(
            session_id=session.session_id,
            faculty_id=session.faculty_id,
            subject=session.subject,
            room=session.room,
            expires_at=session.expires_at,
            check_in_url=check_in_url,
            geo_required=session.geo_required,
            location=session.location,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "facultyId": self.faculty_id,
            "subject": self.subject,
            "room": self.room,
            "expiresAt": to_iso(self.expires_at),
            "checkInURL": self.check_in_url,
            "geoRequired": self.geo_required,
            "location": self.location.to_dict() if self.location else None,
        }
