from __future__ import annotations

import math
from typing import Any, Optional


class DomainError(Exception):
    """Base exception for business rule violations.

    ``code`` is the stable identifier sent to clients, ``http_status`` the
    status the controller layer answers with.
    """

    code = "DomainError"
    http_status = 400

    def __init__(self, message: str = "", **details: Any):
        super().__init__(message or self.code)
        self.message = message or self.code
        self._details = details

    def details(self) -> dict[str, Any]:
        return dict(self._details)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "error": self.code, "message": self.message}
        body.update(self.details())
        return body


# -- configuration / caller errors -----------------------------------------


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "ValidationError"


class MissingRequiredFields(ValidationError):
    code = "MissingRequiredFields"

    def __init__(self, *fields: str):
        super().__init__(f"Missing required fields: {', '.join(fields)}", fields=list(fields))


class InvalidLocationConfig(ValidationError):
    code = "InvalidLocationConfig"


class InvalidCoordinates(ValidationError):
    code = "InvalidCoordinates"


class InvalidFaceDistance(ValidationError):
    code = "InvalidFaceDistance"


# -- identity ---------------------------------------------------------------


class AuthenticationError(DomainError):
    """Raised when a bearer credential is missing or does not verify."""

    code = "AuthenticationFailed"
    http_status = 401


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    code = "Forbidden"
    http_status = 403


class Unauthorized(AuthorizationError):
    """The caller does not own the session it is acting on."""

    code = "Unauthorized"


class AuthorizationFailed(AuthorizationError):
    """A subscriber claimed an identity its credential does not prove."""

    code = "AuthorizationFailed"


# -- session state machine --------------------------------------------------


class StateError(DomainError):
    code = "StateError"
    http_status = 409


class NotFound(StateError):
    code = "NotFound"
    http_status = 404


class AlreadyExpired(StateError):
    code = "AlreadyExpired"


class AlreadyEnded(StateError):
    code = "AlreadyEnded"


class InvalidSession(StateError):
    code = "InvalidSession"
    http_status = 410


class SessionExpired(StateError):
    code = "SessionExpired"
    http_status = 410


# -- admission gates ----------------------------------------------------------


class GateError(DomainError):
    """Expected, user-recoverable rejection of a check-in attempt."""

    code = "GateError"
    http_status = 403


class FaceVerificationRequired(GateError):
    code = "FaceVerificationRequired"


class FaceMatchBelowThreshold(GateError):
    code = "FaceMatchBelowThreshold"

    def __init__(self, distance: float, threshold: float):
        super().__init__(
            "Face match below required threshold",
            # NaN and inf are not valid JSON
            distance=round(float(distance), 4) if math.isfinite(distance) else None,
            threshold=threshold,
        )


class OutsideGeofence(GateError):
    code = "OutsideGeofence"

    def __init__(self, distance: Optional[float], radius: float):
        if distance is None:
            message = f"Location is required within {radius:.0f}m of the class"
        else:
            message = f"You are {distance:.0f}m away from the class location. You must be within {radius:.0f}m."
        super().__init__(
            message,
            distance=None if distance is None else round(float(distance), 1),
            requiredRadius=radius,
        )
        self.distance = distance
        self.radius = radius


# -- throttling / infrastructure ---------------------------------------------


class RateLimited(DomainError):
    code = "RateLimited"
    http_status = 429

    def __init__(self, retry_after: float):
        super().__init__(
            "Too many attendance attempts. Please wait before trying again.",
            retryAfter=int(round(retry_after)),
        )
        self.retry_after = retry_after


class PersistenceError(DomainError):
    """Durable store failure; surfaced to clients as a generic failure."""

    code = "PersistenceError"
    http_status = 500

    def __init__(self, message: str = "Failed to persist attendance data"):
        super().__init__(message)


class DuplicateAttendanceError(Exception):
    """Unique (session_id, student_id) constraint hit by a ledger insert."""
