"""Admission gates. Each gate returns quietly or raises: a ``GateError`` for a
failed check, a ``ValidationError`` for malformed input."""

from __future__ import annotations

import logging
import math
from typing import Any, Optional

from ..core.exceptions import (
    FaceMatchBelowThreshold,
    FaceVerificationRequired,
    InvalidFaceDistance,
    OutsideGeofence,
)
from ..geo import validator as geo
from ..sessions.model import Session
from .model import Coordinates

logger = logging.getLogger(__name__)


def _face_distance(value: Any) -> Optional[float]:
    """None when not supplied; numbers and numeric strings become floats."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise InvalidFaceDistance("faceDistance must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidFaceDistance("faceDistance must be a number") from None


def face_gate(face_verified: Any, face_distance: Any, *, threshold: float) -> None:
    # Only a literal ``True`` counts; truthy strings or numbers are rejected.
    if face_verified is not True:
        raise FaceVerificationRequired("Face verification failed or not completed")

    distance = _face_distance(face_distance)
    if distance is None:
        return
    if math.isnan(distance) or distance > threshold:
        raise FaceMatchBelowThreshold(distance, threshold)


def geofence_gate(session: Session, location: Optional[Coordinates], *, strict: bool) -> Optional[float]:
    """Returns the measured distance, or None when no check was made."""
    if not session.geo_required or session.location is None:
        return None

    fence = session.location
    if location is None:
        if strict:
            raise OutsideGeofence(None, fence.radius_meters)
        logger.warning(
            "Geolocation required for session %s but not provided; admitting anyway",
            session.session_id[:8],
        )
        return None

    result = geo.check(fence.latitude, fence.longitude, location.latitude, location.longitude, fence.radius_meters)
    if not result.within:
        raise OutsideGeofence(result.distance, result.radius)
    logger.debug("Geolocation validated: %.0fm away (allowed %.0fm)", result.distance, result.radius)
    return result.distance
