"""Great-circle distance checks for geo-fenced sessions."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from ..core.constants import EARTH_RADIUS_METERS
from ..core.exceptions import InvalidCoordinates


@dataclass(frozen=True)
class GeoCheck:
    distance: float
    radius: float

    @property
    def within(self) -> bool:
        return within_radius(self.distance, self.radius)


def _coerce(value: Any, name: str) -> float:
    if isinstance(value, bool) or value is None:
        raise InvalidCoordinates(f"{name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidCoordinates(f"{name} must be a number") from None
    if math.isnan(number) or math.isinf(number):
        raise InvalidCoordinates(f"{name} must be a finite number")
    return number


def validate_coordinates(latitude: Any, longitude: Any) -> tuple[float, float]:
    lat = _coerce(latitude, "latitude")
    lon = _coerce(longitude, "longitude")
    if not -90.0 <= lat <= 90.0:
        raise InvalidCoordinates("latitude must be between -90 and 90", latitude=lat)
    if not -180.0 <= lon <= 180.0:
        raise InvalidCoordinates("longitude must be between -180 and 180", longitude=lon)
    return lat, lon


def distance_meters(lat1: Any, lon1: Any, lat2: Any, lon2: Any) -> float:
    """Haversine distance in meters on a spherical Earth."""
    lat1, lon1 = validate_coordinates(lat1, lon1)
    lat2, lon2 = validate_coordinates(lat2, lon2)

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def within_radius(distance: float, radius: float) -> bool:
    # Inclusive: a point exactly on the boundary is inside.
    return distance <= radius


def check(center_lat: float, center_lon: float, lat: Any, lon: Any, radius: float) -> GeoCheck:
    return GeoCheck(distance=distance_meters(center_lat, center_lon, lat, lon), radius=float(radius))
