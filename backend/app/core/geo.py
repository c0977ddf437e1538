"""Great-circle distance helpers."""
import math
from dataclasses import dataclass
from typing import Any

from backend.app.core.exceptions import InvalidInputError

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float


def validate_coordinate(latitude: Any, longitude: Any) -> Coordinate:
    """Build a Coordinate, rejecting non-numeric or out-of-range values."""
    for name, value in (("latitude", latitude), ("longitude", longitude)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidInputError(f"{name} must be a number")
        if math.isnan(value) or math.isinf(value):
            raise InvalidInputError(f"{name} must be a finite number")
    if not -90 <= latitude <= 90:
        raise InvalidInputError("latitude must be between -90 and 90")
    if not -180 <= longitude <= 180:
        raise InvalidInputError("longitude must be between -180 and 180")
    return Coordinate(float(latitude), float(longitude))


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Haversine distance between two points, in kilometers."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    )
    # Clamp guards against h drifting above 1 from rounding on antipodal points
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, h)))
