"""Great-Circle Distance — haversine on a spherical Earth.

Invariants:
    - EARTH_RADIUS_KM = 6371 is the single source of truth for the radius
    - Inputs in degrees, output in kilometres
    - d = 2R·atan2(√a, √(1−a)), a = sin²(Δlat/2) + cos(lat1)·cos(lat2)·sin²(Δlng/2)
"""

import math

from uemp.core.errors import InvalidArgumentError

EARTH_RADIUS_KM: float = 6371.0


def validate_coordinates(lat: float, lng: float) -> None:
    if not -90.0 <= lat <= 90.0:
        raise InvalidArgumentError(f"Latitude out of range: {lat}", field="lat")
    if not -180.0 <= lng <= 180.0:
        raise InvalidArgumentError(f"Longitude out of range: {lng}", field="lng")


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    # clamp: rounding can push a a hair past 1 for antipodal points
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))
