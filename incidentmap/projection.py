from __future__ import annotations

import math
from typing import Tuple

# Spherical (Web) Mercator, EPSG:3857. Map surfaces report tap positions in
# these projected metres; the registry stores WGS84 degrees.

EARTH_RADIUS_M = 6378137.0
MAX_LATITUDE = 85.05112878
HALF_CIRCUMFERENCE_M = math.pi * EARTH_RADIUS_M

# Default home view: Buenos Aires
HOME_LON = -58.3816
HOME_LAT = -34.6037


def from_lon_lat(lon: float, lat: float) -> Tuple[float, float]:
    """Project lon/lat degrees to Web Mercator (x, y) metres."""
    lat = max(-MAX_LATITUDE, min(MAX_LATITUDE, lat))
    x = math.radians(lon) * EARTH_RADIUS_M
    y = math.log(math.tan(math.pi / 4 + math.radians(lat) / 2)) * EARTH_RADIUS_M
    return x, y


def to_lon_lat(x: float, y: float) -> Tuple[float, float]:
    """Inverse of from_lon_lat."""
    lon = math.degrees(x / EARTH_RADIUS_M)
    lat = math.degrees(2 * math.atan(math.exp(y / EARTH_RADIUS_M)) - math.pi / 2)
    return lon, lat


def in_world_bounds(x: float, y: float) -> bool:
    """True when (x, y) lies inside the square Web Mercator world."""
    if not (math.isfinite(x) and math.isfinite(y)):
        return False
    return abs(x) <= HALF_CIRCUMFERENCE_M and abs(y) <= HALF_CIRCUMFERENCE_M
