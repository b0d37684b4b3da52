"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Any, Sequence

EARTH_RADIUS_KM = 6371.0
EARTH_RADIUS_M = 6_371_000.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def approx_meters(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """Equirectangular distance approximation in meters.

    Accurate enough for the few-hundred-meter spacing used when sampling routes.
    Arguments are in (lon, lat) order to match GeoJSON paths.
    """

    x = math.radians(lon2 - lon1) * math.cos(math.radians((lat1 + lat2) / 2))
    y = math.radians(lat2 - lat1)
    return math.sqrt(x * x + y * y) * EARTH_RADIUS_M


def is_lon_lat_pair(value: Any) -> bool:
    """Return True if value is a [lon, lat] pair of finite numbers."""

    if not isinstance(value, Sequence) or isinstance(value, str) or len(value) < 2:
        return False
    try:
        lon, lat = float(value[0]), float(value[1])
    except (TypeError, ValueError):
        return False
    return math.isfinite(lon) and math.isfinite(lat)
