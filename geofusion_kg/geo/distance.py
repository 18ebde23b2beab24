"""
Great-circle distance helpers.

Haversine on a spherical Earth (R = 6,371,000 m). The scalar form is used for
one-off distances; the numpy form scores a whole candidate window at once.
"""

from __future__ import annotations

import math
from numbers import Real

import numpy as np

from geofusion_kg.types.records import Geometry

EARTH_RADIUS_M = 6_371_000.0


def point_coords(geometry: Geometry | None) -> tuple[float, float] | None:
    """
    Extract (lat, lon) from a Point geometry.

    Returns None for non-point geometries and for coordinates that are
    missing, non-numeric, non-finite or out of range.
    """
    if geometry is None or str(geometry.type).lower() != "point":
        return None

    coords = geometry.coordinates
    if not isinstance(coords, (list, tuple)) or len(coords) < 2:
        return None

    lon, lat = coords[0], coords[1]
    if isinstance(lon, bool) or isinstance(lat, bool):
        return None
    if not isinstance(lon, Real) or not isinstance(lat, Real):
        return None

    lat_f, lon_f = float(lat), float(lon)
    if not (math.isfinite(lat_f) and math.isfinite(lon_f)):
        return None
    if not (-90.0 <= lat_f <= 90.0 and -180.0 <= lon_f <= 180.0):
        return None
    return lat_f, lon_f


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in meters between two (lat, lon) points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def haversine_many(
    lat: float,
    lon: float,
    lats: np.ndarray,
    lons: np.ndarray,
) -> np.ndarray:
    """Distances in meters from one point to arrays of points."""
    phi1 = np.radians(lat)
    phi2 = np.radians(lats)
    d_phi = np.radians(lats - lat)
    d_lambda = np.radians(lons - lon)

    a = np.sin(d_phi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(d_lambda / 2) ** 2
    a = np.clip(a, 0.0, 1.0)
    return EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
