"""
Geo

Distance math and radius search.

Modules:
    - distance: Haversine (scalar and numpy) and point extraction
    - index: GridIndex and brute-force scan helpers
    - proximity: ProximityFinder over the Record Store's candidate window
"""

from geofusion_kg.geo.distance import EARTH_RADIUS_M, haversine_m, haversine_many, point_coords
from geofusion_kg.geo.index import GridIndex, scan_records
from geofusion_kg.geo.proximity import ProximityFinder

__all__ = [
    "EARTH_RADIUS_M",
    "haversine_m",
    "haversine_many",
    "point_coords",
    "GridIndex",
    "scan_records",
    "ProximityFinder",
]
