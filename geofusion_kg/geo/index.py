"""
Grid Index

Fixed-size lat/lon cell bucketing for radius queries over a candidate window.

Points live in flat numpy arrays addressed by integer slot; each cell holds
the slots that fall in it. A query visits only the cells that can intersect
the search circle and then applies the exact haversine filter, so results are
identical to a brute-force scan over the same points.

Time Complexity:
    - build: O(n)
    - query: O(k) where k is the number of points in the visited cells
"""

from __future__ import annotations

import math
from collections import defaultdict
from typing import Iterable

import numpy as np

from geofusion_kg.geo.distance import EARTH_RADIUS_M, haversine_many, point_coords
from geofusion_kg.types.records import CandidateWithDistance, Record

# Slack on cell bounds so float rounding never drops a boundary point
_BOUND_SLACK = 1e-9


def scan_nearby(
    records: list[Record],
    lats: np.ndarray,
    lons: np.ndarray,
    lat: float,
    lon: float,
    radius_m: float,
    exclude_id: str | None = None,
) -> list[CandidateWithDistance]:
    """
    Exact radius filter over parallel record/coordinate arrays.

    ``records[i]`` sits at ``(lats[i], lons[i])``.
    """
    if not records:
        return []

    distances = haversine_many(lat, lon, lats, lons)
    hits = np.nonzero(distances <= radius_m)[0]

    results = []
    for slot in hits:
        record = records[int(slot)]
        if record.id == exclude_id:
            continue
        results.append(CandidateWithDistance(record=record, distance_m=float(distances[slot])))
    return results


def _coordinate_arrays(records: Iterable[Record]) -> tuple[list[Record], np.ndarray, np.ndarray]:
    """Keep records with resolvable point coordinates and split out lat/lon."""
    kept: list[Record] = []
    lats: list[float] = []
    lons: list[float] = []
    for record in records:
        coords = point_coords(record.geometry)
        if coords is None:
            continue
        kept.append(record)
        lats.append(coords[0])
        lons.append(coords[1])
    return kept, np.asarray(lats, dtype=np.float64), np.asarray(lons, dtype=np.float64)


def scan_records(
    records: Iterable[Record],
    lat: float,
    lon: float,
    radius_m: float,
    exclude_id: str | None = None,
) -> list[CandidateWithDistance]:
    """Brute-force radius query over a list of records."""
    kept, lats, lons = _coordinate_arrays(records)
    return scan_nearby(kept, lats, lons, lat, lon, radius_m, exclude_id)


class GridIndex:
    """
    Uniform lat/lon grid over a fixed set of records.

    Read-only after construction, so concurrent queries need no locking.

    Example:
        >>> index = GridIndex.from_records(records, cell_degrees=0.5)
        >>> nearby = index.query(39.30, -76.61, 50_000, exclude_id="r-1")
    """

    def __init__(self, cell_degrees: float = 0.5) -> None:
        if cell_degrees <= 0 or cell_degrees > 180:
            raise ValueError(f"cell_degrees must be in (0, 180], got {cell_degrees}")
        self.cell_degrees = cell_degrees
        self.n_rows = math.ceil(180.0 / cell_degrees)
        self.n_cols = math.ceil(360.0 / cell_degrees)

        self._records: list[Record] = []
        self._lats = np.empty(0, dtype=np.float64)
        self._lons = np.empty(0, dtype=np.float64)
        self._cells: dict[tuple[int, int], list[int]] = {}
        # Position of each record in the input order, by slot and by id
        self._ranks = np.empty(0, dtype=np.intp)
        self._rank_by_id: dict[str, int] = {}

    @classmethod
    def from_records(cls, records: Iterable[Record], cell_degrees: float = 0.5) -> "GridIndex":
        """
        Build an index; records without point coordinates are skipped.

        Input order is kept as each record's rank, which ``query(window=...)``
        uses to reproduce a per-subject candidate window.
        """
        records = list(records)
        index = cls(cell_degrees)
        for rank, record in enumerate(records):
            index._rank_by_id.setdefault(record.id, rank)
        index._records, index._lats, index._lons = _coordinate_arrays(records)
        index._ranks = np.asarray(
            [index._rank_by_id[r.id] for r in index._records], dtype=np.intp
        )

        cells: dict[tuple[int, int], list[int]] = defaultdict(list)
        for slot in range(len(index._records)):
            cells[(index._row(index._lats[slot]), index._col(index._lons[slot]))].append(slot)
        index._cells = dict(cells)
        return index

    def __len__(self) -> int:
        return len(self._records)

    @property
    def cell_count(self) -> int:
        """Number of non-empty cells."""
        return len(self._cells)

    def _row(self, lat: float) -> int:
        row = math.floor((lat + 90.0) / self.cell_degrees)
        return min(max(row, 0), self.n_rows - 1)

    def _col(self, lon: float) -> int:
        return math.floor((lon + 180.0) / self.cell_degrees) % self.n_cols

    def _candidate_cols(self, lat: float, lon: float, angular: float) -> Iterable[int]:
        """Longitude columns that can hold points within ``angular`` radians."""
        phi = math.radians(lat)
        lat_span = math.degrees(angular)

        # Circle reaches a pole, or is too wide to bound: every column
        if abs(lat) + lat_span >= 90.0 or angular >= math.pi / 2:
            return range(self.n_cols)

        ratio = math.sin(angular) / math.cos(phi)
        if ratio >= 1.0:
            return range(self.n_cols)

        lon_span = math.degrees(math.asin(ratio)) * (1 + _BOUND_SLACK) + _BOUND_SLACK
        if 2 * lon_span >= 360.0:
            return range(self.n_cols)

        first = math.floor((lon - lon_span + 180.0) / self.cell_degrees)
        last = math.floor((lon + lon_span + 180.0) / self.cell_degrees)
        if last - first + 1 >= self.n_cols:
            return range(self.n_cols)
        return sorted({c % self.n_cols for c in range(first, last + 1)})

    def query(
        self,
        lat: float,
        lon: float,
        radius_m: float,
        exclude_id: str | None = None,
        window: int | None = None,
    ) -> list[CandidateWithDistance]:
        """
        All indexed records within ``radius_m`` of (lat, lon).

        Args:
            lat: Query latitude
            lon: Query longitude
            radius_m: Inclusive search radius in meters
            exclude_id: Record id to leave out (the subject itself)
            window: Only consider the first ``window`` records in input
                order once ``exclude_id`` is removed. None means all.

        Returns:
            Unordered list of matches with their distances
        """
        if not self._records or radius_m < 0:
            return []

        max_rank = None
        if window is not None:
            # The subject frees its own slot when it sits inside the window
            subject_rank = self._rank_by_id.get(exclude_id) if exclude_id is not None else None
            max_rank = window
            if subject_rank is not None and subject_rank <= window:
                max_rank = window + 1

        angular = radius_m / EARTH_RADIUS_M
        lat_span = math.degrees(angular) * (1 + _BOUND_SLACK) + _BOUND_SLACK

        rows = range(self._row(lat - lat_span), self._row(lat + lat_span) + 1)
        cols = list(self._candidate_cols(lat, lon, angular))

        slots: list[int] = []
        for row in rows:
            for col in cols:
                bucket = self._cells.get((row, col))
                if bucket:
                    slots.extend(bucket)

        if max_rank is not None:
            slots = [s for s in slots if self._ranks[s] < max_rank]

        if not slots:
            return []

        picked = np.asarray(slots, dtype=np.intp)
        return scan_nearby(
            [self._records[s] for s in slots],
            self._lats[picked],
            self._lons[picked],
            lat,
            lon,
            radius_m,
            exclude_id,
        )
