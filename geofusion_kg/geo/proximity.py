"""
Proximity Finder

Finds the records within a radius of a subject record.

Strategies (same contract, same results over the same window):
    - "scan": fetch the candidate window per call and brute-force it
    - "grid": load the window once per batch into a GridIndex (prepare()),
      which the caller passes back to each find_nearby() call

The candidate window is the most recent ``candidate_window`` records with
point coordinates. Records outside the window are never considered.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from geofusion_kg.geo.distance import point_coords
from geofusion_kg.geo.index import GridIndex, scan_records
from geofusion_kg.types.records import CandidateWithDistance, Record

if TYPE_CHECKING:
    from geofusion_kg.config import FusionConfig
    from geofusion_kg.storage.base import StorageBackend

logger = logging.getLogger(__name__)

STRATEGIES = ("grid", "scan")


class ProximityFinder:
    """
    Radius search over the Record Store's candidate window.

    Example:
        >>> finder = ProximityFinder(storage, config)
        >>> index = await finder.prepare()
        >>> nearby = await finder.find_nearby(record, radius_meters=25_000, index=index)
    """

    def __init__(self, storage: "StorageBackend", config: "FusionConfig | None" = None) -> None:
        if config is None:
            from geofusion_kg.config import FusionConfig

            config = FusionConfig()

        if config.proximity_strategy not in STRATEGIES:
            raise ValueError(
                f"Unknown proximity strategy: {config.proximity_strategy!r}. "
                f"Expected one of {', '.join(STRATEGIES)}"
            )

        self._storage = storage
        self._config = config

    @property
    def strategy(self) -> str:
        return self._config.proximity_strategy

    @property
    def default_radius_meters(self) -> float:
        return self._config.default_radius_km * 1000.0

    async def prepare(self) -> GridIndex | None:
        """
        Build the grid index for one batch.

        Loads one record past the candidate window so that every subject
        still sees ``candidate_window`` neighbours once it drops itself.
        Returns None for the "scan" strategy.
        """
        if self.strategy != "grid":
            return None

        window = await self._storage.fetch_candidates(
            exclude_id=None, limit=self._config.candidate_window + 1
        )
        index = GridIndex.from_records(window, self._config.grid_cell_degrees)
        logger.debug(
            f"Indexed {len(index)} candidate records into {index.cell_count} grid cells"
        )
        return index

    async def find_nearby(
        self,
        record: Record,
        radius_meters: float | None = None,
        index: GridIndex | None = None,
    ) -> list[CandidateWithDistance]:
        """
        Records within ``radius_meters`` of ``record`` (inclusive).

        Answers from ``index`` when one is given, otherwise fetches and scans
        the candidate window. Returns an empty list when the record has no
        resolvable point. The subject itself is never returned. Output order
        is unspecified.
        """
        coords = point_coords(record.geometry)
        if coords is None:
            logger.debug(f"Record {record.id} has no resolvable point, skipping proximity")
            return []

        lat, lon = coords
        radius = self.default_radius_meters if radius_meters is None else radius_meters

        if index is not None:
            return index.query(
                lat, lon, radius, exclude_id=record.id, window=self._config.candidate_window
            )

        window = await self._storage.fetch_candidates(
            exclude_id=record.id, limit=self._config.candidate_window
        )
        return scan_records(window, lat, lon, radius, exclude_id=record.id)
