"""Tests for ProximityFinder strategies."""

from unittest.mock import AsyncMock

import pytest

from geofusion_kg.config import FusionConfig
from geofusion_kg.geo import ProximityFinder
from geofusion_kg.types import Geometry, Record


def _record(record_id: str, lat: float, lon: float, category: str = "GOVERNMENT") -> Record:
    return Record(id=record_id, category=category, geometry=Geometry.point(lat, lon))


@pytest.fixture
def window() -> list[Record]:
    return [
        _record("subject", 39.30, -76.61),
        _record("near", 39.31, -76.61, "ECONOMIC"),
        _record("mid", 39.50, -76.61, "WEATHER"),
        _record("far", 41.00, -76.61, "HEALTH"),
    ]


@pytest.fixture
def storage(window) -> AsyncMock:
    mock = AsyncMock()

    async def fetch_candidates(exclude_id=None, limit=500):
        return [r for r in window if r.id != exclude_id][:limit]

    mock.fetch_candidates.side_effect = fetch_candidates
    return mock


class TestScanStrategy:
    @pytest.mark.asyncio
    async def test_find_nearby_scans_window(self, storage, window):
        finder = ProximityFinder(storage, FusionConfig(proximity_strategy="scan"))

        assert await finder.prepare() is None
        result = await finder.find_nearby(window[0], radius_meters=50_000)

        assert {c.id for c in result} == {"near", "mid"}
        storage.fetch_candidates.assert_awaited_with(exclude_id="subject", limit=500)

    @pytest.mark.asyncio
    async def test_default_radius_from_config(self, storage, window):
        finder = ProximityFinder(
            storage, FusionConfig(proximity_strategy="scan", default_radius_km=5.0)
        )
        result = await finder.find_nearby(window[0])
        assert {c.id for c in result} == {"near"}


class TestGridStrategy:
    @pytest.mark.asyncio
    async def test_prepare_loads_window_once(self, storage, window):
        finder = ProximityFinder(storage, FusionConfig(proximity_strategy="grid"))

        index = await finder.prepare()
        assert len(index) == 4
        first = await finder.find_nearby(window[0], radius_meters=50_000, index=index)
        second = await finder.find_nearby(window[1], radius_meters=50_000, index=index)

        assert {c.id for c in first} == {"near", "mid"}
        assert {c.id for c in second} == {"subject", "mid"}
        storage.fetch_candidates.assert_awaited_once_with(exclude_id=None, limit=501)

    @pytest.mark.asyncio
    async def test_matches_scan(self, storage, window):
        grid = ProximityFinder(storage, FusionConfig(proximity_strategy="grid"))
        index = await grid.prepare()
        scan = ProximityFinder(storage, FusionConfig(proximity_strategy="scan"))

        for subject in window:
            for radius in (1_000, 25_000, 250_000):
                g = {c.id for c in await grid.find_nearby(subject, radius, index=index)}
                s = {c.id for c in await scan.find_nearby(subject, radius)}
                assert g == s

    @pytest.mark.asyncio
    async def test_without_index_falls_back_to_fetch(self, storage, window):
        finder = ProximityFinder(storage, FusionConfig(proximity_strategy="grid"))
        await finder.prepare()

        await finder.find_nearby(window[0], radius_meters=50_000)
        assert storage.fetch_candidates.await_count == 2
        storage.fetch_candidates.assert_awaited_with(exclude_id="subject", limit=500)


class TestSmallCandidateWindow:
    """Store larger than the candidate window: both strategies see the same neighbours."""

    @pytest.fixture
    def window(self) -> list[Record]:
        # About 100 m apart, most recent first
        return [_record(f"r-{i}", 39.30 + i * 0.001, -76.61) for i in range(6)]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("candidate_window", [1, 2, 3, 5])
    async def test_grid_matches_scan(self, storage, window, candidate_window):
        grid = ProximityFinder(
            storage, FusionConfig(proximity_strategy="grid", candidate_window=candidate_window)
        )
        scan = ProximityFinder(
            storage, FusionConfig(proximity_strategy="scan", candidate_window=candidate_window)
        )
        index = await grid.prepare()

        subjects = window + [_record("outsider", 39.30, -76.61)]
        for subject in subjects:
            g = sorted(c.id for c in await grid.find_nearby(subject, 50_000, index=index))
            s = sorted(c.id for c in await scan.find_nearby(subject, 50_000))
            assert g == s
            assert len(g) == candidate_window

    @pytest.mark.asyncio
    async def test_subject_inside_window_keeps_full_window(self, storage, window):
        finder = ProximityFinder(
            storage, FusionConfig(proximity_strategy="grid", candidate_window=2)
        )
        index = await finder.prepare()

        result = await finder.find_nearby(window[0], 50_000, index=index)
        assert sorted(c.id for c in result) == ["r-1", "r-2"]

        result = await finder.find_nearby(window[4], 50_000, index=index)
        assert sorted(c.id for c in result) == ["r-0", "r-1"]


class TestEdgeCases:
    @pytest.mark.asyncio
    async def test_non_point_subject_returns_empty(self, storage):
        finder = ProximityFinder(storage, FusionConfig(proximity_strategy="scan"))
        subject = Record(id="s", category="GEOSPATIAL")

        assert await finder.find_nearby(subject) == []
        storage.fetch_candidates.assert_not_awaited()

    def test_unknown_strategy(self, storage):
        with pytest.raises(ValueError, match="Unknown proximity strategy"):
            ProximityFinder(storage, FusionConfig(proximity_strategy="kdtree"))
