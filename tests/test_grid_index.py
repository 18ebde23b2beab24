"""Tests for GridIndex against the brute-force scan."""

import random

import pytest

from geofusion_kg.geo import GridIndex, scan_records
from geofusion_kg.types import Geometry, Record

# Cluster centres, including the antimeridian and a near-pole location
CENTRES = [
    (39.30, -76.61),
    (0.0, 179.8),
    (89.7, 0.0),
    (-45.0, -179.9),
]


def _cluster(rng: random.Random, prefix: str, lat: float, lon: float, n: int) -> list[Record]:
    records = []
    for i in range(n):
        rlat = max(-90.0, min(90.0, lat + rng.uniform(-3.0, 3.0)))
        rlon = lon + rng.uniform(-4.0, 4.0)
        # Wrap longitude into [-180, 180]
        rlon = ((rlon + 180.0) % 360.0) - 180.0
        records.append(
            Record(
                id=f"{prefix}-{i}",
                category="WEATHER",
                geometry=Geometry.point(rlat, rlon),
            )
        )
    return records


@pytest.fixture(scope="module")
def records() -> list[Record]:
    rng = random.Random(42)
    out: list[Record] = []
    for idx, (lat, lon) in enumerate(CENTRES):
        out.extend(_cluster(rng, f"c{idx}", lat, lon, 150))
    return out


def _ids(results) -> set[str]:
    return {c.id for c in results}


class TestGridMatchesScan:
    @pytest.mark.parametrize("radius_km", [10, 50, 200, 500])
    @pytest.mark.parametrize("cell_degrees", [0.25, 0.5, 2.0])
    def test_same_result_sets(self, records, radius_km, cell_degrees):
        index = GridIndex.from_records(records, cell_degrees=cell_degrees)
        radius_m = radius_km * 1000.0

        for lat, lon in CENTRES:
            grid = index.query(lat, lon, radius_m)
            scan = scan_records(records, lat, lon, radius_m)
            assert _ids(grid) == _ids(scan)

    def test_same_distances(self, records):
        index = GridIndex.from_records(records, cell_degrees=0.5)
        grid = {c.id: c.distance_m for c in index.query(0.0, 179.8, 300_000)}
        scan = {c.id: c.distance_m for c in scan_records(records, 0.0, 179.8, 300_000)}

        assert grid.keys() == scan.keys()
        for record_id, distance in scan.items():
            assert grid[record_id] == pytest.approx(distance)

    def test_queries_centred_on_records(self, records):
        index = GridIndex.from_records(records, cell_degrees=0.5)
        for subject in records[::37]:
            lat = subject.geometry.coordinates[1]
            lon = subject.geometry.coordinates[0]
            grid = index.query(lat, lon, 100_000, exclude_id=subject.id)
            scan = scan_records(records, lat, lon, 100_000, exclude_id=subject.id)
            assert _ids(grid) == _ids(scan)
            assert subject.id not in _ids(grid)


class TestAntimeridian:
    def test_neighbours_across_dateline(self):
        east = Record(id="east", category="MARINE", geometry=Geometry.point(0.0, 179.95))
        west = Record(id="west", category="MARINE", geometry=Geometry.point(0.0, -179.95))
        index = GridIndex.from_records([east, west], cell_degrees=0.5)

        result = index.query(0.0, 179.95, 20_000, exclude_id="east")
        assert _ids(result) == {"west"}
        assert result[0].distance_m == pytest.approx(11_119.5, rel=1e-3)


class TestPole:
    def test_neighbours_across_pole(self):
        a = Record(id="a", category="WEATHER", geometry=Geometry.point(89.9, 0.0))
        b = Record(id="b", category="WEATHER", geometry=Geometry.point(89.9, 180.0))
        index = GridIndex.from_records([a, b], cell_degrees=0.5)

        assert _ids(index.query(89.9, 0.0, 50_000, exclude_id="a")) == {"b"}


class TestIndexBasics:
    def test_non_point_records_are_skipped(self):
        point = Record(id="p", category="WEATHER", geometry=Geometry.point(1.0, 1.0))
        polygon = Record(
            id="poly",
            category="GEOSPATIAL",
            geometry=Geometry(type="Polygon", coordinates=[[[1, 1], [2, 1], [2, 2], [1, 1]]]),
        )
        bare = Record(id="bare", category="HEALTH")
        index = GridIndex.from_records([point, polygon, bare])

        assert len(index) == 1
        assert _ids(index.query(1.0, 1.0, 1_000_000)) == {"p"}

    def test_empty_index(self):
        index = GridIndex.from_records([])
        assert len(index) == 0
        assert index.cell_count == 0
        assert index.query(0.0, 0.0, 1_000) == []

    @pytest.mark.parametrize("cell_degrees", [0, -1, 200])
    def test_invalid_cell_size(self, cell_degrees):
        with pytest.raises(ValueError):
            GridIndex(cell_degrees)

    def test_cell_count(self):
        records = [
            Record(id="a", category="WEATHER", geometry=Geometry.point(0.1, 0.1)),
            Record(id="b", category="WEATHER", geometry=Geometry.point(0.2, 0.2)),
            Record(id="c", category="WEATHER", geometry=Geometry.point(10.0, 10.0)),
        ]
        assert GridIndex.from_records(records, cell_degrees=1.0).cell_count == 2


class TestWindow:
    @pytest.fixture
    def line(self) -> list[Record]:
        return [
            Record(id=f"w-{i}", category="WEATHER", geometry=Geometry.point(10.0 + i * 0.01, 10.0))
            for i in range(5)
        ]

    def test_window_counts_input_order(self, line):
        index = GridIndex.from_records(line)

        assert _ids(index.query(10.0, 10.0, 100_000, window=2)) == {"w-0", "w-1"}
        assert _ids(index.query(10.0, 10.0, 100_000)) == {f"w-{i}" for i in range(5)}

    def test_excluded_subject_frees_its_slot(self, line):
        index = GridIndex.from_records(line)

        assert _ids(index.query(10.0, 10.0, 100_000, exclude_id="w-1", window=2)) == {"w-0", "w-2"}
        assert _ids(index.query(10.0, 10.0, 100_000, exclude_id="w-4", window=2)) == {"w-0", "w-1"}

    def test_window_matches_scan_over_truncated_fetch(self, line):
        index = GridIndex.from_records(line)

        for subject in line:
            fetched = [r for r in line if r.id != subject.id][:3]
            expected = _ids(scan_records(fetched, 10.0, 10.0, 100_000))
            got = _ids(index.query(10.0, 10.0, 100_000, exclude_id=subject.id, window=3))
            assert got == expected
