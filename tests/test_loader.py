"""Tests for the record file loader."""

import json
from pathlib import Path

import pytest

from geofusion_kg.api.loader import load_records, parse_records
from geofusion_kg.types import Category


class TestFeatureCollection:
    def test_fields_lifted_from_properties(self):
        data = {
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "id": "f-1",
                    "geometry": {"type": "Point", "coordinates": [-76.61, 39.3]},
                    "properties": {
                        "category": "weather",
                        "title": "Light rain",
                        "source": "noaa",
                        "collected_at": "2024-06-01T12:00:00+00:00",
                        "temperature": 18.5,
                    },
                }
            ],
        }

        [record] = parse_records(data)
        assert record.id == "f-1"
        assert record.category == Category.WEATHER
        assert record.name == "Light rain"
        assert record.source_id == "noaa"
        assert record.geometry.coordinates == [-76.61, 39.3]
        assert record.properties == {"temperature": 18.5}

    def test_id_from_properties_and_defaults(self):
        data = {
            "type": "FeatureCollection",
            "features": [
                {"geometry": None, "properties": {"id": 7, "category": "HEALTH"}},
                {"geometry": None, "properties": {"category": "HEALTH"}},
            ],
        }

        first, second = parse_records(data)
        assert first.id == "7"
        assert second.id
        assert second.collected_at is not None


class TestRecordLists:
    def test_plain_list_with_lat_lon(self):
        [record] = parse_records([
            {"id": "g-1", "category": "GOVERNMENT", "latitude": 39.3, "longitude": -76.61}
        ])
        assert record.geometry.type == "Point"
        assert record.geometry.coordinates == [-76.61, 39.3]

    def test_records_key(self):
        records = parse_records({"records": [{"id": "a", "category": "ECONOMIC"}]})
        assert [r.id for r in records] == ["a"]

    def test_invalid_record(self):
        with pytest.raises(ValueError, match="index 1"):
            parse_records([{"id": "a", "category": "ECONOMIC"}, {"id": "b", "category": "NOPE"}])

    def test_non_object_entry(self):
        with pytest.raises(ValueError):
            parse_records(["not a record"])

    def test_unknown_layout(self):
        with pytest.raises(ValueError, match="FeatureCollection"):
            parse_records({"type": "Feature"})


class TestContentIds:
    def test_same_content_same_id(self):
        data = [{"category": "WEATHER", "name": "Fog", "latitude": 39.3, "longitude": -76.61}]

        [first] = parse_records(data)
        [second] = parse_records(json.loads(json.dumps(data)))
        assert first.id == second.id

    def test_different_content_different_id(self):
        a, b = parse_records([
            {"category": "WEATHER", "name": "Fog", "latitude": 39.3, "longitude": -76.61},
            {"category": "WEATHER", "name": "Fog", "latitude": 39.4, "longitude": -76.61},
        ])
        assert a.id != b.id

    def test_explicit_id_is_kept(self):
        [record] = parse_records([{"id": 12, "category": "WEATHER"}])
        assert record.id == "12"


class TestLoadRecords:
    def test_reads_file(self, tmp_path: Path):
        path = tmp_path / "records.json"
        path.write_text(json.dumps([{"id": "a", "category": "MARINE"}]))

        assert [r.id for r in load_records(path)] == ["a"]

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_records(tmp_path / "missing.json")
