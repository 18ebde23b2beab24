"""
Record Loader

Reads already-collected records from JSON files for import.

Accepted layouts:
    - GeoJSON FeatureCollection: one record per feature; record fields are
      taken from the feature's properties, the rest stay in ``properties``
    - A JSON list of record objects
    - An object with a ``records`` list

Records without an id get one hashed from their content, so re-importing a
file is a no-op; records without ``collected_at`` get the import time.
Objects may give ``latitude``/``longitude`` instead of a geometry.
"""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from geofusion_kg.types import Geometry, Record

# Feature properties lifted onto the record itself
_RECORD_KEYS = ("id", "category", "name", "title", "description", "source_id", "source", "collected_at")

# Fields hashed into the id of a record that has none
_CONTENT_KEYS = ("category", "name", "description", "source_id", "geometry", "properties")


def _feature_to_fields(feature: dict[str, Any]) -> dict[str, Any]:
    props = dict(feature.get("properties") or {})
    fields: dict[str, Any] = {
        "id": feature.get("id") or props.get("id"),
        "category": props.get("category"),
        "name": props.get("name") or props.get("title") or "",
        "description": props.get("description"),
        "geometry": feature.get("geometry"),
        "source_id": props.get("source_id") or props.get("source") or "",
        "collected_at": props.get("collected_at"),
    }
    fields["properties"] = {k: v for k, v in props.items() if k not in _RECORD_KEYS}
    return fields


def _object_to_fields(obj: Any) -> dict[str, Any]:
    if not isinstance(obj, dict):
        raise ValueError(f"Expected a record object, got {type(obj).__name__}")
    fields = dict(obj)
    lat = fields.pop("latitude", None)
    lon = fields.pop("longitude", None)
    if fields.get("geometry") is None and lat is not None and lon is not None:
        fields["geometry"] = Geometry.point(lat, lon).model_dump()
    return fields


def content_id(fields: dict[str, Any]) -> str:
    """
    Stable id for a record that arrived without one.

    Identical id-less records share an id and are stored once.
    """
    key = json.dumps(
        {k: fields.get(k) for k in _CONTENT_KEYS},
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(key.encode()).hexdigest()[:32]


def parse_records(data: Any) -> list[Record]:
    """
    Build records from decoded JSON.

    Raises:
        ValueError: Unrecognised layout or an invalid record
    """
    if isinstance(data, dict) and data.get("type") == "FeatureCollection":
        items = [_feature_to_fields(f) for f in data.get("features") or []]
    elif isinstance(data, dict) and isinstance(data.get("records"), list):
        items = [_object_to_fields(o) for o in data["records"]]
    elif isinstance(data, list):
        items = [_object_to_fields(o) for o in data]
    else:
        raise ValueError(
            "Expected a GeoJSON FeatureCollection, a list of records, "
            "or an object with a 'records' list"
        )

    now = datetime.now(timezone.utc).isoformat()
    records: list[Record] = []
    for i, fields in enumerate(items):
        if not fields.get("id"):
            fields["id"] = content_id(fields)
        else:
            fields["id"] = str(fields["id"])
        if not fields.get("collected_at"):
            fields["collected_at"] = now
        try:
            records.append(Record.model_validate(fields))
        except ValidationError as e:
            raise ValueError(f"Invalid record at index {i}: {e}") from e
    return records


def load_records(path: str | Path) -> list[Record]:
    """Read and parse a records file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Records file not found: {path}")
    return parse_records(json.loads(path.read_text()))
