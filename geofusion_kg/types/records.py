"""
Record Types

Records are the immutable, geotagged units of ingested source data.

Storage Models:
    - Record: One ingested record (owned by ingestion, read-only here)
    - Category: Closed classification enum
    - Geometry: GeoJSON-style geometry (Point / Polygon / ...)

Proximity Models:
    - CandidateWithDistance: A nearby record plus its great-circle distance
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class Category(str, Enum):
    """Domain classification of a record's source."""

    WILDLIFE = "WILDLIFE"
    WEATHER = "WEATHER"
    GOVERNMENT = "GOVERNMENT"
    ECONOMIC = "ECONOMIC"
    DEMOGRAPHICS = "DEMOGRAPHICS"
    REGULATIONS = "REGULATIONS"
    GEOSPATIAL = "GEOSPATIAL"
    MARINE = "MARINE"
    ENERGY = "ENERGY"
    HEALTH = "HEALTH"
    RECREATION = "RECREATION"
    RESEARCH = "RESEARCH"
    IMAGERY = "IMAGERY"
    TRANSPORTATION = "TRANSPORTATION"

    @classmethod
    def parse(cls, value: "str | Category") -> "Category":
        """Case-insensitive lookup. Raises ValueError for unknown names."""
        if isinstance(value, Category):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown category: {value!r}") from None


class Geometry(BaseModel):
    """
    GeoJSON-style geometry.

    Only ``Point`` geometries take part in proximity joins. Point coordinates
    follow GeoJSON order: ``[longitude, latitude]``.
    """

    model_config = ConfigDict(frozen=True)

    type: str
    coordinates: Any = None

    @classmethod
    def point(cls, lat: float, lon: float) -> "Geometry":
        """Build a Point geometry from latitude/longitude."""
        return cls(type="Point", coordinates=[lon, lat])


class Record(BaseModel):
    """
    An ingested record.

    Attributes:
        id: Unique identifier
        category: Source domain classification
        name: Display name reported by the source
        geometry: Location (only points are used for proximity)
        properties: Open, source-defined key/value bag
        source_id: Identifier of the collecting source
        collected_at: ISO-8601 collection timestamp
    """

    model_config = ConfigDict(frozen=True)

    id: str
    category: Category
    name: str = ""
    description: str | None = None
    geometry: Geometry | None = None
    properties: dict[str, Any] = {}
    source_id: str = ""
    collected_at: str | None = None

    @field_validator("category", mode="before")
    @classmethod
    def _parse_category(cls, value: Any) -> Category:
        return Category.parse(value)


class CandidateWithDistance(BaseModel):
    """A record found near a subject, with its distance in meters."""

    model_config = ConfigDict(frozen=True)

    record: Record
    distance_m: float

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def category(self) -> Category:
        return self.record.category
