"""
Graph Types

Everything the engine writes: relationship edges between records, semantic
triples layered over records and categories, and fused per-record views.

Storage Models:
    - RelationshipEdge: Typed, confidence-scored record -> record link
    - KnowledgeEdge: Subject-predicate-object triple with provenance
    - FusedRecord: Merged view of the closest neighbour per category

Write Outcomes:
    - WriteStatus: What a keyed store write actually did
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class WriteStatus(str, Enum):
    """Result of an idempotent store write."""

    CREATED = "created"
    EXISTS = "exists"  # Duplicate absorbed, nothing changed
    UPDATED = "updated"  # Existing row refreshed (evidence appended, slots replaced)


class RelationshipType(str, Enum):
    """Relationship edge types."""

    NEAR = "near"  # Same category
    AFFECTS = "affects"  # Different categories


class RelationshipEdge(BaseModel):
    """
    A directed edge between two records.

    Identity is (source_record_id, target_record_id, relationship_type);
    at most one edge exists per identity.
    """

    id: str
    source_record_id: str
    target_record_id: str
    relationship_type: RelationshipType
    confidence: float = Field(ge=0.0, le=1.0)
    distance_meters: float
    metadata: dict[str, Any] = {}
    created_at: str | None = None


class EvidenceEntry(BaseModel):
    """One provenance entry on a knowledge edge."""

    source: str | None = None
    timestamp: str
    distance_m: float | None = None


class KnowledgeEdge(BaseModel):
    """
    A semantic triple.

    Identity is (subject_type, subject_id, predicate, object_type, object_id).
    Evidence is append-only across enrichment passes.

    Examples:
        (record, r-1) --locatedAt--> (coordinates, "39.3000,-76.6100")
        (record, r-1) --belongsTo--> (category, "GOVERNMENT")
        (record, r-1) --funds------> (record, r-2)
    """

    subject_type: str
    subject_id: str
    predicate: str
    object_type: str
    object_id: str
    weight: float = 1.0
    evidence: list[EvidenceEntry] = []
    created_at: str | None = None
    updated_at: str | None = None


class FusedRecord(BaseModel):
    """
    Enriched view of a base record.

    Attributes:
        base_record_id: Record the view is keyed on
        sources: Contributing category names
        properties: One slot per contributing category (e.g. "weather")
        provenance: Per slot, the contributing record id and its distance
        enrichment_count: Number of fusion passes that wrote this record
    """

    base_record_id: str
    sources: list[str]
    properties: dict[str, dict[str, Any]]
    provenance: dict[str, dict[str, Any]] = {}
    enrichment_count: int = 1
    created_at: str | None = None
    last_enriched_at: str | None = None
