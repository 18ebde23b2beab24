"""
Type Definitions

Pydantic models for all data structures.

Storage Models:
    - Record, Category, Geometry - Ingested records (read-only input)
    - RelationshipEdge, RelationshipType - Record-to-record edges
    - KnowledgeEdge, EvidenceEntry - Semantic triples with provenance
    - FusedRecord - Per-record merged view
    - EnrichmentStat - Daily rollups

Pipeline Models:
    - CandidateWithDistance - Proximity result
    - StepResult, RecordOutcome - Per-record outcomes
    - WriteStatus - Idempotent write outcome

API Models:
    - BatchRequest, BatchResponse, BatchState
"""

from geofusion_kg.types.graph import (
    EvidenceEntry,
    FusedRecord,
    KnowledgeEdge,
    RelationshipEdge,
    RelationshipType,
    WriteStatus,
)
from geofusion_kg.types.records import CandidateWithDistance, Category, Geometry, Record
from geofusion_kg.types.results import (
    BatchRequest,
    BatchResponse,
    BatchState,
    EnrichmentStat,
    RecordOutcome,
    StepResult,
)

__all__ = [
    # Storage Models
    "Record",
    "Category",
    "Geometry",
    "RelationshipEdge",
    "RelationshipType",
    "KnowledgeEdge",
    "EvidenceEntry",
    "FusedRecord",
    "EnrichmentStat",
    # Pipeline Models
    "CandidateWithDistance",
    "StepResult",
    "RecordOutcome",
    "WriteStatus",
    # API Models
    "BatchRequest",
    "BatchResponse",
    "BatchState",
]
