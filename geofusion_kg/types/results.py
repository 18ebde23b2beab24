"""
Result Types

Types for batch requests, per-step outcomes and batch results.

API Models:
    - BatchRequest: Which records to enrich and with what radius
    - BatchResponse: Counters, insight and timing for one batch
    - BatchState: Orchestrator state machine

Pipeline Models:
    - StepResult: Outcome of one enrichment step for one record
    - RecordOutcome: Outcome of the whole pipeline for one record
    - EnrichmentStat: Per-(date, category) rollup counters
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from geofusion_kg.types.records import Category

# -----------------------------------------------------------------------------
# API Models
# -----------------------------------------------------------------------------


class BatchState(str, Enum):
    """Orchestrator states."""

    IDLE = "idle"
    FETCHING = "fetching"
    PROCESSING = "processing"
    SUMMARIZING = "summarizing"
    DONE = "done"
    FAILED = "failed"


class BatchRequest(BaseModel):
    """
    Batch selection.

    An explicit id list takes precedence over the category filter. ``limit``
    and ``radius_km`` fall back to configuration defaults when omitted.
    """

    record_ids: list[str] | None = None
    category: Category | None = None
    limit: int | None = Field(default=None, ge=1)
    radius_km: float | None = Field(default=None, gt=0)

    @field_validator("category", mode="before")
    @classmethod
    def _parse_category(cls, value: Any) -> Category | None:
        if value is None or value == "":
            return None
        return Category.parse(value)


class BatchResponse(BaseModel):
    """
    Result of one batch invocation.

    Serialized with camelCase keys (``enrichedCount``, ``aiInsight``, ...)
    via ``to_payload()``.

    Attributes:
        success: False only when no working set could be fetched
        enriched_count: Records that had at least one neighbour
        relationships_created: Net-new relationship edges
        knowledge_edges: Knowledge triples written (new or evidence appended)
        fused_records: Fused records upserted
        ai_insight: Optional free-text insight
        processing_time_ms: Wall time for the whole batch
        records_processed: Records attempted
        abandoned: Records cancelled at the batch deadline
        errors: Non-fatal per-record/per-step failures
        timing: Per-phase wall time in milliseconds
        state: Terminal batch state (DONE or FAILED); not part of the payload
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    enriched_count: int = 0
    relationships_created: int = 0
    knowledge_edges: int = 0
    fused_records: int = 0
    ai_insight: str | None = None
    processing_time_ms: int = 0
    records_processed: int = 0
    error: str | None = None
    status_code: int = 200
    abandoned: int = 0
    errors: list[str] = []
    timing: dict[str, int] = {}
    state: BatchState = Field(default=BatchState.DONE, exclude=True)

    def to_payload(self) -> dict[str, Any]:
        """Wire representation (camelCase keys)."""
        return self.model_dump(by_alias=True)


# -----------------------------------------------------------------------------
# Pipeline Models
# -----------------------------------------------------------------------------


class StepResult(BaseModel):
    """
    Outcome of one enrichment step for one subject record.

    Attributes:
        created: Rows newly written (or refreshed, for upsert-style steps)
        existing: Duplicate writes absorbed without change
        errors: Failures of individual writes within the step
    """

    created: int = 0
    existing: int = 0
    errors: list[str] = []


class RecordOutcome(BaseModel):
    """Outcome of the full enrichment pipeline for one record."""

    record_id: str
    category: Category
    candidates: int = 0
    enriched: bool = False
    relationships_created: int = 0
    relationships_existing: int = 0
    knowledge_edges: int = 0
    fused: bool = False
    errors: list[str] = []
    elapsed_ms: int = 0


class EnrichmentStat(BaseModel):
    """
    Daily rollup for one category. Counters add up across batches.
    """

    date: str
    category: Category
    records_enriched: int = 0
    relationships_created: int = 0
    knowledge_edges: int = 0
    fusion_operations: int = 0
    batches: int = 0
    total_enrichment_time_ms: int = 0

    @property
    def avg_enrichment_time_ms(self) -> float:
        """Average per-record enrichment time."""
        if not self.records_enriched:
            return 0.0
        return self.total_enrichment_time_ms / self.records_enriched
