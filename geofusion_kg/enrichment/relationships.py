"""
Relationship Synthesizer

Turns a subject's nearby candidates into record -> record edges.

For each of the closest ``max_relationships_per_record`` candidates:
    - relationship_type: "near" for the same category, "affects" otherwise
    - confidence: max(min_confidence, 1 - distance / radius), at most 1.0

Writes are idempotent; an edge that already exists is absorbed and counted
as ``existing``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from uuid import uuid4

from geofusion_kg.types import (
    CandidateWithDistance,
    Record,
    RelationshipEdge,
    RelationshipType,
    StepResult,
    WriteStatus,
)

if TYPE_CHECKING:
    from geofusion_kg.config import FusionConfig
    from geofusion_kg.storage.base import StorageBackend

logger = logging.getLogger(__name__)


def closest_first(candidates: list[CandidateWithDistance]) -> list[CandidateWithDistance]:
    """Order candidates by distance, ties broken by id."""
    return sorted(candidates, key=lambda c: (c.distance_m, c.id))


def confidence_for(distance_m: float, radius_m: float, floor: float = 0.1) -> float:
    """Linear distance decay, floored and capped to [floor, 1]."""
    if radius_m <= 0:
        return 1.0
    return min(1.0, max(floor, 1.0 - distance_m / radius_m))


class RelationshipSynthesizer:
    """
    Writes relationship edges for one subject record.

    Usage:
        synthesizer = RelationshipSynthesizer(storage, config)
        result = await synthesizer.synthesize(record, candidates, 50_000)
    """

    def __init__(self, storage: "StorageBackend", config: "FusionConfig | None" = None):
        self.storage = storage
        self._max_edges = config.max_relationships_per_record if config else 20
        self._min_confidence = config.min_confidence if config else 0.1

    def build_edge(
        self,
        subject: Record,
        candidate: CandidateWithDistance,
        radius_meters: float,
    ) -> RelationshipEdge:
        same_category = candidate.category == subject.category
        now = datetime.now(timezone.utc).isoformat()
        return RelationshipEdge(
            id=str(uuid4()),
            source_record_id=subject.id,
            target_record_id=candidate.id,
            relationship_type=RelationshipType.NEAR if same_category else RelationshipType.AFFECTS,
            confidence=confidence_for(candidate.distance_m, radius_meters, self._min_confidence),
            distance_meters=candidate.distance_m,
            metadata={
                "source_category": subject.category.value,
                "target_category": candidate.category.value,
                "enriched_at": now,
            },
            created_at=now,
        )

    async def synthesize(
        self,
        subject: Record,
        candidates: list[CandidateWithDistance],
        radius_meters: float,
    ) -> StepResult:
        """
        Create edges from ``subject`` to its closest candidates.

        A failing write is recorded and the remaining candidates are still
        attempted.
        """
        result = StepResult()

        for candidate in closest_first(candidates)[: self._max_edges]:
            edge = self.build_edge(subject, candidate, radius_meters)
            try:
                status = await self.storage.create_relationship(edge)
            except Exception as e:
                logger.warning(f"Relationship {subject.id} -> {candidate.id} failed: {e}")
                result.errors.append(f"relationship {subject.id}->{candidate.id}: {e}")
                continue

            if status == WriteStatus.CREATED:
                result.created += 1
            else:
                result.existing += 1

        logger.debug(
            f"Record {subject.id}: {result.created} relationships created, "
            f"{result.existing} existing"
        )
        return result
