"""
Knowledge Graph Builder

Emits semantic triples for one subject record.

Direct facts (weight 1.0):
    (record, id) --locatedAt--> (coordinates, "lat,lon")   # 4 decimals
    (record, id) --belongsTo--> (category, NAME)

Inferred facts (weight 0.8), for the closest candidates of another category:
    (record, id) --<predicate>--> (record, candidate id)

The predicate comes from the ontology table, falling back to relatedTo.
Re-adding an existing triple appends its evidence.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from geofusion_kg.enrichment.relationships import closest_first
from geofusion_kg.geo.distance import point_coords
from geofusion_kg.ontology import Predicate, determine_predicate
from geofusion_kg.types import CandidateWithDistance, EvidenceEntry, KnowledgeEdge, Record, StepResult

if TYPE_CHECKING:
    from geofusion_kg.config import FusionConfig
    from geofusion_kg.storage.base import StorageBackend

logger = logging.getLogger(__name__)

DIRECT_WEIGHT = 1.0
INFERRED_WEIGHT = 0.8


def coordinate_bucket(lat: float, lon: float) -> str:
    """Object id for a locatedAt triple."""
    return f"{lat:.4f},{lon:.4f}"


class KnowledgeGraphBuilder:
    """
    Writes knowledge edges for one subject record.

    Each triple is written independently; one failing does not block the rest.
    """

    def __init__(self, storage: "StorageBackend", config: "FusionConfig | None" = None):
        self.storage = storage
        self._max_cross_category = config.max_cross_category_edges if config else 5

    def plan_edges(
        self,
        subject: Record,
        candidates: list[CandidateWithDistance],
    ) -> list[KnowledgeEdge]:
        """All triples for ``subject``, in write order."""
        now = datetime.now(timezone.utc).isoformat()
        edges: list[KnowledgeEdge] = []

        coords = point_coords(subject.geometry)
        if coords is not None:
            edges.append(
                KnowledgeEdge(
                    subject_type="record",
                    subject_id=subject.id,
                    predicate=Predicate.LOCATED_AT.value,
                    object_type="coordinates",
                    object_id=coordinate_bucket(*coords),
                    weight=DIRECT_WEIGHT,
                    evidence=[EvidenceEntry(source=subject.source_id, timestamp=now)],
                )
            )

        edges.append(
            KnowledgeEdge(
                subject_type="record",
                subject_id=subject.id,
                predicate=Predicate.BELONGS_TO.value,
                object_type="category",
                object_id=subject.category.value,
                weight=DIRECT_WEIGHT,
                evidence=[EvidenceEntry(source="system", timestamp=now)],
            )
        )

        cross = [c for c in closest_first(candidates) if c.category != subject.category]
        for candidate in cross[: self._max_cross_category]:
            predicate = determine_predicate(subject.category, candidate.category)
            edges.append(
                KnowledgeEdge(
                    subject_type="record",
                    subject_id=subject.id,
                    predicate=predicate.value,
                    object_type="record",
                    object_id=candidate.id,
                    weight=INFERRED_WEIGHT,
                    evidence=[
                        EvidenceEntry(
                            source=candidate.record.source_id,
                            timestamp=now,
                            distance_m=candidate.distance_m,
                        )
                    ],
                )
            )

        return edges

    async def build_edges(
        self,
        subject: Record,
        candidates: list[CandidateWithDistance],
    ) -> StepResult:
        """
        Write direct and inferred triples for ``subject``.

        ``created`` counts triples written, whether new or with evidence
        appended.
        """
        result = StepResult()

        for edge in self.plan_edges(subject, candidates):
            try:
                await self.storage.add_knowledge_edge(edge)
            except Exception as e:
                logger.warning(
                    f"Knowledge edge {edge.subject_id} --{edge.predicate}--> "
                    f"{edge.object_id} failed: {e}"
                )
                result.errors.append(
                    f"knowledge {edge.subject_id} {edge.predicate} {edge.object_id}: {e}"
                )
                continue
            result.created += 1

        return result
