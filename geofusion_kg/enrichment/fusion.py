"""
Property Fusion Engine

Merges the closest neighbour of each fusable category into one enriched view
of the subject record.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from geofusion_kg.enrichment.relationships import closest_first
from geofusion_kg.ontology import FUSION_SLOTS
from geofusion_kg.types import CandidateWithDistance, Category, Record, StepResult

if TYPE_CHECKING:
    from geofusion_kg.config import FusionConfig
    from geofusion_kg.storage.base import StorageBackend

logger = logging.getLogger(__name__)


class FusionPlan(BaseModel):
    """Slots, sources and provenance for one fused record."""

    sources: list[str] = []
    properties: dict[str, dict[str, Any]] = {}
    provenance: dict[str, dict[str, Any]] = {}


def representatives(candidates: list[CandidateWithDistance]) -> dict[Category, CandidateWithDistance]:
    """Closest candidate per category (ties broken by id)."""
    reps: dict[Category, CandidateWithDistance] = {}
    for candidate in closest_first(candidates):
        reps.setdefault(candidate.category, candidate)
    return reps


class PropertyFusionEngine:
    """
    Writes fused records.

    A fused record is written only when at least one candidate's category
    has a fusion slot; the latest pass replaces every slot.
    """

    def __init__(self, storage: "StorageBackend", config: "FusionConfig | None" = None):
        self.storage = storage
        self.config = config

    def plan(self, candidates: list[CandidateWithDistance]) -> FusionPlan | None:
        """Slots, sources and provenance for a candidate set, or None."""
        reps = representatives(candidates)

        plan = FusionPlan()
        for category, slot in FUSION_SLOTS.items():
            rep = reps.get(category)
            if rep is None:
                continue
            plan.sources.append(category.value)
            plan.properties[slot.name] = slot.extract(rep.record)
            plan.provenance[slot.name] = {"record_id": rep.id, "distance_m": rep.distance_m}

        return plan if plan.sources else None

    async def fuse(
        self,
        subject: Record,
        candidates: list[CandidateWithDistance],
    ) -> StepResult:
        """Upsert the fused record for ``subject``; ``created`` is 1 when written."""
        result = StepResult()

        plan = self.plan(candidates)
        if plan is None:
            return result

        try:
            await self.storage.upsert_fused_record(
                subject.id, plan.sources, plan.properties, plan.provenance
            )
        except Exception as e:
            logger.warning(f"Fusion for {subject.id} failed: {e}")
            result.errors.append(f"fusion {subject.id}: {e}")
            return result

        result.created = 1
        logger.debug(f"Record {subject.id}: fused {', '.join(plan.sources)}")
        return result
