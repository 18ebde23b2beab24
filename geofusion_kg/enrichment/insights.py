"""
Insight Generator

Optional one-sentence summary of a batch, produced by the configured LLM.

Skipped (returns None) when no provider is configured, insights are disabled,
or the batch is smaller than ``insight_min_records``. Any provider failure is
logged and also yields None; the insight never affects batch success.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from typing import TYPE_CHECKING, Any

from geofusion_kg.geo.distance import point_coords
from geofusion_kg.types import Record

if TYPE_CHECKING:
    from geofusion_kg.config import FusionConfig
    from geofusion_kg.providers.base import LLMProvider

logger = logging.getLogger(__name__)


INSIGHT_SYSTEM_PROMPT = (
    "You are a data analyst. Generate a brief insight about data relationships."
)


def build_insight_prompt(
    records: list[Record],
    relationships: int,
    sample_size: int = 10,
) -> str:
    """User prompt: category distribution, a record sample, relationship count."""
    distribution = Counter(r.category.value for r in records)
    categories = ", ".join(f"{name}: {count}" for name, count in distribution.most_common())

    sample: list[dict[str, Any]] = []
    for record in records[:sample_size]:
        coords = point_coords(record.geometry)
        sample.append({
            "name": record.name,
            "category": record.category.value,
            "location": list(coords) if coords else None,
        })

    return (
        f"Analyze these {len(records)} records across {len(distribution)} categories "
        f"({categories}) with {relationships} discovered relationships. "
        f"Sample: {json.dumps(sample)}. "
        "Provide one key insight in 1-2 sentences."
    )


class InsightGenerator:
    """
    Batch-level insight via an LLMProvider.

    Usage:
        generator = InsightGenerator(llm, config)
        insight = await generator.summarize(records, relationships=12)
    """

    def __init__(self, llm: "LLMProvider | None", config: "FusionConfig | None" = None):
        self.llm = llm
        self._enabled = config.insight_enabled if config else True
        self._min_records = config.insight_min_records if config else 5
        self._sample_size = config.insight_sample_size if config else 10
        self._max_tokens = config.insight_max_tokens if config else 150

    async def summarize(self, records: list[Record], relationships: int) -> str | None:
        """
        Generate an insight for a processed batch.

        Args:
            records: The batch's working set
            relationships: Relationship edges created by the batch

        Returns:
            Insight text, or None when skipped or on failure
        """
        if self.llm is None or not self._enabled:
            return None
        if len(records) < self._min_records:
            logger.debug(
                f"Skipping insight: {len(records)} records < {self._min_records}"
            )
            return None

        prompt = build_insight_prompt(records, relationships, self._sample_size)
        try:
            text = await self.llm.generate(
                prompt,
                system=INSIGHT_SYSTEM_PROMPT,
                max_tokens=self._max_tokens,
            )
        except Exception as e:
            logger.warning(f"Insight generation failed: {e}")
            return None

        text = (text or "").strip()
        if not text:
            logger.warning("Insight generation returned empty output")
            return None
        return text
