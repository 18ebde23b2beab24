"""
Batch Orchestrator

Drives one enrichment batch end to end.

Phases:
    1. FETCHING: Load the working set from the Record Store
    2. PROCESSING: Per record, in a bounded worker pool:
       proximity -> relationships -> knowledge edges -> fusion
    3. SUMMARIZING: Optional LLM insight, then the daily stats rollup

State machine:
    IDLE -> FETCHING -> PROCESSING -> SUMMARIZING -> DONE
                 \\-> FAILED (nothing fetched, or the fetch itself failed)

Per-record and per-step failures never abort the batch; they are logged and
aggregated into BatchResponse.errors. Only the fetch is fatal.

Features:
    - Semaphore-bounded concurrency (enrichment_concurrency)
    - Optional batch deadline; records still running are cancelled and
      counted as abandoned
    - Per-phase timing in milliseconds
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from geofusion_kg.enrichment.fusion import PropertyFusionEngine
from geofusion_kg.enrichment.insights import InsightGenerator
from geofusion_kg.enrichment.knowledge import KnowledgeGraphBuilder
from geofusion_kg.enrichment.relationships import RelationshipSynthesizer
from geofusion_kg.geo.proximity import ProximityFinder
from geofusion_kg.types import (
    BatchRequest,
    BatchResponse,
    BatchState,
    Category,
    EnrichmentStat,
    Record,
    RecordOutcome,
)

if TYPE_CHECKING:
    from geofusion_kg.config import FusionConfig
    from geofusion_kg.geo.index import GridIndex
    from geofusion_kg.providers.base import LLMProvider
    from geofusion_kg.storage.base import StorageBackend

logger = logging.getLogger(__name__)


def _elapsed_ms(start: int) -> int:
    return (time.perf_counter_ns() - start) // 1_000_000


def _transition(current: BatchState, state: BatchState) -> BatchState:
    logger.debug(f"Batch state: {current.value} -> {state.value}")
    return state


class BatchOrchestrator:
    """
    Runs enrichment batches against a storage backend.

    Storage, configuration and the optional LLM provider are injected. The
    proximity index and batch state are local to each run, so one
    orchestrator can serve concurrent batches.

    Usage:
        orchestrator = BatchOrchestrator(storage, config, llm=None)
        response = await orchestrator.run(BatchRequest(category="GOVERNMENT"))
        print(response.to_payload())
    """

    def __init__(
        self,
        storage: "StorageBackend",
        config: "FusionConfig | None" = None,
        llm: "LLMProvider | None" = None,
    ) -> None:
        if config is None:
            from geofusion_kg.config import FusionConfig

            config = FusionConfig()

        self.storage = storage
        self.config = config

        self.finder = ProximityFinder(storage, config)
        self.relationships = RelationshipSynthesizer(storage, config)
        self.knowledge = KnowledgeGraphBuilder(storage, config)
        self.fusion = PropertyFusionEngine(storage, config)
        self.insights = InsightGenerator(llm, config)

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    async def run_payload(self, payload: dict[str, Any] | None) -> BatchResponse:
        """
        Validate a raw request payload and run it.

        Invalid input returns a 400 response without processing.
        """
        try:
            request = BatchRequest.model_validate(payload or {})
        except ValidationError as e:
            logger.warning(f"Rejected batch request: {e}")
            return BatchResponse(
                success=False,
                error=str(e),
                status_code=400,
                state=BatchState.FAILED,
            )
        return await self.run(request)

    async def run(self, request: BatchRequest) -> BatchResponse:
        """
        Execute one enrichment batch.

        Args:
            request: Which records to enrich and with what radius

        Returns:
            BatchResponse with counts achieved, insight, errors and timing
        """
        start = time.perf_counter_ns()
        timing: dict[str, int] = {}

        limit = request.limit or self.config.batch_limit
        radius_km = request.radius_km or self.config.default_radius_km
        radius_m = radius_km * 1000.0

        # Phase 1: Fetch
        state = _transition(BatchState.IDLE, BatchState.FETCHING)
        phase_start = time.perf_counter_ns()
        try:
            records = await self.storage.fetch_records(
                record_ids=request.record_ids,
                category=request.category,
                limit=limit,
            )
        except Exception as e:
            logger.error(f"Batch fetch failed: {e}")
            return BatchResponse(
                success=False,
                error=str(e),
                status_code=500,
                processing_time_ms=_elapsed_ms(start),
                state=_transition(state, BatchState.FAILED),
            )
        timing["fetch"] = _elapsed_ms(phase_start)

        if not records:
            logger.info("Batch fetched no records")
            return BatchResponse(
                success=False,
                error="No records found",
                status_code=400,
                processing_time_ms=_elapsed_ms(start),
                state=_transition(state, BatchState.FAILED),
            )

        # Phase 2: Per-record enrichment
        state = _transition(state, BatchState.PROCESSING)
        errors: list[str] = []

        phase_start = time.perf_counter_ns()
        try:
            index = await self.finder.prepare()
        except Exception as e:
            # Workers fall back to per-call scans
            logger.warning(f"Proximity index build failed: {e}")
            errors.append(f"proximity index: {e}")
            index = None
        timing["index"] = _elapsed_ms(phase_start)

        phase_start = time.perf_counter_ns()
        outcomes, abandoned = await self._process_all(records, radius_m, index)
        timing["processing"] = _elapsed_ms(phase_start)

        for outcome in outcomes:
            errors.extend(outcome.errors)

        enriched = sum(1 for o in outcomes if o.enriched)
        relationships_created = sum(o.relationships_created for o in outcomes)
        knowledge_edges = sum(o.knowledge_edges for o in outcomes)
        fused = sum(1 for o in outcomes if o.fused)

        # Phase 3: Insight and rollup
        state = _transition(state, BatchState.SUMMARIZING)
        phase_start = time.perf_counter_ns()
        insight = await self.insights.summarize(records, relationships_created)
        timing["insight"] = _elapsed_ms(phase_start)

        phase_start = time.perf_counter_ns()
        errors.extend(await self._rollup_stats(outcomes))
        timing["stats"] = _elapsed_ms(phase_start)

        state = _transition(state, BatchState.DONE)
        total_ms = _elapsed_ms(start)
        logger.info(
            f"Batch done: {enriched}/{len(records)} enriched, "
            f"{relationships_created} relationships, {knowledge_edges} knowledge edges, "
            f"{fused} fused, {abandoned} abandoned, {len(errors)} errors, {total_ms}ms"
        )

        return BatchResponse(
            success=True,
            enriched_count=enriched,
            relationships_created=relationships_created,
            knowledge_edges=knowledge_edges,
            fused_records=fused,
            ai_insight=insight,
            processing_time_ms=total_ms,
            records_processed=len(records),
            abandoned=abandoned,
            errors=errors,
            timing=timing,
            state=state,
        )

    # -------------------------------------------------------------------------
    # Processing
    # -------------------------------------------------------------------------

    async def _process_all(
        self,
        records: list[Record],
        radius_m: float,
        index: "GridIndex | None" = None,
    ) -> tuple[list[RecordOutcome], int]:
        """
        Run every record's pipeline with bounded concurrency.

        Returns:
            Tuple of (outcomes for finished records, abandoned count)
        """
        semaphore = asyncio.Semaphore(self.config.enrichment_concurrency)

        async def process_with_semaphore(record: Record) -> RecordOutcome:
            async with semaphore:
                return await self._process_record(record, radius_m, index)

        tasks = [asyncio.create_task(process_with_semaphore(r)) for r in records]

        _, pending = await asyncio.wait(tasks, timeout=self.config.batch_timeout_seconds)
        if pending:
            logger.warning(
                f"Batch deadline of {self.config.batch_timeout_seconds}s reached, "
                f"cancelling {len(pending)} records"
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        outcomes: list[RecordOutcome] = []
        abandoned = 0
        for record, task in zip(records, tasks):
            if task.cancelled():
                abandoned += 1
                continue
            exc = task.exception()
            if exc is not None:
                logger.error(f"Record {record.id} pipeline failed: {exc}")
                outcomes.append(
                    RecordOutcome(
                        record_id=record.id,
                        category=record.category,
                        errors=[f"record {record.id}: {exc}"],
                    )
                )
            else:
                outcomes.append(task.result())

        return outcomes, abandoned

    async def _process_record(
        self,
        record: Record,
        radius_m: float,
        index: "GridIndex | None" = None,
    ) -> RecordOutcome:
        """Proximity, then relationship, knowledge and fusion steps for one record."""
        start = time.perf_counter_ns()
        outcome = RecordOutcome(record_id=record.id, category=record.category)

        try:
            candidates = await self.finder.find_nearby(record, radius_m, index=index)
        except Exception as e:
            logger.warning(f"Proximity search for {record.id} failed: {e}")
            outcome.errors.append(f"proximity {record.id}: {e}")
            outcome.elapsed_ms = _elapsed_ms(start)
            return outcome

        outcome.candidates = len(candidates)
        if not candidates:
            outcome.elapsed_ms = _elapsed_ms(start)
            return outcome

        outcome.enriched = True

        try:
            step = await self.relationships.synthesize(record, candidates, radius_m)
            outcome.relationships_created = step.created
            outcome.relationships_existing = step.existing
            outcome.errors.extend(step.errors)
        except Exception as e:
            logger.warning(f"Relationship step for {record.id} failed: {e}")
            outcome.errors.append(f"relationships {record.id}: {e}")

        try:
            step = await self.knowledge.build_edges(record, candidates)
            outcome.knowledge_edges = step.created
            outcome.errors.extend(step.errors)
        except Exception as e:
            logger.warning(f"Knowledge step for {record.id} failed: {e}")
            outcome.errors.append(f"knowledge {record.id}: {e}")

        try:
            step = await self.fusion.fuse(record, candidates)
            outcome.fused = step.created > 0
            outcome.errors.extend(step.errors)
        except Exception as e:
            logger.warning(f"Fusion step for {record.id} failed: {e}")
            outcome.errors.append(f"fusion {record.id}: {e}")

        outcome.elapsed_ms = _elapsed_ms(start)
        logger.debug(
            f"Record {record.id}: {outcome.candidates} candidates, "
            f"{outcome.relationships_created} new relationships, {outcome.elapsed_ms}ms"
        )
        return outcome

    # -------------------------------------------------------------------------
    # Stats rollup
    # -------------------------------------------------------------------------

    def build_stats(self, outcomes: list[RecordOutcome], date: str | None = None) -> list[EnrichmentStat]:
        """Per-category counters for one batch."""
        date = date or datetime.now(timezone.utc).date().isoformat()
        grouped: dict[Category, list[RecordOutcome]] = defaultdict(list)
        for outcome in outcomes:
            grouped[outcome.category].append(outcome)

        stats = []
        for category, group in grouped.items():
            enriched = [o for o in group if o.enriched]
            stats.append(
                EnrichmentStat(
                    date=date,
                    category=category,
                    records_enriched=len(enriched),
                    relationships_created=sum(o.relationships_created for o in group),
                    knowledge_edges=sum(o.knowledge_edges for o in group),
                    fusion_operations=sum(1 for o in group if o.fused),
                    batches=1,
                    total_enrichment_time_ms=sum(o.elapsed_ms for o in enriched),
                )
            )
        return stats

    async def _rollup_stats(self, outcomes: list[RecordOutcome]) -> list[str]:
        """Write the batch's daily stats. Returns error messages."""
        errors: list[str] = []
        for stat in self.build_stats(outcomes):
            try:
                await self.storage.upsert_daily_stat(stat)
            except Exception as e:
                logger.warning(f"Stats rollup for {stat.date}/{stat.category.value} failed: {e}")
                errors.append(f"stats {stat.date}/{stat.category.value}: {e}")
        return errors
