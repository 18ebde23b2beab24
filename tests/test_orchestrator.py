"""Tests for BatchOrchestrator against an in-memory store."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from geofusion_kg.config import FusionConfig
from geofusion_kg.enrichment import BatchOrchestrator
from geofusion_kg.types import (
    BatchRequest,
    BatchState,
    Category,
    Geometry,
    Record,
    RecordOutcome,
    WriteStatus,
)


class MemoryStorage:
    """Just enough of StorageBackend for the orchestrator."""

    def __init__(self, records, fail_for=(), slow_for=()):
        self.records = list(records)
        self.fail_for = set(fail_for)
        self.slow_for = set(slow_for)
        self.relationships = {}
        self.knowledge = {}
        self.fused = {}
        self.stats = []
        self.fetch_calls = []
        self.candidate_calls = []

    async def fetch_records(self, record_ids=None, category=None, limit=100):
        self.fetch_calls.append({"record_ids": record_ids, "category": category, "limit": limit})
        if record_ids:
            return [r for r in self.records if r.id in record_ids]
        if category is not None:
            return [r for r in self.records if r.category == category][:limit]
        return self.records[:limit]

    async def fetch_candidates(self, exclude_id=None, limit=500):
        self.candidate_calls.append(exclude_id)
        return [r for r in self.records if r.id != exclude_id][:limit]

    def _check(self, record_id):
        if record_id in self.fail_for:
            raise RuntimeError(f"write rejected for {record_id}")

    async def create_relationship(self, edge):
        await asyncio.sleep(0)
        if edge.source_record_id in self.slow_for:
            await asyncio.sleep(30)
        self._check(edge.source_record_id)
        key = (edge.source_record_id, edge.target_record_id, edge.relationship_type)
        if key in self.relationships:
            return WriteStatus.EXISTS
        self.relationships[key] = edge
        return WriteStatus.CREATED

    async def add_knowledge_edge(self, edge):
        self._check(edge.subject_id)
        key = (edge.subject_type, edge.subject_id, edge.predicate, edge.object_type, edge.object_id)
        status = WriteStatus.UPDATED if key in self.knowledge else WriteStatus.CREATED
        self.knowledge[key] = edge
        return status

    async def upsert_fused_record(self, base_record_id, sources, properties, provenance):
        self._check(base_record_id)
        self.fused[base_record_id] = (sources, properties, provenance)
        return WriteStatus.CREATED

    async def upsert_daily_stat(self, stat):
        self.stats.append(stat)
        return WriteStatus.CREATED


def _alternating(n: int) -> list[Record]:
    return [
        Record(
            id=f"r-{i}",
            category="GOVERNMENT" if i % 2 == 0 else "ECONOMIC",
            name=f"Record {i}",
            source_id="test",
            geometry=Geometry.point(39.30 + i * 0.001, -76.61),
        )
        for i in range(n)
    ]


class TestPartialFailure:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("strategy", ["grid", "scan"])
    async def test_one_record_failing(self, strategy):
        storage = MemoryStorage(_alternating(10), fail_for={"r-5"})
        orchestrator = BatchOrchestrator(storage, FusionConfig(proximity_strategy=strategy))

        response = await orchestrator.run(BatchRequest())

        assert response.success is True
        assert response.status_code == 200
        assert response.records_processed == 10
        assert response.enriched_count == 10
        assert response.relationships_created == 81
        assert response.knowledge_edges == 63
        assert response.fused_records == 9
        assert response.errors
        assert all("r-5" in error for error in response.errors)
        assert response.state == BatchState.DONE

    @pytest.mark.asyncio
    async def test_timing_keys(self):
        storage = MemoryStorage(_alternating(3))
        response = await BatchOrchestrator(storage, FusionConfig()).run(BatchRequest())

        assert set(response.timing) == {"fetch", "index", "processing", "insight", "stats"}
        assert response.processing_time_ms >= 0

    @pytest.mark.asyncio
    async def test_index_failure_falls_back_to_scan(self):
        storage = MemoryStorage(_alternating(4))
        orchestrator = BatchOrchestrator(storage, FusionConfig(proximity_strategy="grid"))
        orchestrator.finder.prepare = AsyncMock(side_effect=RuntimeError("index boom"))

        response = await orchestrator.run(BatchRequest())

        assert response.success is True
        assert response.relationships_created == 12
        assert response.errors == ["proximity index: index boom"]


class TestConcurrentBatches:
    @pytest.mark.asyncio
    async def test_batches_keep_their_own_index(self):
        storage = MemoryStorage(_alternating(10))
        orchestrator = BatchOrchestrator(storage, FusionConfig(proximity_strategy="grid"))

        first, second = await asyncio.gather(
            orchestrator.run(BatchRequest(category="GOVERNMENT")),
            orchestrator.run(BatchRequest(category="ECONOMIC", limit=2)),
        )

        assert first.state == second.state == BatchState.DONE
        assert first.relationships_created == 45
        assert second.relationships_created == 18
        # One index load per batch and no per-record scans
        assert storage.candidate_calls == [None, None]


class TestFatalPaths:
    @pytest.mark.asyncio
    async def test_no_records(self):
        orchestrator = BatchOrchestrator(MemoryStorage([]), FusionConfig())
        response = await orchestrator.run(BatchRequest(category="WILDLIFE"))

        assert response.success is False
        assert response.status_code == 400
        assert response.error == "No records found"
        assert response.state == BatchState.FAILED

    @pytest.mark.asyncio
    async def test_fetch_failure(self):
        storage = MemoryStorage([])
        storage.fetch_records = AsyncMock(side_effect=RuntimeError("store offline"))
        orchestrator = BatchOrchestrator(storage, FusionConfig())

        response = await orchestrator.run(BatchRequest())

        assert response.success is False
        assert response.status_code == 500
        assert response.error == "store offline"

    @pytest.mark.asyncio
    async def test_invalid_payload_skips_fetch(self):
        storage = MemoryStorage(_alternating(2))
        response = await BatchOrchestrator(storage, FusionConfig()).run_payload({"limit": 0})

        assert response.success is False
        assert response.status_code == 400
        assert storage.fetch_calls == []

    @pytest.mark.asyncio
    async def test_payload_defaults(self):
        storage = MemoryStorage(_alternating(2))
        response = await BatchOrchestrator(storage, FusionConfig(batch_limit=7)).run_payload(None)

        assert response.success is True
        assert storage.fetch_calls == [{"record_ids": None, "category": None, "limit": 7}]

    @pytest.mark.asyncio
    async def test_payload_is_parsed(self):
        storage = MemoryStorage(_alternating(4))
        response = await BatchOrchestrator(storage, FusionConfig()).run_payload(
            {"category": "economic", "limit": 1, "radius_km": 5}
        )

        assert response.records_processed == 1
        assert storage.fetch_calls[0]["category"] == Category.ECONOMIC
        assert storage.fetch_calls[0]["limit"] == 1


class TestRadius:
    @pytest.mark.asyncio
    async def test_request_radius_limits_candidates(self):
        records = [
            Record(id="a", category="GOVERNMENT", geometry=Geometry.point(39.30, -76.61)),
            Record(id="b", category="ECONOMIC", geometry=Geometry.point(39.31, -76.61)),
            Record(id="c", category="ECONOMIC", geometry=Geometry.point(39.60, -76.61)),
        ]
        storage = MemoryStorage(records)
        response = await BatchOrchestrator(storage, FusionConfig()).run(
            BatchRequest(record_ids=["a"], radius_km=5)
        )

        assert response.relationships_created == 1
        assert list(storage.relationships) == [("a", "b", "affects")]


class TestDeadline:
    @pytest.mark.asyncio
    async def test_slow_record_is_abandoned(self):
        storage = MemoryStorage(_alternating(3), slow_for={"r-1"})
        orchestrator = BatchOrchestrator(storage, FusionConfig(batch_timeout_seconds=0.5))

        response = await orchestrator.run(BatchRequest())

        assert response.success is True
        assert response.abandoned == 1
        assert response.records_processed == 3
        assert response.enriched_count == 2
        assert response.relationships_created == 4


class TestStatsRollup:
    def test_build_stats_groups_by_category(self):
        orchestrator = BatchOrchestrator(MemoryStorage([]), FusionConfig())
        outcomes = [
            RecordOutcome(record_id="a", category="WEATHER", enriched=True,
                          relationships_created=3, knowledge_edges=4, fused=True, elapsed_ms=10),
            RecordOutcome(record_id="b", category="WEATHER", enriched=True,
                          relationships_created=1, knowledge_edges=2, elapsed_ms=30),
            RecordOutcome(record_id="c", category="HEALTH", elapsed_ms=5),
        ]

        stats = {s.category: s for s in orchestrator.build_stats(outcomes, date="2024-06-01")}

        weather = stats[Category.WEATHER]
        assert weather.date == "2024-06-01"
        assert weather.records_enriched == 2
        assert weather.relationships_created == 4
        assert weather.knowledge_edges == 6
        assert weather.fusion_operations == 1
        assert weather.batches == 1
        assert weather.avg_enrichment_time_ms == 20.0

        health = stats[Category.HEALTH]
        assert health.records_enriched == 0
        assert health.total_enrichment_time_ms == 0

    @pytest.mark.asyncio
    async def test_run_writes_stats(self):
        storage = MemoryStorage(_alternating(4))
        await BatchOrchestrator(storage, FusionConfig()).run(BatchRequest())

        assert {s.category for s in storage.stats} == {Category.GOVERNMENT, Category.ECONOMIC}
        assert sum(s.relationships_created for s in storage.stats) == 12

    @pytest.mark.asyncio
    async def test_stats_failure_is_reported(self):
        storage = MemoryStorage(_alternating(2))
        storage.upsert_daily_stat = AsyncMock(side_effect=RuntimeError("stats locked"))

        response = await BatchOrchestrator(storage, FusionConfig()).run(BatchRequest())

        assert response.success is True
        assert len(response.errors) == 2
        assert all("stats locked" in e for e in response.errors)


class TestInsight:
    @pytest.mark.asyncio
    async def test_insight_included(self):
        llm = AsyncMock()
        llm.generate.return_value = "Economic indicators sit beside every agency."
        storage = MemoryStorage(_alternating(6))

        response = await BatchOrchestrator(storage, FusionConfig(), llm=llm).run(BatchRequest())

        assert response.ai_insight == "Economic indicators sit beside every agency."
        assert "30 discovered relationships" in llm.generate.await_args.args[0]

    @pytest.mark.asyncio
    async def test_insight_failure_keeps_success(self):
        llm = AsyncMock()
        llm.generate.side_effect = RuntimeError("provider down")
        storage = MemoryStorage(_alternating(6))

        response = await BatchOrchestrator(storage, FusionConfig(), llm=llm).run(BatchRequest())

        assert response.success is True
        assert response.ai_insight is None

    @pytest.mark.asyncio
    async def test_insight_without_enrichment(self):
        llm = AsyncMock()
        llm.generate.return_value = "Nothing lies close together."
        records = [Record(id=f"p-{i}", category="GEOSPATIAL") for i in range(5)]

        response = await BatchOrchestrator(MemoryStorage(records), FusionConfig(), llm=llm).run(
            BatchRequest()
        )

        assert response.enriched_count == 0
        assert response.relationships_created == 0
        assert response.ai_insight == "Nothing lies close together."
