"""
FusionEngine - Primary Entry Point

The FusionEngine class manages a knowledge base directory and provides
methods for importing records, running enrichment batches, and reading the
resulting graph back.

A knowledge base is a self-contained directory containing:
    - records.parquet/: Ingested records
    - graph.duckdb: Relationships, knowledge edges, fused records, daily stats
    - metadata.json: KB metadata and version

Example:
    >>> engine = FusionEngine("./my_kb")
    >>> await engine.import_records("records.geojson")
    >>> response = await engine.enrich(category="GOVERNMENT", radius_km=25)
    >>> print(response.to_payload())

    # Or with sync API
    >>> with FusionEngine("./my_kb") as engine:
    ...     response = engine.enrich_sync(limit=50)
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from geofusion_kg.config.settings import FusionConfig
    from geofusion_kg.enrichment.orchestrator import BatchOrchestrator
    from geofusion_kg.providers.base import LLMProvider
    from geofusion_kg.storage.parquet.backend import ParquetBackend
    from geofusion_kg.types import (
        BatchResponse,
        EnrichmentStat,
        FusedRecord,
        KnowledgeEdge,
        Record,
        RelationshipEdge,
    )

logger = logging.getLogger(__name__)


class FusionEngine:
    """
    A portable, embedded fusion and relationship-graph engine.

    Args:
        path: Directory for the knowledge base. Created if doesn't exist.
        config: Optional configuration. Uses defaults if not provided.
        create: If True, create directory if missing. Default True.
    """

    def __init__(
        self,
        path: str | Path,
        config: "FusionConfig | None" = None,
        create: bool = True,
    ) -> None:
        """Initialize the engine at the specified path."""
        self._path = Path(path).resolve()
        self._create = create

        # Lazy import to avoid circular imports
        if config is None:
            from geofusion_kg.config import FusionConfig
            config = FusionConfig()
        self._config = config

        # Lazy-initialized components
        self._storage: "ParquetBackend | None" = None
        self._llm: "LLMProvider | None" = None
        self._orchestrator: "BatchOrchestrator | None" = None
        self._initialized = False

    async def _ensure_initialized(self) -> None:
        """Lazy initialization of storage and providers on first use."""
        if self._initialized:
            return

        if self._create:
            self._path.mkdir(parents=True, exist_ok=True)
        elif not self._path.exists():
            raise FileNotFoundError(f"Knowledge base not found: {self._path}")

        from geofusion_kg.enrichment.orchestrator import BatchOrchestrator
        from geofusion_kg.storage.parquet.backend import ParquetBackend

        self._storage = ParquetBackend(self._path, self._config)
        await self._storage.initialize()

        self._llm = self._create_llm_provider()
        self._orchestrator = BatchOrchestrator(self._storage, self._config, self._llm)

        self._initialized = True

    def _create_llm_provider(self) -> "LLMProvider | None":
        """
        Create the insight provider based on config.

        Returns None when insights are disabled or no API key is configured.
        """
        if not self._config.insight_enabled:
            return None

        provider = self._config.llm_provider.lower()

        if provider == "openai":
            if not self._config.openai_api_key:
                logger.info("No OpenAI API key configured, batch insights disabled")
                return None
            from geofusion_kg.providers.llm.openai import OpenAILLMProvider
            return OpenAILLMProvider(
                api_key=self._config.openai_api_key,
                model=self._config.llm_model,
                base_url=self._config.llm_base_url,
            )
        else:
            raise ValueError(f"Unknown LLM provider: {provider}")

    # === Lifecycle ===

    def __enter__(self) -> "FusionEngine":
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit with resource cleanup."""
        self.close_sync()

    async def __aenter__(self) -> "FusionEngine":
        """Async context manager entry."""
        await self._ensure_initialized()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Release all resources (async)."""
        if self._storage is not None:
            await self._storage.close()
            self._storage = None
        self._llm = None
        self._orchestrator = None
        self._initialized = False

    def close_sync(self) -> None:
        """Release all resources (sync)."""
        if self._initialized:
            asyncio.run(self.close())

    # === Properties ===

    @property
    def path(self) -> Path:
        """Path to the knowledge base directory."""
        return self._path

    @property
    def config(self) -> "FusionConfig":
        """Current configuration."""
        return self._config

    @property
    def is_initialized(self) -> bool:
        """Whether the engine has been initialized."""
        return self._initialized

    # === Import ===

    async def import_records(self, path: str | Path) -> int:
        """
        Import a GeoJSON FeatureCollection or JSON list of records.

        Records whose id is already stored are skipped.

        Returns:
            Number of records written
        """
        from geofusion_kg.api.loader import load_records

        await self._ensure_initialized()
        assert self._storage is not None

        records = await asyncio.to_thread(load_records, path)
        written = await self._storage.write_records(records)
        logger.info(f"Imported {written} of {len(records)} records from {path}")
        return written

    async def write_records(self, records: list["Record"]) -> int:
        """Write already-built records. Returns rows written."""
        await self._ensure_initialized()
        assert self._storage is not None
        return await self._storage.write_records(records)

    def import_records_sync(self, path: str | Path) -> int:
        """Sync wrapper for import_records."""
        return asyncio.run(self.import_records(path))

    # === Enrichment ===

    async def enrich(
        self,
        *,
        record_ids: list[str] | None = None,
        category: str | None = None,
        limit: int | None = None,
        radius_km: float | None = None,
    ) -> "BatchResponse":
        """
        Run one enrichment batch.

        Args:
            record_ids: Explicit records to enrich (wins over category)
            category: Category filter
            limit: Maximum records (default: config.batch_limit)
            radius_km: Search radius (default: config.default_radius_km)

        Returns:
            BatchResponse; invalid arguments give status_code 400
        """
        await self._ensure_initialized()
        assert self._orchestrator is not None

        payload: dict[str, Any] = {
            "record_ids": record_ids,
            "category": category,
            "limit": limit,
            "radius_km": radius_km,
        }
        return await self._orchestrator.run_payload(
            {k: v for k, v in payload.items() if v is not None}
        )

    def enrich_sync(self, **kwargs: Any) -> "BatchResponse":
        """Sync wrapper for enrich."""
        return asyncio.run(self.enrich(**kwargs))

    # === Direct Access ===

    async def get_record(self, record_id: str) -> "Record | None":
        """Get a record by id."""
        await self._ensure_initialized()
        assert self._storage is not None
        return await self._storage.get_record(record_id)

    async def get_relationships(self, record_id: str) -> list["RelationshipEdge"]:
        """Relationship edges touching a record."""
        await self._ensure_initialized()
        assert self._storage is not None
        return await self._storage.get_relationships(record_id)

    async def get_knowledge_edges(self, subject_id: str) -> list["KnowledgeEdge"]:
        """Knowledge edges for a subject record."""
        await self._ensure_initialized()
        assert self._storage is not None
        return await self._storage.get_knowledge_edges(subject_id)

    async def get_fused_record(self, record_id: str) -> "FusedRecord | None":
        """Fused view of a record."""
        await self._ensure_initialized()
        assert self._storage is not None
        return await self._storage.get_fused_record(record_id)

    async def get_daily_stats(self, date: str | None = None) -> list["EnrichmentStat"]:
        """Daily enrichment rollups."""
        await self._ensure_initialized()
        assert self._storage is not None
        return await self._storage.get_daily_stats(date)

    async def stats(self) -> dict[str, int]:
        """Get knowledge base statistics."""
        await self._ensure_initialized()
        assert self._storage is not None

        return {
            "records": await self._storage.count_records(),
            "relationships": await self._storage.count_relationships(),
            "knowledge_edges": await self._storage.count_knowledge_edges(),
            "fused_records": await self._storage.count_fused_records(),
        }

    def stats_sync(self) -> dict[str, int]:
        """Sync wrapper for stats."""
        return asyncio.run(self.stats())
