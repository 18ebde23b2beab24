"""
Parquet Storage Backend

Records in a Parquet dataset, engine-owned tables and queries in DuckDB.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from uuid import uuid4

import pyarrow as pa
import pyarrow.parquet as pq
from filelock import FileLock

from geofusion_kg.config import FusionConfig
from geofusion_kg.geo.distance import point_coords
from geofusion_kg.storage.base import StorageBackend
from geofusion_kg.storage.duckdb.queries import DuckDBQueries
from geofusion_kg.types import (
    Category,
    EnrichmentStat,
    FusedRecord,
    KnowledgeEdge,
    Record,
    RelationshipEdge,
    WriteStatus,
)

logger = logging.getLogger(__name__)


class ParquetBackend(StorageBackend):
    """
    Parquet + DuckDB storage backend.

    Directory structure:
        kb_path/
        ├── records.parquet/     # dataset of immutable part files
        ├── graph.duckdb         # relationships, triples, fused records, stats
        ├── metadata.json
        └── .kb.lock

    Thread safety:
        - Record appends use file locking (.kb.lock)
        - Record reads are concurrent-safe (part files are immutable)
        - Engine table writes are serialized inside DuckDBQueries
    """

    SCHEMA_VERSION = "1.0.0"

    def __init__(
        self,
        kb_path: Path | str,
        config: FusionConfig | None = None,
    ):
        self._kb_path = Path(kb_path)
        self.config = config or FusionConfig()
        self._lock = FileLock(self._kb_path / ".kb.lock", timeout=30)
        self._duckdb = DuckDBQueries(self._kb_path, self.config)
        self._initialized = False

    @property
    def kb_path(self) -> Path:
        """Return the path to the knowledge base directory."""
        return self._kb_path

    @property
    def records_path(self) -> Path:
        return self._kb_path / "records.parquet"

    async def initialize(self) -> None:
        """Initialize storage backend."""
        if self._initialized:
            return

        def _init() -> None:
            self.kb_path.mkdir(parents=True, exist_ok=True)
            self._write_metadata_if_missing()

        await asyncio.to_thread(_init)
        await self._duckdb.initialize()
        self._initialized = True

    async def close(self) -> None:
        """Close storage backend."""
        await self._duckdb.close()
        self._initialized = False

    def _write_metadata_if_missing(self) -> None:
        """Create metadata.json if it doesn't exist."""
        meta_path = self.kb_path / "metadata.json"
        if not meta_path.exists():
            metadata = {
                "schema_version": self.SCHEMA_VERSION,
                "created_at": datetime.now(timezone.utc).isoformat(),
            }
            meta_path.write_text(json.dumps(metadata, indent=2))

    # -------------------------------------------------------------------------
    # Parquet Schema
    # -------------------------------------------------------------------------

    @staticmethod
    def _record_schema() -> pa.Schema:
        return pa.schema([
            ("id", pa.string()),
            ("name", pa.string()),
            ("category", pa.string()),
            ("description", pa.string()),
            ("geometry_type", pa.string()),
            ("geometry", pa.string()),  # JSON-encoded {type, coordinates}
            ("latitude", pa.float64()),  # null unless a resolvable Point
            ("longitude", pa.float64()),
            ("properties", pa.string()),  # JSON-encoded dict
            ("source_id", pa.string()),
            ("collected_at", pa.string()),
            ("ingested_at", pa.string()),
        ])

    # -------------------------------------------------------------------------
    # Record Store
    # -------------------------------------------------------------------------

    async def write_records(self, records: list[Record]) -> int:
        """Append records in batch, skipping ids already stored."""
        if not records:
            return 0

        def _write() -> int:
            with self._lock:
                seen = self._stored_record_ids()
                fresh: list[Record] = []
                for record in records:
                    if record.id in seen:
                        continue
                    seen.add(record.id)
                    fresh.append(record)

                if not fresh:
                    return 0

                now = datetime.now(timezone.utc).isoformat()
                coords = [point_coords(r.geometry) for r in fresh]
                data: dict[str, list[Any]] = {
                    "id": [r.id for r in fresh],
                    "name": [r.name for r in fresh],
                    "category": [r.category.value for r in fresh],
                    "description": [r.description for r in fresh],
                    "geometry_type": [r.geometry.type if r.geometry else None for r in fresh],
                    "geometry": [
                        json.dumps(r.geometry.model_dump()) if r.geometry else None for r in fresh
                    ],
                    "latitude": [c[0] if c else None for c in coords],
                    "longitude": [c[1] if c else None for c in coords],
                    "properties": [json.dumps(r.properties) for r in fresh],
                    "source_id": [r.source_id for r in fresh],
                    "collected_at": [r.collected_at for r in fresh],
                    "ingested_at": [now for _ in fresh],
                }
                self._append_to_parquet("records", data, self._record_schema())
                return len(fresh)

        written = await asyncio.to_thread(_write)
        skipped = len(records) - written
        if skipped:
            logger.info(f"Skipped {skipped} records already in the store")
        return written

    def _stored_record_ids(self) -> set[str]:
        """Ids already in the record dataset. Caller holds the file lock."""
        path = self.records_path
        if not path.is_dir() or not any(path.glob("*.parquet")):
            return set()
        table = pq.read_table(str(path), columns=["id"])
        return set(table.column("id").to_pylist())

    def _append_to_parquet(
        self,
        table_name: str,
        data: dict[str, list[Any]],
        schema: pa.Schema,
    ) -> None:
        """
        Append data as a new immutable part file in a dataset directory.

        Parts are written to a dot-prefixed temp name and renamed into place,
        so readers never see a partial file.
        """
        path = self.kb_path / f"{table_name}.parquet"
        table = pa.Table.from_pydict(data, schema=schema)
        path.mkdir(parents=True, exist_ok=True)

        now_part = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        part_name = f"part-{now_part}-{uuid4().hex}.parquet"
        part_path = path / part_name
        temp_part_path = path / f".{part_name}.tmp"
        pq.write_table(table, temp_part_path, compression=self.config.parquet_compression)
        temp_part_path.replace(part_path)

    async def fetch_records(
        self,
        record_ids: list[str] | None = None,
        category: Category | None = None,
        limit: int = 100,
    ) -> list[Record]:
        return await self._duckdb.fetch_records(record_ids, category, limit)

    async def fetch_candidates(self, exclude_id: str | None, limit: int) -> list[Record]:
        return await self._duckdb.fetch_candidates(exclude_id, limit)

    async def get_record(self, record_id: str) -> Record | None:
        return await self._duckdb.get_record(record_id)

    # -------------------------------------------------------------------------
    # Graph Stores (delegate to DuckDB)
    # -------------------------------------------------------------------------

    async def create_relationship(self, edge: RelationshipEdge) -> WriteStatus:
        return await self._duckdb.create_relationship(edge)

    async def get_relationships(self, record_id: str) -> list[RelationshipEdge]:
        return await self._duckdb.get_relationships(record_id)

    async def add_knowledge_edge(self, edge: KnowledgeEdge) -> WriteStatus:
        return await self._duckdb.add_knowledge_edge(edge)

    async def get_knowledge_edges(self, subject_id: str) -> list[KnowledgeEdge]:
        return await self._duckdb.get_knowledge_edges(subject_id)

    async def upsert_fused_record(
        self,
        base_record_id: str,
        sources: list[str],
        properties: dict[str, dict[str, Any]],
        provenance: dict[str, dict[str, Any]],
    ) -> WriteStatus:
        return await self._duckdb.upsert_fused_record(
            base_record_id, sources, properties, provenance
        )

    async def get_fused_record(self, base_record_id: str) -> FusedRecord | None:
        return await self._duckdb.get_fused_record(base_record_id)

    async def upsert_daily_stat(self, stat: EnrichmentStat) -> None:
        await self._duckdb.upsert_daily_stat(stat)

    async def get_daily_stats(self, date: str | None = None) -> list[EnrichmentStat]:
        return await self._duckdb.get_daily_stats(date)

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    async def count_records(self) -> int:
        return await self._duckdb.count_records()

    async def count_relationships(self) -> int:
        return await self._duckdb.count_relationships()

    async def count_knowledge_edges(self) -> int:
        return await self._duckdb.count_knowledge_edges()

    async def count_fused_records(self) -> int:
        return await self._duckdb.count_fused_records()
