"""
DuckDB Query Layer

SQL reads over the Parquet record dataset, plus the engine-owned tables
(relationships, knowledge edges, fused records, daily stats) in graph.duckdb.
"""

import asyncio
import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import duckdb

from geofusion_kg.config import FusionConfig
from geofusion_kg.types import (
    Category,
    EnrichmentStat,
    EvidenceEntry,
    FusedRecord,
    Geometry,
    KnowledgeEdge,
    Record,
    RelationshipEdge,
    RelationshipType,
    WriteStatus,
)

_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS record_relationships (
        id VARCHAR NOT NULL,
        source_record_id VARCHAR NOT NULL,
        target_record_id VARCHAR NOT NULL,
        relationship_type VARCHAR NOT NULL,
        confidence DOUBLE NOT NULL,
        distance_meters DOUBLE NOT NULL,
        metadata VARCHAR,
        created_at VARCHAR,
        PRIMARY KEY (source_record_id, target_record_id, relationship_type)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS knowledge_edges (
        subject_type VARCHAR NOT NULL,
        subject_id VARCHAR NOT NULL,
        predicate VARCHAR NOT NULL,
        object_type VARCHAR NOT NULL,
        object_id VARCHAR NOT NULL,
        weight DOUBLE NOT NULL,
        evidence VARCHAR,
        created_at VARCHAR,
        updated_at VARCHAR,
        PRIMARY KEY (subject_type, subject_id, predicate, object_type, object_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS fused_records (
        base_record_id VARCHAR PRIMARY KEY,
        enrichment_sources VARCHAR,
        fused_properties VARCHAR,
        provenance VARCHAR,
        enrichment_count INTEGER NOT NULL,
        created_at VARCHAR,
        last_enriched_at VARCHAR
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS enrichment_stats (
        date VARCHAR NOT NULL,
        category VARCHAR NOT NULL,
        records_enriched INTEGER NOT NULL,
        relationships_created INTEGER NOT NULL,
        knowledge_edges INTEGER NOT NULL,
        fusion_operations INTEGER NOT NULL,
        batches INTEGER NOT NULL,
        total_enrichment_time_ms BIGINT NOT NULL,
        PRIMARY KEY (date, category)
    )
    """,
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _loads(value: Any, default: Any) -> Any:
    if isinstance(value, str) and value:
        return json.loads(value)
    return default


class DuckDBQueries:
    """
    DuckDB query layer over the knowledge base directory.

    Handles:
    - Record lookups over the Parquet dataset (temp view ``records``)
    - Keyed writes to the engine-owned tables
    - Counts and rollups

    Thread safety:
        One database connection; each thread gets its own cursor since
        asyncio.to_thread() may use different threads. Writes are serialized
        by a process-wide lock so check-then-write sequences are atomic.
    """

    def __init__(self, kb_path: Path, config: FusionConfig):
        self.kb_path = kb_path
        self.config = config
        self._local = threading.local()
        self._write_lock = threading.Lock()
        self._conn: duckdb.DuckDBPyConnection | None = None
        self._cursors: list[duckdb.DuckDBPyConnection] = []
        self._initialized = False

    @property
    def db_path(self) -> Path:
        return self.kb_path / self.config.database_file

    @property
    def records_path(self) -> Path:
        return self.kb_path / "records.parquet"

    async def initialize(self) -> None:
        """Open graph.duckdb and create the engine tables."""
        if self._initialized:
            return

        def _init() -> None:
            self._conn = duckdb.connect(str(self.db_path))
            for ddl in _SCHEMA:
                self._conn.execute(ddl)

        await asyncio.to_thread(_init)
        self._initialized = True

    async def close(self) -> None:
        """Close cursors and the database connection."""
        self._initialized = False
        for cursor in self._cursors:
            cursor.close()
        self._cursors.clear()
        self._local = threading.local()
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _get_conn(self) -> duckdb.DuckDBPyConnection:
        """Get thread-local DuckDB cursor, creating if needed."""
        if not self._initialized or self._conn is None:
            raise RuntimeError("DuckDB not initialized. Call initialize() first.")

        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = self._conn.cursor()
            self._local.conn = conn
            self._cursors.append(conn)
        return conn

    def _refresh_records_view(self, conn: duckdb.DuckDBPyConnection) -> None:
        """(Re)register the records view if the dataset has any part files."""
        path = self.records_path
        if not path.is_dir() or not any(path.glob("*.parquet")):
            return
        pattern = str(path / "*.parquet").replace("'", "''")
        conn.execute(
            f"CREATE OR REPLACE TEMP VIEW records AS SELECT * FROM read_parquet('{pattern}')"
        )

    @staticmethod
    def _rows(conn: duckdb.DuckDBPyConnection, rows: list[tuple[Any, ...]]) -> list[dict[str, Any]]:
        col_names = [desc[0] for desc in conn.description]
        return [dict(zip(col_names, row)) for row in rows]

    # -------------------------------------------------------------------------
    # Record Operations
    # -------------------------------------------------------------------------

    def _query_records(self, sql: str, params: list[Any]) -> list[Record]:
        conn = self._get_conn()
        self._refresh_records_view(conn)
        try:
            rows = conn.execute(sql, params).fetchall()
        except duckdb.CatalogException:
            return []
        return [self._row_to_record(row) for row in self._rows(conn, rows)]

    async def fetch_records(
        self,
        record_ids: list[str] | None = None,
        category: Category | None = None,
        limit: int = 100,
    ) -> list[Record]:
        """Working set for a batch; ids win over category."""
        if record_ids is not None:
            if not record_ids:
                return []
            placeholders = ",".join(["?" for _ in record_ids])
            sql = (
                f"SELECT * FROM records WHERE id IN ({placeholders}) "
                "ORDER BY collected_at DESC NULLS LAST, id LIMIT ?"
            )
            params: list[Any] = [*record_ids, limit]
        elif category is not None:
            sql = (
                "SELECT * FROM records WHERE category = ? "
                "ORDER BY collected_at DESC NULLS LAST, id LIMIT ?"
            )
            params = [Category.parse(category).value, limit]
        else:
            sql = "SELECT * FROM records ORDER BY collected_at DESC NULLS LAST, id LIMIT ?"
            params = [limit]

        return await asyncio.to_thread(self._query_records, sql, params)

    async def fetch_candidates(self, exclude_id: str | None, limit: int) -> list[Record]:
        """Candidate window: most recent records with point coordinates."""
        sql = (
            "SELECT * FROM records "
            "WHERE latitude IS NOT NULL AND longitude IS NOT NULL "
            "AND (CAST(? AS VARCHAR) IS NULL OR id <> ?) "
            "ORDER BY collected_at DESC NULLS LAST, id LIMIT ?"
        )
        return await asyncio.to_thread(self._query_records, sql, [exclude_id, exclude_id, limit])

    async def get_record(self, record_id: str) -> Record | None:
        """Get record by id."""
        records = await asyncio.to_thread(
            self._query_records, "SELECT * FROM records WHERE id = ? LIMIT 1", [record_id]
        )
        return records[0] if records else None

    def _row_to_record(self, row: dict[str, Any]) -> Record:
        """Convert a records row to a Record model."""
        geometry = _loads(row.get("geometry"), None)
        return Record(
            id=row["id"],
            category=row["category"],
            name=row.get("name") or "",
            description=row.get("description"),
            geometry=Geometry(**geometry) if geometry else None,
            properties=_loads(row.get("properties"), {}),
            source_id=row.get("source_id") or "",
            collected_at=row.get("collected_at"),
        )

    # -------------------------------------------------------------------------
    # Relationship Operations
    # -------------------------------------------------------------------------

    async def create_relationship(self, edge: RelationshipEdge) -> WriteStatus:
        """Insert an edge unless its (source, target, type) already exists."""
        def _write() -> WriteStatus:
            conn = self._get_conn()
            key = [edge.source_record_id, edge.target_record_id, edge.relationship_type.value]
            with self._write_lock:
                existing = conn.execute(
                    "SELECT 1 FROM record_relationships "
                    "WHERE source_record_id = ? AND target_record_id = ? AND relationship_type = ?",
                    key,
                ).fetchone()
                if existing:
                    return WriteStatus.EXISTS

                conn.execute(
                    "INSERT INTO record_relationships VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    [
                        edge.id,
                        *key,
                        edge.confidence,
                        edge.distance_meters,
                        json.dumps(edge.metadata),
                        edge.created_at or _now(),
                    ],
                )
                return WriteStatus.CREATED

        return await asyncio.to_thread(_write)

    async def get_relationships(self, record_id: str) -> list[RelationshipEdge]:
        """Edges touching a record in either direction."""
        def _query() -> list[RelationshipEdge]:
            conn = self._get_conn()
            rows = conn.execute(
                "SELECT * FROM record_relationships "
                "WHERE source_record_id = ? OR target_record_id = ? "
                "ORDER BY distance_meters, target_record_id",
                [record_id, record_id],
            ).fetchall()
            return [
                RelationshipEdge(
                    id=row["id"],
                    source_record_id=row["source_record_id"],
                    target_record_id=row["target_record_id"],
                    relationship_type=RelationshipType(row["relationship_type"]),
                    confidence=row["confidence"],
                    distance_meters=row["distance_meters"],
                    metadata=_loads(row.get("metadata"), {}),
                    created_at=row.get("created_at"),
                )
                for row in self._rows(conn, rows)
            ]

        return await asyncio.to_thread(_query)

    # -------------------------------------------------------------------------
    # Knowledge Edge Operations
    # -------------------------------------------------------------------------

    async def add_knowledge_edge(self, edge: KnowledgeEdge) -> WriteStatus:
        """Insert a triple or append evidence to the existing one."""
        def _write() -> WriteStatus:
            conn = self._get_conn()
            key = [edge.subject_type, edge.subject_id, edge.predicate, edge.object_type, edge.object_id]
            where = (
                "subject_type = ? AND subject_id = ? AND predicate = ? "
                "AND object_type = ? AND object_id = ?"
            )
            new_evidence = [e.model_dump(exclude_none=True) for e in edge.evidence]
            now = _now()

            with self._write_lock:
                existing = conn.execute(
                    f"SELECT evidence FROM knowledge_edges WHERE {where}", key
                ).fetchone()

                if existing is None:
                    conn.execute(
                        "INSERT INTO knowledge_edges VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                        [
                            *key,
                            edge.weight,
                            json.dumps(new_evidence),
                            edge.created_at or now,
                            edge.updated_at or now,
                        ],
                    )
                    return WriteStatus.CREATED

                evidence = _loads(existing[0], []) + new_evidence
                conn.execute(
                    f"UPDATE knowledge_edges SET evidence = ?, weight = ?, updated_at = ? WHERE {where}",
                    [json.dumps(evidence), edge.weight, now, *key],
                )
                return WriteStatus.UPDATED

        return await asyncio.to_thread(_write)

    async def get_knowledge_edges(self, subject_id: str) -> list[KnowledgeEdge]:
        """Triples for a subject."""
        def _query() -> list[KnowledgeEdge]:
            conn = self._get_conn()
            rows = conn.execute(
                "SELECT * FROM knowledge_edges WHERE subject_id = ? "
                "ORDER BY predicate, object_type, object_id",
                [subject_id],
            ).fetchall()
            return [
                KnowledgeEdge(
                    subject_type=row["subject_type"],
                    subject_id=row["subject_id"],
                    predicate=row["predicate"],
                    object_type=row["object_type"],
                    object_id=row["object_id"],
                    weight=row["weight"],
                    evidence=[EvidenceEntry(**e) for e in _loads(row.get("evidence"), [])],
                    created_at=row.get("created_at"),
                    updated_at=row.get("updated_at"),
                )
                for row in self._rows(conn, rows)
            ]

        return await asyncio.to_thread(_query)

    # -------------------------------------------------------------------------
    # Fused Record Operations
    # -------------------------------------------------------------------------

    async def upsert_fused_record(
        self,
        base_record_id: str,
        sources: list[str],
        properties: dict[str, dict[str, Any]],
        provenance: dict[str, dict[str, Any]],
    ) -> WriteStatus:
        """Replace the fused view for a base record and bump its pass count."""
        def _write() -> WriteStatus:
            conn = self._get_conn()
            now = _now()
            payload = [json.dumps(sources), json.dumps(properties), json.dumps(provenance)]

            with self._write_lock:
                existing = conn.execute(
                    "SELECT enrichment_count FROM fused_records WHERE base_record_id = ?",
                    [base_record_id],
                ).fetchone()

                if existing is None:
                    conn.execute(
                        "INSERT INTO fused_records VALUES (?, ?, ?, ?, 1, ?, ?)",
                        [base_record_id, *payload, now, now],
                    )
                    return WriteStatus.CREATED

                conn.execute(
                    "UPDATE fused_records SET enrichment_sources = ?, fused_properties = ?, "
                    "provenance = ?, enrichment_count = enrichment_count + 1, "
                    "last_enriched_at = ? WHERE base_record_id = ?",
                    [*payload, now, base_record_id],
                )
                return WriteStatus.UPDATED

        return await asyncio.to_thread(_write)

    async def get_fused_record(self, base_record_id: str) -> FusedRecord | None:
        """Get the fused view for a base record."""
        def _query() -> FusedRecord | None:
            conn = self._get_conn()
            rows = conn.execute(
                "SELECT * FROM fused_records WHERE base_record_id = ?", [base_record_id]
            ).fetchall()
            if not rows:
                return None
            row = self._rows(conn, rows)[0]
            return FusedRecord(
                base_record_id=row["base_record_id"],
                sources=_loads(row.get("enrichment_sources"), []),
                properties=_loads(row.get("fused_properties"), {}),
                provenance=_loads(row.get("provenance"), {}),
                enrichment_count=row["enrichment_count"],
                created_at=row.get("created_at"),
                last_enriched_at=row.get("last_enriched_at"),
            )

        return await asyncio.to_thread(_query)

    # -------------------------------------------------------------------------
    # Stats Operations
    # -------------------------------------------------------------------------

    async def upsert_daily_stat(self, stat: EnrichmentStat) -> None:
        """Additive upsert on (date, category)."""
        def _write() -> None:
            conn = self._get_conn()
            with self._write_lock:
                conn.execute(
                    """
                    INSERT INTO enrichment_stats VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT (date, category) DO UPDATE SET
                        records_enriched = records_enriched + EXCLUDED.records_enriched,
                        relationships_created = relationships_created + EXCLUDED.relationships_created,
                        knowledge_edges = knowledge_edges + EXCLUDED.knowledge_edges,
                        fusion_operations = fusion_operations + EXCLUDED.fusion_operations,
                        batches = batches + EXCLUDED.batches,
                        total_enrichment_time_ms = total_enrichment_time_ms + EXCLUDED.total_enrichment_time_ms
                    """,
                    [
                        stat.date,
                        stat.category.value,
                        stat.records_enriched,
                        stat.relationships_created,
                        stat.knowledge_edges,
                        stat.fusion_operations,
                        stat.batches,
                        stat.total_enrichment_time_ms,
                    ],
                )

        await asyncio.to_thread(_write)

    async def get_daily_stats(self, date: str | None = None) -> list[EnrichmentStat]:
        """Rollup rows, newest date first."""
        def _query() -> list[EnrichmentStat]:
            conn = self._get_conn()
            if date is None:
                rows = conn.execute(
                    "SELECT * FROM enrichment_stats ORDER BY date DESC, category"
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM enrichment_stats WHERE date = ? ORDER BY category", [date]
                ).fetchall()
            return [EnrichmentStat(**row) for row in self._rows(conn, rows)]

        return await asyncio.to_thread(_query)

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    async def _count(self, table: str) -> int:
        def _query() -> int:
            conn = self._get_conn()
            if table == "records":
                self._refresh_records_view(conn)
            try:
                result = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
            except duckdb.CatalogException:
                return 0
            return result[0] if result else 0

        return await asyncio.to_thread(_query)

    async def count_records(self) -> int:
        return await self._count("records")

    async def count_relationships(self) -> int:
        return await self._count("record_relationships")

    async def count_knowledge_edges(self) -> int:
        return await self._count("knowledge_edges")

    async def count_fused_records(self) -> int:
        return await self._count("fused_records")
