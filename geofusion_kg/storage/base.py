"""
Abstract Storage Backend Interface

Defines the contract the enrichment pipeline reads from and writes to.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from geofusion_kg.types import (
        Category,
        EnrichmentStat,
        FusedRecord,
        KnowledgeEdge,
        Record,
        RelationshipEdge,
        WriteStatus,
    )


class StorageBackend(ABC):
    """
    Abstract interface for storage backends.

    One backend serves every store the engine talks to:

        Record Store: ingested records (read-mostly, create-only)
        Relationship Store: record -> record edges
        Knowledge Graph Store: semantic triples with evidence
        Fusion Store: fused per-record views
        Stats Store: daily rollups

    Keyed writes return a WriteStatus so callers can tell a new row from an
    absorbed duplicate or a refreshed one.

    Lifecycle:
        backend = ParquetBackend(path, config)
        await backend.initialize()
        # ... operations ...
        await backend.close()

    Or using context manager:
        async with ParquetBackend(path, config) as backend:
            await backend.write_records(records)
    """

    @property
    @abstractmethod
    def kb_path(self) -> Path:
        """Return the path to the knowledge base directory."""
        ...

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize storage (create directories, tables)."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close storage and release resources."""
        ...

    async def __aenter__(self) -> "StorageBackend":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Record Store
    # -------------------------------------------------------------------------

    @abstractmethod
    async def write_records(self, records: list["Record"]) -> int:
        """Append records, skipping ids already stored. Returns rows written."""
        ...

    @abstractmethod
    async def fetch_records(
        self,
        record_ids: list[str] | None = None,
        category: "Category | None" = None,
        limit: int = 100,
    ) -> list["Record"]:
        """
        Fetch a working set of records, most recently collected first.

        An explicit id list takes precedence over the category filter.
        """
        ...

    @abstractmethod
    async def fetch_candidates(self, exclude_id: str | None, limit: int) -> list["Record"]:
        """Most recent records with point coordinates, excluding one id."""
        ...

    @abstractmethod
    async def get_record(self, record_id: str) -> "Record | None":
        """Get record by id."""
        ...

    # -------------------------------------------------------------------------
    # Relationship Store
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_relationship(self, edge: "RelationshipEdge") -> "WriteStatus":
        """
        Create an edge unless one already exists for
        (source_record_id, target_record_id, relationship_type).

        Returns CREATED or EXISTS.
        """
        ...

    @abstractmethod
    async def get_relationships(self, record_id: str) -> list["RelationshipEdge"]:
        """Edges where the record is either source or target."""
        ...

    # -------------------------------------------------------------------------
    # Knowledge Graph Store
    # -------------------------------------------------------------------------

    @abstractmethod
    async def add_knowledge_edge(self, edge: "KnowledgeEdge") -> "WriteStatus":
        """
        Insert a triple, or append its evidence to the existing one.

        Returns CREATED or UPDATED.
        """
        ...

    @abstractmethod
    async def get_knowledge_edges(self, subject_id: str) -> list["KnowledgeEdge"]:
        """Triples whose subject is the given id."""
        ...

    # -------------------------------------------------------------------------
    # Fusion Store
    # -------------------------------------------------------------------------

    @abstractmethod
    async def upsert_fused_record(
        self,
        base_record_id: str,
        sources: list[str],
        properties: dict[str, dict[str, Any]],
        provenance: dict[str, dict[str, Any]],
    ) -> "WriteStatus":
        """
        Write the fused view for a base record, replacing any previous slots.

        Returns CREATED or UPDATED.
        """
        ...

    @abstractmethod
    async def get_fused_record(self, base_record_id: str) -> "FusedRecord | None":
        """Get the fused view for a base record."""
        ...

    # -------------------------------------------------------------------------
    # Stats Store
    # -------------------------------------------------------------------------

    @abstractmethod
    async def upsert_daily_stat(self, stat: "EnrichmentStat") -> None:
        """Add the stat's counters to the (date, category) row."""
        ...

    @abstractmethod
    async def get_daily_stats(self, date: str | None = None) -> list["EnrichmentStat"]:
        """Rollup rows, optionally for one date."""
        ...

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    @abstractmethod
    async def count_records(self) -> int:
        ...

    @abstractmethod
    async def count_relationships(self) -> int:
        ...

    @abstractmethod
    async def count_knowledge_edges(self) -> int:
        ...

    @abstractmethod
    async def count_fused_records(self) -> int:
        ...
