"""
Storage Backends

Embedded storage using DuckDB + Parquet files.

Modules:
    base: Abstract storage interface
    parquet/: Primary storage implementation (record dataset)
    duckdb/: Relational queries and engine-owned tables

Knowledge Base Directory Structure:
    my_kb/
    ├── metadata.json           # KB metadata and schema version
    ├── records.parquet/        # Ingested records (immutable part files)
    ├── graph.duckdb            # Relationships, knowledge edges, fused records, stats
    └── .kb.lock                # File lock for record appends

Design Principles:
    - Zero infrastructure (embedded databases)
    - Portable (knowledge base is just a directory)
    - Idempotent keyed writes (explicit WriteStatus per write)
"""

from geofusion_kg.storage.base import StorageBackend
from geofusion_kg.storage.parquet.backend import ParquetBackend

__all__ = [
    "StorageBackend",
    "ParquetBackend",
]
