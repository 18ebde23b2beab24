"""
DuckDB Query Layer

Relational reads on the Parquet record dataset and the engine-owned tables.

Modules:
    queries: SQL query implementations

Tables (graph.duckdb):
    record_relationships: PK (source_record_id, target_record_id, relationship_type)
    knowledge_edges: PK (subject_type, subject_id, predicate, object_type, object_id)
    fused_records: PK base_record_id
    enrichment_stats: PK (date, category)

Example Queries:

    -- Candidate window
    SELECT * FROM records
    WHERE latitude IS NOT NULL AND id <> ?
    ORDER BY collected_at DESC NULLS LAST, id LIMIT 500

    -- Edges touching a record
    SELECT * FROM record_relationships
    WHERE source_record_id = ? OR target_record_id = ?
"""

from geofusion_kg.storage.duckdb.queries import DuckDBQueries

__all__ = ["DuckDBQueries"]
