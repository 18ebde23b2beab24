"""
Parquet Storage Backend

Primary storage for knowledge base data.

Modules:
    backend: ParquetBackend class

Table Schemas:
    records.parquet/:
        id, name, category, description, geometry_type, geometry, latitude,
        longitude, properties, source_id, collected_at, ingested_at
"""

from geofusion_kg.storage.parquet.backend import ParquetBackend

__all__ = ["ParquetBackend"]
