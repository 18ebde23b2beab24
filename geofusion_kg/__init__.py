"""
GeoFusion KG - Record Fusion and Relationship-Graph Engine

Links geotagged public-sector records that describe the same or related
real-world things, materializes those links as a typed graph, and merges
cross-source attributes into one fused view per record.

Example:
    >>> from geofusion_kg import FusionEngine
    >>> engine = FusionEngine("./my_kb")
    >>> await engine.import_records("records.geojson")
    >>> result = await engine.enrich(category="GOVERNMENT", radius_km=25)
    >>> print(result.relationships_created, result.fused_records)

Main Classes:
    FusionEngine: Primary entry point for all operations
    FusionConfig: Configuration management
    BatchOrchestrator: Batch enrichment pipeline (for custom stores)
"""

__version__ = "0.2.0"

# Public API - lazy imports to avoid loading optional dependencies
def __getattr__(name: str):
    """Lazy import public API components."""

    if name == "FusionEngine":
        from geofusion_kg.api.engine import FusionEngine
        return FusionEngine

    if name == "FusionConfig":
        from geofusion_kg.config.settings import FusionConfig
        return FusionConfig

    if name == "BatchOrchestrator":
        from geofusion_kg.enrichment.orchestrator import BatchOrchestrator
        return BatchOrchestrator

    # Convenience functions
    if name in ("enrich", "import_records"):
        from geofusion_kg.api import convenience
        return getattr(convenience, name)

    # Types
    if name in (
        "Category",
        "Record",
        "RelationshipEdge",
        "KnowledgeEdge",
        "FusedRecord",
        "BatchRequest",
        "BatchResponse",
    ):
        from geofusion_kg import types
        return getattr(types, name)

    raise AttributeError(f"module 'geofusion_kg' has no attribute {name!r}")


__all__ = [
    # Main classes
    "FusionEngine",
    "FusionConfig",
    "BatchOrchestrator",

    # Convenience functions
    "enrich",
    "import_records",

    # Types
    "Category",
    "Record",
    "RelationshipEdge",
    "KnowledgeEdge",
    "FusedRecord",
    "BatchRequest",
    "BatchResponse",

    # Version
    "__version__",
]
