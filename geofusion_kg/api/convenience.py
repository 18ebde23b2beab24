"""
Convenience Functions

Top-level functions for common operations without explicit FusionEngine
instantiation. These are designed for quick scripts and REPL usage.

Example:
    >>> from geofusion_kg import import_records, enrich
    >>> import_records("records.geojson", kb="./my_kb")
    >>> response = enrich(kb="./my_kb", category="GOVERNMENT")
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from geofusion_kg.types.results import BatchResponse


def import_records(
    path: str | Path,
    *,
    kb: str | Path,
) -> int:
    """
    Import a records file into a knowledge base.

    Args:
        path: GeoJSON FeatureCollection or JSON list of records
        kb: Path to the knowledge base directory

    Returns:
        Number of records written
    """
    from geofusion_kg.api.engine import FusionEngine
    with FusionEngine(kb) as engine:
        return engine.import_records_sync(path)


def enrich(
    *,
    kb: str | Path,
    **kwargs,
) -> "BatchResponse":
    """
    Run one enrichment batch against an existing knowledge base.

    Args:
        kb: Path to the knowledge base directory
        **kwargs: Additional arguments passed to FusionEngine.enrich()
    """
    from geofusion_kg.api.engine import FusionEngine
    with FusionEngine(kb, create=False) as engine:
        return engine.enrich_sync(**kwargs)
