"""
Public API Layer

This module contains the user-facing API classes and functions.

Modules:
    engine: FusionEngine class - main entry point
    loader: Record file parsing for import
    convenience: Top-level convenience functions (import_records, enrich)

Design Principles:
    - Single entry point (FusionEngine) for most operations
    - Async-first with sync wrappers (_sync suffix)
    - Lazy initialization - don't connect until needed
    - Context manager support for resource cleanup
"""

from geofusion_kg.api.engine import FusionEngine

__all__ = ["FusionEngine"]
