"""
Configuration System

Manages configuration for GeoFusion KG with a layered approach.

Configuration Priority (highest to lowest):
    1. Programmatic (passed to FusionConfig())
    2. Environment variables (GEOFUSION_* prefix)
    3. Config file (FusionConfig.from_file)
    4. Built-in defaults

Modules:
    settings: FusionConfig class
"""

from geofusion_kg.config.settings import FusionConfig

__all__ = ["FusionConfig"]
