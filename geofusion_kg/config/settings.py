"""
FusionConfig - Configuration Management

Sensible defaults with full override capability.

Example:
    >>> # Use defaults (reads from environment)
    >>> engine = FusionEngine("./kb")

    >>> # Explicit configuration
    >>> config = FusionConfig(
    ...     default_radius_km=25.0,
    ...     enrichment_concurrency=4,
    ... )
    >>> engine = FusionEngine("./kb", config=config)

    >>> # From config file
    >>> config = FusionConfig.from_file("./fusion.toml")

Environment Variables:
    GEOFUSION_LLM_PROVIDER - LLM provider name for batch insights
    GEOFUSION_LLM_MODEL - Model for batch insights
    GEOFUSION_RADIUS_KM - Default proximity radius in kilometres
    GEOFUSION_CANDIDATE_WINDOW - Max candidate records scanned per proximity query
    GEOFUSION_CONCURRENCY - Max records enriched concurrently
    GEOFUSION_BATCH_TIMEOUT - Batch deadline in seconds
    GEOFUSION_PROXIMITY_STRATEGY - "grid" or "scan"
    OPENAI_API_KEY - OpenAI API key (standard name)
    OPENAI_BASE_URL - OpenAI-compatible chat-completions endpoint
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, cast

# TOML support: tomllib is built-in for Python 3.11+, use tomli for 3.10
try:
    import tomllib

    def _load_toml(path: Path) -> dict[str, Any]:
        with open(path, "rb") as f:
            return cast(dict[str, Any], tomllib.load(f))

except ImportError:
    import tomli

    def _load_toml(path: Path) -> dict[str, Any]:
        with open(path, "rb") as f:
            return cast(dict[str, Any], tomli.load(f))


class FusionConfig:
    """Configuration for GeoFusion KG."""

    # === LLM Configuration (batch insights) ===

    llm_provider: str = "openai"
    """LLM provider: "openai" """

    llm_model: str = "gpt-5-mini"
    """Model used to summarize a processed batch"""

    llm_base_url: str | None = None
    """Optional OpenAI-compatible endpoint (gateway) for the summarization call"""

    # === API Keys ===

    openai_api_key: str | None = None

    # === Proximity Configuration ===

    default_radius_km: float = 50.0
    """Proximity radius when a request doesn't specify one"""

    candidate_window: int = 500
    """Max candidate records drawn from the Record Store per proximity scan"""

    proximity_strategy: str = "grid"
    """"grid" (index built once per batch) or "scan" (brute force per record)"""

    grid_cell_degrees: float = 0.5
    """Cell size of the grid index in degrees of latitude/longitude"""

    # === Enrichment Configuration ===

    max_relationships_per_record: int = 20
    """Fan-out cap for relationship edges per subject record"""

    max_cross_category_edges: int = 5
    """Max inferred cross-category knowledge edges per subject record"""

    min_confidence: float = 0.1
    """Confidence floor for relationship edges"""

    batch_limit: int = 100
    """Default number of records pulled per batch"""

    enrichment_concurrency: int = 8
    """Max records enriched concurrently within a batch"""

    batch_timeout_seconds: float | None = None
    """Deadline for the processing phase; unfinished records are abandoned"""

    # === Insight Configuration ===

    insight_enabled: bool = True
    """Whether to ask the LLM for a batch insight at all"""

    insight_min_records: int = 5
    """Batches smaller than this never get an insight"""

    insight_sample_size: int = 10
    """Records sampled into the insight prompt"""

    insight_max_tokens: int = 150
    """Token cap for the insight completion"""

    # === Storage Configuration ===

    database_file: str = "graph.duckdb"
    """DuckDB file (inside the knowledge base) holding engine-owned tables"""

    parquet_compression: str = "zstd"
    """Parquet compression for record parts: "zstd", "snappy", "gzip", "none" """

    def __init__(self, **kwargs: Any) -> None:
        """
        Initialize configuration.

        Args:
            **kwargs: Override any configuration option
        """
        # Load from environment first
        self._load_from_env()

        # Apply explicit overrides
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)
            else:
                raise ValueError(f"Unknown configuration option: {key}")

    def _load_from_env(self) -> None:
        """Load configuration from environment variables."""
        import os

        # API keys (standard names)
        self.openai_api_key = os.getenv("OPENAI_API_KEY")
        self.llm_base_url = os.getenv("OPENAI_BASE_URL")

        # GEOFUSION_* prefixed settings
        if provider := os.getenv("GEOFUSION_LLM_PROVIDER"):
            self.llm_provider = provider
        if model := os.getenv("GEOFUSION_LLM_MODEL"):
            self.llm_model = model
        if radius := os.getenv("GEOFUSION_RADIUS_KM"):
            self.default_radius_km = float(radius)
        if window := os.getenv("GEOFUSION_CANDIDATE_WINDOW"):
            self.candidate_window = int(window)
        if concurrency := os.getenv("GEOFUSION_CONCURRENCY"):
            self.enrichment_concurrency = int(concurrency)
        if timeout := os.getenv("GEOFUSION_BATCH_TIMEOUT"):
            self.batch_timeout_seconds = float(timeout)
        if strategy := os.getenv("GEOFUSION_PROXIMITY_STRATEGY"):
            self.proximity_strategy = strategy

    @classmethod
    def from_file(cls, path: str | Path) -> "FusionConfig":
        """
        Load configuration from TOML file.

        Nested sections are flattened into config keys.

        Example TOML:
            [llm]
            provider = "openai"
            model = "gpt-5-mini"

            [proximity]
            default_radius_km = 25.0
            proximity_strategy = "grid"

            [insights]
            enabled = false

            [api_keys]
            openai = "sk-..."

        Args:
            path: Path to TOML configuration file

        Returns:
            FusionConfig instance with values from file

        Raises:
            FileNotFoundError: If config file doesn't exist
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        data = _load_toml(path)

        flat_config: dict[str, Any] = {}

        # Map section names to config key prefixes
        section_mapping = {
            "llm": "llm_",
            "api_keys": "",  # api_keys.openai -> openai_api_key
            "proximity": "",
            "enrichment": "",
            "insights": "insight_",
            "storage": "",
        }

        for section, prefix in section_mapping.items():
            if section in data:
                for key, value in data[section].items():
                    if section == "api_keys":
                        flat_config[f"{key}_api_key"] = value
                    else:
                        flat_config[f"{prefix}{key}"] = value

        # Also support flat top-level keys
        for key, value in data.items():
            if key not in section_mapping and not isinstance(value, dict):
                flat_config[key] = value

        return cls(**flat_config)

    @classmethod
    def from_env(cls) -> "FusionConfig":
        """Load configuration from environment variables only."""
        return cls()

    def to_file(self, path: str | Path) -> None:
        """
        Save configuration to TOML file.

        API keys are never written; unset optional values are omitted.

        Args:
            path: Path to write TOML configuration file
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        sections: dict[str, dict[str, str | int | float | bool | None]] = {
            "llm": {
                "provider": self.llm_provider,
                "model": self.llm_model,
                "base_url": self.llm_base_url,
            },
            "proximity": {
                "default_radius_km": self.default_radius_km,
                "candidate_window": self.candidate_window,
                "proximity_strategy": self.proximity_strategy,
                "grid_cell_degrees": self.grid_cell_degrees,
            },
            "enrichment": {
                "max_relationships_per_record": self.max_relationships_per_record,
                "max_cross_category_edges": self.max_cross_category_edges,
                "min_confidence": self.min_confidence,
                "batch_limit": self.batch_limit,
                "enrichment_concurrency": self.enrichment_concurrency,
                "batch_timeout_seconds": self.batch_timeout_seconds,
            },
            "insights": {
                "enabled": self.insight_enabled,
                "min_records": self.insight_min_records,
                "sample_size": self.insight_sample_size,
                "max_tokens": self.insight_max_tokens,
            },
            "storage": {
                "database_file": self.database_file,
                "parquet_compression": self.parquet_compression,
            },
        }

        # Build TOML string manually (avoids extra dependency)
        lines = ["# GeoFusion KG Configuration", ""]

        for section_name, section_values in sections.items():
            lines.append(f"[{section_name}]")
            for key, value in section_values.items():
                if isinstance(value, str):
                    lines.append(f'{key} = "{value}"')
                elif isinstance(value, bool):
                    lines.append(f"{key} = {str(value).lower()}")
                elif isinstance(value, (int, float)):
                    lines.append(f"{key} = {value}")
            lines.append("")

        lines.extend([
            "# API keys should be set via environment variables:",
            "# OPENAI_API_KEY",
            "",
        ])

        path.write_text("\n".join(lines))

    def with_overrides(self, **kwargs: Any) -> "FusionConfig":
        """Return new config with specified overrides."""
        new_config = FusionConfig.__new__(FusionConfig)
        for key in dir(self):
            if not key.startswith("_") and not callable(getattr(self, key)):
                setattr(new_config, key, getattr(self, key))
        for key, value in kwargs.items():
            if not hasattr(new_config, key):
                raise ValueError(f"Unknown configuration option: {key}")
            setattr(new_config, key, value)
        return new_config
