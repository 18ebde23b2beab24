"""Tests for FusionConfig layering."""

from pathlib import Path

import pytest

from geofusion_kg.config import FusionConfig


class TestDefaults:
    def test_defaults(self):
        config = FusionConfig()
        assert config.default_radius_km == 50.0
        assert config.candidate_window == 500
        assert config.max_relationships_per_record == 20
        assert config.max_cross_category_edges == 5
        assert config.min_confidence == 0.1
        assert config.batch_limit == 100
        assert config.proximity_strategy == "grid"
        assert config.insight_min_records == 5
        assert config.insight_max_tokens == 150
        assert config.openai_api_key is None

    def test_kwargs_override(self):
        config = FusionConfig(default_radius_km=25.0, enrichment_concurrency=2)
        assert config.default_radius_km == 25.0
        assert config.enrichment_concurrency == 2

    def test_unknown_kwarg_raises(self):
        with pytest.raises(ValueError, match="Unknown configuration option"):
            FusionConfig(radius=10)


class TestEnvironment:
    def test_env_vars_are_read(self, monkeypatch):
        monkeypatch.setenv("GEOFUSION_RADIUS_KM", "12.5")
        monkeypatch.setenv("GEOFUSION_CONCURRENCY", "3")
        monkeypatch.setenv("GEOFUSION_PROXIMITY_STRATEGY", "scan")
        monkeypatch.setenv("GEOFUSION_BATCH_TIMEOUT", "30")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("OPENAI_BASE_URL", "http://localhost:8080/v1")

        config = FusionConfig()
        assert config.default_radius_km == 12.5
        assert config.enrichment_concurrency == 3
        assert config.proximity_strategy == "scan"
        assert config.batch_timeout_seconds == 30.0
        assert config.openai_api_key == "sk-test"
        assert config.llm_base_url == "http://localhost:8080/v1"

    def test_kwargs_beat_env(self, monkeypatch):
        monkeypatch.setenv("GEOFUSION_RADIUS_KM", "12.5")
        assert FusionConfig(default_radius_km=5.0).default_radius_km == 5.0


class TestFiles:
    def test_from_file_sections(self, tmp_path: Path):
        path = tmp_path / "fusion.toml"
        path.write_text(
            "batch_limit = 7\n"
            "\n"
            "[llm]\n"
            'model = "gpt-test"\n'
            "\n"
            "[proximity]\n"
            "default_radius_km = 10.0\n"
            "grid_cell_degrees = 0.25\n"
            "\n"
            "[insights]\n"
            "enabled = false\n"
            "\n"
            "[api_keys]\n"
            'openai = "sk-file"\n'
        )

        config = FusionConfig.from_file(path)
        assert config.llm_model == "gpt-test"
        assert config.default_radius_km == 10.0
        assert config.grid_cell_degrees == 0.25
        assert config.insight_enabled is False
        assert config.openai_api_key == "sk-file"
        assert config.batch_limit == 7

    def test_from_file_missing(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            FusionConfig.from_file(tmp_path / "missing.toml")

    def test_to_file_round_trip_without_keys(self, tmp_path: Path):
        original = FusionConfig(
            default_radius_km=33.0,
            proximity_strategy="scan",
            insight_enabled=False,
            openai_api_key="sk-secret",
        )
        path = tmp_path / "out" / "fusion.toml"
        original.to_file(path)

        text = path.read_text()
        assert "sk-secret" not in text
        assert "[proximity]" in text

        loaded = FusionConfig.from_file(path)
        assert loaded.default_radius_km == 33.0
        assert loaded.proximity_strategy == "scan"
        assert loaded.insight_enabled is False
        assert loaded.openai_api_key is None


class TestOverrides:
    def test_with_overrides_copies(self):
        base = FusionConfig(default_radius_km=20.0)
        changed = base.with_overrides(batch_timeout_seconds=5.0)

        assert changed.batch_timeout_seconds == 5.0
        assert changed.default_radius_km == 20.0
        assert base.batch_timeout_seconds is None

    def test_with_overrides_unknown(self):
        with pytest.raises(ValueError):
            FusionConfig().with_overrides(not_a_setting=1)
