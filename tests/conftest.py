"""Shared fixtures."""

import pytest

_ENV_VARS = (
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "GEOFUSION_LLM_PROVIDER",
    "GEOFUSION_LLM_MODEL",
    "GEOFUSION_RADIUS_KM",
    "GEOFUSION_CANDIDATE_WINDOW",
    "GEOFUSION_CONCURRENCY",
    "GEOFUSION_BATCH_TIMEOUT",
    "GEOFUSION_PROXIMITY_STRATEGY",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep the host environment out of FusionConfig defaults."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
