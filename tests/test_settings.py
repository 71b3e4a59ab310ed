"""
Tests for runtime settings.
"""

import pytest
from pydantic import ValidationError

from config.settings import LoomSettings, get_settings


class TestLoomSettings:
    """Tests for defaults, environment overrides and validation."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LOOM_FETCH_ASSETS", raising=False)
        settings = LoomSettings(_env_file=None)

        assert settings.fetch_assets is False
        assert settings.compute_integrity is True
        assert settings.options_attribute == "data-options"
        assert settings.update_attribute == "data-update"
        assert settings.step_event == "story:step"
        assert settings.auto_id_prefix == "loom-viz"
        assert settings.content_selector.startswith(".gh-content")

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("LOOM_FETCH_ASSETS", "true")
        monkeypatch.setenv("LOOM_ASSET_TIMEOUT", "2.5")
        monkeypatch.setenv("LOOM_MAPBOX_TOKEN", "pk.test")

        settings = LoomSettings(_env_file=None)

        assert settings.fetch_assets is True
        assert settings.asset_timeout == 2.5
        assert settings.mapbox_token == "pk.test"

    def test_log_level_normalized(self):
        assert LoomSettings(_env_file=None, log_level=" debug ").log_level == "DEBUG"

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ValidationError):
            LoomSettings(_env_file=None, log_level="chatty")

    def test_attributes_must_be_data_attributes(self):
        with pytest.raises(ValidationError):
            LoomSettings(_env_file=None, options_attribute="options")

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            LoomSettings(_env_file=None, asset_timeout=0)

    def test_get_settings_cached(self):
        get_settings.cache_clear()
        assert get_settings() is get_settings()
        get_settings.cache_clear()
