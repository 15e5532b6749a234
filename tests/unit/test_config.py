"""Unit tests for Settings."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from linkpulse.core.config import Settings, get_settings


class TestDefaults:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        settings = Settings()
        assert settings.environment == "production"
        assert settings.geolocation_timeout == 4.0
        assert settings.geolocation_self_discovery is False
        assert settings.user_agent_strategy == "parser"
        assert settings.default_period == "24h"
        assert settings.links_filter_quantity == 10

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()


class TestEnvironment:
    def test_production_endpoint(self, monkeypatch):
        monkeypatch.setenv("GEOLOCATION_URL", "https://geo.prod/ipgeo")
        monkeypatch.setenv("GEOLOCATION_URL_DEVELOPMENT", "https://geo.dev/ipgeo")
        assert Settings().active_geolocation_url == "https://geo.prod/ipgeo"

    def test_development_endpoint(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "development")
        monkeypatch.setenv("GEOLOCATION_URL_DEVELOPMENT", "https://geo.dev/ipgeo")
        assert Settings().active_geolocation_url == "https://geo.dev/ipgeo"

    def test_unknown_environment_rejected(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "staging")
        with pytest.raises(PydanticValidationError):
            Settings()

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("USER_AGENT_STRATEGY", "catalog")
        monkeypatch.setenv("GEOLOCATION_SELF_DISCOVERY", "true")
        monkeypatch.setenv("LINKS_FILTER_QUANTITY", "25")
        settings = Settings()
        assert settings.user_agent_strategy == "catalog"
        assert settings.geolocation_self_discovery is True
        assert settings.links_filter_quantity == 25
