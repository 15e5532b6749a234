"""Integration fixtures: the real app wired to in-memory stores."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from linkpulse.api.deps import get_analytics_service, get_click_recorder
from linkpulse.core.config import Settings
from linkpulse.main import create_app
from linkpulse.schemas import Period
from linkpulse.services import AnalyticsService, ClickRecorder, GeoLocation, UserAgentClassifier
from tests.conftest import NOW


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


@pytest.fixture
def geolocation():
    resolver = AsyncMock()
    resolver.resolve.return_value = GeoLocation("Norway", "Oslo")
    return resolver


@pytest.fixture
def client(link_store, user_store, click_store, geolocation):
    """TestClient without lifespan: no database or HTTP client is created."""
    app = create_app(Settings())

    recorder = ClickRecorder(
        link_store,
        user_store,
        click_store,
        geolocation=geolocation,
        classifier=UserAgentClassifier("parser"),
    )
    service = AnalyticsService(
        link_store,
        user_store,
        click_store,
        default_period=Period.DAY,
        clock=lambda: NOW,
    )
    app.dependency_overrides[get_click_recorder] = lambda: recorder
    app.dependency_overrides[get_analytics_service] = lambda: service

    return TestClient(app)
