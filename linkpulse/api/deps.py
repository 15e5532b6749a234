"""Dependency injection utilities for FastAPI routes."""

from typing import Annotated

from fastapi import Depends, Request

from linkpulse.services.analytics import AnalyticsService
from linkpulse.services.click_recorder import ClickRecorder


def get_click_recorder(request: Request) -> ClickRecorder:
    """Recorder built by the application lifespan."""
    return request.app.state.click_recorder


def get_analytics_service(request: Request) -> AnalyticsService:
    """Analytics service built by the application lifespan."""
    return request.app.state.analytics_service


RecorderDep = Annotated[ClickRecorder, Depends(get_click_recorder)]
AnalyticsDep = Annotated[AnalyticsService, Depends(get_analytics_service)]
