"""API routers."""

from linkpulse.api.analytics import router as analytics_router
from linkpulse.api.clicks import router as clicks_router

__all__ = ["analytics_router", "clicks_router"]
