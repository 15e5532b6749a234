"""Click ingestion and analytics business logic."""

from linkpulse.services.analytics import AnalyticsService, page_info, utcnow
from linkpulse.services.click_recorder import ClickRecorder
from linkpulse.services.geoip import GeoLocation, GeolocationResolver
from linkpulse.services.ip_resolver import (
    is_local_address,
    is_private_address,
    resolve_client_ip,
)
from linkpulse.services.user_agent import (
    Classification,
    UserAgentClassifier,
    UserAgentStrategy,
)

__all__ = [
    # Analytics
    "AnalyticsService",
    "page_info",
    "utcnow",
    # Ingestion
    "ClickRecorder",
    "GeoLocation",
    "GeolocationResolver",
    "is_local_address",
    "is_private_address",
    "resolve_client_ip",
    "Classification",
    "UserAgentClassifier",
    "UserAgentStrategy",
]
