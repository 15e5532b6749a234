"""Pydantic schemas for records, queries and responses."""

from linkpulse.schemas.analytics import (
    ClickListQuery,
    ClickListResponse,
    ConversionRateResponse,
    DataIntegrity,
    DeviceBrowserDistributionResponse,
    DistributionItem,
    GeneralAnalyticsResponse,
    GeographicResponse,
    LinkStatsResponse,
    PageQuery,
    Period,
    TimeSeriesQuery,
    TimeSeriesResponse,
    TopLinkEntry,
    TopLinksQuery,
    TopLinksResponse,
)
from linkpulse.schemas.clicks import (
    RecordClickByShortCodeRequest,
    RecordClickRequest,
    RecordClickResponse,
)
from linkpulse.schemas.records import (
    ClickEvent,
    LinkRecord,
    LinkWithClicks,
    NewClick,
    UserRecord,
    UserSummary,
)

__all__ = [
    # Records
    "ClickEvent",
    "LinkRecord",
    "LinkWithClicks",
    "NewClick",
    "UserRecord",
    "UserSummary",
    # Queries
    "ClickListQuery",
    "PageQuery",
    "Period",
    "TimeSeriesQuery",
    "TopLinksQuery",
    # Responses
    "ClickListResponse",
    "ConversionRateResponse",
    "DataIntegrity",
    "DeviceBrowserDistributionResponse",
    "DistributionItem",
    "GeneralAnalyticsResponse",
    "GeographicResponse",
    "LinkStatsResponse",
    "TimeSeriesResponse",
    "TopLinkEntry",
    "TopLinksResponse",
    # Clicks
    "RecordClickByShortCodeRequest",
    "RecordClickRequest",
    "RecordClickResponse",
]
