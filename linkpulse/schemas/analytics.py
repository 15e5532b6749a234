"""Pydantic schemas for analytics queries and responses."""

from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from linkpulse.schemas.records import CamelModel, ClickEvent, LinkRecord, LinkWithClicks

MAX_PAGE_SIZE = 100


class Period(str, Enum):
    """Relative time window used to bound top-links queries."""

    HOUR = "1h"
    HALF_DAY = "12h"
    DAY = "24h"
    WEEK = "7d"
    MONTH = "30d"
    QUARTER = "90d"
    YEAR = "1y"

    @property
    def hours(self) -> int:
        return PERIOD_HOURS[self]


PERIOD_HOURS: dict[Period, int] = {
    Period.HOUR: 1,
    Period.HALF_DAY: 12,
    Period.DAY: 24,
    Period.WEEK: 7 * 24,
    Period.MONTH: 30 * 24,
    Period.QUARTER: 90 * 24,
    Period.YEAR: 365 * 24,
}


# Queries


class PageQuery(CamelModel):
    """Page/limit pair shared by every paginated query."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=MAX_PAGE_SIZE)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class TopLinksQuery(PageQuery):
    """Top links within a relative period."""

    period: Period | None = None


class TimeSeriesQuery(PageQuery):
    """Links created inside an optional date window."""

    start_date: datetime | None = None
    end_date: datetime | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def to_naive_utc(cls, value: datetime | None) -> datetime | None:
        # Click and link timestamps are stored as naive UTC
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    @model_validator(mode="after")
    def check_window(self) -> "TimeSeriesQuery":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must be before or equal to end_date")
        return self


class ClickListQuery(PageQuery):
    """Clicks filtered by dimension substrings and author."""

    country: str | None = None
    city: str | None = None
    device: str | None = None
    browser: str | None = None
    user_id: UUID | None = None


# Responses


class PageInfo(CamelModel):
    """Pagination envelope fields."""

    total_pages: int
    current_page: int
    has_next_page: bool
    has_previous_page: bool


class DistributionItem(CamelModel):
    """One ranked value of a dimension."""

    rank: int
    value: str
    clicks: int
    percentage: str = Field(description="Share of the dimension total, 2 decimals")


class TopLinkEntry(CamelModel):
    """A link ranked by clicks in the requested period."""

    rank: int
    link_id: UUID
    short_code: str | None = None
    original_url: str | None = None
    title: str | None = None
    clicks_count: int
    percentage: str


class TopLinksResponse(PageInfo):
    """Paginated top links."""

    period: Period
    quantity_links: int = Field(description="Distinct links clicked in the period")
    top_links: list[TopLinkEntry]


class GeographicRankings(CamelModel):
    top_countries: list[DistributionItem]
    top_cities: list[DistributionItem]
    top_devices: list[DistributionItem]
    top_browsers: list[DistributionItem]


class GeographicStats(CamelModel):
    unique_countries: int
    unique_cities: int
    unique_devices: int
    unique_browsers: int
    country_clicks: int
    city_clicks: int
    device_clicks: int
    browser_clicks: int
    total_clicks: int
    top_country: str | None = None
    top_city: str | None = None
    top_device: str | None = None
    top_browser: str | None = None


class DataIntegrity(CamelModel):
    countries_without_cities: int
    cities_without_country: int
    has_incomplete_data: bool = Field(
        description="True when some clicks have no resolved country",
    )


class GeographicMetadata(CamelModel):
    query_limit: int
    timestamp: datetime
    data_integrity: DataIntegrity


class GeographicResponse(CamelModel):
    """All-time geographic, device and browser report."""

    rankings: GeographicRankings
    stats: GeographicStats
    metadata: GeographicMetadata


class DeviceStats(CamelModel):
    total_devices: int
    total_browsers: int
    unique_devices: list[str]
    unique_browsers: list[str]
    total_records: int


class DeviceBrowserDistributionResponse(CamelModel):
    """Device and browser usage distribution."""

    device_stats: DeviceStats
    device_totals: dict[str, int]
    browser_totals: dict[str, int]


class ConversionRateResponse(CamelModel):
    """Average clicks per link.

    ``conversion_rate`` is ``0`` with an explanatory ``message`` when there
    are no links, otherwise a 2-decimal string.
    """

    total_links: int
    total_clicks: int
    conversion_rate: str | int
    click_ratio: str | None = None
    message: str | None = None
    timestamp: datetime


class TimeSeriesResponse(PageInfo):
    """Links created in the window, oldest first, with their clicks."""

    quantity_links: int
    time_series: list[LinkWithClicks]


class RoleCount(CamelModel):
    role: str
    count: int


class GeneralAnalyticsResponse(CamelModel):
    """System-wide counters."""

    total_links: int
    total_clicks: int
    total_users: int
    total_premium_users: int
    total_free_users: int
    total_guest_users: int
    total_admin_users: int
    distribution_users: list[RoleCount]


class TimeSeriesPoint(CamelModel):
    """Clicks in one day."""

    date: datetime
    clicks: int


class LinkMetrics(CamelModel):
    by_country: list[DistributionItem]
    by_city: list[DistributionItem]
    by_device: list[DistributionItem]
    by_browser: list[DistributionItem]
    time_series: list[TimeSeriesPoint]


class LinkStatsResponse(CamelModel):
    """Per-link breakdown."""

    link: LinkRecord
    total_clicks: int
    metrics: LinkMetrics
    recent_clicks: list[ClickEvent]


class ClickListResponse(PageInfo):
    """Paginated clicks, newest first."""

    quantity_clicks: int
    clicks: list[ClickEvent]
