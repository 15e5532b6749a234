"""Analytics query service: composes aggregations into report shapes."""

import math
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any, TypeVar
from uuid import UUID

import structlog
from pydantic import BaseModel, ValidationError

from linkpulse.aggregators.dimensional import (
    DimensionalAggregator,
    RankedEntry,
    gather_all,
    rank_buckets,
)
from linkpulse.core.errors import DataInconsistencyError, InvalidArgumentError
from linkpulse.models.user import UserRole
from linkpulse.schemas.analytics import (
    ClickListQuery,
    ClickListResponse,
    ConversionRateResponse,
    DataIntegrity,
    DeviceBrowserDistributionResponse,
    DeviceStats,
    DistributionItem,
    GeneralAnalyticsResponse,
    GeographicMetadata,
    GeographicRankings,
    GeographicResponse,
    GeographicStats,
    LinkMetrics,
    LinkStatsResponse,
    Period,
    RoleCount,
    TimeSeriesPoint,
    TimeSeriesQuery,
    TimeSeriesResponse,
    TopLinkEntry,
    TopLinksQuery,
    TopLinksResponse,
)
from linkpulse.stores.base import ClickFilter, ClickStore, Dimension, LinkStore, UserStore

logger = structlog.get_logger()

QueryT = TypeVar("QueryT", bound=BaseModel)

GEOGRAPHIC_TOP_N = 10
DEVICE_TOP_N = 5
LINK_STATS_TOP_N = 5
LINK_STATS_DAYS = 30
RECENT_CLICKS = 20


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the ``timestamp without time zone`` columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def page_info(total: int, page: int, limit: int) -> dict[str, Any]:
    """Pagination envelope for ``total`` items."""
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "total_pages": total_pages,
        "current_page": page,
        "has_next_page": page < total_pages,
        "has_previous_page": page > 1,
    }


def _distribution(entries: list[RankedEntry]) -> list[DistributionItem]:
    return [
        DistributionItem(
            rank=entry.rank,
            value=str(entry.value),
            clicks=entry.count,
            percentage=entry.percentage,
        )
        for entry in entries
    ]


class AnalyticsService:
    """Read side of the analytics API.

    Every operation is stateless and idempotent. Query models are validated
    before any store is touched; independent store calls run concurrently
    and a single failure fails the whole report.
    """

    def __init__(
        self,
        link_store: LinkStore,
        user_store: UserStore,
        click_store: ClickStore,
        aggregator: DimensionalAggregator | None = None,
        default_period: Period = Period.DAY,
        page_size: int = 10,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the service.

        Args:
            link_store: Link collaborator.
            user_store: User collaborator.
            click_store: Click collaborator.
            aggregator: Aggregator over ``click_store``; built if omitted.
            default_period: Top-links window when the query names none.
                ``24h`` for rolling deployments, ``30d`` for date-range ones.
            page_size: Default ``limit`` for paginated queries.
            clock: Source of "now" for relative windows.
        """
        self._links = link_store
        self._users = user_store
        self._clicks = click_store
        self._aggregator = aggregator or DimensionalAggregator(click_store)
        self._default_period = Period(default_period)
        self._page_size = page_size
        self._clock = clock

    def query(self, model: type[QueryT], **params: Any) -> QueryT:
        """Validate raw query parameters into ``model``.

        ``None`` values are treated as absent; ``limit`` defaults to the
        configured page size.

        Raises:
            InvalidArgumentError: A parameter is malformed or out of range.
        """
        values = {key: value for key, value in params.items() if value is not None}
        values.setdefault("limit", self._page_size)
        try:
            return model.model_validate(values)
        except ValidationError as e:
            errors = [
                {
                    "field": ".".join(str(part) for part in error["loc"]) or "query",
                    "message": error["msg"],
                }
                for error in e.errors()
            ]
            raise InvalidArgumentError("Invalid query parameters", details=errors) from e

    async def general_analytics(self) -> GeneralAnalyticsResponse:
        """Link, click and user counters with a users-by-role breakdown.

        Raises:
            DataInconsistencyError: The per-role counts do not add up to the
                user total.
        """
        total_links, total_clicks, total_users, by_role = await gather_all(
            self._links.count(),
            self._clicks.count(ClickFilter()),
            self._users.count(),
            self._users.count_by_role(),
        )

        role_sum = sum(by_role.values())
        if role_sum != total_users:
            logger.error(
                "Inconsistent user data detected",
                total_users=total_users,
                role_sum=role_sum,
            )
            raise DataInconsistencyError(
                "Inconsistent user data detected",
                details={"total_users": total_users, "role_sum": role_sum},
            )

        known_roles = [role.value for role in UserRole]
        ordered_roles = known_roles + sorted(set(by_role) - set(known_roles))

        return GeneralAnalyticsResponse(
            total_links=total_links,
            total_clicks=total_clicks,
            total_users=total_users,
            total_premium_users=by_role.get(UserRole.PREMIUM.value, 0),
            total_free_users=by_role.get(UserRole.FREE.value, 0),
            total_guest_users=by_role.get(UserRole.GUEST.value, 0),
            total_admin_users=by_role.get(UserRole.ADMIN.value, 0),
            distribution_users=[
                RoleCount(role=role, count=by_role[role])
                for role in ordered_roles
                if role in by_role
            ],
        )

    async def top_links(self, query: TopLinksQuery) -> TopLinksResponse:
        """Links ranked by clicks in the query period, paginated."""
        period = query.period or self._default_period
        since = self._clock() - timedelta(hours=period.hours)

        result = await self._aggregator.aggregate(
            ClickFilter(since=since),
            [Dimension.LINK],
            report="top_links",
        )
        buckets = result[Dimension.LINK]
        entries = rank_buckets(buckets, top_n=query.limit, offset=query.skip)
        links = await self._links.find_many([entry.value for entry in entries])

        top_links = []
        for entry in entries:
            link = links.get(entry.value)
            top_links.append(TopLinkEntry(
                rank=entry.rank,
                link_id=entry.value,
                short_code=link.short_code if link else None,
                original_url=link.original_url if link else None,
                title=link.title if link else None,
                clicks_count=entry.count,
                percentage=entry.percentage,
            ))

        logger.debug(
            "Top links fetched",
            period=period.value,
            page=query.page,
            links=len(buckets),
        )

        return TopLinksResponse(
            period=period,
            quantity_links=len(buckets),
            top_links=top_links,
            **page_info(len(buckets), query.page, query.limit),
        )

    async def geographic(self) -> GeographicResponse:
        """All-time country, city, device and browser rankings."""
        result, countries_without_cities, cities_without_country = await gather_all(
            self._aggregator.aggregate(
                ClickFilter(),
                [Dimension.COUNTRY, Dimension.CITY, Dimension.DEVICE, Dimension.BROWSER],
                report="geographic",
            ),
            self._clicks.count(ClickFilter(has_country=True, has_city=False)),
            self._clicks.count(ClickFilter(has_country=False, has_city=True)),
        )

        def top_value(dimension: Dimension) -> str | None:
            buckets = result[dimension]
            return str(buckets[0].value) if buckets else None

        country_clicks = result.dimension_total(Dimension.COUNTRY)

        return GeographicResponse(
            rankings=GeographicRankings(
                top_countries=_distribution(result.ranked(Dimension.COUNTRY, GEOGRAPHIC_TOP_N)),
                top_cities=_distribution(result.ranked(Dimension.CITY, GEOGRAPHIC_TOP_N)),
                top_devices=_distribution(result.ranked(Dimension.DEVICE, DEVICE_TOP_N)),
                top_browsers=_distribution(result.ranked(Dimension.BROWSER, GEOGRAPHIC_TOP_N)),
            ),
            stats=GeographicStats(
                unique_countries=len(result[Dimension.COUNTRY]),
                unique_cities=len(result[Dimension.CITY]),
                unique_devices=len(result[Dimension.DEVICE]),
                unique_browsers=len(result[Dimension.BROWSER]),
                country_clicks=country_clicks,
                city_clicks=result.dimension_total(Dimension.CITY),
                device_clicks=result.dimension_total(Dimension.DEVICE),
                browser_clicks=result.dimension_total(Dimension.BROWSER),
                total_clicks=result.total,
                top_country=top_value(Dimension.COUNTRY),
                top_city=top_value(Dimension.CITY),
                top_device=top_value(Dimension.DEVICE),
                top_browser=top_value(Dimension.BROWSER),
            ),
            metadata=GeographicMetadata(
                query_limit=GEOGRAPHIC_TOP_N,
                timestamp=self._clock(),
                data_integrity=DataIntegrity(
                    countries_without_cities=countries_without_cities,
                    cities_without_country=cities_without_country,
                    has_incomplete_data=country_clicks != result.total,
                ),
            ),
        )

    async def device_browser_distribution(self) -> DeviceBrowserDistributionResponse:
        """All-time device and browser totals."""
        result = await self._aggregator.aggregate(
            ClickFilter(),
            [Dimension.DEVICE, Dimension.BROWSER],
            report="device_browser",
        )
        devices = result[Dimension.DEVICE]
        browsers = result[Dimension.BROWSER]

        return DeviceBrowserDistributionResponse(
            device_stats=DeviceStats(
                total_devices=len(devices),
                total_browsers=len(browsers),
                unique_devices=[str(bucket.value) for bucket in devices],
                unique_browsers=[str(bucket.value) for bucket in browsers],
                total_records=result.total,
            ),
            device_totals={str(bucket.value): bucket.count for bucket in devices},
            browser_totals={str(bucket.value): bucket.count for bucket in browsers},
        )

    async def conversion_rate(self) -> ConversionRateResponse:
        """Average clicks per link."""
        total_links, total_clicks = await gather_all(
            self._links.count(),
            self._clicks.count(ClickFilter()),
        )
        now = self._clock()

        if total_links == 0:
            return ConversionRateResponse(
                total_links=0,
                total_clicks=0,
                conversion_rate=0,
                message="No links registered in the system",
                timestamp=now,
            )

        rate = total_clicks / total_links
        return ConversionRateResponse(
            total_links=total_links,
            total_clicks=total_clicks,
            conversion_rate=f"{rate:.2f}",
            click_ratio=f"{rate * 100:.2f}%",
            timestamp=now,
        )

    async def time_series(self, query: TimeSeriesQuery) -> TimeSeriesResponse:
        """Links created in the window, oldest first, with clicks and owner."""
        total, links = await gather_all(
            self._links.count(query.start_date, query.end_date),
            self._links.list_with_clicks(query.start_date, query.end_date, query.skip, query.limit),
        )

        return TimeSeriesResponse(
            quantity_links=total,
            time_series=links,
            **page_info(total, query.page, query.limit),
        )

    async def link_stats(self, link_id: UUID) -> LinkStatsResponse:
        """Breakdown of one link's clicks.

        Raises:
            NotFoundError: The link does not exist.
        """
        link = await self._links.find_by_id(link_id)
        scope = ClickFilter(link_id=link.id)
        since = self._clock() - timedelta(days=LINK_STATS_DAYS)

        result, daily, recent = await gather_all(
            self._aggregator.aggregate(
                scope,
                [Dimension.COUNTRY, Dimension.CITY, Dimension.DEVICE, Dimension.BROWSER],
                report="link_stats",
            ),
            self._aggregator.aggregate(scope.where(since=since), [Dimension.DAY], report="link_daily"),
            self._clicks.find_many(scope, skip=0, limit=RECENT_CLICKS),
        )

        days = sorted(daily[Dimension.DAY], key=lambda bucket: bucket.value)

        return LinkStatsResponse(
            link=link,
            total_clicks=result.total,
            metrics=LinkMetrics(
                by_country=_distribution(result.ranked(Dimension.COUNTRY, LINK_STATS_TOP_N)),
                by_city=_distribution(result.ranked(Dimension.CITY, LINK_STATS_TOP_N)),
                by_device=_distribution(result.ranked(Dimension.DEVICE)),
                by_browser=_distribution(result.ranked(Dimension.BROWSER)),
                time_series=[
                    TimeSeriesPoint(date=bucket.value, clicks=bucket.count) for bucket in days
                ],
            ),
            recent_clicks=recent,
        )

    async def list_clicks(self, query: ClickListQuery) -> ClickListResponse:
        """Clicks matching the dimension filters, newest first."""
        click_filter = ClickFilter(
            user_id=query.user_id,
            country=query.country,
            city=query.city,
            device=query.device,
            browser=query.browser,
        )
        total, clicks = await gather_all(
            self._clicks.count(click_filter),
            self._clicks.find_many(click_filter, skip=query.skip, limit=query.limit),
        )

        return ClickListResponse(
            quantity_clicks=total,
            clicks=clicks,
            **page_info(total, query.page, query.limit),
        )
