"""Analytics API endpoints."""

from datetime import datetime
from typing import Annotated

import structlog
from fastapi import APIRouter, Query

from linkpulse.api.deps import AnalyticsDep
from linkpulse.schemas import (
    ConversionRateResponse,
    DeviceBrowserDistributionResponse,
    GeneralAnalyticsResponse,
    GeographicResponse,
    TimeSeriesQuery,
    TimeSeriesResponse,
    TopLinksQuery,
    TopLinksResponse,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/analytics", tags=["analytics"])

PageParam = Annotated[int | None, Query(description="Page number, starting at 1")]
LimitParam = Annotated[int | None, Query(description="Items per page (max 100)")]


@router.get("/general", response_model=GeneralAnalyticsResponse)
async def get_general_analytics(service: AnalyticsDep) -> GeneralAnalyticsResponse:
    """Totals of links, clicks and users, with users by role."""
    return await service.general_analytics()


@router.get("/top-links", response_model=TopLinksResponse)
async def get_top_links(
    service: AnalyticsDep,
    period: Annotated[
        str | None,
        Query(description="One of 1h, 12h, 24h, 7d, 30d, 90d, 1y"),
    ] = None,
    page: PageParam = None,
    limit: LimitParam = None,
) -> TopLinksResponse:
    """Most clicked links within a relative period."""
    query = service.query(TopLinksQuery, period=period, page=page, limit=limit)
    return await service.top_links(query)


@router.get("/geographic", response_model=GeographicResponse)
async def get_geographic(service: AnalyticsDep) -> GeographicResponse:
    """Country, city, device and browser rankings over all clicks."""
    return await service.geographic()


@router.get(
    "/device-browser-distribution",
    response_model=DeviceBrowserDistributionResponse,
)
async def get_device_browser_distribution(
    service: AnalyticsDep,
) -> DeviceBrowserDistributionResponse:
    """Device and browser usage totals."""
    return await service.device_browser_distribution()


@router.get("/conversion-rate", response_model=ConversionRateResponse)
async def get_conversion_rate(service: AnalyticsDep) -> ConversionRateResponse:
    """Average number of clicks per link."""
    return await service.conversion_rate()


@router.get("/time-series", response_model=TimeSeriesResponse)
async def get_time_series(
    service: AnalyticsDep,
    start_date: Annotated[
        datetime | None,
        Query(alias="startDate", description="Only links created at or after"),
    ] = None,
    end_date: Annotated[
        datetime | None,
        Query(alias="endDate", description="Only links created at or before"),
    ] = None,
    page: PageParam = None,
    limit: LimitParam = None,
) -> TimeSeriesResponse:
    """Links created in a date window, with their clicks and owner."""
    query = service.query(
        TimeSeriesQuery,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    response = await service.time_series(query)

    logger.debug(
        "Time series fetched",
        page=query.page,
        links=len(response.time_series),
    )
    return response
