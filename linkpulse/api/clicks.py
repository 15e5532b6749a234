"""Click ingestion and click read endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, Request, status

from linkpulse.api.deps import AnalyticsDep, RecorderDep
from linkpulse.schemas import (
    ClickListQuery,
    ClickListResponse,
    LinkStatsResponse,
    RecordClickByShortCodeRequest,
    RecordClickRequest,
    RecordClickResponse,
)

router = APIRouter(prefix="/clicks", tags=["clicks"])


def _remote_addr(request: Request) -> str | None:
    return request.client.host if request.client else None


@router.post(
    "",
    response_model=RecordClickResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_click(
    body: RecordClickRequest,
    request: Request,
    recorder: RecorderDep,
) -> RecordClickResponse:
    """Record a click on a link.

    Client IP, user agent and location are taken from the request itself.
    """
    click = await recorder.record(
        body.link_id,
        body.user_id,
        request.headers,
        _remote_addr(request),
    )
    return RecordClickResponse(click=click)


@router.post(
    "/short/{short_code}",
    response_model=RecordClickResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_click_by_short_code(
    short_code: str,
    request: Request,
    recorder: RecorderDep,
    body: RecordClickByShortCodeRequest | None = None,
) -> RecordClickResponse:
    """Record a click on the link behind a short code."""
    click = await recorder.record_by_short_code(
        short_code,
        body.user_id if body else None,
        request.headers,
        _remote_addr(request),
    )
    return RecordClickResponse(click=click)


@router.get("", response_model=ClickListResponse)
async def list_clicks(
    service: AnalyticsDep,
    page: Annotated[int | None, Query(description="Page number, starting at 1")] = None,
    limit: Annotated[int | None, Query(description="Clicks per page")] = None,
    country: Annotated[str | None, Query(description="Country substring")] = None,
    city: Annotated[str | None, Query(description="City substring")] = None,
    device: Annotated[str | None, Query(description="Device substring")] = None,
    browser: Annotated[str | None, Query(description="Browser substring")] = None,
    user_id: Annotated[UUID | None, Query(alias="userId")] = None,
) -> ClickListResponse:
    """List clicks, newest first."""
    query = service.query(
        ClickListQuery,
        page=page,
        limit=limit,
        country=country,
        city=city,
        device=device,
        browser=browser,
        user_id=user_id,
    )
    return await service.list_clicks(query)


@router.get("/stats/{link_id}", response_model=LinkStatsResponse)
async def get_link_stats(link_id: UUID, service: AnalyticsDep) -> LinkStatsResponse:
    """Per-link click breakdown with recent activity."""
    return await service.link_stats(link_id)
