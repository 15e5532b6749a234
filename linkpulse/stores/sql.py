"""SQLAlchemy implementations of the link, user and click stores.

Every call opens its own session from the factory, so independent queries
issued concurrently by the aggregator never share a connection.
"""

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy import ColumnElement, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from linkpulse.core.errors import NotFoundError, StoreError
from linkpulse.models import Click, Link, User
from linkpulse.schemas.records import ClickEvent, LinkRecord, LinkWithClicks, NewClick, UserRecord
from linkpulse.stores.base import AggregationBucket, ClickFilter, Dimension

logger = structlog.get_logger()

SessionFactory = async_sessionmaker[AsyncSession]


@asynccontextmanager
async def store_session(
    session_factory: SessionFactory,
    entity: str,
    key: object,
) -> AsyncIterator[AsyncSession]:
    """Open a session and wrap persistence failures in ``StoreError``."""
    async with session_factory() as session:
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(
                "Store operation failed",
                entity=entity,
                key=str(key),
                error=str(e),
            )
            raise StoreError(entity, key, e) from e


class SqlLinkStore:
    """Read access to ``api.links``."""

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    async def find_by_id(self, link_id: UUID) -> LinkRecord:
        async with store_session(self._session_factory, "Link", link_id) as session:
            link = await session.get(Link, link_id)
            if link is None:
                raise NotFoundError("Link", link_id)
            return LinkRecord.model_validate(link)

    async def find_by_short_code(self, short_code: str) -> LinkRecord:
        async with store_session(self._session_factory, "Link", short_code) as session:
            result = await session.execute(
                select(Link).where(Link.short_code == short_code)
            )
            link = result.scalar_one_or_none()
            if link is None:
                raise NotFoundError("Link", short_code)
            return LinkRecord.model_validate(link)

    async def find_many(self, link_ids: Sequence[UUID]) -> dict[UUID, LinkRecord]:
        if not link_ids:
            return {}
        async with store_session(self._session_factory, "Link", "find_many") as session:
            result = await session.execute(select(Link).where(Link.id.in_(link_ids)))
            return {
                link.id: LinkRecord.model_validate(link)
                for link in result.scalars().all()
            }

    async def count(
        self,
        created_since: datetime | None = None,
        created_until: datetime | None = None,
    ) -> int:
        query = select(func.count()).select_from(Link)
        query = query.where(*_created_window(Link.created_at, created_since, created_until))
        async with store_session(self._session_factory, "Link", "count") as session:
            result = await session.execute(query)
            return result.scalar() or 0

    async def list_with_clicks(
        self,
        created_since: datetime | None,
        created_until: datetime | None,
        skip: int,
        limit: int,
    ) -> list[LinkWithClicks]:
        query = (
            select(Link)
            .options(selectinload(Link.clicks), selectinload(Link.user))
            .where(*_created_window(Link.created_at, created_since, created_until))
            .order_by(Link.created_at.asc(), Link.id.asc())
            .offset(skip)
            .limit(limit)
        )
        async with store_session(self._session_factory, "Link", "list_with_clicks") as session:
            result = await session.execute(query)
            return [LinkWithClicks.model_validate(link) for link in result.scalars().all()]


class SqlUserStore:
    """Read access to ``api.users``."""

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    async def find_by_id(self, user_id: UUID) -> UserRecord:
        async with store_session(self._session_factory, "User", user_id) as session:
            user = await session.get(User, user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return UserRecord.model_validate(user)

    async def count(self) -> int:
        async with store_session(self._session_factory, "User", "count") as session:
            result = await session.execute(select(func.count()).select_from(User))
            return result.scalar() or 0

    async def count_by_role(self) -> dict[str, int]:
        query = select(User.role, func.count().label("count")).group_by(User.role)
        async with store_session(self._session_factory, "User", "count_by_role") as session:
            result = await session.execute(query)
            return {row.role: row.count for row in result.all()}


class SqlClickStore:
    """Append and query access to ``analytics.clicks``."""

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    async def insert(self, click: NewClick) -> ClickEvent:
        async with store_session(self._session_factory, "Click", click.link_id) as session:
            row = Click(**click.model_dump())
            session.add(row)
            await session.commit()
            await session.refresh(row)
            logger.debug("Click stored", link_id=str(click.link_id))
            return ClickEvent.model_validate(row)

    async def count(self, click_filter: ClickFilter) -> int:
        query = select(func.count()).select_from(Click).where(*_click_conditions(click_filter))
        async with store_session(self._session_factory, "Click", "count") as session:
            result = await session.execute(query)
            return result.scalar() or 0

    async def group_by(
        self,
        dimension: Dimension,
        click_filter: ClickFilter,
    ) -> list[AggregationBucket]:
        column = _dimension_expression(dimension)
        first_seen = func.min(Click.created_at)
        query = (
            select(
                column.label("value"),
                func.count().label("count"),
                first_seen.label("first_seen"),
            )
            .where(*_click_conditions(click_filter))
            .where(column.isnot(None))
            .group_by(column)
            # Ties resolve to the value that appeared first
            .order_by(func.count().desc(), first_seen.asc(), column.asc())
        )
        if dimension is not Dimension.LINK and not dimension.is_time_bucket:
            query = query.where(func.trim(column) != "")

        async with store_session(self._session_factory, "Click", f"group_by:{dimension.value}") as session:
            result = await session.execute(query)
            return [AggregationBucket(value=row.value, count=row.count) for row in result.all()]

    async def find_many(
        self,
        click_filter: ClickFilter,
        skip: int,
        limit: int,
        newest_first: bool = True,
    ) -> list[ClickEvent]:
        order = Click.created_at.desc() if newest_first else Click.created_at.asc()
        query = (
            select(Click)
            .where(*_click_conditions(click_filter))
            .order_by(order, Click.id)
            .offset(skip)
            .limit(limit)
        )
        async with store_session(self._session_factory, "Click", "find_many") as session:
            result = await session.execute(query)
            return [ClickEvent.model_validate(row) for row in result.scalars().all()]


def _created_window(
    column: ColumnElement,
    since: datetime | None,
    until: datetime | None,
) -> list[ColumnElement[bool]]:
    conditions = []
    if since is not None:
        conditions.append(column >= since)
    if until is not None:
        conditions.append(column <= until)
    return conditions


def _click_conditions(click_filter: ClickFilter) -> list[ColumnElement[bool]]:
    """Translate a ``ClickFilter`` into WHERE clauses."""
    conditions = _created_window(Click.created_at, click_filter.since, click_filter.until)

    if click_filter.link_id is not None:
        conditions.append(Click.link_id == click_filter.link_id)
    if click_filter.user_id is not None:
        conditions.append(Click.user_id == click_filter.user_id)

    for name in ("country", "city", "device", "browser"):
        value = getattr(click_filter, name)
        if value:
            conditions.append(getattr(Click, name).icontains(value, autoescape=True))

    for column, present in ((Click.country, click_filter.has_country), (Click.city, click_filter.has_city)):
        if present is True:
            conditions.append(column.isnot(None))
        elif present is False:
            conditions.append(column.is_(None))

    return conditions


def _dimension_expression(dimension: Dimension) -> ColumnElement:
    if dimension is Dimension.LINK:
        return Click.link_id
    if dimension is Dimension.DAY:
        return func.date_trunc("day", Click.created_at)
    if dimension is Dimension.HOUR:
        return func.date_trunc("hour", Click.created_at)
    return getattr(Click, dimension.value)
