"""Shared fixtures: in-memory stores standing in for the SQL ones."""

from collections.abc import Sequence
from datetime import datetime, timedelta
from uuid import UUID, uuid4

import pytest

from linkpulse.core.errors import NotFoundError
from linkpulse.schemas.records import (
    ClickEvent,
    LinkRecord,
    LinkWithClicks,
    NewClick,
    UserRecord,
    UserSummary,
)
from linkpulse.stores.base import AggregationBucket, ClickFilter, Dimension

NOW = datetime(2024, 6, 1, 12, 0, 0)


def _matches(click: ClickEvent, click_filter: ClickFilter) -> bool:
    if click_filter.since is not None and click.created_at < click_filter.since:
        return False
    if click_filter.until is not None and click.created_at > click_filter.until:
        return False
    if click_filter.link_id is not None and click.link_id != click_filter.link_id:
        return False
    if click_filter.user_id is not None and click.user_id != click_filter.user_id:
        return False
    for name in ("country", "city", "device", "browser"):
        wanted = getattr(click_filter, name)
        actual = getattr(click, name)
        if wanted and (actual is None or wanted.lower() not in actual.lower()):
            return False
    for name in ("country", "city"):
        present = getattr(click_filter, f"has_{name}")
        if present is not None and (getattr(click, name) is not None) != present:
            return False
    return True


def _dimension_value(click: ClickEvent, dimension: Dimension):
    if dimension is Dimension.LINK:
        return click.link_id
    if dimension is Dimension.DAY:
        return click.created_at.replace(hour=0, minute=0, second=0, microsecond=0)
    if dimension is Dimension.HOUR:
        return click.created_at.replace(minute=0, second=0, microsecond=0)
    return getattr(click, dimension.value)


class FakeClickStore:
    def __init__(self):
        self.clicks: list[ClickEvent] = []
        self.calls: list[str] = []

    def add(
        self,
        link_id: UUID,
        created_at: datetime = NOW,
        country: str | None = "Norway",
        city: str | None = "Oslo",
        device: str = "desktop",
        browser: str = "Chrome",
        user_id: UUID | None = None,
    ) -> ClickEvent:
        click = ClickEvent(
            id=uuid4(),
            link_id=link_id,
            user_id=user_id,
            ip_address="8.8.8.8",
            user_agent="Mozilla/5.0",
            country=country,
            city=city,
            device=device,
            browser=browser,
            created_at=created_at,
        )
        self.clicks.append(click)
        return click

    async def insert(self, click: NewClick) -> ClickEvent:
        self.calls.append("insert")
        event = ClickEvent(id=uuid4(), created_at=NOW, **click.model_dump())
        self.clicks.append(event)
        return event

    async def count(self, click_filter: ClickFilter) -> int:
        self.calls.append("count")
        return sum(1 for click in self.clicks if _matches(click, click_filter))

    async def group_by(
        self,
        dimension: Dimension,
        click_filter: ClickFilter,
    ) -> list[AggregationBucket]:
        self.calls.append(f"group_by:{dimension.value}")
        counts: dict = {}
        ordered = sorted(
            (click for click in self.clicks if _matches(click, click_filter)),
            key=lambda click: click.created_at,
        )
        for click in ordered:
            value = _dimension_value(click, dimension)
            if value is None or (isinstance(value, str) and not value.strip()):
                continue
            counts[value] = counts.get(value, 0) + 1
        buckets = [AggregationBucket(value=value, count=count) for value, count in counts.items()]
        return sorted(buckets, key=lambda bucket: bucket.count, reverse=True)

    async def find_many(
        self,
        click_filter: ClickFilter,
        skip: int,
        limit: int,
        newest_first: bool = True,
    ) -> list[ClickEvent]:
        self.calls.append("find_many")
        matched = [click for click in self.clicks if _matches(click, click_filter)]
        matched.sort(key=lambda click: click.created_at, reverse=newest_first)
        return matched[skip:skip + limit]


class FakeUserStore:
    def __init__(self):
        self.users: dict[UUID, UserRecord] = {}
        self.role_counts_override: dict[str, int] | None = None

    def add(self, role: str = "FREE", email: str | None = None) -> UserRecord:
        user_id = uuid4()
        user = UserRecord(
            id=user_id,
            email=email or f"{user_id.hex[:8]}@example.com",
            full_name="Test User",
            role=role,
            created_at=NOW,
        )
        self.users[user.id] = user
        return user

    async def find_by_id(self, user_id: UUID) -> UserRecord:
        if user_id not in self.users:
            raise NotFoundError("User", user_id)
        return self.users[user_id]

    async def count(self) -> int:
        return len(self.users)

    async def count_by_role(self) -> dict[str, int]:
        if self.role_counts_override is not None:
            return dict(self.role_counts_override)
        counts: dict[str, int] = {}
        for user in self.users.values():
            counts[user.role] = counts.get(user.role, 0) + 1
        return counts


class FakeLinkStore:
    def __init__(self, click_store: FakeClickStore, user_store: FakeUserStore):
        self.links: dict[UUID, LinkRecord] = {}
        self._clicks = click_store
        self._users = user_store

    def add(
        self,
        short_code: str | None = None,
        created_at: datetime = NOW,
        user_id: UUID | None = None,
        title: str | None = None,
    ) -> LinkRecord:
        link_id = uuid4()
        link = LinkRecord(
            id=link_id,
            short_code=short_code or link_id.hex[:6],
            original_url=f"https://example.com/{link_id.hex[:6]}",
            title=title,
            user_id=user_id,
            created_at=created_at,
        )
        self.links[link.id] = link
        return link

    async def find_by_id(self, link_id: UUID) -> LinkRecord:
        if link_id not in self.links:
            raise NotFoundError("Link", link_id)
        return self.links[link_id]

    async def find_by_short_code(self, short_code: str) -> LinkRecord:
        for link in self.links.values():
            if link.short_code == short_code:
                return link
        raise NotFoundError("Link", short_code)

    async def find_many(self, link_ids: Sequence[UUID]) -> dict[UUID, LinkRecord]:
        return {link_id: self.links[link_id] for link_id in link_ids if link_id in self.links}

    def _in_window(self, link: LinkRecord, since, until) -> bool:
        if since is not None and link.created_at < since:
            return False
        if until is not None and link.created_at > until:
            return False
        return True

    async def count(self, created_since=None, created_until=None) -> int:
        return sum(
            1 for link in self.links.values()
            if self._in_window(link, created_since, created_until)
        )

    async def list_with_clicks(self, created_since, created_until, skip, limit) -> list[LinkWithClicks]:
        links = sorted(
            (link for link in self.links.values() if self._in_window(link, created_since, created_until)),
            key=lambda link: link.created_at,
        )
        result = []
        for link in links[skip:skip + limit]:
            owner = self._users.users.get(link.user_id) if link.user_id else None
            result.append(LinkWithClicks(
                **link.model_dump(),
                clicks=sorted(
                    (click for click in self._clicks.clicks if click.link_id == link.id),
                    key=lambda click: click.created_at,
                ),
                user=UserSummary.model_validate(owner) if owner else None,
            ))
        return result


@pytest.fixture
def click_store() -> FakeClickStore:
    return FakeClickStore()


@pytest.fixture
def user_store() -> FakeUserStore:
    return FakeUserStore()


@pytest.fixture
def link_store(click_store, user_store) -> FakeLinkStore:
    return FakeLinkStore(click_store, user_store)


@pytest.fixture
def minutes_ago():
    """Timestamp ``n`` minutes before the fixed test clock."""

    def _minutes_ago(n: int) -> datetime:
        return NOW - timedelta(minutes=n)

    return _minutes_ago
