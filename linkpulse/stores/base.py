"""Store contracts consumed by the recorder, aggregator and analytics service.

Components receive these protocols through their constructors. The SQLAlchemy
implementations live in ``linkpulse.stores.sql``.
"""

from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Protocol
from uuid import UUID

from linkpulse.schemas.records import ClickEvent, LinkRecord, LinkWithClicks, NewClick, UserRecord


class Dimension(str, Enum):
    """Click attribute a grouped count can run over."""

    COUNTRY = "country"
    CITY = "city"
    DEVICE = "device"
    BROWSER = "browser"
    LINK = "link"
    DAY = "day"
    HOUR = "hour"

    @property
    def is_time_bucket(self) -> bool:
        return self in (Dimension.DAY, Dimension.HOUR)


@dataclass(frozen=True)
class AggregationBucket:
    """Count of clicks sharing one value of a dimension.

    ``value`` is a string for categorical dimensions, a UUID for ``link``
    and a datetime (truncated) for time buckets.
    """

    value: str | UUID | datetime
    count: int


@dataclass(frozen=True)
class ClickFilter:
    """Predicate over click rows. Unset fields do not constrain."""

    since: datetime | None = None
    until: datetime | None = None
    link_id: UUID | None = None
    user_id: UUID | None = None
    country: str | None = None
    city: str | None = None
    device: str | None = None
    browser: str | None = None
    # Presence flags: True = column not null, False = column null
    has_country: bool | None = None
    has_city: bool | None = None

    def where(self, **changes) -> "ClickFilter":
        """Copy of this filter with some fields replaced."""
        return replace(self, **changes)


class LinkStore(Protocol):
    async def find_by_id(self, link_id: UUID) -> LinkRecord:
        """Return the link or raise ``NotFoundError``."""
        ...

    async def find_by_short_code(self, short_code: str) -> LinkRecord:
        """Return the link or raise ``NotFoundError``."""
        ...

    async def find_many(self, link_ids: Sequence[UUID]) -> dict[UUID, LinkRecord]:
        """Links for the given ids; missing ids are absent from the result."""
        ...

    async def count(
        self,
        created_since: datetime | None = None,
        created_until: datetime | None = None,
    ) -> int: ...

    async def list_with_clicks(
        self,
        created_since: datetime | None,
        created_until: datetime | None,
        skip: int,
        limit: int,
    ) -> list[LinkWithClicks]:
        """Links ordered by creation ascending, with clicks and owner."""
        ...


class UserStore(Protocol):
    async def find_by_id(self, user_id: UUID) -> UserRecord:
        """Return the user or raise ``NotFoundError``."""
        ...

    async def count(self) -> int: ...

    async def count_by_role(self) -> dict[str, int]: ...


class ClickStore(Protocol):
    async def insert(self, click: NewClick) -> ClickEvent: ...

    async def count(self, click_filter: ClickFilter) -> int: ...

    async def group_by(
        self,
        dimension: Dimension,
        click_filter: ClickFilter,
    ) -> list[AggregationBucket]:
        """Counts of non-blank values, descending, first-seen tie-break."""
        ...

    async def find_many(
        self,
        click_filter: ClickFilter,
        skip: int,
        limit: int,
        newest_first: bool = True,
    ) -> list[ClickEvent]: ...
