"""Pydantic schemas for the records exchanged with the stores."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys, populated by field name."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class UserSummary(CamelModel):
    """Owner/author summary embedded in link and click payloads."""

    id: UUID
    full_name: str | None = None
    email: str


class UserRecord(UserSummary):
    """A user as read from the user store."""

    role: str
    created_at: datetime | None = None


class LinkRecord(CamelModel):
    """A link as read from the link store."""

    id: UUID
    short_code: str
    original_url: str
    title: str | None = None
    user_id: UUID | None = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime | None = None
    expires_at: datetime | None = None


class NewClick(CamelModel):
    """A fully enriched click ready to be appended to the click store."""

    link_id: UUID
    user_id: UUID | None = None
    ip_address: str
    user_agent: str
    country: str | None = None
    city: str | None = None
    device: str
    browser: str


class ClickEvent(NewClick):
    """A persisted click."""

    id: UUID
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(
        json_schema_extra={"example": {
            "id": "9b2f1c44-5d0e-4c43-9a55-8c1a3f0b8e21",
            "linkId": "550e8400-e29b-41d4-a716-446655440000",
            "userId": None,
            "ipAddress": "8.8.8.8",
            "userAgent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
            "country": "United States",
            "city": "Mountain View",
            "device": "desktop",
            "browser": "Chrome",
            "createdAt": "2024-01-15T10:30:00",
        }},
    )


class LinkWithClicks(LinkRecord):
    """A link with its nested clicks and owning user, for the time series."""

    clicks: list[ClickEvent] = Field(default_factory=list)
    user: UserSummary | None = None
