"""Pydantic schemas for the record-click endpoints."""

from uuid import UUID

from linkpulse.schemas.records import CamelModel, ClickEvent


class RecordClickRequest(CamelModel):
    """Body of ``POST /clicks``."""

    link_id: UUID
    user_id: UUID | None = None


class RecordClickByShortCodeRequest(CamelModel):
    """Body of ``POST /clicks/short/{short_code}``."""

    user_id: UUID | None = None


class RecordClickResponse(CamelModel):
    click: ClickEvent
    message: str = "Click registered successfully"
