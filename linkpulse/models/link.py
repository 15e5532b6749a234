"""Link SQLAlchemy model (read-only from the analytics service)."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, Text, func
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from linkpulse.core.database import Base

if TYPE_CHECKING:
    from linkpulse.models.click import Click
    from linkpulse.models.user import User


class Link(Base):
    """Link model for shortened URLs."""

    __tablename__ = "links"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        primary_key=True,
        server_default=func.gen_random_uuid(),
    )
    user_id: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("api.users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    short_code: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
        index=True,
        comment="Short code for the URL (e.g., 'abc123' or 'my-custom-slug')",
    )
    original_url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="The original URL to redirect to",
    )
    title: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Optional title for the link",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="Whether the link is active (soft delete)",
    )
    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        nullable=True,
        comment="Optional expiration timestamp",
    )

    # Relationships
    user: Mapped["User | None"] = relationship(lazy="raise")
    clicks: Mapped[list["Click"]] = relationship(
        back_populates="link",
        lazy="raise",
        order_by="Click.created_at",
    )

    __table_args__ = ({"schema": "api"},)

    def __repr__(self) -> str:
        return f"<Link {self.short_code} -> {self.original_url[:50]}>"
