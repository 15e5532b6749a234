"""Click SQLAlchemy model for storing raw click events."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from linkpulse.core.database import Base

if TYPE_CHECKING:
    from linkpulse.models.link import Link


class Click(Base):
    """Click model for storing raw click/redirect events.

    Each row represents a single click on a shortened URL. Rows are
    append-only: ``link_id`` never changes after insert.
    """

    __tablename__ = "clicks"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        primary_key=True,
        server_default=func.gen_random_uuid(),
    )
    link_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("api.links.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="UUID of the shortened link",
    )
    user_id: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("api.users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Authenticated user who clicked (anonymous clicks allowed)",
    )
    ip_address: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Resolved client IP address (0.0.0.0 when unknown)",
    )
    user_agent: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="HTTP User-Agent header",
    )
    country: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Country name; NULL = not resolved, 'unknown' = lookup failed",
    )
    city: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="City name; NULL = not resolved, 'unknown' = lookup failed",
    )
    device: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Classified device type",
    )
    browser: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Classified browser name",
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

    link: Mapped["Link"] = relationship(back_populates="clicks", lazy="raise")

    # Composite index for windowed per-link queries
    __table_args__ = (
        Index("ix_clicks_link_id_created_at", "link_id", "created_at"),
        {"schema": "analytics"},
    )

    def __repr__(self) -> str:
        return f"<Click {self.id} link={self.link_id} at={self.created_at}>"
