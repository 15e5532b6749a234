"""User SQLAlchemy model (read-only from the analytics service)."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import String, func
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from linkpulse.core.database import Base


class UserRole(str, Enum):
    """Account tiers counted by the general analytics report."""

    PREMIUM = "PREMIUM"
    FREE = "FREE"
    GUEST = "GUEST"
    ADMIN = "ADMIN"


class User(Base):
    """Registered user. Owns links and optionally authors clicks."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        primary_key=True,
        server_default=func.gen_random_uuid(),
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.FREE.value,
        comment="Account tier: PREMIUM, FREE, GUEST or ADMIN",
    )
    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = ({"schema": "api"},)

    def __repr__(self) -> str:
        return f"<User {self.email}>"
