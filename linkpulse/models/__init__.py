"""SQLAlchemy models.

All models should be imported here for Alembic to detect them.
"""

from linkpulse.core.database import Base
from linkpulse.models.click import Click
from linkpulse.models.link import Link
from linkpulse.models.user import User, UserRole

__all__ = ["Base", "Click", "Link", "User", "UserRole"]
