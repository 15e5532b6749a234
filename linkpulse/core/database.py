"""Database configuration with SQLAlchemy 2.0 async support."""

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

# Naming convention for constraints (helps with migrations)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models.

    Links and users live in the ``api`` schema, clicks in ``analytics``;
    each model names its schema in ``__table_args__``.
    """

    metadata = MetaData(naming_convention=convention)


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine with connection pooling."""
    return create_async_engine(
        database_url,
        echo=echo,  # Log SQL statements in debug mode
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory; every store call opens its own session from it."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def close_db(engine: AsyncEngine) -> None:
    """Close database connections."""
    await engine.dispose()
