"""Store protocols and their SQLAlchemy implementations."""

from linkpulse.stores.base import (
    AggregationBucket,
    ClickFilter,
    ClickStore,
    Dimension,
    LinkStore,
    UserStore,
)
from linkpulse.stores.sql import SqlClickStore, SqlLinkStore, SqlUserStore

__all__ = [
    # Contracts
    "AggregationBucket",
    "ClickFilter",
    "ClickStore",
    "Dimension",
    "LinkStore",
    "UserStore",
    # SQLAlchemy
    "SqlClickStore",
    "SqlLinkStore",
    "SqlUserStore",
]
