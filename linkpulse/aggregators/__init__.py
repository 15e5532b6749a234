"""Data aggregation logic for analytics."""

from linkpulse.aggregators.dimensional import (
    AggregateResult,
    DimensionalAggregator,
    RankedEntry,
    gather_all,
    percentage,
    rank_buckets,
    sort_buckets,
)

__all__ = [
    "AggregateResult",
    "DimensionalAggregator",
    "RankedEntry",
    "gather_all",
    "percentage",
    "rank_buckets",
    "sort_buckets",
]
