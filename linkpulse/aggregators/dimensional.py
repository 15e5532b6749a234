"""Dimensional aggregation of click records."""

import asyncio
import time
from collections.abc import Awaitable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

import structlog

from linkpulse.core.errors import InvalidArgumentError
from linkpulse.core.observability import record_aggregation, record_aggregation_failed
from linkpulse.stores.base import AggregationBucket, ClickFilter, ClickStore, Dimension

logger = structlog.get_logger()


@dataclass(frozen=True)
class RankedEntry:
    """A bucket with its 1-based rank and share of the dimension total."""

    rank: int
    value: str | UUID | datetime
    count: int
    percentage: str


@dataclass(frozen=True)
class AggregateResult:
    """Buckets per requested dimension plus the overall click total.

    ``total`` counts every click matching the filter, including rows whose
    dimension value is blank, so it can exceed a dimension's bucket sum.
    """

    total: int
    buckets: dict[Dimension, list[AggregationBucket]]

    def __getitem__(self, dimension: Dimension) -> list[AggregationBucket]:
        return self.buckets[dimension]

    def dimension_total(self, dimension: Dimension) -> int:
        return sum(bucket.count for bucket in self.buckets[dimension])

    def ranked(self, dimension: Dimension, top_n: int | None = None) -> list[RankedEntry]:
        return rank_buckets(self.buckets[dimension], top_n)


def percentage(count: int, total: int) -> str:
    """``count`` as a percentage of ``total`` with 2 decimals; ``"0.00"`` if total is 0."""
    if total <= 0:
        return "0.00"
    return f"{count / total * 100:.2f}"


def rank_buckets(
    buckets: Sequence[AggregationBucket],
    top_n: int | None = None,
    offset: int = 0,
) -> list[RankedEntry]:
    """Rank already-sorted buckets.

    Percentages are computed against the sum of *all* buckets, not just the
    ones returned, so a top-N slice keeps its true shares.

    Args:
        buckets: Buckets sorted by count descending.
        top_n: Keep only the first ``top_n`` buckets after ``offset``.
        offset: Number of leading buckets to skip (pagination).
    """
    total = sum(bucket.count for bucket in buckets)
    end = None if top_n is None else offset + top_n
    return [
        RankedEntry(
            rank=offset + index + 1,
            value=bucket.value,
            count=bucket.count,
            percentage=percentage(bucket.count, total),
        )
        for index, bucket in enumerate(buckets[offset:end])
    ]


def sort_buckets(buckets: Iterable[AggregationBucket]) -> list[AggregationBucket]:
    """Drop blank values and order by count descending.

    The sort is stable, so buckets with equal counts keep the order the
    store produced them in (first encounter).
    """
    kept = [bucket for bucket in buckets if not _is_blank(bucket.value)]
    return sorted(kept, key=lambda bucket: bucket.count, reverse=True)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


async def gather_all(*awaitables: Awaitable) -> list:
    """Run awaitables concurrently; on the first failure cancel the rest.

    Nothing partial is returned: either every result, in argument order,
    or the first exception.
    """
    tasks = [asyncio.ensure_future(awaitable) for awaitable in awaitables]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class DimensionalAggregator:
    """Grouped counts over click records along one or more dimensions.

    Usage:
        aggregator = DimensionalAggregator(click_store)
        result = await aggregator.aggregate(
            ClickFilter(since=week_ago),
            [Dimension.COUNTRY, Dimension.DEVICE],
        )
        top_countries = result.ranked(Dimension.COUNTRY, top_n=10)
    """

    def __init__(self, click_store: ClickStore):
        self._clicks = click_store

    async def aggregate(
        self,
        click_filter: ClickFilter,
        dimensions: Sequence[Dimension],
        report: str = "adhoc",
    ) -> AggregateResult:
        """Group, count and sort clicks for every requested dimension.

        All grouped counts and the overall total run concurrently. A failure
        in any of them fails the whole call.

        Args:
            click_filter: Rows to aggregate.
            dimensions: Dimensions to group by; duplicates are ignored.
            report: Label used for metrics and logs.

        Raises:
            InvalidArgumentError: No dimension, or an unknown one, was requested.
        """
        try:
            unique_dimensions = list(dict.fromkeys(Dimension(d) for d in dimensions))
        except ValueError as e:
            raise InvalidArgumentError(str(e)) from e
        if not unique_dimensions:
            raise InvalidArgumentError("At least one dimension is required")

        start_time = time.perf_counter()

        try:
            total, *grouped = await gather_all(
                self._clicks.count(click_filter),
                *(self._clicks.group_by(dimension, click_filter) for dimension in unique_dimensions),
            )
        except Exception as e:
            record_aggregation_failed(report)
            logger.error(
                "Aggregation failed",
                report=report,
                dimensions=[d.value for d in unique_dimensions],
                error=str(e),
            )
            raise

        buckets = {
            dimension: sort_buckets(dimension_buckets)
            for dimension, dimension_buckets in zip(unique_dimensions, grouped)
        }

        duration = time.perf_counter() - start_time
        record_aggregation(report, duration)
        logger.debug(
            "Aggregation complete",
            report=report,
            dimensions=[d.value for d in unique_dimensions],
            total=total,
            duration_ms=round(duration * 1000, 2),
        )
        return AggregateResult(total=total, buckets=buckets)
