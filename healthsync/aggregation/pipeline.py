"""Aggregation pipeline: raw source records → ordered unified daily records.

1. Check the source is available and initialized
2. Request read permissions for the five metric kinds
3. Read all five metrics concurrently for the requested date range
4. Reduce each metric to a daily map
5. Merge the maps into records, newest first, optionally owned by a user

A metric whose read fails degrades to "no data"; it never fails the batch.
Only a failing permission request propagates.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, time, timedelta, timezone

from healthsync.aggregation.base import (
    ALL_METRIC_KINDS,
    DailyMetricMap,
    MetricKind,
    RawMetricRecord,
    RecordSource,
    ReductionMode,
    UnifiedDailyRecord,
    attach_user,
)
from healthsync.aggregation.config_loader import MetricsConfig, get_metrics_config
from healthsync.aggregation.merge import merge_daily_maps
from healthsync.aggregation.reducer import reduce_by_date, sleep_minutes_by_date

logger = logging.getLogger("healthsync.aggregation.pipeline")


def date_range_bounds(start_date: date, end_date: date) -> tuple[datetime, datetime]:
    """Return the UTC instant range ``[start_date 00:00, end_date + 1 day 00:00)``.

    Raises:
        ValueError: If end_date is before start_date.
    """
    if end_date < start_date:
        raise ValueError(f"end_date {end_date} is before start_date {start_date}")
    start = datetime.combine(start_date, time.min, tzinfo=timezone.utc)
    end = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
    return start, end


class DailyAggregator:
    """Aggregate one record source into unified daily records.

    Usage::

        aggregator = DailyAggregator(HealthConnectExportSource(export))
        records = await aggregator.aggregate(date(2024, 1, 1), date(2024, 1, 7), user_id="u1")
    """

    def __init__(self, source: RecordSource, config: MetricsConfig | None = None) -> None:
        self._source = source
        self._config = config or get_metrics_config()

    async def aggregate(
        self, start_date: date, end_date: date, user_id: str | None = None
    ) -> list[UnifiedDailyRecord]:
        """Build unified daily records for ``start_date``..``end_date`` inclusive.

        Args:
            start_date: First calendar date (UTC) to include.
            end_date:   Last calendar date (UTC) to include.
            user_id:    If given, every record is scoped to this user.

        Returns:
            Records sorted newest first; empty when there is no data.

        Raises:
            PermissionRequestError: If the permission request fails.
            ValueError:             If end_date is before start_date.
        """
        start, end = date_range_bounds(start_date, end_date)
        source = self._source

        if not await source.is_available():
            logger.warning("%s is not available on this device", source.DISPLAY_NAME)
            return []
        if not await source.initialize():
            logger.warning("%s failed to initialize", source.DISPLAY_NAME)
            return []

        granted = await source.request_permissions(ALL_METRIC_KINDS)
        if not granted:
            logger.warning("%s: no read permissions granted", source.DISPLAY_NAME)
            return []

        raw_by_kind = await self._read_all(start, end)
        maps = {kind: self._reduce(kind, records) for kind, records in raw_by_kind.items()}
        records = merge_daily_maps(maps, self._config)

        logger.info(
            "Aggregated %s..%s from %s: %d daily record(s)",
            start_date, end_date, source.DISPLAY_NAME, len(records),
        )
        if user_id is not None:
            records = attach_user(records, user_id)
        return records

    async def _read_all(
        self, start: datetime, end: datetime
    ) -> dict[MetricKind, list[RawMetricRecord]]:
        results = await asyncio.gather(
            *(self._read_metric(kind, start, end) for kind in ALL_METRIC_KINDS)
        )
        return dict(zip(ALL_METRIC_KINDS, results))

    async def _read_metric(
        self, kind: MetricKind, start: datetime, end: datetime
    ) -> list[RawMetricRecord]:
        try:
            return await self._source.read_records(kind, start, end)
        except Exception as exc:
            logger.warning(
                "%s: reading %s failed, treating as no data: %s",
                self._source.DISPLAY_NAME, kind.value, exc,
            )
            return []

    def _reduce(self, kind: MetricKind, records: list[RawMetricRecord]) -> DailyMetricMap:
        mode = self._config.metric(kind).reduction
        if mode is ReductionMode.SESSION_MINUTES:
            return sleep_minutes_by_date(records)
        return reduce_by_date(records, mode)


async def aggregate(
    source: RecordSource,
    start_date: date,
    end_date: date,
    user_id: str | None = None,
) -> list[UnifiedDailyRecord]:
    """Shortcut for ``DailyAggregator(source).aggregate(...)``."""
    return await DailyAggregator(source).aggregate(start_date, end_date, user_id=user_id)
