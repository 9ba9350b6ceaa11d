"""Daily merge: union per-metric daily maps into unified daily records."""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Mapping

from healthsync.aggregation.base import DailyMetricMap, MetricKind, UnifiedDailyRecord
from healthsync.aggregation.config_loader import MetricsConfig, get_metrics_config

logger = logging.getLogger("healthsync.aggregation.merge")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return int(math.floor(value + 0.5))


def merge_daily_maps(
    maps: Mapping[MetricKind, DailyMetricMap],
    config: MetricsConfig | None = None,
) -> list[UnifiedDailyRecord]:
    """Merge per-metric daily maps into one record per date.

    The output covers exactly the union of dates across all maps, newest
    first.  A metric missing for a date stays None; zero is kept as zero.
    Integer-precision metrics are rounded half-up, the rest are kept as read.

    Args:
        maps:   Metric kind → DailyMetricMap.  Kinds may be omitted.
        config: Metric catalogue; defaults to the bundled one.

    Returns:
        Records sorted by record_date descending; empty if every map is empty.
    """
    config = config or get_metrics_config()

    all_dates: set[date] = set()
    for daily in maps.values():
        all_dates.update(daily)

    records: list[UnifiedDailyRecord] = []
    for day in sorted(all_dates, reverse=True):
        fields: dict[str, int | float] = {}
        for kind, daily in maps.items():
            if day not in daily:
                continue
            definition = config.metric(kind)
            value = daily[day]
            fields[definition.output_field] = (
                round_half_up(value) if definition.rounds_to_integer else value
            )
        records.append(UnifiedDailyRecord(record_date=day, **fields))

    logger.debug("Merged %d metric maps into %d daily records", len(maps), len(records))
    return records
