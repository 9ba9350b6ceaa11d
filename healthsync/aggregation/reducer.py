"""Per-metric daily reduction.

Collapses a list of irregularly-timed raw records for one metric into one
value per UTC calendar date.  Pure functions, no I/O.

Reduction modes:
    sum      — arithmetic total of same-day values
    average  — arithmetic mean of same-day values (unweighted)
    last     — value of the last record seen for the date, in input order

Sleep sessions are reduced separately by ``sleep_minutes_by_date``: each
session's whole duration goes to the date it started on, and sessions that
start on the same date are summed.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Iterable

from healthsync.aggregation.base import (
    DailyMetricMap,
    RawMetricRecord,
    ReductionMode,
    calendar_date_key,
)

logger = logging.getLogger("healthsync.aggregation.reducer")


def group_values_by_date(records: Iterable[RawMetricRecord]) -> dict[date, list[float]]:
    """Group record values by the calendar date of their start instant.

    Records without a value are skipped entirely; they do not count as zero.
    Input order is preserved within each date.
    """
    grouped: dict[date, list[float]] = defaultdict(list)
    for record in records:
        if record.value is None:
            continue
        grouped[calendar_date_key(record.start_time)].append(record.value)
    return dict(grouped)


def reduce_by_date(
    records: Iterable[RawMetricRecord], mode: ReductionMode | str
) -> DailyMetricMap:
    """Reduce records for one metric into a date → value map.

    ``last`` depends on input order; callers supply records chronologically.

    Args:
        records: Raw records of a single metric kind.
        mode:    "sum", "average" or "last".

    Returns:
        DailyMetricMap; empty when there is nothing to reduce.

    Raises:
        ValueError: If ``mode`` is not one of the three value reductions.
    """
    mode = ReductionMode(mode)
    if mode is ReductionMode.SESSION_MINUTES:
        raise ValueError("session_minutes is reduced by sleep_minutes_by_date()")

    result: DailyMetricMap = {}
    for day, values in group_values_by_date(records).items():
        if mode is ReductionMode.SUM:
            result[day] = sum(values)
        elif mode is ReductionMode.AVERAGE:
            result[day] = sum(values) / len(values)
        else:
            result[day] = values[-1]
    return result


def session_minutes(record: RawMetricRecord) -> int | None:
    """Whole minutes between a session's start and end, floored.

    Returns None for sessions without an end or ending before they start.
    """
    if record.end_time is None:
        return None
    seconds = (record.end_time - record.start_time).total_seconds()
    if seconds < 0:
        return None
    return int(seconds // 60)


def sleep_minutes_by_date(sessions: Iterable[RawMetricRecord]) -> DailyMetricMap:
    """Reduce sleep sessions into a date → minutes-slept map.

    A session crossing midnight is attributed in full to its start date.
    Sessions with no end time or with an end before the start are discarded
    with a warning and contribute nothing.
    """
    result: DailyMetricMap = {}
    discarded = 0
    for session in sessions:
        minutes = session_minutes(session)
        if minutes is None:
            discarded += 1
            logger.warning(
                "Discarding sleep session %s → %s: end missing or before start",
                session.start_time.isoformat(),
                session.end_time.isoformat() if session.end_time else None,
            )
            continue
        day = calendar_date_key(session.start_time)
        result[day] = result.get(day, 0) + minutes

    if discarded:
        logger.info("Sleep reduction: %d session(s) discarded", discarded)
    return result
