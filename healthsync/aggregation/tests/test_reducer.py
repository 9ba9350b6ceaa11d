"""Tests for per-metric daily reduction and sleep minutes."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from healthsync.aggregation.base import MetricKind, ReductionMode
from healthsync.aggregation.reducer import (
    group_values_by_date,
    reduce_by_date,
    session_minutes,
    sleep_minutes_by_date,
)
from healthsync.aggregation.tests.conftest import DAY_1, DAY_2, raw, utc

STEPS = MetricKind.STEPS
HR = MetricKind.HEART_RATE
SLEEP = MetricKind.SLEEP


class TestReduceByDate:
    def test_sum_totals_same_day_values(self) -> None:
        records = [
            raw(STEPS, utc(2024, 1, 1, 8), 1200),
            raw(STEPS, utc(2024, 1, 1, 12), 800),
            raw(STEPS, utc(2024, 1, 2, 9), 500),
        ]
        assert reduce_by_date(records, ReductionMode.SUM) == {DAY_1: 2000, DAY_2: 500}

    def test_average_is_unweighted_mean(self) -> None:
        records = [
            raw(HR, utc(2024, 1, 1, 1), 60),
            raw(HR, utc(2024, 1, 1, 2), 70),
            raw(HR, utc(2024, 1, 1, 23), 83),
        ]
        result = reduce_by_date(records, "average")
        assert result[DAY_1] == pytest.approx(71.0)

    def test_last_takes_final_record_in_input_order(self) -> None:
        records = [
            raw(MetricKind.WEIGHT, utc(2024, 1, 1, 7), 70.2),
            raw(MetricKind.WEIGHT, utc(2024, 1, 1, 21), 70.9),
        ]
        assert reduce_by_date(records, ReductionMode.LAST) == {DAY_1: 70.9}

    def test_last_depends_on_input_order(self) -> None:
        records = [
            raw(MetricKind.WEIGHT, utc(2024, 1, 1, 21), 70.9),
            raw(MetricKind.WEIGHT, utc(2024, 1, 1, 7), 70.2),
        ]
        assert reduce_by_date(records, ReductionMode.LAST) == {DAY_1: 70.2}

    def test_missing_values_are_not_zero(self) -> None:
        records = [
            raw(HR, utc(2024, 1, 1, 1), 60),
            raw(HR, utc(2024, 1, 1, 2), None),
            raw(HR, utc(2024, 1, 1, 3), 80),
        ]
        assert reduce_by_date(records, ReductionMode.AVERAGE) == {DAY_1: 70}

    def test_date_with_only_missing_values_is_absent(self) -> None:
        records = [raw(STEPS, utc(2024, 1, 1, 1), None)]
        assert reduce_by_date(records, ReductionMode.SUM) == {}

    def test_zero_is_kept(self) -> None:
        assert reduce_by_date([raw(STEPS, utc(2024, 1, 1), 0)], "sum") == {DAY_1: 0}

    def test_empty_input_gives_empty_map(self) -> None:
        for mode in ("sum", "average", "last"):
            assert reduce_by_date([], mode) == {}

    def test_groups_by_utc_day(self) -> None:
        # 08:00 in Seoul on Jan 2 is 23:00 UTC on Jan 1
        seoul = timezone(timedelta(hours=9))
        records = [raw(STEPS, datetime(2024, 1, 2, 8, tzinfo=seoul), 100)]
        assert reduce_by_date(records, "sum") == {DAY_1: 100}

    def test_session_minutes_mode_rejected(self) -> None:
        with pytest.raises(ValueError):
            reduce_by_date([], ReductionMode.SESSION_MINUTES)

    def test_unknown_mode_rejected(self) -> None:
        with pytest.raises(ValueError):
            reduce_by_date([], "median")

    def test_group_values_preserves_order(self) -> None:
        records = [
            raw(STEPS, utc(2024, 1, 1, 9), 3),
            raw(STEPS, utc(2024, 1, 1, 8), 1),
        ]
        assert group_values_by_date(records) == {DAY_1: [3, 1]}


class TestSleepMinutes:
    def test_cross_midnight_session_attributed_to_start_date(self) -> None:
        session = raw(SLEEP, utc(2024, 1, 1, 23, 30), end=utc(2024, 1, 2, 6, 0))
        assert sleep_minutes_by_date([session]) == {DAY_1: 390}

    def test_sessions_on_same_date_are_summed(self) -> None:
        sessions = [
            raw(SLEEP, utc(2024, 1, 1, 1, 0), end=utc(2024, 1, 1, 7, 0)),   # 360
            raw(SLEEP, utc(2024, 1, 1, 14, 0), end=utc(2024, 1, 1, 14, 45)),  # 45
        ]
        assert sleep_minutes_by_date(sessions) == {DAY_1: 405}

    def test_partial_minutes_are_floored(self) -> None:
        session = raw(SLEEP, utc(2024, 1, 1, 22, 0, 0), end=utc(2024, 1, 1, 22, 59, 59))
        assert session_minutes(session) == 59

    def test_end_before_start_is_discarded(self) -> None:
        sessions = [
            raw(SLEEP, utc(2024, 1, 1, 7, 0), end=utc(2024, 1, 1, 6, 0)),
            raw(SLEEP, utc(2024, 1, 2, 0, 0), end=utc(2024, 1, 2, 1, 0)),
        ]
        assert sleep_minutes_by_date(sessions) == {DAY_2: 60}

    def test_missing_end_is_discarded(self) -> None:
        assert sleep_minutes_by_date([raw(SLEEP, utc(2024, 1, 1, 1))]) == {}

    def test_zero_length_session_counts_as_zero(self) -> None:
        session = raw(SLEEP, utc(2024, 1, 1, 1), end=utc(2024, 1, 1, 1))
        assert sleep_minutes_by_date([session]) == {date(2024, 1, 1): 0}

    def test_empty_input(self) -> None:
        assert sleep_minutes_by_date([]) == {}
