"""Shared fixtures and sample device records for aggregation tests."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Iterable

import pytest

from healthsync.aggregation.base import MetricKind, RawMetricRecord, RecordSource
from healthsync.aggregation.config_loader import MetricsConfig, load_metrics_config

TEST_USER_ID = "user-1"
DAY_1 = date(2024, 1, 1)
DAY_2 = date(2024, 1, 2)


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def raw(
    kind: MetricKind,
    start: datetime,
    value: float | None = None,
    end: datetime | None = None,
) -> RawMetricRecord:
    return RawMetricRecord(kind=kind, start_time=start, end_time=end, value=value)


class FakeSource(RecordSource):
    """In-memory source returning canned records (or raising) per kind."""

    SOURCE_ID = "fake"
    DISPLAY_NAME = "Fake Source"

    def __init__(
        self,
        records: dict[MetricKind, list[RawMetricRecord] | Exception] | None = None,
        available: bool = True,
        permission_error: Exception | None = None,
        granted: Iterable[MetricKind] | None = None,
    ) -> None:
        self.records = records or {}
        self.available = available
        self.permission_error = permission_error
        self.granted = list(granted) if granted is not None else list(MetricKind)
        self.reads: list[tuple[MetricKind, datetime, datetime]] = []

    async def is_available(self) -> bool:
        return self.available

    async def request_permissions(self, kinds: Iterable[MetricKind]) -> list[MetricKind]:
        if self.permission_error is not None:
            raise self.permission_error
        return [k for k in kinds if k in self.granted]

    async def read_records(
        self, kind: MetricKind, start: datetime, end: datetime
    ) -> list[RawMetricRecord]:
        self.reads.append((kind, start, end))
        result = self.records.get(kind, [])
        if isinstance(result, Exception):
            raise result
        return list(result)


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def metrics_config() -> MetricsConfig:
    """Load the bundled metric catalogue for tests."""
    return load_metrics_config()


# ---------------------------------------------------------------------------
# Health Connect upload fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def health_connect_export() -> dict:
    """Two days of Health Connect records, plus one record outside the range."""
    return {
        "Steps": [
            {"startTime": "2024-01-01T08:00:00Z", "endTime": "2024-01-01T09:00:00Z", "count": 1200},
            {"startTime": "2024-01-01T12:00:00Z", "endTime": "2024-01-01T13:00:00Z", "count": 800},
            {"startTime": "2024-01-02T09:00:00Z", "endTime": "2024-01-02T10:00:00Z", "count": 500},
            {"startTime": "2024-01-03T09:00:00Z", "endTime": "2024-01-03T10:00:00Z", "count": 9999},
        ],
        "HeartRate": [
            {
                "startTime": "2024-01-01T10:00:00Z",
                "endTime": "2024-01-01T10:05:00Z",
                "samples": [
                    {"time": "2024-01-01T10:00:00Z", "beatsPerMinute": 60},
                    {"time": "2024-01-01T10:05:00Z", "beatsPerMinute": 71},
                ],
            }
        ],
        "TotalCaloriesBurned": [
            {"startTime": "2024-01-01T00:00:00Z", "energy": {"inKilocalories": 1500.4}},
            {"startTime": "2024-01-01T18:00:00Z", "energy": {"inKilocalories": 200.3}},
        ],
        "SleepSession": [
            {"startTime": "2024-01-01T23:30:00Z", "endTime": "2024-01-02T06:00:00Z"},
        ],
        "Weight": [
            {"time": "2024-01-02T07:00:00Z", "weight": {"inKilograms": 70.5}},
        ],
    }
