"""Shared fixtures for sync tests."""

from __future__ import annotations

from datetime import date

import pytest

from healthsync.aggregation.base import UnifiedDailyRecord
from healthsync.sync.availability import AvailabilityStatus, AvailabilityStore

TEST_USER_ID = "user-1"


class FakeClock:
    """Stands in for asyncio.sleep; records requested delays, never waits."""

    def __init__(self) -> None:
        self.delays: list[float] = []
        self.elapsed = 0.0

    async def sleep(self, delay: float) -> None:
        self.delays.append(delay)
        self.elapsed += delay


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> AvailabilityStore:
    return AvailabilityStore()


@pytest.fixture
def seen(store: AvailabilityStore) -> list[AvailabilityStatus]:
    """Every status the store passes through, in order."""
    statuses: list[AvailabilityStatus] = []
    store.subscribe(lambda availability: statuses.append(availability.status))
    return statuses


@pytest.fixture
def daily_records() -> list[UnifiedDailyRecord]:
    return [
        UnifiedDailyRecord(record_date=date(2024, 1, 3), steps=3000, user_id=TEST_USER_ID),
        UnifiedDailyRecord(record_date=date(2024, 1, 2), steps=2000, user_id=TEST_USER_ID),
        UnifiedDailyRecord(record_date=date(2024, 1, 1), steps=1000, user_id=TEST_USER_ID),
    ]
