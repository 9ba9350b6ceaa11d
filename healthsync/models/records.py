"""Pydantic models for daily records, manual entries, aggregation and publishing."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import Field, field_validator, model_validator

from healthsync.aggregation.base import UnifiedDailyRecord
from healthsync.aggregation.merge import round_half_up
from healthsync.models.base import HealthSyncBase


# ---------- Daily records ----------

class DailyRecordPayload(HealthSyncBase):
    """A unified daily record as exchanged with the remote store."""

    record_date: date
    steps: int | None = None
    heart_rate: int | None = None
    calories: int | None = None
    sleep_minutes: int | None = None
    weight_kg: float | None = None
    user_id: str | None = None
    synced_to_notion: bool = False
    synced_at: datetime | None = None

    @field_validator("steps", "heart_rate", "calories", "sleep_minutes", mode="before")
    @classmethod
    def _round_counts(cls, value: Any) -> Any:
        # Older clients stored fractional calories.
        if isinstance(value, float):
            return round_half_up(value)
        return value

    @classmethod
    def from_record(cls, record: UnifiedDailyRecord) -> DailyRecordPayload:
        return cls.model_validate(record)

    def to_record(self) -> UnifiedDailyRecord:
        return UnifiedDailyRecord(**self.model_dump())

    def wire(self) -> dict[str, Any]:
        """JSON-ready camelCase dict; absent metrics are sent as null."""
        return self.model_dump(mode="json", by_alias=True)


class ManualEntry(HealthSyncBase):
    """One day typed in by hand.  Steps are required, everything else optional."""

    user_id: str = Field(min_length=1)
    record_date: date
    steps: int = Field(ge=0)
    heart_rate: int | None = Field(default=None, ge=20, le=300)
    calories: float | None = Field(default=None, ge=0)
    sleep_minutes: int | None = Field(default=None, ge=0, le=1440)
    weight_kg: float | None = Field(default=None, gt=0, le=500)

    def to_record(self) -> UnifiedDailyRecord:
        return UnifiedDailyRecord(
            record_date=self.record_date,
            steps=self.steps,
            heart_rate=self.heart_rate,
            calories=round_half_up(self.calories) if self.calories is not None else None,
            sleep_minutes=self.sleep_minutes,
            weight_kg=self.weight_kg,
            user_id=self.user_id,
        )


# ---------- Aggregation ----------

class AggregateRequest(HealthSyncBase):
    """Health Connect records uploaded from the device plus the range to aggregate."""

    start_date: date
    end_date: date
    user_id: str | None = None
    records: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)
    available: bool = True

    @model_validator(mode="after")
    def _check_range(self) -> AggregateRequest:
        if self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


# ---------- Publishing ----------

class PublishRequest(HealthSyncBase):
    records: list[DailyRecordPayload]
    user_id: str | None = None


class RecordOutcomeRead(HealthSyncBase):
    record_date: date
    success: bool
    error: str | None = None


class PublishReportRead(HealthSyncBase):
    success_count: int
    total_count: int
    outcomes: list[RecordOutcomeRead]
    failed_dates: list[date]


# ---------- Availability ----------

class AvailabilityRead(HealthSyncBase):
    status: str
    message: str
    checked_at: datetime
