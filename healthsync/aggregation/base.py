"""Base classes and canonical data models for the daily aggregation engine.

Every record source must subclass RecordSource and return RawMetricRecord
instances.  These types are the single source of truth consumed by the
reducer, the daily merge, and the sync layer.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterable

logger = logging.getLogger("healthsync.aggregation")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class SourceUnavailableError(RuntimeError):
    """Raised when the raw-record source cannot be reached or its data is unreadable."""


class PermissionRequestError(RuntimeError):
    """Raised when asking the raw-record source for read permissions fails."""


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class MetricKind(str, Enum):
    """The five metric kinds the engine understands."""

    STEPS = "steps"
    HEART_RATE = "heart_rate"
    CALORIES = "calories"
    SLEEP = "sleep"
    WEIGHT = "weight"


class ReductionMode(str, Enum):
    """Strategy used to collapse same-day values for one metric."""

    SUM = "sum"
    AVERAGE = "average"
    LAST = "last"
    SESSION_MINUTES = "session_minutes"


ALL_METRIC_KINDS: tuple[MetricKind, ...] = tuple(MetricKind)

#: calendar date → reduced value, one per metric per aggregation run.
DailyMetricMap = dict[date, float]


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------


def parse_instant(value: object) -> datetime | None:
    """Parse an instant into a timezone-aware UTC datetime.

    Accepts datetimes and ISO-8601 strings (``Z`` suffix allowed).  Naive
    values are taken as UTC.  Returns None if the value is missing or
    unparseable.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.warning("Could not parse instant: %r", value)
            return None
    else:
        logger.warning("Unsupported instant type: %r", type(value).__name__)
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def calendar_date_key(instant: datetime) -> date:
    """Return the UTC calendar date an instant falls on."""
    if instant.tzinfo is None:
        return instant.date()
    return instant.astimezone(timezone.utc).date()


# ---------------------------------------------------------------------------
# Canonical models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RawMetricRecord:
    """One observation for a single metric, as produced by a record source.

    Attributes:
        kind:       Metric kind this observation belongs to.
        start_time: UTC instant the observation starts at (grouping key).
        end_time:   UTC instant the observation ends at (sleep sessions only).
        value:      Numeric payload, or None when the source omitted it.
        payload:    Original source record for audit/reprocessing.
    """

    kind: MetricKind
    start_time: datetime
    end_time: datetime | None = None
    value: float | None = None
    payload: dict = field(default_factory=dict, compare=False, repr=False)


@dataclass
class UnifiedDailyRecord:
    """Merged per-date record combining all tracked metrics plus sync metadata.

    ``None`` means "no data" for that metric and is distinct from zero.

    Attributes:
        record_date:      Calendar date, unique within one aggregation run.
        steps:            Total steps.
        heart_rate:       Mean heart rate in bpm.
        calories:         Total energy burned in kcal.
        sleep_minutes:    Minutes slept in sessions starting on this date.
        weight_kg:        Last weight reading of the day, source precision.
        user_id:          Owner, attached by the caller before publishing.
        synced_to_notion: True once the remote store reported the record synced.
        synced_at:        When the record was synced.
    """

    record_date: date
    steps: int | None = None
    heart_rate: int | None = None
    calories: int | None = None
    sleep_minutes: int | None = None
    weight_kg: float | None = None
    user_id: str | None = None
    synced_to_notion: bool = False
    synced_at: datetime | None = None

    def with_user(self, user_id: str) -> UnifiedDailyRecord:
        """Return a copy scoped to ``user_id``."""
        return replace(self, user_id=user_id)

    def mark_synced(self, at: datetime | None = None) -> None:
        self.synced_to_notion = True
        self.synced_at = at or datetime.now(timezone.utc)


def attach_user(records: Iterable[UnifiedDailyRecord], user_id: str) -> list[UnifiedDailyRecord]:
    """Return copies of ``records`` owned by ``user_id``, order preserved."""
    return [r.with_user(user_id) for r in records]


# ---------------------------------------------------------------------------
# Abstract record source
# ---------------------------------------------------------------------------


class RecordSource(ABC):
    """Abstract base class for raw-record sources (on-device health stores).

    Subclasses must implement:
        - is_available()
        - request_permissions()
        - read_records()

    ``read_records`` returns an empty list, never an error, when the source
    is unavailable or the permission was denied.  Only a failing permission
    request propagates, as PermissionRequestError.
    """

    #: Unique slug for registry lookup and logging.
    SOURCE_ID: str = "unknown"

    #: Human-readable name for logging and UI.
    DISPLAY_NAME: str = "Unknown Source"

    @abstractmethod
    async def is_available(self) -> bool:
        """Return True if the source can be used on this device."""

    async def initialize(self) -> bool:
        """Prepare the source for reads.  Returns True on success."""
        return True

    @abstractmethod
    async def request_permissions(self, kinds: Iterable[MetricKind]) -> list[MetricKind]:
        """Ask for read access to ``kinds``.

        Returns:
            The kinds that were granted (may be empty).

        Raises:
            PermissionRequestError: If the request itself failed.
        """

    @abstractmethod
    async def read_records(
        self, kind: MetricKind, start: datetime, end: datetime
    ) -> list[RawMetricRecord]:
        """Return raw records of ``kind`` whose start lies in ``[start, end)``."""

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _safe_float(value: Any) -> float | None:
        """Safely coerce a value to float, returning None on failure."""
        if value is None or isinstance(value, bool):
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None
