"""Android Health Connect source (upload path).

Health Connect has no server-side API: the device reads its records with
``readRecords`` and uploads them as JSON keyed by record type::

    {
        "Steps": [{"startTime": "...", "endTime": "...", "count": 1200}],
        "HeartRate": [{"startTime": "...", "samples": [{"time": "...", "beatsPerMinute": 62}]}],
        "TotalCaloriesBurned": [{"startTime": "...", "energy": {"inKilocalories": 310.5}}],
        "SleepSession": [{"startTime": "...", "endTime": "..."}],
        "Weight": [{"time": "...", "weight": {"inKilograms": 70.2}}]
    }

Flattened shapes (``"beatsPerMinute": 62`` on the record, ``"energy": 310.5``)
are accepted as well.  Field locations come from metrics_config.yaml.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable

from healthsync.aggregation.base import (
    MetricKind,
    RawMetricRecord,
    RecordSource,
    SourceUnavailableError,
    parse_instant,
)
from healthsync.aggregation.config_loader import (
    MetricDefinition,
    MetricsConfig,
    get_metrics_config,
)

logger = logging.getLogger("healthsync.aggregation.health_connect")


def _resolve_path(record: dict, path: str) -> Any:
    """Follow a dotted path through nested dicts; None if any hop is missing."""
    current: Any = record
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


class HealthConnectExportSource(RecordSource):
    """Health Connect records uploaded from the device as JSON.

    Mirrors the device-side behaviour: reads return ``[]`` when the store is
    unavailable or a kind was not granted.
    """

    SOURCE_ID = "health_connect"
    DISPLAY_NAME = "Health Connect"

    def __init__(
        self,
        export: dict[str, Any],
        available: bool = True,
        granted_kinds: Iterable[MetricKind] | None = None,
        config: MetricsConfig | None = None,
    ) -> None:
        """Initialize the source.

        Args:
            export:        Record type → list of raw Health Connect records.
            available:     Whether the store is present on the device.
            granted_kinds: Kinds the user grants when asked (default: all).
            config:        Metric catalogue; defaults to the bundled one.
        """
        self._export = export or {}
        self._available = available
        self._grantable = set(granted_kinds) if granted_kinds is not None else set(MetricKind)
        self._granted: set[MetricKind] = set()
        self._config = config or get_metrics_config()

        unsupported = [t for t in self._export if self._config.kind_for_record_type(t) is None]
        if unsupported:
            logger.info("Health Connect: ignoring unsupported record type(s) %s", unsupported)

    # ------------------------------------------------------------------
    # RecordSource interface
    # ------------------------------------------------------------------

    async def is_available(self) -> bool:
        return self._available

    async def initialize(self) -> bool:
        return self._available

    async def request_permissions(self, kinds: Iterable[MetricKind]) -> list[MetricKind]:
        requested = list(kinds)
        granted = [k for k in requested if k in self._grantable]
        self._granted.update(granted)
        logger.info(
            "Health Connect: granted %d/%d permission(s): %s",
            len(granted), len(requested), [k.value for k in granted],
        )
        return granted

    async def read_records(
        self, kind: MetricKind, start: datetime, end: datetime
    ) -> list[RawMetricRecord]:
        if not self._available:
            logger.warning("Health Connect unavailable; no %s records", kind.value)
            return []
        if kind not in self._granted:
            logger.warning("Health Connect: no read permission for %s", kind.value)
            return []

        definition = self._config.metric(kind)
        raw_records = self._export.get(definition.record_type) or []
        if not isinstance(raw_records, list):
            raise SourceUnavailableError(
                f"Health Connect export: {definition.record_type} is not a list of records"
            )

        records = [
            rec
            for raw in raw_records
            if isinstance(raw, dict)
            for rec in self.normalize(raw, definition)
            if start <= rec.start_time < end
        ]
        records.sort(key=lambda r: r.start_time)
        logger.debug(
            "Health Connect: %d %s record(s) in [%s, %s)",
            len(records), kind.value, start.isoformat(), end.isoformat(),
        )
        return records

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------

    def normalize(self, raw: dict, definition: MetricDefinition) -> list[RawMetricRecord]:
        """Convert one Health Connect record into RawMetricRecords.

        Records with a sample list produce one RawMetricRecord per sample.
        Samples are keyed by the record's start instant, so a series that
        crosses midnight counts toward its start date like any other record;
        a sample's own ``time`` is used only when the record has no start.
        Other records without a parseable start instant are dropped.
        """
        start = self._start_instant(raw, definition)
        end = parse_instant(raw.get("endTime"))

        samples = raw.get(definition.sample_list) if definition.sample_list else None
        if isinstance(samples, list):
            out = []
            for sample in samples:
                if not isinstance(sample, dict):
                    continue
                sample_time = start or parse_instant(sample.get("time"))
                if sample_time is None:
                    continue
                out.append(
                    RawMetricRecord(
                        kind=definition.kind,
                        start_time=sample_time,
                        value=self._extract_value(sample, definition),
                        payload=sample,
                    )
                )
            return out

        if start is None:
            logger.debug("Health Connect: dropping %s record without start", definition.record_type)
            return []

        return [
            RawMetricRecord(
                kind=definition.kind,
                start_time=start,
                end_time=end,
                value=self._extract_value(raw, definition),
                payload=raw,
            )
        ]

    @staticmethod
    def _start_instant(raw: dict, definition: MetricDefinition) -> datetime | None:
        for key in definition.time_fields:
            instant = parse_instant(raw.get(key))
            if instant is not None:
                return instant
        return None

    def _extract_value(self, raw: dict, definition: MetricDefinition) -> float | None:
        for path in definition.value_paths:
            value = self._safe_float(_resolve_path(raw, path))
            if value is not None:
                return value
        return None
