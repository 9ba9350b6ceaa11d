"""Health Sync daily aggregation engine.

This package turns per-event health records from an on-device store into one
unified record per calendar date.

Subpackages:
    sources/ — Raw-record sources (Health Connect upload)

Core modules:
    base          — RecordSource ABC and canonical data models
    reducer       — Per-metric daily reduction (sum / average / last, sleep minutes)
    merge         — Union of per-metric daily maps into unified records
    pipeline      — Concurrent fetch + reduce + merge for a date range
    config_loader — Load/validate/hot-reload metrics_config.yaml
"""

from healthsync.aggregation.base import (
    MetricKind,
    RawMetricRecord,
    RecordSource,
    ReductionMode,
    UnifiedDailyRecord,
)
from healthsync.aggregation.config_loader import MetricsConfig, get_metrics_config
from healthsync.aggregation.pipeline import DailyAggregator, aggregate

__all__ = [
    "RecordSource",
    "RawMetricRecord",
    "UnifiedDailyRecord",
    "MetricKind",
    "ReductionMode",
    "MetricsConfig",
    "get_metrics_config",
    "DailyAggregator",
    "aggregate",
]
