"""Raw-record sources for the aggregation engine.

Each source implements the RecordSource ABC and handles:
- Availability and permission checks against the on-device store
- Reading raw records of one metric kind within an instant range
- Normalizing store-specific JSON into RawMetricRecord

Available sources:
    HealthConnectExportSource — Android Health Connect records, uploaded as JSON
"""

from healthsync.aggregation.sources.health_connect import HealthConnectExportSource

__all__ = ["HealthConnectExportSource"]
