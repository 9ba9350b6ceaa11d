"""Health Sync: daily health-record aggregation and remote publishing."""

__version__ = "0.1.0"
