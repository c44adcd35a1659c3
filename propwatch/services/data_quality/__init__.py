"""Data quality monitoring module."""

from .quality_monitor import (
    AggregateStats,
    DataQualityMonitor,
    Diagnostics,
    SourceHealth,
    SourceMetrics,
    get_data_quality_monitor,
)

__all__ = [
    "AggregateStats",
    "DataQualityMonitor",
    "Diagnostics",
    "SourceHealth",
    "SourceMetrics",
    "get_data_quality_monitor",
]
