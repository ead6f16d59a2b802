"""Prometheus collectors translating Cloudera Manager data into samples."""

from cdh_exporter.collectors.base import SerializedCollector
from cdh_exporter.collectors.service import HealthStatusCollector
from cdh_exporter.collectors.timeseries import TimeseriesCollector, discover_schema

__all__ = [
    "HealthStatusCollector",
    "SerializedCollector",
    "TimeseriesCollector",
    "discover_schema",
]
