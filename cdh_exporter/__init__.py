"""Prometheus exporter for Cloudera Manager (CDH) cluster health and timeseries."""

__version__ = "1.0.0"

__all__ = ["__version__"]
