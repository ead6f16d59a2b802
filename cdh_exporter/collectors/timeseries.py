"""Schema-driven timeseries collector.

On construction the collector asks Cloudera Manager for its timeseries
schema and creates one gauge per metric name. The schema is never
refreshed: the set of exportable names is fixed for the process lifetime.

On every scrape two queries are issued, one per category (SERVICE, ROLE),
covering a short trailing window. The most recent point of every returned
series becomes one sample, provided its metric name is in the schema.
"""

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from types import MappingProxyType

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.metrics_core import Metric

from cdh_exporter.collectors.base import SerializedCollector
from cdh_exporter.collectors.service import HEALTH_METRIC_NAMES
from cdh_exporter.config import Settings
from cdh_exporter.metrics import SELF_METRIC_PREFIX, record_error
from cdh_exporter.models import (
    DecodeError,
    ItemList,
    SchemaEntry,
    TimeSeries,
    TimeseriesResponseItem,
    decode,
)
from cdh_exporter.transport import CdhEndpoints, Fetcher, timeseries_query_body

logger = logging.getLogger(__name__)

METRIC_PREFIX = "cdh"
TIMESERIES_LABELS = ["entity_name", "service_type", "category", "hostname", "role_type", "service_name"]
CATEGORIES = ("SERVICE", "ROLE")

_METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")


@dataclass(frozen=True)
class SchemaMetric:
    """Exported metric derived from one schema entry."""

    source_name: str
    name: str
    documentation: str

    def family(self) -> GaugeMetricFamily:
        return GaugeMetricFamily(self.name, self.documentation, labels=TIMESERIES_LABELS)


def _is_reserved(name: str) -> bool:
    # Shares the registry with the health families and the self-metrics
    return name in HEALTH_METRIC_NAMES or name.startswith(SELF_METRIC_PREFIX)


def discover_schema(
    fetcher: Fetcher,
    endpoints: CdhEndpoints,
    credential: str,
) -> Mapping[str, SchemaMetric]:
    """Fetch the timeseries schema and build the metric map.

    Args:
        fetcher: Transport used for the request
        endpoints: URL builder
        credential: Authorization header value

    Returns:
        Read-only mapping of upstream metric name to SchemaMetric. Empty if
        the schema could not be fetched or decoded.
    """
    payload = fetcher.fetch(endpoints.schema_url(), "GET", None, credential)
    if not payload:
        logger.error("Timeseries schema unavailable, no timeseries metrics will be exported")
        record_error(TimeseriesCollector.collector_name, "fetch")
        return MappingProxyType({})

    try:
        envelope = decode(ItemList, payload)
    except DecodeError as e:
        logger.error(f"Timeseries schema could not be decoded: {e}")
        record_error(TimeseriesCollector.collector_name, "decode")
        return MappingProxyType({})

    metrics: dict[str, SchemaMetric] = {}
    for index, item in enumerate(envelope.items):
        try:
            entry = decode(SchemaEntry, item)
        except DecodeError as e:
            logger.warning(f"Skipping schema entry #{index}: {e}")
            record_error(TimeseriesCollector.collector_name, "decode")
            continue

        name = f"{METRIC_PREFIX}_{entry.name}"
        if not _METRIC_NAME_RE.match(name):
            logger.warning(f"Skipping schema entry {entry.name!r}: not a valid metric name")
            record_error(TimeseriesCollector.collector_name, "decode")
            continue
        if _is_reserved(name):
            logger.warning(f"Skipping schema entry {entry.name!r}: {name} is already exported by the exporter")
            record_error(TimeseriesCollector.collector_name, "decode")
            continue
        if entry.name in metrics:
            logger.warning(f"Duplicate schema entry {entry.name!r}, keeping the first")
            continue

        metrics[entry.name] = SchemaMetric(
            source_name=entry.name,
            name=name,
            documentation=entry.description or entry.name,
        )

    logger.info(f"Discovered {len(metrics)} timeseries metrics")
    return MappingProxyType(metrics)


class TimeseriesCollector(SerializedCollector):
    """Exports the latest value of every schema metric for services and roles.

    Usage:
        collector = TimeseriesCollector(settings, transport)
        registry.register(collector)
    """

    collector_name = "timeseries"

    def __init__(self, settings: Settings, fetcher: Fetcher, endpoints: CdhEndpoints | None = None) -> None:
        """Initialize the collector and discover the schema.

        Args:
            settings: Exporter settings
            fetcher: Transport used for upstream requests
            endpoints: URL builder (default: built from settings)
        """
        super().__init__(lock_timeout_seconds=settings.scrape_lock_timeout_seconds)
        self._fetcher = fetcher
        self._endpoints = endpoints or CdhEndpoints.from_settings(settings)
        self._credential = settings.credential
        self._window = timedelta(minutes=settings.timeseries_window_minutes)
        self.schema = discover_schema(fetcher, self._endpoints, self._credential)

    def describe(self) -> list[Metric]:
        return [metric.family() for metric in self.schema.values()]

    def scrape(self) -> list[Metric]:
        families: dict[str, GaugeMetricFamily] = {}

        for category in CATEGORIES:
            for series in self._query(category):
                self._emit(families, category, series)

        return list(families.values())

    def _query(self, category: str) -> list[TimeSeries]:
        body = timeseries_query_body(category, self._window)
        payload = self._fetcher.fetch(self._endpoints.timeseries_url(), "POST", body, self._credential)
        if not payload:
            logger.warning(f"No timeseries data for category {category}")
            self.count_error("fetch")
            return []

        try:
            envelope = decode(ItemList, payload)
        except DecodeError as e:
            logger.warning(f"Skipping {category} timeseries: {e}")
            self.count_error("decode")
            return []

        series_list = []
        for item_index, raw_item in enumerate(envelope.items):
            try:
                item = decode(TimeseriesResponseItem, raw_item)
            except DecodeError as e:
                logger.warning(f"Skipping {category} timeseries item #{item_index}: {e}")
                self.count_error("decode")
                continue

            for message in item.errors:
                logger.warning(f"{category} timeseries query error: {message}")
            for message in item.warnings:
                logger.warning(f"{category} timeseries query warning: {message}")

            for series_index, raw_series in enumerate(item.time_series):
                try:
                    series_list.append(decode(TimeSeries, raw_series))
                except DecodeError as e:
                    logger.warning(f"Skipping {category} series #{series_index} of item #{item_index}: {e}")
                    self.count_error("decode")
        return series_list

    def _emit(self, families: dict[str, GaugeMetricFamily], category: str, series: TimeSeries) -> None:
        point = series.latest_point()
        if point is None:
            return

        metric_name = series.metadata.metric_name
        metric = self.schema.get(metric_name)
        if metric is None:
            logger.warning(f"{metric_name} metric not in timeseries schema, dropping sample")
            self.count_error("schema_miss")
            return

        attrs = series.metadata.attributes
        if category == "ROLE":
            hostname, role_type = attrs.hostname, attrs.role_type
        else:
            # Not populated upstream at service granularity
            hostname, role_type = "", ""

        family = families.get(metric_name)
        if family is None:
            family = families[metric_name] = metric.family()
        family.add_metric(
            [attrs.entity_name, attrs.service_type, attrs.category, hostname, role_type, attrs.service_name],
            point.value,
        )
