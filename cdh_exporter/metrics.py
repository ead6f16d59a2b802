"""Self-monitoring metrics for the exporter.

Metrics exported:
- cdh_exporter_scrape_errors_total: Counter of handled scrape failures by collector and type
- cdh_exporter_scrape_duration_seconds: Histogram of upstream fetch sequence duration

These are created unregistered; build_registry() adds them to the registry
served on the telemetry path.
"""

from prometheus_client import Counter, Histogram

SELF_METRIC_PREFIX = "cdh_exporter_"

# Handled failures. The affected family is thin or absent for that scrape.
scrape_errors_total = Counter(
    "cdh_exporter_scrape_errors_total",
    "Total number of handled errors while scraping the Cloudera Manager API",
    ["collector", "error_type"],  # fetch, decode, schema_miss, unknown_status, lock_timeout
    registry=None,
)

scrape_duration_seconds = Histogram(
    "cdh_exporter_scrape_duration_seconds",
    "Duration of one collector's upstream fetch sequence in seconds",
    ["collector"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
    registry=None,
)


def record_error(collector: str, error_type: str) -> None:
    scrape_errors_total.labels(collector=collector, error_type=error_type).inc()
