"""Health status collector.

Walks the per-service and per-role health check trees of every monitored
component and exports them as ordinal gauges:

- cdh_service_state: one sample per service health check
- cdh_service_state_summary: one sample per service
- cdh_service_role_state: one sample per role health check
- cdh_service_role_state_summary: one sample per role

Each scrape makes two passes over the configured components, first the
service resources and then the role lists, so N components cost 2N
upstream requests.
"""

import logging
from dataclasses import dataclass

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.metrics_core import Metric

from cdh_exporter.collectors.base import SerializedCollector
from cdh_exporter.config import Settings
from cdh_exporter.models import DecodeError, ItemList, Role, Service, decode
from cdh_exporter.status import STATUS_SCALE_HELP, StatusOrdinal, status_ordinal
from cdh_exporter.transport import CdhEndpoints, Fetcher

logger = logging.getLogger(__name__)

SERVICE_STATE_LABELS = ["service_type", "health_check_name", "explanation"]
SERVICE_SUMMARY_LABELS = ["service_type"]
ROLE_STATE_LABELS = [
    "role_type",
    "cluster_name",
    "host_name",
    "service_type",
    "health_check_name",
    "explanation",
    "role_name",
]
ROLE_SUMMARY_LABELS = ["role_type", "cluster_name", "host_name", "role_name", "service_type"]

SERVICE_STATE = "cdh_service_state"
SERVICE_STATE_SUMMARY = "cdh_service_state_summary"
ROLE_STATE = "cdh_service_role_state"
ROLE_STATE_SUMMARY = "cdh_service_role_state_summary"
HEALTH_METRIC_NAMES = (SERVICE_STATE, SERVICE_STATE_SUMMARY, ROLE_STATE, ROLE_STATE_SUMMARY)


@dataclass
class HealthFamilies:
    """The four gauge families filled during one scrape."""

    service_state: GaugeMetricFamily
    service_state_summary: GaugeMetricFamily
    role_state: GaugeMetricFamily
    role_state_summary: GaugeMetricFamily

    @classmethod
    def empty(cls) -> "HealthFamilies":
        return cls(
            service_state=GaugeMetricFamily(
                SERVICE_STATE,
                f"cdh component status, {STATUS_SCALE_HELP}",
                labels=SERVICE_STATE_LABELS,
            ),
            service_state_summary=GaugeMetricFamily(
                SERVICE_STATE_SUMMARY,
                f"cdh service summary status, {STATUS_SCALE_HELP}",
                labels=SERVICE_SUMMARY_LABELS,
            ),
            role_state=GaugeMetricFamily(
                ROLE_STATE,
                f"cdh component role status, {STATUS_SCALE_HELP}",
                labels=ROLE_STATE_LABELS,
            ),
            role_state_summary=GaugeMetricFamily(
                ROLE_STATE_SUMMARY,
                f"cdh service role summary status, {STATUS_SCALE_HELP}",
                labels=ROLE_SUMMARY_LABELS,
            ),
        )

    def as_list(self) -> list[Metric]:
        return [self.service_state, self.service_state_summary, self.role_state, self.role_state_summary]


class HealthStatusCollector(SerializedCollector):
    """Exports service and role health as ordinal gauges.

    Usage:
        collector = HealthStatusCollector(settings, transport)
        registry.register(collector)
    """

    collector_name = "health"

    def __init__(self, settings: Settings, fetcher: Fetcher, endpoints: CdhEndpoints | None = None) -> None:
        """Initialize the collector.

        Args:
            settings: Exporter settings (components, credential, scrape limits)
            fetcher: Transport used for upstream requests
            endpoints: URL builder (default: built from settings)
        """
        super().__init__(
            lock_timeout_seconds=settings.scrape_lock_timeout_seconds,
            fetch_concurrency=settings.fetch_concurrency,
        )
        self._fetcher = fetcher
        self._endpoints = endpoints or CdhEndpoints.from_settings(settings)
        self._components = tuple(settings.components)
        self._credential = settings.credential

    def describe(self) -> list[Metric]:
        return HealthFamilies.empty().as_list()

    def scrape(self) -> list[Metric]:
        families = HealthFamilies.empty()

        for service in self.fetch_all(self._fetch_service, self._components):
            if service is not None:
                self._emit_service(families, service)

        for roles in self.fetch_all(self._fetch_roles, self._components):
            for role in roles:
                self._emit_role(families, role)

        return families.as_list()

    def _fetch_service(self, component: str) -> Service | None:
        url = self._endpoints.service_url(component)
        payload = self._fetcher.fetch(url, "GET", None, self._credential)
        if not payload:
            logger.warning(f"No service data for component {component}")
            self.count_error("fetch")
            return None

        try:
            return decode(Service, payload)
        except DecodeError as e:
            logger.warning(f"Skipping service metrics for component {component}: {e}")
            self.count_error("decode")
            return None

    def _fetch_roles(self, component: str) -> list[Role]:
        url = self._endpoints.roles_url(component)
        payload = self._fetcher.fetch(url, "GET", None, self._credential)
        if not payload:
            logger.warning(f"No role data for component {component}")
            self.count_error("fetch")
            return []

        try:
            envelope = decode(ItemList, payload)
        except DecodeError as e:
            logger.warning(f"Skipping role metrics for component {component}: {e}")
            self.count_error("decode")
            return []

        roles = []
        for index, item in enumerate(envelope.items):
            try:
                roles.append(decode(Role, item))
            except DecodeError as e:
                logger.warning(f"Skipping role #{index} of component {component}: {e}")
                self.count_error("decode")
        return roles

    def _ordinal(self, token: str) -> int:
        value = status_ordinal(token)
        if value == StatusOrdinal.UNKNOWN:
            self.count_error("unknown_status")
        return value

    def _emit_service(self, families: HealthFamilies, service: Service) -> None:
        families.service_state_summary.add_metric([service.type], self._ordinal(service.health_summary))

        for check in service.health_checks:
            families.service_state.add_metric(
                [service.type, check.name, check.explanation],
                self._ordinal(check.summary),
            )

    def _emit_role(self, families: HealthFamilies, role: Role) -> None:
        cluster_name = role.service_ref.cluster_name
        host_name = role.host_ref.hostname
        service_type = role.service_ref.service_type

        families.role_state_summary.add_metric(
            [role.type, cluster_name, host_name, role.name, service_type],
            self._ordinal(role.health_summary),
        )

        for check in role.health_checks:
            families.role_state.add_metric(
                [role.type, cluster_name, host_name, service_type, check.name, check.explanation, role.name],
                self._ordinal(check.summary),
            )
