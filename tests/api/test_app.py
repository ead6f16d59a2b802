"""Tests for the scrape endpoint."""

import pytest
import pytest_asyncio
from conftest import FakeFetcher
from httpx import ASGITransport, AsyncClient
from cdh_exporter.app import build_registry, create_app


@pytest.fixture
def fetcher(endpoints):
    return FakeFetcher(
        {
            endpoints.service_url("hdfs"): {"type": "HDFS", "healthSummary": "GOOD", "healthChecks": []},
            endpoints.service_url("yarn"): {"type": "YARN", "healthSummary": "BAD", "healthChecks": []},
            endpoints.schema_url(): {"items": [{"name": "cpu_user", "description": "CPU"}]},
            (endpoints.timeseries_url(), "SERVICE"): {
                "items": [
                    {
                        "timeSeries": [
                            {
                                "metadata": {
                                    "metricName": "cpu_user",
                                    "attributes": {
                                        "entityName": "svc1",
                                        "serviceType": "HDFS",
                                        "category": "SERVICE",
                                        "serviceName": "hdfs1",
                                    },
                                },
                                "data": [{"value": 1.0}, {"value": 2.5}],
                            }
                        ]
                    }
                ]
            },
        }
    )


@pytest_asyncio.fixture
async def exporter_client(settings, fetcher):
    """HTTP client for the exporter app."""
    app = create_app(settings, build_registry(settings, fetcher))
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestLandingPage:
    @pytest.mark.asyncio
    async def test_links_to_metrics_path(self, exporter_client):
        response = await exporter_client.get("/")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "<a href='/metrics'>Metrics</a>" in response.text

    @pytest.mark.asyncio
    async def test_custom_telemetry_path(self, settings, fetcher):
        settings = settings.model_copy(update={"telemetry_path": "/cdh/metrics"})
        app = create_app(settings, build_registry(settings, fetcher))

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            landing = await client.get("/")
            metrics = await client.get("/cdh/metrics")
            default = await client.get("/metrics")

        assert "<a href='/cdh/metrics'>" in landing.text
        assert metrics.status_code == 200
        assert default.status_code == 404


class TestMetricsEndpoint:
    @pytest.mark.asyncio
    async def test_exposes_health_and_timeseries(self, exporter_client):
        response = await exporter_client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        body = response.text
        assert 'cdh_service_state_summary{service_type="HDFS"} 0.0' in body
        assert 'cdh_service_state_summary{service_type="YARN"} 5.0' in body
        assert (
            'cdh_cpu_user{category="SERVICE",entity_name="svc1",hostname="",'
            'role_type="",service_name="hdfs1",service_type="HDFS"} 2.5'
        ) in body

    @pytest.mark.asyncio
    async def test_exposes_scrape_error_counter(self, exporter_client):
        response = await exporter_client.get("/metrics")

        # role lists and the ROLE timeseries query are not routed
        assert "cdh_exporter_scrape_errors_total" in response.text
        assert 'cdh_exporter_scrape_errors_total{collector="health",error_type="fetch"}' in response.text

    @pytest.mark.asyncio
    async def test_upstream_failure_is_not_an_http_error(self, settings):
        app = create_app(settings, build_registry(settings, FakeFetcher()))

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/metrics")

        assert response.status_code == 200
        assert "# TYPE cdh_service_state gauge" in response.text


class TestBuildRegistry:
    def test_schema_name_clashing_with_health_family_is_ignored(self, settings, endpoints):
        fetcher = FakeFetcher({endpoints.schema_url(): {"items": [{"name": "service_state", "description": "clash"}]}})

        registry = build_registry(settings, fetcher)

        errors = registry.get_sample_value(
            "cdh_exporter_scrape_errors_total",
            {"collector": "timeseries", "error_type": "decode"},
        )
        assert errors >= 1
        assert registry.get_sample_value("cdh_service_state_summary", {"service_type": "HDFS"}) is None
