# cdh_exporter/app.py
"""Scrape endpoint and registry wiring."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.responses import HTMLResponse
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from cdh_exporter import __version__
from cdh_exporter.collectors import HealthStatusCollector, TimeseriesCollector
from cdh_exporter.config import Settings
from cdh_exporter.metrics import scrape_duration_seconds, scrape_errors_total
from cdh_exporter.transport import CdhTransport, Fetcher

LANDING_PAGE = """<html>
<head><title>Cdh Exporter</title></head>
<body>
<h1>Cdh Exporter</h1>
<p><a href='{metrics_path}'>Metrics</a></p>
</body>
</html>
"""


def build_registry(settings: Settings, fetcher: Fetcher) -> CollectorRegistry:
    """Create the registry served on the telemetry path.

    Constructing the timeseries collector performs the one-time schema
    discovery request.

    Args:
        settings: Exporter settings
        fetcher: Transport shared by both collectors

    Returns:
        Registry holding both collectors and the exporter's own metrics
    """
    registry = CollectorRegistry(auto_describe=True)
    registry.register(HealthStatusCollector(settings, fetcher))
    registry.register(TimeseriesCollector(settings, fetcher))
    registry.register(scrape_errors_total)
    registry.register(scrape_duration_seconds)
    return registry


def create_app(
    settings: Settings,
    registry: CollectorRegistry,
    transport: CdhTransport | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Exporter settings (telemetry path)
        registry: Registry rendered on every scrape
        transport: Transport to close on shutdown, if owned by the app
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # Shutdown
        if transport is not None:
            transport.close()

    app = FastAPI(title="CDH Exporter", version=__version__, lifespan=lifespan, docs_url=None, redoc_url=None)
    landing_page = LANDING_PAGE.format(metrics_path=settings.telemetry_path)

    @app.get("/", response_class=HTMLResponse, include_in_schema=False)
    async def index() -> str:
        return landing_page

    # Sync handler: collectors block on upstream I/O, so this runs in the threadpool
    def metrics() -> Response:
        return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    app.add_api_route(settings.telemetry_path, metrics, methods=["GET"], include_in_schema=False)
    return app
