"""Command line entry point.

Usage:
    cdh_exporter --cdh.address cm.example.com:7180 \\
        --cdh.component hdfs --cdh.component yarn \\
        --user.account "Basic dXNlcjpwYXNz"
"""

import argparse
import logging
import sys
from collections.abc import Sequence
from typing import Any

import uvicorn
from pydantic import ValidationError

from cdh_exporter import __version__
from cdh_exporter.app import build_registry, create_app
from cdh_exporter.config import LOG_LEVELS, Settings
from cdh_exporter.logging_config import configure_logging
from cdh_exporter.transport import CdhTransport

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cdh_exporter",
        description="Prometheus exporter for Cloudera Manager service health and timeseries",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--web.listen-address", dest="listen_address", help="Address to listen on for web interface.")
    parser.add_argument("--web.telemetry-path", dest="telemetry_path", help="Path under which to expose metrics.")
    parser.add_argument("--cdh.address", dest="cdh_address", help="Cloudera Manager host:port.")
    parser.add_argument(
        "--cdh.component",
        "--cdh.compenent",
        dest="components",
        action="append",
        help="Component to be monitored (repeatable).",
    )
    parser.add_argument(
        "--user.account", dest="user_account", help="Authorization header value, e.g. 'Basic <base64>'."
    )
    parser.add_argument("--api.version", dest="api_version", help="Cloudera Manager API version.")
    parser.add_argument("--cluster.name", dest="cluster_name", help="Cloudera Manager cluster name.")
    parser.add_argument("--cdh.timeout", dest="request_timeout_seconds", type=float, help="Upstream request timeout.")
    parser.add_argument(
        "--cdh.fetch-concurrency",
        dest="fetch_concurrency",
        type=int,
        help="Components fetched in parallel by the health collector.",
    )
    parser.add_argument(
        "--scrape.lock-timeout",
        dest="scrape_lock_timeout_seconds",
        type=float,
        help="Seconds a scrape waits for the previous one (<= 0 waits forever).",
    )
    parser.add_argument("--log.level", dest="log_level", choices=LOG_LEVELS, help="Only log messages at or above.")
    return parser


def load_settings(argv: Sequence[str] | None = None) -> Settings:
    """Parse flags and merge them over environment settings.

    Raises:
        pydantic.ValidationError: If the resulting settings are invalid
    """
    args = build_parser().parse_args(argv)
    overrides: dict[str, Any] = {key: value for key, value in vars(args).items() if value is not None}
    return Settings(**overrides)


def main(argv: Sequence[str] | None = None) -> int:
    try:
        settings = load_settings(argv)
    except ValidationError as e:
        configure_logging("error")
        logger.error(f"Invalid configuration: {e}")
        return 1

    configure_logging(settings.log_level)
    logger.info(f"Starting cdh_exporter version={__version__}")
    logger.info(
        f"Monitoring components={','.join(settings.components)} "
        f"cluster={settings.cluster_name!r} upstream={settings.cdh_address}"
    )

    transport = CdhTransport.from_settings(settings)
    registry = build_registry(settings, transport)
    app = create_app(settings, registry, transport=transport)

    logger.info(f"Listening on address={settings.listen_address}")
    # log_config=None keeps uvicorn on the root handler configured above
    uvicorn.run(
        app,
        host=settings.listen_host,
        port=settings.listen_port,
        log_level=settings.log_level,
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
