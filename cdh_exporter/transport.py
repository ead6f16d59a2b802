"""HTTP transport for the Cloudera Manager REST API.

This module provides:
- Fetcher: Protocol the collectors depend on
- CdhTransport: httpx-backed implementation with the fixed request headers
- CdhEndpoints: builders for the upstream URLs
- timeseries_query_body: POST body for a category-scoped timeseries query

Failures never propagate out of fetch(). They are logged and an empty body
is returned, which callers treat as "no data this scrape".
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Protocol
from urllib.parse import quote

import httpx

from cdh_exporter.config import Settings

logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/json;charset=utf-8"
HEALTH_VIEW = "FULL_WITH_HEALTH_CHECK_EXPLANATION"
SUPPORTED_METHODS = ("GET", "POST")


class Fetcher(Protocol):
    """Protocol for upstream fetchers."""

    def fetch(self, url: str, method: str = "GET", body: bytes | None = None, credential: str = "") -> bytes:
        """Return the raw response body, or b"" on any failure."""
        ...


class CdhTransport:
    """Authenticated HTTP client for the Cloudera Manager API.

    One httpx.Client is shared by both collectors; httpx clients are safe to
    use from several threads.

    Usage:
        with CdhTransport(timeout_seconds=10) as transport:
            body = transport.fetch(url, "GET", credential="Basic ...")
    """

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        accept_language: str = "zh-CN,zh;q=0.9",
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            timeout_seconds: Per-request timeout
            accept_language: Value of the Accept-Language header
            client: Optional preconfigured httpx.Client (used by tests)
        """
        self.accept_language = accept_language
        self._client = client or httpx.Client(timeout=timeout_seconds)

    @classmethod
    def from_settings(cls, settings: Settings) -> "CdhTransport":
        return cls(
            timeout_seconds=settings.request_timeout_seconds,
            accept_language=settings.accept_language,
        )

    def fetch(self, url: str, method: str = "GET", body: bytes | None = None, credential: str = "") -> bytes:
        """Issue a request and return the response body.

        Args:
            url: Absolute upstream URL
            method: GET or POST
            body: Request body for POST
            credential: Pre-encoded Authorization header value

        Returns:
            The response body, or b"" if the request could not be built,
            failed, returned a non-2xx status, or its body could not be read
        """
        method = method.upper()
        if method not in SUPPORTED_METHODS:
            logger.error(f"Unsupported method {method} for {url}")
            return b""

        try:
            headers = {
                "content-type": CONTENT_TYPE,
                "Accept-Language": self.accept_language,
                "Authorization": credential,
            }
            response = self._client.request(
                method,
                url,
                headers=headers,
                content=body if method == "POST" else None,
            )
            response.raise_for_status()
            return response.content
        except httpx.HTTPStatusError as e:
            logger.error(f"{method} {url} returned HTTP {e.response.status_code}")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"{method} {url} failed: {e!r}")
        except (ValueError, TypeError) as e:
            # Header values must be ASCII; never echo them, they may hold the credential
            logger.error(f"{method} {url} could not be built: {type(e).__name__}")
        return b""

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "CdhTransport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class CdhEndpoints:
    """URL and request-body builders for the upstream API."""

    def __init__(self, address: str, api_version: str, cluster_name: str) -> None:
        self.base_url = f"http://{address}/api/{api_version}"
        self.cluster_path = f"{self.base_url}/clusters/{quote(cluster_name, safe='')}"

    @classmethod
    def from_settings(cls, settings: Settings) -> "CdhEndpoints":
        return cls(settings.cdh_address, settings.api_version, settings.cluster_name)

    def service_url(self, component: str) -> str:
        return f"{self.cluster_path}/services/{component}?view={HEALTH_VIEW}"

    def roles_url(self, component: str) -> str:
        return f"{self.cluster_path}/services/{component}/roles?view={HEALTH_VIEW}"

    def schema_url(self) -> str:
        return f"{self.base_url}/timeseries/schema"

    def timeseries_url(self) -> str:
        return f"{self.base_url}/timeseries"


def format_rfc3339(moment: datetime) -> str:
    """Format a datetime as an RFC3339 UTC timestamp with second precision."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def timeseries_query_body(category: str, window: timedelta, now: datetime | None = None) -> bytes:
    """Build the POST body selecting every metric of a category.

    Args:
        category: SERVICE or ROLE
        window: Trailing window; the query starts at now - window
        now: Reference time (default: current UTC time)

    Returns:
        JSON-encoded request body
    """
    now = now or datetime.now(tz=timezone.utc)
    payload = {
        "query": f"SELECT * WHERE category = {category}",
        "from": format_rfc3339(now - window),
    }
    return json.dumps(payload).encode("utf-8")
