import json
import threading
import time
from dataclasses import dataclass

import pytest
from prometheus_client import CollectorRegistry
from cdh_exporter.config import Settings
from cdh_exporter.metrics import scrape_errors_total
from cdh_exporter.transport import CdhEndpoints


@dataclass
class FetchCall:
    url: str
    method: str
    body: bytes | None
    credential: str
    started: float
    finished: float


class FakeFetcher:
    """Recording stand-in for CdhTransport.

    Routes map a URL (GET) or a (URL, category) pair (POST) to a response.
    dict/list responses are JSON-encoded, bytes are returned as-is, and
    unknown routes return b"" like a failed request.
    """

    def __init__(self, routes: dict | None = None, delay: float = 0.0) -> None:
        self.routes = routes or {}
        self.delay = delay
        self.calls: list[FetchCall] = []
        self._lock = threading.Lock()

    def fetch(self, url, method="GET", body=None, credential=""):
        started = time.monotonic()
        if self.delay:
            time.sleep(self.delay)

        key = url
        if method == "POST":
            query = json.loads(body)["query"]
            key = (url, query.rsplit(" ", 1)[-1])
        response = self.routes.get(key, b"")

        with self._lock:
            self.calls.append(FetchCall(url, method, body, credential, started, time.monotonic()))

        if isinstance(response, (dict, list)):
            return json.dumps(response).encode()
        return response


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        cdh_address="cm.test:7180",
        components=["hdfs", "yarn"],
        user_account="Basic dGVzdDp0ZXN0",
        api_version="v33",
        cluster_name="Cluster 1",
        scrape_lock_timeout_seconds=0,
    )


@pytest.fixture
def endpoints(settings):
    return CdhEndpoints.from_settings(settings)


@pytest.fixture
def error_count():
    """Read the current value of a scrape error counter series."""
    registry = CollectorRegistry()
    registry.register(scrape_errors_total)

    def read(collector: str, error_type: str) -> float:
        value = registry.get_sample_value(
            "cdh_exporter_scrape_errors_total",
            {"collector": collector, "error_type": error_type},
        )
        return value or 0.0

    return read


def samples_of(families, name):
    """Return [(labels, value)] for every sample of the named family."""
    for family in families:
        if family.name == name:
            return [(sample.labels, sample.value) for sample in family.samples]
    return []
