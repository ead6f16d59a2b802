"""Shared scrape serialization for the exporter's collectors."""

import logging
import threading
from abc import abstractmethod
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from prometheus_client.metrics_core import Metric
from prometheus_client.registry import Collector

from cdh_exporter.metrics import record_error, scrape_duration_seconds

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class SerializedCollector(Collector):
    """Collector whose upstream fetch sequence runs at most once at a time.

    A second concurrent collect() blocks until the first one finishes and
    then performs its own fresh fetch; results are never shared between
    callers. Waiting is bounded by lock_timeout_seconds (<= 0 waits
    forever). A caller that times out gets no samples and the timeout is
    counted under error_type="lock_timeout".

    Subclasses set ``collector_name`` and implement scrape().
    """

    collector_name: str = "base"

    def __init__(self, lock_timeout_seconds: float = 60.0, fetch_concurrency: int = 1) -> None:
        self._lock = threading.Lock()
        self._lock_timeout = lock_timeout_seconds
        self._fetch_concurrency = max(1, fetch_concurrency)

    def collect(self) -> list[Metric]:
        timeout = self._lock_timeout if self._lock_timeout > 0 else -1
        if not self._lock.acquire(timeout=timeout):
            logger.warning(
                f"{self.collector_name} scrape skipped: previous scrape still running "
                f"after {self._lock_timeout:.1f}s"
            )
            self.count_error("lock_timeout")
            return []

        try:
            with scrape_duration_seconds.labels(collector=self.collector_name).time():
                return self.scrape()
        finally:
            self._lock.release()

    @abstractmethod
    def scrape(self) -> list[Metric]:
        """Fetch upstream data and translate it into metric families.

        Always called with the collector's lock held.
        """

    def count_error(self, error_type: str) -> None:
        record_error(self.collector_name, error_type)

    def fetch_all(self, fn: Callable[[T], R], items: Sequence[T]) -> Iterable[R]:
        """Apply fn to every item, in parallel when fetch_concurrency > 1.

        Results are returned in the order of ``items``.
        """
        if self._fetch_concurrency == 1 or len(items) <= 1:
            return [fn(item) for item in items]

        with ThreadPoolExecutor(
            max_workers=min(self._fetch_concurrency, len(items)),
            thread_name_prefix=f"{self.collector_name}-fetch",
        ) as pool:
            return list(pool.map(fn, items))
