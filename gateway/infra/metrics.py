"""
In-process gateway metrics.

Label values must come from small fixed sets (queue names chosen by the
operator, provider names, requirement names). Anything a caller can put
in an unauthenticated request is folded into ``other`` before it becomes
part of a key.
"""
from __future__ import annotations
import time
from collections import deque
from threading import Lock
from typing import Dict
from gateway.infra.logging_config import get_logger

logger = get_logger(__name__)

# Samples kept per histogram; older ones fall off the window
HISTOGRAM_WINDOW = 1024

KNOWN_WEBHOOK_SERVICES = frozenset({"github", "gitlab", "bitbucket", "gitea"})
OTHER_SERVICE = "other"


class Counter:
    """Monotonic counter"""

    __slots__ = ("value",)

    def __init__(self):
        self.value = 0

    def inc(self, amount: int = 1) -> None:
        self.value += amount


class Histogram:
    """
    Durations over a sliding window.

    ``count`` and ``sum`` cover every observation since start/reset;
    min/max/avg/percentiles cover only the retained window.
    """

    def __init__(self, window: int = HISTOGRAM_WINDOW):
        self.samples: deque[float] = deque(maxlen=window)
        self.count = 0
        self.total = 0.0

    def observe(self, value: float) -> None:
        self.samples.append(value)
        self.count += 1
        self.total += value

    def get_stats(self) -> dict:
        if not self.samples:
            return {"count": self.count, "sum": self.total, "window": 0,
                    "min": 0, "max": 0, "avg": 0, "p95": 0, "p99": 0}

        ordered = sorted(self.samples)
        size = len(ordered)

        def percentile(p: float) -> float:
            return ordered[min(int(size * p), size - 1)]

        return {
            "count": self.count,
            "sum": self.total,
            "window": size,
            "min": ordered[0],
            "max": ordered[-1],
            "avg": sum(ordered) / size,
            "p95": percentile(0.95),
            "p99": percentile(0.99),
        }


class MetricsCollector:
    """Counters and histograms keyed by ``name{label=value,...}``."""

    def __init__(self, histogram_window: int = HISTOGRAM_WINDOW):
        self.histogram_window = histogram_window
        self._counters: Dict[str, Counter] = {}
        self._histograms: Dict[str, Histogram] = {}
        self._lock = Lock()

    def inc_counter(self, name: str, amount: int = 1, labels: dict | None = None) -> None:
        key = self._make_key(name, labels)
        with self._lock:
            counter = self._counters.get(key)
            if counter is None:
                counter = self._counters[key] = Counter()
            counter.inc(amount)

    def observe_histogram(self, name: str, value: float, labels: dict | None = None) -> None:
        key = self._make_key(name, labels)
        with self._lock:
            histogram = self._histograms.get(key)
            if histogram is None:
                histogram = self._histograms[key] = Histogram(self.histogram_window)
            histogram.observe(value)

    def get_metrics(self) -> dict:
        with self._lock:
            counters = {k: v.value for k, v in self._counters.items()}
            histograms = {k: v.get_stats() for k, v in self._histograms.items()}

        return {
            "counters": counters,
            "histograms": histograms,
        }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._histograms.clear()
        logger.info("Metrics reset")

    @staticmethod
    def _make_key(name: str, labels: dict | None) -> str:
        if not labels:
            return name
        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}"


# Global metrics collector
_metrics = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    return _metrics


def inc_counter(name: str, amount: int = 1, **labels) -> None:
    _metrics.inc_counter(name, amount, labels or None)


def observe_histogram(name: str, value: float, **labels) -> None:
    _metrics.observe_histogram(name, value, labels or None)


class Timer:
    """Times the enclosed block into a histogram, also when it raises."""

    def __init__(self, metric_name: str, **labels):
        self.metric_name = metric_name
        self.labels = labels
        self.start_time: float | None = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            observe_histogram(self.metric_name, time.perf_counter() - self.start_time, **self.labels)


def webhook_service_label(service: str) -> str:
    """Route slugs are caller-controlled; only known providers get their own label."""
    service = service.lower()
    return service if service in KNOWN_WEBHOOK_SERVICES else OTHER_SERVICE


class GatewayMetrics:
    """Named gateway metrics"""

    @staticmethod
    def job_fetched(queue: str) -> None:
        inc_counter("jobs_fetched_total", queue=queue)

    @staticmethod
    def fetch_empty(queue: str) -> None:
        inc_counter("fetch_empty_total", queue=queue)

    @staticmethod
    def worker_outdated(requirement: str) -> None:
        inc_counter("worker_outdated_total", requirement=requirement)

    @staticmethod
    def auth_rejected() -> None:
        inc_counter("auth_rejected_total")

    @staticmethod
    def webhook_enqueued(service: str) -> None:
        inc_counter("webhooks_enqueued_total", service=webhook_service_label(service))

    @staticmethod
    def store_error(operation: str) -> None:
        inc_counter("store_errors_total", operation=operation)

    @staticmethod
    def track_fetch_time(queue: str) -> Timer:
        return Timer("fetch_processing_seconds", queue=queue)
