from __future__ import annotations

from collections import deque
from dataclasses import asdict, dataclass
from typing import Protocol

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest


@dataclass(frozen=True)
class WebRequestMetric:
    method: str
    path: str
    status_code: int
    duration_ms: float
    trace_id: str


class WebMetricCollector(Protocol):
    def observe(self, metric: WebRequestMetric) -> None: ...


class RecentRequestsCollector(WebMetricCollector):
    """Keeps the latest requests for inspection in tests and debugging."""

    def __init__(self, max_items: int = 1000) -> None:
        self._metrics: deque[WebRequestMetric] = deque(maxlen=max_items)

    def observe(self, metric: WebRequestMetric) -> None:
        self._metrics.append(metric)

    def snapshot(self) -> list[dict]:
        return [asdict(item) for item in self._metrics]


class PrometheusWebMetricsCollector(WebMetricCollector):
    def __init__(self) -> None:
        self._registry = CollectorRegistry()
        self._requests = Counter(
            "usm_http_requests_total",
            "Web requests served, by route and status",
            labelnames=("method", "path", "status_code"),
            registry=self._registry,
        )
        self._latency = Histogram(
            "usm_http_request_duration_ms",
            "Web request latency in milliseconds",
            labelnames=("method", "path"),
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 3000),
            registry=self._registry,
        )

    def observe(self, metric: WebRequestMetric) -> None:
        self._requests.labels(metric.method, metric.path, str(metric.status_code)).inc()
        self._latency.labels(metric.method, metric.path).observe(metric.duration_ms)

    def render(self) -> str:
        return generate_latest(self._registry).decode("utf-8")


class FanOutCollector(WebMetricCollector):
    def __init__(self, *collectors: WebMetricCollector) -> None:
        self._collectors = collectors

    def observe(self, metric: WebRequestMetric) -> None:
        for collector in self._collectors:
            collector.observe(metric)
