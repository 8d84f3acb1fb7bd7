from __future__ import annotations

from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from app.rms.core.config import settings


@dataclass
class MetricsSnapshot:
    content: bytes
    content_type: str


class Metrics:
    def __init__(self, enabled: bool | None = None) -> None:
        self.enabled = settings.METRICS_ENABLED if enabled is None else enabled
        self._registry = None
        self._http_requests_total = None
        self._http_request_duration_ms = None
        self._orders_created_total = None
        self._order_status_transitions_total = None
        self._notification_failures_total = None
        self._order_number_conflicts_total = None
        self._lock_wait_timeout_total = None
        if self.enabled:
            self._initialize_registry()

    def _initialize_registry(self) -> None:
        self._registry = CollectorRegistry()
        self._http_requests_total = Counter(
            "http_requests_total",
            "HTTP requests by route/method/status.",
            ["route", "method", "status"],
            registry=self._registry,
        )
        self._http_request_duration_ms = Histogram(
            "http_request_duration_ms",
            "HTTP request latency in milliseconds.",
            ["route", "method", "status"],
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
            registry=self._registry,
        )
        self._orders_created_total = Counter(
            "orders_created_total",
            "Orders created by channel.",
            ["channel"],
            registry=self._registry,
        )
        self._order_status_transitions_total = Counter(
            "order_status_transitions_total",
            "Order status transitions.",
            ["from_status", "to_status"],
            registry=self._registry,
        )
        self._notification_failures_total = Counter(
            "notification_failures_total",
            "Kitchen notifications that failed to dispatch.",
            ["event"],
            registry=self._registry,
        )
        self._order_number_conflicts_total = Counter(
            "order_number_conflicts_total",
            "Order sequence allocations retried after a conflict.",
            registry=self._registry,
        )
        self._lock_wait_timeout_total = Counter(
            "lock_wait_timeout_total",
            "Lock wait timeout occurrences.",
            registry=self._registry,
        )

    def reset(self) -> None:
        if not self.enabled:
            return
        self._initialize_registry()

    def record_http_request(self, *, route: str, method: str, status_code: int, latency_ms: float) -> None:
        if not self.enabled:
            return
        labels = {"route": route, "method": method, "status": str(status_code)}
        self._http_requests_total.labels(**labels).inc()
        self._http_request_duration_ms.labels(**labels).observe(latency_ms)

    def increment_orders_created(self, channel: str) -> None:
        if not self.enabled:
            return
        self._orders_created_total.labels(channel=channel).inc()

    def increment_status_transition(self, from_status: str, to_status: str) -> None:
        if not self.enabled:
            return
        self._order_status_transitions_total.labels(from_status=from_status, to_status=to_status).inc()

    def increment_notification_failure(self, event: str) -> None:
        if not self.enabled:
            return
        self._notification_failures_total.labels(event=event).inc()

    def increment_order_number_conflict(self) -> None:
        if not self.enabled:
            return
        self._order_number_conflicts_total.inc()

    def increment_lock_wait_timeout(self) -> None:
        if not self.enabled:
            return
        self._lock_wait_timeout_total.inc()

    def render(self) -> MetricsSnapshot:
        if not self.enabled:
            return MetricsSnapshot(content=b"metrics_disabled\n", content_type="text/plain")
        return MetricsSnapshot(content=generate_latest(self._registry), content_type=CONTENT_TYPE_LATEST)


metrics = Metrics()
