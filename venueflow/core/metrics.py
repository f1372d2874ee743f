"""
Prometheus metrics. Created once per process on import; every app instance
and service records into the same collectors.
"""

from prometheus_client import Counter, Histogram


class PrometheusMetrics:
    """Prometheus metrics collection"""

    def __init__(self) -> None:
        # HTTP metrics
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
        )

        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "HTTP request latency",
            ["method", "endpoint"],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        )

        self.errors_total = Counter(
            "errors_total", "Total application errors", ["error_type", "endpoint"]
        )

        # Workflow metrics
        self.event_transitions_total = Counter(
            "event_transitions_total",
            "Event lifecycle transitions applied",
            ["action"],
        )

        self.allocation_decisions_total = Counter(
            "allocation_decisions_total",
            "Allocation validator outcomes",
            ["outcome", "kind"],
        )

    def record_request(
        self, method: str, endpoint: str, status_code: int, duration: float
    ) -> None:
        """Record HTTP request metrics"""
        self.http_requests_total.labels(
            method=method, endpoint=endpoint, status_code=status_code
        ).inc()
        self.http_request_duration_seconds.labels(
            method=method, endpoint=endpoint
        ).observe(duration)

    def record_error(self, error_type: str, endpoint: str) -> None:
        self.errors_total.labels(error_type=error_type, endpoint=endpoint).inc()

    def record_transition(self, action: str) -> None:
        self.event_transitions_total.labels(action=action).inc()

    def record_allocation(self, accepted: bool, kind: str) -> None:
        self.allocation_decisions_total.labels(
            outcome="accepted" if accepted else "rejected", kind=kind
        ).inc()


metrics = PrometheusMetrics()
