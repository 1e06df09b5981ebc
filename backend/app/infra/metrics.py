import logging

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)


class Metrics:
    def __init__(self, enabled: bool = False) -> None:
        self._configure(enabled)

    def _configure(self, enabled: bool) -> None:
        self.enabled = enabled
        self.registry = CollectorRegistry(auto_describe=True)
        if not enabled:
            self.http_requests = None
            self.http_latency = None
            self.http_5xx = None
            self.feature_flag_fetches = None
            self.integration_calls = None
            return

        self.http_requests = Counter(
            "http_requests_total",
            "HTTP requests by method, route and status code.",
            ["method", "path", "status_code"],
            registry=self.registry,
        )
        self.http_latency = Histogram(
            "http_request_latency_seconds",
            "HTTP request latency by method, route and status class.",
            ["method", "path", "status_class"],
            registry=self.registry,
        )
        self.http_5xx = Counter(
            "http_5xx_total",
            "HTTP responses with 5xx status codes.",
            ["method", "path"],
            registry=self.registry,
        )
        self.feature_flag_fetches = Counter(
            "feature_flag_fetches_total",
            "Feature flag snapshot loads by outcome.",
            ["outcome"],
            registry=self.registry,
        )
        self.integration_calls = Counter(
            "integration_calls_total",
            "External integration calls by integration and mode.",
            ["integration", "mode"],
            registry=self.registry,
        )

    def record_http_request(self, method: str, path: str, status_code: int) -> None:
        if not self.enabled or self.http_requests is None:
            return
        self.http_requests.labels(method=method, path=path, status_code=str(status_code)).inc()

    def record_http_5xx(self, method: str, path: str) -> None:
        if not self.enabled or self.http_5xx is None:
            return
        self.http_5xx.labels(method=method, path=path).inc()

    def record_http_latency(self, method: str, path: str, status_code: int, duration_seconds: float) -> None:
        if not self.enabled or self.http_latency is None:
            return
        status_class = f"{status_code // 100}xx" if status_code else "unknown"
        duration_seconds = max(0.0, float(duration_seconds))
        self.http_latency.labels(method=method, path=path, status_class=status_class).observe(
            duration_seconds
        )

    def record_feature_flag_fetch(self, outcome: str) -> None:
        if not self.enabled or self.feature_flag_fetches is None:
            return
        self.feature_flag_fetches.labels(outcome=outcome or "unknown").inc()

    def record_integration_call(self, integration: str, mode: str) -> None:
        if not self.enabled or self.integration_calls is None:
            return
        self.integration_calls.labels(integration=integration, mode=mode).inc()

    def render(self) -> tuple[bytes, str]:
        if not self.enabled:
            return b"metrics_disabled 1\n", "text/plain; version=0.0.4"
        try:
            return generate_latest(self.registry), CONTENT_TYPE_LATEST
        except Exception:  # noqa: BLE001
            logger.exception("metrics_render_failed")
            return b"metrics_render_failed 1\n", "text/plain; version=0.0.4"


metrics = Metrics(enabled=False)


def configure_metrics(enabled: bool) -> Metrics:
    metrics._configure(enabled)
    return metrics
