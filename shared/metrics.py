"""
Prometheus metrics for the IRIS gateway client.
"""

from typing import Dict, Any, Optional
from prometheus_client import Counter, Histogram, CollectorRegistry


class ClientMetrics:
    """Request, retry and token metrics for one client instance.

    Each instance registers into its own registry unless one is supplied, so
    several clients can live in the same process.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        self._metrics["requests_total"] = Counter(
            "iris_client_requests_total",
            "Total HTTP attempts sent to IRIS backends",
            ["method", "target", "status"],
            registry=self.registry
        )

        self._metrics["request_duration_seconds"] = Histogram(
            "iris_client_request_duration_seconds",
            "Duration of a single HTTP attempt in seconds",
            ["method", "target"],
            registry=self.registry
        )

        self._metrics["retries_total"] = Counter(
            "iris_client_retries_total",
            "Total retried attempts",
            ["reason"],
            registry=self.registry
        )

        self._metrics["errors_total"] = Counter(
            "iris_client_errors_total",
            "Total errors surfaced to callers",
            ["error_type"],
            registry=self.registry
        )

        self._metrics["token_fetches_total"] = Counter(
            "iris_client_token_fetches_total",
            "Total OAuth client-credentials token fetches",
            ["outcome"],
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def record_request(self, method: str, target: str, status: str, duration: float):
        self._metrics["requests_total"].labels(method=method, target=target, status=status).inc()
        self._metrics["request_duration_seconds"].labels(method=method, target=target).observe(duration)

    def record_retry(self, reason: str):
        self._metrics["retries_total"].labels(reason=reason).inc()

    def record_error(self, error_type: str):
        self._metrics["errors_total"].labels(error_type=error_type).inc()

    def record_token_fetch(self, outcome: str):
        self._metrics["token_fetches_total"].labels(outcome=outcome).inc()

    def sample(self, name: str, **labels) -> float:
        """Current value of a sample, 0.0 when it was never recorded."""
        value = self.registry.get_sample_value(name, labels)
        return value or 0.0
