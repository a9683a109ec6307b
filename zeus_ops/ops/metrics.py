"""Prometheus metrics for zeus-ops.

Exports the state of the monitoring session so an external Prometheus (or
the ops server's /metrics endpoint) can scrape it.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

from zeus_ops.monitoring.driver import CycleResult
from zeus_ops.monitoring.models import Alert, HealthSample, MetricSample

# Health gauges: 0 = Healthy, 1 = Degraded, 2 = Unhealthy/Unreachable
OVERALL_STATUS = Gauge("zeus_health_status", "Overall health status rank", ["environment"])
DEPENDENCY_STATUS = Gauge(
    "zeus_dependency_status",
    "Dependency health status rank",
    ["environment", "dependency"],
)

HEALTH_SAMPLES = Counter(
    "zeus_health_samples_total",
    "Health samples collected",
    ["environment", "status"],
)

AGGREGATION_LATENCY = Histogram(
    "zeus_health_aggregation_seconds",
    "Time spent running all probes in one cycle",
    ["environment"],
)

ALERTS = Counter(
    "zeus_alerts_total",
    "Threshold alerts raised",
    ["environment", "category", "severity"],
)

METRIC_VALUE = Gauge(
    "zeus_metric_value",
    "Latest sampled metric value",
    ["environment", "metric"],
)


class MetricsCollector:
    """Records monitoring results into Prometheus metrics."""

    def __init__(self, environment: str = "default"):
        self.environment = environment

    def record_health_sample(self, sample: HealthSample) -> None:
        """
        Record a health sample.

        Args:
            sample: Sample produced by the aggregator
        """
        OVERALL_STATUS.labels(environment=self.environment).set(sample.overall.rank)
        HEALTH_SAMPLES.labels(environment=self.environment, status=sample.overall.value).inc()
        for name, dependency in sample.dependencies.items():
            DEPENDENCY_STATUS.labels(environment=self.environment, dependency=name).set(
                dependency.status.rank
            )
        if sample.response_time_ms is not None:
            AGGREGATION_LATENCY.labels(environment=self.environment).observe(
                sample.response_time_ms / 1000
            )

    def record_metric_sample(self, sample: MetricSample) -> None:
        """Publish each measured metric value as a gauge."""
        for name, value in sample.values.items():
            if value is not None:
                METRIC_VALUE.labels(environment=self.environment, metric=name).set(value)

    def record_alert(self, alert: Alert) -> None:
        ALERTS.labels(
            environment=self.environment,
            category=alert.category.value,
            severity=alert.severity.value,
        ).inc()

    def observe_cycle(self, cycle: CycleResult) -> None:
        """Driver on_cycle hook: record everything a cycle produced."""
        self.record_health_sample(cycle.health)
        if cycle.metrics is not None:
            self.record_metric_sample(cycle.metrics)
        for alert in cycle.alerts:
            self.record_alert(alert)
