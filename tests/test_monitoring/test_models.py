"""Tests for monitoring data models."""

import dataclasses
import math

import pytest

from zeus_ops.exceptions import AlertEvaluationError
from zeus_ops.monitoring.models import (
    Alert,
    AlertCategory,
    AlertSeverity,
    Comparison,
    DependencyStatus,
    HealthSample,
    HealthStatus,
    MetricSample,
    ThresholdRule,
)


class TestHealthStatus:
    """Tests for HealthStatus enum."""

    def test_rank_order(self):
        assert HealthStatus.HEALTHY.rank < HealthStatus.DEGRADED.rank < HealthStatus.UNHEALTHY.rank
        assert HealthStatus.UNREACHABLE.rank == HealthStatus.UNHEALTHY.rank

    def test_failure_statuses(self):
        assert HealthStatus.UNHEALTHY.is_failure
        assert HealthStatus.UNREACHABLE.is_failure
        assert not HealthStatus.DEGRADED.is_failure
        assert not HealthStatus.HEALTHY.is_failure

    def test_parse_is_case_insensitive(self):
        assert HealthStatus.parse("healthy") is HealthStatus.HEALTHY
        assert HealthStatus.parse(" DEGRADED ") is HealthStatus.DEGRADED

    def test_parse_unknown_raises(self):
        with pytest.raises(ValueError, match="Unknown health status"):
            HealthStatus.parse("Sick")


class TestComparison:
    """Tests for Comparison enum."""

    def test_greater_than_is_strict(self):
        assert Comparison.GREATER_THAN.holds(91, 90)
        assert not Comparison.GREATER_THAN.holds(90, 90)

    def test_less_than_is_strict(self):
        assert Comparison.LESS_THAN.holds(4, 5)
        assert not Comparison.LESS_THAN.holds(5, 5)

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("gt", Comparison.GREATER_THAN),
            (">", Comparison.GREATER_THAN),
            ("GREATER_THAN", Comparison.GREATER_THAN),
            ("lt", Comparison.LESS_THAN),
            ("<", Comparison.LESS_THAN),
            ("less_than", Comparison.LESS_THAN),
        ],
    )
    def test_parse_aliases(self, text, expected):
        assert Comparison.parse(text) is expected

    def test_parse_unknown_raises(self):
        with pytest.raises(ValueError):
            Comparison.parse(">=")


class TestHealthSample:
    """Tests for HealthSample."""

    def test_unreachable_sample(self):
        sample = HealthSample.unreachable("connection refused")

        assert sample.overall is HealthStatus.UNREACHABLE
        assert sample.error == "connection refused"
        assert sample.response_time_ms is None
        assert len(sample.dependencies) == 0

    def test_sample_is_immutable(self):
        sample = HealthSample(overall=HealthStatus.HEALTHY)

        with pytest.raises(dataclasses.FrozenInstanceError):
            sample.overall = HealthStatus.DEGRADED

    def test_dependencies_are_read_only(self):
        deps = {"database": DependencyStatus(HealthStatus.HEALTHY)}
        sample = HealthSample(overall=HealthStatus.HEALTHY, dependencies=deps)

        with pytest.raises(TypeError):
            sample.dependencies["queue"] = DependencyStatus(HealthStatus.HEALTHY)

        # Mutating the source dict does not leak into the sample
        deps["queue"] = DependencyStatus(HealthStatus.UNHEALTHY)
        assert "queue" not in sample.dependencies

    def test_metrics(self):
        sample = HealthSample(
            overall=HealthStatus.UNHEALTHY,
            response_time_ms=120.5,
            dependencies={
                "database": DependencyStatus(HealthStatus.HEALTHY),
                "cache": DependencyStatus(HealthStatus.DEGRADED),
                "queue": DependencyStatus(HealthStatus.UNREACHABLE),
                "search": DependencyStatus(HealthStatus.UNHEALTHY),
            },
        )

        assert sample.metrics() == {
            "response_time_ms": 120.5,
            "overall_status_rank": 2.0,
            "unhealthy_dependencies": 2.0,
            "degraded_dependencies": 1.0,
        }

    def test_ids_are_unique(self):
        a = HealthSample(overall=HealthStatus.HEALTHY)
        b = HealthSample(overall=HealthStatus.HEALTHY)
        assert a.sample_id != b.sample_id

    def test_to_dict(self):
        sample = HealthSample(
            overall=HealthStatus.DEGRADED,
            response_time_ms=42.0,
            dependencies={
                "application": DependencyStatus(
                    HealthStatus.DEGRADED,
                    message="servicebus=Degraded",
                    components={"servicebus": DependencyStatus(HealthStatus.DEGRADED)},
                )
            },
        )

        data = sample.to_dict()

        assert data["overall"] == "Degraded"
        assert data["response_time_ms"] == 42.0
        assert data["dependencies"]["application"]["message"] == "servicebus=Degraded"
        assert data["dependencies"]["application"]["components"]["servicebus"]["status"] == "Degraded"
        assert data["error"] is None


class TestMetricSample:
    """Tests for MetricSample."""

    def test_metrics_returns_copy(self):
        sample = MetricSample({"cpu_percent": 50.0})
        metrics = sample.metrics()
        metrics["cpu_percent"] = 99.0

        assert sample.values["cpu_percent"] == 50.0

    def test_to_dict_keeps_unmeasured_values(self):
        data = MetricSample({"cpu_percent": 50.0, "memory_percent": None}).to_dict()
        assert data["values"] == {"cpu_percent": 50.0, "memory_percent": None}


class TestThresholdRule:
    """Tests for ThresholdRule validation."""

    def test_valid_rule(self):
        rule = ThresholdRule("cpu_percent", Comparison.GREATER_THAN, 90, AlertSeverity.CRITICAL)

        assert rule.category is AlertCategory.PERFORMANCE
        assert rule.is_breached(92)
        assert not rule.is_breached(90)
        assert rule.describe() == "cpu_percent > 90 (Critical)"

    def test_empty_metric_rejected(self):
        with pytest.raises(AlertEvaluationError):
            ThresholdRule("", Comparison.GREATER_THAN, 1, AlertSeverity.WARNING)

    @pytest.mark.parametrize("bound", ["90", None, True, math.nan, math.inf])
    def test_invalid_bound_rejected(self, bound):
        with pytest.raises(AlertEvaluationError):
            ThresholdRule("cpu_percent", Comparison.GREATER_THAN, bound, AlertSeverity.WARNING)

    def test_invalid_enums_rejected(self):
        with pytest.raises(AlertEvaluationError):
            ThresholdRule("cpu_percent", ">", 90, AlertSeverity.WARNING)
        with pytest.raises(AlertEvaluationError):
            ThresholdRule("cpu_percent", Comparison.GREATER_THAN, 90, "Warning")

    def test_to_dict(self):
        rule = ThresholdRule(
            "error_rate_percent",
            Comparison.GREATER_THAN,
            5,
            AlertSeverity.WARNING,
            AlertCategory.RELIABILITY,
        )
        assert rule.to_dict() == {
            "metric": "error_rate_percent",
            "comparison": "gt",
            "bound": 5,
            "severity": "Warning",
            "category": "Reliability",
        }


class TestAlert:
    """Tests for Alert."""

    def test_to_dict(self):
        sample = MetricSample({"cpu_percent": 92.0})
        alert = Alert(
            category=AlertCategory.PERFORMANCE,
            severity=AlertSeverity.CRITICAL,
            message="cpu_percent is 92, above threshold 90",
            metric="cpu_percent",
            value=92.0,
            bound=90.0,
            sample_id=sample.sample_id,
            sample_timestamp=sample.timestamp,
        )

        data = alert.to_dict()

        assert alert.is_critical
        assert data["severity"] == "Critical"
        assert data["category"] == "Performance"
        assert data["sample_id"] == sample.sample_id
        assert data["sample_timestamp"] == sample.timestamp.isoformat()
