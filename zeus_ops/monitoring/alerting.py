"""
Threshold alerting.

Evaluates samples against static ThresholdRules. Every breach produces its
own Alert on every evaluation; there is no deduplication or cooldown across
cycles, so a sustained breach re-alerts each cycle.
"""

from __future__ import annotations

import math
from collections import Counter
from typing import Iterable, Protocol, Sequence

from loguru import logger

from zeus_ops.exceptions import AlertEvaluationError
from zeus_ops.monitoring.models import (
    Alert,
    AlertCategory,
    AlertSeverity,
    Comparison,
    ThresholdRule,
)

# Metrics derived from a HealthSample (see HealthSample.metrics)
HEALTH_METRICS = frozenset(
    {"response_time_ms", "overall_status_rank", "unhealthy_dependencies", "degraded_dependencies"}
)


class Sample(Protocol):
    sample_id: str

    @property
    def timestamp(self): ...

    def metrics(self) -> dict[str, float | None]: ...


class AlertLog:
    """Append-only record of alerts raised during a session."""

    def __init__(self):
        self._alerts: list[Alert] = []

    def append(self, alert: Alert) -> None:
        self._alerts.append(alert)

    def all(self) -> list[Alert]:
        return list(self._alerts)

    def counts_by_severity(self) -> dict[str, int]:
        counts = Counter(alert.severity.value for alert in self._alerts)
        return {severity.value: counts.get(severity.value, 0) for severity in AlertSeverity}

    def counts_by_category(self) -> dict[str, int]:
        counts = Counter(alert.category.value for alert in self._alerts)
        return {category.value: counts.get(category.value, 0) for category in AlertCategory}

    @property
    def has_critical(self) -> bool:
        return any(alert.is_critical for alert in self._alerts)

    def __len__(self) -> int:
        return len(self._alerts)

    def __iter__(self):
        return iter(self.all())


def format_alert_message(rule: ThresholdRule, value: float) -> str:
    """Human-readable alert text including metric, observed value and bound."""
    direction = "above" if rule.comparison is Comparison.GREATER_THAN else "below"
    return f"{rule.metric} is {value:g}, {direction} threshold {rule.bound:g}"


def partition_rules(
    rules: Iterable[ThresholdRule],
) -> tuple[list[ThresholdRule], list[ThresholdRule]]:
    """
    Split rules into those evaluated against health samples and the rest.

    Returns:
        Tuple of (health_rules, metric_rules)
    """
    health_rules: list[ThresholdRule] = []
    metric_rules: list[ThresholdRule] = []
    for rule in rules:
        (health_rules if rule.metric in HEALTH_METRICS else metric_rules).append(rule)
    return health_rules, metric_rules


class ThresholdEvaluator:
    """
    Evaluates samples against threshold rules and records alerts.

    Example:
        evaluator = ThresholdEvaluator()
        rule = ThresholdRule("cpu_percent", Comparison.GREATER_THAN, 90, AlertSeverity.CRITICAL)
        alerts = evaluator.evaluate(MetricSample({"cpu_percent": 92}), [rule])
    """

    def __init__(self, alert_log: AlertLog | None = None):
        self.alert_log = alert_log if alert_log is not None else AlertLog()

    def evaluate(self, sample: Sample, rules: Sequence[ThresholdRule]) -> list[Alert]:
        """
        Evaluate one sample against a rule set.

        Args:
            sample: HealthSample or MetricSample
            rules: Rules to apply

        Returns:
            Alerts raised by this evaluation, in rule order

        Raises:
            AlertEvaluationError: If a rule names a metric the sample does not
                carry, or the metric value is not numeric
        """
        metrics = sample.metrics()
        alerts: list[Alert] = []

        for rule in rules:
            if rule.metric not in metrics:
                raise AlertEvaluationError(
                    f"Rule {rule.describe()} references metric '{rule.metric}' "
                    f"not present in sample {sample.sample_id}"
                )

            value = metrics[rule.metric]
            if value is None:
                # Known metric that was not measured this cycle
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
                raise AlertEvaluationError(
                    f"Metric '{rule.metric}' has non-numeric value {value!r}"
                )

            if not rule.is_breached(value):
                continue

            alert = Alert(
                category=rule.category,
                severity=rule.severity,
                message=format_alert_message(rule, value),
                metric=rule.metric,
                value=float(value),
                bound=float(rule.bound),
                sample_id=sample.sample_id,
                sample_timestamp=sample.timestamp,
            )
            alerts.append(alert)
            self.alert_log.append(alert)
            logger.warning(f"[{alert.severity.value.upper()}] {alert.category.value}: {alert.message}")

        return alerts
