"""
Monitoring data models.

Samples and alerts are immutable once created: they are appended to the
session history and alert log and only ever read afterwards.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from zeus_ops.exceptions import AlertEvaluationError


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthStatus(Enum):
    """Status of a single dependency or of the whole system."""

    HEALTHY = "Healthy"
    DEGRADED = "Degraded"
    UNHEALTHY = "Unhealthy"
    UNREACHABLE = "Unreachable"

    @property
    def rank(self) -> int:
        """Severity rank used for worst-case-wins derivation."""
        return _STATUS_RANK[self]

    @property
    def is_failure(self) -> bool:
        return self in (HealthStatus.UNHEALTHY, HealthStatus.UNREACHABLE)

    @classmethod
    def parse(cls, value: str) -> "HealthStatus":
        """
        Parse a status string case-insensitively.

        Raises:
            ValueError: If the value is not a known status
        """
        for status in cls:
            if status.value.lower() == str(value).strip().lower():
                return status
        raise ValueError(f"Unknown health status: {value!r}")


_STATUS_RANK = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.DEGRADED: 1,
    HealthStatus.UNHEALTHY: 2,
    HealthStatus.UNREACHABLE: 2,
}


class AlertCategory(Enum):
    """What kind of problem an alert reports."""

    HEALTH = "Health"
    PERFORMANCE = "Performance"
    RELIABILITY = "Reliability"


class AlertSeverity(Enum):
    """Alert severity levels."""

    WARNING = "Warning"
    CRITICAL = "Critical"


class Comparison(Enum):
    """Comparison applied between an observed value and a rule bound."""

    GREATER_THAN = "gt"
    LESS_THAN = "lt"

    @property
    def symbol(self) -> str:
        return ">" if self is Comparison.GREATER_THAN else "<"

    def holds(self, value: float, bound: float) -> bool:
        if self is Comparison.GREATER_THAN:
            return value > bound
        return value < bound

    @classmethod
    def parse(cls, value: str) -> "Comparison":
        aliases = {
            "gt": cls.GREATER_THAN,
            ">": cls.GREATER_THAN,
            "greater_than": cls.GREATER_THAN,
            "lt": cls.LESS_THAN,
            "<": cls.LESS_THAN,
            "less_than": cls.LESS_THAN,
        }
        try:
            return aliases[str(value).strip().lower()]
        except KeyError:
            raise ValueError(f"Unknown comparison: {value!r}") from None


@dataclass(frozen=True)
class DependencyStatus:
    """Status of one named dependency within a health sample."""

    status: HealthStatus
    message: str | None = None
    latency_ms: float | None = None
    components: Mapping[str, "DependencyStatus"] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "components", MappingProxyType(dict(self.components)))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "status": self.status.value,
            "message": self.message,
            "latency_ms": self.latency_ms,
        }
        if self.components:
            result["components"] = {
                name: component.to_dict() for name, component in self.components.items()
            }
        return result


@dataclass(frozen=True)
class HealthSample:
    """
    One point-in-time capture of dependency health.

    Attributes:
        overall: Worst-case status across all dependencies
        response_time_ms: Wall-clock time of the aggregation (None on failure)
        dependencies: Dependency name -> DependencyStatus
        error: Set only when the aggregator itself failed
    """

    overall: HealthStatus
    response_time_ms: float | None = None
    dependencies: Mapping[str, DependencyStatus] = field(default_factory=dict)
    error: str | None = None
    timestamp: datetime = field(default_factory=_utcnow)
    sample_id: str = field(default_factory=_new_id)

    def __post_init__(self):
        object.__setattr__(self, "dependencies", MappingProxyType(dict(self.dependencies)))

    @classmethod
    def unreachable(cls, error: str) -> "HealthSample":
        """Sample reported when the aggregation itself could not complete."""
        return cls(overall=HealthStatus.UNREACHABLE, error=error)

    @property
    def is_healthy(self) -> bool:
        return self.overall is HealthStatus.HEALTHY

    def count(self, *statuses: HealthStatus) -> int:
        """Count dependencies currently in any of the given statuses."""
        return sum(1 for dep in self.dependencies.values() if dep.status in statuses)

    def metrics(self) -> dict[str, float | None]:
        """Numeric metrics derived from this sample for threshold alerting."""
        return {
            "response_time_ms": self.response_time_ms,
            "overall_status_rank": float(self.overall.rank),
            "unhealthy_dependencies": float(
                self.count(HealthStatus.UNHEALTHY, HealthStatus.UNREACHABLE)
            ),
            "degraded_dependencies": float(self.count(HealthStatus.DEGRADED)),
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "sample_id": self.sample_id,
            "timestamp": self.timestamp.isoformat(),
            "overall": self.overall.value,
            "response_time_ms": self.response_time_ms,
            "dependencies": {
                name: dep.to_dict() for name, dep in self.dependencies.items()
            },
            "error": self.error,
        }


@dataclass(frozen=True)
class MetricSample:
    """One point-in-time capture of numeric metrics."""

    values: Mapping[str, float | None]
    timestamp: datetime = field(default_factory=_utcnow)
    sample_id: str = field(default_factory=_new_id)

    def __post_init__(self):
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def metrics(self) -> dict[str, float | None]:
        return dict(self.values)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "sample_id": self.sample_id,
            "timestamp": self.timestamp.isoformat(),
            "values": dict(self.values),
        }


@dataclass(frozen=True)
class ThresholdRule:
    """
    Static comparison deciding whether a metric value raises an alert.

    Invalid rules raise AlertEvaluationError on construction so that a bad
    threshold file fails at startup rather than mid-session.
    """

    metric: str
    comparison: Comparison
    bound: float
    severity: AlertSeverity
    category: AlertCategory = AlertCategory.PERFORMANCE

    def __post_init__(self):
        if not self.metric:
            raise AlertEvaluationError("Threshold rule metric cannot be empty")
        if isinstance(self.bound, bool) or not isinstance(self.bound, (int, float)):
            raise AlertEvaluationError(
                f"Threshold bound for {self.metric} must be a number, got {self.bound!r}"
            )
        if not math.isfinite(self.bound):
            raise AlertEvaluationError(f"Threshold bound for {self.metric} must be finite")
        if not isinstance(self.comparison, Comparison):
            raise AlertEvaluationError(f"Invalid comparison for {self.metric}: {self.comparison!r}")
        if not isinstance(self.severity, AlertSeverity):
            raise AlertEvaluationError(f"Invalid severity for {self.metric}: {self.severity!r}")

    def is_breached(self, value: float) -> bool:
        return self.comparison.holds(value, self.bound)

    def describe(self) -> str:
        return f"{self.metric} {self.comparison.symbol} {self.bound:g} ({self.severity.value})"

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric,
            "comparison": self.comparison.value,
            "bound": self.bound,
            "severity": self.severity.value,
            "category": self.category.value,
        }


@dataclass(frozen=True)
class Alert:
    """An alert raised because a threshold rule was breached."""

    category: AlertCategory
    severity: AlertSeverity
    message: str
    metric: str
    value: float
    bound: float
    sample_id: str
    sample_timestamp: datetime
    timestamp: datetime = field(default_factory=_utcnow)
    alert_id: str = field(default_factory=_new_id)

    @property
    def is_critical(self) -> bool:
        return self.severity is AlertSeverity.CRITICAL

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "alert_id": self.alert_id,
            "timestamp": self.timestamp.isoformat(),
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "metric": self.metric,
            "value": self.value,
            "bound": self.bound,
            "sample_id": self.sample_id,
            "sample_timestamp": self.sample_timestamp.isoformat(),
        }
