"""Health aggregation, threshold alerting and the monitoring driver loop."""

from zeus_ops.monitoring.aggregator import (
    CallableProbe,
    HealthAggregator,
    Probe,
    ProbeResult,
    derive_overall_status,
)
from zeus_ops.monitoring.alerting import HEALTH_METRICS, AlertLog, ThresholdEvaluator
from zeus_ops.monitoring.driver import (
    CycleResult,
    DriverState,
    MetricSource,
    MonitoringDriver,
    MonitoringSession,
    SessionSummary,
)
from zeus_ops.monitoring.history import BoundedHistory
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

__all__ = [
    "Alert",
    "AlertCategory",
    "AlertLog",
    "AlertSeverity",
    "BoundedHistory",
    "CallableProbe",
    "Comparison",
    "CycleResult",
    "DependencyStatus",
    "DriverState",
    "HEALTH_METRICS",
    "HealthAggregator",
    "HealthSample",
    "HealthStatus",
    "MetricSample",
    "MetricSource",
    "MonitoringDriver",
    "MonitoringSession",
    "Probe",
    "ProbeResult",
    "SessionSummary",
    "ThresholdEvaluator",
    "ThresholdRule",
    "derive_overall_status",
]
