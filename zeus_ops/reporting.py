"""
Session reporting.

render_cycle logs one dashboard row per monitoring cycle; JsonReportSink
persists the finished session (summary, alerts and trend history) as JSON.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

from loguru import logger

from zeus_ops.exceptions import ReportError
from zeus_ops.monitoring.driver import CycleResult, SessionSummary
from zeus_ops.monitoring.models import Alert, HealthSample, HealthStatus, MetricSample

STATUS_ICONS = {
    HealthStatus.HEALTHY: "✅",
    HealthStatus.DEGRADED: "⚠️",
    HealthStatus.UNHEALTHY: "❌",
    HealthStatus.UNREACHABLE: "⛔",
}


def render_cycle(cycle: CycleResult) -> None:
    """Log a one-line status row for a finished cycle."""
    health = cycle.health
    latency = f"{health.response_time_ms:.0f}ms" if health.response_time_ms is not None else "n/a"
    failing = [
        f"{name}={dep.status.value}"
        for name, dep in health.dependencies.items()
        if dep.status is not HealthStatus.HEALTHY
    ]

    parts = [
        f"#{cycle.cycle}",
        f"{STATUS_ICONS[health.overall]} {health.overall.value}",
        f"latency={latency}",
    ]
    if cycle.metrics is not None:
        parts.extend(
            f"{name}={value:g}" for name, value in cycle.metrics.values.items() if value is not None
        )
    if failing:
        parts.append(f"failing: {', '.join(failing)}")
    if health.error:
        parts.append(f"error: {health.error}")
    if cycle.alerts:
        parts.append(f"alerts={len(cycle.alerts)}")

    line = " | ".join(parts)
    if health.overall is HealthStatus.HEALTHY and not cycle.alerts:
        logger.info(line)
    else:
        logger.warning(line)


def build_report(
    summary: SessionSummary,
    alerts: Sequence[Alert],
    health_history: Sequence[HealthSample] = (),
    metric_history: Sequence[MetricSample] = (),
) -> dict[str, Any]:
    """Assemble the JSON-serializable session report."""
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "summary": summary.to_dict(),
        "alerts": [alert.to_dict() for alert in alerts],
        "health_history": [sample.to_dict() for sample in health_history],
        "metric_history": [sample.to_dict() for sample in metric_history],
    }


class ReportSink(ABC):
    """Destination for finished session reports."""

    @abstractmethod
    def write(
        self,
        summary: SessionSummary,
        alerts: Sequence[Alert],
        health_history: Sequence[HealthSample] = (),
        metric_history: Sequence[MetricSample] = (),
    ) -> Any:
        """Persist a finished session."""
        pass


class JsonReportSink(ReportSink):
    """Writes session reports as JSON files into a directory."""

    def __init__(self, report_dir: str | Path):
        self.report_dir = Path(report_dir).expanduser()

    def write(
        self,
        summary: SessionSummary,
        alerts: Sequence[Alert],
        health_history: Sequence[HealthSample] = (),
        metric_history: Sequence[MetricSample] = (),
    ) -> Path:
        """
        Persist a finished session.

        Returns:
            Path of the written report

        Raises:
            ReportError: If the report cannot be written
        """
        stamp = (summary.ended_at or datetime.now(timezone.utc)).strftime("%Y%m%d-%H%M%S")
        path = self.report_dir / f"monitoring-report-{summary.environment}-{stamp}.json"
        report = build_report(summary, alerts, health_history, metric_history)

        try:
            self.report_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(report, f, indent=2)
        except OSError as e:
            raise ReportError(f"Failed to write report to {path}: {e}") from e

        logger.info(f"Monitoring report saved to {path}")
        return path
