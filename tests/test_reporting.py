"""Tests for cycle rendering and JSON session reports."""

import json

import pytest
from loguru import logger

from zeus_ops.exceptions import ReportError
from zeus_ops.monitoring.driver import CycleResult, MonitoringSession
from zeus_ops.monitoring.models import (
    Alert,
    AlertCategory,
    AlertSeverity,
    DependencyStatus,
    HealthSample,
    HealthStatus,
    MetricSample,
)
from zeus_ops.reporting import JsonReportSink, ReportSink, build_report, render_cycle


@pytest.fixture
def log_messages():
    """Capture loguru output as 'LEVEL|message' strings."""
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.rstrip("\n")), format="{level}|{message}")
    yield messages
    logger.remove(handler_id)


def make_alert(sample):
    return Alert(
        category=AlertCategory.HEALTH,
        severity=AlertSeverity.CRITICAL,
        message="overall_status_rank is 2, above threshold 1",
        metric="overall_status_rank",
        value=2.0,
        bound=1.0,
        sample_id=sample.sample_id,
        sample_timestamp=sample.timestamp,
    )


class TestRenderCycle:
    """Tests for render_cycle."""

    def test_healthy_cycle_logs_info(self, log_messages):
        health = HealthSample(overall=HealthStatus.HEALTHY, response_time_ms=123.4)

        render_cycle(CycleResult(cycle=1, health=health, metrics=MetricSample({"cpu_percent": 42.0})))

        assert len(log_messages) == 1
        level, line = log_messages[0].split("|", 1)
        assert level == "INFO"
        assert line.startswith("#1 | ")
        assert "Healthy" in line
        assert "latency=123ms" in line
        assert "cpu_percent=42" in line

    def test_failing_cycle_logs_warning(self, log_messages):
        health = HealthSample(
            overall=HealthStatus.UNHEALTHY,
            response_time_ms=80.0,
            dependencies={
                "database": DependencyStatus(HealthStatus.HEALTHY),
                "queue": DependencyStatus(HealthStatus.UNREACHABLE, message="timed out"),
            },
        )

        render_cycle(CycleResult(cycle=2, health=health, alerts=[make_alert(health)]))

        level, line = log_messages[0].split("|", 1)
        assert level == "WARNING"
        assert "failing: queue=Unreachable" in line
        assert "database" not in line
        assert "alerts=1" in line

    def test_unreachable_sample_shows_error(self, log_messages):
        render_cycle(CycleResult(cycle=3, health=HealthSample.unreachable("aggregation crashed")))

        assert "latency=n/a" in log_messages[0]
        assert "error: aggregation crashed" in log_messages[0]


class TestJsonReportSink:
    """Tests for JsonReportSink."""

    def _finished_session(self):
        session = MonitoringSession("staging", history_capacity=5)
        health = HealthSample(overall=HealthStatus.UNHEALTHY, response_time_ms=50.0)
        session.started_at = health.timestamp
        session.record_health(health)
        session.record_metrics(MetricSample({"cpu_percent": 12.0}))
        session.alert_log.append(make_alert(health))
        session.ended_at = health.timestamp
        return session

    def test_writes_report(self, tmp_path):
        session = self._finished_session()
        summary = session.summarize()

        path = JsonReportSink(tmp_path / "reports").write(
            summary,
            session.alert_log.all(),
            session.health_history.snapshot(),
            session.metric_history.snapshot(),
        )

        assert isinstance(JsonReportSink(tmp_path), ReportSink)
        assert path.exists()
        assert path.name.startswith("monitoring-report-staging-")
        data = json.loads(path.read_text())
        assert data["summary"]["sample_count"] == 1
        assert data["summary"]["exit_code"] == 2
        assert data["alerts"][0]["metric"] == "overall_status_rank"
        assert data["health_history"][0]["overall"] == "Unhealthy"
        assert data["metric_history"][0]["values"] == {"cpu_percent": 12.0}

    def test_unwritable_directory_raises(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        summary = MonitoringSession("staging").summarize()

        with pytest.raises(ReportError):
            JsonReportSink(blocker / "reports").write(summary, [])

    def test_build_report_without_history(self):
        report = build_report(MonitoringSession("dev").summarize(), [])

        assert report["summary"]["environment"] == "dev"
        assert report["alerts"] == []
        assert report["health_history"] == []
        assert "generated_at" in report
