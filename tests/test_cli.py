"""Tests for the zeus-ops CLI."""

import argparse
import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from tests.fixtures import StaticMetricSource, failing_probe, static_probe
from zeus_ops.exceptions import AlertEvaluationError
from zeus_ops.cli import apply_overrides, build_parser, main, run_check, run_monitor
from zeus_ops.monitoring.models import HealthStatus
from zeus_ops.utils.config import Config


@pytest.fixture
def config(tmp_path):
    config = Config(environment="test")
    config.monitor.thresholds_path = str(tmp_path / "missing-thresholds.yaml")
    config.monitor.report_dir = tmp_path / "reports"
    config.monitor.interval_seconds = 0
    return config


def use_probes(monkeypatch, *probes):
    monkeypatch.setattr("zeus_ops.cli.build_probes", lambda config: list(probes))
    monkeypatch.setattr("zeus_ops.cli.build_metric_source", lambda config: None)


class HealthOnlyHandler(BaseHTTPRequestHandler):
    """Answers like the API: a health document on /health, 404 everywhere else."""

    def do_GET(self):
        if self.path != "/health":
            self.send_error(404)
            return
        body = json.dumps(
            {
                "status": "Healthy",
                "totalDuration": "00:00:00.0123",
                "results": {"database": {"status": "Healthy", "description": "Cosmos DB reachable"}},
            }
        ).encode()
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def health_only_app(monkeypatch):
    """Local server that only serves /health; yields its base URL."""
    monkeypatch.setenv("NO_PROXY", "127.0.0.1,localhost")
    monkeypatch.setenv("no_proxy", "127.0.0.1,localhost")
    server = ThreadingHTTPServer(("127.0.0.1", 0), HealthOnlyHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_port}"
    server.shutdown()
    server.server_close()


class TestRunCheck:
    """Tests for the check command."""

    @pytest.mark.parametrize(
        "status,expected",
        [
            (HealthStatus.HEALTHY, 0),
            (HealthStatus.DEGRADED, 1),
            (HealthStatus.UNHEALTHY, 2),
        ],
    )
    def test_exit_code_follows_overall_status(self, monkeypatch, config, status, expected):
        use_probes(monkeypatch, static_probe("database", status))
        assert run_check(config) == expected

    def test_unreachable_dependency_is_critical(self, monkeypatch, config):
        use_probes(monkeypatch, failing_probe("queue", TimeoutError("timed out")))
        assert run_check(config) == 2

    def test_healthy_app_without_root_route(self, config, health_only_app):
        config.app.base_url = health_only_app
        assert run_check(config) == 0

    def test_configured_endpoint_path_is_checked(self, config, health_only_app):
        config.app.base_url = health_only_app
        config.app.endpoint_paths = ["/swagger/index.html"]
        assert run_check(config) == 2


class TestRunMonitor:
    """Tests for the monitor command."""

    def test_clean_session_writes_report(self, monkeypatch, config):
        use_probes(monkeypatch, static_probe("database", HealthStatus.HEALTHY))

        exit_code = run_monitor(config, max_cycles=2)

        assert exit_code == 0
        reports = list(config.monitor.report_dir.glob("monitoring-report-test-*.json"))
        assert len(reports) == 1
        data = json.loads(reports[0].read_text())
        assert data["summary"]["sample_count"] == 2

    def test_zero_duration_session(self, monkeypatch, config):
        use_probes(monkeypatch, static_probe("database", HealthStatus.HEALTHY))
        config.monitor.duration_seconds = 0

        assert run_monitor(config, write_report=False) == 0
        assert not config.monitor.report_dir.exists()

    def test_failing_dependency_exits_critical(self, monkeypatch, config):
        use_probes(
            monkeypatch,
            static_probe("database", HealthStatus.HEALTHY),
            failing_probe("queue", TimeoutError("timed out")),
        )

        assert run_monitor(config, max_cycles=1, write_report=False) == 2

    def test_degraded_dependency_exits_warning(self, monkeypatch, config):
        use_probes(monkeypatch, static_probe("cache", HealthStatus.DEGRADED))

        assert run_monitor(config, max_cycles=1, write_report=False) == 1

    def test_healthy_app_session_is_clean(self, config, health_only_app):
        config.app.base_url = health_only_app
        assert run_monitor(config, max_cycles=2, write_report=False) == 0

    def test_report_written_when_metric_disappears(self, monkeypatch, config):
        use_probes(monkeypatch, static_probe("database", HealthStatus.HEALTHY))
        source = StaticMetricSource([{"cpu_percent": 50.0}, {}])
        monkeypatch.setattr("zeus_ops.cli.build_metric_source", lambda config: source)

        with pytest.raises(AlertEvaluationError):
            run_monitor(config, max_cycles=3)

        reports = list(config.monitor.report_dir.glob("monitoring-report-test-*.json"))
        assert len(reports) == 1
        summary = json.loads(reports[0].read_text())["summary"]
        assert summary["sample_count"] == 2
        assert summary["exit_code"] == 3
        assert "cpu_percent" in summary["error"]


class TestMain:
    """Tests for argument handling in main."""

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "zeus-ops" in capsys.readouterr().out

    def test_configuration_error_exits_3(self, clean_env):
        # Nothing configured to probe
        assert main(["check"]) == 3

    def test_invalid_environment_value_exits_3(self, clean_env, monkeypatch):
        monkeypatch.setenv("ZEUS_INTERVAL_SECONDS", "abc")
        assert main(["check", "--url", "https://app.example.net"]) == 3

    @pytest.mark.parametrize("option", ["--interval", "--duration"])
    def test_negative_session_setting_exits_3(self, clean_env, monkeypatch, tmp_path, option):
        use_probes(monkeypatch, static_probe("database", HealthStatus.HEALTHY))
        assert main(["monitor", option, "-1", "--report-dir", str(tmp_path)]) == 3

    def test_check_command(self, clean_env, monkeypatch):
        use_probes(monkeypatch, static_probe("database", HealthStatus.HEALTHY))
        assert main(["check", "--url", "https://app.example.net"]) == 0

    def test_monitor_command(self, clean_env, monkeypatch, tmp_path):
        use_probes(monkeypatch, static_probe("database", HealthStatus.DEGRADED))

        exit_code = main(
            [
                "monitor",
                "-e", "ci",
                "--interval", "0",
                "--max-cycles", "1",
                "--thresholds", str(tmp_path / "none.yaml"),
                "--report-dir", str(tmp_path),
            ]
        )

        assert exit_code == 1
        assert len(list(tmp_path.glob("monitoring-report-ci-*.json"))) == 1


class TestApplyOverrides:
    """Tests for apply_overrides."""

    def test_overrides(self, tmp_path):
        args = build_parser().parse_args(
            [
                "monitor",
                "--environment", "production",
                "--url", "https://app.example.net",
                "--resource-group", "rg-zeus-prod",
                "--interval", "10",
                "--duration", "120",
                "--history-size", "5",
                "--report-dir", str(tmp_path),
                "--system-metrics",
            ]
        )

        config = apply_overrides(Config(), args)

        assert config.environment == "production"
        assert config.app.base_url == "https://app.example.net"
        assert config.azure.resource_group == "rg-zeus-prod"
        assert config.monitor.interval_seconds == 10.0
        assert config.monitor.duration_seconds == 120.0
        assert config.monitor.history_size == 5
        assert config.monitor.report_dir == tmp_path
        assert config.monitor.system_metrics is True

    def test_missing_arguments_keep_config(self):
        config = apply_overrides(Config(environment="staging"), argparse.Namespace(command="check"))
        assert config.environment == "staging"
