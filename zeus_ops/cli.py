"""
CLI for zeus-ops monitoring.

Runs monitoring sessions and one-shot health checks against a Zeus.People
deployment, and starts the ops HTTP server.
"""

from __future__ import annotations

import argparse
import signal
import sys
from pathlib import Path

from loguru import logger

from zeus_ops.exceptions import AlertEvaluationError, ZeusOpsError
from zeus_ops.monitoring.aggregator import HealthAggregator
from zeus_ops.monitoring.driver import (
    EXIT_CRITICAL,
    EXIT_ERROR,
    EXIT_OK,
    EXIT_WARNING,
    CycleResult,
    MonitoringDriver,
)
from zeus_ops.monitoring.models import HealthStatus
from zeus_ops.ops.metrics import MetricsCollector
from zeus_ops.ops.thresholds import build_rules, load_custom_rules, load_thresholds
from zeus_ops.probes import build_metric_source, build_probes
from zeus_ops.reporting import STATUS_ICONS, JsonReportSink, render_cycle
from zeus_ops.utils.config import Config
from zeus_ops.utils.log_filter import filter_secrets

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level:<8} | {message}"


def _mask_secrets(record) -> None:
    record["message"] = filter_secrets(record["message"])


def setup_logging(level: str = "INFO", log_dir: Path | None = None) -> None:
    """Configure loguru for stderr (and optionally a rotating file), masking secrets."""
    logger.remove()
    logger.configure(patcher=_mask_secrets)
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)

    if log_dir is not None:
        log_dir = Path(log_dir).expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_dir / "zeus-ops.log"),
            rotation="10 MB",
            retention="30 days",
            level=level,
            format=LOG_FORMAT,
        )


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Apply command-line overrides on top of environment configuration."""
    if getattr(args, "environment", None):
        config.environment = args.environment
    if getattr(args, "url", None):
        config.app.base_url = args.url
    if getattr(args, "resource_group", None):
        config.azure.resource_group = args.resource_group
    if getattr(args, "interval", None) is not None:
        config.monitor.interval_seconds = args.interval
    if getattr(args, "duration", None) is not None:
        config.monitor.duration_seconds = args.duration
    if getattr(args, "history_size", None) is not None:
        config.monitor.history_size = args.history_size
    if getattr(args, "thresholds", None):
        config.monitor.thresholds_path = args.thresholds
    if getattr(args, "report_dir", None):
        config.monitor.report_dir = Path(args.report_dir).expanduser()
    if getattr(args, "system_metrics", False):
        config.monitor.system_metrics = True
    return config


def run_monitor(config: Config, max_cycles: int | None = None, write_report: bool = True) -> int:
    """
    Run a monitoring session and return its exit code.

    Args:
        config: Session configuration
        max_cycles: Optional cap on cycles
        write_report: Whether to persist a JSON report

    Returns:
        0 = clean, 1 = warnings, 2 = critical alerts, 3 = driver error

    Raises:
        AlertEvaluationError: If a rule stops matching the samples mid-run;
            the summary and report are written first
    """
    aggregator = HealthAggregator(build_probes(config))
    metric_source = build_metric_source(config)
    thresholds = load_thresholds(config.monitor.thresholds_path)
    rules = build_rules(
        thresholds,
        metric_names=metric_source.metric_names if metric_source else (),
        extra_rules=load_custom_rules(config.monitor.thresholds_path),
    )
    collector = MetricsCollector(config.environment)

    def on_cycle(cycle: CycleResult) -> None:
        render_cycle(cycle)
        collector.observe_cycle(cycle)

    driver = MonitoringDriver(
        aggregator,
        rules,
        environment=config.environment,
        interval_seconds=config.monitor.interval_seconds,
        duration_seconds=config.monitor.duration_seconds,
        max_cycles=max_cycles,
        history_capacity=config.monitor.history_size,
        metric_source=metric_source,
        on_cycle=on_cycle,
    )

    logger.info(
        f"Monitoring {config.environment}: probes={', '.join(aggregator.probe_names)}, "
        f"rules={len(rules)}"
    )

    previous = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}
    for sig in previous:
        signal.signal(sig, lambda signum, frame: driver.stop())
    try:
        summary = driver.run()
    except AlertEvaluationError:
        # The session is finished; report the partial counts before failing
        _report_session(config, driver, write_report)
        raise
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    _report_session(config, driver, write_report)
    return summary.exit_code


def _report_session(config: Config, driver: MonitoringDriver, write_report: bool) -> None:
    summary = driver.summary
    if summary is None:
        return

    logger.info(
        f"Session summary: samples={summary.sample_count}, "
        f"health={summary.health_percentage:.1f}%, "
        f"avg_latency={summary.average_latency_ms}ms, "
        f"warnings={summary.alert_counts.get('Warning', 0)}, "
        f"critical={summary.alert_counts.get('Critical', 0)}"
        + (f", error={summary.error}" if summary.error else "")
    )

    if write_report:
        JsonReportSink(config.monitor.report_dir).write(
            summary,
            driver.session.alert_log.all(),
            driver.session.health_history.snapshot(),
            driver.session.metric_history.snapshot(),
        )


def run_check(config: Config) -> int:
    """
    Run one health aggregation and print per-dependency status.

    Returns:
        0 = Healthy, 1 = Degraded, 2 = Unhealthy or Unreachable
    """
    sample = HealthAggregator(build_probes(config)).collect()

    logger.info(
        f"{STATUS_ICONS[sample.overall]} {config.environment}: {sample.overall.value} "
        f"({sample.response_time_ms}ms)"
    )
    for name, dependency in sample.dependencies.items():
        detail = f" - {dependency.message}" if dependency.message else ""
        logger.info(f"  {STATUS_ICONS[dependency.status]} {name}: {dependency.status.value}{detail}")
        for component, status in dependency.components.items():
            logger.info(f"      {component}: {status.status.value}")
    if sample.error:
        logger.error(f"Health check failed: {sample.error}")

    if sample.overall is HealthStatus.HEALTHY:
        return EXIT_OK
    if sample.overall is HealthStatus.DEGRADED:
        return EXIT_WARNING
    return EXIT_CRITICAL


def _add_target_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--environment", "-e", type=str, help="Environment name (default: $ZEUS_ENVIRONMENT)")
    parser.add_argument("--url", type=str, help="Application base URL (default: $ZEUS_APP_URL)")
    parser.add_argument("--resource-group", type=str, help="Azure resource group to probe")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zeus-ops",
        description="Zeus.People deployment monitoring",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Monitor staging for 10 minutes, sampling every 30 seconds
  zeus-ops monitor -e staging --url https://app-zeus-staging.azurewebsites.net --duration 600

  # One-shot health check (exit code 0/1/2)
  zeus-ops check --url https://app-zeus-staging.azurewebsites.net

  # Start the ops server
  zeus-ops serve --port 8080
        """,
    )
    parser.add_argument("--log-level", type=str, default=None, help="Log level (default: $LOG_LEVEL)")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # monitor command
    monitor_parser = subparsers.add_parser("monitor", help="Run a monitoring session")
    _add_target_arguments(monitor_parser)
    monitor_parser.add_argument("--interval", type=float, help="Seconds between cycles (default: 30)")
    monitor_parser.add_argument("--duration", type=float, help="Session length in seconds (default: 300)")
    monitor_parser.add_argument("--max-cycles", type=int, help="Stop after this many cycles")
    monitor_parser.add_argument("--history-size", type=int, help="Samples kept for trends (default: 20)")
    monitor_parser.add_argument("--thresholds", type=str, help="Threshold YAML file")
    monitor_parser.add_argument("--report-dir", type=str, help="Directory for the JSON report")
    monitor_parser.add_argument("--no-report", action="store_true", help="Do not write a JSON report")
    monitor_parser.add_argument(
        "--system-metrics", action="store_true", help="Sample local CPU/memory/disk with psutil"
    )

    # check command
    check_parser = subparsers.add_parser("check", help="Run one health check")
    _add_target_arguments(check_parser)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start the ops HTTP server")
    serve_parser.add_argument("--host", type=str, default="0.0.0.0", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8080, help="Port (default: 8080)")

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = apply_overrides(Config.from_env(), args)
    except ZeusOpsError as e:
        setup_logging(args.log_level or "INFO")
        logger.error(f"{type(e).__name__}: {e}")
        return EXIT_ERROR
    setup_logging(args.log_level or config.log_level, config.log_dir)

    try:
        if args.command == "monitor":
            return run_monitor(config, max_cycles=args.max_cycles, write_report=not args.no_report)
        if args.command == "check":
            return run_check(config)
        if args.command == "serve":
            from zeus_ops.ops.server import run_server

            run_server(host=args.host, port=args.port)
            return 0
    except ZeusOpsError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return EXIT_ERROR

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
