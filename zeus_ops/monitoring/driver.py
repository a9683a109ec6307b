"""
Monitoring driver loop.

Runs collection cycles at a fixed interval until the configured duration
elapses, a stop is requested, or the driver itself fails:

    Idle -> Running -> Stopped

Each cycle collects a health sample (and optionally a metric sample),
evaluates threshold rules, records the samples in bounded histories and
hands the cycle to an optional render callback. Probe failures never stop
the loop; they show up as Unreachable dependencies.
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Sequence

from loguru import logger

from zeus_ops.exceptions import AlertEvaluationError, ConfigurationError, DriverError
from zeus_ops.monitoring.aggregator import HealthAggregator
from zeus_ops.monitoring.alerting import AlertLog, ThresholdEvaluator, partition_rules
from zeus_ops.monitoring.history import DEFAULT_CAPACITY, BoundedHistory
from zeus_ops.monitoring.models import (
    Alert,
    AlertSeverity,
    HealthSample,
    HealthStatus,
    MetricSample,
    ThresholdRule,
)

# Exit codes handed back to the calling pipeline
EXIT_OK = 0
EXIT_WARNING = 1
EXIT_CRITICAL = 2
EXIT_ERROR = 3


class DriverState(Enum):
    """Lifecycle of a monitoring driver."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class MetricSource(ABC):
    """Supplies numeric metrics once per cycle."""

    metric_names: frozenset[str] = frozenset()

    @abstractmethod
    def sample(self) -> MetricSample:
        """Take one metric sample."""
        pass


@dataclass
class CycleResult:
    """Everything produced by one driver cycle."""

    cycle: int
    health: HealthSample
    metrics: MetricSample | None = None
    alerts: list[Alert] = field(default_factory=list)


@dataclass
class SessionSummary:
    """Statistics for a finished monitoring session."""

    environment: str
    started_at: datetime | None
    ended_at: datetime | None
    duration_seconds: float
    sample_count: int
    healthy_count: int
    health_percentage: float
    average_latency_ms: float | None
    status_counts: dict[str, int]
    alert_counts: dict[str, int]
    alert_category_counts: dict[str, int]
    metric_failures: int = 0
    error: str | None = None

    @property
    def total_alerts(self) -> int:
        return sum(self.alert_counts.values())

    @property
    def exit_code(self) -> int:
        """0 = clean, 1 = warnings only, 2 = critical alerts, 3 = driver error."""
        if self.error:
            return EXIT_ERROR
        if self.alert_counts.get(AlertSeverity.CRITICAL.value, 0) > 0:
            return EXIT_CRITICAL
        if self.alert_counts.get(AlertSeverity.WARNING.value, 0) > 0:
            return EXIT_WARNING
        return EXIT_OK

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "environment": self.environment,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration_seconds": self.duration_seconds,
            "sample_count": self.sample_count,
            "healthy_count": self.healthy_count,
            "health_percentage": self.health_percentage,
            "average_latency_ms": self.average_latency_ms,
            "status_counts": self.status_counts,
            "alert_counts": self.alert_counts,
            "alert_category_counts": self.alert_category_counts,
            "total_alerts": self.total_alerts,
            "metric_failures": self.metric_failures,
            "error": self.error,
            "exit_code": self.exit_code,
        }


class MonitoringSession:
    """
    State owned by one monitoring run.

    Histories only keep the most recent samples for trend display; the
    running totals cover every sample of the session.
    """

    def __init__(self, environment: str = "default", history_capacity: int = DEFAULT_CAPACITY):
        self.environment = environment
        self.health_history: BoundedHistory[HealthSample] = BoundedHistory(history_capacity)
        self.metric_history: BoundedHistory[MetricSample] = BoundedHistory(history_capacity)
        self.alert_log = AlertLog()
        self.started_at: datetime | None = None
        self.ended_at: datetime | None = None

        self.sample_count = 0
        self.healthy_count = 0
        self.metric_failures = 0
        self._status_counts: Counter[str] = Counter()
        self._latency_total = 0.0
        self._latency_count = 0

    def record_health(self, sample: HealthSample) -> None:
        self.health_history.append(sample)
        self.sample_count += 1
        self._status_counts[sample.overall.value] += 1
        if sample.is_healthy:
            self.healthy_count += 1
        if sample.response_time_ms is not None:
            self._latency_total += sample.response_time_ms
            self._latency_count += 1

    def record_metrics(self, sample: MetricSample) -> None:
        self.metric_history.append(sample)

    def summarize(self, error: str | None = None) -> SessionSummary:
        """Compute summary statistics over the whole session."""
        if self.started_at and self.ended_at:
            duration = (self.ended_at - self.started_at).total_seconds()
        else:
            duration = 0.0

        health_pct = (
            round(self.healthy_count / self.sample_count * 100, 2) if self.sample_count else 0.0
        )
        avg_latency = (
            round(self._latency_total / self._latency_count, 2) if self._latency_count else None
        )

        return SessionSummary(
            environment=self.environment,
            started_at=self.started_at,
            ended_at=self.ended_at,
            duration_seconds=round(duration, 3),
            sample_count=self.sample_count,
            healthy_count=self.healthy_count,
            health_percentage=health_pct,
            average_latency_ms=avg_latency,
            status_counts={status.value: self._status_counts.get(status.value, 0) for status in HealthStatus},
            alert_counts=self.alert_log.counts_by_severity(),
            alert_category_counts=self.alert_log.counts_by_category(),
            metric_failures=self.metric_failures,
            error=error,
        )


class MonitoringDriver:
    """
    Fixed-interval monitoring loop.

    Single-threaded: probes run sequentially inside a cycle and cycles never
    overlap. stop() may be called from a signal handler or another thread;
    it is honoured between cycles and cuts the inter-cycle wait short.

    Example:
        driver = MonitoringDriver(
            aggregator,
            rules=build_rules(load_thresholds()),
            interval_seconds=30,
            duration_seconds=300,
            on_cycle=render_cycle,
        )
        summary = driver.run()
        sys.exit(summary.exit_code)
    """

    def __init__(
        self,
        aggregator: HealthAggregator,
        rules: Sequence[ThresholdRule] = (),
        *,
        environment: str = "default",
        interval_seconds: float = 30.0,
        duration_seconds: float | None = 300.0,
        max_cycles: int | None = None,
        history_capacity: int = DEFAULT_CAPACITY,
        metric_source: MetricSource | None = None,
        on_cycle: Callable[[CycleResult], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
        wait: Callable[[float], None] | None = None,
    ):
        """
        Initialize the driver.

        Args:
            aggregator: Produces one HealthSample per cycle
            rules: Threshold rules; health metrics are evaluated against the
                health sample, everything else against the metric sample
            environment: Environment name reported in the summary
            interval_seconds: Time between cycle starts
            duration_seconds: Session length (None = until stopped)
            max_cycles: Optional cap on the number of cycles
            history_capacity: Bounded history size for each sample type
            metric_source: Optional source of numeric metrics
            on_cycle: Callback invoked after each cycle (rendering, exporters)
            clock: Monotonic clock in seconds
            wait: Sleep function; defaults to an interruptible wait

        Raises:
            ConfigurationError: If interval or duration is negative
            AlertEvaluationError: If a rule names a metric no source provides
        """
        if interval_seconds < 0:
            raise ConfigurationError(f"interval_seconds cannot be negative, got {interval_seconds}")
        if duration_seconds is not None and duration_seconds < 0:
            raise ConfigurationError(f"duration_seconds cannot be negative, got {duration_seconds}")

        self.aggregator = aggregator
        self.metric_source = metric_source
        self.interval_seconds = interval_seconds
        self.duration_seconds = duration_seconds
        self.max_cycles = max_cycles
        self.on_cycle = on_cycle
        self._clock = clock
        self._stop_event = threading.Event()
        self._wait = wait or self._stop_event.wait

        self.health_rules, self.metric_rules = partition_rules(rules)
        self._validate_metric_rules()

        self.session = MonitoringSession(environment, history_capacity)
        self.evaluator = ThresholdEvaluator(self.session.alert_log)
        self._state = DriverState.IDLE
        self._cycles = 0
        self.summary: SessionSummary | None = None

    @property
    def state(self) -> DriverState:
        return self._state

    @property
    def cycles(self) -> int:
        return self._cycles

    def stop(self) -> None:
        """Request a cooperative stop; the current cycle finishes first."""
        if not self._stop_event.is_set():
            logger.info("Stop requested for monitoring session")
        self._stop_event.set()

    def run(self) -> SessionSummary:
        """
        Run the monitoring session to completion.

        Returns:
            SessionSummary for the whole session

        Raises:
            DriverError: If the driver has already been run
            AlertEvaluationError: On a rule/metric mismatch (configuration bug)
        """
        if self._state is not DriverState.IDLE:
            raise DriverError(f"Driver cannot run from state {self._state.value}")

        self._state = DriverState.RUNNING
        self.session.started_at = datetime.now(timezone.utc)
        deadline = None if self.duration_seconds is None else self._clock() + self.duration_seconds
        logger.info(
            f"Monitoring session started: environment={self.session.environment}, "
            f"interval={self.interval_seconds}s, duration={self.duration_seconds}s"
        )

        error: str | None = None
        try:
            while not self._should_stop(deadline):
                self._run_cycle()
                if self._should_stop(deadline):
                    break
                self._pause(deadline)
        except AlertEvaluationError as e:
            logger.error(f"Threshold evaluation failed, stopping: {e}")
            self._finish(error=str(e))
            raise
        except Exception as e:
            logger.exception(f"Monitoring driver failed: {e}")
            error = str(e) or type(e).__name__

        return self._finish(error)

    def _should_stop(self, deadline: float | None) -> bool:
        if self._stop_event.is_set():
            return True
        if self.max_cycles is not None and self._cycles >= self.max_cycles:
            return True
        return deadline is not None and self._clock() >= deadline

    def _pause(self, deadline: float | None) -> None:
        delay = self.interval_seconds
        if deadline is not None:
            delay = min(delay, max(deadline - self._clock(), 0.0))
        if delay > 0:
            self._wait(delay)

    def _run_cycle(self) -> None:
        self._cycles += 1
        health = self.aggregator.collect()
        self.session.record_health(health)
        alerts = self.evaluator.evaluate(health, self.health_rules)

        metrics = self._sample_metrics()
        if metrics is not None:
            self.session.record_metrics(metrics)
            alerts.extend(self.evaluator.evaluate(metrics, self.metric_rules))

        if self.on_cycle is not None:
            self.on_cycle(CycleResult(cycle=self._cycles, health=health, metrics=metrics, alerts=alerts))

    def _sample_metrics(self) -> MetricSample | None:
        if self.metric_source is None:
            return None
        try:
            return self.metric_source.sample()
        except Exception as e:
            self.session.metric_failures += 1
            logger.warning(f"Metric sampling failed: {e}")
            return None

    def _finish(self, error: str | None = None) -> SessionSummary:
        self._state = DriverState.STOPPED
        self.session.ended_at = datetime.now(timezone.utc)
        self.summary = self.session.summarize(error)
        logger.info(
            f"Monitoring session stopped: samples={self.summary.sample_count}, "
            f"health={self.summary.health_percentage:.1f}%, "
            f"alerts={self.summary.total_alerts}, exit_code={self.summary.exit_code}"
        )
        return self.summary

    def _validate_metric_rules(self) -> None:
        if not self.metric_rules:
            return
        available = self.metric_source.metric_names if self.metric_source else frozenset()
        unknown = sorted({rule.metric for rule in self.metric_rules} - set(available))
        if unknown:
            raise AlertEvaluationError(
                f"Threshold rules reference metrics no source provides: {', '.join(unknown)}"
            )
