"""
Health aggregation across named probes.

Each probe checks one dependency (an HTTP endpoint, an Azure resource, ...).
The aggregator runs them in order and folds their results into a single
HealthSample whose overall status is the worst dependency status.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

from loguru import logger

from zeus_ops.exceptions import ConfigurationError
from zeus_ops.monitoring.models import DependencyStatus, HealthSample, HealthStatus


@dataclass(frozen=True)
class ProbeResult:
    """What a probe reports for its dependency."""

    status: HealthStatus
    message: str | None = None
    latency_ms: float | None = None
    components: Mapping[str, DependencyStatus] = field(default_factory=dict)

    def to_dependency(self) -> DependencyStatus:
        return DependencyStatus(
            status=self.status,
            message=self.message,
            latency_ms=self.latency_ms,
            components=self.components,
        )


class Probe(ABC):
    """Base class for dependency checks."""

    name: str = "probe"

    @abstractmethod
    def check(self) -> ProbeResult:
        """
        Check the dependency.

        Returns:
            ProbeResult describing the dependency status

        Raises:
            Exception: Any failure; the aggregator records it as Unreachable
        """
        pass


class CallableProbe(Probe):
    """Adapts a plain callable returning a ProbeResult into a Probe."""

    def __init__(self, name: str, func):
        self.name = name
        self._func = func

    def check(self) -> ProbeResult:
        return self._func()


def derive_overall_status(statuses: Iterable[HealthStatus]) -> HealthStatus:
    """
    Fold dependency statuses into an overall status, worst case wins.

    Unhealthy if any dependency is Unhealthy or Unreachable, Degraded if any
    is Degraded, otherwise Healthy. No dependencies at all counts as Healthy.
    """
    worst = HealthStatus.HEALTHY
    for status in statuses:
        if status.is_failure:
            return HealthStatus.UNHEALTHY
        if status.rank > worst.rank:
            worst = status
    return worst


class HealthAggregator:
    """
    Runs probes sequentially and produces one HealthSample per call.

    Example:
        aggregator = HealthAggregator([
            HttpHealthProbe("api", "https://app.example.net/health"),
            WebAppProbe(cli, "rg-zeus-staging", "app-zeus-staging"),
        ])
        sample = aggregator.collect()
    """

    def __init__(self, probes: Sequence[Probe]):
        names = [probe.name for probe in probes]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate probe names: {', '.join(duplicates)}")
        self._probes = list(probes)

    @property
    def probe_names(self) -> list[str]:
        return [probe.name for probe in self._probes]

    def collect(self) -> HealthSample:
        """
        Run every probe once and build a sample.

        A probe that raises is recorded as Unreachable with the error text.
        If the aggregation itself breaks, the returned sample is Unreachable
        with the error attached.
        """
        start = time.perf_counter()
        try:
            dependencies: dict[str, DependencyStatus] = {}
            for probe in self._probes:
                dependencies[probe.name] = self._run_probe(probe)

            elapsed_ms = (time.perf_counter() - start) * 1000
            sample = HealthSample(
                overall=derive_overall_status(dep.status for dep in dependencies.values()),
                response_time_ms=round(elapsed_ms, 2),
                dependencies=dependencies,
            )
        except Exception as e:
            logger.exception(f"Health aggregation failed: {e}")
            return HealthSample.unreachable(error=str(e) or type(e).__name__)

        logger.debug(
            f"Health sample {sample.sample_id}: overall={sample.overall.value}, "
            f"dependencies={len(dependencies)}, elapsed={sample.response_time_ms}ms"
        )
        return sample

    def _run_probe(self, probe: Probe) -> DependencyStatus:
        try:
            dependency = probe.check().to_dependency()
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.warning(f"Probe {probe.name} failed: {message}")
            return DependencyStatus(status=HealthStatus.UNREACHABLE, message=message)

        logger.debug(f"Probe {probe.name}: {dependency.status.value}")
        return dependency
