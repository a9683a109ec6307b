"""Local host metrics via psutil."""

from __future__ import annotations

import psutil

from zeus_ops.monitoring.driver import MetricSource
from zeus_ops.monitoring.models import MetricSample


class SystemMetricSource(MetricSource):
    """
    Samples CPU, memory and disk usage of the machine running the monitor.

    Useful when the monitor runs next to the application (local or a
    self-hosted agent) rather than against App Service.
    """

    metric_names = frozenset({"cpu_percent", "memory_percent", "disk_percent"})

    def __init__(self, disk_path: str = "/", cpu_interval: float = 0.1):
        self.disk_path = disk_path
        self.cpu_interval = cpu_interval

    def sample(self) -> MetricSample:
        return MetricSample(
            {
                "cpu_percent": psutil.cpu_percent(interval=self.cpu_interval),
                "memory_percent": psutil.virtual_memory().percent,
                "disk_percent": psutil.disk_usage(self.disk_path).percent,
            }
        )
