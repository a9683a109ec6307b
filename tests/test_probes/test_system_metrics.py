"""Tests for local system metrics."""

from types import SimpleNamespace
from unittest.mock import patch

from zeus_ops.probes.system import SystemMetricSource


def test_sample_reports_psutil_values():
    """SystemMetricSource should publish cpu, memory and disk usage."""
    with patch("zeus_ops.probes.system.psutil") as psutil:
        psutil.cpu_percent.return_value = 42.0
        psutil.virtual_memory.return_value = SimpleNamespace(percent=61.5)
        psutil.disk_usage.return_value = SimpleNamespace(percent=70.0)

        sample = SystemMetricSource(disk_path="/data").sample()

    assert sample.values == {"cpu_percent": 42.0, "memory_percent": 61.5, "disk_percent": 70.0}
    psutil.disk_usage.assert_called_once_with("/data")


def test_metric_names_match_sample():
    """Every published metric name should appear in a real sample."""
    source = SystemMetricSource(cpu_interval=None)
    sample = source.sample()

    assert set(sample.values) == source.metric_names
    assert all(0.0 <= value <= 100.0 for value in sample.values.values())
