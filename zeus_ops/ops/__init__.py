"""Zeus ops module - thresholds, Prometheus metrics and health endpoints."""

from zeus_ops.ops.metrics import MetricsCollector
from zeus_ops.ops.server import create_app, run_server
from zeus_ops.ops.thresholds import OpsThresholds, build_rules, load_custom_rules, load_thresholds

__all__ = [
    "create_app",
    "run_server",
    "OpsThresholds",
    "load_thresholds",
    "load_custom_rules",
    "build_rules",
    "MetricsCollector",
]
