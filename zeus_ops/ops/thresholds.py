"""Configurable alert thresholds for zeus-ops.

Thresholds can be configured via:
1. Environment variables (ZEUS_THRESHOLD_*)
2. YAML config file (~/.zeus-ops/thresholds.yaml)
3. Defaults

The YAML file may also carry a `rules:` list of custom threshold rules:

    cpu_critical_percent: 95
    rules:
      - metric: error_rate_percent
        comparison: gt
        bound: 2
        severity: Warning
        category: Reliability
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Iterable

import yaml
from loguru import logger

from zeus_ops.exceptions import ConfigurationError
from zeus_ops.monitoring.models import AlertCategory, AlertSeverity, Comparison, ThresholdRule

DEFAULT_THRESHOLDS_PATH = "~/.zeus-ops/thresholds.yaml"


@dataclass
class OpsThresholds:
    """Alert thresholds for monitoring."""

    # Response time thresholds (ms) for App Service request averages
    response_time_warning_ms: float = 2000.0
    response_time_critical_ms: float = 5000.0

    # Wall-clock time of one whole aggregation (ms). Includes one az call per
    # Azure resource, so the bounds sit well above a single request.
    aggregation_time_warning_ms: float = 30000.0
    aggregation_time_critical_ms: float = 60000.0

    # Resource usage thresholds (percentage)
    cpu_warning_percent: float = 80.0
    cpu_critical_percent: float = 90.0
    memory_warning_percent: float = 80.0
    memory_critical_percent: float = 90.0
    disk_warning_percent: float = 85.0
    disk_critical_percent: float = 95.0

    # HTTP 5xx error rate thresholds (percentage of requests)
    error_rate_warning_percent: float = 5.0
    error_rate_critical_percent: float = 10.0


def _read_yaml(config_path: str) -> dict[str, Any]:
    with open(config_path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Threshold file {config_path} must contain a mapping")
    return data


def load_thresholds(config_path: str | None = None) -> OpsThresholds:
    """
    Load thresholds with priority: Environment > YAML > Defaults.

    Args:
        config_path: Path to YAML config. Defaults to ~/.zeus-ops/thresholds.yaml

    Returns:
        OpsThresholds instance
    """
    thresholds = OpsThresholds()

    # Load from YAML if exists
    if config_path is None:
        config_path = os.path.expanduser(DEFAULT_THRESHOLDS_PATH)

    if Path(config_path).exists():
        try:
            yaml_config = _read_yaml(config_path)

            for key, value in yaml_config.items():
                if hasattr(thresholds, key):
                    setattr(thresholds, key, float(value))

            logger.debug(f"Loaded thresholds from {config_path}")
        except Exception as e:
            logger.warning(f"Failed to load thresholds from {config_path}: {e}")

    # Apply environment variable overrides
    for field in fields(thresholds):
        env_key = f"ZEUS_THRESHOLD_{field.name.upper()}"
        env_value = os.environ.get(env_key)
        if env_value is not None:
            try:
                setattr(thresholds, field.name, float(env_value))
                logger.debug(f"Threshold override: {field.name}={env_value}")
            except ValueError as e:
                logger.warning(f"Invalid env value for {env_key}: {e}")

    return thresholds


def parse_rule(entry: Any) -> ThresholdRule:
    """
    Build a ThresholdRule from a config mapping.

    Raises:
        ConfigurationError: If the entry is malformed
    """
    if not isinstance(entry, dict):
        raise ConfigurationError(f"Threshold rule must be a mapping, got {entry!r}")
    try:
        bound = entry["bound"]
        if isinstance(bound, str):
            bound = float(bound)
        return ThresholdRule(
            metric=str(entry["metric"]),
            comparison=Comparison.parse(entry.get("comparison", "gt")),
            bound=bound,
            severity=AlertSeverity(str(entry.get("severity", "Warning")).capitalize()),
            category=AlertCategory(str(entry.get("category", "Performance")).capitalize()),
        )
    except KeyError as e:
        raise ConfigurationError(f"Threshold rule {entry!r} is missing {e}") from None
    except ValueError as e:
        raise ConfigurationError(f"Invalid threshold rule {entry!r}: {e}") from None


def load_custom_rules(config_path: str | None = None) -> list[ThresholdRule]:
    """
    Load the optional `rules:` list from the threshold file.

    Unlike plain threshold values, a broken rule is a configuration error.

    Raises:
        ConfigurationError: If the file or any rule is malformed
    """
    if config_path is None:
        config_path = os.path.expanduser(DEFAULT_THRESHOLDS_PATH)
    if not Path(config_path).exists():
        return []

    try:
        entries = _read_yaml(config_path).get("rules") or []
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e
    if not isinstance(entries, list):
        raise ConfigurationError(f"'rules' in {config_path} must be a list")

    rules = [parse_rule(entry) for entry in entries]
    if rules:
        logger.debug(f"Loaded {len(rules)} custom rules from {config_path}")
    return rules


def _pair(
    metric: str,
    warning: float,
    critical: float,
    category: AlertCategory = AlertCategory.PERFORMANCE,
) -> list[ThresholdRule]:
    return [
        ThresholdRule(metric, Comparison.GREATER_THAN, warning, AlertSeverity.WARNING, category),
        ThresholdRule(metric, Comparison.GREATER_THAN, critical, AlertSeverity.CRITICAL, category),
    ]


def build_rules(
    thresholds: OpsThresholds,
    metric_names: Iterable[str] = (),
    extra_rules: Iterable[ThresholdRule] = (),
) -> list[ThresholdRule]:
    """
    Turn thresholds into the rule set for a session.

    Health rules are always included. Metric rules are only generated for
    metrics the session's metric source publishes; custom rules are passed
    through untouched.

    Args:
        thresholds: Threshold values
        metric_names: Metrics available from the metric source
        extra_rules: Custom rules (e.g. from load_custom_rules)

    Returns:
        Ordered list of ThresholdRule
    """
    t = thresholds
    available = set(metric_names)

    rules = [
        # Overall Unhealthy/Unreachable (rank 2) is critical
        ThresholdRule(
            "overall_status_rank", Comparison.GREATER_THAN, 1, AlertSeverity.CRITICAL, AlertCategory.HEALTH
        ),
        ThresholdRule(
            "degraded_dependencies", Comparison.GREATER_THAN, 0, AlertSeverity.WARNING, AlertCategory.HEALTH
        ),
        *_pair("response_time_ms", t.aggregation_time_warning_ms, t.aggregation_time_critical_ms),
    ]

    candidates = {
        "avg_response_ms": _pair("avg_response_ms", t.response_time_warning_ms, t.response_time_critical_ms),
        "cpu_percent": _pair("cpu_percent", t.cpu_warning_percent, t.cpu_critical_percent),
        "memory_percent": _pair("memory_percent", t.memory_warning_percent, t.memory_critical_percent),
        "disk_percent": _pair("disk_percent", t.disk_warning_percent, t.disk_critical_percent),
        "error_rate_percent": _pair(
            "error_rate_percent",
            t.error_rate_warning_percent,
            t.error_rate_critical_percent,
            AlertCategory.RELIABILITY,
        ),
    }
    for metric, metric_rules in candidates.items():
        if metric in available:
            rules.extend(metric_rules)

    rules.extend(extra_rules)
    return rules
