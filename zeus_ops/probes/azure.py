"""
Azure resource probes and metrics, backed by the Azure CLI.

Every call shells out to `az ... --output json` with a timeout. The CLI must
already be logged in (az login / managed identity); a missing CLI, non-zero
exit or unparseable output raises ProbeError.
"""

from __future__ import annotations

import json
import subprocess
from typing import Any, Sequence

from loguru import logger

from zeus_ops.exceptions import ProbeError
from zeus_ops.monitoring.aggregator import Probe, ProbeResult
from zeus_ops.monitoring.driver import MetricSource
from zeus_ops.monitoring.models import HealthStatus, MetricSample


class AzureCli:
    """Thin wrapper around the az executable."""

    def __init__(
        self,
        subscription_id: str | None = None,
        timeout: float = 60.0,
        executable: str = "az",
    ):
        self.subscription_id = subscription_id
        self.timeout = timeout
        self.executable = executable

    def run(self, args: Sequence[str]) -> Any:
        """
        Run an az command and return its decoded JSON output.

        Args:
            args: Arguments after `az`, e.g. ["webapp", "show", "--name", "app"]

        Returns:
            Decoded JSON output

        Raises:
            ProbeError: If the CLI is missing, times out, fails or prints invalid JSON
        """
        command = [self.executable, *args, "--output", "json"]
        if self.subscription_id:
            command += ["--subscription", self.subscription_id]

        logger.debug(f"Running: {' '.join(command)}")
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise ProbeError(f"Azure CLI not found: {self.executable}") from None
        except subprocess.TimeoutExpired:
            raise ProbeError(f"az {' '.join(args[:2])} timed out after {self.timeout}s") from None

        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip().splitlines()
            raise ProbeError(
                f"az {' '.join(args[:2])} failed (exit {result.returncode}): "
                f"{detail[-1] if detail else 'no output'}"
            )

        try:
            return json.loads(result.stdout) if result.stdout.strip() else None
        except json.JSONDecodeError as e:
            raise ProbeError(f"az {' '.join(args[:2])} returned invalid JSON: {e}") from e


def provisioning_status(state: str | None) -> HealthStatus:
    """Map an ARM provisioningState to a health status."""
    if state == "Succeeded":
        return HealthStatus.HEALTHY
    if state in ("Failed", "Canceled", "Deleting"):
        return HealthStatus.UNHEALTHY
    return HealthStatus.DEGRADED


def _require(document: Any, *path: str) -> Any:
    """Walk a nested JSON document, raising ProbeError on a missing key."""
    current = document
    for key in path:
        if not isinstance(current, dict) or key not in current:
            raise ProbeError(f"Azure response missing field '{'.'.join(path)}'")
        current = current[key]
    return current


class AzureResourceProbe(Probe):
    """
    Checks that an Azure resource exists and is provisioned.

    Subclasses supply the CLI arguments and where provisioningState lives in
    the response.
    """

    state_path: tuple[str, ...] = ("properties", "provisioningState")

    def __init__(self, name: str, cli: AzureCli, args: Sequence[str]):
        self.name = name
        self.cli = cli
        self.args = list(args)

    def check(self) -> ProbeResult:
        document = self.cli.run(self.args)
        return self.evaluate(document)

    def evaluate(self, document: Any) -> ProbeResult:
        state = _require(document, *self.state_path)
        status = provisioning_status(state)
        message = None if status is HealthStatus.HEALTHY else f"provisioningState={state}"
        return ProbeResult(status=status, message=message)


class ResourceGroupProbe(AzureResourceProbe):
    def __init__(self, cli: AzureCli, resource_group: str, name: str = "resource_group"):
        super().__init__(name, cli, ["group", "show", "--name", resource_group])


class KeyVaultProbe(AzureResourceProbe):
    def __init__(self, cli: AzureCli, resource_group: str, vault_name: str, name: str = "key_vault"):
        super().__init__(
            name, cli, ["keyvault", "show", "--resource-group", resource_group, "--name", vault_name]
        )


class AppInsightsProbe(AzureResourceProbe):
    state_path = ("provisioningState",)

    def __init__(self, cli: AzureCli, resource_group: str, component: str, name: str = "app_insights"):
        super().__init__(
            name,
            cli,
            ["monitor", "app-insights", "component", "show",
             "--resource-group", resource_group, "--app", component],
        )


class LogAnalyticsProbe(AzureResourceProbe):
    state_path = ("provisioningState",)

    def __init__(self, cli: AzureCli, resource_group: str, workspace: str, name: str = "log_analytics"):
        super().__init__(
            name,
            cli,
            ["monitor", "log-analytics", "workspace", "show",
             "--resource-group", resource_group, "--workspace-name", workspace],
        )


class WebAppProbe(AzureResourceProbe):
    """Web app is Healthy when Running, Unhealthy when Stopped."""

    state_path = ("state",)

    def __init__(self, cli: AzureCli, resource_group: str, app_name: str, name: str = "web_app"):
        super().__init__(
            name, cli, ["webapp", "show", "--resource-group", resource_group, "--name", app_name]
        )

    def evaluate(self, document: Any) -> ProbeResult:
        state = _require(document, "state")
        if state == "Running":
            return ProbeResult(status=HealthStatus.HEALTHY)
        if state == "Stopped":
            return ProbeResult(status=HealthStatus.UNHEALTHY, message="Web app is stopped")
        return ProbeResult(status=HealthStatus.DEGRADED, message=f"Web app state={state}")


# Azure Monitor metric name -> aggregation field read from the datapoint
WEB_APP_METRICS = {
    "Requests": "total",
    "Http5xx": "total",
    "HttpResponseTime": "average",
}
# Azure Monitor metric name -> (aggregation field, local metric name)
PLAN_METRICS = {
    "CpuPercentage": ("average", "cpu_percent"),
    "MemoryPercentage": ("average", "memory_percent"),
}


def latest_datapoints(document: Any) -> dict[str, dict[str, Any]]:
    """
    Extract the most recent populated datapoint per metric.

    Args:
        document: Output of `az monitor metrics list`

    Returns:
        Metric name -> latest datapoint dict (may be missing for empty series)
    """
    values = _require(document, "value")
    if not isinstance(values, list):
        raise ProbeError("Azure metrics response 'value' must be a list")

    latest: dict[str, dict[str, Any]] = {}
    for metric in values:
        metric_name = _require(metric, "name", "value")
        for series in metric.get("timeseries") or []:
            for point in series.get("data") or []:
                if any(point.get(agg) is not None for agg in ("total", "average", "maximum")):
                    latest[metric_name] = point
    return latest


class AzureMonitorMetricSource(MetricSource):
    """
    Samples web app (and optionally plan) metrics from Azure Monitor.

    Publishes avg_response_ms and error_rate_percent, plus cpu_percent and
    memory_percent when an App Service plan is given. A metric with no recent
    datapoint is reported as None (not measured).
    """

    def __init__(
        self,
        cli: AzureCli,
        resource_group: str,
        web_app_name: str,
        plan_name: str | None = None,
        offset: str = "5m",
    ):
        self.cli = cli
        self.resource_group = resource_group
        self.web_app_name = web_app_name
        self.plan_name = plan_name
        self.offset = offset
        names = {"avg_response_ms", "error_rate_percent"}
        if plan_name:
            names |= {local for _, local in PLAN_METRICS.values()}
        self.metric_names = frozenset(names)

    def _query(self, resource: str, resource_type: str, metrics: Sequence[str]) -> dict[str, dict[str, Any]]:
        document = self.cli.run(
            ["monitor", "metrics", "list",
             "--resource", resource,
             "--resource-group", self.resource_group,
             "--resource-type", resource_type,
             "--metrics", *metrics,
             "--interval", "PT1M",
             "--offset", self.offset,
             "--aggregation", "Average", "Total"]
        )
        return latest_datapoints(document)

    def sample(self) -> MetricSample:
        points = self._query(self.web_app_name, "Microsoft.Web/sites", list(WEB_APP_METRICS))

        requests_total = (points.get("Requests") or {}).get(WEB_APP_METRICS["Requests"])
        errors_total = (points.get("Http5xx") or {}).get(WEB_APP_METRICS["Http5xx"])
        response_time = (points.get("HttpResponseTime") or {}).get(WEB_APP_METRICS["HttpResponseTime"])

        error_rate = None
        if requests_total is not None:
            error_rate = round((errors_total or 0.0) / requests_total * 100, 2) if requests_total else 0.0

        values: dict[str, float | None] = {
            # HttpResponseTime is reported in seconds
            "avg_response_ms": round(response_time * 1000, 2) if response_time is not None else None,
            "error_rate_percent": error_rate,
        }

        if self.plan_name:
            plan_points = self._query(self.plan_name, "Microsoft.Web/serverfarms", list(PLAN_METRICS))
            for azure_name, (aggregation, local_name) in PLAN_METRICS.items():
                values[local_name] = (plan_points.get(azure_name) or {}).get(aggregation)

        return MetricSample(values)
