"""Concrete probes and metric sources, and assembly from configuration."""

from __future__ import annotations

from loguru import logger

from zeus_ops.exceptions import ConfigurationError
from zeus_ops.monitoring.aggregator import Probe
from zeus_ops.monitoring.driver import MetricSource
from zeus_ops.probes.azure import (
    AppInsightsProbe,
    AzureCli,
    AzureMonitorMetricSource,
    KeyVaultProbe,
    LogAnalyticsProbe,
    ResourceGroupProbe,
    WebAppProbe,
)
from zeus_ops.probes.http import HttpEndpointProbe, HttpHealthProbe
from zeus_ops.probes.system import SystemMetricSource
from zeus_ops.utils.config import Config


def build_probes(config: Config, cli: AzureCli | None = None) -> list[Probe]:
    """
    Assemble the probe set for an environment.

    The application health endpoint is probed when a base URL is configured,
    plus one endpoint probe per configured extra path (none by default: the
    API serves nothing at its root). Azure resources are probed when a
    resource group is configured, one probe per named resource.

    Raises:
        ConfigurationError: If nothing is configured to probe
    """
    probes: list[Probe] = []

    if config.app.health_url:
        probes.append(
            HttpHealthProbe("application", config.app.health_url, timeout=config.app.request_timeout)
        )
        for path in config.app.endpoint_paths:
            probes.append(
                HttpEndpointProbe(
                    f"endpoint:{path}",
                    config.app.endpoint_url(path),
                    timeout=config.app.request_timeout,
                    latency_budget_ms=config.app.latency_budget_ms,
                )
            )

    azure = config.azure
    if azure.enabled:
        cli = cli or AzureCli(azure.subscription_id, timeout=azure.cli_timeout)
        rg = azure.resource_group
        probes.append(ResourceGroupProbe(cli, rg))
        if azure.web_app_name:
            probes.append(WebAppProbe(cli, rg, azure.web_app_name))
        if azure.key_vault_name:
            probes.append(KeyVaultProbe(cli, rg, azure.key_vault_name))
        if azure.app_insights_name:
            probes.append(AppInsightsProbe(cli, rg, azure.app_insights_name))
        if azure.log_analytics_workspace:
            probes.append(LogAnalyticsProbe(cli, rg, azure.log_analytics_workspace))

    if not probes:
        raise ConfigurationError(
            "Nothing to monitor: set ZEUS_APP_URL and/or ZEUS_RESOURCE_GROUP"
        )

    logger.debug(f"Built {len(probes)} probes: {', '.join(p.name for p in probes)}")
    return probes


def build_metric_source(config: Config, cli: AzureCli | None = None) -> MetricSource | None:
    """
    Pick the metric source for a session.

    Azure Monitor when a web app is configured, local psutil metrics when
    system metrics are requested, otherwise None.
    """
    azure = config.azure
    if azure.enabled and azure.web_app_name:
        cli = cli or AzureCli(azure.subscription_id, timeout=azure.cli_timeout)
        return AzureMonitorMetricSource(
            cli, azure.resource_group, azure.web_app_name, plan_name=azure.app_service_plan
        )
    if config.monitor.system_metrics:
        return SystemMetricSource()
    return None


__all__ = [
    "AppInsightsProbe",
    "AzureCli",
    "AzureMonitorMetricSource",
    "HttpEndpointProbe",
    "HttpHealthProbe",
    "KeyVaultProbe",
    "LogAnalyticsProbe",
    "ResourceGroupProbe",
    "SystemMetricSource",
    "WebAppProbe",
    "build_metric_source",
    "build_probes",
]
