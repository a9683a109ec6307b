"""
Configuration management for zeus-ops.

Loads settings from environment variables with sensible defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from zeus_ops.exceptions import ConfigurationError

# Load .env file if it exists
load_dotenv()


@dataclass
class ApplicationConfig:
    """The web application under watch."""

    base_url: str | None = None
    health_path: str = "/health"
    request_timeout: float = 10.0
    # Latency above this marks an endpoint Degraded
    latency_budget_ms: float = 2000.0
    # Extra paths under base_url checked for a 2xx answer, e.g. "/swagger/index.html"
    endpoint_paths: list[str] = field(default_factory=list)

    @property
    def health_url(self) -> str | None:
        if not self.base_url:
            return None
        return f"{self.base_url.rstrip('/')}/{self.health_path.lstrip('/')}"

    def endpoint_url(self, path: str) -> str:
        return f"{(self.base_url or '').rstrip('/')}/{path.lstrip('/')}"


@dataclass
class AzureConfig:
    """Azure resources checked by the cloud probes."""

    subscription_id: str | None = None
    resource_group: str | None = None
    web_app_name: str | None = None
    app_service_plan: str | None = None
    key_vault_name: str | None = None
    app_insights_name: str | None = None
    log_analytics_workspace: str | None = None
    cli_timeout: float = 60.0

    @property
    def enabled(self) -> bool:
        return bool(self.resource_group)


@dataclass
class MonitorConfig:
    """Monitoring session settings."""

    interval_seconds: float = 30.0
    duration_seconds: float = 300.0
    history_size: int = 20
    thresholds_path: str | None = None
    report_dir: Path = field(default_factory=lambda: Path.cwd() / "reports")
    system_metrics: bool = False


@dataclass
class Config:
    """Main configuration class."""

    environment: str = "staging"
    app: ApplicationConfig = field(default_factory=ApplicationConfig)
    azure: AzureConfig = field(default_factory=AzureConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)

    # General settings
    log_level: str = "INFO"
    log_dir: Path | None = None

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        report_dir = os.getenv("ZEUS_REPORT_DIR")
        log_dir = os.getenv("ZEUS_LOG_DIR")

        return cls(
            environment=os.getenv("ZEUS_ENVIRONMENT", "staging"),
            app=ApplicationConfig(
                base_url=os.getenv("ZEUS_APP_URL"),
                health_path=os.getenv("ZEUS_HEALTH_PATH", "/health"),
                request_timeout=_env_float("ZEUS_REQUEST_TIMEOUT", 10.0),
                latency_budget_ms=_env_float("ZEUS_LATENCY_BUDGET_MS", 2000.0),
                endpoint_paths=_env_list("ZEUS_ENDPOINT_PATHS"),
            ),
            azure=AzureConfig(
                subscription_id=os.getenv("AZURE_SUBSCRIPTION_ID"),
                resource_group=os.getenv("ZEUS_RESOURCE_GROUP"),
                web_app_name=os.getenv("ZEUS_WEB_APP_NAME"),
                app_service_plan=os.getenv("ZEUS_APP_SERVICE_PLAN"),
                key_vault_name=os.getenv("ZEUS_KEY_VAULT_NAME"),
                app_insights_name=os.getenv("ZEUS_APP_INSIGHTS_NAME"),
                log_analytics_workspace=os.getenv("ZEUS_LOG_ANALYTICS_WORKSPACE"),
                cli_timeout=_env_float("ZEUS_AZ_TIMEOUT", 60.0),
            ),
            monitor=MonitorConfig(
                interval_seconds=_env_float("ZEUS_INTERVAL_SECONDS", 30.0),
                duration_seconds=_env_float("ZEUS_DURATION_SECONDS", 300.0),
                history_size=_env_int("ZEUS_HISTORY_SIZE", 20),
                thresholds_path=os.getenv("ZEUS_THRESHOLDS_FILE"),
                report_dir=Path(report_dir).expanduser() if report_dir else Path.cwd() / "reports",
                system_metrics=os.getenv("ZEUS_SYSTEM_METRICS", "").lower() in ("1", "true", "yes"),
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_dir=Path(log_dir).expanduser() if log_dir else None,
        )


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got {value!r}") from None


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from None


def _env_list(key: str) -> list[str]:
    value = os.getenv(key, "")
    return [item.strip() for item in value.split(",") if item.strip()]


# Global config instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _config
    _config = None
