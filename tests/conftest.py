"""
Pytest configuration and fixtures for zeus-ops tests.
"""

import pytest

from tests.fixtures import FakeClock

ZEUS_ENV_VARS = [
    "ZEUS_ENVIRONMENT",
    "ZEUS_APP_URL",
    "ZEUS_HEALTH_PATH",
    "ZEUS_REQUEST_TIMEOUT",
    "ZEUS_LATENCY_BUDGET_MS",
    "ZEUS_ENDPOINT_PATHS",
    "AZURE_SUBSCRIPTION_ID",
    "ZEUS_RESOURCE_GROUP",
    "ZEUS_WEB_APP_NAME",
    "ZEUS_APP_SERVICE_PLAN",
    "ZEUS_KEY_VAULT_NAME",
    "ZEUS_APP_INSIGHTS_NAME",
    "ZEUS_LOG_ANALYTICS_WORKSPACE",
    "ZEUS_AZ_TIMEOUT",
    "ZEUS_INTERVAL_SECONDS",
    "ZEUS_DURATION_SECONDS",
    "ZEUS_HISTORY_SIZE",
    "ZEUS_THRESHOLDS_FILE",
    "ZEUS_REPORT_DIR",
    "ZEUS_SYSTEM_METRICS",
    "ZEUS_LOG_DIR",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove zeus-ops environment variables (a local .env may set them)."""
    for key in ZEUS_ENV_VARS:
        monkeypatch.delenv(key, raising=False)

    from zeus_ops.utils.config import reset_config

    reset_config()
    yield
    reset_config()


@pytest.fixture
def fake_clock():
    """Clock that only advances when the driver waits."""
    return FakeClock()
