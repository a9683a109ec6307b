"""Base exception hierarchy for zeus-ops.

All zeus-ops exceptions inherit from ZeusOpsError, enabling consistent error
handling across probes, alerting and the monitoring driver.
"""


class ZeusOpsError(Exception):
    """Base exception for all zeus-ops errors."""

    pass


class ProbeError(ZeusOpsError):
    """Raised when a single dependency check fails or returns garbage.

    The aggregator recovers from these and records the dependency as
    Unreachable.
    """

    pass


class ConfigurationError(ZeusOpsError):
    """Raised when configuration is missing or invalid."""

    pass


class DriverError(ZeusOpsError):
    """Raised when the monitoring driver is used incorrectly."""

    pass


class ReportError(ZeusOpsError):
    """Raised when a session report cannot be persisted."""

    pass


# =============================================================================
# Configuration Exceptions
# =============================================================================


class AlertEvaluationError(ConfigurationError):
    """Raised when a threshold rule does not fit the sample it is applied to."""

    pass
