"""
HTTP probes.

HttpHealthProbe reads the application's ASP.NET health document:

    {
      "status": "Healthy",
      "totalDuration": "00:00:00.0421",
      "results": {
        "database": {"status": "Healthy", "description": "...", "duration": "..."},
        "servicebus": {"status": "Degraded", "description": "..."}
      }
    }

The document is validated while parsing; a missing or unknown status is a
ProbeError rather than a silent null.
"""

from __future__ import annotations

import time
from typing import Any

import requests
from loguru import logger

from zeus_ops.exceptions import ProbeError
from zeus_ops.monitoring.aggregator import Probe, ProbeResult
from zeus_ops.monitoring.models import DependencyStatus, HealthStatus

# Status codes that carry a health document (ASP.NET returns 503 when Unhealthy)
HEALTH_DOCUMENT_CODES = (200, 503)


def parse_health_document(payload: Any) -> tuple[HealthStatus, dict[str, DependencyStatus]]:
    """
    Parse a health document into an overall status and typed entries.

    Args:
        payload: Decoded JSON body

    Returns:
        Tuple of (overall_status, entry name -> DependencyStatus)

    Raises:
        ProbeError: If required fields are missing or hold unknown values
    """
    if not isinstance(payload, dict):
        raise ProbeError(f"Health document must be an object, got {type(payload).__name__}")
    if "status" not in payload:
        raise ProbeError("Health document has no 'status' field")

    overall = _parse_status(payload["status"], "status")

    results = payload.get("results", {})
    if results is None:
        results = {}
    if not isinstance(results, dict):
        raise ProbeError("Health document 'results' must be an object")

    entries: dict[str, DependencyStatus] = {}
    for name, entry in results.items():
        if not isinstance(entry, dict) or "status" not in entry:
            raise ProbeError(f"Health entry '{name}' has no 'status' field")
        entries[name] = DependencyStatus(
            status=_parse_status(entry["status"], f"results.{name}.status"),
            message=entry.get("description") or None,
        )

    return overall, entries


def _parse_status(value: Any, field_name: str) -> HealthStatus:
    if not isinstance(value, str):
        raise ProbeError(f"Health field '{field_name}' must be a string, got {value!r}")
    try:
        return HealthStatus.parse(value)
    except ValueError:
        raise ProbeError(f"Health field '{field_name}' has unknown status {value!r}") from None


def _failing_entries(entries: dict[str, DependencyStatus]) -> str | None:
    failing = [
        f"{name}={dep.status.value}"
        for name, dep in entries.items()
        if dep.status is not HealthStatus.HEALTHY
    ]
    return ", ".join(failing) if failing else None


class HttpHealthProbe(Probe):
    """
    Probe for an application health endpoint.

    Reports the endpoint's own overall status, with each health check entry
    attached as a component.
    """

    def __init__(
        self,
        name: str,
        url: str,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.name = name
        self.url = url
        self.timeout = timeout
        self._session = session or requests.Session()

    def check(self) -> ProbeResult:
        start = time.perf_counter()
        try:
            response = self._session.get(
                self.url, timeout=self.timeout, headers={"Accept": "application/json"}
            )
        except requests.exceptions.Timeout:
            raise ProbeError(f"Request to {self.url} timed out after {self.timeout}s") from None
        except requests.exceptions.RequestException as e:
            raise ProbeError(f"Request to {self.url} failed: {e}") from e
        latency_ms = round((time.perf_counter() - start) * 1000, 2)

        if response.status_code not in HEALTH_DOCUMENT_CODES:
            return ProbeResult(
                status=HealthStatus.UNHEALTHY,
                message=f"HTTP {response.status_code} from {self.url}",
                latency_ms=latency_ms,
            )

        try:
            payload = response.json()
        except ValueError:
            if response.status_code == 200:
                # Plain-text health endpoints ("Healthy") carry no entries
                text = response.text.strip()
                try:
                    status = HealthStatus.parse(text) if text else HealthStatus.HEALTHY
                except ValueError:
                    status = HealthStatus.HEALTHY
                return ProbeResult(status=status, latency_ms=latency_ms)
            raise ProbeError(f"HTTP {response.status_code} from {self.url} without health document")

        overall, entries = parse_health_document(payload)
        logger.debug(f"{self.name}: {overall.value} with {len(entries)} entries in {latency_ms}ms")
        return ProbeResult(
            status=overall,
            message=_failing_entries(entries),
            latency_ms=latency_ms,
            components=entries,
        )


class HttpEndpointProbe(Probe):
    """
    Probe for a plain HTTP endpoint.

    Healthy on 2xx within the latency budget, Degraded on 2xx above it,
    Unhealthy on any other status code.
    """

    def __init__(
        self,
        name: str,
        url: str,
        timeout: float = 10.0,
        latency_budget_ms: float | None = None,
        session: requests.Session | None = None,
    ):
        self.name = name
        self.url = url
        self.timeout = timeout
        self.latency_budget_ms = latency_budget_ms
        self._session = session or requests.Session()

    def check(self) -> ProbeResult:
        start = time.perf_counter()
        try:
            response = self._session.get(self.url, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise ProbeError(f"Request to {self.url} timed out after {self.timeout}s") from None
        except requests.exceptions.RequestException as e:
            raise ProbeError(f"Request to {self.url} failed: {e}") from e
        latency_ms = round((time.perf_counter() - start) * 1000, 2)

        if not 200 <= response.status_code < 300:
            return ProbeResult(
                status=HealthStatus.UNHEALTHY,
                message=f"HTTP {response.status_code}",
                latency_ms=latency_ms,
            )

        if self.latency_budget_ms is not None and latency_ms > self.latency_budget_ms:
            return ProbeResult(
                status=HealthStatus.DEGRADED,
                message=f"Slow response: {latency_ms:.0f}ms (budget {self.latency_budget_ms:.0f}ms)",
                latency_ms=latency_ms,
            )

        return ProbeResult(status=HealthStatus.HEALTHY, latency_ms=latency_ms)
