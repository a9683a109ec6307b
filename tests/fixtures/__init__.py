"""Test fixtures: deterministic probes, metric sources and clocks."""

from tests.fixtures.probes import (
    FakeClock,
    ScriptedProbe,
    StaticMetricSource,
    failing_probe,
    static_probe,
)

__all__ = [
    "FakeClock",
    "ScriptedProbe",
    "StaticMetricSource",
    "failing_probe",
    "static_probe",
]
