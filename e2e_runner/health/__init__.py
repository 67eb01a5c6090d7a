"""Service health: the startup readiness gate and the always-on monitor."""

from e2e_runner.health.gate import HealthGate, HealthGateTimeoutError
from e2e_runner.health.monitor import HealthMonitor
from e2e_runner.health.targets import (
    HealthCheckTarget,
    ProbeResult,
    build_targets,
    probe,
    probe_all,
)

__all__ = [
    "HealthCheckTarget",
    "HealthGate",
    "HealthGateTimeoutError",
    "HealthMonitor",
    "ProbeResult",
    "build_targets",
    "probe",
    "probe_all",
]
