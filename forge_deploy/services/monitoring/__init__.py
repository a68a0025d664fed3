"""Deployment monitoring.

Deployment status polling followed, where a health flag is set, by instance
health polling. Both report through a ProgressSink and stop on the session's
CancellationToken.
"""

from __future__ import annotations

from .deployment_monitor import (
    DeploymentStatusPoller,
    DeploymentStatusResult,
    MonitorOutcome,
)
from .health_monitor import HealthStatusPoller, HealthStatusResult
from .health_checks import (
    build_health_line,
    count_healthy,
    filter_flagged,
    has_health_changed,
    is_health_complete,
)
from .status_checks import (
    all_builds_passed,
    build_status_line,
    compute_health_flags,
    has_status_changed,
    is_deployment_complete,
    operation_title,
    should_check_health,
)

__all__ = [
    "DeploymentStatusPoller",
    "DeploymentStatusResult",
    "MonitorOutcome",
    "HealthStatusPoller",
    "HealthStatusResult",
    "build_health_line",
    "count_healthy",
    "filter_flagged",
    "has_health_changed",
    "is_health_complete",
    "all_builds_passed",
    "build_status_line",
    "compute_health_flags",
    "has_status_changed",
    "is_deployment_complete",
    "operation_title",
    "should_check_health",
]
