"""
Forge deploy entities package.

Typed records for deployment status and instance health responses.
"""

from forge_deploy.entity.deployment import (
    BuildState,
    DeploymentInfo,
    DeploymentSnapshot,
    OperationKind,
    env_display_name,
    parse_deployment_snapshot,
)
from forge_deploy.entity.health import (
    EnvironmentHealth,
    HealthSnapshot,
    InstanceHealth,
    Subservice,
    SubserviceResult,
    parse_health_snapshot,
)

__all__ = [
    "BuildState",
    "DeploymentInfo",
    "DeploymentSnapshot",
    "OperationKind",
    "env_display_name",
    "parse_deployment_snapshot",
    "EnvironmentHealth",
    "HealthSnapshot",
    "InstanceHealth",
    "Subservice",
    "SubserviceResult",
    "parse_health_snapshot",
]
