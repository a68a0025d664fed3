"""
Forge deploy services package.

Contains the control-plane API client, the monitoring pollers and the
deployment session service.
"""

from forge_deploy.services.cloud_api_service import CloudAPIService
from forge_deploy.services.deployment.service import (
    DeploymentReport,
    DeploymentService,
    ReportOutcome,
)

__all__ = ["CloudAPIService", "DeploymentService", "DeploymentReport", "ReportOutcome"]
