from forge_deploy.services.deployment.service import (
    DeploymentReport,
    DeploymentService,
    ReportOutcome,
)

__all__ = ["DeploymentReport", "DeploymentService", "ReportOutcome"]
