from forge_deploy.models.response_models import (
    DeploymentPreview,
    extract_data,
    parse_deployment_preview,
)

__all__ = ["DeploymentPreview", "extract_data", "parse_deployment_preview"]
