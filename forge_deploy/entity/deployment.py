"""
Deployment status records returned by the control plane.

A DeploymentSnapshot maps environment name to the DeploymentInfo of the most
recent operation run against that environment.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from common.exception.exceptions import MalformedResponseError

ENV_DISPLAY_NAMES = {
    "dev": "PREVIEW",
    "prod": "LIVE",
}

EXECUTION_TIME_FORMAT = "%Y-%m-%d %H:%M %Z"


class OperationKind(str, Enum):
    """Operation triggered against a project."""

    DEPLOY = "deploy"
    DESTROY = "destroy"
    RESET = "reset"


class BuildState(str, Enum):
    """Build state reported for one deployment attempt."""

    CREATING = "creating"
    SCHEDULED = "scheduled"
    RUNNING = "running"
    PASSED = "passed"
    FAILING = "failing"
    FAILED = "failed"
    BLOCKED = "blocked"
    CANCELING = "canceling"
    CANCELED = "canceled"
    OTHER = "other"

    @classmethod
    def _missing_(cls, value: object) -> "BuildState":
        if isinstance(value, str):
            lowered = value.lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return cls.OTHER

    @property
    def is_terminal(self) -> bool:
        return self in (BuildState.PASSED, BuildState.FAILED)


class DeploymentInfo(BaseModel):
    """Status of the latest operation in one environment."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    project_id: Optional[str] = Field(default=None, description="Owning project ID")
    operation_kind: OperationKind = Field(
        ..., alias="type", description="Operation that produced this build"
    )
    executor_id: str = Field(..., description="ID of the user who ran the operation")
    executor_name: Optional[str] = Field(
        default=None, description="Display name of the executor, when known"
    )
    execution_time: datetime = Field(..., description="When the operation was triggered")
    build_start_time: Optional[datetime] = Field(default=None)
    build_end_time: Optional[datetime] = Field(default=None)
    build_number: Optional[int] = Field(default=None)
    build_state: BuildState = Field(..., description="Remote build state")

    @property
    def executor(self) -> str:
        return self.executor_name or self.executor_id

    def describe(self, env: str) -> str:
        """One-line human description, e.g. for status reports."""
        line = (
            f"[{env_display_name(env)}] {self.operation_kind.value} "
            f"{self.build_state.value} at "
            f"{self.execution_time.strftime(EXECUTION_TIME_FORMAT).strip()} "
            f"by {self.executor}"
        )
        if self.build_number is not None:
            line += f" (build #{self.build_number})"
        return line


DeploymentSnapshot = Dict[str, DeploymentInfo]


def env_display_name(env: str) -> str:
    """Map an environment slot to the name shown to operators."""
    return ENV_DISPLAY_NAMES.get(env, env.upper())


def parse_deployment_snapshot(
    data: Dict[str, Any], project_id: Optional[str] = None
) -> DeploymentSnapshot:
    """Validate the ``data`` object of a deployment status response.

    Args:
        data: Mapping of environment name to raw deployment info
        project_id: Project being monitored; entries for another project are rejected

    Returns:
        DeploymentSnapshot keyed by environment name

    Raises:
        MalformedResponseError: If any entry fails validation or belongs to another project
    """
    snapshot: DeploymentSnapshot = {}
    for env, raw in data.items():
        if not isinstance(raw, dict):
            raise MalformedResponseError(
                f"Failed to unmarshal response for environment {env}"
            )
        try:
            info = DeploymentInfo.model_validate(raw)
        except ValidationError as e:
            raise MalformedResponseError(
                f"Invalid deployment status for environment {env}: {e}"
            ) from e
        if project_id and info.project_id and info.project_id != project_id:
            raise MalformedResponseError(
                f"Deployment status does not match project id {project_id}"
            )
        snapshot[env] = info
    return snapshot
