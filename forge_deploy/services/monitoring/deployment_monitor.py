"""Deployment status polling until every environment reaches a terminal build state."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from common.exception.exceptions import MonitoringTimeoutError, OperationCanceledError
from common.utils.cancellation import CancellationToken
from forge_deploy.entity.deployment import DeploymentSnapshot, OperationKind
from forge_deploy.services.cloud_api_service import CloudAPIService
from forge_deploy.services.monitoring.status_checks import (
    build_status_line,
    compute_health_flags,
    has_status_changed,
    is_deployment_complete,
    operation_title,
)
from forge_deploy.services.streaming.progress_sink import ProgressSink

logger = logging.getLogger(__name__)

DEFAULT_STATUS_POLL_INTERVAL = 3.0


class MonitorOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    CANCELED = "canceled"


@dataclass
class DeploymentStatusResult:
    """Final state of a deployment status monitoring run."""

    outcome: MonitorOutcome
    snapshot: DeploymentSnapshot = field(default_factory=dict)
    health_flags: Dict[str, bool] = field(default_factory=dict)
    checks: int = 0

    @property
    def needs_health_check(self) -> bool:
        return any(self.health_flags.values())


class DeploymentStatusPoller:
    """Polls deployment status until all environments have passed or failed.

    Fetches immediately, then once per interval. A progress line is pushed on
    the first tick and whenever the environment set or a build state changes.
    Fetch errors end the run and propagate; retrying is the API client's job.
    """

    def __init__(
        self,
        api: CloudAPIService,
        project_id: str,
        sink: ProgressSink,
        cancel_token: CancellationToken,
        kind: OperationKind,
        force: bool = False,
        interval: float = DEFAULT_STATUS_POLL_INTERVAL,
        max_checks: int = 0,
    ):
        self.api = api
        self.project_id = project_id
        self.sink = sink
        self.cancel_token = cancel_token
        self.title = operation_title(kind, force)
        self.interval = interval
        self.max_checks = max_checks

    async def run(self) -> DeploymentStatusResult:
        logger.info(f"Starting deployment status monitoring: project_id={self.project_id}")
        previous: Optional[DeploymentSnapshot] = None
        check_num = 0

        try:
            while True:
                snapshot = await self.api.get_deployment_status(
                    self.project_id, cancel_token=self.cancel_token
                )
                check_num += 1

                if has_status_changed(previous, snapshot):
                    self.sink.push(build_status_line(self.title, snapshot))
                previous = snapshot

                if is_deployment_complete(snapshot):
                    flags = compute_health_flags(snapshot)
                    logger.info(
                        f"Deployment status terminal after {check_num} checks: "
                        f"project_id={self.project_id}, health_flags={flags}"
                    )
                    return DeploymentStatusResult(
                        outcome=MonitorOutcome.SUCCEEDED,
                        snapshot=snapshot,
                        health_flags=flags,
                        checks=check_num,
                    )

                if self.max_checks and check_num >= self.max_checks:
                    raise MonitoringTimeoutError(
                        "Deployment status", self.max_checks, self.interval
                    )

                await self.cancel_token.wait(self.interval)

        except OperationCanceledError:
            logger.info(f"Deployment status monitoring canceled: project_id={self.project_id}")
            self.sink.push(f"{self.title} canceled")
            self.sink.complete(False)
            return DeploymentStatusResult(
                outcome=MonitorOutcome.CANCELED,
                snapshot=previous or {},
                health_flags=compute_health_flags(previous or {}),
                checks=check_num,
            )
        except (Exception, asyncio.CancelledError) as e:
            logger.error(f"Error in deployment status monitoring: {e!r}")
            self.sink.complete(False)
            raise
