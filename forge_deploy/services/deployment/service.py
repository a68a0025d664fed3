"""Deployment service for running an operation and following it to completion."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from common.config.config import ClientConfig
from common.exception.exceptions import OperationCanceledError
from common.utils.cancellation import CancellationToken
from forge_deploy.entity.deployment import DeploymentSnapshot, OperationKind
from forge_deploy.entity.health import HealthSnapshot
from forge_deploy.formatters.report_formatters import (
    format_deployment_report,
    format_health_report,
)
from forge_deploy.models.response_models import DeploymentPreview
from forge_deploy.services.cloud_api_service import CloudAPIService
from forge_deploy.services.monitoring.deployment_monitor import (
    DeploymentStatusPoller,
    MonitorOutcome,
)
from forge_deploy.services.monitoring.health_checks import (
    filter_flagged,
    flagged_environments,
    is_health_complete,
)
from forge_deploy.services.monitoring.health_monitor import HealthStatusPoller
from forge_deploy.services.monitoring.status_checks import (
    NOT_DEPLOYED_MESSAGE,
    all_builds_passed,
    compute_health_flags,
    operation_title,
)
from forge_deploy.services.streaming.progress_sink import NullProgressSink, ProgressSink

logger = logging.getLogger(__name__)

STATUS_CHECK_TITLE = "Status check"


class ReportOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


@dataclass
class DeploymentReport:
    """Result of a deployment session or a one-shot status check."""

    outcome: ReportOutcome
    deployment: DeploymentSnapshot = field(default_factory=dict)
    health_flags: Dict[str, bool] = field(default_factory=dict)
    health: Optional[HealthSnapshot] = None
    lines: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.outcome == ReportOutcome.SUCCEEDED


class DeploymentService:
    """Service for triggering operations and monitoring them to completion.

    One instance drives one session: a single CancellationToken is shared by
    the trigger call, both pollers and every retry wait, and ``cancel`` stops
    all of them.
    """

    def __init__(
        self,
        api: CloudAPIService,
        config: Optional[ClientConfig] = None,
        sink: Optional[ProgressSink] = None,
    ):
        """Initialize the deployment service.

        Args:
            api: Control-plane API client
            config: Polling settings (defaults to the API client's config)
            sink: Progress sink; progress is only logged when omitted
        """
        self.api = api
        self.config = config or api.config
        self.sink = sink or NullProgressSink()
        self.cancel_token = CancellationToken()

    def cancel(self) -> None:
        self.cancel_token.cancel()

    async def preview(
        self, org_id: str, project_id: str, kind: OperationKind, force: bool = False
    ) -> DeploymentPreview:
        """Preview an operation without running it."""
        return await self.api.preview_deployment(
            org_id, project_id, kind, force, cancel_token=self.cancel_token
        )

    def _canceled_report(
        self,
        title: str,
        deployment: DeploymentSnapshot,
        health_flags: Dict[str, bool],
        health: Optional[HealthSnapshot] = None,
    ) -> DeploymentReport:
        """Report for a canceled session; names the canceled step when nothing was fetched."""
        if deployment:
            lines = self._build_lines(deployment, health)
        else:
            lines = [f"{title} canceled"]
        return DeploymentReport(
            outcome=ReportOutcome.CANCELED,
            deployment=deployment,
            health_flags=health_flags,
            health=health,
            lines=lines,
        )

    @staticmethod
    def _build_lines(
        deployment: DeploymentSnapshot, health: Optional[HealthSnapshot]
    ) -> List[str]:
        if not deployment:
            return [NOT_DEPLOYED_MESSAGE]
        lines = format_deployment_report(deployment)
        if health is not None:
            lines.extend(format_health_report(health))
        return lines

    async def _trigger(
        self, org_id: str, project_id: str, kind: OperationKind, force: bool
    ) -> bool:
        """Trigger the operation. Returns False if the session was canceled first."""
        try:
            await self.api.trigger_operation(
                org_id, project_id, kind, force, cancel_token=self.cancel_token
            )
        except OperationCanceledError:
            self.sink.push(f"{operation_title(kind, force)} canceled")
            self.sink.complete(False)
            return False
        except Exception as e:
            logger.error(f"Failed to {kind.value} project {project_id}: {e!r}")
            self.sink.complete(False)
            raise
        return True

    async def run_operation(
        self,
        org_id: str,
        project_id: str,
        kind: OperationKind,
        force: bool = False,
    ) -> DeploymentReport:
        """Trigger an operation and monitor it until it is finished.

        This method:
        1. Triggers the operation on the control plane
        2. Polls deployment status until every environment passed or failed
        3. Polls instance health for flagged environments until all are ok
        4. Returns the final report and completes the progress sink

        Args:
            org_id: Organization ID
            project_id: Project ID
            kind: Operation to run
            force: Force a deploy even if nothing changed

        Returns:
            DeploymentReport; outcome is canceled if ``cancel`` was called

        Raises:
            ForgeClientError: Any fatal request or monitoring error, after the
                sink has been completed with success=False
        """
        logger.info(
            f"Running {kind.value} for project {project_id} (org={org_id}, force={force})"
        )
        title = operation_title(kind, force)
        if not await self._trigger(org_id, project_id, kind, force):
            return self._canceled_report(title, {}, {})

        self.sink.push(f"Waiting for {kind.value} to complete...")
        status_poller = DeploymentStatusPoller(
            api=self.api,
            project_id=project_id,
            sink=self.sink,
            cancel_token=self.cancel_token,
            kind=kind,
            force=force,
            interval=self.config.status_poll_interval,
            max_checks=self.config.max_status_checks,
        )
        status_result = await asyncio.create_task(status_poller.run())
        if status_result.outcome == MonitorOutcome.CANCELED:
            return self._canceled_report(
                title, status_result.snapshot, status_result.health_flags
            )

        health: Optional[HealthSnapshot] = None
        if status_result.needs_health_check:
            if kind == OperationKind.DESTROY:
                self.sink.push("Waiting for remaining servers to report health...")
            else:
                self.sink.push("Waiting for servers to be healthy...")
            health_poller = HealthStatusPoller(
                api=self.api,
                project_id=project_id,
                health_flags=status_result.health_flags,
                sink=self.sink,
                cancel_token=self.cancel_token,
                interval=self.config.health_poll_interval,
                max_checks=self.config.max_health_checks,
            )
            health_result = await asyncio.create_task(health_poller.run())
            if health_result.outcome == MonitorOutcome.CANCELED:
                return self._canceled_report(
                    title,
                    status_result.snapshot,
                    status_result.health_flags,
                    health_result.snapshot,
                )
            health = health_result.snapshot

        outcome = (
            ReportOutcome.SUCCEEDED
            if all_builds_passed(status_result.snapshot)
            else ReportOutcome.FAILED
        )
        logger.info(f"{kind.value} for project {project_id} finished: {outcome.value}")
        self.sink.complete(outcome == ReportOutcome.SUCCEEDED)
        return DeploymentReport(
            outcome=outcome,
            deployment=status_result.snapshot,
            health_flags=status_result.health_flags,
            health=health,
            lines=self._build_lines(status_result.snapshot, health),
        )

    async def status(self, project_id: str) -> DeploymentReport:
        """Fetch deployment status once and, where flagged, instance health once.

        No polling and no progress lines; the outcome is succeeded only when
        every environment passed and every flagged environment is healthy.
        """
        try:
            deployment = await self.api.get_deployment_status(
                project_id, cancel_token=self.cancel_token
            )
            flags = compute_health_flags(deployment)

            health: Optional[HealthSnapshot] = None
            if any(flags.values()):
                response = await self.api.get_health_status(
                    project_id, cancel_token=self.cancel_token
                )
                health = filter_flagged(response, flagged_environments(flags))
        except OperationCanceledError:
            return self._canceled_report(STATUS_CHECK_TITLE, {}, {})

        healthy = health is None or is_health_complete(health)
        outcome = (
            ReportOutcome.SUCCEEDED
            if all_builds_passed(deployment) and healthy
            else ReportOutcome.FAILED
        )
        return DeploymentReport(
            outcome=outcome,
            deployment=deployment,
            health_flags=flags,
            health=health,
            lines=self._build_lines(deployment, health),
        )
