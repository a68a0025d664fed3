"""Instance health polling for environments flagged by deployment monitoring."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from common.exception.exceptions import MonitoringTimeoutError, OperationCanceledError
from common.utils.cancellation import CancellationToken
from forge_deploy.entity.health import HealthSnapshot
from forge_deploy.services.cloud_api_service import CloudAPIService
from forge_deploy.services.monitoring.deployment_monitor import MonitorOutcome
from forge_deploy.services.monitoring.health_checks import (
    build_health_line,
    count_healthy,
    filter_flagged,
    flagged_environments,
    has_health_changed,
    is_health_complete,
)
from forge_deploy.services.streaming.progress_sink import ProgressSink

logger = logging.getLogger(__name__)

DEFAULT_HEALTH_POLL_INTERVAL = 5.0


@dataclass
class HealthStatusResult:
    """Final state of a health monitoring run."""

    outcome: MonitorOutcome
    snapshot: HealthSnapshot = field(default_factory=dict)
    healthy: int = 0
    total: int = 0
    checks: int = 0


class HealthStatusPoller:
    """Polls instance health until every flagged environment reports ok.

    Environments without a health flag are dropped from each response.
    """

    def __init__(
        self,
        api: CloudAPIService,
        project_id: str,
        health_flags: Dict[str, bool],
        sink: ProgressSink,
        cancel_token: CancellationToken,
        interval: float = DEFAULT_HEALTH_POLL_INTERVAL,
        max_checks: int = 0,
    ):
        self.flagged = flagged_environments(health_flags)
        if not self.flagged:
            raise ValueError("No environments are flagged for health monitoring")
        self.api = api
        self.project_id = project_id
        self.sink = sink
        self.cancel_token = cancel_token
        self.interval = interval
        self.max_checks = max_checks

    async def run(self) -> HealthStatusResult:
        logger.info(
            f"Starting health monitoring: project_id={self.project_id}, "
            f"environments={sorted(self.flagged)}"
        )
        previous: Optional[HealthSnapshot] = None
        check_num = 0

        try:
            while True:
                response = await self.api.get_health_status(
                    self.project_id, cancel_token=self.cancel_token
                )
                snapshot = filter_flagged(response, self.flagged)
                check_num += 1

                healthy, total = count_healthy(snapshot)
                logger.debug(f"Health check {check_num}: {healthy}/{total} services up")

                if has_health_changed(previous, snapshot):
                    self.sink.push(build_health_line(snapshot))
                previous = snapshot

                if is_health_complete(snapshot):
                    logger.info(
                        f"All flagged environments healthy after {check_num} checks: "
                        f"project_id={self.project_id}"
                    )
                    return HealthStatusResult(
                        outcome=MonitorOutcome.SUCCEEDED,
                        snapshot=snapshot,
                        healthy=healthy,
                        total=total,
                        checks=check_num,
                    )

                if self.max_checks and check_num >= self.max_checks:
                    raise MonitoringTimeoutError("Health", self.max_checks, self.interval)

                await self.cancel_token.wait(self.interval)

        except OperationCanceledError:
            logger.info(f"Health monitoring canceled: project_id={self.project_id}")
            self.sink.push("Health check canceled")
            self.sink.complete(False)
            healthy, total = count_healthy(previous or {})
            return HealthStatusResult(
                outcome=MonitorOutcome.CANCELED,
                snapshot=previous or {},
                healthy=healthy,
                total=total,
                checks=check_num,
            )
        except (Exception, asyncio.CancelledError) as e:
            logger.error(f"Error in health monitoring: {e!r}")
            self.sink.complete(False)
            raise
