#!/usr/bin/env python3
"""
Entry point script to run a Forge deployment session.

This script should be run from the project root directory:
    python run.py

Environment variables:
    FORGE_OPERATION: deploy, destroy, reset or status (default: status)
    FORGE_ORG_ID: Organization ID (required except for status)
    FORGE_PROJECT_ID: Project ID (required)
    FORGE_FORCE: Force a deploy (default: false)
    FORGE_LOG_FILE: Optional file to append logs to
    FORGE_*: Client settings, see common/config/config.py
"""
import asyncio
import logging
import os
import signal
import sys

from common.config.config import ClientConfig, get_env
from common.exception.exceptions import ForgeClientError, UnauthenticatedError
from forge_deploy.entity.deployment import OperationKind
from forge_deploy.services.cloud_api_service import CloudAPIService
from forge_deploy.services.deployment.service import DeploymentService, ReportOutcome
from forge_deploy.services.streaming.progress_sink import QueueProgressSink

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    handlers: list = [logging.StreamHandler(sys.stderr)]
    log_file = os.getenv("FORGE_LOG_FILE")
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="a"))
    level = os.getenv("FORGE_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(level=level, format=log_format, handlers=handlers)


async def render_progress(sink: QueueProgressSink) -> None:
    """Print progress lines until the sink completes."""
    async for event in sink.events():
        if event.is_complete:
            print("Deployment completed!" if event.success else "Deployment did not complete.")
        else:
            print(event.message)


async def main() -> int:
    config = ClientConfig.from_env()
    operation = os.getenv("FORGE_OPERATION", "status").lower()
    project_id = get_env("FORGE_PROJECT_ID")
    if operation != "status":
        kind = OperationKind(operation)
        org_id = get_env("FORGE_ORG_ID")
        force = os.getenv("FORGE_FORCE", "false").lower() == "true"

    sink = QueueProgressSink()
    async with CloudAPIService(config) as api:
        service = DeploymentService(api, config, sink)

        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, service.cancel)
        except NotImplementedError:
            logger.debug("Signal handlers not supported on this platform")

        try:
            if operation == "status":
                report = await service.status(project_id)
            else:
                renderer = asyncio.create_task(render_progress(sink))
                try:
                    report = await service.run_operation(org_id, project_id, kind, force)
                finally:
                    # The renderer only stops on completion.
                    if not sink.completed:
                        sink.complete(False)
                    await renderer
        finally:
            try:
                loop.remove_signal_handler(signal.SIGINT)
            except NotImplementedError:
                pass

    print()
    for line in report.lines:
        print(line)
    if report.outcome == ReportOutcome.CANCELED:
        return 130
    return 0 if report.succeeded else 1


if __name__ == "__main__":
    configure_logging()
    try:
        sys.exit(asyncio.run(main()))
    except UnauthenticatedError as e:
        print(f"{e}", file=sys.stderr)
        sys.exit(2)
    except ForgeClientError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
