"""Formatters for final deployment and health reports."""

from __future__ import annotations

import re
from typing import List

from forge_deploy.entity.deployment import (
    BuildState,
    DeploymentSnapshot,
    env_display_name,
)
from forge_deploy.entity.health import (
    EnvironmentHealth,
    HealthSnapshot,
    InstanceHealth,
    Subservice,
    SubserviceResult,
)

OK_MARK = "✓"
FAIL_MARK = "✗"
MIXED_MARK = "⚠"
PENDING_MARK = "…"

STATUS_TEXT_STRIP = re.compile(r"[^a-zA-Z0-9. ]+")


def sanitize_status_text(text: str) -> str:
    """Strip everything but letters, digits, dots and spaces from upstream text."""
    return STATUS_TEXT_STRIP.sub("", text).strip()


def format_deployment_line(env: str, snapshot: DeploymentSnapshot) -> str:
    info = snapshot[env]
    if info.build_state == BuildState.PASSED:
        mark = OK_MARK
    elif info.build_state == BuildState.FAILED:
        mark = FAIL_MARK
    else:
        mark = PENDING_MARK
    return f"{mark} {info.describe(env)}"


def format_deployment_report(snapshot: DeploymentSnapshot) -> List[str]:
    """Format one line per environment, ordered by environment name."""
    return [format_deployment_line(env, snapshot) for env in sorted(snapshot)]


def format_subservice(subservice: Subservice, result: SubserviceResult) -> str:
    """Format one subservice result.

    Examples:
        ✓ Cardinal: cardinal.test.com - OK
        ✗ Nakama: nakama.test.com - FAIL 502 Bad Gateway
        ✗ Nakama: nakama.test.com - FAIL
    """
    if result.ok:
        return f"{OK_MARK} {subservice.label}: {result.host} - OK"
    detail = sanitize_status_text(result.result_str)
    if result.reachable:
        detail = f"{result.result_code} {detail}"
    return f"{FAIL_MARK} {subservice.label}: {result.host} - FAIL {detail}".rstrip()


def format_instance(instance: InstanceHealth) -> str:
    parts = [
        format_subservice(subservice, result)
        for subservice, result in instance.subservice_results.items()
    ]
    return f"  {instance.instance}) " + " | ".join(parts)


def format_environment_header(env: str, health: EnvironmentHealth) -> str:
    if health.ok:
        mark = OK_MARK
    elif health.offline:
        mark = FAIL_MARK
    else:
        mark = MIXED_MARK
    header = f"{mark} Health: [{env_display_name(env)}]"
    count = len(health.deployed_instances)
    if count == 0:
        return f"{header} ** No deployed instances found **"
    return f"{header} ({count} deployed instances)"


def format_environment_health(env: str, health: EnvironmentHealth) -> List[str]:
    """Format an environment header, then instances grouped under region lines."""
    lines = [format_environment_header(env, health)]
    current_region = None
    for instance in health.deployed_instances:
        if instance.region != current_region:
            current_region = instance.region
            lines.append(f"• {current_region}")
        lines.append(format_instance(instance))
    return lines


def format_health_report(snapshot: HealthSnapshot) -> List[str]:
    lines: List[str] = []
    for env in sorted(snapshot):
        lines.extend(format_environment_health(env, snapshot[env]))
    return lines
