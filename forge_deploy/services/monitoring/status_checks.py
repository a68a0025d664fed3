"""Status evaluation helpers for deployment status monitoring."""

from __future__ import annotations

from typing import Dict, Optional

from forge_deploy.entity.deployment import (
    BuildState,
    DeploymentInfo,
    DeploymentSnapshot,
    OperationKind,
    env_display_name,
)

NOT_DEPLOYED_MESSAGE = "** Project has not been deployed **"

OPERATION_TITLES = {
    OperationKind.DEPLOY: "Deploying",
    OperationKind.DESTROY: "Destroying",
    OperationKind.RESET: "Resetting",
}
FORCE_DEPLOY_TITLE = "Force Deploying"

# (operation kind) -> build states after which instances should be health checked
HEALTH_CHECK_STATES = {
    OperationKind.DEPLOY: frozenset({BuildState.PASSED}),
    OperationKind.DESTROY: frozenset({BuildState.FAILED}),
    OperationKind.RESET: frozenset({BuildState.PASSED, BuildState.FAILED}),
}


def operation_title(kind: OperationKind, force: bool = False) -> str:
    """Title used in progress lines, e.g. "Deploying"."""
    if force and kind == OperationKind.DEPLOY:
        return FORCE_DEPLOY_TITLE
    return OPERATION_TITLES[kind]


def should_check_health(info: DeploymentInfo) -> bool:
    """Check if an environment's instances should be health checked.

    A passed deploy, a failed destroy (servers may still be up) and a finished
    reset all leave instances worth checking.
    """
    return info.build_state in HEALTH_CHECK_STATES.get(info.operation_kind, frozenset())


def compute_health_flags(snapshot: DeploymentSnapshot) -> Dict[str, bool]:
    return {env: should_check_health(info) for env, info in snapshot.items()}


def has_status_changed(
    previous: Optional[DeploymentSnapshot], current: DeploymentSnapshot
) -> bool:
    """Check if the snapshot differs from the previous one in a way worth reporting.

    Args:
        previous: Snapshot from the previous tick, None on the first tick
        current: Snapshot from this tick

    Returns:
        True on the first tick, when the environment count changes, or when
        any environment present in both has a different build state
    """
    if previous is None:
        return True
    if len(previous) != len(current):
        return True
    for env, info in current.items():
        before = previous.get(env)
        if before is not None and before.build_state != info.build_state:
            return True
    return False


def is_deployment_complete(snapshot: DeploymentSnapshot) -> bool:
    """Terminal once at least one environment exists and all have passed or failed."""
    if not snapshot:
        return False
    return all(info.build_state.is_terminal for info in snapshot.values())


def all_builds_passed(snapshot: DeploymentSnapshot) -> bool:
    return bool(snapshot) and all(
        info.build_state == BuildState.PASSED for info in snapshot.values()
    )


def build_status_line(title: str, snapshot: DeploymentSnapshot) -> str:
    """Build the representative progress line for one tick.

    Only the first environment (by name) is reported.
    """
    if not snapshot:
        return NOT_DEPLOYED_MESSAGE
    env = sorted(snapshot)[0]
    return f"{title} [{env_display_name(env)}]: {snapshot[env].build_state.value}"
