"""Health evaluation helpers for post-deployment health monitoring."""

from __future__ import annotations

from typing import Dict, Iterable, Optional, Tuple

from forge_deploy.entity.deployment import env_display_name
from forge_deploy.entity.health import SUBSERVICES_PER_INSTANCE, HealthSnapshot

WAITING_FOR_HEALTH_MESSAGE = "Waiting for health checks to report..."


def flagged_environments(health_flags: Dict[str, bool]) -> frozenset:
    return frozenset(env for env, flag in health_flags.items() if flag)


def filter_flagged(snapshot: HealthSnapshot, flagged: Iterable[str]) -> HealthSnapshot:
    """Keep only environments selected for health monitoring."""
    wanted = set(flagged)
    return {env: health for env, health in snapshot.items() if env in wanted}


def count_healthy(snapshot: HealthSnapshot) -> Tuple[int, int]:
    """Count healthy subservices.

    Returns:
        Tuple of (healthy subservice results, total instances * 2)
    """
    healthy = 0
    total = 0
    for health in snapshot.values():
        for instance in health.deployed_instances:
            healthy += instance.healthy_count
            total += SUBSERVICES_PER_INSTANCE
    return healthy, total


def has_health_changed(
    previous: Optional[HealthSnapshot], current: HealthSnapshot
) -> bool:
    """True on the first tick, when the environment count changes, or when any shared environment's ok flag flips."""
    if previous is None:
        return True
    if len(previous) != len(current):
        return True
    for env, health in current.items():
        before = previous.get(env)
        if before is not None and before.ok != health.ok:
            return True
    return False


def is_health_complete(snapshot: HealthSnapshot) -> bool:
    """Terminal once at least one environment is present and every one reports ok."""
    if not snapshot:
        return False
    return all(health.ok for health in snapshot.values())


def build_health_line(snapshot: HealthSnapshot) -> str:
    if not snapshot:
        return WAITING_FOR_HEALTH_MESSAGE
    healthy, total = count_healthy(snapshot)
    envs = ", ".join(env_display_name(env) for env in sorted(snapshot))
    if is_health_complete(snapshot):
        return f"Servers healthy [{envs}]: {healthy}/{total} services up"
    return f"Waiting for servers to be healthy [{envs}]: {healthy}/{total} services up"
