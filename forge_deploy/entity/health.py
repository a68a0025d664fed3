"""
Health check records returned by the control plane.

Every deployed instance reports exactly two subservices: the primary compute
process ("cardinal" on the wire) and the session gateway ("nakama").
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from common.exception.exceptions import MalformedResponseError

SUBSERVICES_PER_INSTANCE = 2


class Subservice(str, Enum):
    PRIMARY_COMPUTE = "primary-compute"
    SESSION_GATEWAY = "session-gateway"

    @property
    def label(self) -> str:
        return SUBSERVICE_LABELS[self]


SUBSERVICE_LABELS = {
    Subservice.PRIMARY_COMPUTE: "Cardinal",
    Subservice.SESSION_GATEWAY: "Nakama",
}


class SubserviceResult(BaseModel):
    """Outcome of one subservice health probe."""

    model_config = ConfigDict(extra="ignore")

    url: str = Field(default="", description="Probed health endpoint")
    ok: bool = Field(..., description="Whether the probe succeeded")
    result_code: int = Field(default=0, description="HTTP status, 0 if unreachable")
    result_str: str = Field(default="", description="Upstream status text")

    @property
    def reachable(self) -> bool:
        return self.result_code != 0

    @property
    def host(self) -> str:
        return urlparse(self.url).netloc or self.url


class InstanceHealth(BaseModel):
    """Health of one deployed instance in one region."""

    model_config = ConfigDict(extra="ignore")

    region: str
    instance: int
    cardinal: SubserviceResult
    nakama: SubserviceResult

    @property
    def subservice_results(self) -> Dict[Subservice, SubserviceResult]:
        return {
            Subservice.PRIMARY_COMPUTE: self.cardinal,
            Subservice.SESSION_GATEWAY: self.nakama,
        }

    @property
    def healthy_count(self) -> int:
        return sum(1 for result in self.subservice_results.values() if result.ok)


class EnvironmentHealth(BaseModel):
    """Aggregated health of one environment.

    ``ok`` is set when every instance is up, ``offline`` when every instance
    is down; neither is set for mixed results.
    """

    model_config = ConfigDict(extra="ignore")

    ok: bool = False
    offline: bool = False
    deployed_instances: List[InstanceHealth] = Field(...)


HealthSnapshot = Dict[str, EnvironmentHealth]


def parse_health_snapshot(data: Dict[str, Any]) -> HealthSnapshot:
    """Validate the ``data`` object of a health response.

    Raises:
        MalformedResponseError: If any environment entry fails validation
    """
    snapshot: HealthSnapshot = {}
    for env, raw in data.items():
        if not isinstance(raw, dict):
            raise MalformedResponseError(
                f"Failed to unmarshal response for environment {env}"
            )
        try:
            snapshot[env] = EnvironmentHealth.model_validate(raw)
        except ValidationError as e:
            raise MalformedResponseError(
                f"Invalid health data for environment {env}: {e}"
            ) from e
    return snapshot
