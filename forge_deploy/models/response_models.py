"""
Response envelope handling for the control-plane API.

Every payload is wrapped as ``{"data": ...}``. A missing or null ``data`` key
means "nothing to report" and is returned as an empty mapping; anything that
is not JSON, or a ``data`` value of the wrong shape, is a malformed response.
"""

import json
import logging
from typing import Any, Dict, List

from pydantic import BaseModel, Field, ValidationError

from common.exception.exceptions import MalformedResponseError

logger = logging.getLogger(__name__)


class DeploymentPreview(BaseModel):
    """Preview of what an operation would do, shown before confirming it."""

    org_name: str = Field(default="", description="Organization name")
    org_slug: str = Field(default="", description="Organization slug")
    project_name: str = Field(default="", description="Project name")
    project_slug: str = Field(default="", description="Project slug")
    executor_name: str = Field(default="", description="Who will run the operation")
    deployment_type: str = Field(default="", description="Operation kind")
    tick_rate: int = Field(default=0, description="Configured tick rate")
    regions: List[str] = Field(default_factory=list, description="Target regions")


def _load_json(body: bytes) -> Any:
    try:
        return json.loads(body) if body else {}
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedResponseError(f"Failed to parse response body: {e}") from e


def extract_data(body: bytes) -> Dict[str, Any]:
    """Return the ``data`` object of an enveloped response.

    Returns:
        The data mapping, or an empty dict when ``data`` is missing or null

    Raises:
        MalformedResponseError: If the body is not a JSON object or data is not an object
    """
    payload = _load_json(body)
    if not isinstance(payload, dict):
        raise MalformedResponseError("Response is not a JSON object")

    data = payload.get("data")
    if data is None:
        logger.debug("Response carried no data field")
        return {}
    if not isinstance(data, dict):
        raise MalformedResponseError(
            f"Expected data to be an object, got {type(data).__name__}"
        )
    return data


def parse_deployment_preview(body: bytes) -> DeploymentPreview:
    """Parse a preview response; unlike status responses, data is required here."""
    data = extract_data(body)
    if not data:
        raise MalformedResponseError("Missing data field in response")
    try:
        return DeploymentPreview.model_validate(data)
    except ValidationError as e:
        raise MalformedResponseError(f"Invalid deployment preview: {e}") from e
