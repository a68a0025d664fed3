"""
Configuration for the Forge deploy client.

Values come from environment variables (optionally loaded from a .env file).
ClientConfig is built explicitly and handed to the services that need it;
nothing here is mutated after construction.
"""

import os
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_API_URL = "https://forge.world.dev"
DEFAULT_AUTH_SCHEME = "Bearer"


def get_env(key: str) -> str:
    """Get environment variable or raise if not found."""
    value = os.getenv(key)
    if value is None:
        raise ValueError(f"{key} not found")
    return value


def _get_float(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}")


def _get_int(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}")


class ClientConfig:
    """Deploy client settings.

    Polling caps of 0 mean "poll until terminal".
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        auth_token: Optional[str] = None,
        auth_scheme: str = DEFAULT_AUTH_SCHEME,
        request_timeout: float = 30.0,
        max_retries: int = 5,
        retry_base_delay: float = 0.1,
        status_poll_interval: float = 3.0,
        health_poll_interval: float = 5.0,
        max_status_checks: int = 0,
        max_health_checks: int = 0,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.api_url = api_url.rstrip("/")
        self.auth_token = auth_token
        self.auth_scheme = auth_scheme
        self.request_timeout = request_timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.status_poll_interval = status_poll_interval
        self.health_poll_interval = health_poll_interval
        self.max_status_checks = max_status_checks
        self.max_health_checks = max_health_checks

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Build configuration from FORGE_* environment variables.

        Raises:
            ValueError: If FORGE_AUTH_TOKEN is missing or a number is invalid
        """
        return cls(
            api_url=os.getenv("FORGE_API_URL", DEFAULT_API_URL),
            auth_token=get_env("FORGE_AUTH_TOKEN"),
            auth_scheme=os.getenv("FORGE_AUTH_SCHEME", DEFAULT_AUTH_SCHEME),
            request_timeout=_get_float("FORGE_REQUEST_TIMEOUT", 30.0),
            max_retries=_get_int("FORGE_MAX_RETRIES", 5),
            retry_base_delay=_get_float("FORGE_RETRY_BASE_DELAY", 0.1),
            status_poll_interval=_get_float("FORGE_STATUS_POLL_INTERVAL", 3.0),
            health_poll_interval=_get_float("FORGE_HEALTH_POLL_INTERVAL", 5.0),
            max_status_checks=_get_int("FORGE_MAX_STATUS_CHECKS", 0),
            max_health_checks=_get_int("FORGE_MAX_HEALTH_CHECKS", 0),
        )
