"""Pytest configuration for tests.

Sets up Python path and shared fixtures for all tests.
"""

import sys
from pathlib import Path

import pytest

# Add project root to Python path so imports work correctly
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from forge_deploy.services.streaming.progress_sink import QueueProgressSink  # noqa: E402
from tests.fixtures.control_plane_fixtures import (  # noqa: E402
    FakeControlPlane,
    create_test_config,
)


@pytest.fixture
def config():
    """Client config with millisecond retry and polling intervals."""
    return create_test_config()


@pytest.fixture
def control_plane():
    """Scripted control plane served through httpx.MockTransport."""
    return FakeControlPlane()


@pytest.fixture
def sink():
    """Queue-backed progress sink whose events can be drained synchronously."""
    return QueueProgressSink()
