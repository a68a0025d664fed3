"""Unit tests for CloudAPIService."""

import asyncio
import json

import httpx
import pytest

from common.exception.exceptions import (
    MalformedResponseError,
    OperationCanceledError,
    RemoteError,
    RetriesExhaustedError,
    UnauthenticatedError,
)
from common.utils.cancellation import CancellationToken
from forge_deploy.entity.deployment import BuildState, OperationKind
from forge_deploy.services.cloud_api_service import CloudAPIService
from tests.fixtures.control_plane_fixtures import (
    ORG_ID,
    PROJECT_ID,
    create_test_config,
    deployment_entry,
    env_health,
    envelope,
    health_path,
    healthy_instances,
    operation_path,
    status_path,
)


def make_service(control_plane, **config_overrides) -> CloudAPIService:
    return CloudAPIService(
        create_test_config(**config_overrides), transport=control_plane.transport
    )


class TestSend:
    """Test the resilient request path."""

    @pytest.mark.asyncio
    async def test_attaches_credential(self, control_plane):
        control_plane.add("GET", "/api/ping", {"data": {}})
        async with make_service(control_plane) as api:
            await api.send("GET", "/api/ping")

        request = control_plane.requests[0]
        assert request.headers["Authorization"] == "Bearer test-token"
        assert str(request.url) == "https://forge.test.com/api/ping"

    @pytest.mark.asyncio
    async def test_custom_scheme_and_token_update(self, control_plane):
        control_plane.add("GET", "/api/ping", {})
        async with make_service(control_plane, auth_scheme="ArgusID") as api:
            api.set_auth_token("fresh-token")
            await api.send("GET", "/api/ping")

        assert control_plane.requests[0].headers["Authorization"] == "ArgusID fresh-token"

    @pytest.mark.asyncio
    async def test_no_credential_no_header(self, control_plane):
        control_plane.add("GET", "/api/ping", {})
        async with make_service(control_plane, auth_token=None) as api:
            await api.send("GET", "/api/ping")

        assert "Authorization" not in control_plane.requests[0].headers

    @pytest.mark.asyncio
    async def test_serializes_body_as_json(self, control_plane):
        control_plane.add("POST", "/api/echo", {})
        async with make_service(control_plane) as api:
            await api.send("POST", "/api/echo", {"name": "test"})

        request = control_plane.requests[0]
        assert request.headers["Content-Type"] == "application/json"
        assert json.loads(request.content) == {"name": "test"}

    @pytest.mark.asyncio
    async def test_returns_raw_body(self, control_plane):
        control_plane.add("GET", "/api/ping", {"data": {"pong": True}})
        async with make_service(control_plane) as api:
            body = await api.send("GET", "/api/ping")

        assert json.loads(body) == {"data": {"pong": True}}

    @pytest.mark.asyncio
    async def test_401_is_never_retried(self, control_plane):
        control_plane.add("GET", "/api/ping", httpx.Response(401, json={"message": "expired"}))
        async with make_service(control_plane) as api:
            with pytest.raises(UnauthenticatedError) as exc_info:
                await api.send("GET", "/api/ping")

        assert control_plane.calls("GET", "/api/ping") == 1
        assert "https://forge.test.com/api/ping" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_401_after_transient_failure_aborts(self, control_plane):
        control_plane.add(
            "GET",
            "/api/ping",
            httpx.Response(503),
            httpx.Response(401),
            {"data": {}},
        )
        async with make_service(control_plane) as api:
            with pytest.raises(UnauthenticatedError):
                await api.send("GET", "/api/ping")

        assert control_plane.calls("GET", "/api/ping") == 2

    @pytest.mark.asyncio
    async def test_remote_error_carries_server_message(self, control_plane):
        control_plane.add(
            "GET", "/api/ping", httpx.Response(404, json={"message": "Project not found"})
        )
        async with make_service(control_plane) as api:
            with pytest.raises(RemoteError) as exc_info:
                await api.send("GET", "/api/ping")

        assert exc_info.value.message == "Project not found"
        assert exc_info.value.status_code == 404
        assert control_plane.calls("GET", "/api/ping") == 1

    @pytest.mark.asyncio
    async def test_remote_error_without_message(self, control_plane):
        control_plane.add("GET", "/api/ping", httpx.Response(403, text="Forbidden"))
        async with make_service(control_plane) as api:
            with pytest.raises(RemoteError) as exc_info:
                await api.send("GET", "/api/ping")

        assert exc_info.value.message == ""
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_retries_server_errors_then_succeeds(self, control_plane):
        control_plane.add(
            "GET",
            "/api/ping",
            httpx.Response(500),
            httpx.Response(502),
            httpx.Response(429),
            {"data": {"ok": True}},
        )
        async with make_service(control_plane) as api:
            body = await api.send("GET", "/api/ping")

        assert json.loads(body) == {"data": {"ok": True}}
        assert control_plane.calls("GET", "/api/ping") == 4

    @pytest.mark.asyncio
    async def test_retries_timeouts(self, control_plane):
        control_plane.add("GET", "/api/ping", httpx.ReadTimeout, {"data": {}})
        async with make_service(control_plane) as api:
            await api.send("GET", "/api/ping")

        assert control_plane.calls("GET", "/api/ping") == 2

    @pytest.mark.asyncio
    async def test_connection_error_is_not_retried(self, control_plane):
        control_plane.add("GET", "/api/ping", httpx.ConnectError)
        async with make_service(control_plane) as api:
            with pytest.raises(RemoteError, match="simulated transport failure"):
                await api.send("GET", "/api/ping")

        assert control_plane.calls("GET", "/api/ping") == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries_wrap_last_error(self, control_plane):
        control_plane.add("GET", "/api/ping", httpx.Response(503, json={"message": "busy"}))
        async with make_service(control_plane) as api:
            with pytest.raises(RetriesExhaustedError) as exc_info:
                await api.send("GET", "/api/ping")

        assert control_plane.calls("GET", "/api/ping") == 5
        assert exc_info.value.attempts == 5
        assert "Failed after 5 retries" in str(exc_info.value)
        assert exc_info.value.last_error.status_code == 503
        assert exc_info.value.__cause__ is exc_info.value.last_error

    @pytest.mark.asyncio
    async def test_cancel_during_backoff_stops_retrying(self, control_plane):
        control_plane.add("GET", "/api/ping", httpx.Response(503))
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.05, token.cancel)

        async with make_service(control_plane, retry_base_delay=10.0) as api:
            with pytest.raises(OperationCanceledError):
                await asyncio.wait_for(api.send("GET", "/api/ping", cancel_token=token), 2)

        assert control_plane.calls("GET", "/api/ping") == 1

    @pytest.mark.asyncio
    async def test_cancelled_token_issues_no_request(self, control_plane):
        control_plane.add("GET", "/api/ping", {})
        token = CancellationToken()
        token.cancel()

        async with make_service(control_plane) as api:
            with pytest.raises(OperationCanceledError):
                await api.send("GET", "/api/ping", cancel_token=token)

        assert control_plane.requests == []


class TestEndpoints:
    """Test control-plane endpoint methods."""

    @pytest.mark.asyncio
    async def test_trigger_deploy(self, control_plane):
        control_plane.add("POST", operation_path("deploy"), {"data": {}})
        async with make_service(control_plane) as api:
            await api.trigger_operation(ORG_ID, PROJECT_ID, OperationKind.DEPLOY)

        request = control_plane.requests[0]
        assert request.url.path == operation_path("deploy")
        assert request.url.params.get("force") is None

    @pytest.mark.asyncio
    async def test_trigger_force_deploy(self, control_plane):
        control_plane.add("POST", operation_path("deploy"), {})
        async with make_service(control_plane) as api:
            await api.trigger_operation(ORG_ID, PROJECT_ID, OperationKind.DEPLOY, force=True)

        assert control_plane.requests[0].url.params["force"] == "true"

    @pytest.mark.asyncio
    async def test_force_only_applies_to_deploy(self, control_plane):
        async with make_service(control_plane) as api:
            with pytest.raises(ValueError, match="force is only supported for deploy"):
                await api.trigger_operation(ORG_ID, PROJECT_ID, OperationKind.RESET, force=True)

        assert control_plane.requests == []

    @pytest.mark.asyncio
    async def test_requires_ids(self, control_plane):
        async with make_service(control_plane) as api:
            with pytest.raises(ValueError, match="organization ID is required"):
                await api.trigger_operation("", PROJECT_ID, OperationKind.DESTROY)
            with pytest.raises(ValueError, match="project ID is required"):
                await api.get_deployment_status("")

    @pytest.mark.asyncio
    async def test_preview_deployment(self, control_plane):
        control_plane.add(
            "POST",
            operation_path("destroy"),
            {"data": {"project_name": "Test Project", "regions": ["us-east-1"]}},
        )
        async with make_service(control_plane) as api:
            preview = await api.preview_deployment(ORG_ID, PROJECT_ID, OperationKind.DESTROY)

        assert preview.project_name == "Test Project"
        assert control_plane.requests[0].url.params["preview"] == "true"

    @pytest.mark.asyncio
    async def test_get_deployment_status(self, control_plane):
        control_plane.add(
            "GET",
            status_path(),
            envelope({"dev": deployment_entry(build_state="running")}),
        )
        async with make_service(control_plane) as api:
            snapshot = await api.get_deployment_status(PROJECT_ID)

        assert snapshot["dev"].build_state == BuildState.RUNNING

    @pytest.mark.asyncio
    async def test_get_deployment_status_not_deployed(self, control_plane):
        control_plane.add("GET", status_path(), {})
        async with make_service(control_plane) as api:
            assert await api.get_deployment_status(PROJECT_ID) == {}

    @pytest.mark.asyncio
    async def test_get_deployment_status_malformed(self, control_plane):
        control_plane.add("GET", status_path(), httpx.Response(200, text="not json"))
        async with make_service(control_plane) as api:
            with pytest.raises(MalformedResponseError):
                await api.get_deployment_status(PROJECT_ID)

    @pytest.mark.asyncio
    async def test_get_health_status(self, control_plane):
        control_plane.add("GET", health_path(), envelope({"dev": env_health(healthy_instances())}))
        async with make_service(control_plane) as api:
            snapshot = await api.get_health_status(PROJECT_ID)

        assert snapshot["dev"].ok is True
        assert len(snapshot["dev"].deployed_instances) == 3
