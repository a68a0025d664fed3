"""Unit tests for response envelope handling."""

import json

import pytest

from common.exception.exceptions import MalformedResponseError
from forge_deploy.models.response_models import extract_data, parse_deployment_preview


def _body(payload) -> bytes:
    return json.dumps(payload).encode()


class TestExtractData:
    """Test the {"data": ...} envelope."""

    def test_returns_data(self):
        assert extract_data(_body({"data": {"dev": {}}})) == {"dev": {}}

    def test_missing_data_is_empty(self):
        assert extract_data(_body({})) == {}

    def test_null_data_is_empty(self):
        assert extract_data(_body({"data": None})) == {}

    def test_empty_body_is_empty(self):
        assert extract_data(b"") == {}

    def test_invalid_json_is_malformed(self):
        with pytest.raises(MalformedResponseError, match="Failed to parse"):
            extract_data(b"<html>oops</html>")

    def test_non_object_payload_is_malformed(self):
        with pytest.raises(MalformedResponseError, match="not a JSON object"):
            extract_data(_body([1, 2, 3]))

    def test_non_object_data_is_malformed(self):
        with pytest.raises(MalformedResponseError, match="got list"):
            extract_data(_body({"data": ["dev"]}))


class TestDeploymentPreview:
    """Test preview parsing."""

    def test_parse(self):
        preview = parse_deployment_preview(
            _body(
                {
                    "data": {
                        "org_name": "Test Org",
                        "project_name": "Test Project",
                        "executor_name": "Test Executor",
                        "deployment_type": "deploy",
                        "tick_rate": 10,
                        "regions": ["ap-southeast-1", "us-east-1"],
                    }
                }
            )
        )
        assert preview.org_name == "Test Org"
        assert preview.tick_rate == 10
        assert preview.regions == ["ap-southeast-1", "us-east-1"]

    def test_missing_data_is_malformed(self):
        with pytest.raises(MalformedResponseError, match="Missing data"):
            parse_deployment_preview(_body({}))

    def test_invalid_field_is_malformed(self):
        with pytest.raises(MalformedResponseError, match="Invalid deployment preview"):
            parse_deployment_preview(_body({"data": {"tick_rate": "fast"}}))
