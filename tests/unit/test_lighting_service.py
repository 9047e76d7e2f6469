"""
Unit Tests for Lighting Inventory Client

Tests for:
- GraphQL request shape
- Fixture patch parsing and universe filtering
- Missing projects
- Transport, HTTP, JSON and GraphQL failures
"""

import pytest
from unittest.mock import Mock

import requests

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from core.patch.errors import ProjectNotFoundError, UpstreamUnavailableError
from services.lighting_service import LightingInventoryClient, PROJECT_FIXTURES_QUERY, service_logger


ENDPOINT = "http://lighting.test/graphql"


def make_response(payload):
    response = Mock()
    response.raise_for_status = Mock()
    response.json = Mock(return_value=payload)
    return response


def make_client(payload=None, side_effect=None):
    session = Mock()
    if side_effect is not None:
        session.post.side_effect = side_effect
    else:
        session.post.return_value = make_response(payload)
    return LightingInventoryClient(endpoint=ENDPOINT, timeout=2.5, session=session), session


PROJECT_PAYLOAD = {
    "data": {
        "project": {
            "id": "p1",
            "fixtures": [
                {
                    "id": "f1",
                    "name": "Par 1",
                    "universe": 1,
                    "startChannel": 1,
                    "manufacturer": "Chauvet",
                    "model": "SlimPAR",
                    "type": "LED_PAR",
                    "modeName": "3-Channel",
                    "channelCount": 3,
                    "channels": [
                        {"offset": 0, "name": "Red", "type": "RED"},
                        {"offset": 1, "name": "Green", "type": "GREEN"},
                        {"offset": 2, "name": "Blue", "type": "BLUE"},
                    ],
                },
                {
                    "id": "f2",
                    "name": "Mover 1",
                    "universe": 2,
                    "startChannel": 1,
                    "manufacturer": "Martin",
                    "model": "MAC",
                    "type": "MOVING_HEAD",
                    "modeName": "Basic",
                    "channelCount": 12,
                    "channels": [],
                },
            ],
        }
    }
}


class TestListFixturePatches:
    """Tests for list_fixture_patches."""

    def test_request_shape(self):
        """Test the GraphQL query is posted with timeout."""
        client, session = make_client(PROJECT_PAYLOAD)

        client.list_fixture_patches("p1")

        session.post.assert_called_once()
        args, kwargs = session.post.call_args
        assert args[0] == ENDPOINT
        assert kwargs["json"] == {"query": PROJECT_FIXTURES_QUERY, "variables": {"id": "p1"}}
        assert kwargs["timeout"] == 2.5

    def test_parses_patches(self):
        """Test fixture records become FixturePatch objects."""
        client, _ = make_client(PROJECT_PAYLOAD)

        patches = client.list_fixture_patches("p1")

        assert [p.fixture_id for p in patches] == ["f1", "f2"]
        assert patches[0].channel_types == ["RED", "GREEN", "BLUE"]
        assert patches[1].channel_count == 12

    def test_universe_filter(self):
        """Test only the requested universe is returned."""
        client, _ = make_client(PROJECT_PAYLOAD)

        patches = client.list_fixture_patches("p1", universe=2)

        assert [p.fixture_id for p in patches] == ["f2"]

    def test_project_without_fixtures(self):
        """Test a project with no fixtures."""
        client, _ = make_client({"data": {"project": {"id": "p1", "fixtures": []}}})

        assert client.list_fixture_patches("p1") == []

    def test_project_not_found(self):
        """Test null project raises ProjectNotFoundError."""
        client, _ = make_client({"data": {"project": None}})

        with pytest.raises(ProjectNotFoundError) as exc_info:
            client.list_fixture_patches("missing")

        assert exc_info.value.project_id == "missing"


class TestUpstreamFailures:
    """Tests for inventory failures."""

    def test_malformed_fixture_row(self):
        """Test null universe in a fixture row becomes UpstreamUnavailableError."""
        client, _ = make_client({"data": {"project": {"id": "p1", "fixtures": [
            {"id": "f1", "name": "Par", "universe": None, "startChannel": 1, "channelCount": 3},
        ]}}})

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            client.list_fixture_patches("p1")

        assert isinstance(exc_info.value.__cause__, TypeError)

    def test_null_start_channel(self):
        """Test null startChannel in a fixture row."""
        client, _ = make_client({"data": {"project": {"id": "p1", "fixtures": [
            {"id": "f1", "name": "Par", "universe": 1, "startChannel": None, "channelCount": 3},
        ]}}})

        with pytest.raises(UpstreamUnavailableError):
            client.list_fixture_patches("p1")

    def test_connection_error(self):
        """Test transport failures become UpstreamUnavailableError."""
        error = requests.ConnectionError("refused")
        client, _ = make_client(side_effect=error)

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            client.list_fixture_patches("p1")

        assert exc_info.value.__cause__ is error

    def test_http_error(self):
        """Test bad HTTP status."""
        response = make_response({})
        response.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
        session = Mock()
        session.post.return_value = response
        client = LightingInventoryClient(endpoint=ENDPOINT, session=session)

        with pytest.raises(UpstreamUnavailableError):
            client.list_fixture_patches("p1")

    def test_invalid_json(self):
        """Test non-JSON bodies."""
        response = make_response(None)
        response.json.side_effect = ValueError("No JSON object could be decoded")
        session = Mock()
        session.post.return_value = response
        client = LightingInventoryClient(endpoint=ENDPOINT, session=session)

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            client.list_fixture_patches("p1")

        assert "Unexpected response" in str(exc_info.value)

    def test_graphql_errors(self):
        """Test GraphQL error payloads."""
        client, _ = make_client({"errors": [{"message": "Database offline"}], "data": None})

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            client.list_fixture_patches("p1")

        assert "Database offline" in str(exc_info.value)


class TestServiceLogger:
    """Tests for the service logger setup."""

    def test_logger_does_not_propagate(self):
        """Test service lines are not repeated by the root handler."""
        assert service_logger.propagate is False
        assert len(service_logger.handlers) == 1
