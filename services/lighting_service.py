"""
Lighting-Control Inventory Client
=================================
Read-only access to fixture patches held by the lighting-control service.

IMPORTANT: The lighting-control service owns every fixture record.
- This client only reads the current patch of a project
- Nothing is cached; every call is a fresh snapshot
- Failures are raised as UpstreamUnavailableError, never hidden

Configuration:
- LACYLIGHTS_GRAPHQL_ENDPOINT: GraphQL endpoint of the service
- LACYLIGHTS_REQUEST_TIMEOUT: Request timeout in seconds

Usage:
    from services.lighting_service import get_inventory_client

    inventory = get_inventory_client()
    patches = inventory.list_fixture_patches(project_id, universe=1)
"""

import os
import threading
import logging
from typing import Optional, Dict, List, Any

import requests

from core.patch.errors import ProjectNotFoundError, UpstreamUnavailableError
from core.patch.types import FixturePatch

# ============================================================
# Configuration
# ============================================================

GRAPHQL_ENDPOINT = os.environ.get("LACYLIGHTS_GRAPHQL_ENDPOINT", "http://localhost:4000/graphql")
REQUEST_TIMEOUT = float(os.environ.get("LACYLIGHTS_REQUEST_TIMEOUT", "10"))

# Configure logging
service_logger = logging.getLogger('lacylights.patch')
service_logger.setLevel(logging.INFO)
if not service_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        '%(asctime)s [PATCH] %(levelname)s: %(message)s'
    ))
    service_logger.addHandler(handler)
service_logger.propagate = False


PROJECT_FIXTURES_QUERY = """
query GetProjectFixtures($id: ID!) {
  project(id: $id) {
    id
    fixtures {
      id
      name
      universe
      startChannel
      manufacturer
      model
      type
      modeName
      channelCount
      channels {
        offset
        name
        type
      }
    }
  }
}
"""


class LightingInventoryClient:
    """
    GraphQL client for fixture patches.

    Attributes:
        endpoint: GraphQL endpoint URL
        timeout: Request timeout in seconds
        session: requests.Session used for all calls
    """

    def __init__(self, endpoint: str = None, timeout: float = None,
                 session: Optional[requests.Session] = None):
        self.endpoint = endpoint or GRAPHQL_ENDPOINT
        self.timeout = timeout if timeout is not None else REQUEST_TIMEOUT
        self.session = session or requests.Session()

    def _query(self, query: str, variables: Dict[str, Any] = None) -> Dict[str, Any]:
        """
        Run a GraphQL query and return its data.

        Raises:
            UpstreamUnavailableError: On transport errors, bad HTTP status,
                non-JSON bodies or GraphQL errors
        """
        try:
            response = self.session.post(
                self.endpoint,
                json={"query": query, "variables": variables or {}},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            result = response.json()
        except requests.RequestException as e:
            service_logger.error(f"Inventory request to {self.endpoint} failed: {e}")
            raise UpstreamUnavailableError(f"Inventory request failed: {e}") from e
        except ValueError as e:
            service_logger.error(f"Inventory returned invalid JSON: {e}")
            raise UpstreamUnavailableError(f"Unexpected response from inventory: {e}") from e

        if result.get("errors"):
            message = result["errors"][0].get("message", "unknown error")
            service_logger.error(f"Inventory GraphQL error: {message}")
            raise UpstreamUnavailableError(f"Inventory query failed: {message}")

        return result.get("data") or {}

    def list_fixture_patches(self, project_id: str, universe: Optional[int] = None) -> List[FixturePatch]:
        """
        Get a project's fixture patches.

        Args:
            project_id: Project to read
            universe: Only return patches in this universe

        Returns:
            List of FixturePatch

        Raises:
            ProjectNotFoundError: If the project does not exist
            UpstreamUnavailableError: If the service fails
        """
        data = self._query(PROJECT_FIXTURES_QUERY, {"id": project_id})
        project = data.get("project")
        if not project:
            raise ProjectNotFoundError(project_id)

        try:
            patches = [FixturePatch.from_dict(f) for f in project.get("fixtures") or []]
        except (TypeError, ValueError, AttributeError) as e:
            service_logger.error(f"Inventory returned a malformed fixture for project {project_id}: {e}")
            raise UpstreamUnavailableError(f"Malformed fixture record from inventory: {e}") from e
        if universe is not None:
            patches = [p for p in patches if p.universe == universe]

        service_logger.debug(
            f"Fetched {len(patches)} fixture patches for project {project_id}"
            + (f" universe {universe}" if universe is not None else "")
        )
        return patches


_client: Optional[LightingInventoryClient] = None
_client_lock = threading.Lock()


def get_inventory_client() -> LightingInventoryClient:
    """Get the shared inventory client."""
    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                _client = LightingInventoryClient()
    return _client
