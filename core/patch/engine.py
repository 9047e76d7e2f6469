"""
Patch Engine - Operation-level entry points for DMX channel patching

PatchEngine is what fixture-creation workflows call. Every operation
fetches a fresh fixture snapshot from the inventory, builds channel maps
from it, answers, and keeps nothing. There is no allocator state between
calls.

Classes:
    FixtureInventory: Protocol for the external fixture inventory
    PatchEngine: Facade over channel map, allocation and planner

Usage:
    engine = PatchEngine(get_inventory_client())

    start = engine.auto_assign(project_id, universe=1, channel_count=8)
    engine.validate_manual(project_id, universe=1, start_channel=17, channel_count=8)
    plan = engine.plan_batch(project_id, specs, universe=1)

Persistence race:
    An answer from auto_assign or validate_manual is only valid for the
    snapshot it was computed from. Two callers can be handed the same free
    block before either persists its fixture. Callers that need exclusive
    ranges must serialize assign-then-persist per universe, or have the
    inventory enforce uniqueness of (universe, channel) and treat a
    conflict reported at persistence time as authoritative.
"""

from typing import List, Optional, Dict, Any, Union, Protocol
import logging

from .allocation import check_universe, find_block, validate_range
from .channel_map import ChannelMap, build_channel_maps, project_channel_summary
from .errors import PatchError, OutOfRangeError
from .planner import AssignmentPlanner
from .types import (
    AssignmentMethod,
    AssignmentPlan,
    ChannelAssignment,
    FixturePatch,
    FixtureSpec,
    GroupingStrategy,
)

logger = logging.getLogger(__name__)


class FixtureInventory(Protocol):
    """Protocol for the external fixture inventory."""

    def list_fixture_patches(
        self, project_id: str, universe: Optional[int] = None
    ) -> List[FixturePatch]:
        """
        Get the current patches of a project, optionally for one universe.

        Raises:
            ProjectNotFoundError: If the project does not exist
            UpstreamUnavailableError: If the inventory cannot be reached
        """
        ...


class PatchEngine:
    """
    Facade for channel patching operations.

    Attributes:
        inventory: Source of fixture patch snapshots
        planner: AssignmentPlanner used for batches
    """

    def __init__(self, inventory: FixtureInventory, planner: Optional[AssignmentPlanner] = None):
        """
        Initialize patch engine.

        Args:
            inventory: FixtureInventory implementation
            planner: Optional planner, a default one is created otherwise
        """
        self.inventory = inventory
        self.planner = planner or AssignmentPlanner()

    # ─────────────────────────────────────────────────────────
    # Channel Maps
    # ─────────────────────────────────────────────────────────

    def get_channel_map(self, project_id: str, universe: int) -> ChannelMap:
        """Build the occupancy map of one universe from a fresh snapshot."""
        check_universe(universe)
        patches = self.inventory.list_fixture_patches(project_id, universe)
        return ChannelMap.build(universe, patches)

    def channel_map_report(
        self, project_id: str, universe: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Project-wide (or single universe) channel usage report.

        Without a universe only universes that have fixtures are listed.
        """
        if universe is not None:
            check_universe(universe)
        patches = self.inventory.list_fixture_patches(project_id, universe)
        maps = build_channel_maps(patches, universe)
        return project_channel_summary(project_id, maps)

    # ─────────────────────────────────────────────────────────
    # Single Fixture
    # ─────────────────────────────────────────────────────────

    def auto_assign(self, project_id: str, universe: int, channel_count: int) -> int:
        """
        Find the lowest start channel with channel_count free channels.

        Returns:
            Start channel (1-based)

        Raises:
            CapacityExhaustedError: If the universe has no such block
            OutOfRangeError: If the universe or footprint is invalid
        """
        channel_map = self.get_channel_map(project_id, universe)
        start = find_block(channel_map, 1, channel_count)
        logger.info(
            f"Auto-assigned {channel_count} channels at {start} in universe {universe}"
        )
        return start

    def validate_manual(
        self,
        project_id: str,
        universe: int,
        start_channel: int,
        channel_count: int
    ) -> None:
        """
        Check that a caller-chosen range is inside the universe and free.

        Raises:
            OutOfRangeError: If the range leaves 1-512
            ChannelConflictError: Naming the fixture and first colliding channel
        """
        channel_map = self.get_channel_map(project_id, universe)
        validate_range(channel_map, start_channel, channel_count)

    def resolve_start_channel(
        self,
        project_id: str,
        universe: int,
        channel_count: int,
        method: Union[AssignmentMethod, str] = AssignmentMethod.AUTO,
        start_channel: Optional[int] = None,
        fixture_name: str = ""
    ) -> ChannelAssignment:
        """
        Choose the start channel for a fixture about to be created.

        auto: first free block from channel 1, or validate start_channel
              when a non-zero one is given
        manual: validate start_channel, which is required
        suggest: single-fixture plan from start_channel (default 1)

        Returns:
            ChannelAssignment for the fixture
        """
        method = AssignmentMethod.parse(method)
        spec = FixtureSpec(name=fixture_name, channel_count=channel_count)

        if method == AssignmentMethod.SUGGEST:
            plan = self.plan_batch(
                project_id, [spec], universe=universe,
                starting_channel=start_channel or 1
            )
            return plan.assignments[0]

        if method == AssignmentMethod.MANUAL and start_channel is None:
            raise OutOfRangeError(
                "Manual channel assignment requires a start channel",
                channel_count=channel_count
            )

        if method == AssignmentMethod.MANUAL or start_channel:
            self.validate_manual(project_id, universe, start_channel, channel_count)
            start = start_channel
        else:
            start = self.auto_assign(project_id, universe, channel_count)

        return ChannelAssignment(
            spec=spec, universe=universe,
            start_channel=start, channel_count=channel_count
        )

    # ─────────────────────────────────────────────────────────
    # Batches
    # ─────────────────────────────────────────────────────────

    def plan_batch(
        self,
        project_id: str,
        specs: List[FixtureSpec],
        universe: int = 1,
        starting_channel: int = 1,
        grouping_strategy: Union[GroupingStrategy, str] = GroupingStrategy.SEQUENTIAL
    ) -> AssignmentPlan:
        """
        Plan channel ranges for several fixtures in one universe.

        The whole plan fails if any spec does not fit.

        Raises:
            CapacityExhaustedError: Naming the first spec that does not fit
        """
        channel_map = self.get_channel_map(project_id, universe)
        plan = self.planner.plan(specs, channel_map, starting_channel, grouping_strategy)
        logger.info(
            f"Planned {len(plan.assignments)} fixtures for project {project_id} "
            f"universe {universe}: {plan.total_channels} channels"
        )
        return plan

    def plan_bulk(self, project_id: str, requests: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Best-effort channel resolution for a list of fixture requests.

        Each request may name its own universe and start channel. Requests
        with a start channel are validated, the others are auto-assigned
        from channel 1. Ranges granted to earlier requests count as occupied
        for later ones. A failing request is reported and skipped.

        Inventory errors are raised before any request is processed.

        Args:
            project_id: Project whose patch is used
            requests: Dicts with name, manufacturer, model, mode, universe,
                startChannel, channelCount

        Returns:
            Dict with succeeded, failed, message and channelSummary
        """
        patches = self.inventory.list_fixture_patches(project_id)
        maps: Dict[int, ChannelMap] = {}

        succeeded: List[Dict[str, Any]] = []
        failed: List[Dict[str, Any]] = []

        for index, request in enumerate(requests):
            if not isinstance(request, dict):
                failed.append({
                    "index": index,
                    "fixture": None,
                    "errorType": "invalid_request",
                    "error": f"Fixture request must be an object (got {type(request).__name__})",
                })
                logger.warning(f"Bulk request {index} is not an object")
                continue

            try:
                spec = FixtureSpec.from_dict(request)
                universe = int(request.get("universe") or 1)
                check_universe(universe)
                channel_count = spec.resolved_channel_count()

                if universe not in maps:
                    maps[universe] = ChannelMap.build(universe, patches)
                channel_map = maps[universe]

                start_channel = request.get("startChannel")
                if start_channel:
                    start_channel = int(start_channel)
                    validate_range(channel_map, start_channel, channel_count)
                else:
                    start_channel = find_block(channel_map, 1, channel_count)

                maps[universe] = channel_map.reserve(start_channel, channel_count, spec.name)
                assignment = ChannelAssignment(
                    spec=spec, universe=universe,
                    start_channel=start_channel, channel_count=channel_count
                )
                succeeded.append(dict(assignment.to_dict(), index=index))

            except (PatchError, ValueError, TypeError) as e:
                error_type = getattr(e, "error_type", "invalid_request")
                failed.append({
                    "index": index,
                    "fixture": {
                        "name": request.get("name"),
                        "manufacturer": request.get("manufacturer"),
                        "model": request.get("model"),
                        "mode": request.get("mode"),
                        "universe": request.get("universe"),
                        "startChannel": request.get("startChannel"),
                    },
                    "errorType": error_type,
                    "error": str(e),
                })
                logger.warning(f"Bulk request {index} ({request.get('name')}) failed: {e}")

        if len(succeeded) == len(requests):
            message = f"Successfully resolved all {len(succeeded)} fixture(s)"
        elif succeeded:
            message = (
                f"Partially successful: {len(succeeded)} resolved, "
                f"{len(failed)} failed"
            )
        else:
            message = f"All {len(failed)} fixtures failed to resolve"

        channel_summary = None
        if succeeded:
            channel_summary = {
                "totalChannelsUsed": sum(s["channelCount"] for s in succeeded),
                "universes": sorted({s["universe"] for s in succeeded}),
            }

        return {
            "projectId": project_id,
            "totalRequested": len(requests),
            "successCount": len(succeeded),
            "failureCount": len(failed),
            "succeeded": succeeded,
            "failed": failed,
            "message": message,
            "channelSummary": channel_summary,
        }
