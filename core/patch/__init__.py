"""
DMX Patch Module - Channel allocation and patching for lighting projects

This module decides which DMX channels (1-512 per universe) a fixture
occupies. It reports conflicts, computes occupancy and gaps, and plans
channel ranges for batches of fixtures. Fixture records themselves are
owned by the external lighting-control service.

Key Components:
- ChannelMap: 512-slot occupancy of a universe
- find_block / validate_range: First-fit search and manual range checks
- AssignmentPlanner: Batch placement with grouping strategies
- PatchEngine: High-level facade used by fixture workflows

Usage:
    from core.patch import PatchEngine, FixtureSpec

    engine = PatchEngine(inventory)
    start = engine.auto_assign("project-1", universe=1, channel_count=8)
    plan = engine.plan_batch("project-1", [FixtureSpec(name="Wash 1")])

Version: 0.1.0
"""

from .types import (
    FixtureType,
    GroupingStrategy,
    AssignmentMethod,
    FixturePatch,
    ChannelSlot,
    FixtureSpec,
    ChannelAssignment,
    AssignmentPlan,
    UNIVERSE_SIZE,
    DEFAULT_CHANNEL_COUNT,
    UNKNOWN_CHANNEL_TYPE,
)

from .errors import (
    PatchError,
    CapacityExhaustedError,
    ChannelConflictError,
    OutOfRangeError,
    UpstreamUnavailableError,
    ProjectNotFoundError,
)
from .channel_map import ChannelMap, build_channel_maps, project_channel_summary
from .allocation import find_block, validate_range
from .planner import AssignmentPlanner
from .engine import PatchEngine, FixtureInventory

__all__ = [
    # Types
    "FixtureType",
    "GroupingStrategy",
    "AssignmentMethod",
    "FixturePatch",
    "ChannelSlot",
    "FixtureSpec",
    "ChannelAssignment",
    "AssignmentPlan",
    "UNIVERSE_SIZE",
    "DEFAULT_CHANNEL_COUNT",
    "UNKNOWN_CHANNEL_TYPE",
    # Errors
    "PatchError",
    "CapacityExhaustedError",
    "ChannelConflictError",
    "OutOfRangeError",
    "UpstreamUnavailableError",
    "ProjectNotFoundError",
    # Channel map
    "ChannelMap",
    "build_channel_maps",
    "project_channel_summary",
    # Allocation
    "find_block",
    "validate_range",
    # Planner
    "AssignmentPlanner",
    # Engine
    "PatchEngine",
    "FixtureInventory",
]

__version__ = "0.1.0"
