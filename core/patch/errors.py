"""
Patch Errors - Typed failures of the patch engine

Callers pick their remedy from the exception type: no room, a conflict
with an existing fixture, bad input, or an unreachable inventory. None
of these are retried inside the engine.

Classes:
    PatchError: Base class for all patch engine errors
    CapacityExhaustedError: No contiguous free block of the requested size
    ChannelConflictError: Requested range overlaps an existing patch
    OutOfRangeError: Requested range falls outside 1-512
    UpstreamUnavailableError: Inventory fetch failed
    ProjectNotFoundError: Inventory has no such project
"""

from typing import Optional, Dict, Any


class PatchError(Exception):
    """Base exception for patch engine errors."""

    error_type = "patch_error"

    def to_dict(self) -> Dict[str, Any]:
        return {"errorType": self.error_type, "error": str(self)}


class CapacityExhaustedError(PatchError):
    """No contiguous run of free channels large enough was found."""

    error_type = "capacity_exhausted"

    def __init__(
        self,
        universe: int,
        block_size: int,
        start_from: int = 1,
        fixture_name: Optional[str] = None
    ):
        self.universe = universe
        self.block_size = block_size
        self.start_from = start_from
        self.fixture_name = fixture_name

        if fixture_name:
            message = (
                f"Not enough channels available in universe {universe} "
                f"for fixture {fixture_name} ({block_size} channels "
                f"from channel {start_from})"
            )
        else:
            message = (
                f"No available channel block of size {block_size} in universe "
                f"{universe} from channel {start_from}"
            )
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d.update({
            "universe": self.universe,
            "blockSize": self.block_size,
            "startFrom": self.start_from,
            "fixtureName": self.fixture_name,
        })
        return d


class ChannelConflictError(PatchError):
    """A manually requested range overlaps an existing patch."""

    error_type = "channel_conflict"

    def __init__(
        self,
        universe: int,
        channel: int,
        fixture_name: str,
        fixture_id: Optional[str],
        start_channel: int,
        channel_count: int
    ):
        self.universe = universe
        self.channel = channel
        self.fixture_name = fixture_name
        self.fixture_id = fixture_id
        self.start_channel = start_channel
        self.channel_count = channel_count
        super().__init__(
            f"Channel {channel} already in use by fixture \"{fixture_name}\". "
            f"Cannot assign {channel_count} channels starting at {start_channel}."
        )

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d.update({
            "universe": self.universe,
            "channel": self.channel,
            "fixtureName": self.fixture_name,
            "fixtureId": self.fixture_id,
        })
        return d


class OutOfRangeError(PatchError, ValueError):
    """Requested range starts below 1 or ends beyond the universe."""

    error_type = "out_of_range"

    def __init__(self, message: str, start_channel: Optional[int] = None,
                 channel_count: Optional[int] = None):
        self.start_channel = start_channel
        self.channel_count = channel_count
        super().__init__(message)


class UpstreamUnavailableError(PatchError):
    """The inventory service could not be reached or answered with an error."""

    error_type = "upstream_unavailable"


class ProjectNotFoundError(PatchError):
    """The inventory has no project with the requested ID."""

    error_type = "project_not_found"

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project with ID {project_id} not found")
