"""
Patch Type Definitions - Dataclasses for DMX Patch Data Structures

This module contains the dataclasses and enums shared by the patch
engine. They are plain data containers; the allocation logic lives in
channel_map, allocation and planner.

Classes:
    FixtureType: Broad fixture category reported by the inventory
    GroupingStrategy: Ordering applied to batch plans
    AssignmentMethod: How a single fixture gets its start channel
    FixturePatch: A fixture's channel range within a universe
    ChannelSlot: One of the 512 slots of a universe
    FixtureSpec: Request-time description of a fixture to place
    ChannelAssignment: A proposed range for one FixtureSpec
    AssignmentPlan: Ordered assignments plus summary and recommendations

Constants:
    UNIVERSE_SIZE: Addressable channel slots per universe
    DEFAULT_CHANNEL_COUNT: Footprint assumed when a spec does not give one
    UNKNOWN_CHANNEL_TYPE: Marker used when channel metadata is missing
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from enum import Enum


# ============================================================
# Constants
# ============================================================

UNIVERSE_SIZE = 512
DMX_CHANNEL_MIN = 1
DMX_CHANNEL_MAX = UNIVERSE_SIZE
DEFAULT_CHANNEL_COUNT = 4
UNKNOWN_CHANNEL_TYPE = "UNKNOWN"

# More than this many channels in one plan triggers a split recommendation
UNIVERSE_SPLIT_THRESHOLD = 256


def format_range(start: int, end: int) -> str:
    """Format an inclusive channel range as "start-end"."""
    return f"{start}-{end}"


# ============================================================
# Enums
# ============================================================

class FixtureType(Enum):
    """Fixture categories known to the lighting-control service."""
    LED_PAR = "LED_PAR"
    MOVING_HEAD = "MOVING_HEAD"
    STROBE = "STROBE"
    DIMMER = "DIMMER"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, value: Optional[str]) -> "FixtureType":
        """Parse a type name, falling back to OTHER."""
        if not value:
            return cls.OTHER
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.OTHER


class GroupingStrategy(Enum):
    """Ordering applied to fixture specs before sequential placement."""
    SEQUENTIAL = "sequential"
    BY_TYPE = "by_type"
    BY_FUNCTION = "by_function"

    @classmethod
    def parse(cls, value: Any) -> "GroupingStrategy":
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.SEQUENTIAL
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise ValueError(
                f"Unknown grouping strategy '{value}' (expected one of: {valid})"
            )


class AssignmentMethod(Enum):
    """How a single fixture's start channel is chosen."""
    AUTO = "auto"
    MANUAL = "manual"
    SUGGEST = "suggest"

    @classmethod
    def parse(cls, value: Any) -> "AssignmentMethod":
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.AUTO
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ValueError(
                f"Unknown channel assignment method '{value}' (expected one of: {valid})"
            )


# ============================================================
# Inventory Data
# ============================================================

@dataclass
class FixturePatch:
    """
    A fixture's patch: the contiguous channel range it occupies.

    Snapshots of these come from the external inventory; the engine never
    mutates or persists them.

    Attributes:
        fixture_id: Inventory identifier of the fixture
        name: Display name, used in conflict messages
        universe: DMX universe (1-based)
        start_channel: First occupied channel (1-based)
        channel_count: Footprint, already resolved for the active mode
        channel_types: Semantic type per channel offset, may be shorter
            than channel_count or empty
        manufacturer: Fixture manufacturer
        model: Fixture model
        fixture_type: Broad category
        mode_name: Active mode, if the fixture has several
    """
    fixture_id: str
    name: str
    universe: int
    start_channel: int
    channel_count: int
    channel_types: List[str] = field(default_factory=list)
    manufacturer: str = ""
    model: str = ""
    fixture_type: FixtureType = FixtureType.OTHER
    mode_name: Optional[str] = None

    @property
    def end_channel(self) -> int:
        return self.start_channel + self.channel_count - 1

    def channel_range(self) -> range:
        """Get the occupied channels as a range."""
        return range(self.start_channel, self.start_channel + self.channel_count)

    def channel_type_at(self, offset: int) -> str:
        """Semantic type of the channel at a 0-based offset."""
        if 0 <= offset < len(self.channel_types) and self.channel_types[offset]:
            return self.channel_types[offset]
        return UNKNOWN_CHANNEL_TYPE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.fixture_id,
            "name": self.name,
            "type": self.fixture_type.value,
            "manufacturer": self.manufacturer,
            "model": self.model,
            "mode": self.mode_name,
            "universe": self.universe,
            "startChannel": self.start_channel,
            "endChannel": self.end_channel,
            "channelCount": self.channel_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FixturePatch":
        """
        Build a patch from an inventory fixture record.

        The mode's channelCount wins over the length of the channel list,
        so multi-mode fixtures report their active footprint. Channels are
        ordered by offset before their types are taken.
        """
        channels = sorted(
            data.get("channels") or [],
            key=lambda ch: ch.get("offset", 0)
        )
        channel_types = [ch.get("type") or UNKNOWN_CHANNEL_TYPE for ch in channels]

        channel_count = data.get("channelCount")
        if not channel_count:
            channel_count = len(channel_types)

        return cls(
            fixture_id=str(data.get("id", "")),
            name=data.get("name") or "",
            universe=int(data.get("universe", 1)),
            start_channel=int(data.get("startChannel", 1)),
            channel_count=int(channel_count),
            channel_types=channel_types,
            manufacturer=data.get("manufacturer") or "",
            model=data.get("model") or "",
            fixture_type=FixtureType.parse(data.get("type")),
            mode_name=data.get("modeName"),
        )


@dataclass(frozen=True)
class ChannelSlot:
    """
    One 1-based channel slot within a universe.

    A free slot has no fixture_id. Occupied slots carry the owning
    fixture's identity and the semantic type of that channel.
    """
    channel: int
    fixture_id: Optional[str] = None
    fixture_name: Optional[str] = None
    channel_type: Optional[str] = None

    @property
    def is_free(self) -> bool:
        return self.fixture_id is None

    def to_dict(self) -> Optional[Dict[str, Any]]:
        if self.is_free:
            return None
        return {
            "fixtureId": self.fixture_id,
            "fixtureName": self.fixture_name,
            "channelType": self.channel_type,
        }


# ============================================================
# Planning Data
# ============================================================

@dataclass
class FixtureSpec:
    """
    A fixture to be placed. Has no identity until the inventory creates it.

    Attributes:
        name: Fixture name
        manufacturer: Manufacturer, used for grouping
        model: Model, used for grouping
        mode: Requested mode name
        channel_count: Footprint if known
        fixture_type: Category if known, used by by_function grouping
    """
    name: str
    manufacturer: str = ""
    model: str = ""
    mode: Optional[str] = None
    channel_count: Optional[int] = None
    fixture_type: Optional[FixtureType] = None

    def resolved_channel_count(self) -> int:
        """Explicit footprint, or the default when none was given."""
        if self.channel_count and self.channel_count > 0:
            return self.channel_count
        return DEFAULT_CHANNEL_COUNT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "manufacturer": self.manufacturer,
            "model": self.model,
            "mode": self.mode,
            "channelCount": self.channel_count,
            "fixtureType": self.fixture_type.value if self.fixture_type else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FixtureSpec":
        if not data.get("name"):
            raise ValueError("Fixture spec requires a name")
        channel_count = data.get("channelCount")
        fixture_type = data.get("fixtureType") or data.get("type")
        return cls(
            name=data["name"],
            manufacturer=data.get("manufacturer") or "",
            model=data.get("model") or "",
            mode=data.get("mode"),
            channel_count=int(channel_count) if channel_count is not None else None,
            fixture_type=FixtureType.parse(fixture_type) if fixture_type else None,
        )


@dataclass
class ChannelAssignment:
    """A proposed channel range for one fixture spec."""
    spec: FixtureSpec
    universe: int
    start_channel: int
    channel_count: int

    @property
    def end_channel(self) -> int:
        return self.start_channel + self.channel_count - 1

    @property
    def channel_range(self) -> str:
        return format_range(self.start_channel, self.end_channel)

    def overlaps(self, other: "ChannelAssignment") -> bool:
        """Check whether two assignments share any slot in the same universe."""
        if self.universe != other.universe:
            return False
        return not (self.end_channel < other.start_channel or
                    self.start_channel > other.end_channel)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fixtureName": self.spec.name,
            "manufacturer": self.spec.manufacturer,
            "model": self.spec.model,
            "mode": self.spec.mode,
            "universe": self.universe,
            "startChannel": self.start_channel,
            "endChannel": self.end_channel,
            "channelCount": self.channel_count,
            "channelRange": self.channel_range,
        }


@dataclass
class AssignmentPlan:
    """
    Result of planning a batch of fixtures into one universe.

    Assignments are in placement order. Recommendations are advisory and
    never make a plan invalid.
    """
    universe: int
    grouping_strategy: GroupingStrategy
    assignments: List[ChannelAssignment] = field(default_factory=list)
    gaps: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    channels_remaining: Optional[int] = None

    @property
    def total_channels(self) -> int:
        return sum(a.channel_count for a in self.assignments)

    @property
    def first_channel(self) -> Optional[int]:
        return self.assignments[0].start_channel if self.assignments else None

    @property
    def last_channel(self) -> Optional[int]:
        return self.assignments[-1].end_channel if self.assignments else None

    def summary(self) -> Dict[str, Any]:
        return {
            "totalFixtures": len(self.assignments),
            "channelsUsed": self.total_channels,
            "startChannel": self.first_channel,
            "endChannel": self.last_channel,
        }

    def utilization(self) -> Dict[str, Any]:
        """Channel usage of the plan for display."""
        return {
            "universes": [self.universe] if self.assignments else [],
            "totalChannelsUsed": self.total_channels,
            "channelsRemaining": self.channels_remaining,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "universe": self.universe,
            "groupingStrategy": self.grouping_strategy.value,
            "assignments": [a.to_dict() for a in self.assignments],
            "summary": self.summary(),
            "gaps": list(self.gaps),
            "recommendations": list(self.recommendations),
            "utilization": self.utilization(),
        }
