"""
Channel Map Builder - 512-slot occupancy view of a universe

A ChannelMap is derived from a snapshot of fixture patches every time it
is needed and discarded afterwards. It is never cached between calls and
never mutated: reserve() hands back a new map.

Classes:
    ChannelMap: Occupancy of one universe

Functions:
    build_channel_maps: Group a project's patches into per-universe maps
    project_channel_summary: Project-wide view over several maps
"""

from typing import List, Optional, Dict, Any, Iterable, Tuple
import logging

from .types import (
    FixturePatch,
    ChannelSlot,
    UNIVERSE_SIZE,
    DMX_CHANNEL_MIN,
    DMX_CHANNEL_MAX,
    format_range,
)

logger = logging.getLogger(__name__)


class ChannelMap:
    """
    Occupancy of the 512 channel slots of one universe.

    Slots outside 1-512 claimed by a patch are ignored: channels beyond
    the universe are invisible to the map.

    Attributes:
        universe: Universe this map describes
        patches: Patches the map was built from, sorted by start channel
    """

    def __init__(
        self,
        universe: int,
        slots: Tuple[ChannelSlot, ...],
        patches: List[FixturePatch]
    ):
        if len(slots) != UNIVERSE_SIZE:
            raise ValueError(f"Channel map needs {UNIVERSE_SIZE} slots, got {len(slots)}")
        self.universe = universe
        self._slots = slots
        self.patches = sorted(patches, key=lambda p: p.start_channel)

    @classmethod
    def build(cls, universe: int, patches: Iterable[FixturePatch]) -> "ChannelMap":
        """
        Build the occupancy view for a universe.

        Patches belonging to other universes are skipped, so a project-wide
        fixture list can be passed directly.

        Args:
            universe: Universe to build
            patches: Fixture patches (any universe)

        Returns:
            New ChannelMap
        """
        slots: List[ChannelSlot] = [
            ChannelSlot(channel=ch) for ch in range(DMX_CHANNEL_MIN, DMX_CHANNEL_MAX + 1)
        ]
        included: List[FixturePatch] = []

        for patch in patches:
            if patch.universe != universe:
                continue
            included.append(patch)

            if patch.start_channel < DMX_CHANNEL_MIN or patch.end_channel > DMX_CHANNEL_MAX:
                logger.debug(
                    f"Ignoring channels of fixture {patch.name} outside 1-{DMX_CHANNEL_MAX} "
                    f"(patched {format_range(patch.start_channel, patch.end_channel)}) "
                    f"in universe {universe}"
                )

            first = max(patch.start_channel, DMX_CHANNEL_MIN)
            last = min(patch.end_channel, DMX_CHANNEL_MAX)
            for channel in range(first, last + 1):
                slots[channel - 1] = ChannelSlot(
                    channel=channel,
                    fixture_id=patch.fixture_id,
                    fixture_name=patch.name,
                    channel_type=patch.channel_type_at(channel - patch.start_channel),
                )

        return cls(universe, tuple(slots), included)

    @classmethod
    def empty(cls, universe: int) -> "ChannelMap":
        return cls.build(universe, [])

    # ─────────────────────────────────────────────────────────
    # Slot Access
    # ─────────────────────────────────────────────────────────

    @property
    def slots(self) -> Tuple[ChannelSlot, ...]:
        return self._slots

    def slot(self, channel: int) -> ChannelSlot:
        """Get the slot for a 1-based channel."""
        if channel < DMX_CHANNEL_MIN or channel > DMX_CHANNEL_MAX:
            raise IndexError(f"Channel {channel} outside 1-{DMX_CHANNEL_MAX}")
        return self._slots[channel - 1]

    def is_free(self, channel: int) -> bool:
        return self.slot(channel).is_free

    @property
    def used_count(self) -> int:
        return sum(1 for s in self._slots if not s.is_free)

    @property
    def available_count(self) -> int:
        return UNIVERSE_SIZE - self.used_count

    @property
    def next_available_channel(self) -> int:
        """First free channel, or 513 when the universe is full."""
        for s in self._slots:
            if s.is_free:
                return s.channel
        return DMX_CHANNEL_MAX + 1

    def occupancy(self) -> List[Optional[Dict[str, Any]]]:
        """Per-slot occupancy, None for free slots."""
        return [s.to_dict() for s in self._slots]

    # ─────────────────────────────────────────────────────────
    # Derivation
    # ─────────────────────────────────────────────────────────

    def reserve(self, start_channel: int, channel_count: int, label: str,
                fixture_id: Optional[str] = None) -> "ChannelMap":
        """
        Return a new map with a range virtually occupied.

        Used to keep ranges proposed earlier in the same call from being
        handed out twice. The range must already be known to be free.
        """
        slots = list(self._slots)
        owner = fixture_id or f"pending:{label}"
        for channel in range(start_channel, start_channel + channel_count):
            if DMX_CHANNEL_MIN <= channel <= DMX_CHANNEL_MAX:
                slots[channel - 1] = ChannelSlot(
                    channel=channel,
                    fixture_id=owner,
                    fixture_name=label,
                    channel_type=None,
                )
        return ChannelMap(self.universe, tuple(slots), list(self.patches))

    def to_dict(self, include_occupancy: bool = True) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "universe": self.universe,
            "fixtures": [p.to_dict() for p in self.patches],
            "availableChannels": self.available_count,
            "usedChannels": self.used_count,
            "nextAvailableChannel": self.next_available_channel,
        }
        if include_occupancy:
            d["channelUsage"] = self.occupancy()
        return d

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ChannelMap):
            return NotImplemented
        return self.universe == other.universe and self._slots == other._slots

    def __repr__(self) -> str:
        return (
            f"ChannelMap(universe={self.universe}, used={self.used_count}, "
            f"fixtures={len(self.patches)})"
        )


def build_channel_maps(
    patches: Iterable[FixturePatch],
    universe: Optional[int] = None
) -> Dict[int, ChannelMap]:
    """
    Build one map per universe that has patches.

    Args:
        patches: Project-wide fixture patches
        universe: Restrict to a single universe

    Returns:
        Dictionary of universe -> ChannelMap, in universe order. When a
        universe is requested it is always present, even if empty.
    """
    patches = list(patches)
    if universe is not None:
        return {universe: ChannelMap.build(universe, patches)}

    universes = sorted({p.universe for p in patches})
    return {u: ChannelMap.build(u, patches) for u in universes}


def project_channel_summary(
    project_id: str,
    maps: Dict[int, ChannelMap]
) -> Dict[str, Any]:
    """Project-wide channel map response with usage totals."""
    return {
        "projectId": project_id,
        "totalUniverses": len(maps),
        "universes": [m.to_dict() for m in maps.values()],
        "summary": {
            "totalFixtures": sum(len(m.patches) for m in maps.values()),
            "totalChannelsUsed": sum(m.used_count for m in maps.values()),
            "totalChannelsAvailable": sum(m.available_count for m in maps.values()),
        },
    }
