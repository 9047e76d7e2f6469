"""
Channel Allocation - Block search and conflict validation

Two primitives over a ChannelMap:

    find_block: first-fit search for N contiguous free channels
    validate_range: check that an explicitly requested range is usable

find_block is what auto-assignment uses and only ever proposes free
ranges. validate_range is for caller-specified start channels.
"""

import logging

from .channel_map import ChannelMap
from .errors import CapacityExhaustedError, ChannelConflictError, OutOfRangeError
from .types import UNIVERSE_SIZE, DMX_CHANNEL_MIN, DMX_CHANNEL_MAX, format_range

logger = logging.getLogger(__name__)


def check_block_size(block_size: int) -> None:
    """Reject footprints that can never fit a universe."""
    if block_size < 1:
        raise OutOfRangeError(
            f"Channel count must be at least 1 (got {block_size})",
            channel_count=block_size
        )
    if block_size > UNIVERSE_SIZE:
        raise OutOfRangeError(
            f"Channel count {block_size} exceeds universe size ({UNIVERSE_SIZE} channels)",
            channel_count=block_size
        )


def check_universe(universe: int) -> None:
    """Reject universe numbers below 1."""
    if universe < 1:
        raise OutOfRangeError(f"Universe must be at least 1 (got {universe})")


def find_block(channel_map: ChannelMap, start_from: int, block_size: int) -> int:
    """
    Find the first contiguous run of free channels.

    Scans start positions start_from .. 513 - block_size and returns the
    lowest one where block_size consecutive slots are free. The search does
    not wrap back to channel 1.

    Args:
        channel_map: Occupancy of the target universe
        start_from: Lowest acceptable start channel (1-based)
        block_size: Number of channels needed

    Returns:
        1-based start channel of the block

    Raises:
        OutOfRangeError: If start_from or block_size is invalid
        CapacityExhaustedError: If no run exists in the search range
    """
    check_block_size(block_size)
    if start_from < DMX_CHANNEL_MIN:
        raise OutOfRangeError(
            f"Search must start at channel {DMX_CHANNEL_MIN} or later (got {start_from})",
            start_channel=start_from,
            channel_count=block_size
        )

    slots = channel_map.slots
    last_start = UNIVERSE_SIZE - block_size  # 0-based

    offset = start_from - 1
    while offset <= last_start:
        # Jump past the last occupied slot inside the candidate window
        blocked_at = None
        for i in range(offset + block_size - 1, offset - 1, -1):
            if not slots[i].is_free:
                blocked_at = i
                break
        if blocked_at is None:
            return offset + 1
        offset = blocked_at + 1

    logger.info(
        f"No {block_size}-channel block in universe {channel_map.universe} "
        f"from channel {start_from}"
    )
    raise CapacityExhaustedError(
        universe=channel_map.universe,
        block_size=block_size,
        start_from=start_from
    )


def validate_range(channel_map: ChannelMap, start_channel: int, block_size: int) -> None:
    """
    Check that a requested channel range is inside the universe and free.

    The bounds check runs before the occupancy check so an out-of-universe
    request is never reported as a conflict.

    Args:
        channel_map: Occupancy of the target universe
        start_channel: Requested first channel
        block_size: Number of channels

    Raises:
        OutOfRangeError: If the range starts below 1 or ends beyond 512
        ChannelConflictError: On the first (lowest) occupied channel in the range
    """
    check_block_size(block_size)
    end_channel = start_channel + block_size - 1

    if start_channel < DMX_CHANNEL_MIN:
        raise OutOfRangeError(
            f"Start channel {start_channel} is below {DMX_CHANNEL_MIN}",
            start_channel=start_channel,
            channel_count=block_size
        )
    if end_channel > DMX_CHANNEL_MAX:
        raise OutOfRangeError(
            f"Channel range {format_range(start_channel, end_channel)} exceeds "
            f"universe size ({UNIVERSE_SIZE} channels)",
            start_channel=start_channel,
            channel_count=block_size
        )

    for channel in range(start_channel, end_channel + 1):
        slot = channel_map.slot(channel)
        if not slot.is_free:
            logger.warning(
                f"Channel conflict at universe {channel_map.universe}, "
                f"channel {channel} (in use by {slot.fixture_name})"
            )
            raise ChannelConflictError(
                universe=channel_map.universe,
                channel=channel,
                fixture_name=slot.fixture_name or "",
                fixture_id=slot.fixture_id,
                start_channel=start_channel,
                channel_count=block_size
            )
