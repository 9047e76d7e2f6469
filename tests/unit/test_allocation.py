"""
Unit Tests for Block Search and Conflict Validation

Tests for:
- First-fit block search
- Search range without wrap-around
- Capacity exhaustion
- Manual range validation and conflict precision
- Bounds checks taking priority over conflicts
"""

import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from core.patch.allocation import find_block, validate_range
from core.patch.channel_map import ChannelMap
from core.patch.errors import (
    CapacityExhaustedError,
    ChannelConflictError,
    OutOfRangeError,
)
from core.patch.types import FixturePatch


def occupied(*ranges, universe=1):
    """Channel map with the given inclusive (start, end) ranges occupied."""
    patches = [
        FixturePatch(
            fixture_id=f"fx{i}",
            name=f"Fixture {i}",
            universe=universe,
            start_channel=start,
            channel_count=end - start + 1,
        )
        for i, (start, end) in enumerate(ranges)
    ]
    return ChannelMap.build(universe, patches)


class TestFindBlock:
    """Tests for find_block."""

    def test_empty_universe_starts_at_one(self):
        """Test first block of an empty universe."""
        assert find_block(ChannelMap.empty(1), 1, 8) == 1

    def test_first_fit_lowest_start(self):
        """Test that the lowest sufficient block wins."""
        # Free only at 10-20 and 30-40
        channel_map = occupied((1, 9), (21, 29), (41, 512))

        assert find_block(channel_map, 1, 5) == 10

    def test_first_fit_not_best_fit(self):
        """Test a large free run is used even when a tighter one exists later."""
        # Free 10-20 (11 channels) and 30-34 (exactly 5)
        channel_map = occupied((1, 9), (21, 29), (35, 512))

        assert find_block(channel_map, 1, 5) == 10

    def test_search_respects_start_from(self):
        """Test blocks before start_from are skipped."""
        channel_map = occupied((1, 9), (21, 29), (41, 512))

        assert find_block(channel_map, 17, 5) == 30

    def test_block_too_big_for_first_gap(self):
        """Test that a gap too small is skipped."""
        channel_map = occupied((1, 9), (21, 29), (41, 512))

        # 10-20 has 11 free, 30-40 has 11 free; 12 fits nowhere
        with pytest.raises(CapacityExhaustedError):
            find_block(channel_map, 1, 12)

    def test_exhaustion_with_two_free_channels(self):
        """Test a 3-channel request with only 511-512 free."""
        channel_map = occupied((1, 510))

        with pytest.raises(CapacityExhaustedError) as exc_info:
            find_block(channel_map, 1, 3)

        assert exc_info.value.block_size == 3
        assert exc_info.value.universe == 1

    def test_exact_fit_at_end(self):
        """Test the last two channels can be assigned."""
        channel_map = occupied((1, 510))
        assert find_block(channel_map, 1, 2) == 511

    def test_no_wrap_around(self):
        """Test search does not retry from channel 1."""
        channel_map = ChannelMap.empty(1)

        with pytest.raises(CapacityExhaustedError):
            find_block(channel_map, 510, 4)

    def test_whole_universe(self):
        """Test a 512-channel footprint on an empty universe."""
        assert find_block(ChannelMap.empty(1), 1, 512) == 1

    def test_result_never_exceeds_universe(self):
        """Test returned blocks always end at or before 512."""
        channel_map = occupied((100, 200), (300, 305))
        for size in (1, 7, 64, 200, 206):
            start = find_block(channel_map, 1, size)
            assert start + size - 1 <= 512

    def test_invalid_block_size(self):
        """Test zero and oversized footprints."""
        with pytest.raises(OutOfRangeError):
            find_block(ChannelMap.empty(1), 1, 0)
        with pytest.raises(OutOfRangeError):
            find_block(ChannelMap.empty(1), 1, 513)

    def test_invalid_start_from(self):
        """Test search starting below channel 1."""
        with pytest.raises(OutOfRangeError):
            find_block(ChannelMap.empty(1), 0, 4)


class TestValidateRange:
    """Tests for validate_range."""

    def test_free_range_passes(self):
        """Test a free range validates without error."""
        channel_map = occupied((5, 8))
        assert validate_range(channel_map, 9, 4) is None

    def test_conflict_names_fixture_and_first_channel(self):
        """Test conflict reports the first colliding channel, not the patch start."""
        patch = FixturePatch(
            fixture_id="par-1", name="Par1", universe=1,
            start_channel=5, channel_count=4
        )
        channel_map = ChannelMap.build(1, [patch])

        with pytest.raises(ChannelConflictError) as exc_info:
            validate_range(channel_map, 6, 3)

        error = exc_info.value
        assert error.fixture_name == "Par1"
        assert error.fixture_id == "par-1"
        assert error.channel == 6
        assert "Par1" in str(error)
        assert "Channel 6" in str(error)

    def test_conflict_when_range_starts_before_patch(self):
        """Test overlap from below reports the patch's first channel."""
        channel_map = occupied((5, 8))

        with pytest.raises(ChannelConflictError) as exc_info:
            validate_range(channel_map, 3, 4)

        assert exc_info.value.channel == 5

    def test_out_of_universe_before_conflict(self):
        """Test bounds are checked before occupancy."""
        channel_map = occupied((500, 512))

        with pytest.raises(OutOfRangeError) as exc_info:
            validate_range(channel_map, 510, 4)

        assert "510-513" in str(exc_info.value)
        assert "512" in str(exc_info.value)

    def test_start_below_one(self):
        """Test start channel 0 is rejected."""
        with pytest.raises(OutOfRangeError):
            validate_range(ChannelMap.empty(1), 0, 4)

    def test_out_of_range_is_value_error(self):
        """Test OutOfRangeError can be handled as bad input."""
        with pytest.raises(ValueError):
            validate_range(ChannelMap.empty(1), 512, 2)

    def test_last_channel(self):
        """Test a single channel at 512 is valid."""
        assert validate_range(ChannelMap.empty(1), 512, 1) is None

    def test_error_to_dict(self):
        """Test conflict serialization."""
        channel_map = occupied((1, 4))

        with pytest.raises(ChannelConflictError) as exc_info:
            validate_range(channel_map, 2, 2)

        d = exc_info.value.to_dict()
        assert d["errorType"] == "channel_conflict"
        assert d["channel"] == 2
        assert d["fixtureName"] == "Fixture 0"
