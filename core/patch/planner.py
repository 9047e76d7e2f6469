"""
Assignment Planner - Place a batch of fixtures into one universe

The planner walks the fixture specs with a cursor. Each spec gets the
first free block at or after the cursor, and the cursor then moves just
past that block. Blocks proposed earlier in the batch are therefore never
reused by later specs, even though nothing has been persisted yet.

Classes:
    AssignmentPlanner: Builds AssignmentPlan objects

Usage:
    planner = AssignmentPlanner()
    plan = planner.plan(specs, channel_map, starting_channel=1,
                        grouping_strategy="by_type")
"""

from typing import List, Dict, Any, Tuple, Union
import logging

from .allocation import find_block
from .channel_map import ChannelMap
from .errors import CapacityExhaustedError
from .types import (
    AssignmentPlan,
    ChannelAssignment,
    FixtureSpec,
    FixtureType,
    GroupingStrategy,
    UNIVERSE_SPLIT_THRESHOLD,
    format_range,
)

logger = logging.getLogger(__name__)


class AssignmentPlanner:
    """
    Produces channel assignment plans for batches of fixture specs.

    Grouping strategies only decide the ORDER in which specs are placed;
    placement itself is always sequential first-fit from the cursor.
    """

    SPLIT_RECOMMENDATION = (
        "Consider splitting fixtures across multiple universes for better organization"
    )
    GROUPING_RECOMMENDATION = (
        "Consider grouping fixtures by manufacturer/type for easier patching"
    )

    def plan(
        self,
        specs: List[FixtureSpec],
        channel_map: ChannelMap,
        starting_channel: int = 1,
        grouping_strategy: Union[GroupingStrategy, str] = GroupingStrategy.SEQUENTIAL
    ) -> AssignmentPlan:
        """
        Assign channel ranges to every spec, or fail as a whole.

        Args:
            specs: Fixtures to place
            channel_map: Occupancy of the target universe
            starting_channel: Where the cursor starts
            grouping_strategy: Placement order

        Returns:
            AssignmentPlan with assignments in placement order

        Raises:
            CapacityExhaustedError: Naming the first spec that does not fit
            OutOfRangeError: If starting_channel or a footprint is invalid
            ValueError: If the grouping strategy is unknown
        """
        strategy = GroupingStrategy.parse(grouping_strategy)
        ordered = self.order_specs(specs, strategy)

        assignments: List[ChannelAssignment] = []
        cursor = starting_channel

        for spec in ordered:
            channel_count = spec.resolved_channel_count()
            try:
                start = find_block(channel_map, cursor, channel_count)
            except CapacityExhaustedError:
                raise CapacityExhaustedError(
                    universe=channel_map.universe,
                    block_size=channel_count,
                    start_from=cursor,
                    fixture_name=spec.name
                )

            assignments.append(ChannelAssignment(
                spec=spec,
                universe=channel_map.universe,
                start_channel=start,
                channel_count=channel_count
            ))
            cursor = start + channel_count

        gaps = self.find_gaps(assignments)
        plan = AssignmentPlan(
            universe=channel_map.universe,
            grouping_strategy=strategy,
            assignments=assignments,
            gaps=gaps,
            recommendations=self.recommendations(assignments, gaps),
            channels_remaining=channel_map.available_count - sum(a.channel_count for a in assignments)
        )

        logger.debug(
            f"Planned {len(assignments)} fixtures in universe {channel_map.universe} "
            f"({plan.total_channels} channels, strategy {strategy.value})"
        )
        return plan

    def order_specs(
        self,
        specs: List[FixtureSpec],
        strategy: GroupingStrategy
    ) -> List[FixtureSpec]:
        """
        Order specs for placement.

        by_type groups identical manufacturer/model pairs, by_function
        groups fixture categories. Groups appear in order of their first
        member and keep input order internally.
        """
        if strategy == GroupingStrategy.SEQUENTIAL:
            return list(specs)

        if strategy == GroupingStrategy.BY_TYPE:
            key_fn = self._type_key
        else:
            key_fn = self._function_key

        groups: Dict[Any, List[FixtureSpec]] = {}
        for spec in specs:
            groups.setdefault(key_fn(spec), []).append(spec)

        ordered: List[FixtureSpec] = []
        for members in groups.values():
            ordered.extend(members)
        return ordered

    @staticmethod
    def _type_key(spec: FixtureSpec) -> Tuple[str, str]:
        return (spec.manufacturer.strip().lower(), spec.model.strip().lower())

    @staticmethod
    def _function_key(spec: FixtureSpec) -> FixtureType:
        return spec.fixture_type or FixtureType.OTHER

    @staticmethod
    def find_gaps(assignments: List[ChannelAssignment]) -> List[str]:
        """Unused ranges between consecutively placed assignments."""
        gaps = []
        for prev, current in zip(assignments, assignments[1:]):
            if current.start_channel > prev.end_channel + 1:
                gaps.append(format_range(prev.end_channel + 1, current.start_channel - 1))
        return gaps

    def recommendations(
        self,
        assignments: List[ChannelAssignment],
        gaps: List[str]
    ) -> List[str]:
        """Advisory notes about a plan."""
        notes = []

        total = sum(a.channel_count for a in assignments)
        if total > UNIVERSE_SPLIT_THRESHOLD:
            notes.append(self.SPLIT_RECOMMENDATION)

        if gaps:
            notes.append(
                f"Channel gaps detected: {', '.join(gaps)} - consider reorganizing for efficiency"
            )

        manufacturers = {a.spec.manufacturer for a in assignments}
        if len(manufacturers) > 1:
            notes.append(self.GROUPING_RECOMMENDATION)

        return notes
