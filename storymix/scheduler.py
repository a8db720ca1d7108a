"""Compute absolute start times for narrative units with cadence gaps."""

import logging

from storymix.config import CompositorConfig
from storymix.errors import InvalidInputError
from storymix.models import NarrativeUnit

logger = logging.getLogger(__name__)


def _calculate_pause(prev: NarrativeUnit, curr: NarrativeUnit, config: CompositorConfig) -> float:
    """Pause in seconds inserted before curr.

    A configured scene-change gap wins over the category table when the two
    units belong to different scenes.
    """
    if config.scene_change_gap is not None and prev.group_id != curr.group_id:
        return config.scene_change_gap
    return config.gap(prev.category, curr.category)


def check_sequence(units: list[NarrativeUnit]) -> None:
    """Require sequence indexes 0..N-1, in order, without gaps or repeats."""
    for position, unit in enumerate(units):
        if unit.sequence_index != position:
            raise InvalidInputError(
                f"Narrative unit at position {position} has sequence_index "
                f"{unit.sequence_index}; expected contiguous indexes starting at 0"
            )


def schedule_units(
    units: list[NarrativeUnit],
    config: CompositorConfig,
) -> tuple[list[float], float]:
    """Lay units end to end with category-dependent pauses.

    Returns (start times indexed by sequence_index, final cursor time).
    A zero-length unit still gets a start time and advances nothing.
    """
    check_sequence(units)

    starts = []
    cursor = 0.0
    for i, unit in enumerate(units):
        if i > 0:
            cursor += _calculate_pause(units[i - 1], unit, config)
        starts.append(cursor)
        cursor += unit.audio.duration

    logger.debug("Scheduled %d units, speech ends at %.3fs", len(units), cursor)
    return starts, cursor
