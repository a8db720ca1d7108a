"""Resolve scene start times, interpolating scenes that hold no speech."""

import logging

from storymix.models import NarrativeUnit, Scene

logger = logging.getLogger(__name__)


def scene_anchors(
    scene_count: int,
    units: list[NarrativeUnit],
    unit_starts: list[float],
) -> list[float | None]:
    """Earliest unit start per scene, or None for scenes without speech."""
    anchors: list[float | None] = [None] * scene_count
    for unit, start in zip(units, unit_starts):
        scene = unit.group_id
        if scene is None:
            continue
        if not 0 <= scene < scene_count:
            logger.debug("Unit %d references scene %d outside 0..%d", unit.sequence_index, scene, scene_count - 1)
            continue
        if anchors[scene] is None or start < anchors[scene]:
            anchors[scene] = start
    return anchors


def interpolate_anchors(anchors: list[float | None], end_time: float) -> list[float]:
    """Fill unknown anchors by linear interpolation over scene index distance.

    With no known anchor before a scene, a virtual anchor of 0.0 sits at
    index 0; with none after it, the end of the speech timeline sits at the
    last index.
    """
    count = len(anchors)
    known = [i for i, value in enumerate(anchors) if value is not None]
    result = []

    for i, value in enumerate(anchors):
        if value is not None:
            result.append(value)
            continue

        before = [k for k in known if k < i]
        after = [k for k in known if k > i]
        p, p_time = (before[-1], anchors[before[-1]]) if before else (0, 0.0)
        q, q_time = (after[0], anchors[after[0]]) if after else (count - 1, end_time)

        if q == p:
            result.append(p_time)
        else:
            result.append(p_time + (i - p) / (q - p) * (q_time - p_time))

    return result


def resolve_scene_starts(
    scene_count: int,
    units: list[NarrativeUnit],
    unit_starts: list[float],
    end_time: float,
    interpolate: bool = True,
) -> tuple[Scene, ...]:
    """Start time for every scene in 0..scene_count-1.

    Without interpolation, scenes with no speech keep start_time None and
    their overlays fall back to their own start times.
    """
    anchors = scene_anchors(scene_count, units, unit_starts)

    if interpolate:
        starts = interpolate_anchors(anchors, end_time)
    else:
        starts = anchors

    scenes = tuple(
        Scene(scene_index=i, start_time=start, anchored=anchors[i] is not None)
        for i, start in enumerate(starts)
    )

    known = [s.start_time for s in scenes if s.start_time is not None]
    if any(b < a for a, b in zip(known, known[1:])):
        # Out-of-order scene assignment upstream; left as given.
        logger.warning("Scene start times are not monotonic: %s", [round(t, 3) for t in known])

    unanchored = sum(1 for s in scenes if not s.anchored)
    logger.debug("Resolved %d scenes (%d without speech)", scene_count, unanchored)
    return scenes
