"""Timeline helpers for subtitle and scrubber consumers."""

from storymix.constants import SCENE_TAIL_SECONDS
from storymix.models import NarrativeUnit, Timeline


def srt_timestamp(seconds: float) -> str:
    """Format seconds as HH:MM:SS,mmm.

    Rounds to whole milliseconds first, so 1.9996 becomes 00:00:02,000.
    """
    total_ms = max(0, int(round(seconds * 1000)))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, ms = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{ms:03d}"


def clock(seconds: float) -> str:
    """Player-style M:SS."""
    whole = max(0, int(seconds))
    return f"{whole // 60}:{whole % 60:02d}"


def scene_end_time(timeline: Timeline, index: int, total_duration: float | None = None) -> float:
    """Next scene's start, or the end of the mix for the last scene."""
    for scene in timeline.scenes[index + 1:]:
        if scene.start_time is not None:
            return scene.start_time
    if total_duration:
        return total_duration
    starts = [t for t in timeline.scene_start_times() if t is not None]
    return (starts[-1] if starts else 0.0) + SCENE_TAIL_SECONDS


def scene_at(timeline: Timeline, seconds: float) -> int:
    """Index of the last scene whose start is at or before seconds (0 if none)."""
    current = 0
    for scene in timeline.scenes:
        if scene.start_time is not None and seconds >= scene.start_time:
            current = scene.scene_index
    return current


def build_srt(units: list[NarrativeUnit], timeline: Timeline) -> str:
    """SRT cues for every unit with text, timed by the schedule.

    Units with no audio (failed decodes) get no cue, since it would have
    zero display time.
    """
    cues = []
    for unit, start in zip(units, timeline.unit_starts):
        text = unit.text.strip()
        if not text or unit.audio.frames == 0:
            continue
        end = start + unit.audio.duration
        number = len(cues) + 1
        cues.append(f"{number}\n{srt_timestamp(start)} --> {srt_timestamp(end)}\n{text}\n")
    return "\n".join(cues)
