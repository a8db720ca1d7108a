"""Data models for timeline composition and mixdown."""

from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from storymix.errors import InvalidInputError


class Category(str, Enum):
    NARRATION = "narration"
    DIALOGUE = "dialogue"

    @classmethod
    def parse(cls, value) -> "Category":
        """Accept an enum member or its name/value in any case."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidInputError(f"Unknown unit category: {value!r}") from None


class OverlayKind(str, Enum):
    EFFECT = "effect"
    MUSIC = "music"

    @classmethod
    def parse(cls, value) -> "OverlayKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidInputError(f"Unknown overlay kind: {value!r}") from None


@dataclass(frozen=True, eq=False)
class DecodedClip:
    """Float PCM audio, shape (channels, frames), values in [-1.0, 1.0]."""

    samples: np.ndarray
    sample_rate: int

    def __post_init__(self):
        samples = np.array(self.samples, dtype=np.float32)
        if samples.ndim == 1:
            samples = samples.reshape((1, -1))
        if samples.ndim != 2 or samples.shape[0] < 1:
            raise InvalidInputError(f"Clip samples must be (channels, frames), got {samples.shape}")
        if self.sample_rate <= 0:
            raise InvalidInputError(f"Sample rate must be positive, got {self.sample_rate}")
        samples.setflags(write=False)
        object.__setattr__(self, "samples", samples)

    @property
    def channels(self) -> int:
        return self.samples.shape[0]

    @property
    def frames(self) -> int:
        return self.samples.shape[1]

    @property
    def duration(self) -> float:
        return self.frames / self.sample_rate


@dataclass(frozen=True)
class DecodeFailure:
    """Returned by the decoder in place of a clip it could not read."""

    reason: str
    label: str | None = None


@dataclass(frozen=True)
class NarrativeUnit:
    sequence_index: int
    category: Category
    audio: DecodedClip
    group_id: int | None = None    # scene index this utterance belongs to
    text: str = ""                 # only used for subtitles
    speaker: str = ""


@dataclass(frozen=True)
class OverlayClip:
    target_scene_index: int
    kind: OverlayKind
    audio: DecodedClip
    fallback_start_time: float = 0.0
    label: str = ""


@dataclass(frozen=True)
class Scene:
    scene_index: int
    start_time: float | None       # None when unanchored and not interpolated
    anchored: bool = False


@dataclass(frozen=True)
class PositionedClip:
    clip: DecodedClip
    start_time: float
    layer: str                     # "speech", "effect" or "music"

    @property
    def end_time(self) -> float:
        return self.start_time + self.clip.duration


@dataclass(frozen=True)
class Timeline:
    unit_starts: tuple[float, ...]
    scenes: tuple[Scene, ...]
    speech_end: float

    def scene_start_times(self) -> list[float | None]:
        return [scene.start_time for scene in self.scenes]

    def to_dict(self) -> dict:
        """JSON-ready view for timeline and subtitle consumers."""
        return {
            "speech_end": round(self.speech_end, 6),
            "units": [
                {"sequence_index": i, "start_time": round(t, 6)}
                for i, t in enumerate(self.unit_starts)
            ],
            "scenes": [
                {
                    "scene_index": s.scene_index,
                    "start_time": None if s.start_time is None else round(s.start_time, 6),
                    "anchored": s.anchored,
                }
                for s in self.scenes
            ],
        }


@dataclass(frozen=True, eq=False)
class RenderedMix:
    samples: np.ndarray            # (channels, frames) float32
    sample_rate: int

    @property
    def channels(self) -> int:
        return self.samples.shape[0]

    @property
    def frames(self) -> int:
        return self.samples.shape[1]

    @property
    def duration(self) -> float:
        return self.frames / self.sample_rate


@dataclass(frozen=True)
class UnitDescriptor:
    """Speech utterance as handed over by the orchestration layer."""

    sequence_index: int
    category: Category | str
    audio: bytes
    group_id: int | None = None
    text: str = ""
    speaker: str = ""


@dataclass(frozen=True)
class OverlayDescriptor:
    target_scene_index: int
    kind: OverlayKind | str
    audio: bytes
    fallback_start_time: float = 0.0
    label: str = ""


@dataclass(frozen=True, eq=False)
class CompositionResult:
    wav: bytes
    timeline: Timeline
    sample_rate: int
    channels: int
    frames: int
    failed_units: tuple[int, ...] = field(default_factory=tuple)
    skipped_overlays: tuple[int, ...] = field(default_factory=tuple)

    @property
    def duration(self) -> float:
        return self.frames / self.sample_rate
