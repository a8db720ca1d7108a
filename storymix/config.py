"""Compositor configuration: gap table, gains, presets, and JSON overrides."""

import dataclasses
import json
import logging
import math
import os
from dataclasses import dataclass, field

from storymix.constants import (
    DEFAULT_CHANNELS,
    DEFAULT_SAMPLE_RATE,
    EFFECT_TARGET_PEAK,
    GAP_BETWEEN_SCENES,
    GAP_DIALOGUE_TO_DIALOGUE,
    GAP_DIALOGUE_TO_NARRATION,
    GAP_NARRATION_TO_DIALOGUE,
    GAP_NARRATION_TO_NARRATION,
    MAX_DECODE_WORKERS,
    MAX_RENDER_SECONDS,
    MUSIC_GAIN,
    SILENT_EFFECT_GAIN,
)
from storymix.errors import InvalidInputError
from storymix.models import Category

logger = logging.getLogger(__name__)

GapTable = dict[tuple[Category, Category], float]


def default_gaps() -> GapTable:
    return {
        (Category.NARRATION, Category.DIALOGUE): GAP_NARRATION_TO_DIALOGUE,
        (Category.DIALOGUE, Category.NARRATION): GAP_DIALOGUE_TO_NARRATION,
        (Category.DIALOGUE, Category.DIALOGUE): GAP_DIALOGUE_TO_DIALOGUE,
        (Category.NARRATION, Category.NARRATION): GAP_NARRATION_TO_NARRATION,
    }


@dataclass(frozen=True)
class CompositorConfig:
    """Everything that differs between call sites of the compositor."""

    gaps: GapTable = field(default_factory=default_gaps)
    scene_change_gap: float | None = None
    interpolate_scenes: bool = True
    music_layer: bool = True
    target_peak: float = EFFECT_TARGET_PEAK
    silent_effect_gain: float = SILENT_EFFECT_GAIN
    music_gain: float = MUSIC_GAIN
    default_sample_rate: int = DEFAULT_SAMPLE_RATE
    default_channels: int = DEFAULT_CHANNELS
    max_render_seconds: float = MAX_RENDER_SECONDS
    max_decode_workers: int = MAX_DECODE_WORKERS

    def gap(self, prev: Category, curr: Category) -> float:
        return self.gaps.get((prev, curr), 0.0)

    def to_dict(self) -> dict:
        data = dataclasses.asdict(self)
        data["gaps"] = {_gap_key(pair): seconds for pair, seconds in self.gaps.items()}
        return data


def _gap_key(pair: tuple[Category, Category]) -> str:
    return f"{pair[0].value}->{pair[1].value}"


def _parse_gap_key(key: str) -> tuple[Category, Category]:
    """Parse "narration->dialogue" into a category pair."""
    parts = key.split("->")
    if len(parts) != 2:
        raise InvalidInputError(f"Gap key must look like 'narration->dialogue', got {key!r}")
    return Category.parse(parts[0]), Category.parse(parts[1])


PRESETS: dict[str, CompositorConfig] = {
    # Book narration: cadence table, speech + effects only.
    "book": CompositorConfig(music_layer=False),
    # Screenplay: every line is dialogue, longer beat between scenes, music beds.
    "screenplay": CompositorConfig(scene_change_gap=GAP_BETWEEN_SCENES),
    # Variants: book cadence with a music layer.
    "variants": CompositorConfig(),
}


def get_preset(name: str) -> CompositorConfig:
    try:
        return PRESETS[name]
    except KeyError:
        valid = ", ".join(sorted(PRESETS))
        raise InvalidInputError(f"Unknown preset: {name!r} (valid: {valid})") from None


def config_from_dict(data: dict, base: CompositorConfig | None = None) -> CompositorConfig:
    """Apply overrides from a plain dict onto base (default config if None).

    Gap overrides merge into the base table rather than replacing it.
    """
    if base is None:
        base = CompositorConfig()

    valid_keys = {f.name for f in dataclasses.fields(CompositorConfig)}
    unknown = set(data) - valid_keys
    if unknown:
        raise InvalidInputError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    changes = dict(data)
    if "gaps" in changes:
        overrides = changes["gaps"] or {}
        if not isinstance(overrides, dict):
            raise InvalidInputError("gaps must be an object of \"prev->curr\": seconds")
        gaps = dict(base.gaps)
        for key, seconds in overrides.items():
            gaps[_parse_gap_key(key)] = _number(f"gap {key}", seconds)
        changes["gaps"] = gaps

    config = dataclasses.replace(base, **changes)
    _validate(config)
    return config


def load_config(path: str, base: CompositorConfig | None = None) -> CompositorConfig:
    """Read JSON overrides from path. A missing file yields base unchanged."""
    if base is None:
        base = CompositorConfig()
    if not os.path.exists(path):
        logger.warning("Config file not found: %s, using defaults", path)
        return base
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"Malformed config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise InvalidInputError(f"Config file {path} must contain a JSON object")
    return config_from_dict(data, base)


def _number(name: str, value) -> float:
    """value as a finite float; bools and strings are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise InvalidInputError(f"{name} must be finite, got {value!r}")
    return float(value)


def _integer(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"{name} must be an integer, got {value!r}")
    return value


def _validate(config: CompositorConfig) -> None:
    if any(_number("gap", seconds) < 0 for seconds in config.gaps.values()):
        raise InvalidInputError("Gap durations must be non-negative")
    if config.scene_change_gap is not None and _number("scene_change_gap", config.scene_change_gap) < 0:
        raise InvalidInputError("scene_change_gap must be non-negative")

    for name in ("interpolate_scenes", "music_layer"):
        if not isinstance(getattr(config, name), bool):
            raise InvalidInputError(f"{name} must be true or false, got {getattr(config, name)!r}")

    if _number("target_peak", config.target_peak) <= 0:
        raise InvalidInputError("target_peak must be positive")
    for name in ("silent_effect_gain", "music_gain"):
        if _number(name, getattr(config, name)) < 0:
            raise InvalidInputError(f"{name} must be non-negative")

    sample_rate = _integer("default_sample_rate", config.default_sample_rate)
    channels = _integer("default_channels", config.default_channels)
    if sample_rate <= 0 or channels <= 0:
        raise InvalidInputError("Default sample rate and channel count must be positive")
    if _integer("max_decode_workers", config.max_decode_workers) < 1:
        raise InvalidInputError("max_decode_workers must be at least 1")
    if _number("max_render_seconds", config.max_render_seconds) <= 0:
        raise InvalidInputError("max_render_seconds must be positive")
