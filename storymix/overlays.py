"""Overlay placement: peak-normalize effects, attenuate music, anchor to scenes."""

import logging

import numpy as np

from storymix.config import CompositorConfig
from storymix.constants import EFFECT_TARGET_PEAK, SILENT_EFFECT_GAIN
from storymix.models import DecodedClip, OverlayClip, OverlayKind, PositionedClip, Scene

logger = logging.getLogger(__name__)


def peak(clip: DecodedClip) -> float:
    """Largest absolute sample value across all channels."""
    if clip.frames == 0:
        return 0.0
    return float(np.max(np.abs(clip.samples)))


def apply_gain(clip: DecodedClip, gain: float) -> DecodedClip:
    """Return a new clip scaled by gain.

    Gains within float32 precision of 1.0 return the clip itself.
    """
    if abs(gain - 1.0) < 1e-6:
        return clip
    return DecodedClip(samples=clip.samples * np.float32(gain), sample_rate=clip.sample_rate)


def normalize_peak(
    clip: DecodedClip,
    target_peak: float = EFFECT_TARGET_PEAK,
    silent_gain: float = SILENT_EFFECT_GAIN,
) -> DecodedClip:
    """Scale clip so its peak equals target_peak.

    Silent clips (peak 0) get silent_gain instead, so no division by zero.
    """
    clip_peak = peak(clip)
    if clip_peak > 0:
        gain = target_peak / clip_peak
    else:
        gain = silent_gain
    return apply_gain(clip, gain)


def resolve_start(overlay: OverlayClip, scenes: tuple[Scene, ...]) -> float:
    """Scene start for the overlay, or its fallback for unknown scenes."""
    index = overlay.target_scene_index
    if 0 <= index < len(scenes) and scenes[index].start_time is not None:
        return scenes[index].start_time

    if not 0 <= index < len(scenes):
        logger.warning(
            "Overlay %s targets scene %d outside 0..%d, using fallback %.3fs",
            overlay.label or overlay.kind.value, index, len(scenes) - 1, overlay.fallback_start_time,
        )
    else:
        logger.info(
            "Overlay %s targets unanchored scene %d, using fallback %.3fs",
            overlay.label or overlay.kind.value, index, overlay.fallback_start_time,
        )
    return max(0.0, overlay.fallback_start_time)


def place_overlays(
    overlays: list[OverlayClip],
    scenes: tuple[Scene, ...],
    config: CompositorConfig,
) -> list[PositionedClip]:
    """Position every overlay and apply its gain policy.

    Effects are peak-normalized; music gets a flat attenuation and is
    dropped entirely when the music layer is off.
    """
    placed = []
    dropped_music = 0

    for overlay in overlays:
        if overlay.kind == OverlayKind.MUSIC:
            if not config.music_layer:
                dropped_music += 1
                continue
            clip = apply_gain(overlay.audio, config.music_gain)
            layer = "music"
        else:
            clip = normalize_peak(overlay.audio, config.target_peak, config.silent_effect_gain)
            layer = "effect"

        placed.append(PositionedClip(clip=clip, start_time=resolve_start(overlay, scenes), layer=layer))

    if dropped_music:
        logger.info("Music layer disabled: dropped %d music overlay(s)", dropped_music)
    return placed
