"""Mix positioned clips into a single multi-channel buffer."""

import logging
import math
from contextlib import contextmanager

import numpy as np

from storymix.config import CompositorConfig
from storymix.constants import MAX_RENDER_SECONDS
from storymix.errors import RenderAllocationError
from storymix.models import DecodedClip, NarrativeUnit, PositionedClip, RenderedMix

logger = logging.getLogger(__name__)


def output_format(units: list[NarrativeUnit], config: CompositorConfig, failed: set[int] = frozenset()) -> tuple[int, int]:
    """(sample_rate, channels) of the first decoded speech clip, else defaults."""
    for unit in units:
        if unit.sequence_index not in failed:
            return unit.audio.sample_rate, unit.audio.channels
    return config.default_sample_rate, config.default_channels


def render_length(clips: list[PositionedClip], sample_rate: int) -> tuple[float, int]:
    """(end time of the latest event, frame count), never below one frame."""
    end = max((c.end_time for c in clips), default=0.0)
    if not math.isfinite(end):
        raise RenderAllocationError(end, 0, "timeline end is not finite")
    return end, max(1, math.ceil(end * sample_rate))


@contextmanager
def mix_buffer(frames: int, channels: int, sample_rate: int, max_seconds: float = MAX_RENDER_SECONDS):
    """Zeroed float buffer owned by one render.

    The local reference is dropped on exit; whatever the render hands on
    (the RenderedMix) becomes the only owner.
    """
    duration = frames / sample_rate
    if not math.isfinite(duration) or duration > max_seconds:
        raise RenderAllocationError(duration, frames, f"exceeds limit of {max_seconds:.0f}s")
    try:
        buffer = np.zeros((channels, frames), dtype=np.float32)
    except (MemoryError, ValueError) as e:
        raise RenderAllocationError(duration, frames, str(e) or type(e).__name__) from e
    try:
        yield buffer
    finally:
        del buffer


def _resample(samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """Linear-interpolation resampling, per channel."""
    frames = samples.shape[1]
    target_frames = max(1, int(round(frames * target_rate / source_rate)))
    source_pos = np.arange(frames) / source_rate
    target_pos = np.arange(target_frames) / target_rate
    return np.stack([np.interp(target_pos, source_pos, channel) for channel in samples]).astype(np.float32)


def conform(clip: DecodedClip, sample_rate: int, channels: int) -> np.ndarray:
    """Clip samples converted to the output rate and channel layout."""
    samples = clip.samples
    if clip.sample_rate != sample_rate and clip.frames > 0:
        samples = _resample(samples, clip.sample_rate, sample_rate)

    if clip.channels == channels:
        return samples
    if clip.channels == 1:
        return np.repeat(samples, channels, axis=0)
    if channels == 1:
        return samples.mean(axis=0, keepdims=True)
    return samples[[c % clip.channels for c in range(channels)]]


def render(
    clips: list[PositionedClip],
    sample_rate: int,
    channels: int,
    config: CompositorConfig,
) -> RenderedMix:
    """Sum every clip into a fresh buffer at its start offset.

    Plain addition, no limiting; overlay gains are set upstream.
    """
    end, frames = render_length(clips, sample_rate)
    logger.info("Rendering %d clips into %.3fs (%d Hz, %d ch)", len(clips), end, sample_rate, channels)

    with mix_buffer(frames, channels, sample_rate, config.max_render_seconds) as buffer:
        for positioned in clips:
            samples = conform(positioned.clip, sample_rate, channels)
            offset = int(round(positioned.start_time * sample_rate))
            if offset >= frames:
                continue
            length = min(samples.shape[1], frames - offset)
            buffer[:, offset:offset + length] += samples[:, :length]
        return RenderedMix(samples=buffer, sample_rate=sample_rate)
