"""One parameterized pipeline: decode → schedule → interpolate → place → render → encode."""

import logging

from storymix.config import CompositorConfig
from storymix.decoder import decode_many, silent_clip
from storymix.encoder import encode_wav
from storymix.errors import InvalidInputError
from storymix.interpolator import resolve_scene_starts
from storymix.models import (
    Category,
    CompositionResult,
    DecodeFailure,
    NarrativeUnit,
    OverlayClip,
    OverlayDescriptor,
    OverlayKind,
    PositionedClip,
    Timeline,
    UnitDescriptor,
)
from storymix.overlays import place_overlays
from storymix.renderer import output_format, render
from storymix.scheduler import schedule_units

logger = logging.getLogger(__name__)


class Compositor:
    """Turns speech units and scene overlays into a single WAV mix.

    The book, screenplay and variant flows differ only in their
    CompositorConfig (gap table, scene gap, interpolation, music layer).
    """

    def __init__(self, config: CompositorConfig | None = None):
        self.config = config or CompositorConfig()

    def decode(
        self,
        unit_descriptors: list[UnitDescriptor],
        overlay_descriptors: list[OverlayDescriptor],
    ) -> tuple[list[NarrativeUnit], list[OverlayClip], set[int], list[int]]:
        """Decode every payload in one bounded pool.

        Failed speech decodes become zero-length silence; failed overlays are
        skipped. Returns (units, overlays, failed unit indexes, skipped
        overlay indexes).
        """
        ordered = sorted(unit_descriptors, key=lambda d: d.sequence_index)
        payloads = [d.audio for d in ordered] + [d.audio for d in overlay_descriptors]
        labels = [f"unit {d.sequence_index}" for d in ordered] + [
            f"overlay {i}" + (f" ({d.label})" if d.label else "")
            for i, d in enumerate(overlay_descriptors)
        ]
        decoded = decode_many(payloads, labels, max_workers=self.config.max_decode_workers)

        units = []
        failed = set()
        for descriptor, result in zip(ordered, decoded[:len(ordered)]):
            if isinstance(result, DecodeFailure):
                failed.add(descriptor.sequence_index)
                result = silent_clip(self.config.default_sample_rate, self.config.default_channels)
            units.append(NarrativeUnit(
                sequence_index=descriptor.sequence_index,
                category=Category.parse(descriptor.category),
                audio=result,
                group_id=descriptor.group_id,
                text=descriptor.text,
                speaker=descriptor.speaker,
            ))

        overlays = []
        skipped = []
        for i, (descriptor, result) in enumerate(zip(overlay_descriptors, decoded[len(ordered):])):
            if isinstance(result, DecodeFailure):
                skipped.append(i)
                continue
            overlays.append(OverlayClip(
                target_scene_index=descriptor.target_scene_index,
                kind=OverlayKind.parse(descriptor.kind),
                audio=result,
                fallback_start_time=float(descriptor.fallback_start_time),
                label=descriptor.label,
            ))

        if failed:
            logger.warning("%d of %d speech clips failed to decode; using silence", len(failed), len(units))
        if skipped:
            logger.warning("Skipped %d overlay(s) that failed to decode", len(skipped))
        return units, overlays, failed, skipped

    def build_timeline(self, units: list[NarrativeUnit], scene_count: int) -> Timeline:
        """Unit and scene start times, without rendering any audio."""
        if scene_count < 0:
            raise InvalidInputError(f"scene_count must be non-negative, got {scene_count}")
        starts, speech_end = schedule_units(units, self.config)
        scenes = resolve_scene_starts(
            scene_count, units, starts, speech_end, interpolate=self.config.interpolate_scenes,
        )
        return Timeline(unit_starts=tuple(starts), scenes=scenes, speech_end=speech_end)

    def compose_clips(
        self,
        units: list[NarrativeUnit],
        overlays: list[OverlayClip],
        scene_count: int,
        failed: set[int] = frozenset(),
        skipped: list[int] = (),
    ) -> CompositionResult:
        """Run the pipeline on already-decoded clips."""
        timeline = self.build_timeline(units, scene_count)

        clips = [
            PositionedClip(clip=unit.audio, start_time=start, layer="speech")
            for unit, start in zip(units, timeline.unit_starts)
        ]
        clips.extend(place_overlays(overlays, timeline.scenes, self.config))

        sample_rate, channels = output_format(units, self.config, failed)
        mix = render(clips, sample_rate, channels, self.config)
        wav = encode_wav(mix)
        logger.info("Encoded %.3fs mix (%d bytes)", mix.duration, len(wav))

        return CompositionResult(
            wav=wav,
            timeline=timeline,
            sample_rate=mix.sample_rate,
            channels=mix.channels,
            frames=mix.frames,
            failed_units=tuple(sorted(failed)),
            skipped_overlays=tuple(skipped),
        )

    def compose(
        self,
        unit_descriptors: list[UnitDescriptor],
        overlay_descriptors: list[OverlayDescriptor],
        scene_count: int,
    ) -> CompositionResult:
        """Decode payloads and run the full pipeline."""
        units, overlays, failed, skipped = self.decode(unit_descriptors, overlay_descriptors)
        return self.compose_clips(units, overlays, scene_count, failed, skipped)
