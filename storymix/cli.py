"""CLI interface: render a manifest to WAV, inspect timelines, list presets."""

import argparse
import logging
import os
import sys

from storymix.artifacts import load_manifest, write_srt, write_timeline, write_wav
from storymix.compositor import Compositor
from storymix.config import PRESETS, CompositorConfig, get_preset, load_config
from storymix.constants import DEFAULT_PRESET, VERSION
from storymix.errors import RenderAllocationError, StoryMixError
from storymix.subtitles import build_srt, clock, scene_at, scene_end_time, srt_timestamp


def _resolve_config(args) -> CompositorConfig:
    """Preset first, then overrides from --config."""
    try:
        config = get_preset(args.preset)
        if args.config:
            if not os.path.exists(args.config):
                print(f"Error: Config file not found: {args.config}", file=sys.stderr)
                raise SystemExit(1)
            config = load_config(args.config, base=config)
    except StoryMixError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)
    return config


def _load(args):
    try:
        return load_manifest(args.manifest)
    except StoryMixError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)


def cmd_render(args):
    """Render a manifest to a WAV file."""
    config = _resolve_config(args)
    manifest = _load(args)
    compositor = Compositor(config)

    try:
        units, overlays, failed, skipped = compositor.decode(manifest.units, manifest.overlays)
        result = compositor.compose_clips(units, overlays, manifest.scene_count, failed, skipped)
    except RenderAllocationError as e:
        print(f"Error: Render failed: {e}", file=sys.stderr)
        raise SystemExit(1)
    except StoryMixError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)

    output_path = write_wav(args.output, result.wav)

    if args.timeline:
        write_timeline(args.timeline, result.timeline, duration=result.duration)
        print(f"Timeline written to {args.timeline}")
    if args.srt:
        write_srt(args.srt, build_srt(units, result.timeline))
        print(f"Subtitles written to {args.srt}")

    if result.failed_units:
        print(f"Warning: {len(result.failed_units)} speech clip(s) could not be decoded "
              f"and were rendered as silence: {list(result.failed_units)}", file=sys.stderr)
    if result.skipped_overlays:
        print(f"Warning: skipped {len(result.skipped_overlays)} overlay(s) that could not be decoded",
              file=sys.stderr)

    print(f"Rendered {len(units)} units, {len(overlays)} overlays "
          f"({clock(result.duration)}, {result.sample_rate} Hz, {result.channels} ch)")
    print(f"Done: {output_path}")


def cmd_timeline(args):
    """Print scene and unit start times without rendering audio."""
    config = _resolve_config(args)
    manifest = _load(args)
    compositor = Compositor(config)

    try:
        units, _, _, _ = compositor.decode(manifest.units, [])
        timeline = compositor.build_timeline(units, manifest.scene_count)
    except StoryMixError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)

    print("Scenes:")
    for scene in timeline.scenes:
        if scene.start_time is None:
            print(f"  {scene.scene_index:>3}  (no speech)")
            continue
        end = scene_end_time(timeline, scene.scene_index, timeline.speech_end)
        marker = "" if scene.anchored else "  (interpolated)"
        print(f"  {scene.scene_index:>3}  {srt_timestamp(scene.start_time)} → {srt_timestamp(end)}{marker}")

    print("Units:")
    for unit, start in zip(units, timeline.unit_starts):
        label = unit.speaker or unit.category.value
        print(f"  {unit.sequence_index:>3}  {srt_timestamp(start)}  {label}")
    print(f"Speech ends at {srt_timestamp(timeline.speech_end)}")
    if args.at is not None:
        print(f"At {srt_timestamp(args.at)}: scene {scene_at(timeline, args.at)}")


def cmd_presets(args):
    """List presets and their settings."""
    print("Presets:")
    for name, config in sorted(PRESETS.items()):
        marker = " (default)" if name == DEFAULT_PRESET else ""
        scene_gap = "off" if config.scene_change_gap is None else f"{config.scene_change_gap}s"
        print(f"  {name}{marker}")
        print(f"    scene gap: {scene_gap}  interpolate: {config.interpolate_scenes}  "
              f"music: {config.music_layer}")
        for key, seconds in config.to_dict()["gaps"].items():
            print(f"    {key:<22} {seconds}s")


def _add_config_args(parser):
    parser.add_argument("--preset", default=DEFAULT_PRESET, choices=sorted(PRESETS),
                        help=f"Compositor preset (default: {DEFAULT_PRESET})")
    parser.add_argument("--config", help="JSON file with config overrides")


def main(argv=None):
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="storymix",
        description="StoryMix: compose speech, effects and music into one WAV timeline",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # render
    render_parser = subparsers.add_parser("render", help="Render a manifest to WAV")
    render_parser.add_argument("manifest", help="Path to the request manifest (JSON)")
    render_parser.add_argument("-o", "--output", required=True, help="Output WAV path")
    render_parser.add_argument("--timeline", help="Also write the timeline as JSON")
    render_parser.add_argument("--srt", help="Also write SRT subtitles")
    _add_config_args(render_parser)
    render_parser.set_defaults(func=cmd_render)

    # timeline
    timeline_parser = subparsers.add_parser("timeline", help="Show computed start times")
    timeline_parser.add_argument("manifest", help="Path to the request manifest (JSON)")
    timeline_parser.add_argument("--at", type=float, metavar="SECONDS",
                                 help="Also report which scene is playing at this time")
    _add_config_args(timeline_parser)
    timeline_parser.set_defaults(func=cmd_timeline)

    # presets
    presets_parser = subparsers.add_parser("presets", help="List compositor presets")
    presets_parser.set_defaults(func=cmd_presets)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return

    args.func(args)
