"""Request manifests in, WAV / timeline / subtitle artifacts out."""

import json
import logging
import os
from dataclasses import dataclass

from storymix.decoder import unwrap_base64
from storymix.errors import ManifestError
from storymix.models import OverlayDescriptor, Timeline, UnitDescriptor

logger = logging.getLogger(__name__)


@dataclass
class Manifest:
    units: list[UnitDescriptor]
    overlays: list[OverlayDescriptor]
    scene_count: int


def write_artifact(path: str, data: dict) -> str:
    """Write a JSON artifact, creating parent directories.

    Returns path to the written file.
    """
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
    return path


def load_artifact(path: str) -> dict | None:
    """Read JSON artifact. Returns None if file doesn't exist."""
    if not os.path.exists(path):
        return None
    with open(path) as f:
        return json.load(f)


def _read_audio(entry: dict, base_dir: str, label: str) -> bytes:
    """Payload bytes from audio_base64 or audio_path.

    Unreadable audio yields an empty payload, which the decoder reports as a
    per-clip failure instead of aborting the whole request.
    """
    if entry.get("audio_base64"):
        return unwrap_base64(entry["audio_base64"], label=label) or b""

    audio_path = entry.get("audio_path")
    if audio_path:
        path = audio_path if os.path.isabs(audio_path) else os.path.join(base_dir, audio_path)
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            logger.warning("%s: cannot read %s (%s)", label, path, e)
            return b""

    logger.warning("%s: no audio_base64 or audio_path", label)
    return b""


def load_manifest(path: str) -> Manifest:
    """Parse a request manifest.

    Layout:
      {"scene_count": 3,
       "units": [{"sequence_index", "category", "group_id", "text", "speaker",
                  "audio_base64" | "audio_path"}],
       "overlays": [{"target_scene_index", "kind", "fallback_start_time", "label",
                     "audio_base64" | "audio_path"}]}

    scene_count defaults to one past the highest unit group_id.
    """
    try:
        data = load_artifact(path) if os.path.isfile(path) else None
    except json.JSONDecodeError as e:
        raise ManifestError(f"Malformed manifest {path}: {e}") from e
    if data is None:
        raise ManifestError(f"Manifest not found: {path}")
    if not isinstance(data, dict):
        raise ManifestError(f"Manifest {path} must contain a JSON object")

    base_dir = os.path.dirname(os.path.abspath(path))
    try:
        units = [
            UnitDescriptor(
                sequence_index=int(entry.get("sequence_index", i)),
                category=entry["category"],
                audio=_read_audio(entry, base_dir, f"unit {i}"),
                group_id=None if entry.get("group_id") is None else int(entry["group_id"]),
                text=entry.get("text", ""),
                speaker=entry.get("speaker", ""),
            )
            for i, entry in enumerate(data.get("units", []))
        ]
        overlays = [
            OverlayDescriptor(
                target_scene_index=int(entry["target_scene_index"]),
                kind=entry["kind"],
                audio=_read_audio(entry, base_dir, f"overlay {i}"),
                fallback_start_time=float(entry.get("fallback_start_time", 0.0)),
                label=entry.get("label", ""),
            )
            for i, entry in enumerate(data.get("overlays", []))
        ]
        scene_count = data.get("scene_count")
        if scene_count is None:
            groups = [u.group_id for u in units if u.group_id is not None]
            scene_count = max(groups) + 1 if groups else 0
        scene_count = int(scene_count)
    except (KeyError, TypeError, ValueError) as e:
        raise ManifestError(f"Malformed manifest entry in {path}: {e!r}") from e
    if scene_count < 0:
        raise ManifestError(f"scene_count must be non-negative, got {scene_count}")

    return Manifest(units=units, overlays=overlays, scene_count=scene_count)


def write_wav(path: str, wav: bytes) -> str:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "wb") as f:
        f.write(wav)
    return path


def write_timeline(path: str, timeline: Timeline, duration: float | None = None) -> str:
    """Timeline JSON for scrubbers and subtitle tools."""
    data = timeline.to_dict()
    if duration is not None:
        data["duration"] = round(duration, 6)
    return write_artifact(path, data)


def write_srt(path: str, srt: str) -> str:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w") as f:
        f.write(srt)
    return path
