"""Decode encoded audio payloads into float sample buffers via pydub."""

import base64
import binascii
import io
import logging
from concurrent.futures import ThreadPoolExecutor

import numpy as np
from pydub import AudioSegment

from storymix.constants import DEFAULT_CHANNELS, DEFAULT_SAMPLE_RATE, MAX_DECODE_WORKERS
from storymix.models import DecodedClip, DecodeFailure

logger = logging.getLogger(__name__)


def _sniff_format(payload: bytes) -> str | None:
    """Guess the container from magic bytes so pydub can skip ffmpeg for WAV."""
    if payload[:4] == b"RIFF" and payload[8:12] == b"WAVE":
        return "wav"
    if payload[:3] == b"ID3" or payload[:2] in (b"\xff\xfb", b"\xff\xf3", b"\xff\xf2"):
        return "mp3"
    if payload[:4] == b"OggS":
        return "ogg"
    if payload[:4] == b"fLaC":
        return "flac"
    return None


def segment_to_clip(audio: AudioSegment) -> DecodedClip:
    """Convert a pydub AudioSegment to a (channels, frames) float clip."""
    samples = np.array(audio.get_array_of_samples(), dtype=np.float32)

    # Reshape for multi-channel if needed
    if audio.channels > 1:
        samples = samples.reshape((-1, audio.channels)).T
    else:
        samples = samples.reshape((1, -1))

    # Normalize to [-1, 1] range
    full_scale = float(1 << (8 * audio.sample_width - 1))
    samples = np.clip(samples / full_scale, -1.0, 1.0)

    return DecodedClip(samples=samples, sample_rate=audio.frame_rate)


def decode_clip(payload: bytes, label: str | None = None) -> DecodedClip | DecodeFailure:
    """Decode one encoded recording.

    Never raises: unreadable payloads come back as DecodeFailure so the
    caller can substitute silence and keep composing.
    """
    if not payload:
        logger.warning("Clip %s: empty payload", label)
        return DecodeFailure(reason="empty payload", label=label)

    try:
        audio = AudioSegment.from_file(io.BytesIO(payload), format=_sniff_format(payload))
        clip = segment_to_clip(audio)
    except Exception as e:
        # pydub raises CouldntDecodeError, or OSError when ffmpeg is missing
        logger.warning("Clip %s: could not decode audio (%s)", label, e)
        return DecodeFailure(reason=str(e) or type(e).__name__, label=label)

    logger.debug(
        "Clip %s: %d Hz, %d ch, %.3fs", label, clip.sample_rate, clip.channels, clip.duration,
    )
    return clip


def unwrap_base64(text: str, label: str | None = None) -> bytes | None:
    """Payload bytes from base64 text, or None (logged) when it is not valid base64."""
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.warning("Clip %s: invalid base64 payload (%s)", label, e)
        return None


def silent_clip(
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    channels: int = DEFAULT_CHANNELS,
    frames: int = 0,
) -> DecodedClip:
    """Placeholder for a failed decode: zero duration by default."""
    return DecodedClip(samples=np.zeros((channels, frames), dtype=np.float32), sample_rate=sample_rate)


def decode_many(
    payloads: list[bytes],
    labels: list[str] | None = None,
    max_workers: int = MAX_DECODE_WORKERS,
) -> list[DecodedClip | DecodeFailure]:
    """Decode payloads concurrently; results keep the input order."""
    if labels is None:
        labels = [str(i) for i in range(len(payloads))]
    if max_workers <= 1 or len(payloads) <= 1:
        return [decode_clip(p, label) for p, label in zip(payloads, labels)]

    with ThreadPoolExecutor(max_workers=min(max_workers, len(payloads))) as pool:
        return list(pool.map(decode_clip, payloads, labels))
