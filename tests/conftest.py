"""Shared fixtures for storymix tests."""

import io

import numpy as np
import pytest
from pydub import AudioSegment

from storymix.models import Category, DecodedClip, NarrativeUnit


def _wav_bytes(duration=0.5, sample_rate=8000, channels=1, amplitude=0.5, freq=440.0):
    """Encode a sine tone as WAV bytes with pydub (no ffmpeg needed)."""
    frames = int(round(duration * sample_rate))
    t = np.arange(frames) / sample_rate
    tone = np.sin(2 * np.pi * freq * t) * amplitude
    samples = np.repeat(tone[:, None], channels, axis=1).reshape(-1)
    pcm = (samples * 32767).astype(np.int16)
    audio = AudioSegment(
        data=pcm.tobytes(),
        sample_width=2,
        frame_rate=sample_rate,
        channels=channels,
    )
    buf = io.BytesIO()
    audio.export(buf, format="wav")
    return buf.getvalue()


@pytest.fixture
def make_wav():
    """Factory for WAV payloads: make_wav(duration, sample_rate, channels, amplitude)."""
    return _wav_bytes


@pytest.fixture
def make_clip():
    """Factory for decoded clips filled with a constant value."""
    def factory(duration=0.5, sample_rate=8000, channels=1, value=0.0):
        frames = int(round(duration * sample_rate))
        return DecodedClip(
            samples=np.full((channels, frames), value, dtype=np.float32),
            sample_rate=sample_rate,
        )
    return factory


@pytest.fixture
def make_unit(make_clip):
    """Factory for narrative units: make_unit(index, category, duration, group_id)."""
    def factory(index, category=Category.NARRATION, duration=0.5, group_id=None, text="", value=0.0):
        return NarrativeUnit(
            sequence_index=index,
            category=Category.parse(category),
            audio=make_clip(duration, value=value),
            group_id=group_id,
            text=text,
        )
    return factory


@pytest.fixture
def corrupt_payload():
    """Bytes that look like WAV but cannot be decoded."""
    return b"RIFF\x10\x00\x00\x00WAVEthis is not audio"
