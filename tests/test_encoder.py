"""Tests for the WAV container encoder."""

import io
import struct
import wave

import numpy as np
import pytest

from storymix.encoder import encode_wav, float_to_pcm16, wav_header
from storymix.models import RenderedMix


def _mix(samples, sample_rate=8000):
    return RenderedMix(samples=np.asarray(samples, dtype=np.float32), sample_rate=sample_rate)


def test_header_layout():
    """Canonical 44-byte header with derived sizes."""
    header = wav_header(frames=100, sample_rate=22050, channels=2)
    assert len(header) == 44
    assert header[0:4] == b"RIFF"
    assert struct.unpack("<I", header[4:8])[0] == 36 + 400
    assert header[8:16] == b"WAVEfmt "
    fmt = struct.unpack("<IHHIIHH", header[16:36])
    assert fmt == (16, 1, 2, 22050, 22050 * 4, 4, 16)
    assert header[36:40] == b"data"
    assert struct.unpack("<I", header[40:44])[0] == 400


def test_pcm_scaling_is_asymmetric():
    """Negatives scale by 32768, the rest by 32767."""
    pcm = float_to_pcm16(np.array([-1.0, 1.0, 0.0, 0.5, -0.5]))
    assert pcm.tolist() == [-32768, 32767, 0, 16383, -16384]


def test_pcm_clamps_out_of_range():
    pcm = float_to_pcm16(np.array([-3.0, 2.5]))
    assert pcm.tolist() == [-32768, 32767]


def test_pcm_nan_becomes_silence():
    assert float_to_pcm16(np.array([np.nan])).tolist() == [0]


def test_encode_interleaves_channels():
    """Frames are written L, R, L, R."""
    data = encode_wav(_mix([[0.5, -1.0], [1.0, 0.0]]))
    samples = struct.unpack("<4h", data[44:])
    assert samples == (16383, 32767, -32768, 0)


def test_round_trip_with_wave_reader():
    """The stdlib reader agrees on rate, channels, and frame count."""
    rng = np.random.default_rng(7)
    samples = rng.uniform(-1, 1, size=(2, 1234))
    data = encode_wav(_mix(samples, sample_rate=16000))

    with wave.open(io.BytesIO(data)) as reader:
        assert reader.getframerate() == 16000
        assert reader.getnchannels() == 2
        assert reader.getsampwidth() == 2
        assert reader.getnframes() == 1234
        raw = reader.readframes(1234)

    decoded = np.frombuffer(raw, dtype="<i2").reshape(-1, 2).T
    expected = np.where(samples < 0, samples * 32768, samples * 32767)
    assert np.max(np.abs(decoded - expected)) <= 1.0


def test_total_size():
    data = encode_wav(_mix(np.zeros((1, 10))))
    assert len(data) == 44 + 20
