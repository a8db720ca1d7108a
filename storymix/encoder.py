"""Serialize a rendered mix as a canonical 16-bit PCM RIFF/WAVE file."""

import struct

import numpy as np

from storymix.constants import PCM_BITS_PER_SAMPLE, WAV_HEADER_SIZE
from storymix.models import RenderedMix

_WAVE_FORMAT_PCM = 1


def wav_header(frames: int, sample_rate: int, channels: int) -> bytes:
    """44-byte RIFF header for interleaved 16-bit PCM."""
    block_align = channels * PCM_BITS_PER_SAMPLE // 8
    byte_rate = sample_rate * block_align
    data_size = frames * block_align

    header = struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        WAV_HEADER_SIZE - 8 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        _WAVE_FORMAT_PCM,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        PCM_BITS_PER_SAMPLE,
        b"data",
        data_size,
    )
    return header


def float_to_pcm16(samples: np.ndarray) -> np.ndarray:
    """Clamp to [-1, 1], scale negatives by 32768 and the rest by 32767.

    Conversion truncates toward zero.
    """
    clipped = np.clip(np.nan_to_num(samples.astype(np.float64)), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 32768.0, clipped * 32767.0)
    return scaled.astype(np.int16)


def encode_wav(mix: RenderedMix) -> bytes:
    """Header followed by frame-interleaved little-endian samples."""
    pcm = float_to_pcm16(mix.samples)
    interleaved = pcm.T.reshape(-1).astype("<i2")
    return wav_header(mix.frames, mix.sample_rate, mix.channels) + interleaved.tobytes()
