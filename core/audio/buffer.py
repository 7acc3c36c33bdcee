"""
core/audio/buffer.py — PCM sample source and channel mixing.

`PcmBuffer` is what the decoding collaborator (ingestion/audio_loader.py)
hands to the engine: float samples in [-1, 1], one row per channel, plus
the sample rate. Everything downstream works on the flat mono mix.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, eq=False)
class PcmBuffer:
    """Decoded multi-channel audio.

    Invariants:
        channels.ndim == 2, shape (n_channels, n_samples)
        sample_rate > 0
    """

    channels: np.ndarray
    """Samples, shape (n_channels, n_samples). A 1-D array is one channel."""

    sample_rate: int
    """Sample rate in Hz."""

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {self.sample_rate}")
        data = np.asarray(self.channels, dtype=np.float32)
        if data.ndim == 1:
            data = data[np.newaxis, :]
        if data.ndim != 2:
            raise ValueError(f"channels must be 1-D or 2-D, got shape {data.shape}")
        object.__setattr__(self, "channels", data)
        object.__setattr__(self, "sample_rate", int(self.sample_rate))

    @classmethod
    def from_mono(cls, samples: np.ndarray, sample_rate: int) -> PcmBuffer:
        """Wrap a single channel of samples."""
        mono = np.asarray(samples, dtype=np.float32).reshape(-1)
        return cls(channels=mono, sample_rate=sample_rate)

    @property
    def length(self) -> int:
        """Number of samples per channel."""
        return int(self.channels.shape[1])

    @property
    def n_channels(self) -> int:
        return int(self.channels.shape[0])

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        return self.length / float(self.sample_rate)

    def channel(self, index: int) -> np.ndarray:
        """Return samples of one channel."""
        return self.channels[index]


def mix_to_mono(buffer: PcmBuffer) -> np.ndarray:
    """Average all channels into one.

    A single-channel buffer is returned as a copy of that channel so callers
    may modify the result without touching the source buffer.

    Args:
        buffer: Decoded audio.

    Returns:
        1-D float32 array of length buffer.length.
    """
    if buffer.n_channels == 1:
        return buffer.channel(0).copy()
    return np.mean(buffer.channels, axis=0).astype(np.float32)


def slice_segment(
    mono: np.ndarray, sample_rate: int, start_time: float, duration: float
) -> np.ndarray:
    """Cut ``duration`` seconds starting at ``start_time`` out of a mono signal.

    Bounds are clamped to the signal, so a segment running past the end is
    shortened and one starting past the end is empty.

    Returns:
        1-D array copy (never a view of ``mono``).
    """
    start = max(0, int(np.floor(start_time * sample_rate)))
    end = min(start + int(np.floor(duration * sample_rate)), len(mono))
    if end <= start:
        return np.zeros(0, dtype=np.float32)
    return np.array(mono[start:end], dtype=np.float32, copy=True)
