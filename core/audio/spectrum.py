"""
core/audio/spectrum.py — Byte-scaled magnitude spectra for chroma extraction.

Chroma extraction only needs "magnitude per bin + sample rate", where bin i
of N spans frequency (i / N) * Nyquist. Anything satisfying
`SpectrumEstimator` can feed it.

Two estimators:
    - EnergyBucketSpectrum: the coarse default. Splits the time-domain window
      into N consecutive buckets and reports each bucket's mean energy in a
      dB-like byte scale. It is NOT a frequency analysis — bucket i holds
      energy from a slice of time, not a band of frequencies. Kept because
      it is cheap and because chord results downstream are calibrated on it.
    - FFTSpectrum: a real Hann-windowed FFT, scaled to bytes the way a
      browser AnalyserNode does (minDecibels..maxDecibels → 0..255).
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np

_EPS = 1e-10  # floor added before log10 to avoid log(0)


@runtime_checkable
class SpectrumEstimator(Protocol):
    """
    Protocol for spectrum estimators.

    Any object with an ``estimate`` method of this shape can be passed to
    AudioAnalyzer as ``spectrum_estimator``.
    """

    def estimate(self, window: np.ndarray, sample_rate: int) -> np.ndarray:
        """
        Compute a byte-scaled magnitude spectrum.

        Args:
            window: 1-D float samples.
            sample_rate: Sample rate in Hz.

        Returns:
            1-D uint8 array, one value per bin, bins spanning 0..Nyquist.
        """
        ...


class EnergyBucketSpectrum:
    """Coarse energy-bucket approximation of a spectrum."""

    def estimate(self, window: np.ndarray, sample_rate: int) -> np.ndarray:
        return approximate_spectrum(window)


def approximate_spectrum(window: np.ndarray) -> np.ndarray:
    """Bucket time-domain energy into a byte-scaled pseudo-spectrum.

    bins = 2^floor(log2(W)) / 2. Bucket i covers samples
    [floor(i·W/bins), floor((i+1)·W/bins)); its value is
    clamp((10·log10(mean energy + 1e-10) + 100) × 2.55, 0, 255).

    Args:
        window: 1-D float samples.

    Returns:
        uint8 array of length bins. Empty for windows shorter than 2 samples.
    """
    samples = np.asarray(window, dtype=np.float64).reshape(-1)
    n = samples.size
    if n < 2:
        return np.zeros(0, dtype=np.uint8)

    fft_size = 1 << (n.bit_length() - 1)  # largest power of two ≤ n
    bins = fft_size // 2

    idx = np.arange(bins + 1, dtype=np.int64)
    edges = (idx * n) // bins
    cumulative = np.concatenate([[0.0], np.cumsum(samples**2)])
    energy = cumulative[edges[1:]] - cumulative[edges[:-1]]
    counts = edges[1:] - edges[:-1]

    db = 10.0 * np.log10(energy / counts + _EPS)
    return np.clip((db + 100.0) * 2.55, 0.0, 255.0).astype(np.uint8)


class FFTSpectrum:
    """Real FFT magnitude spectrum in AnalyserNode byte scaling.

    Args:
        fft_size: Transform length. None = largest power of two that fits
            the window. Shorter windows are zero-padded.
        min_decibels: dB value mapped to byte 0.
        max_decibels: dB value mapped to byte 255.
    """

    def __init__(
        self,
        fft_size: int | None = None,
        *,
        min_decibels: float = -100.0,
        max_decibels: float = -30.0,
    ) -> None:
        if fft_size is not None and (fft_size < 2 or fft_size & (fft_size - 1)):
            raise ValueError(f"fft_size must be a power of two ≥ 2, got {fft_size}")
        if min_decibels >= max_decibels:
            raise ValueError(
                f"min_decibels ({min_decibels}) must be less than max_decibels ({max_decibels})"
            )
        self.fft_size = fft_size
        self.min_decibels = min_decibels
        self.max_decibels = max_decibels

    def estimate(self, window: np.ndarray, sample_rate: int) -> np.ndarray:
        samples = np.asarray(window, dtype=np.float64).reshape(-1)
        n_fft = self.fft_size
        if n_fft is None:
            if samples.size < 2:
                return np.zeros(0, dtype=np.uint8)
            n_fft = 1 << (samples.size.bit_length() - 1)

        frame = np.zeros(n_fft)
        take = min(n_fft, samples.size)
        frame[:take] = samples[:take]
        frame *= np.hanning(n_fft)

        # Drop the Nyquist bin so there are n_fft / 2 bins, like AnalyserNode
        magnitudes = np.abs(np.fft.rfft(frame))[: n_fft // 2] / n_fft
        db = 20.0 * np.log10(magnitudes + _EPS)
        scaled = 255.0 * (db - self.min_decibels) / (self.max_decibels - self.min_decibels)
        return np.clip(scaled, 0.0, 255.0).astype(np.uint8)
