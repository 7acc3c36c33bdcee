"""
core/audio/beats.py — Tempo (BPM) and beat detection from energy onsets.

Pipeline:
    1. Mix to mono.
    2. Short-time RMS envelope: 40 ms window, 10 ms hop.
    3. Half-wave rectified first difference → onset strength. Energy decays
       are dropped; only rises (note/percussive onsets) remain.
    4. Full-length autocorrelation of the onset curve.
    5. Best local peak (±2 frames) inside the lag band of [min_bpm, max_bpm].
    6. BPM from the lag; confidence = peak / autocorr[0], clamped to ≤ 1.
    7. Beat positions = onset peaks above 30% of the curve maximum. These are
       a direct peak scan, NOT a grid projected from the BPM, so they may be
       irregular even when the tempo is clean.

Pure numpy. The whole buffer is analyzed; there is no streaming state.
"""

from __future__ import annotations

import logging
import math

import numpy as np

from core.audio.buffer import PcmBuffer, mix_to_mono
from core.audio.types import BeatResult

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

HOP_SEC: float = 0.01
"""Envelope hop (10 ms)."""

WINDOW_SEC: float = 0.04
"""Envelope window (40 ms)."""

_PEAK_NEIGHBORHOOD: int = 2
"""A tempo lag must not be exceeded by any lag within ±2 frames."""

_BEAT_PEAK_RATIO: float = 0.3
"""Onset peaks below this fraction of the maximum are not reported as beats."""

_NO_TEMPO = BeatResult(bpm=None, confidence=0.0, beat_positions=())


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ---------------------------------------------------------------------------
# Envelope and onset curve
# ---------------------------------------------------------------------------


def energy_envelope(y: np.ndarray, window_size: int, hop_size: int) -> np.ndarray:
    """RMS of each window_size-long frame, frames stepped by hop_size.

    The frame count is floor((N − window_size) / hop_size); a signal shorter
    than one window yields an empty envelope.
    """
    n_frames = (len(y) - window_size) // hop_size
    if n_frames <= 0:
        return np.zeros(0, dtype=np.float64)
    squares = np.concatenate([[0.0], np.cumsum(np.asarray(y, dtype=np.float64) ** 2)])
    starts = np.arange(n_frames) * hop_size
    sums = squares[starts + window_size] - squares[starts]
    return np.sqrt(np.maximum(sums, 0.0) / window_size)


def onset_strength(envelope: np.ndarray) -> np.ndarray:
    """Half-wave rectified first difference; the first frame is 0."""
    onset = np.zeros_like(envelope)
    if envelope.size > 1:
        onset[1:] = np.maximum(np.diff(envelope), 0.0)
    return onset


def _full_autocorrelation(x: np.ndarray) -> np.ndarray:
    """ac[lag] = Σ_{i<n-lag} x[i]·x[i+lag] for every lag in [0, n)."""
    n = x.size
    return np.correlate(x, x, mode="full")[n - 1 :]


def _best_tempo_lag(autocorr: np.ndarray, min_lag: int, max_lag: int) -> tuple[int, float]:
    """Highest autocorrelation lag in [min_lag, max_lag] that is a ±2 local peak.

    Returns:
        (lag, value). lag is 0 when nothing beats the initial value of 0.
        Ties keep the smallest lag (the faster tempo).
    """
    best_lag, best_value = 0, 0.0
    last = autocorr.size - 1
    for lag in range(max(min_lag, 0), min(max_lag, last) + 1):
        value = autocorr[lag]
        if value <= best_value:
            continue
        lo = max(0, lag - _PEAK_NEIGHBORHOOD)
        hi = min(last, lag + _PEAK_NEIGHBORHOOD)
        if np.any(autocorr[lo : hi + 1] > value):
            continue
        best_lag, best_value = lag, float(value)
    return best_lag, best_value


def _onset_peaks(onset: np.ndarray, hop_size: int, sample_rate: int) -> tuple[float, ...]:
    """Timestamps (s) of strict local maxima above 30% of the onset maximum."""
    if onset.size < 3:
        return ()
    threshold = _BEAT_PEAK_RATIO * float(onset.max())
    mid = onset[1:-1]
    is_peak = (mid > threshold) & (mid > onset[:-2]) & (mid > onset[2:])
    frames = np.flatnonzero(is_peak) + 1
    return tuple(float(i * hop_size / sample_rate) for i in frames)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def detect_beats(
    audio: np.ndarray | PcmBuffer,
    sample_rate: int | None = None,
    *,
    min_bpm: float = 60.0,
    max_bpm: float = 180.0,
) -> BeatResult:
    """Estimate tempo and beat positions of a whole buffer.

    Args:
        audio: PcmBuffer, or samples shaped (N,) or (n_channels, N).
        sample_rate: Sample rate in Hz. Required for arrays, taken from the
            buffer for PcmBuffer input.
        min_bpm: Slowest tempo searched.
        max_bpm: Fastest tempo searched.

    Returns:
        BeatResult. bpm is None (and beat_positions empty) for silence,
        buffers shorter than one 40 ms window, or when no periodicity peak
        is found inside the tempo band.

    Raises:
        ValueError: If the sample rate is missing or not positive, or the
            BPM bounds are not 0 < min_bpm < max_bpm.
    """
    if isinstance(audio, PcmBuffer):
        sample_rate = audio.sample_rate
        y = mix_to_mono(audio)
    else:
        y = np.asarray(audio, dtype=np.float64)
        if y.ndim > 1:
            y = np.mean(y, axis=0)
    if sample_rate is None or sample_rate <= 0:
        raise ValueError(f"Sample rate must be positive, got {sample_rate}")
    if not 0 < min_bpm < max_bpm:
        raise ValueError(
            f"BPM bounds must satisfy 0 < min_bpm < max_bpm, got {min_bpm}, {max_bpm}"
        )

    hop_size = int(sample_rate * HOP_SEC)
    window_size = int(sample_rate * WINDOW_SEC)
    if hop_size <= 0 or window_size <= 0:
        return _NO_TEMPO

    onset = onset_strength(energy_envelope(y, window_size, hop_size))
    if onset.size == 0:
        logger.debug("Buffer shorter than one envelope window, no tempo")
        return _NO_TEMPO

    autocorr = _full_autocorrelation(onset)
    frames_per_sec = sample_rate / hop_size
    min_lag = int(math.floor((60.0 / max_bpm) * frames_per_sec))
    max_lag = int(math.ceil((60.0 / min_bpm) * frames_per_sec))
    best_lag, best_value = _best_tempo_lag(autocorr, min_lag, max_lag)

    if best_lag <= 0:
        logger.debug("No tempo peak in lag band [%d, %d]", min_lag, max_lag)
        return _NO_TEMPO

    seconds_per_beat = best_lag * hop_size / sample_rate
    bpm = _round_half_up(60.0 / seconds_per_beat)
    zero_lag = float(autocorr[0]) or 1.0
    confidence = min(best_value / zero_lag, 1.0)

    return BeatResult(
        bpm=bpm,
        confidence=confidence,
        beat_positions=_onset_peaks(onset, hop_size, sample_rate),
    )
