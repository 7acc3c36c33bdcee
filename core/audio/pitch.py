"""
core/audio/pitch.py — Fundamental frequency estimation for one sample window.

Two strategies share one contract, ``detect(window) -> PitchEstimate | None``:

    YIN (default)
        de Cheveigné & Kawahara (2002), "YIN, a fundamental frequency
        estimator for speech and music", JASA 111(4).
        Difference function → cumulative-mean-normalized difference (CMNDF)
        → first dip under an absolute threshold → parabolic refinement.

    Autocorrelation (fallback)
        First local autocorrelation peak above half the lag-0 energy.
        "First qualifying peak", not the global maximum, biases toward the
        lowest periodic lag — the fundamental rather than a harmonic.

Detectors are frozen dataclasses. Changing bounds or threshold means building
a new detector with `build_pitch_detector()`, never mutating one that another
call may be using. New strategies register in `_DETECTOR_FACTORIES`; the
analyzer only ever talks to the `PitchDetector` protocol.

"No pitch" (silence, noise, out-of-range result) is returned as None.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import numpy as np

from core.audio.types import PitchEstimate

logger = logging.getLogger(__name__)

_DENOM_EPS = 1e-10  # parabolic interpolation is skipped below this

_AUTOCORR_PEAK_RATIO = 0.5
"""A peak must exceed this fraction of the lag-0 autocorrelation."""


class PitchMethod(str, Enum):
    """Available pitch detection strategies."""

    YIN = "yin"
    AUTOCORRELATION = "autocorrelation"


class PitchDetector(Protocol):
    """Anything that turns a sample window into a pitch estimate."""

    def detect(self, window: np.ndarray) -> PitchEstimate | None: ...


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _lag_bounds(
    sample_rate: int, min_frequency: float, max_frequency: float, window_len: int
) -> tuple[int, int]:
    """Return (min_lag, max_lag) in samples for the frequency search band.

    max_lag is additionally capped at half the window so every lag has at
    least as many samples to compare against as it spans.
    """
    min_lag = int(sample_rate // max_frequency)
    max_lag = min(int(sample_rate // min_frequency), window_len // 2)
    return min_lag, max_lag


def _parabolic_offset(alpha: float, beta: float, gamma: float) -> float:
    """Sub-sample offset of the vertex of the parabola through 3 points.

    Returns 0.0 when the points are (numerically) collinear.
    """
    denom = 2.0 * (alpha - 2.0 * beta + gamma)
    if abs(denom) < _DENOM_EPS:
        return 0.0
    return (alpha - gamma) / denom


# ---------------------------------------------------------------------------
# YIN
# ---------------------------------------------------------------------------


def difference_function(x: np.ndarray, max_lag: int) -> np.ndarray:
    """YIN difference function.

    d[τ] = Σ_{j=0}^{W-1-max_lag} (x[j] − x[j+τ])²  for τ in [0, max_lag)

    Expanded as energy(x[0:L]) + energy(x[τ:τ+L]) − 2·x[0:L]·x[τ:τ+L]
    with L = W − max_lag, so each lag costs one dot product.
    """
    n_terms = len(x) - max_lag
    head = x[:n_terms]
    head_energy = float(np.dot(head, head))
    squares = np.concatenate([[0.0], np.cumsum(x**2)])

    diff = np.empty(max_lag, dtype=np.float64)
    for tau in range(max_lag):
        shifted_energy = squares[tau + n_terms] - squares[tau]
        diff[tau] = head_energy + shifted_energy - 2.0 * float(np.dot(head, x[tau : tau + n_terms]))
    # Rounding can push exact-period lags slightly below zero
    return np.maximum(diff, 0.0)


def cumulative_mean_normalized_difference(diff: np.ndarray) -> np.ndarray:
    """CMNDF: cmndf[0] = 1, cmndf[τ] = d[τ] / (Σ_{j=1}^{τ} d[j] / τ).

    Lags whose running sum is zero (silent input) are set to 1.0 — "no
    periodicity" — instead of the 0/0 the formula would produce.
    """
    cmndf = np.ones_like(diff)
    if diff.size < 2:
        return cmndf
    taus = np.arange(1, diff.size, dtype=np.float64)
    running = np.cumsum(diff[1:])
    with np.errstate(divide="ignore", invalid="ignore"):
        normalized = diff[1:] * taus / running
    cmndf[1:] = np.where(running > 0.0, normalized, 1.0)
    return cmndf


@dataclass(frozen=True)
class YinDetector:
    """YIN pitch detector bound to one sample rate and search band.

    Invariants:
        0 < threshold < 1
        0 < min_frequency < max_frequency
    """

    sample_rate: int
    threshold: float = 0.1
    min_frequency: float = 50.0
    max_frequency: float = 5000.0

    def detect(self, window: np.ndarray) -> PitchEstimate | None:
        """Estimate the fundamental of ``window``.

        Returns:
            PitchEstimate, or None when no CMNDF dip falls under the threshold,
            the window is too short or silent, or the refined frequency lies
            outside [min_frequency, max_frequency].
        """
        x = np.asarray(window, dtype=np.float64).reshape(-1)
        min_lag, max_lag = _lag_bounds(
            self.sample_rate, self.min_frequency, self.max_frequency, x.size
        )
        if max_lag < 2 or min_lag >= max_lag:
            return None

        cmndf = cumulative_mean_normalized_difference(difference_function(x, max_lag))
        tau = self._absolute_threshold(cmndf, min_lag)
        if tau is None:
            return None

        refined = float(tau)
        if 0 < tau < cmndf.size - 1:
            refined += _parabolic_offset(cmndf[tau - 1], cmndf[tau], cmndf[tau + 1])
        if refined <= 0.0:
            return None

        frequency = self.sample_rate / refined
        if not self.min_frequency <= frequency <= self.max_frequency:
            return None
        return PitchEstimate(frequency_hz=frequency, confidence=1.0 - float(cmndf[tau]))

    def _absolute_threshold(self, cmndf: np.ndarray, min_lag: int) -> int | None:
        """First lag ≥ min_lag under the threshold, walked down to its local minimum."""
        below = np.flatnonzero(cmndf[min_lag:] < self.threshold)
        if below.size == 0:
            return None
        tau = min_lag + int(below[0])
        while tau + 1 < cmndf.size and cmndf[tau + 1] < cmndf[tau]:
            tau += 1
        return tau


# ---------------------------------------------------------------------------
# Autocorrelation
# ---------------------------------------------------------------------------


def autocorrelation(x: np.ndarray, max_lag: int) -> np.ndarray:
    """Raw autocorrelation ac[lag] = Σ_{i<W-lag} x[i]·x[i+lag] for lag < max_lag."""
    n = x.size
    return np.array([float(np.dot(x[: n - lag], x[lag:])) for lag in range(max_lag)])


@dataclass(frozen=True)
class AutocorrelationDetector:
    """Autocorrelation pitch detector, the fallback strategy.

    Unlike YIN it applies no final frequency-range check: the lag search
    band already bounds the result from above, and interpolation moves it
    by less than one sample.
    """

    sample_rate: int
    min_frequency: float = 50.0
    max_frequency: float = 5000.0

    def detect(self, window: np.ndarray) -> PitchEstimate | None:
        x = np.asarray(window, dtype=np.float64).reshape(-1)
        min_lag, max_lag = _lag_bounds(
            self.sample_rate, self.min_frequency, self.max_frequency, x.size
        )
        if max_lag < 3:
            return None

        ac = autocorrelation(x, max_lag)
        energy = ac[0]
        if energy <= 0.0:
            return None

        threshold = _AUTOCORR_PEAK_RATIO * energy
        for lag in range(max(min_lag, 1), max_lag - 1):
            peak = ac[lag]
            if peak > threshold and peak > ac[lag - 1] and peak > ac[lag + 1]:
                refined = lag + _parabolic_offset(ac[lag - 1], peak, ac[lag + 1])
                if refined <= 0.0:
                    return None
                return PitchEstimate(
                    frequency_hz=self.sample_rate / refined,
                    confidence=float(peak / energy),
                )
        return None


# ---------------------------------------------------------------------------
# Strategy construction
# ---------------------------------------------------------------------------


def _build_yin(sample_rate: int, threshold: float, min_f: float, max_f: float) -> PitchDetector:
    return YinDetector(sample_rate, threshold, min_f, max_f)


def _build_autocorrelation(
    sample_rate: int, threshold: float, min_f: float, max_f: float
) -> PitchDetector:
    # threshold is YIN-specific; the autocorrelation peak ratio is fixed
    return AutocorrelationDetector(sample_rate, min_f, max_f)


_DETECTOR_FACTORIES: dict[PitchMethod, Callable[[int, float, float, float], PitchDetector]] = {
    PitchMethod.YIN: _build_yin,
    PitchMethod.AUTOCORRELATION: _build_autocorrelation,
}


def build_pitch_detector(
    method: PitchMethod,
    sample_rate: int,
    *,
    threshold: float = 0.1,
    min_frequency: float = 50.0,
    max_frequency: float = 5000.0,
) -> PitchDetector:
    """Build a new, immutable detector for the given strategy and bounds.

    Raises:
        ValueError: If the method is unknown or sample_rate is not positive.
    """
    if sample_rate <= 0:
        raise ValueError(f"Sample rate must be positive, got {sample_rate}")
    try:
        factory = _DETECTOR_FACTORIES[PitchMethod(method)]
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Unknown pitch method {method!r}") from exc
    logger.debug(
        "Building %s detector: sr=%d band=%.1f–%.1f Hz threshold=%.3f",
        PitchMethod(method).value,
        sample_rate,
        min_frequency,
        max_frequency,
        threshold,
    )
    return factory(int(sample_rate), threshold, min_frequency, max_frequency)
