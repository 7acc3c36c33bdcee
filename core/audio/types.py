"""
core/audio/types.py — Frozen data types for audio analysis results.

All types are frozen dataclasses — immutable value objects that can be
safely passed between layers and cached.

Design principles:
    - No I/O, no state, no side effects.
    - Array fields are copied at construction time and marked read-only, so
      a result never aliases a buffer the analyzer (or the caller) reuses.
    - Invariants on detector outputs are documented but NOT enforced at
      construction time — validation happens at creation sites
      (pitch.py, beats.py, chords.py).
    - `pitch` and `note` are always both set or both None.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

# Chord quality tags reported by the recognizer
CHORD_QUALITIES: tuple[str, ...] = (
    "major",
    "minor",
    "diminished",
    "augmented",
    "suspended",
    "unknown",
)


def _frozen_copy(values: object, dtype: type) -> np.ndarray:
    """Return a read-only copy of ``values`` as a 1-D array of ``dtype``."""
    arr = np.array(values, dtype=dtype, copy=True).reshape(-1)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class PitchEstimate:
    """Fundamental frequency estimate for one sample window.

    Invariants:
        frequency_hz > 0
        confidence is 1 - CMNDF (YIN) or peak / ac[0] (autocorrelation)
    """

    frequency_hz: float
    """Estimated fundamental frequency in Hz (sub-sample refined)."""

    confidence: float
    """Detector confidence, nominally 0–1."""


@dataclass(frozen=True)
class BeatResult:
    """Tempo estimate for a whole buffer.

    Invariants:
        bpm is None  =>  beat_positions == ()
        0.0 <= confidence <= 1.0
        beat_positions sorted ascending
    """

    bpm: int | None
    """Rounded tempo in beats per minute. None if no periodicity was found."""

    confidence: float
    """Autocorrelation peak relative to lag 0, clamped to ≤ 1."""

    beat_positions: tuple[float, ...] = ()
    """Onset-peak timestamps in seconds. Not snapped to the BPM grid."""


@dataclass(frozen=True)
class ChordInfo:
    """Best-matching triad for a chromagram.

    Invariants:
        quality in CHORD_QUALITIES
        len(notes) == 3
    """

    root: str
    """Root pitch-class name, e.g. 'C', 'F#'."""

    quality: str
    """'major', 'minor', 'diminished', 'augmented', 'suspended' or 'unknown'."""

    name: str
    """Display name: root alone for major ('C'), else root + quality ('Aminor')."""

    notes: tuple[str, ...]
    """Chord tones in template order starting from the root."""

    confidence: float
    """Template score / 3. Not clamped: can exceed 1 or go negative."""


@dataclass(frozen=True, eq=False)
class AdvancedResult:
    """Tempo and harmony descriptors, produced only when advanced analysis is on."""

    bpm: int | None
    bpm_confidence: float
    chord: ChordInfo | None
    pitch_confidence: float
    """Confidence of the pitch estimate in the same result. 0.0 if no pitch."""

    chromagram: np.ndarray = field(default_factory=lambda: np.zeros(12, dtype=np.float32))
    """12 pitch-class energies in [0, 1]. Index 0 = C ... 11 = B."""

    beat_positions: tuple[float, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "chromagram", _frozen_copy(self.chromagram, np.float32))
        object.__setattr__(self, "beat_positions", tuple(float(t) for t in self.beat_positions))


@dataclass(frozen=True, eq=False)
class RealtimeResult:
    """Analysis of a sliding live window. Has no duration.

    Invariants:
        (pitch is None) == (note is None)
        0.0 <= volume <= 1.0
    """

    volume: float
    """RMS loudness scaled so a full-scale sine maps to ~1.0. Range [0, 1]."""

    pitch: float | None
    """Fundamental frequency in Hz, None if no pitch was detected."""

    note: str | None
    """Scientific pitch name derived from `pitch`, e.g. 'A4'."""

    waveform: np.ndarray
    """Copy of the analyzed sample window (float32)."""

    spectrum: np.ndarray
    """Byte-scaled magnitudes, one per frequency bucket (uint8)."""

    analyzed_at: int
    """Wall-clock timestamp in milliseconds since the epoch."""

    def __post_init__(self) -> None:
        object.__setattr__(self, "waveform", _frozen_copy(self.waveform, np.float32))
        object.__setattr__(self, "spectrum", _frozen_copy(self.spectrum, np.uint8))


@dataclass(frozen=True, eq=False)
class AnalysisResult(RealtimeResult):
    """Complete analysis result for a captured buffer or segment."""

    duration: float = 0.0
    """Duration of the source buffer in seconds."""

    advanced: AdvancedResult | None = None
    """BPM/chord descriptors. None unless advanced analysis was requested."""
