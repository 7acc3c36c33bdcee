"""
core/audio/chords.py — Chromagram extraction and triad recognition.

Chromagram:
    Each spectral bin i of N sits at (i / N) · Nyquist Hz. That frequency is
    converted to the nearest MIDI note and folded to a pitch class; the bin's
    magnitude accumulates there. The 12 buckets are normalized by their max,
    so values are in [0, 1].

Recognition:
    Exhaustive template matching — 12 roots × 6 triad templates. A template's
    score is the chroma energy on its three tones minus 0.3 × the energy on
    the other nine (strong foreign tones are penalized). Highest score wins;
    ties keep the first in (root 0..11, template declaration) order.

Confidence is score / 3 and is NOT clamped: a perfect triad with
silent foreign tones scores 3 → 1.0, but noisy input can go negative. Every
other confidence in the engine is in [0, 1]; this one is a raw strength
indicator and is reported as such.
"""

from __future__ import annotations

import logging
import math

import numpy as np

from core.audio.notes import A4_HZ, A4_MIDI, NOTE_NAMES
from core.audio.types import ChordInfo

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Templates: semitone intervals above the root, in scoring order
# ---------------------------------------------------------------------------

CHORD_TEMPLATES: dict[str, tuple[int, ...]] = {
    "major": (0, 4, 7),
    "minor": (0, 3, 7),
    "diminished": (0, 3, 6),
    "augmented": (0, 4, 8),
    "suspended4": (0, 5, 7),
    "suspended2": (0, 2, 7),
}

# Template label → reported quality. Labels missing here report "unknown".
_TEMPLATE_QUALITY: dict[str, str] = {
    "major": "major",
    "minor": "minor",
    "diminished": "diminished",
    "augmented": "augmented",
    "suspended4": "suspended",
    "suspended2": "suspended",
}

_FOREIGN_TONE_PENALTY: float = 0.3


# ---------------------------------------------------------------------------
# Chromagram
# ---------------------------------------------------------------------------


def calculate_chromagram(spectrum: np.ndarray, sample_rate: int) -> np.ndarray:
    """Fold a magnitude spectrum into 12 pitch-class energies.

    Args:
        spectrum: Magnitude per bin, bins spanning 0..Nyquist (e.g. the
            uint8 output of a SpectrumEstimator).
        sample_rate: Sample rate in Hz of the signal the spectrum came from.

    Returns:
        float32 array of shape (12,), normalized to max 1. All zeros when
        the spectrum carries no energy.

    Raises:
        ValueError: If sample_rate is not positive.
    """
    if sample_rate <= 0:
        raise ValueError(f"Sample rate must be positive, got {sample_rate}")
    magnitudes = np.asarray(spectrum, dtype=np.float64).reshape(-1)
    chroma = np.zeros(12, dtype=np.float64)
    n_bins = magnitudes.size
    if n_bins == 0:
        return chroma.astype(np.float32)

    freqs = np.arange(n_bins, dtype=np.float64) / n_bins * (sample_rate / 2.0)
    valid = freqs > 0.0
    midi = A4_MIDI + 12.0 * np.log2(freqs[valid] / A4_HZ)
    nearest = np.floor(midi + 0.5).astype(np.int64)

    # Notes below MIDI 0 (under ~8 Hz) have no pitch class and are skipped
    audible = nearest >= 0
    np.add.at(chroma, nearest[audible] % 12, magnitudes[valid][audible])

    peak = chroma.max()
    if peak > 0.0:
        chroma /= peak
    return chroma.astype(np.float32)


# ---------------------------------------------------------------------------
# Recognition
# ---------------------------------------------------------------------------


def _template_score(chroma: np.ndarray, root: int, intervals: tuple[int, ...]) -> float:
    members = np.zeros(12, dtype=bool)
    members[[(root + i) % 12 for i in intervals]] = True
    return float(chroma[members].sum() - _FOREIGN_TONE_PENALTY * chroma[~members].sum())


def recognize_chord(chromagram: np.ndarray) -> ChordInfo | None:
    """Find the best-matching triad for a 12-bin chromagram.

    Args:
        chromagram: Pitch-class energies, shape (12,), index 0 = C.

    Returns:
        ChordInfo for the best (root, template) pair, or None when the
        chromagram carries no energy (silence gives nothing to recognize).

    Raises:
        ValueError: If chromagram is not shape (12,).
    """
    chroma = np.asarray(chromagram, dtype=np.float64)
    if chroma.shape != (12,):
        raise ValueError(f"chromagram must have shape (12,), got {chroma.shape}")
    if not np.all(np.isfinite(chroma)) or chroma.max() <= 0.0:
        logger.debug("Chromagram has no energy, no chord")
        return None

    best_score = -math.inf
    best: tuple[int, str] = (0, "major")
    for root in range(12):
        for label, intervals in CHORD_TEMPLATES.items():
            score = _template_score(chroma, root, intervals)
            if score > best_score:
                best_score = score
                best = (root, label)

    root, label = best
    root_name = NOTE_NAMES[root]
    quality = _TEMPLATE_QUALITY.get(label, "unknown")
    return ChordInfo(
        root=root_name,
        quality=quality,
        name=root_name if label == "major" else f"{root_name}{quality}",
        notes=tuple(NOTE_NAMES[(root + i) % 12] for i in CHORD_TEMPLATES[label]),
        confidence=best_score / 3.0,
    )
