"""
core/audio/volume.py — RMS loudness of a sample window.
"""

from __future__ import annotations

import math

import numpy as np

_SQRT2 = math.sqrt(2.0)


def estimate_volume(window: np.ndarray) -> float:
    """Compute normalized RMS loudness of a window.

    RMS is scaled by √2 so a full-scale sine (RMS = 1/√2) maps to ~1.0,
    then clamped to 1 — clipped or over-driven input still reports ≤ 1.

    Args:
        window: 1-D float samples, nominally in [-1, 1].

    Returns:
        Loudness in [0, 1]. All-zero input returns 0.0.

    Raises:
        ValueError: If the window is empty.
    """
    samples = np.asarray(window, dtype=np.float64)
    if samples.size == 0:
        raise ValueError("Cannot estimate volume of an empty window")
    rms = math.sqrt(float(np.mean(samples**2)))
    return min(rms * _SQRT2, 1.0)
