"""
Shared fixtures for the test suite.

Centralizes synthetic signal generation so individual test files don't
need to repeat sine / click-track boilerplate.
"""

from collections.abc import Callable

import numpy as np
import pytest

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SR: int = 44100
"""Sample rate used by most tests."""


# ---------------------------------------------------------------------------
# Signal factories
# ---------------------------------------------------------------------------


def _sine(
    frequency: float,
    *,
    sr: int = SR,
    n_samples: int = 2048,
    amplitude: float = 1.0,
) -> np.ndarray:
    t = np.arange(n_samples) / sr
    return (amplitude * np.sin(2.0 * np.pi * frequency * t)).astype(np.float32)


def _click_track(
    bpm: float,
    *,
    sr: int = SR,
    seconds: float = 4.0,
    offset_sec: float = 0.25,
    click_sec: float = 0.01,
) -> np.ndarray:
    """Unit-amplitude rectangular clicks every 60/bpm seconds.

    The first click starts at ``offset_sec`` so its onset lands inside the
    envelope (the first onset frame is always 0).
    """
    y = np.zeros(int(sr * seconds), dtype=np.float32)
    period = int(round(sr * 60.0 / bpm))
    click = int(sr * click_sec)
    for start in range(int(sr * offset_sec), y.size - click, period):
        y[start : start + click] = 1.0
    return y


@pytest.fixture()
def sine() -> Callable[..., np.ndarray]:
    """Factory: ``sine(440.0, n_samples=2048, sr=44100)`` → float32 samples."""
    return _sine


@pytest.fixture()
def click_track() -> Callable[..., np.ndarray]:
    """Factory: ``click_track(120, seconds=4.0)`` → float32 samples."""
    return _click_track


@pytest.fixture()
def fixed_clock() -> Callable[[], int]:
    """Deterministic millisecond clock for ``analyzed_at``."""
    return lambda: 1_700_000_000_000
