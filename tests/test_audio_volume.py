"""Tests for core/audio/volume.py — normalized RMS loudness."""

import numpy as np
import pytest

from core.audio.volume import estimate_volume


class TestEstimateVolume:
    def test_full_scale_sine_is_near_one(self, sine):
        # 441 Hz at 44.1 kHz → exactly 100 samples per period, 2000 = 20 periods
        assert estimate_volume(sine(441.0, n_samples=2000)) == pytest.approx(1.0, abs=1e-4)

    def test_half_scale_sine_is_near_half(self, sine):
        y = sine(441.0, n_samples=2000, amplitude=0.5)
        assert estimate_volume(y) == pytest.approx(0.5, abs=1e-4)

    def test_silence_is_zero(self):
        assert estimate_volume(np.zeros(1024, dtype=np.float32)) == 0.0

    def test_clipped_input_is_clamped(self, sine):
        assert estimate_volume(sine(441.0, amplitude=10.0)) == 1.0

    def test_square_wave_is_clamped(self):
        y = np.tile(np.array([1.0, -1.0], dtype=np.float32), 512)
        assert estimate_volume(y) == 1.0

    def test_always_in_unit_interval(self):
        rng = np.random.default_rng(0)
        for scale in (0.001, 0.1, 1.0, 5.0, 100.0):
            v = estimate_volume(rng.standard_normal(2048) * scale)
            assert 0.0 <= v <= 1.0

    def test_empty_window_raises(self):
        with pytest.raises(ValueError, match="empty window"):
            estimate_volume(np.zeros(0))

    def test_returns_python_float(self):
        assert isinstance(estimate_volume(np.ones(8)), float)
