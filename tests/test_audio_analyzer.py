"""
Tests for core/audio/analyzer.py — the AudioAnalyzer façade.

Strategy:
    - Real detectors on synthetic sines and click tracks (pure numpy, fast).
    - A fixed clock so ``analyzed_at`` is deterministic.
    - Copy-on-write behaviour of ``with_options`` checked by identity.
"""

import numpy as np
import pytest

from core.audio.analyzer import AudioAnalyzer
from core.audio.buffer import PcmBuffer
from core.audio.errors import InvalidConfigurationError
from core.audio.pitch import AutocorrelationDetector, PitchMethod, YinDetector
from core.audio.spectrum import FFTSpectrum
from core.audio.types import AnalysisResult, ChordInfo, RealtimeResult
from core.config import ADVANCED_OPTIONS, AnalysisOptions

SR = 44100


class _ConstantSpectrum:
    """Spectrum estimator stub returning a fixed 16-bin spectrum."""

    def estimate(self, window: np.ndarray, sample_rate: int) -> np.ndarray:
        return np.full(16, 7, dtype=np.uint8)


# ---------------------------------------------------------------------------
# analyze()
# ---------------------------------------------------------------------------


class TestAnalyze:
    def test_sine_pitch_and_note(self, sine, fixed_clock):
        analyzer = AudioAnalyzer(clock=fixed_clock)
        result = analyzer.analyze(PcmBuffer.from_mono(sine(440.0, n_samples=SR), SR))
        assert isinstance(result, AnalysisResult)
        assert result.pitch == pytest.approx(440.0, rel=0.01)
        assert result.note == "A4"
        assert result.volume > 0.95
        assert result.analyzed_at == 1_700_000_000_000

    def test_window_is_first_fft_size_samples(self, sine):
        result = AudioAnalyzer().analyze(PcmBuffer.from_mono(sine(440.0, n_samples=SR), SR))
        assert result.waveform.shape == (2048,)
        assert result.spectrum.shape == (1024,)

    def test_custom_fft_size(self, sine):
        analyzer = AudioAnalyzer(AnalysisOptions(fft_size=4096))
        result = analyzer.analyze(PcmBuffer.from_mono(sine(440.0, n_samples=SR), SR))
        assert result.waveform.shape == (4096,)

    def test_duration_is_whole_buffer(self, sine):
        result = AudioAnalyzer().analyze(PcmBuffer.from_mono(sine(440.0, n_samples=SR * 2), SR))
        assert result.duration == pytest.approx(2.0)

    def test_advanced_is_off_by_default(self, sine):
        result = AudioAnalyzer().analyze(PcmBuffer.from_mono(sine(440.0, n_samples=SR), SR))
        assert result.advanced is None

    def test_silence(self):
        result = AudioAnalyzer().analyze(PcmBuffer.from_mono(np.zeros(SR), SR))
        assert result.volume == 0.0
        assert result.pitch is None
        assert result.note is None

    def test_white_noise_has_volume_but_no_pitch(self):
        rng = np.random.default_rng(42)
        noise = rng.uniform(-1.0, 1.0, 2048).astype(np.float32)
        result = AudioAnalyzer().analyze(PcmBuffer.from_mono(noise, SR))
        assert result.pitch is None
        assert result.note is None
        assert result.volume > 0.0

    def test_empty_buffer(self):
        result = AudioAnalyzer().analyze(PcmBuffer.from_mono(np.zeros(0), SR))
        assert result.volume == 0.0
        assert result.pitch is None
        assert result.waveform.size == 0
        assert result.duration == 0.0

    def test_stereo_is_mixed_down(self, sine):
        y = sine(440.0, n_samples=SR)
        result = AudioAnalyzer().analyze(PcmBuffer(channels=np.stack([y, y]), sample_rate=SR))
        assert result.note == "A4"

    def test_buffer_rate_is_used_for_pitch(self, sine):
        y = sine(440.0, sr=22050, n_samples=22050)
        result = AudioAnalyzer().analyze(PcmBuffer.from_mono(y, 22050))
        assert result.pitch == pytest.approx(440.0, rel=0.01)

    def test_result_does_not_alias_input(self, sine):
        y = sine(440.0, n_samples=SR)
        result = AudioAnalyzer().analyze(PcmBuffer.from_mono(y, SR))
        before = result.waveform.copy()
        y[:] = 0.0
        assert np.array_equal(result.waveform, before)

    def test_pitch_and_note_present_together(self, sine):
        rng = np.random.default_rng(5)
        for y in (sine(440.0, n_samples=4096), rng.uniform(-1, 1, 4096), np.zeros(4096)):
            result = AudioAnalyzer().analyze(PcmBuffer.from_mono(y, SR))
            assert (result.pitch is None) == (result.note is None)

    def test_custom_spectrum_estimator(self, sine):
        analyzer = AudioAnalyzer(spectrum_estimator=_ConstantSpectrum())
        result = analyzer.analyze(PcmBuffer.from_mono(sine(440.0), SR))
        assert result.spectrum.tolist() == [7] * 16

    def test_fft_spectrum_estimator(self, sine):
        analyzer = AudioAnalyzer(spectrum_estimator=FFTSpectrum())
        result = analyzer.analyze(PcmBuffer.from_mono(sine(440.0), SR))
        assert result.spectrum.shape == (1024,)


class TestAnalyzeAdvanced:
    def test_click_track_bpm(self, click_track):
        result = AudioAnalyzer(ADVANCED_OPTIONS).analyze(PcmBuffer.from_mono(click_track(120), SR))
        assert result.advanced is not None
        assert result.advanced.bpm == 120
        assert result.advanced.bpm_confidence > 0.5
        assert len(result.advanced.beat_positions) >= 6

    def test_silent_window_has_no_chord(self, click_track):
        # The first 2048 samples precede the first click
        result = AudioAnalyzer(ADVANCED_OPTIONS).analyze(PcmBuffer.from_mono(click_track(120), SR))
        assert result.advanced is not None
        assert result.advanced.chord is None
        assert result.advanced.pitch_confidence == 0.0
        assert not result.advanced.chromagram.any()

    def test_pitch_confidence_is_reported(self, sine):
        result = AudioAnalyzer(ADVANCED_OPTIONS).analyze(
            PcmBuffer.from_mono(sine(440.0, n_samples=SR), SR)
        )
        assert result.advanced is not None
        assert result.advanced.pitch_confidence > 0.9
        assert result.advanced.chromagram.shape == (12,)
        assert 0.0 <= result.advanced.chromagram.min()
        assert result.advanced.chromagram.max() <= 1.0


# ---------------------------------------------------------------------------
# analyze_segment() / analyze_realtime()
# ---------------------------------------------------------------------------


class TestAnalyzeSegment:
    def _buffer(self, sine) -> PcmBuffer:
        # 1 s of silence followed by 1 s of A4
        y = np.concatenate([np.zeros(SR, dtype=np.float32), sine(440.0, n_samples=SR)])
        return PcmBuffer.from_mono(y, SR)

    def test_segment_pitch(self, sine):
        result = AudioAnalyzer().analyze_segment(self._buffer(sine), 1.0, 0.5)
        assert result.waveform.shape == (SR // 2,)
        assert result.note == "A4"

    def test_silent_segment(self, sine):
        result = AudioAnalyzer().analyze_segment(self._buffer(sine), 0.0, 0.5)
        assert result.volume == 0.0
        assert result.pitch is None

    def test_duration_is_source_duration(self, sine):
        result = AudioAnalyzer().analyze_segment(self._buffer(sine), 1.0, 0.5)
        assert result.duration == pytest.approx(2.0)

    def test_never_runs_advanced(self, sine):
        result = AudioAnalyzer(ADVANCED_OPTIONS).analyze_segment(self._buffer(sine), 1.0, 0.5)
        assert result.advanced is None

    def test_segment_past_end_is_empty(self, sine):
        result = AudioAnalyzer().analyze_segment(self._buffer(sine), 5.0, 1.0)
        assert result.waveform.size == 0
        assert result.spectrum.size == 0
        assert result.volume == 0.0
        assert result.note is None


class TestAnalyzeRealtime:
    def test_returns_realtime_result(self, sine):
        result = AudioAnalyzer().analyze_realtime(sine(440.0))
        assert type(result) is RealtimeResult
        assert result.note == "A4"

    def test_uses_analyzer_sample_rate(self, sine):
        result = AudioAnalyzer(sample_rate=22050).analyze_realtime(sine(440.0, sr=22050))
        assert result.pitch == pytest.approx(440.0, rel=0.01)

    def test_silent_window(self):
        result = AudioAnalyzer().analyze_realtime(np.zeros(2048))
        assert result.volume == 0.0
        assert result.pitch is None


# ---------------------------------------------------------------------------
# Individual detectors
# ---------------------------------------------------------------------------


class TestDetectors:
    def test_detect_pitch_default_method(self, sine):
        est = AudioAnalyzer().detect_pitch(sine(440.0))
        assert est is not None
        assert est.frequency_hz == pytest.approx(440.0, rel=0.01)

    def test_detect_pitch_autocorrelation_override(self, sine):
        est = AudioAnalyzer().detect_pitch(sine(440.0), method=PitchMethod.AUTOCORRELATION)
        assert est is not None
        assert est.frequency_hz == pytest.approx(440.0, rel=0.02)

    def test_detect_pitch_other_rate(self, sine):
        est = AudioAnalyzer().detect_pitch(sine(440.0, sr=22050), sample_rate=22050)
        assert est is not None
        assert est.frequency_hz == pytest.approx(440.0, rel=0.01)

    def test_detect_pitch_zero_rate_raises(self, sine):
        with pytest.raises(ValueError, match="Sample rate must be positive"):
            AudioAnalyzer().detect_pitch(sine(440.0), sample_rate=0)

    def test_recognize_chord_zero_rate_raises(self):
        with pytest.raises(ValueError, match="Sample rate must be positive"):
            AudioAnalyzer().recognize_chord(np.full(1024, 100, dtype=np.uint8), sample_rate=0)

    def test_detect_bpm(self, click_track):
        result = AudioAnalyzer().detect_bpm(PcmBuffer.from_mono(click_track(100), SR))
        assert result.bpm == 100

    def test_recognize_chord_from_spectrum(self):
        # bins 20, 24, 31 of 1024 at 44.1 kHz → A, C, E
        spectrum = np.zeros(1024, dtype=np.uint8)
        spectrum[[20, 24, 31]] = 200
        chord = AudioAnalyzer().recognize_chord(spectrum)
        assert isinstance(chord, ChordInfo)
        assert chord.name == "Aminor"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestWithOptions:
    def test_returns_new_analyzer(self):
        analyzer = AudioAnalyzer()
        updated = analyzer.with_options(enable_advanced=True)
        assert updated is not analyzer
        assert updated.options.enable_advanced is True
        assert analyzer.options.enable_advanced is False

    def test_detector_reused_when_bounds_unchanged(self):
        analyzer = AudioAnalyzer()
        assert analyzer.with_options(min_bpm=70.0).pitch_detector is analyzer.pitch_detector

    def test_detector_rebuilt_when_bounds_change(self):
        analyzer = AudioAnalyzer()
        updated = analyzer.with_options(min_frequency=80.0, max_frequency=1000.0)
        assert updated.pitch_detector is not analyzer.pitch_detector
        assert isinstance(updated.pitch_detector, YinDetector)
        assert updated.pitch_detector.min_frequency == 80.0
        assert updated.pitch_detector.max_frequency == 1000.0
        assert analyzer.pitch_detector.min_frequency == 50.0

    def test_detector_rebuilt_when_threshold_changes(self):
        updated = AudioAnalyzer().with_options(yin_threshold=0.2)
        assert updated.pitch_detector.threshold == 0.2

    def test_method_switch(self):
        updated = AudioAnalyzer().with_options(pitch_method=PitchMethod.AUTOCORRELATION)
        assert isinstance(updated.pitch_detector, AutocorrelationDetector)

    def test_invalid_update_raises_and_leaves_original(self):
        analyzer = AudioAnalyzer()
        with pytest.raises(InvalidConfigurationError):
            analyzer.with_options(min_frequency=9000.0)
        assert analyzer.options.min_frequency == 50.0

    def test_keeps_spectrum_estimator(self):
        estimator = FFTSpectrum()
        analyzer = AudioAnalyzer(spectrum_estimator=estimator)
        assert analyzer.with_options(enable_advanced=True).spectrum_estimator is estimator

    def test_non_positive_sample_rate_raises(self):
        with pytest.raises(ValueError, match="Sample rate"):
            AudioAnalyzer(sample_rate=0)
