"""
core/audio/analyzer.py — AudioAnalyzer, the façade over the DSP components.

    PcmBuffer
        │
        ├─ mix_to_mono()                    [buffer.py]
        │       ↓ analysis window (first fft_size samples)
        ├─ estimate_volume()                [volume.py]
        ├─ PitchDetector.detect()           [pitch.py — YIN by default]
        ├─ frequency_to_note()              [notes.py]
        ├─ SpectrumEstimator.estimate()     [spectrum.py — pluggable]
        │
        └─ enable_advanced only (whole-buffer analyze()):
             ├─ detect_beats(full mono)     [beats.py]
             └─ calculate_chromagram() → recognize_chord()   [chords.py]

The analyzer owns two values, both immutable: its AnalysisOptions and the
pitch detector built from them. `with_options()` returns a new analyzer;
the detector is rebuilt only if a pitch-related option changed. An analyzer
can therefore be shared between threads — no call mutates it.

Every result is freshly allocated. Waveform and spectrum are copies, never
views of the caller's buffer.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

import numpy as np

from core.audio.beats import detect_beats
from core.audio.buffer import PcmBuffer, mix_to_mono, slice_segment
from core.audio.chords import calculate_chromagram
from core.audio.chords import recognize_chord as _recognize_chord
from core.audio.notes import frequency_to_note
from core.audio.pitch import PitchDetector, PitchMethod, build_pitch_detector
from core.audio.spectrum import EnergyBucketSpectrum, SpectrumEstimator
from core.audio.types import (
    AdvancedResult,
    AnalysisResult,
    BeatResult,
    ChordInfo,
    PitchEstimate,
    RealtimeResult,
)
from core.audio.volume import estimate_volume
from core.config import DEFAULT_OPTIONS, PITCH_DETECTOR_FIELDS, AnalysisOptions

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_RATE: int = 44100


def _now_ms() -> int:
    return int(time.time() * 1000)


class AudioAnalyzer:
    """Turns PCM buffers into pitch, loudness, tempo and chord descriptors.

    Example:
        analyzer = AudioAnalyzer(AnalysisOptions(enable_advanced=True))
        result = analyzer.analyze(PcmBuffer.from_mono(y, 44100))
        print(result.note, result.volume, result.advanced.bpm)

        strict = analyzer.with_options(yin_threshold=0.05)
    """

    def __init__(
        self,
        options: AnalysisOptions = DEFAULT_OPTIONS,
        *,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        spectrum_estimator: SpectrumEstimator | None = None,
        clock: Callable[[], int] = _now_ms,
        pitch_detector: PitchDetector | None = None,
    ) -> None:
        """Initialise the analyzer.

        Args:
            options: Validated analysis options.
            sample_rate: Rate of live windows passed to analyze_realtime(), and
                the rate the default pitch detector is built for.
            spectrum_estimator: Spectrum source for results and chroma.
                None = EnergyBucketSpectrum (coarse, FFT-free).
            clock: Millisecond timestamp source for ``analyzed_at``.
            pitch_detector: Prebuilt detector for ``sample_rate``. None = build
                one from the options. A custom strategy must honour the same
                frequency bounds as ``options``.
        """
        if sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {sample_rate}")
        self._options = options
        self._sample_rate = int(sample_rate)
        if spectrum_estimator is None:
            spectrum_estimator = EnergyBucketSpectrum()
        self._spectrum = spectrum_estimator
        self._clock = clock
        if pitch_detector is None:
            pitch_detector = self._build_detector(self._sample_rate)
        self._detector = pitch_detector

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def options(self) -> AnalysisOptions:
        return self._options

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def pitch_detector(self) -> PitchDetector:
        """The detector used for windows at ``sample_rate``."""
        return self._detector

    @property
    def spectrum_estimator(self) -> SpectrumEstimator:
        return self._spectrum

    def with_options(self, **changes: Any) -> AudioAnalyzer:
        """Return a new analyzer with ``changes`` applied to the options.

        The combined options are validated before anything is built, so a
        rejected update leaves no half-configured analyzer behind. The pitch
        detector is reused unless a pitch-related field changed.

        Raises:
            InvalidConfigurationError: If the updated options are invalid.
        """
        new_options = self._options.replace(**changes)
        rebuild = any(
            getattr(new_options, name) != getattr(self._options, name)
            for name in PITCH_DETECTOR_FIELDS
        )
        return AudioAnalyzer(
            new_options,
            sample_rate=self._sample_rate,
            spectrum_estimator=self._spectrum,
            clock=self._clock,
            pitch_detector=None if rebuild else self._detector,
        )

    def _build_detector(
        self, sample_rate: int, method: PitchMethod | None = None
    ) -> PitchDetector:
        opts = self._options
        return build_pitch_detector(
            method or opts.pitch_method,
            sample_rate,
            threshold=opts.yin_threshold,
            min_frequency=opts.min_frequency,
            max_frequency=opts.max_frequency,
        )

    def _detector_for(self, sample_rate: int) -> PitchDetector:
        """Detector for a buffer's own rate; a fresh one if it differs from ours."""
        if sample_rate == self._sample_rate:
            return self._detector
        return self._build_detector(sample_rate)

    # ------------------------------------------------------------------
    # Core analysis
    # ------------------------------------------------------------------

    def analyze(self, buffer: PcmBuffer) -> AnalysisResult:
        """Analyze a whole captured buffer.

        Volume, pitch and spectrum come from the first ``fft_size`` samples
        of the mono mix. With ``enable_advanced``, tempo is tracked over the
        full buffer and the chord is recognized from the window's spectrum.

        Returns:
            AnalysisResult; ``advanced`` is None unless enabled.
        """
        sr = buffer.sample_rate
        mono = mix_to_mono(buffer)
        window = mono[: self._options.fft_size]

        volume, estimate = self._measure(window, self._detector_for(sr))
        spectrum = self._spectrum.estimate(window, sr)

        advanced = None
        if self._options.enable_advanced:
            advanced = self._advanced(mono, sr, spectrum, estimate)

        pitch = estimate.frequency_hz if estimate is not None else None
        return AnalysisResult(
            volume=volume,
            pitch=pitch,
            note=frequency_to_note(pitch) if pitch is not None else None,
            waveform=window,
            spectrum=spectrum,
            analyzed_at=self._clock(),
            duration=buffer.duration,
            advanced=advanced,
        )

    def analyze_segment(
        self, buffer: PcmBuffer, start_time: float, duration: float
    ) -> AnalysisResult:
        """Analyze ``duration`` seconds starting at ``start_time``.

        Never runs tempo or chord detection. ``duration`` in the result is
        the duration of the whole source buffer; the segment itself is the
        returned waveform.
        """
        sr = buffer.sample_rate
        segment = slice_segment(mix_to_mono(buffer), sr, start_time, duration)
        volume, estimate = self._measure(segment, self._detector_for(sr))
        pitch = estimate.frequency_hz if estimate is not None else None
        return AnalysisResult(
            volume=volume,
            pitch=pitch,
            note=frequency_to_note(pitch) if pitch is not None else None,
            waveform=segment,
            spectrum=self._spectrum.estimate(segment, sr),
            analyzed_at=self._clock(),
            duration=buffer.duration,
        )

    def analyze_realtime(self, window: np.ndarray) -> RealtimeResult:
        """Analyze the current contents of a live capture window.

        The window is assumed to be at the analyzer's ``sample_rate``. There
        is no duration for a sliding window and no advanced analysis.
        """
        samples = np.asarray(window, dtype=np.float32).reshape(-1)
        volume, estimate = self._measure(samples, self._detector)
        pitch = estimate.frequency_hz if estimate is not None else None
        return RealtimeResult(
            volume=volume,
            pitch=pitch,
            note=frequency_to_note(pitch) if pitch is not None else None,
            waveform=samples,
            spectrum=self._spectrum.estimate(samples, self._sample_rate),
            analyzed_at=self._clock(),
        )

    # ------------------------------------------------------------------
    # Individual detectors
    # ------------------------------------------------------------------

    def detect_pitch(
        self,
        window: np.ndarray,
        *,
        sample_rate: int | None = None,
        method: PitchMethod | None = None,
    ) -> PitchEstimate | None:
        """Run one pitch detector on a window.

        Args:
            window: 1-D samples.
            sample_rate: Rate of the window. None = the analyzer's rate.
            method: Strategy override, e.g. PitchMethod.AUTOCORRELATION.
                None = the configured method.
        """
        sr = self._sample_rate if sample_rate is None else sample_rate
        if method is None or PitchMethod(method) == self._options.pitch_method:
            detector = self._detector_for(sr)
        else:
            detector = self._build_detector(sr, PitchMethod(method))
        return detector.detect(np.asarray(window, dtype=np.float32).reshape(-1))

    def detect_bpm(self, buffer: PcmBuffer) -> BeatResult:
        """Tempo and beat positions of a whole buffer, using the BPM bounds."""
        return detect_beats(
            buffer,
            min_bpm=self._options.min_bpm,
            max_bpm=self._options.max_bpm,
        )

    def recognize_chord(
        self, spectrum: np.ndarray, *, sample_rate: int | None = None
    ) -> ChordInfo | None:
        """Recognize the chord in a byte-scaled spectrum."""
        sr = self._sample_rate if sample_rate is None else sample_rate
        chroma = calculate_chromagram(spectrum, sr)
        return _recognize_chord(chroma)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _measure(
        window: np.ndarray, detector: PitchDetector
    ) -> tuple[float, PitchEstimate | None]:
        """Volume and pitch of one window. An empty window is silent."""
        if window.size == 0:
            return 0.0, None
        volume = estimate_volume(window)
        if volume == 0.0:
            return 0.0, None
        return volume, detector.detect(window)

    def _advanced(
        self,
        mono: np.ndarray,
        sample_rate: int,
        spectrum: np.ndarray,
        estimate: PitchEstimate | None,
    ) -> AdvancedResult:
        beats = detect_beats(
            mono,
            sample_rate,
            min_bpm=self._options.min_bpm,
            max_bpm=self._options.max_bpm,
        )
        chroma = calculate_chromagram(spectrum, sample_rate)
        chord = _recognize_chord(chroma)
        logger.debug(
            "Advanced analysis: bpm=%s chord=%s",
            beats.bpm,
            chord.name if chord is not None else None,
        )
        return AdvancedResult(
            bpm=beats.bpm,
            bpm_confidence=beats.confidence,
            chord=chord,
            pitch_confidence=estimate.confidence if estimate is not None else 0.0,
            chromagram=chroma,
            beat_positions=beats.beat_positions,
        )
