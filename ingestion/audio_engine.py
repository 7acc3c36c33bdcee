"""
ingestion/audio_engine.py — High-level orchestrator for file → analysis.

AudioAnalysisEngine wires the decoding boundary to the pure analyzer:

    audio file
        │
        ├─ load_audio()              [ingestion/audio_loader.py — I/O boundary]
        │       ↓ PcmBuffer
        ├─ AudioAnalyzer.analyze()   [core/audio/analyzer.py — pure DSP]
        │       ↓ AnalysisResult
        └─ record_analysis()         [infrastructure/metrics.py]

This module is in `ingestion/` because it performs file I/O and records
metrics. The analysis itself is pure and lives in `core/`.

Usage:
    engine = AudioAnalysisEngine(AudioAnalyzer(ADVANCED_OPTIONS))
    result = engine.analyze_file("/path/to/take.wav")
    print(result.note, result.advanced.bpm)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import numpy as np

from core.audio.analyzer import AudioAnalyzer
from core.audio.buffer import PcmBuffer
from core.audio.types import AnalysisResult
from core.config import AnalysisOptions
from infrastructure.metrics import LatencyTimer, record_analysis, record_analysis_error
from ingestion.audio_loader import DEFAULT_DURATION, load_audio

logger = logging.getLogger(__name__)

Loader = Callable[..., PcmBuffer]


def _error_label(exc: Exception) -> str:
    if isinstance(exc, FileNotFoundError):
        return "not_found"
    if isinstance(exc, ValueError):
        return "unsupported"
    return "decode"


class AudioAnalysisEngine:
    """Loads audio files and runs them through an AudioAnalyzer.

    The engine holds no per-call state: the analyzer is immutable and each
    call loads its own buffer, so one engine can serve concurrent requests.

    Example:
        engine = AudioAnalysisEngine()
        result = engine.analyze_file("/path/to/loop.mp3")
        segment = engine.analyze_file_segment("/path/to/loop.mp3", 1.0, 0.5)
    """

    def __init__(
        self,
        analyzer: AudioAnalyzer | None = None,
        *,
        loader: Loader | None = None,
    ) -> None:
        """Initialise the engine.

        Args:
            analyzer: Analyzer to use. None = default options.
            loader: Decoding function (path, **kwargs) → PcmBuffer.
                    None = load_audio (librosa).
        """
        self._analyzer = analyzer if analyzer is not None else AudioAnalyzer()
        self._loader = loader if loader is not None else load_audio

    @property
    def analyzer(self) -> AudioAnalyzer:
        return self._analyzer

    def with_options(self, **changes: object) -> AudioAnalysisEngine:
        """Return an engine whose analyzer has ``changes`` applied."""
        return AudioAnalysisEngine(self._analyzer.with_options(**changes), loader=self._loader)

    def _load(self, path: str | Path, **kwargs: object) -> PcmBuffer:
        try:
            return self._loader(path, **kwargs)
        except (FileNotFoundError, ValueError, RuntimeError) as exc:
            record_analysis_error(_error_label(exc))
            if isinstance(exc, RuntimeError):
                logger.error("Decoding failed for %s: %s", path, exc)
            raise

    # ------------------------------------------------------------------
    # Analysis entry points
    # ------------------------------------------------------------------

    def analyze_file(
        self,
        path: str | Path,
        *,
        duration: float | None = DEFAULT_DURATION,
    ) -> AnalysisResult:
        """Load an audio file and analyze it as a whole buffer.

        Args:
            path:     Path to an audio file (wav, mp3, flac, ...).
            duration: Maximum seconds to load (default 30 s).

        Returns:
            AnalysisResult, with ``advanced`` populated when the analyzer's
            options enable it.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file extension is not a supported format.
            RuntimeError: If the audio cannot be decoded.
        """
        with LatencyTimer() as timer:
            buffer = self._load(path, duration=duration)
            result = self._analyzer.analyze(buffer)
        record_analysis(kind="file", result=result, latency_seconds=timer.elapsed)
        logger.info(
            "Analyzed %s: %.2fs, note=%s, volume=%.3f in %.1f ms",
            Path(path).name,
            result.duration,
            result.note,
            result.volume,
            timer.elapsed * 1000.0,
        )
        return result

    def analyze_file_segment(
        self,
        path: str | Path,
        start_time: float,
        duration: float,
    ) -> AnalysisResult:
        """Load an audio file and analyze one segment of it.

        The whole file (up to the default load limit) is decoded so the
        result's ``duration`` reflects the source, as with in-memory buffers.

        Raises:
            FileNotFoundError, ValueError, RuntimeError: from load_audio.
        """
        if start_time < 0 or duration <= 0:
            raise ValueError(
                f"Segment needs start_time >= 0 and duration > 0, got {start_time}, {duration}"
            )
        with LatencyTimer() as timer:
            buffer = self._load(path, duration=max(DEFAULT_DURATION, start_time + duration))
            result = self._analyzer.analyze_segment(buffer, start_time, duration)
        record_analysis(kind="segment", result=result, latency_seconds=timer.elapsed)
        return result

    def analyze_samples(self, samples: np.ndarray, sample_rate: int) -> AnalysisResult:
        """Analyze samples that are already in memory (no decoding).

        Args:
            samples: Shape (N,) or (n_channels, N), floats in [-1, 1].
            sample_rate: Sample rate in Hz.
        """
        with LatencyTimer() as timer:
            result = self._analyzer.analyze(PcmBuffer(channels=samples, sample_rate=sample_rate))
        record_analysis(kind="samples", result=result, latency_seconds=timer.elapsed)
        return result


def analyze_audio_file(
    path: str | Path,
    options: AnalysisOptions | None = None,
) -> AnalysisResult:
    """One-shot convenience: decode ``path`` and analyze it.

    Args:
        path: Path to an audio file.
        options: Analysis options. None = defaults.
    """
    analyzer = AudioAnalyzer(options) if options is not None else AudioAnalyzer()
    return AudioAnalysisEngine(analyzer).analyze_file(path)
