"""
Configuration dataclasses for the audio analysis engine.

These immutable config objects decouple parameter passing from function
signatures. An AudioAnalyzer holds exactly one AnalysisOptions value;
changing options means building a new value (see AnalysisOptions.replace),
never mutating one that an in-flight analysis may be reading.
"""

from __future__ import annotations

import dataclasses
import math
import os
from dataclasses import dataclass
from typing import Any

from dotenv import load_dotenv

from core.audio.errors import InvalidConfigurationError
from core.audio.pitch import PitchMethod

# Option fields that the pitch detector is built from. Changing any of them
# requires a detector rebuild.
PITCH_DETECTOR_FIELDS: frozenset[str] = frozenset(
    {"min_frequency", "max_frequency", "yin_threshold", "pitch_method"}
)

_TRUE_STRINGS: frozenset[str] = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS: frozenset[str] = frozenset({"0", "false", "no", "off"})

_FLOAT_FIELDS: tuple[str, ...] = (
    "smoothing_time_constant",
    "min_frequency",
    "max_frequency",
    "yin_threshold",
    "min_bpm",
    "max_bpm",
)


@dataclass(frozen=True)
class AnalysisOptions:
    """
    Configuration for audio analysis.

    Attributes:
        fft_size: Analysis window length in samples. Must be a power of two.
            Defaults to 2048 (~46 ms at 44.1 kHz).
        smoothing_time_constant: Spectrum smoothing factor in [0, 1] used by
            a continuously running capture front end. Batch analysis ignores it.
        min_frequency: Lowest pitch considered by the detectors (Hz).
        max_frequency: Highest pitch considered by the detectors (Hz).
        yin_threshold: Absolute CMNDF threshold for YIN, in (0, 1).
            Lower is stricter.
        min_bpm: Slowest tempo the beat tracker searches for.
        max_bpm: Fastest tempo the beat tracker searches for.
        enable_advanced: Run BPM and chord detection in ``analyze()``.
            Off by default because these are the expensive paths.
        pitch_method: Which pitch detection strategy to use.

    Example:
        >>> options = AnalysisOptions(min_frequency=80.0, enable_advanced=True)
        >>> analyzer = AudioAnalyzer(options)
    """

    fft_size: int = 2048
    smoothing_time_constant: float = 0.8
    min_frequency: float = 50.0
    max_frequency: float = 5000.0
    yin_threshold: float = 0.1
    min_bpm: float = 60.0
    max_bpm: float = 180.0
    enable_advanced: bool = False
    pitch_method: PitchMethod = PitchMethod.YIN

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if isinstance(self.fft_size, bool) or not isinstance(self.fft_size, int):
            raise InvalidConfigurationError(
                f"fft_size must be an int, got {self.fft_size!r}"
            )
        if self.fft_size <= 0:
            raise InvalidConfigurationError(f"fft_size must be positive, got {self.fft_size}")
        if self.fft_size & (self.fft_size - 1) != 0:
            raise InvalidConfigurationError(
                f"fft_size must be a power of two, got {self.fft_size}"
            )
        for name in _FLOAT_FIELDS:
            value = getattr(self, name)
            if not math.isfinite(value):
                raise InvalidConfigurationError(f"{name} must be finite, got {value}")
        if not 0.0 <= self.smoothing_time_constant <= 1.0:
            raise InvalidConfigurationError(
                "smoothing_time_constant must be in [0, 1], "
                f"got {self.smoothing_time_constant}"
            )
        if not self.min_frequency > 0:
            raise InvalidConfigurationError(
                f"min_frequency must be positive, got {self.min_frequency}"
            )
        if not self.min_frequency < self.max_frequency:
            raise InvalidConfigurationError(
                f"min_frequency ({self.min_frequency}) must be less than "
                f"max_frequency ({self.max_frequency})"
            )
        if not 0.0 < self.yin_threshold < 1.0:
            raise InvalidConfigurationError(
                f"yin_threshold must be in (0, 1), got {self.yin_threshold}"
            )
        if not self.min_bpm > 0:
            raise InvalidConfigurationError(f"min_bpm must be positive, got {self.min_bpm}")
        if not self.min_bpm < self.max_bpm:
            raise InvalidConfigurationError(
                f"min_bpm ({self.min_bpm}) must be less than max_bpm ({self.max_bpm})"
            )
        if not isinstance(self.pitch_method, PitchMethod):
            raise InvalidConfigurationError(
                f"pitch_method must be a PitchMethod, got {self.pitch_method!r}"
            )

    def replace(self, **changes: Any) -> AnalysisOptions:
        """Return a validated copy with ``changes`` applied.

        All changes are applied at once, so a pair of bounds can be moved
        together without tripping the ordering check on an intermediate
        state (e.g. raising both min_frequency and max_frequency).

        Raises:
            InvalidConfigurationError: If the combined result is invalid or
                a field name is unknown.
        """
        unknown = set(changes) - {f.name for f in dataclasses.fields(self)}
        if unknown:
            raise InvalidConfigurationError(f"Unknown option(s): {sorted(unknown)}")
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_env(cls, prefix: str = "AUDIO_ANALYSIS_") -> AnalysisOptions:
        """Build options from environment variables (and a ``.env`` file).

        Each field can be overridden by ``<prefix><FIELD_NAME>``, e.g.
        ``AUDIO_ANALYSIS_MIN_FREQUENCY=80``. Unset variables keep defaults.

        Raises:
            InvalidConfigurationError: If a value cannot be parsed or the
                resulting options are invalid.
        """
        load_dotenv()
        overrides: dict[str, Any] = {}
        for f in dataclasses.fields(cls):
            raw = os.environ.get(f"{prefix}{f.name.upper()}")
            if raw is None:
                continue
            overrides[f.name] = _parse_env_value(f.name, raw, f.default)
        return cls(**overrides)


def _parse_env_value(name: str, raw: str, default: Any) -> Any:
    """Coerce a raw environment string to the type of the field default."""
    value = raw.strip()
    try:
        if isinstance(default, bool):
            lowered = value.lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
            raise ValueError(value)
        if isinstance(default, PitchMethod):
            return PitchMethod(value.lower())
        if isinstance(default, int):
            return int(value)
        return float(value)
    except ValueError as exc:
        raise InvalidConfigurationError(f"Invalid value for {name}: {raw!r}") from exc


# Pre-defined configurations for common use cases

DEFAULT_OPTIONS = AnalysisOptions()
"""Default configuration: 2048-sample window, 50–5000 Hz, YIN threshold 0.1."""

ADVANCED_OPTIONS = AnalysisOptions(enable_advanced=True)
"""Defaults plus BPM and chord detection on whole-buffer analysis."""

VOICE_OPTIONS = AnalysisOptions(min_frequency=80.0, max_frequency=1100.0)
"""Narrow pitch band for singing and humming (roughly E2–C6)."""
