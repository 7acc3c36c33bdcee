"""
core/audio/errors.py — Exception types raised by the analysis engine.

Only configuration and parse problems are errors. Silence, noise and
atonal input are normal inputs: detectors report them as ``None`` results,
never by raising.

Both concrete errors subclass ``ValueError`` so callers that already catch
``ValueError`` at an API boundary keep working.
"""

from __future__ import annotations


class AudioAnalysisError(Exception):
    """Base class for analysis engine errors."""


class InvalidConfigurationError(AudioAnalysisError, ValueError):
    """Raised when AnalysisOptions values are inconsistent or out of range."""


class NoteParseError(AudioAnalysisError, ValueError):
    """Raised when a note name does not match ``<Letter>[#]<octave>``."""
