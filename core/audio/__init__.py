"""
core/audio — Pure audio analysis engine.

Turns a captured PCM buffer into pitch, loudness, tempo and chord
descriptors. All components are pure transforms over in-memory arrays:
no file I/O (that lives in ingestion/audio_loader.py), no cross-call state.

Architecture note:
    numpy is the only runtime dependency of core/audio/. Decoding audio
    files is the job of ingestion/audio_loader.py, which hands PcmBuffer
    values to AudioAnalyzer.

Public API:
    Types:      PcmBuffer, AnalysisResult, RealtimeResult, AdvancedResult,
                ChordInfo, PitchEstimate, BeatResult
    Errors:     AudioAnalysisError, InvalidConfigurationError, NoteParseError
    Notes:      frequency_to_note, note_to_frequency
    Analyzer:   core.audio.analyzer.AudioAnalyzer
"""

from core.audio.buffer import PcmBuffer
from core.audio.errors import AudioAnalysisError, InvalidConfigurationError, NoteParseError
from core.audio.notes import frequency_to_note, note_to_frequency
from core.audio.types import (
    AdvancedResult,
    AnalysisResult,
    BeatResult,
    ChordInfo,
    PitchEstimate,
    RealtimeResult,
)

__all__ = [
    "PcmBuffer",
    "AnalysisResult",
    "RealtimeResult",
    "AdvancedResult",
    "ChordInfo",
    "PitchEstimate",
    "BeatResult",
    "AudioAnalysisError",
    "InvalidConfigurationError",
    "NoteParseError",
    "frequency_to_note",
    "note_to_frequency",
]
