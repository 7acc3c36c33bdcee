"""
api/schemas/analysis.py — Pydantic request/response schemas for analysis endpoints.

Covers:
    /analyze/file        — AnalyzeFileRequest    / AnalysisResponse
    /analyze/segment     — AnalyzeSegmentRequest / AnalysisResponse
    /analyze/samples     — AnalyzeSamplesRequest / AnalysisResponse
    /notes/...           — NoteFrequencyResponse, FrequencyNoteResponse
"""

from __future__ import annotations

import math

from pydantic import BaseModel, Field, field_validator

from core.audio.types import AdvancedResult, AnalysisResult, ChordInfo

# Upper bound on in-memory sample uploads (~60 s at 44.1 kHz)
MAX_UPLOAD_SAMPLES: int = 44100 * 60

# ---------------------------------------------------------------------------
# Shared sub-schemas
# ---------------------------------------------------------------------------


class ChordOut(BaseModel):
    """A recognized triad."""

    root: str
    quality: str
    name: str
    notes: list[str]
    confidence: float

    @classmethod
    def from_chord(cls, chord: ChordInfo) -> ChordOut:
        return cls(
            root=chord.root,
            quality=chord.quality,
            name=chord.name,
            notes=list(chord.notes),
            confidence=chord.confidence,
        )


class AdvancedOut(BaseModel):
    """Tempo and harmony descriptors (only when advanced analysis ran)."""

    bpm: int | None = Field(None, gt=0)
    bpm_confidence: float = Field(..., ge=0.0, le=1.0)
    chord: ChordOut | None = None
    pitch_confidence: float = Field(..., ge=0.0, le=1.0)
    chromagram: list[float] = Field(..., min_length=12, max_length=12)
    beat_positions: list[float] = []

    @classmethod
    def from_advanced(cls, advanced: AdvancedResult) -> AdvancedOut:
        return cls(
            bpm=advanced.bpm,
            bpm_confidence=advanced.bpm_confidence,
            chord=ChordOut.from_chord(advanced.chord) if advanced.chord is not None else None,
            pitch_confidence=advanced.pitch_confidence,
            chromagram=[float(v) for v in advanced.chromagram],
            beat_positions=list(advanced.beat_positions),
        )


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class AnalyzeFileRequest(BaseModel):
    """Request body for POST /analyze/file."""

    file_path: str = Field(..., min_length=1, description="Server-side path to an audio file")
    duration: float = Field(30.0, gt=0.0, le=300.0, description="Max seconds to load")
    enable_advanced: bool | None = Field(
        None, description="Override the server default for BPM/chord detection"
    )
    include_waveform: bool = False


class AnalyzeSegmentRequest(BaseModel):
    """Request body for POST /analyze/segment."""

    file_path: str = Field(..., min_length=1)
    start_time: float = Field(..., ge=0.0, description="Segment start in seconds")
    duration: float = Field(..., gt=0.0, le=300.0, description="Segment length in seconds")
    include_waveform: bool = False


class AnalyzeSamplesRequest(BaseModel):
    """Request body for POST /analyze/samples — raw mono samples in [-1, 1]."""

    samples: list[float] = Field(..., min_length=1, max_length=MAX_UPLOAD_SAMPLES)
    sample_rate: int = Field(44100, gt=0, le=192000)
    enable_advanced: bool | None = None
    include_waveform: bool = False

    @field_validator("samples")
    @classmethod
    def samples_must_be_finite(cls, v: list[float]) -> list[float]:
        if not all(math.isfinite(s) for s in v):
            raise ValueError("samples must be finite numbers")
        return v


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class AnalysisResponse(BaseModel):
    """Feature set for one analyzed buffer or segment."""

    volume: float = Field(..., ge=0.0, le=1.0)
    pitch: float | None = None
    note: str | None = None
    duration_sec: float = Field(..., ge=0.0)
    analyzed_at: int
    spectrum: list[int]
    waveform: list[float] | None = None
    advanced: AdvancedOut | None = None

    @classmethod
    def from_result(
        cls, result: AnalysisResult, *, include_waveform: bool = False
    ) -> AnalysisResponse:
        return cls(
            volume=result.volume,
            pitch=result.pitch,
            note=result.note,
            duration_sec=result.duration,
            analyzed_at=result.analyzed_at,
            spectrum=[int(v) for v in result.spectrum],
            waveform=[float(v) for v in result.waveform] if include_waveform else None,
            advanced=(
                AdvancedOut.from_advanced(result.advanced)
                if result.advanced is not None
                else None
            ),
        )


class NoteFrequencyResponse(BaseModel):
    """Response for GET /notes/{note}/frequency."""

    note: str
    frequency_hz: float = Field(..., gt=0.0)


class FrequencyNoteResponse(BaseModel):
    """Response for GET /notes/from-frequency."""

    frequency_hz: float = Field(..., gt=0.0)
    note: str
    midi: float
    cents_off: float = Field(..., ge=-50.0, le=50.0)
