"""
api/routes/analyze.py — Audio analysis endpoints.

Endpoints:
    POST /analyze/file     — Whole-buffer analysis of a server-side audio file
    POST /analyze/segment  — Analysis of one time range of a file (no BPM/chord)
    POST /analyze/samples  — Analysis of raw samples posted in the body

All endpoints delegate to AudioAnalysisEngine in ingestion/audio_engine.py.
"""

from __future__ import annotations

import logging

import numpy as np
from fastapi import APIRouter, HTTPException

from api.schemas.analysis import (
    AnalysisResponse,
    AnalyzeFileRequest,
    AnalyzeSamplesRequest,
    AnalyzeSegmentRequest,
)
from core.audio.analyzer import AudioAnalyzer
from core.config import AnalysisOptions
from ingestion.audio_engine import AudioAnalysisEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analyze", tags=["analyze"])

# Shared engine instance; options read from the environment on first request
_engine: AudioAnalysisEngine | None = None


def _get_engine() -> AudioAnalysisEngine:
    global _engine
    if _engine is None:
        _engine = AudioAnalysisEngine(AudioAnalyzer(AnalysisOptions.from_env()))
    return _engine


def _engine_for(enable_advanced: bool | None) -> AudioAnalysisEngine:
    engine = _get_engine()
    if enable_advanced is None or enable_advanced == engine.analyzer.options.enable_advanced:
        return engine
    return engine.with_options(enable_advanced=enable_advanced)


# ---------------------------------------------------------------------------
# POST /analyze/file
# ---------------------------------------------------------------------------


@router.post("/file", response_model=AnalysisResponse)
def analyze_file(request: AnalyzeFileRequest) -> AnalysisResponse:
    """Extract volume, pitch, note and spectrum, plus BPM and chord if enabled.

    Args:
        request: AnalyzeFileRequest with file_path, duration, enable_advanced.

    Raises:
        422: file_path does not exist or extension not supported.
        500: Audio decoding failure.
    """
    engine = _engine_for(request.enable_advanced)
    try:
        result = engine.analyze_file(request.file_path, duration=request.duration)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except RuntimeError as exc:
        logger.error("Audio analysis failed: %s", exc)
        raise HTTPException(status_code=500, detail=f"Audio analysis failed: {exc}") from exc

    return AnalysisResponse.from_result(result, include_waveform=request.include_waveform)


# ---------------------------------------------------------------------------
# POST /analyze/segment
# ---------------------------------------------------------------------------


@router.post("/segment", response_model=AnalysisResponse)
def analyze_segment(request: AnalyzeSegmentRequest) -> AnalysisResponse:
    """Analyze ``duration`` seconds of a file starting at ``start_time``.

    A segment past the end of the file yields a silent result, not an error.

    Raises:
        422: File not found or unsupported format.
        500: Audio decoding failure.
    """
    engine = _get_engine()
    try:
        result = engine.analyze_file_segment(
            request.file_path,
            request.start_time,
            request.duration,
        )
    except FileNotFoundError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except RuntimeError as exc:
        logger.error("Segment analysis failed: %s", exc)
        raise HTTPException(status_code=500, detail=f"Segment analysis failed: {exc}") from exc

    return AnalysisResponse.from_result(result, include_waveform=request.include_waveform)


# ---------------------------------------------------------------------------
# POST /analyze/samples
# ---------------------------------------------------------------------------


@router.post("/samples", response_model=AnalysisResponse)
def analyze_samples(request: AnalyzeSamplesRequest) -> AnalysisResponse:
    """Analyze mono samples sent in the request body.

    Raises:
        422: Invalid samples or sample rate.
    """
    engine = _engine_for(request.enable_advanced)
    samples = np.asarray(request.samples, dtype=np.float32)
    try:
        result = engine.analyze_samples(samples, request.sample_rate)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return AnalysisResponse.from_result(result, include_waveform=request.include_waveform)
