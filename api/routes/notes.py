"""
api/routes/notes.py — Note name ↔ frequency conversion.

Endpoints:
    GET /notes/{note}/frequency      — Equal-tempered frequency of a note name
    GET /notes/from-frequency?hz=... — Nearest note name to a frequency
"""

from __future__ import annotations

import math

from fastapi import APIRouter, HTTPException, Query

from api.schemas.analysis import FrequencyNoteResponse, NoteFrequencyResponse
from core.audio.errors import NoteParseError
from core.audio.notes import frequency_to_note, hz_to_midi, note_to_frequency

router = APIRouter(prefix="/notes", tags=["notes"])


@router.get("/from-frequency", response_model=FrequencyNoteResponse)
def note_from_frequency(
    hz: float = Query(..., gt=0.0, le=100_000.0, description="Frequency in Hz"),
) -> FrequencyNoteResponse:
    """Name the note nearest to ``hz`` and how far off it is, in cents."""
    midi = hz_to_midi(hz)
    nearest = math.floor(midi + 0.5)
    return FrequencyNoteResponse(
        frequency_hz=hz,
        note=frequency_to_note(hz),
        midi=midi,
        cents_off=(midi - nearest) * 100.0,
    )


@router.get("/{note}/frequency", response_model=NoteFrequencyResponse)
def note_frequency(note: str) -> NoteFrequencyResponse:
    """Return the frequency of a note such as ``A4``, ``C#3`` or ``C-1``.

    ``#`` must be URL-encoded as ``%23``.

    Raises:
        422: The note name is malformed.
    """
    try:
        frequency = note_to_frequency(note)
    except NoteParseError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return NoteFrequencyResponse(note=note, frequency_hz=frequency)
