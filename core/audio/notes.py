"""
core/audio/notes.py — Frequency ↔ note-name conversion (A4 = 440 Hz).

Pure math, usable independently of any analysis call. The round trip
frequency → note → frequency is lossy: it snaps to the nearest
equal-tempered semitone.
"""

from __future__ import annotations

import math
import re

from core.audio.errors import NoteParseError

A4_HZ: float = 440.0
A4_MIDI: int = 69

# Chromatic note names (sharps notation), index = pitch class
NOTE_NAMES: tuple[str, ...] = (
    "C",
    "C#",
    "D",
    "D#",
    "E",
    "F",
    "F#",
    "G",
    "G#",
    "A",
    "A#",
    "B",
)

_NOTE_PATTERN = re.compile(r"^([A-G]#?)(-?\d{1,6})$")


def hz_to_midi(hz: float) -> float:
    """Convert frequency in Hz to a fractional MIDI note number.

    Formula: midi = 69 + 12 × log₂(hz / 440)

    Raises:
        ValueError: If hz is not a positive finite number.
    """
    if not (hz > 0.0 and math.isfinite(hz)):
        raise ValueError(f"Hz must be > 0, got {hz}")
    return A4_MIDI + 12.0 * math.log2(hz / A4_HZ)


def midi_to_name(midi: int) -> str:
    """Convert a MIDI note number to scientific pitch notation.

    Examples:
        69 → 'A4'
        60 → 'C4'
        0  → 'C-1'
    """
    octave = (midi // 12) - 1
    return f"{NOTE_NAMES[midi % 12]}{octave}"


def frequency_to_note(frequency: float) -> str:
    """Name the equal-tempered note nearest to ``frequency``.

    Args:
        frequency: Frequency in Hz. Must be > 0.

    Returns:
        Note name such as 'A4' or 'C#3'.

    Raises:
        ValueError: If frequency is not a positive finite number.
    """
    # Halfway between two semitones rounds up
    return midi_to_name(math.floor(hz_to_midi(frequency) + 0.5))


def note_to_frequency(note: str) -> float:
    """Return the equal-tempered frequency of a note name.

    Accepts ``<Letter>[#]<octave>`` with an optionally negative, multi-digit
    octave: 'A4', 'C#3', 'C-1', 'B10'. Flats are not accepted.

    Raises:
        NoteParseError: If the name does not match the expected format.
    """
    match = _NOTE_PATTERN.match(note.strip()) if isinstance(note, str) else None
    if match is None:
        raise NoteParseError(f"Invalid note format: {note!r}")
    name, octave_str = match.groups()
    if name not in NOTE_NAMES:
        # E# and B# pass the pattern but are not note names here
        raise NoteParseError(f"Invalid note format: {note!r}")

    semitones_from_a4 = NOTE_NAMES.index(name) + (int(octave_str) - 4) * 12 - 9
    try:
        frequency = A4_HZ * 2.0 ** (semitones_from_a4 / 12.0)
    except OverflowError as exc:
        raise NoteParseError(f"Note out of range: {note!r}") from exc
    if frequency <= 0.0:
        raise NoteParseError(f"Note out of range: {note!r}")
    return frequency
