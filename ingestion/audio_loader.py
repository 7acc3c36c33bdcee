"""
ingestion/audio_loader.py — Decoding collaborator for captured takes.

Turns an audio file into a PcmBuffer. The analysis core never sees a
path: AudioAnalyzer works on buffers handed to it by this module or by a
caller that captured samples itself.

Usage:
    from ingestion.audio_loader import load_audio
    buffer = load_audio("takes/hum.wav", offset=2.0, duration=5.0)
"""

from __future__ import annotations

from pathlib import Path

import numpy as np

from core.audio.buffer import PcmBuffer

# Extensions librosa can decode through soundfile or audioread
AUDIO_EXTENSIONS: frozenset[str] = frozenset(
    {".mp3", ".wav", ".flac", ".aiff", ".aif", ".ogg", ".m4a", ".opus", ".webm"}
)

# Seconds read when the caller gives no duration
DEFAULT_DURATION: float = 30.0


def _checked_path(path: str | Path) -> Path:
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Audio file not found: {file_path}")
    suffix = file_path.suffix.lower()
    if suffix not in AUDIO_EXTENSIONS:
        raise ValueError(
            f"Unsupported audio format {file_path.suffix!r}; "
            f"expected one of {sorted(AUDIO_EXTENSIONS)}"
        )
    return file_path


def load_audio(
    path: str | Path,
    *,
    duration: float | None = DEFAULT_DURATION,
    sr: int | None = None,
    offset: float = 0.0,
) -> PcmBuffer:
    """Decode ``duration`` seconds of a file, starting ``offset`` seconds in.

    Every channel is kept. Stereo takes come back as a two-row buffer and
    are averaged by the analyzer, the same way as live captures.

    Args:
        path: Audio file; the extension must be in AUDIO_EXTENSIONS.
        duration: Seconds to decode. None decodes to the end of the file.
        sr: Resample to this rate. None keeps the file's own rate.
        offset: Seconds skipped before decoding starts.

    Raises:
        FileNotFoundError: Nothing exists at ``path``.
        ValueError: The extension is not an accepted audio format.
        RuntimeError: The decoder rejected the file.
    """
    import librosa  # imported here so tests can substitute a mock module

    file_path = _checked_path(path)
    try:
        samples, native_sr = librosa.load(
            file_path, sr=sr, mono=False, offset=offset, duration=duration
        )
    except Exception as exc:
        raise RuntimeError(f"Failed to decode {file_path.name!r}: {exc}") from exc

    return PcmBuffer(channels=np.asarray(samples, dtype=np.float32), sample_rate=int(native_sr))
