"""
core/analysis/chroma.py — Pitch-class (chroma) profile per frame.

Each magnitude bin between 80 Hz and 2 kHz is folded onto one of 12 pitch
classes via its nearest MIDI note:

    midi = 69 + 12·log2(f / 440)
    pitch_class = round_half_up(midi) mod 12

Design:
    - The bin → pitch-class assignment depends only on (fft_size, sample_rate,
      config), so it is built once as a one-hot (n_bins, 12) matrix and every
      frame is folded with a single matrix product.
    - Frames are Hann-windowed before the FFT so a pure tone stays in one
      pitch class instead of leaking into its neighbours.
    - Each frame is divided by its own maximum; a silent frame stays a zero
      vector (never NaN).
"""

from __future__ import annotations

import logging

import numpy as np

from core.analysis.types import (
    NOTE_NAMES,
    ChromaResult,
    KeyChange,
    SampleBuffer,
    readonly,
)
from core.config import DEFAULT_CHROMA_CONFIG, ChromaConfig
from core.dsp.framing import FrameGrid, frame_matrix
from core.dsp.stft import bin_frequencies, fft_size_for, stft_magnitudes

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def pitch_class_map(fft_size: int, sample_rate: int, config: ChromaConfig) -> np.ndarray:
    """(fft_size // 2, 12) one-hot matrix; rows outside the range are zero.

    DC is always excluded.
    """
    freqs = bin_frequencies(fft_size, sample_rate)
    mapping = np.zeros((freqs.size, 12), dtype=np.float64)
    in_range = (freqs >= config.min_frequency) & (freqs <= config.max_frequency)
    in_range[0] = False
    bins = np.flatnonzero(in_range)
    if bins.size == 0:
        return mapping
    midi = 69.0 + 12.0 * np.log2(freqs[bins] / config.reference_frequency)
    pitch_class = np.floor(midi + 0.5).astype(np.int64) % 12
    mapping[bins, pitch_class] = 1.0
    return mapping


def _normalize_rows(matrix: np.ndarray) -> np.ndarray:
    peak = matrix.max(axis=1, keepdims=True) if matrix.size else np.zeros((0, 1))
    safe = np.where(peak > 0, peak, 1.0)
    return np.where(peak > 0, matrix / safe, 0.0)


def _dominant(chroma: np.ndarray) -> tuple[str | None, int | None, float]:
    if chroma.size == 0 or float(chroma.max()) <= 0.0:
        return None, None, 0.0
    idx = int(np.argmax(chroma))
    return NOTE_NAMES[idx], idx, float(chroma[idx])


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine of the angle between two chroma vectors.

    Two zero vectors count as identical (1.0); one zero vector as unrelated (0.0).
    """
    na, nb = float(np.linalg.norm(a)), float(np.linalg.norm(b))
    if na == 0.0 and nb == 0.0:
        return 1.0
    if na == 0.0 or nb == 0.0:
        return 0.0
    return float(np.dot(a, b) / (na * nb))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def chroma_stats(chroma: np.ndarray) -> tuple[np.ndarray, str | None, int | None, float]:
    """Average chroma and its dominant note.

    Returns:
        (average_chroma, dominant_note, dominant_note_index, dominant_note_strength).
        Empty or silent input gives a zero average and no dominant note.
    """
    chroma = np.asarray(chroma, dtype=np.float64).reshape(-1, 12)
    average = chroma.mean(axis=0) if chroma.shape[0] else np.zeros(12)
    note, idx, strength = _dominant(average)
    return average, note, idx, strength


def detect_key_changes(
    chroma: np.ndarray,
    time_stamps: np.ndarray,
    window: int = 8,
    threshold: float = 0.7,
) -> tuple[KeyChange, ...]:
    """Frames where the average chroma of the ``window`` frames before and
    the ``window`` frames after have cosine similarity below ``threshold``.

    Candidate frames run from ``window`` up to, not including,
    ``n_frames - window``; 2·window frames or fewer give no candidates.
    """
    chroma = np.asarray(chroma, dtype=np.float64).reshape(-1, 12)
    n = chroma.shape[0]
    if n <= 2 * window:
        return ()

    csum = np.vstack([np.zeros((1, 12)), np.cumsum(chroma, axis=0)])
    changes: list[KeyChange] = []
    for i in range(window, n - window):
        before = (csum[i] - csum[i - window]) / window
        after = (csum[i + window] - csum[i]) / window
        similarity = cosine_similarity(before, after)
        if similarity < threshold:
            changes.append(
                KeyChange(
                    frame=i,
                    time=float(time_stamps[i]),
                    similarity=similarity,
                    before_note=_dominant(before)[0] or "",
                    after_note=_dominant(after)[0] or "",
                )
            )
    return tuple(changes)


def analyze_chroma(
    buffer: SampleBuffer, config: ChromaConfig = DEFAULT_CHROMA_CONFIG
) -> ChromaResult:
    """Fold each frame's spectrum into a normalized 12-bin pitch-class vector."""
    grid = FrameGrid(config.window_size, config.hop_size, buffer.sample_rate, buffer.n_samples)
    fft_size = fft_size_for(config.window_size)
    logger.debug("chroma: %d frames (fft=%d)", grid.n_frames, fft_size)

    frames = frame_matrix(buffer.samples, config.window_size, config.hop_size)
    magnitudes = stft_magnitudes(frames, config.window_type, fft_size)
    raw = magnitudes @ pitch_class_map(fft_size, buffer.sample_rate, config)
    chroma = _normalize_rows(raw)

    time_stamps = grid.time_stamps()
    average, note, idx, strength = chroma_stats(chroma)
    key_changes = detect_key_changes(
        chroma, time_stamps, config.key_change_window, config.key_change_threshold
    )

    return ChromaResult(
        sample_rate=buffer.sample_rate,
        duration=buffer.duration,
        window_size=config.window_size,
        hop_size=config.hop_size,
        time_stamps=readonly(time_stamps),
        chroma=readonly(chroma.reshape(-1, 12)),
        note_names=NOTE_NAMES,
        average_chroma=readonly(average),
        dominant_note=note,
        dominant_note_index=idx,
        dominant_note_strength=strength,
        key_changes=key_changes,
    )
