"""
core/analysis/basic.py — Amplitude (RMS) envelope.

Pipeline:
    frame (100 ms, 75% overlap) → RMS per frame → divide by global max
    → one-pass neighbour smoothing (f = 0.8).

An all-zero or too-short buffer yields an all-zero envelope and
max_amplitude == 0; nothing here raises on degenerate audio.
"""

from __future__ import annotations

import logging

import numpy as np

from core.analysis.types import BasicResult, SampleBuffer, SilentRegion, readonly
from core.config import DEFAULT_BASIC_CONFIG, BasicConfig
from core.dsp.filters import neighbor_smooth
from core.dsp.framing import FrameGrid, frame_matrix
from core.dsp.stats import summarize

logger = logging.getLogger(__name__)


def frame_rms(frames: np.ndarray) -> np.ndarray:
    """sqrt(mean(x²)) of each row of a (n_frames, W) matrix."""
    if frames.shape[0] == 0:
        return np.zeros(0, dtype=np.float64)
    return np.sqrt(np.mean(frames * frames, axis=1))


def detect_silence(amplitudes: np.ndarray, threshold: float = 0.01) -> tuple[SilentRegion, ...]:
    """Contiguous runs of frames with amplitude below ``threshold``.

    Returns:
        SilentRegion(start, end) frame-index ranges, both ends inclusive,
        in ascending order.
    """
    arr = np.asarray(amplitudes, dtype=np.float64)
    if arr.size == 0:
        return ()
    silent = np.concatenate([[False], arr < threshold, [False]])
    edges = np.flatnonzero(np.diff(silent.astype(np.int8)))
    starts, ends = edges[0::2], edges[1::2] - 1
    return tuple(SilentRegion(start=int(s), end=int(e)) for s, e in zip(starts, ends))


def analyze_basic(buffer: SampleBuffer, config: BasicConfig = DEFAULT_BASIC_CONFIG) -> BasicResult:
    """Compute the normalized, smoothed amplitude envelope of ``buffer``."""
    window_size = max(1, int(buffer.sample_rate * config.window_seconds))
    hop_size = max(1, window_size // config.hop_divisor)
    grid = FrameGrid(window_size, hop_size, buffer.sample_rate, buffer.n_samples)
    logger.debug("basic: %d frames (W=%d, H=%d)", grid.n_frames, window_size, hop_size)

    rms = frame_rms(frame_matrix(buffer.samples, window_size, hop_size))
    max_amplitude = float(rms.max()) if rms.size else 0.0
    normalized = rms / max_amplitude if max_amplitude > 0 else np.zeros_like(rms)
    amplitude = neighbor_smooth(normalized, config.smoothing_factor)

    return BasicResult(
        sample_rate=buffer.sample_rate,
        duration=buffer.duration,
        window_size=window_size,
        hop_size=hop_size,
        time_stamps=readonly(grid.time_stamps()),
        amplitude=readonly(amplitude),
        normalized_amplitude=readonly(normalized),
        rms=readonly(rms),
        max_amplitude=max_amplitude,
        silent_regions=detect_silence(amplitude, config.silence_threshold),
        statistics=summarize(amplitude),
    )
