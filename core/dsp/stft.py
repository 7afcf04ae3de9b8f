"""
core/dsp/stft.py — Frame → window → FFT pipeline shared by all analyzers.

Frames are zero-padded to the next power of two before the transform, so a
2048-sample frame keeps bin k at k·sr/2048 and non-power-of-two frames
(e.g. 100 ms at 44.1 kHz) still go through the radix-2 FFT.
"""

from __future__ import annotations

import numpy as np

from core.dsp.fft import get_fft, next_power_of_two
from core.dsp.windows import create_window

_BLOCK_FRAMES = 256  # frames per batched transform, bounds peak memory


def fft_size_for(window_size: int) -> int:
    return next_power_of_two(window_size)


def bin_frequencies(fft_size: int, sample_rate: int) -> np.ndarray:
    """Centre frequency of each one-sided bin [0, fft_size/2)."""
    return np.arange(fft_size // 2, dtype=np.float64) * sample_rate / fft_size


def stft_magnitudes(
    frames: np.ndarray,
    window_type: str = "hann",
    fft_size: int | None = None,
) -> np.ndarray:
    """One-sided magnitude spectra of a (n_frames, W) frame matrix.

    Args:
        frames:      Output of core.dsp.framing.frame_matrix.
        window_type: Taper applied to every frame.
        fft_size:    Transform length; defaults to next_power_of_two(W).

    Returns:
        (n_frames, fft_size // 2) float64 array.
    """
    frames = np.asarray(frames, dtype=np.float64)
    window_size = frames.shape[-1]
    size = fft_size or fft_size_for(window_size)
    if frames.shape[0] == 0:
        return np.zeros((0, size // 2), dtype=np.float64)
    window = create_window(window_size, window_type)
    fft = get_fft(size)
    out = np.empty((frames.shape[0], size // 2), dtype=np.float64)
    for start in range(0, frames.shape[0], _BLOCK_FRAMES):
        block = frames[start : start + _BLOCK_FRAMES]
        out[start : start + len(block)] = fft.magnitude_spectrum(block * window)
    return out
