"""
core/dsp/filters.py — Smoothing filters for feature sequences.

Design:
    - Inputs are 1-D sequences; outputs are new float64 arrays of equal length.
    - scipy is used as a pure computation library (ndimage for the median
      filter, signal.lfilter for the one-pole EMA and the neighbour blend).
"""

from __future__ import annotations

import numpy as np
from scipy import ndimage
from scipy import signal as scipy_signal


def moving_average(data: np.ndarray, window_size: int) -> np.ndarray:
    """Centred moving average with truncated edges.

    Each output is the mean of data[i - w//2 : i + w//2 + 1] clipped to the
    array bounds, so edge values average fewer samples instead of padding.
    """
    if window_size < 1:
        raise ValueError(f"window_size must be >= 1, got {window_size}")
    arr = np.asarray(data, dtype=np.float64)
    n = arr.size
    if n == 0:
        return arr.copy()
    half = window_size // 2
    csum = np.concatenate([[0.0], np.cumsum(arr)])
    idx = np.arange(n)
    lo = np.maximum(0, idx - half)
    hi = np.minimum(n, idx + half + 1)
    return (csum[hi] - csum[lo]) / (hi - lo)


def median_filter(data: np.ndarray, window_size: int) -> np.ndarray:
    """Running median over ``window_size`` samples, edges repeat the end value."""
    if window_size < 1:
        raise ValueError(f"window_size must be >= 1, got {window_size}")
    arr = np.asarray(data, dtype=np.float64)
    if arr.size == 0:
        return arr.copy()
    return ndimage.median_filter(arr, size=window_size, mode="nearest")


def exponential_moving_average(data: np.ndarray, alpha: float = 0.1) -> np.ndarray:
    """y[0] = x[0]; y[n] = α·x[n] + (1-α)·y[n-1]."""
    if not 0.0 < alpha <= 1.0:
        raise ValueError(f"alpha must be in (0, 1], got {alpha}")
    arr = np.asarray(data, dtype=np.float64)
    if arr.size == 0:
        return arr.copy()
    decay = 1.0 - alpha
    out, _ = scipy_signal.lfilter([alpha], [1.0, -decay], arr, zi=[decay * arr[0]])
    return out


def neighbor_smooth(data: np.ndarray, factor: float = 0.8) -> np.ndarray:
    """One left-to-right pass of out[i] = x[i]·(1-f) + (out[i-1] + x[i+1])·f·0.5.

    The left neighbour is the value already smoothed on the previous step and
    the right neighbour is still raw, so the pass is recursive. The first and
    last values are copied through unchanged.
    """
    arr = np.asarray(data, dtype=np.float64)
    out = arr.copy()
    if arr.size < 3 or factor <= 0:
        return out
    half = factor * 0.5
    drive = arr[1:-1] * (1.0 - factor) + arr[2:] * half
    out[1:-1], _ = scipy_signal.lfilter([1.0], [1.0, -half], drive, zi=[half * arr[0]])
    return out
