"""
core/dsp/peaks.py — Local-maximum detection with prominence.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy import signal as scipy_signal


@dataclass(frozen=True)
class Peak:
    """A local maximum of a 1-D sequence."""

    index: int
    value: float
    prominence: float

    def as_dict(self) -> dict[str, float | int]:
        return {"index": self.index, "value": self.value, "prominence": self.prominence}


def strict_local_maxima(data: np.ndarray, radius: int = 1) -> np.ndarray:
    """Boolean mask of values strictly greater than every neighbour within ``radius``.

    The first and last ``radius`` positions are never maxima.
    """
    if radius < 1:
        raise ValueError(f"radius must be >= 1, got {radius}")
    arr = np.asarray(data, dtype=np.float64)
    n = arr.size
    mask = np.zeros(n, dtype=bool)
    if n < 2 * radius + 1:
        return mask
    inner = arr[radius : n - radius]
    ok = np.ones(inner.size, dtype=bool)
    for offset in range(1, radius + 1):
        ok &= inner > arr[radius - offset : n - radius - offset]
        ok &= inner > arr[radius + offset : n - radius + offset]
    mask[radius : n - radius] = ok
    return mask


def find_peaks(
    data: np.ndarray, threshold: float = 0.5, min_distance: int = 1
) -> list[Peak]:
    """Strict local maxima above ``threshold``, highest first.

    Args:
        data:         1-D sequence.
        threshold:    Values must exceed this to count.
        min_distance: A peak must beat every value within this many samples.

    Returns:
        Peaks sorted by value, descending. Prominence is measured with
        scipy.signal.peak_prominences (height above the higher of the two
        bases).
    """
    arr = np.asarray(data, dtype=np.float64)
    mask = strict_local_maxima(arr, min_distance) & (arr > threshold)
    indices = np.flatnonzero(mask)
    if indices.size == 0:
        return []
    prominences, _, _ = scipy_signal.peak_prominences(arr, indices)
    peaks = [
        Peak(index=int(i), value=float(arr[i]), prominence=float(p))
        for i, p in zip(indices, prominences)
    ]
    peaks.sort(key=lambda p: p.value, reverse=True)
    return peaks
