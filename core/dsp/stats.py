"""
core/dsp/stats.py — Descriptive statistics over feature sequences.

All functions accept any 1-D sequence and return plain floats. Empty input
yields 0.0 rather than NaN so degenerate analyses stay finite.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class SummaryStatistics:
    """Distribution summary of one feature across all frames."""

    mean: float
    median: float
    min: float
    max: float
    std: float
    q25: float
    q75: float

    def as_dict(self) -> dict[str, float]:
        return {
            "mean": self.mean,
            "median": self.median,
            "min": self.min,
            "max": self.max,
            "std": self.std,
            "q25": self.q25,
            "q75": self.q75,
        }


EMPTY_SUMMARY = SummaryStatistics(0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0)


def _as_array(data: Sequence[float] | np.ndarray) -> np.ndarray:
    return np.asarray(data, dtype=np.float64).ravel()


def mean(data: Sequence[float] | np.ndarray) -> float:
    arr = _as_array(data)
    return float(arr.mean()) if arr.size else 0.0


def median(data: Sequence[float] | np.ndarray) -> float:
    """Middle value; even-length input averages the two middle values."""
    arr = _as_array(data)
    return float(np.median(arr)) if arr.size else 0.0


def std(data: Sequence[float] | np.ndarray) -> float:
    """Population standard deviation (divides by N)."""
    arr = _as_array(data)
    return float(arr.std()) if arr.size else 0.0


def variance(data: Sequence[float] | np.ndarray) -> float:
    arr = _as_array(data)
    return float(arr.var()) if arr.size else 0.0


def percentile(data: Sequence[float] | np.ndarray, q: float) -> float:
    """Lower-index percentile: sorted(data)[floor(len · q)], q in [0, 1].

    No interpolation between neighbours, so the result is always one of the
    input values.
    """
    if not 0.0 <= q <= 1.0:
        raise ValueError(f"q must be in [0, 1], got {q}")
    arr = np.sort(_as_array(data))
    if arr.size == 0:
        return 0.0
    idx = min(int(np.floor(arr.size * q)), arr.size - 1)
    return float(arr[idx])


def coefficient_of_variation(data: Sequence[float] | np.ndarray) -> float:
    """std / mean, 0.0 when the mean is 0."""
    m = mean(data)
    return std(data) / m if m > 0 else 0.0


def summarize(data: Sequence[float] | np.ndarray) -> SummaryStatistics:
    """Mean, median, min, max, std and quartiles of ``data``."""
    arr = _as_array(data)
    if arr.size == 0:
        return EMPTY_SUMMARY
    return SummaryStatistics(
        mean=float(arr.mean()),
        median=float(np.median(arr)),
        min=float(arr.min()),
        max=float(arr.max()),
        std=float(arr.std()),
        q25=percentile(arr, 0.25),
        q75=percentile(arr, 0.75),
    )
