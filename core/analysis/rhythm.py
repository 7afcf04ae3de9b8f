"""
core/analysis/rhythm.py — Helpers shared by the beat and tempo analyzers.

Both pipelines pick peaks from a normalized onset-like curve with an adaptive
threshold, then reason about the resulting beat times. The pieces that are
identical between them live here.
"""

from __future__ import annotations

import math

import numpy as np

from core.analysis.types import TempoChange


def round_half_up(x: float) -> int:
    """Round to the nearest integer, .5 upwards (2.5 → 3, -2.5 → -2)."""
    return int(math.floor(x + 0.5))


def inter_beat_intervals(beat_times: np.ndarray) -> np.ndarray:
    """Seconds between consecutive beats (length n - 1, empty for n < 2)."""
    times = np.asarray(beat_times, dtype=np.float64)
    if times.size < 2:
        return np.zeros(0, dtype=np.float64)
    return np.diff(times)


def local_tempo(beat_times: np.ndarray) -> float:
    """60 / mean interval of a run of beats; 0.0 for fewer than 2 beats."""
    intervals = inter_beat_intervals(beat_times)
    if intervals.size == 0:
        return 0.0
    mean = float(intervals.mean())
    return 60.0 / mean if mean > 0 else 0.0


def fold_tempo(bpm: float, min_bpm: float = 60.0, max_bpm: float = 200.0) -> float:
    """Bring ``bpm`` into [min_bpm, max_bpm] by one doubling or one halving.

    A value already in range is returned unchanged. When neither the doubled
    nor the halved value lands in range the raw value is kept.
    """
    if min_bpm <= bpm <= max_bpm:
        return bpm
    if bpm < min_bpm and min_bpm <= bpm * 2 <= max_bpm:
        return bpm * 2
    if bpm > max_bpm and min_bpm <= bpm / 2 <= max_bpm:
        return bpm / 2
    return bpm


def local_average(values: np.ndarray, half_width: int) -> np.ndarray:
    """Mean of values[i - half_width : i + half_width] clipped to the array."""
    arr = np.asarray(values, dtype=np.float64)
    n = arr.size
    if n == 0:
        return arr.copy()
    csum = np.concatenate([[0.0], np.cumsum(arr)])
    idx = np.arange(n)
    lo = np.maximum(0, idx - half_width)
    hi = np.minimum(n, idx + max(half_width, 1))
    return (csum[hi] - csum[lo]) / (hi - lo)


def adaptive_peak_pick(
    values: np.ndarray,
    half_width: int,
    base_threshold: float,
    multiplier: float,
    min_gap_frames: int,
) -> np.ndarray:
    """Frame indices of accepted peaks.

    A frame is accepted when it is a strict local peak, exceeds
    max(base_threshold, multiplier · local average) and lies at least
    ``min_gap_frames`` after the previously accepted frame.
    """
    arr = np.asarray(values, dtype=np.float64)
    n = arr.size
    if n < 3:
        return np.zeros(0, dtype=np.int64)

    threshold = np.maximum(base_threshold, local_average(arr, half_width) * multiplier)
    candidate = np.zeros(n, dtype=bool)
    candidate[1:-1] = (arr[1:-1] > arr[:-2]) & (arr[1:-1] > arr[2:])
    candidate &= arr > threshold

    accepted: list[int] = []
    for i in np.flatnonzero(candidate):
        if not accepted or i - accepted[-1] >= min_gap_frames:
            accepted.append(int(i))
    return np.array(accepted, dtype=np.int64)


def min_gap_frames(min_interval_seconds: float, sample_rate: int, hop_size: int) -> int:
    """Whole frames needed so that gap · hop / sr ≥ min_interval_seconds."""
    return max(1, math.ceil(min_interval_seconds * sample_rate / hop_size - 1e-9))


def detect_tempo_changes(
    beat_times: np.ndarray,
    window: int = 8,
    min_change_bpm: float = 10.0,
    max_ratio: float | None = None,
) -> tuple[TempoChange, ...]:
    """Beats where the local tempo of the next ``window`` beats differs from
    the previous ``window`` beats by more than ``min_change_bpm`` (or, when
    given, by a ratio above ``max_ratio``).
    """
    times = np.asarray(beat_times, dtype=np.float64)
    n = times.size
    if n <= 2 * window:
        return ()

    changes: list[TempoChange] = []
    for i in range(window, n - window):
        before = local_tempo(times[i - window : i])
        after = local_tempo(times[i : i + window])
        difference = abs(after - before)
        low, high = min(before, after), max(before, after)
        ratio = high / low if low > 0 else 0.0
        significant = difference > min_change_bpm or (max_ratio is not None and ratio > max_ratio)
        if significant:
            changes.append(
                TempoChange(
                    time=float(times[i]),
                    before_tempo=before,
                    after_tempo=after,
                    change_amount=after - before,
                    change_ratio=ratio,
                    significance=min(difference / (2 * min_change_bpm), 1.0),
                )
            )
    return tuple(changes)
