"""
core/dsp/framing.py — Shared framing engine and time alignment.

Every analyzer slices its buffer with frame()/frame_matrix() and takes its
time stamps from a FrameGrid, so all feature sequences of one result are
index-aligned with result.time_stamps.

Policy:
    - Frames start at 0, H, 2H, … while offset + W ≤ len(samples).
    - Trailing samples that do not fill a complete frame are dropped,
      never zero-padded.
    - n_frames = (len - W) // H + 1 when len ≥ W, else 0.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view


def _check_sizes(window_size: int, hop_size: int) -> None:
    if window_size < 1:
        raise ValueError(f"window_size must be >= 1, got {window_size}")
    if hop_size < 1:
        raise ValueError(f"hop_size must be >= 1, got {hop_size}")


def frame_count(n_samples: int, window_size: int, hop_size: int) -> int:
    """Number of complete frames in a buffer of ``n_samples``."""
    _check_sizes(window_size, hop_size)
    if n_samples < window_size:
        return 0
    return (n_samples - window_size) // hop_size + 1


@dataclass(frozen=True)
class FrameGrid:
    """Frame geometry of one analyzer pass over one buffer."""

    window_size: int
    hop_size: int
    sample_rate: int
    n_samples: int

    def __post_init__(self) -> None:
        _check_sizes(self.window_size, self.hop_size)
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")

    @property
    def n_frames(self) -> int:
        return frame_count(self.n_samples, self.window_size, self.hop_size)

    @property
    def frame_rate(self) -> float:
        """Frames per second."""
        return self.sample_rate / self.hop_size

    def offsets(self) -> np.ndarray:
        """Start sample of each frame."""
        return np.arange(self.n_frames, dtype=np.int64) * self.hop_size

    def time_stamps(self) -> np.ndarray:
        """Frame start times in seconds (index × hop / sample_rate)."""
        return np.arange(self.n_frames, dtype=np.float64) * self.hop_size / self.sample_rate

    def time_of(self, frame_index: int) -> float:
        return frame_index * self.hop_size / self.sample_rate

    def frames_for(self, seconds: float) -> int:
        """Number of whole frames spanning ``seconds`` (rounded down)."""
        return int(seconds * self.sample_rate / self.hop_size)


class FrameSequence:
    """Lazy, finite, restartable sequence of frames over one buffer.

    Iterating twice yields the same frames; nothing is copied until a frame
    is requested.
    """

    def __init__(self, samples: np.ndarray, window_size: int, hop_size: int) -> None:
        _check_sizes(window_size, hop_size)
        self._samples = samples
        self.window_size = window_size
        self.hop_size = hop_size

    def __len__(self) -> int:
        return frame_count(len(self._samples), self.window_size, self.hop_size)

    def __iter__(self) -> Iterator[np.ndarray]:
        w, h = self.window_size, self.hop_size
        for i in range(len(self)):
            yield self._samples[i * h : i * h + w]

    def __getitem__(self, index: int) -> np.ndarray:
        n = len(self)
        if index < 0:
            index += n
        if not 0 <= index < n:
            raise IndexError(f"frame index {index} out of range for {n} frames")
        start = index * self.hop_size
        return self._samples[start : start + self.window_size]


def frame(samples: np.ndarray, window_size: int, hop_size: int) -> FrameSequence:
    """Lazy frame sequence over ``samples``.

    Raises:
        ValueError: If window_size or hop_size is below 1.
    """
    return FrameSequence(np.asarray(samples, dtype=np.float64), window_size, hop_size)


def frame_matrix(samples: np.ndarray, window_size: int, hop_size: int) -> np.ndarray:
    """All frames as a read-only (n_frames, window_size) strided view."""
    samples = np.asarray(samples, dtype=np.float64)
    n = frame_count(len(samples), window_size, hop_size)
    if n == 0:
        return np.zeros((0, window_size), dtype=np.float64)
    return sliding_window_view(samples, window_size)[::hop_size][:n]
