"""
core/dsp/fft.py — Radix-2 FFT with precomputed bit-reversal and twiddle tables.

Every spectrum in the analysis pipeline goes through this module. Frames whose
length is not a power of two are zero-padded by the caller (see
core/dsp/stft.py) so band-edge frequencies keep their documented values.

Design:
    - FFT(size) owns its tables; instances are immutable after construction
      and safe to share across threads.
    - forward() is iterative Cooley-Tukey: bit-reversal reorder followed by
      log2(N) butterfly stages. Each stage is vectorised over all butterflies
      of that span, and over a leading batch axis when frames are stacked.
    - get_fft(size) memoises instances so the tables are built once per size.
"""

from __future__ import annotations

from functools import lru_cache

import numpy as np


class InvalidSizeError(ValueError):
    """Raised when an FFT is requested for a size that is not a power of two."""


def is_power_of_two(n: int) -> bool:
    """True for 1, 2, 4, 8, …"""
    return n > 0 and (n & (n - 1)) == 0


def next_power_of_two(n: int) -> int:
    """Smallest power of two ≥ n (1 for n ≤ 1)."""
    if n <= 1:
        return 1
    return 1 << (int(n) - 1).bit_length()


def _bit_reversal_table(size: int) -> np.ndarray:
    bits = size.bit_length() - 1
    table = np.zeros(size, dtype=np.intp)
    idx = np.arange(size)
    for b in range(bits):
        table |= ((idx >> b) & 1) << (bits - 1 - b)
    return table


class FFT:
    """Power-of-two FFT.

    Args:
        size: Transform length. Must be a positive power of two.

    Raises:
        InvalidSizeError: If size is not a power of two.

    Example:
        >>> fft = FFT(8)
        >>> re, im = fft.forward(np.ones(8))
        >>> float(re[0])
        8.0
    """

    def __init__(self, size: int) -> None:
        if not isinstance(size, (int, np.integer)) or not is_power_of_two(int(size)):
            raise InvalidSizeError(f"FFT size must be a power of 2, got {size}")
        self.size = int(size)
        self._bit_reversal = _bit_reversal_table(self.size)
        angles = -2.0 * np.pi * np.arange(self.size // 2) / self.size
        self._cos = np.cos(angles)
        self._sin = np.sin(angles)

    def __repr__(self) -> str:
        return f"FFT(size={self.size})"

    @property
    def bit_reversal_table(self) -> np.ndarray:
        view = self._bit_reversal.view()
        view.flags.writeable = False
        return view

    def _prepare(self, values: np.ndarray | None, like: np.ndarray | None) -> np.ndarray:
        if values is None:
            if like is None:
                raise ValueError("forward() requires a real input")
            return np.zeros(like.shape, dtype=np.float64)
        arr = np.asarray(values, dtype=np.float64)
        if arr.ndim not in (1, 2):
            raise ValueError(f"FFT input must be 1-D or 2-D, got shape {arr.shape}")
        n = arr.shape[-1]
        if n > self.size:
            raise ValueError(f"Input length {n} exceeds FFT size {self.size}")
        if n < self.size:
            pad = [(0, 0)] * (arr.ndim - 1) + [(0, self.size - n)]
            arr = np.pad(arr, pad)
        return arr

    def forward(
        self, real: np.ndarray, imag: np.ndarray | None = None
    ) -> tuple[np.ndarray, np.ndarray]:
        """Transform one frame (N,) or a batch of frames (n_frames, N).

        Inputs shorter than N are zero-padded on the right.

        Returns:
            (real, imag) arrays of the same shape as the padded input,
            covering both positive and negative frequencies.

        Raises:
            ValueError: If the input is longer than N or has more than 2 axes.
        """
        re = self._prepare(real, None)
        im = self._prepare(imag, re)
        if im.shape != re.shape:
            raise ValueError(f"real/imag shape mismatch: {re.shape} vs {im.shape}")

        re = re[..., self._bit_reversal]
        im = im[..., self._bit_reversal]
        lead = re.shape[:-1]

        span = 2
        while span <= self.size:
            half = span // 2
            stride = self.size // span
            c = self._cos[::stride][:half]
            s = self._sin[::stride][:half]

            re = re.reshape(*lead, self.size // span, span)
            im = im.reshape(*lead, self.size // span, span)
            er, ei = re[..., :half], im[..., :half]
            odd_r, odd_i = re[..., half:], im[..., half:]
            tr = odd_r * c - odd_i * s
            ti = odd_r * s + odd_i * c
            re = np.concatenate([er + tr, er - tr], axis=-1)
            im = np.concatenate([ei + ti, ei - ti], axis=-1)
            span *= 2

        return re.reshape(*lead, self.size), im.reshape(*lead, self.size)

    def magnitude_spectrum(self, frame: np.ndarray) -> np.ndarray:
        """|X[k]| for k in [0, N/2)."""
        re, im = self.forward(frame)
        half = self.size // 2
        return np.hypot(re[..., :half], im[..., :half])

    def power_spectrum(self, frame: np.ndarray) -> np.ndarray:
        """|X[k]|² for k in [0, N/2)."""
        re, im = self.forward(frame)
        half = self.size // 2
        return re[..., :half] ** 2 + im[..., :half] ** 2


@lru_cache(maxsize=32)
def get_fft(size: int) -> FFT:
    """Shared FFT instance for ``size`` (tables are built once)."""
    return FFT(size)
