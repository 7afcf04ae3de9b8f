"""
core/dsp/windows.py — Window (taper) coefficient generation.

Design:
    - Pure functions: (size, window_type) → float64 array of length size.
    - Only the left half is evaluated; the right half is its mirror image, so
      w[i] == w[N-1-i] holds exactly and repeated calls are bit-identical.
    - Unknown window names fall back to rectangular (all ones).
"""

from __future__ import annotations

import numpy as np

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

KAISER_BETA = 8.6
TUKEY_ALPHA = 0.5
_BESSEL_TERMS = 50

WINDOW_TYPES: tuple[str, ...] = (
    "rectangular",
    "hann",
    "hamming",
    "blackman",
    "kaiser",
    "tukey",
)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def modified_bessel_i0(x: float | np.ndarray) -> float | np.ndarray:
    """Modified Bessel function of the first kind, order 0.

    Evaluated as a truncated power series (50 terms), which is exact to
    double precision for the arguments a Kaiser window produces (|x| ≤ β).
    Accepts a scalar or an array.
    """
    x = np.asarray(x, dtype=np.float64)
    result = np.ones_like(x)
    term = np.ones_like(x)
    half = x / 2.0
    for i in range(1, _BESSEL_TERMS):
        term = term * half / i
        result = result + term * term
    return float(result) if result.ndim == 0 else result


def _left_half(size: int, window_type: str) -> np.ndarray:
    """Coefficients for indices 0 … ceil(size/2)-1."""
    i = np.arange((size + 1) // 2, dtype=np.float64)
    denom = size - 1

    if window_type in ("hann", "hanning"):
        return 0.5 * (1.0 - np.cos(2.0 * np.pi * i / denom))
    if window_type == "hamming":
        return 0.54 - 0.46 * np.cos(2.0 * np.pi * i / denom)
    if window_type == "blackman":
        arg = 2.0 * np.pi * i / denom
        return 0.42 - 0.5 * np.cos(arg) + 0.08 * np.cos(2.0 * arg)
    if window_type == "kaiser":
        alpha = denom / 2.0
        ratio = (i - alpha) / alpha
        arg = KAISER_BETA * np.sqrt(np.clip(1.0 - ratio * ratio, 0.0, None))
        return modified_bessel_i0(arg) / modified_bessel_i0(KAISER_BETA)
    if window_type == "tukey":
        edge = TUKEY_ALPHA * denom / 2.0
        half = np.ones_like(i)
        taper = i <= edge
        half[taper] = 0.5 * (1.0 + np.cos(np.pi * (i[taper] / edge - 1.0)))
        return half
    return np.ones_like(i)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def create_window(size: int, window_type: str = "hann") -> np.ndarray:
    """Return a symmetric window of ``size`` coefficients.

    Args:
        size:        Number of coefficients. 0 gives an empty array.
        window_type: One of rectangular, hann (alias hanning), hamming,
                     blackman, kaiser (β = 8.6) or tukey (α = 0.5).
                     Case-insensitive; unknown names give all ones.

    Returns:
        float64 array of shape (size,).

    Raises:
        ValueError: If size is negative.
    """
    if size < 0:
        raise ValueError(f"Window size must be non-negative, got {size}")
    if size == 0:
        return np.zeros(0, dtype=np.float64)
    if size == 1:
        return np.ones(1, dtype=np.float64)

    left = _left_half(size, window_type.lower())
    right = left[: size // 2][::-1]
    return np.concatenate([left, right])
