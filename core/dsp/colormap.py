"""
core/dsp/colormap.py — Value mapping and colour palettes.

Used only at the visualisation boundary: mesh vertex colours and spectrogram
images. Nothing in the analyzers depends on this module.

Two families:
    - audio_color_palette(): float RGB in [0, 1] for mesh vertex colours.
    - apply_colormap():      uint8 RGB for spectrogram images.
"""

from __future__ import annotations

import numpy as np

PALETTES: tuple[str, ...] = ("spectrum", "fire", "ocean", "viridis", "grey")
COLORMAPS: tuple[str, ...] = ("viridis", "plasma", "hot", "cool")


# ---------------------------------------------------------------------------
# Value mapping
# ---------------------------------------------------------------------------


def map_range(
    value: float | np.ndarray,
    in_min: float,
    in_max: float,
    out_min: float,
    out_max: float,
) -> float | np.ndarray:
    """Linearly map [in_min, in_max] onto [out_min, out_max] (no clamping)."""
    if in_max == in_min:
        return out_min if np.isscalar(value) else np.full_like(value, out_min, dtype=np.float64)
    return out_min + (np.asarray(value) - in_min) * (out_max - out_min) / (in_max - in_min)


def normalize(values: np.ndarray) -> np.ndarray:
    """Scale to [0, 1] by min/max. A constant input maps to zeros."""
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        return arr.copy()
    lo, hi = float(arr.min()), float(arr.max())
    if hi == lo:
        return np.zeros_like(arr)
    return (arr - lo) / (hi - lo)


def amplitude_to_db(amplitude: float | np.ndarray, floor_db: float = -np.inf) -> float | np.ndarray:
    """20·log10(a); non-positive amplitudes map to ``floor_db``."""
    arr = np.asarray(amplitude, dtype=np.float64)
    with np.errstate(divide="ignore"):
        db = np.where(arr > 0, 20.0 * np.log10(np.where(arr > 0, arr, 1.0)), floor_db)
    db = np.maximum(db, floor_db)
    return float(db) if db.ndim == 0 else db


def db_to_amplitude(db: float | np.ndarray) -> float | np.ndarray:
    out = np.power(10.0, np.asarray(db, dtype=np.float64) / 20.0)
    return float(out) if out.ndim == 0 else out


# ---------------------------------------------------------------------------
# Mesh palettes (float RGB)
# ---------------------------------------------------------------------------


def hsl_to_rgb(h: float, s: float, l: float) -> tuple[float, float, float]:
    """HSL (hue in degrees, s and l in [0, 1]) to RGB in [0, 1]."""
    c = (1.0 - abs(2.0 * l - 1.0)) * s
    x = c * (1.0 - abs(((h / 60.0) % 2.0) - 1.0))
    m = l - c / 2.0

    if 0 <= h < 60:
        r, g, b = c, x, 0.0
    elif 60 <= h < 120:
        r, g, b = x, c, 0.0
    elif 120 <= h < 180:
        r, g, b = 0.0, c, x
    elif 180 <= h < 240:
        r, g, b = 0.0, x, c
    elif 240 <= h < 300:
        r, g, b = x, 0.0, c
    else:
        r, g, b = c, 0.0, x
    return (r + m, g + m, b + m)


def _fire(t: float) -> tuple[float, float, float]:
    if t < 0.25:
        return (t / 0.25, 0.0, 0.0)
    if t < 0.5:
        return (1.0, (t - 0.25) / 0.25 * 0.5, 0.0)
    if t < 0.75:
        return (1.0, 0.5 + (t - 0.5) / 0.25 * 0.5, 0.0)
    return (1.0, 1.0, (t - 0.75) / 0.25)


def _viridis_float(t: float) -> tuple[float, float, float]:
    r = 0.267 + t * (0.993 - 0.267) - t * t * 0.4
    g = 0.005 + t * (0.906 - 0.005) + t * t * 0.1
    b = 0.329 + t * (0.144 - 0.329) - t * t * 0.6
    return (min(max(r, 0.0), 1.0), min(max(g, 0.0), 1.0), min(max(b, 0.0), 1.0))


def audio_color_palette(value: float, palette: str = "spectrum") -> tuple[float, float, float]:
    """RGB colour for a value in [0, 1] (clamped).

    spectrum: red (0) → violet (1); fire: black → red → yellow → white;
    ocean: deep blue → cyan; viridis: perceptual approximation;
    anything else: grey ramp.
    """
    t = min(max(float(value), 0.0), 1.0)
    if palette == "spectrum":
        return hsl_to_rgb((1.0 - t) * 280.0, 0.8, 0.5)
    if palette == "fire":
        return _fire(t)
    if palette == "ocean":
        return hsl_to_rgb(200.0 + t * 40.0, 1.0 - t * 0.3, 0.2 + t * 0.6)
    if palette == "viridis":
        return _viridis_float(t)
    return (t, t, t)


# ---------------------------------------------------------------------------
# Image colormaps (uint8 RGB)
# ---------------------------------------------------------------------------


def _to_uint8(channels: list[np.ndarray]) -> np.ndarray:
    stacked = np.stack(channels, axis=-1)
    return np.clip(np.round(255.0 * stacked), 0, 255).astype(np.uint8)


def apply_colormap(values: np.ndarray, colormap: str = "viridis") -> np.ndarray:
    """Map values in [0, 1] (clamped) to uint8 RGB, shape values.shape + (3,).

    Unknown colormap names fall back to viridis.
    """
    t = np.clip(np.asarray(values, dtype=np.float64), 0.0, 1.0)

    if colormap == "plasma":
        return _to_uint8(
            [
                0.050 + 0.839 * t,
                0.042 + 0.085 * t + 0.900 * t * t,
                0.608 + 0.543 * t - 0.773 * t * t,
            ]
        )
    if colormap == "hot":
        r = np.where(t < 0.33, t / 0.33, 1.0)
        g = np.where(t < 0.33, 0.0, np.where(t < 0.66, (t - 0.33) / 0.33, 1.0))
        b = np.where(t < 0.66, 0.0, (t - 0.66) / 0.34)
        return _to_uint8([r, g, b])
    if colormap == "cool":
        return _to_uint8([t, 1.0 - t, np.ones_like(t)])
    return _to_uint8(
        [
            0.267 + 0.005 * t + 0.322 * t * t,
            0.005 + 0.628 * t + 0.395 * t**3,
            0.329 + 0.718 * t - 0.215 * t * t,
        ]
    )
