"""
core/analysis/spectrogram.py — Linear, log-frequency and mel spectrograms.

Design:
    - 1024-sample Hann frames at 75% overlap; magnitudes of the first 512 bins.
    - Log-frequency view: 128 log-spaced frequencies from max(20 Hz, bin 1)
      to the top bin, linearly interpolated between neighbouring bins.
    - Mel view: 80 triangular filters equally spaced on
      mel = 2595 · log10(1 + f / 700) between bin 0 and the top bin.
    - Level statistics are in dB relative to the loudest bin with a −80 dB
      floor, so silence yields a flat −80 dB picture instead of −inf.
"""

from __future__ import annotations

import logging

import numpy as np

from core.analysis.types import (
    MissingInputError,
    SampleBuffer,
    SpectrogramDimensions,
    SpectrogramResult,
    SpectrogramStatistics,
    readonly,
)
from core.config import DEFAULT_SPECTROGRAM_CONFIG, SpectrogramConfig
from core.dsp.colormap import apply_colormap
from core.dsp.framing import FrameGrid, frame_matrix
from core.dsp.stats import percentile
from core.dsp.stft import bin_frequencies, fft_size_for, stft_magnitudes

logger = logging.getLogger(__name__)

ENERGY_BANDS: dict[str, tuple[float, float]] = {
    "sub_bass": (20.0, 60.0),
    "bass": (60.0, 250.0),
    "low_mid": (250.0, 500.0),
    "mid": (500.0, 2000.0),
    "high_mid": (2000.0, 4000.0),
    "presence": (4000.0, 6000.0),
    "brilliance": (6000.0, 20000.0),
}


def hz_to_mel(hz: float | np.ndarray) -> float | np.ndarray:
    return 2595.0 * np.log10(1.0 + np.asarray(hz, dtype=np.float64) / 700.0)


def mel_to_hz(mel: float | np.ndarray) -> float | np.ndarray:
    return 700.0 * (np.power(10.0, np.asarray(mel, dtype=np.float64) / 2595.0) - 1.0)


# ---------------------------------------------------------------------------
# Frequency-axis transforms
# ---------------------------------------------------------------------------


def log_frequency_axis(frequencies: np.ndarray, n_bins: int = 128, min_frequency: float = 20.0) -> np.ndarray:
    """``n_bins`` log-spaced frequencies from max(min_frequency, f[1]) to f[-1]."""
    if frequencies.size < 2:
        return np.zeros(0, dtype=np.float64)
    lo = max(min_frequency, float(frequencies[1]))
    hi = float(frequencies[-1])
    if n_bins == 1:
        return np.array([lo])
    return lo * np.exp(np.arange(n_bins) * np.log(hi / lo) / (n_bins - 1))


def interpolate_to_axis(magnitudes: np.ndarray, frequencies: np.ndarray, targets: np.ndarray) -> np.ndarray:
    """Linear interpolation of every frame onto ``targets`` (Hz)."""
    if magnitudes.shape[0] == 0 or targets.size == 0:
        return np.zeros((magnitudes.shape[0], targets.size), dtype=np.float64)
    idx = np.clip(np.searchsorted(frequencies, targets, side="right") - 1, 0, frequencies.size - 2)
    lo, hi = frequencies[idx], frequencies[idx + 1]
    ratio = (targets - lo) / (hi - lo)
    return magnitudes[:, idx] + ratio * (magnitudes[:, idx + 1] - magnitudes[:, idx])


def mel_filter_bank(frequencies: np.ndarray, n_filters: int = 80) -> tuple[np.ndarray, np.ndarray]:
    """Triangular mel filters over ``frequencies``.

    Returns:
        (filters, centres): (n_filters, n_bins) weights and each filter's
        centre frequency in Hz.
    """
    if frequencies.size == 0:
        return np.zeros((n_filters, 0)), np.zeros(n_filters)
    mel_points = np.linspace(hz_to_mel(frequencies[0]), hz_to_mel(frequencies[-1]), n_filters + 2)
    edges = mel_to_hz(mel_points)
    left, centre, right = edges[:-2, None], edges[1:-1, None], edges[2:, None]
    f = frequencies[None, :]
    with np.errstate(divide="ignore", invalid="ignore"):
        rising = (f - left) / (centre - left)
        falling = (right - f) / (right - centre)
    filters = np.where(
        (f >= left) & (f <= centre), rising, np.where((f > centre) & (f <= right), falling, 0.0)
    )
    return np.nan_to_num(filters), edges[1:-1].copy()


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


def relative_db(magnitudes: np.ndarray, floor_db: float = -80.0) -> np.ndarray:
    """20·log10(m / max(m)), floored at ``floor_db``; all-zero input is all floor."""
    peak = float(magnitudes.max()) if magnitudes.size else 0.0
    if peak <= 0:
        return np.full(magnitudes.shape, floor_db, dtype=np.float64)
    with np.errstate(divide="ignore"):
        db = 20.0 * np.log10(magnitudes / peak)
    return np.maximum(db, floor_db)


def spectrogram_statistics(
    magnitudes: np.ndarray, frequencies: np.ndarray, floor_db: float = -80.0
) -> SpectrogramStatistics:
    db = relative_db(magnitudes, floor_db).ravel()
    power = magnitudes * magnitudes
    distribution: dict[str, float] = {}
    for name, (f_min, f_max) in ENERGY_BANDS.items():
        cols = (frequencies >= f_min) & (frequencies <= f_max)
        block = power[:, cols]
        distribution[name] = float(block.mean()) if block.size else 0.0

    if db.size == 0:
        return SpectrogramStatistics(0.0, 0.0, 0.0, 0.0, 0.0, distribution)
    return SpectrogramStatistics(
        dynamic_range=float(db.max() - db.min()),
        mean_level=float(db.mean()),
        median_level=percentile(db, 0.5),
        percentile_10=percentile(db, 0.1),
        percentile_90=percentile(db, 0.9),
        energy_distribution=distribution,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def analyze_spectrogram(
    buffer: SampleBuffer, config: SpectrogramConfig = DEFAULT_SPECTROGRAM_CONFIG
) -> SpectrogramResult:
    """Magnitude spectrogram with log-frequency and mel views."""
    grid = FrameGrid(config.window_size, config.hop_size, buffer.sample_rate, buffer.n_samples)
    fft_size = fft_size_for(config.window_size)
    logger.debug("spectrogram: %d frames (fft=%d)", grid.n_frames, fft_size)

    frames = frame_matrix(buffer.samples, config.window_size, config.hop_size)
    magnitudes = stft_magnitudes(frames, config.window_type, fft_size)
    frequencies = bin_frequencies(fft_size, buffer.sample_rate)

    log_frequencies = log_frequency_axis(frequencies, config.log_bins, config.min_log_frequency)
    log_spectrogram = interpolate_to_axis(magnitudes, frequencies, log_frequencies)
    filters, mel_centres = mel_filter_bank(frequencies, config.mel_bins)
    mel_spectrogram = magnitudes @ filters.T

    return SpectrogramResult(
        sample_rate=buffer.sample_rate,
        duration=buffer.duration,
        window_size=config.window_size,
        hop_size=config.hop_size,
        time_stamps=readonly(grid.time_stamps()),
        window_type=config.window_type,
        magnitudes=readonly(magnitudes),
        frequencies=readonly(frequencies),
        log_spectrogram=readonly(log_spectrogram),
        log_frequencies=readonly(log_frequencies),
        mel_spectrogram=readonly(mel_spectrogram),
        mel_frequencies=readonly(mel_centres),
        dimensions=SpectrogramDimensions(
            width=grid.n_frames,
            height=int(frequencies.size),
            time_resolution=config.hop_size / buffer.sample_rate,
            frequency_resolution=buffer.sample_rate / fft_size,
        ),
        statistics=spectrogram_statistics(magnitudes, frequencies, config.db_floor),
    )


def spectrogram_to_rgb(
    result: SpectrogramResult, colormap: str = "viridis", floor_db: float = -80.0
) -> np.ndarray:
    """Render the linear spectrogram as a (height, width, 3) uint8 image.

    Row 0 is the highest frequency; column 0 is the first frame.

    Raises:
        MissingInputError: If the result holds no frames.
    """
    if result.magnitudes.size == 0:
        raise MissingInputError("magnitudes", "spectrogram has no frames")
    db = relative_db(result.magnitudes, floor_db)
    normalized = (db - floor_db) / -floor_db
    return apply_colormap(normalized.T[::-1], colormap)
