"""
core/analysis/frequency.py — Five-band energy over time.

Bands (Hz): bass 20–250, low_mid 250–500, mid 500–2k, high_mid 2k–4k,
treble 4k–16k. Each band value is the mean magnitude of the bins
floor(f_min·N/sr) … min(floor(f_max·N/sr), N/2 - 1) of a Hann-windowed frame.

Derived metrics (per-band dynamics, relative balance, band-weighted
centroid, peaks, dominant band) are computed once over the whole sequence.
detect_frequency_events() and frequency_evolution() are on-demand views of
a finished result.
"""

from __future__ import annotations

import logging

import numpy as np
from scipy import ndimage

from core.analysis.types import (
    BAND_NAMES,
    BAND_RANGES,
    BandBalance,
    BandDynamics,
    BandPeak,
    BandShare,
    FrequencyEvent,
    FrequencyResult,
    SampleBuffer,
    readonly,
)
from core.config import DEFAULT_FREQUENCY_CONFIG, FrequencyConfig
from core.dsp.filters import moving_average
from core.dsp.framing import FrameGrid, frame_matrix
from core.dsp.stft import fft_size_for, stft_magnitudes

logger = logging.getLogger(__name__)

# Representative frequency of each band for the band-weighted centroid
REPRESENTATIVE_FREQUENCIES: dict[str, float] = {
    "bass": 135.0,
    "low_mid": 375.0,
    "mid": 1250.0,
    "high_mid": 3000.0,
    "treble": 10000.0,
}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def band_bin_ranges(fft_size: int, sample_rate: int) -> dict[str, tuple[int, int]]:
    """Inclusive bin-index range of each band. An empty range has lo > hi."""
    top = fft_size // 2 - 1
    ranges: dict[str, tuple[int, int]] = {}
    for name in BAND_NAMES:
        f_min, f_max = BAND_RANGES[name]
        lo = int(np.floor(f_min * fft_size / sample_rate))
        hi = min(int(np.floor(f_max * fft_size / sample_rate)), top)
        ranges[name] = (lo, hi)
    return ranges


def _band_energies(magnitudes: np.ndarray, ranges: dict[str, tuple[int, int]]) -> np.ndarray:
    out = np.zeros((magnitudes.shape[0], len(BAND_NAMES)), dtype=np.float64)
    for col, name in enumerate(BAND_NAMES):
        lo, hi = ranges[name]
        if hi >= lo and magnitudes.shape[0]:
            out[:, col] = magnitudes[:, lo : hi + 1].mean(axis=1)
    return out


def band_dynamics(values: np.ndarray) -> BandDynamics:
    """Max, min, mean, RMS, dynamic range (dB) and std of one band."""
    if values.size == 0:
        return BandDynamics(0.0, 0.0, 0.0, 0.0, 0.0, 0.0)
    v_max, v_min = float(values.max()), float(values.min())
    dynamic_range = 20.0 * np.log10(v_max / max(v_min, v_max * 0.001)) if v_max > 0 else 0.0
    return BandDynamics(
        max=v_max,
        min=v_min,
        mean=float(values.mean()),
        rms=float(np.sqrt(np.mean(values * values))),
        dynamic_range_db=float(dynamic_range),
        std=float(values.std()),
    )


def band_balance(band_energies: np.ndarray) -> BandBalance:
    means = band_energies.mean(axis=0) if band_energies.shape[0] else np.zeros(len(BAND_NAMES))
    absolute = {name: float(means[i]) for i, name in enumerate(BAND_NAMES)}
    total = float(means.sum())
    relative = {name: (absolute[name] / total * 100.0 if total > 0 else 0.0) for name in BAND_NAMES}
    treble, bass, mid = absolute["treble"], absolute["bass"], absolute["mid"]
    outer = max(bass, treble)
    return BandBalance(
        relative=relative,
        absolute=absolute,
        bass_to_treble_ratio=bass / treble if treble > 0 else 0.0,
        mid_dominance=mid / outer if outer > 0 else 0.0,
        total_energy=total,
    )


def band_centroid(absolute: dict[str, float]) -> float:
    """Energy-weighted mean of the representative band frequencies."""
    weights = np.array([absolute.get(name, 0.0) for name in BAND_NAMES])
    total = float(weights.sum())
    if total <= 0:
        return 0.0
    freqs = np.array([REPRESENTATIVE_FREQUENCIES[name] for name in BAND_NAMES])
    return float(np.dot(freqs, weights) / total)


def band_peaks(
    values: np.ndarray, time_stamps: np.ndarray, neighborhood: int = 5, ratio: float = 0.8
) -> tuple[BandPeak, ...]:
    """Frames above both neighbours and above ``ratio`` × the ±neighborhood max."""
    n = values.size
    if n < 3:
        return ()
    local_peak = np.zeros(n, dtype=bool)
    local_peak[1:-1] = (values[1:-1] > values[:-2]) & (values[1:-1] > values[2:])
    local_max = ndimage.maximum_filter1d(values, size=2 * neighborhood + 1, mode="nearest")
    idx = np.flatnonzero(local_peak & (values > local_max * ratio))
    return tuple(
        BandPeak(index=int(i), time=float(time_stamps[i]), value=float(values[i])) for i in idx
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def analyze_frequency(
    buffer: SampleBuffer, config: FrequencyConfig = DEFAULT_FREQUENCY_CONFIG
) -> FrequencyResult:
    """Per-frame mean magnitude in each of the five bands, plus summaries."""
    grid = FrameGrid(config.window_size, config.hop_size, buffer.sample_rate, buffer.n_samples)
    fft_size = fft_size_for(config.window_size)
    logger.debug("frequency: %d frames (fft=%d)", grid.n_frames, fft_size)

    frames = frame_matrix(buffer.samples, config.window_size, config.hop_size)
    magnitudes = stft_magnitudes(frames, config.window_type, fft_size)
    energies = _band_energies(magnitudes, band_bin_ranges(fft_size, buffer.sample_rate))
    time_stamps = grid.time_stamps()

    dynamics = {name: band_dynamics(energies[:, i]) for i, name in enumerate(BAND_NAMES)}
    balance = band_balance(energies)
    peaks = {
        name: band_peaks(energies[:, i], time_stamps, config.peak_neighborhood, config.peak_ratio)
        for i, name in enumerate(BAND_NAMES)
    }

    distribution = tuple(
        sorted(
            (
                BandShare(band=name, percentage=balance.relative[name], energy=balance.absolute[name])
                for name in BAND_NAMES
            ),
            key=lambda share: share.percentage,
            reverse=True,
        )
    )
    dominant = distribution[0].band if balance.total_energy > 0 else None

    return FrequencyResult(
        sample_rate=buffer.sample_rate,
        duration=buffer.duration,
        window_size=config.window_size,
        hop_size=config.hop_size,
        time_stamps=readonly(time_stamps),
        band_names=BAND_NAMES,
        band_ranges=dict(BAND_RANGES),
        band_energies=readonly(energies),
        dynamics=dynamics,
        balance=balance,
        spectral_centroid=band_centroid(balance.absolute),
        peaks=peaks,
        dominant_band=dominant,
        energy_distribution=distribution,
    )


def detect_frequency_events(
    result: FrequencyResult, threshold: float = 1.5
) -> tuple[FrequencyEvent, ...]:
    """Frames where a band exceeds its mean by ``threshold`` standard deviations.

    Bands with zero variance produce no events. Events are sorted by time.
    """
    events: list[FrequencyEvent] = []
    for name in result.band_names:
        values = result.band(name)
        if values.size == 0:
            continue
        mean, std = float(values.mean()), float(values.std())
        if std == 0.0:
            continue
        for i in np.flatnonzero(values > mean + threshold * std):
            events.append(
                FrequencyEvent(
                    time=float(result.time_stamps[i]),
                    band=name,
                    intensity=float(values[i]),
                    relative_intensity=(float(values[i]) - mean) / std,
                )
            )
    events.sort(key=lambda e: e.time)
    return tuple(events)


def frequency_evolution(result: FrequencyResult, smoothing_window: int = 5) -> dict[str, np.ndarray]:
    """Moving-average smoothed copy of every band sequence."""
    return {name: moving_average(result.band(name), smoothing_window) for name in result.band_names}
