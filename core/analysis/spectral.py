"""
core/analysis/spectral.py — Spectral shape statistics per frame.

Features (per Hann-windowed 2048-sample frame, 50% hop):
    centroid   energy-weighted mean frequency (Hz)
    bandwidth  energy-weighted std around the centroid (Hz)
    rolloff    lowest frequency below which 85% of the energy lies (Hz)
    flux       L2 distance from the previous frame's magnitudes (first = 0)
    flatness   geometric / arithmetic mean of magnitudes
    crest      max / RMS of magnitudes
    slope      least-squares slope of log-magnitude vs log-frequency
    skewness   3rd standardized moment about the centroid
    kurtosis   4th standardized moment, excess (−3)
    energy     Σ magnitude²

Design:
    - All features are computed for every frame at once on the
      (n_frames, n_bins) magnitude matrix.
    - A frame with zero energy gets 0 for every feature. The guard is applied
      as a final mask so no NaN/inf from 0/0 can leak into a result.
"""

from __future__ import annotations

import logging

import numpy as np

from core.analysis.types import (
    SPECTRAL_FEATURES,
    SampleBuffer,
    SpectralEvent,
    SpectralProfile,
    SpectralResult,
    SpectralTexture,
    SpectralTrend,
    readonly,
)
from core.config import DEFAULT_SPECTRAL_CONFIG, SpectralConfig
from core.dsp.framing import FrameGrid, frame_matrix
from core.dsp.stats import SummaryStatistics, summarize
from core.dsp.stft import bin_frequencies, fft_size_for, stft_magnitudes

logger = logging.getLogger(__name__)

_EPS = 1e-10  # floor for log(magnitude)

# Features scanned for events and trends
EVENT_FEATURES: tuple[str, ...] = ("centroid", "bandwidth", "rolloff", "flux", "flatness")


# ---------------------------------------------------------------------------
# Feature computation
# ---------------------------------------------------------------------------


def _safe_div(num: np.ndarray, den: np.ndarray) -> np.ndarray:
    return np.divide(num, den, out=np.zeros_like(num, dtype=np.float64), where=den > 0)


def spectral_features(
    magnitudes: np.ndarray, frequencies: np.ndarray, rolloff_percent: float = 0.85
) -> dict[str, np.ndarray]:
    """All spectral features for a (n_frames, n_bins) magnitude matrix."""
    n_frames, n_bins = magnitudes.shape
    if n_frames == 0 or n_bins == 0:
        return {name: np.zeros(n_frames, dtype=np.float64) for name in SPECTRAL_FEATURES}

    power = magnitudes * magnitudes
    energy = power.sum(axis=1)
    active = energy > 0

    centroid = _safe_div(power @ frequencies, energy)
    deviation = frequencies[None, :] - centroid[:, None]
    weights = _safe_div(power, energy[:, None])
    m2 = np.sum(weights * deviation**2, axis=1)
    m3 = np.sum(weights * deviation**3, axis=1)
    m4 = np.sum(weights * deviation**4, axis=1)
    bandwidth = np.sqrt(m2)
    skewness = _safe_div(m3, bandwidth**3)
    kurtosis = np.where(m2 > 0, _safe_div(m4, m2 * m2) - 3.0, 0.0)

    cumulative = np.cumsum(power, axis=1)
    rolloff_bin = np.argmax(cumulative >= (rolloff_percent * energy)[:, None], axis=1)
    rolloff = frequencies[rolloff_bin]

    flux = np.zeros(n_frames, dtype=np.float64)
    if n_frames > 1:
        flux[1:] = np.sqrt(np.sum(np.diff(magnitudes, axis=0) ** 2, axis=1))

    log_mag = np.log(np.maximum(magnitudes, _EPS))
    arithmetic = magnitudes.mean(axis=1)
    flatness = _safe_div(np.exp(log_mag.mean(axis=1)), arithmetic)

    rms = np.sqrt(power.mean(axis=1))
    crest = _safe_div(magnitudes.max(axis=1), rms)

    x = np.log(np.maximum(frequencies, 1.0))
    sum_x, sum_xx = x.sum(), np.dot(x, x)
    denom = n_bins * sum_xx - sum_x * sum_x
    if denom != 0:
        slope = (n_bins * (log_mag @ x) - sum_x * log_mag.sum(axis=1)) / denom
    else:
        slope = np.zeros(n_frames, dtype=np.float64)

    features = {
        "centroid": centroid,
        "bandwidth": bandwidth,
        "rolloff": rolloff,
        "flux": flux,
        "flatness": flatness,
        "crest": crest,
        "slope": slope,
        "kurtosis": kurtosis,
        "skewness": skewness,
        "energy": energy,
    }
    return {name: np.where(active, values, 0.0) for name, values in features.items()}


# ---------------------------------------------------------------------------
# Sequence-level summaries
# ---------------------------------------------------------------------------


def detect_spectral_events(
    features: dict[str, np.ndarray], time_stamps: np.ndarray, std_factor: float = 2.0
) -> tuple[SpectralEvent, ...]:
    """Peaks above mean + k·std and jumps larger than k·std, sorted by time."""
    events: list[SpectralEvent] = []
    for name in EVENT_FEATURES:
        data = features[name]
        if data.size < 3:
            continue
        mean, std = float(data.mean()), float(data.std())
        if std == 0.0:
            continue
        threshold = mean + std_factor * std
        for i in range(1, data.size - 1):
            value = float(data[i])
            if value > threshold and value > data[i - 1] and value > data[i + 1]:
                events.append(
                    SpectralEvent(
                        time=float(time_stamps[i]),
                        feature=name,
                        value=value,
                        event_type="peak",
                        score=(value - mean) / std,
                    )
                )
            change = value - float(data[i - 1])
            if abs(change) > std_factor * std:
                events.append(
                    SpectralEvent(
                        time=float(time_stamps[i]),
                        feature=name,
                        value=value,
                        event_type="change",
                        score=change,
                    )
                )
    events.sort(key=lambda e: e.time)
    return tuple(events)


def spectral_evolution(
    features: dict[str, np.ndarray], time_stamps: np.ndarray, window: int = 20
) -> dict[str, tuple[SpectralTrend, ...]]:
    """Mean of the ``window`` frames after minus mean of the ``window`` before."""
    evolution: dict[str, tuple[SpectralTrend, ...]] = {}
    for name in EVENT_FEATURES:
        data = features[name]
        n = data.size
        trends: list[SpectralTrend] = []
        if n >= 2 * window:
            csum = np.concatenate([[0.0], np.cumsum(data)])
            for i in range(window, n - window + 1):
                before = (csum[i] - csum[i - window]) / window
                after = (csum[i + window] - csum[i]) / window
                trends.append(
                    SpectralTrend(
                        time=float(time_stamps[i]),
                        trend=float(after - before),
                        before_value=float(before),
                        after_value=float(after),
                    )
                )
        evolution[name] = tuple(trends)
    return evolution


def spectral_profile(statistics: dict[str, SummaryStatistics]) -> SpectralProfile:
    """Coarse character label from mean brightness, spread, noisiness and flux."""
    brightness = statistics["centroid"].mean
    spread = statistics["bandwidth"].mean
    noisiness = statistics["flatness"].mean
    dynamism = statistics["flux"].mean
    energy_level = statistics["energy"].mean

    if energy_level <= 0:
        character = "silent"
    elif brightness > 3000 and spread > 1000:
        character = "bright_complex"
    elif brightness < 1000 and spread < 500:
        character = "dark_simple"
    elif noisiness > 0.3:
        character = "noisy"
    elif dynamism > statistics["flux"].std:
        character = "dynamic"
    elif brightness > 2000:
        character = "bright"
    else:
        character = "warm"

    return SpectralProfile(
        character=character,
        brightness=brightness,
        complexity=spread,
        noisiness=noisiness,
        dynamism=dynamism,
        energy_level=energy_level,
    )


def detect_spectral_textures(
    result: SpectralResult, segment_seconds: float = 2.0
) -> tuple[SpectralTexture, ...]:
    """Classify consecutive segments as noise, stable, dynamic or varied."""
    n = result.n_frames
    if n == 0 or result.duration <= 0:
        return ()
    segment = int(segment_seconds * n / result.duration)
    if segment <= 0:
        return ()

    textures: list[SpectralTexture] = []
    for start in range(0, n - segment, segment):
        stop = start + segment
        centroid_var = float(result.centroid[start:stop].var())
        bandwidth_var = float(result.bandwidth[start:stop].var())
        flatness_avg = float(result.flatness[start:stop].mean())
        flux_avg = float(result.flux[start:stop].mean())

        if flatness_avg > 0.4:
            texture = "noise"
        elif centroid_var < 100000:
            texture = "stable"
        elif flux_avg > centroid_var * 0.001:
            texture = "dynamic"
        else:
            texture = "varied"

        textures.append(
            SpectralTexture(
                start_time=float(result.time_stamps[start]),
                end_time=float(result.time_stamps[stop - 1]),
                centroid_variance=centroid_var,
                bandwidth_variance=bandwidth_var,
                flatness_average=flatness_avg,
                flux_average=flux_avg,
                texture=texture,
            )
        )
    return tuple(textures)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def analyze_spectral(
    buffer: SampleBuffer, config: SpectralConfig = DEFAULT_SPECTRAL_CONFIG
) -> SpectralResult:
    """Per-frame spectral shape features with statistics, events and trends."""
    grid = FrameGrid(config.window_size, config.hop_size, buffer.sample_rate, buffer.n_samples)
    fft_size = fft_size_for(config.window_size)
    logger.debug("spectral: %d frames (fft=%d)", grid.n_frames, fft_size)

    frames = frame_matrix(buffer.samples, config.window_size, config.hop_size)
    magnitudes = stft_magnitudes(frames, config.window_type, fft_size)
    features = spectral_features(
        magnitudes, bin_frequencies(fft_size, buffer.sample_rate), config.rolloff_percent
    )
    time_stamps = grid.time_stamps()
    statistics = {name: summarize(values) for name, values in features.items()}

    return SpectralResult(
        sample_rate=buffer.sample_rate,
        duration=buffer.duration,
        window_size=config.window_size,
        hop_size=config.hop_size,
        time_stamps=readonly(time_stamps),
        **{name: readonly(values) for name, values in features.items()},
        statistics=statistics,
        events=detect_spectral_events(features, time_stamps, config.event_std_factor),
        evolution=spectral_evolution(features, time_stamps, config.evolution_window),
        profile=spectral_profile(statistics),
    )
