"""
core/analysis/beats.py — Energy + onset beat detector.

Pipeline:
    frame (46 ms, 75% overlap)
        ├─ RMS energy per frame
        └─ half-wave rectified spectral flux per frame (Hann, same frames)
    → each normalized to [0, 1], combined 0.7·energy + 0.3·onset,
      renormalized by its max
    → adaptive threshold max(0.3, 1.3 · mean over ±1 s)
    → strict local peaks, at least 300 ms apart
    → tempo from the median inter-beat interval, folded into [60, 200] BPM

Beat strength is the RMS energy of the frame the beat was picked in, using
this analyzer's own hop and sample rate.
"""

from __future__ import annotations

import logging

import numpy as np

from core.analysis.basic import frame_rms
from core.analysis.rhythm import (
    adaptive_peak_pick,
    detect_tempo_changes,
    fold_tempo,
    inter_beat_intervals,
    min_gap_frames,
)
from core.analysis.types import BeatEvent, BeatResult, BeatStatistics, SampleBuffer, readonly
from core.config import DEFAULT_BEAT_CONFIG, BeatConfig
from core.dsp.framing import FrameGrid, frame_matrix
from core.dsp.stft import stft_magnitudes

logger = logging.getLogger(__name__)


def spectral_flux(magnitudes: np.ndarray) -> np.ndarray:
    """Σ max(0, |X_i| - |X_{i-1}|) per frame; the first frame is 0."""
    flux = np.zeros(magnitudes.shape[0], dtype=np.float64)
    if magnitudes.shape[0] > 1:
        flux[1:] = np.maximum(np.diff(magnitudes, axis=0), 0.0).sum(axis=1)
    return flux


def _unit_max(values: np.ndarray) -> np.ndarray:
    peak = float(values.max()) if values.size else 0.0
    return values / peak if peak > 0 else np.zeros_like(values)


def combine_onset_energy(
    energy: np.ndarray, onset: np.ndarray, energy_weight: float = 0.7, onset_weight: float = 0.3
) -> np.ndarray:
    """Weighted blend of energy and onset, renormalized by its max.

    Each input is scaled to a peak of 1 before weighting, so the weights act
    on comparable ranges regardless of the raw flux and RMS magnitudes.
    """
    return _unit_max(energy_weight * _unit_max(energy) + onset_weight * _unit_max(onset))


def median_tempo(beat_times: np.ndarray, min_bpm: float = 60.0, max_bpm: float = 200.0) -> float:
    """60 / median interval, folded into range. 0.0 for fewer than 2 beats.

    For an even number of intervals the upper of the two middle values is used.
    """
    intervals = np.sort(inter_beat_intervals(beat_times))
    if intervals.size == 0:
        return 0.0
    median = float(intervals[intervals.size // 2])
    if median <= 0:
        return 0.0
    return fold_tempo(60.0 / median, min_bpm, max_bpm)


def beat_statistics(beats: tuple[BeatEvent, ...], tempo: float, duration: float) -> BeatStatistics | None:
    """Count, interval, stability (1 / (1 + variance)) and density of beats."""
    if not beats:
        return None
    times = np.array([b.time for b in beats])
    intervals = inter_beat_intervals(times)
    average = float(intervals.mean()) if intervals.size else 0.0
    variance = float(intervals.var()) if intervals.size else 0.0
    return BeatStatistics(
        beat_count=len(beats),
        tempo=tempo,
        average_interval=average,
        tempo_stability=1.0 / (1.0 + variance),
        beats_per_second=len(beats) / duration if duration > 0 else 0.0,
        first_beat=float(times[0]),
        last_beat=float(times[-1]),
    )


def analyze_beats(buffer: SampleBuffer, config: BeatConfig = DEFAULT_BEAT_CONFIG) -> BeatResult:
    """Detect beats and estimate tempo from energy and onset strength."""
    window_size = max(1, int(buffer.sample_rate * config.window_seconds))
    hop_size = max(1, window_size // config.hop_divisor)
    grid = FrameGrid(window_size, hop_size, buffer.sample_rate, buffer.n_samples)
    logger.debug("beats: %d frames (W=%d, H=%d)", grid.n_frames, window_size, hop_size)

    frames = frame_matrix(buffer.samples, window_size, hop_size)
    energy = frame_rms(frames)
    onset = spectral_flux(stft_magnitudes(frames, "hann"))
    combined = combine_onset_energy(energy, onset, config.energy_weight, config.onset_weight)

    picked = adaptive_peak_pick(
        combined,
        half_width=int(config.local_window_seconds * grid.frame_rate),
        base_threshold=config.base_threshold,
        multiplier=config.threshold_multiplier,
        min_gap_frames=min_gap_frames(config.min_interval_seconds, buffer.sample_rate, hop_size),
    )
    beats = tuple(BeatEvent(time=grid.time_of(int(i)), strength=float(energy[i])) for i in picked)
    times = np.array([b.time for b in beats], dtype=np.float64)

    tempo = median_tempo(times, config.min_bpm, config.max_bpm)
    average_interval = (
        (times[-1] - times[0]) / (times.size - 1) if times.size > 1 else 0.0
    )
    logger.debug("beats: %d beats, tempo %.1f BPM", len(beats), tempo)

    return BeatResult(
        sample_rate=buffer.sample_rate,
        duration=buffer.duration,
        window_size=window_size,
        hop_size=hop_size,
        time_stamps=readonly(grid.time_stamps()),
        beats=beats,
        tempo=tempo,
        energy=readonly(energy),
        onset=readonly(onset),
        average_beat_interval=float(average_interval),
        statistics=beat_statistics(beats, tempo, buffer.duration),
        tempo_changes=detect_tempo_changes(
            times, config.tempo_change_window, config.tempo_change_bpm
        ),
    )
