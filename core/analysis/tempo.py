"""
core/analysis/tempo.py — Onset-histogram tempo and rhythm analysis.

Pipeline:
    frame (100 ms, 75% overlap) → Hann magnitudes
    → onset = 0.7 · full-band flux + 0.3 · flux above 30% of the spectrum,
      normalized by its max
    → adaptive threshold max(0.3, 1.5 · mean over ±1 s), peaks ≥ 200 ms apart
    → BPM vote histogram over inter-beat intervals:
          round(60 / ibi)   +1.0
          round(30 / ibi)   +0.5   (half-time reading)
          round(120 / ibi)  +0.5   (double-time reading)
      counted only inside [60, 200]
    → main tempo = histogram mode, confidence = mode votes / all votes

Ties in the histogram go to the BPM that received its first vote earliest.
Fewer than 2 beats give main_tempo == 0 and confidence 0.
"""

from __future__ import annotations

import logging
import math

import numpy as np

from core.analysis.beats import spectral_flux
from core.analysis.rhythm import (
    adaptive_peak_pick,
    detect_tempo_changes,
    inter_beat_intervals,
    min_gap_frames,
    round_half_up,
)
from core.analysis.types import (
    RhythmAnalysis,
    RhythmPattern,
    SampleBuffer,
    TempoAlternative,
    TempoChange,
    TempoHistogram,
    TempoProfile,
    TempoResult,
    TempoSegment,
    readonly,
)
from core.config import DEFAULT_TEMPO_CONFIG, TempoConfig
from core.dsp.framing import FrameGrid, frame_matrix
from core.dsp.stft import stft_magnitudes

logger = logging.getLogger(__name__)

# (target ratio, tolerance, label), checked in order
_RELATIONSHIPS: tuple[tuple[float, float, str], ...] = (
    (2.0, 0.1, "double-time"),
    (0.5, 0.1, "half-time"),
    (1.5, 0.1, "triplet"),
    (0.67, 0.1, "triplet-reverse"),
    (1.0, 0.05, "same"),
)


# ---------------------------------------------------------------------------
# Onset function
# ---------------------------------------------------------------------------


def onset_function(
    magnitudes: np.ndarray, full_weight: float = 0.7, high_weight: float = 0.3, high_start: float = 0.3
) -> np.ndarray:
    """Weighted full-band + high-frequency flux, normalized to max 1."""
    full = spectral_flux(magnitudes)
    first_high = int(magnitudes.shape[1] * high_start)
    high = spectral_flux(magnitudes[:, first_high:])
    onset = full_weight * full + high_weight * high
    peak = float(onset.max()) if onset.size else 0.0
    return onset / peak if peak > 0 else onset


# ---------------------------------------------------------------------------
# Histogram
# ---------------------------------------------------------------------------


def classify_relationship(tempo: float, reference: float) -> str:
    """Label ``tempo`` relative to ``reference`` (double-time, triplet, …)."""
    if reference <= 0:
        return "unrelated"
    ratio = tempo / reference
    for target, tolerance, label in _RELATIONSHIPS:
        if abs(ratio - target) < tolerance:
            return label
    return "unrelated"


def tempo_votes(intervals: np.ndarray, min_bpm: float = 60.0, max_bpm: float = 200.0) -> dict[int, float]:
    """BPM → votes, in order of first vote."""
    votes: dict[int, float] = {}
    for interval in intervals:
        if interval <= 0:
            continue
        for numerator, weight in ((60.0, 1.0), (30.0, 0.5), (120.0, 0.5)):
            bpm = round_half_up(numerator / interval)
            if min_bpm <= bpm <= max_bpm:
                votes[bpm] = votes.get(bpm, 0.0) + weight
    return votes


def tempo_histogram(beat_times: np.ndarray, config: TempoConfig = DEFAULT_TEMPO_CONFIG) -> TempoHistogram:
    """Main tempo, confidence and alternatives from the beat times."""
    intervals = inter_beat_intervals(beat_times)
    if intervals.size == 0:
        return TempoHistogram(
            main_tempo=0,
            tempo_confidence=0.0,
            possible_tempos=(),
            beat_intervals=readonly(intervals),
            average_interval=0.0,
            tempo_variability=0.0,
            votes={},
        )

    votes = tempo_votes(intervals, config.min_bpm, config.max_bpm)
    main_tempo, main_votes = 0, 0.0
    for bpm, count in votes.items():
        if count > main_votes:
            main_tempo, main_votes = bpm, count
    total = sum(votes.values())

    alternatives = [
        TempoAlternative(
            tempo=bpm,
            confidence=count / main_votes,
            relationship=classify_relationship(bpm, main_tempo),
        )
        for bpm, count in votes.items()
        if bpm != main_tempo and count >= main_votes * config.alternative_ratio
    ]
    alternatives.sort(key=lambda alt: alt.confidence, reverse=True)

    mean = float(intervals.mean())
    return TempoHistogram(
        main_tempo=main_tempo,
        tempo_confidence=main_votes / total if total > 0 else 0.0,
        possible_tempos=tuple(alternatives),
        beat_intervals=readonly(intervals),
        average_interval=mean,
        tempo_variability=float(intervals.std()) / mean if mean > 0 else 0.0,
        votes=votes,
    )


# ---------------------------------------------------------------------------
# Evolution, patterns, profile
# ---------------------------------------------------------------------------


def tempo_evolution(
    beat_times: np.ndarray, duration: float, segment_seconds: float = 10.0
) -> tuple[TempoSegment, ...]:
    """Mean-interval tempo of each consecutive ``segment_seconds`` span."""
    if duration <= 0:
        return ()
    times = np.asarray(beat_times, dtype=np.float64)
    segments: list[TempoSegment] = []
    for i in range(math.ceil(duration / segment_seconds)):
        start, end = i * segment_seconds, (i + 1) * segment_seconds
        inside = times[(times >= start) & (times < end)]
        intervals = inter_beat_intervals(inside)
        if intervals.size:
            tempo = 60.0 / float(intervals.mean())
            confidence = min(1.0, inside.size / 4)
        else:
            tempo, confidence = 0.0, 0.0
        segments.append(
            TempoSegment(
                start_time=start,
                end_time=end,
                tempo=tempo,
                beat_count=int(inside.size),
                confidence=confidence,
            )
        )
    return tuple(segments)


def quantize_interval(ratio: float) -> float:
    """Snap an interval / mean-interval ratio to a common rhythmic value."""
    if ratio < 0.6:
        return 0.5
    if ratio < 0.8:
        return 0.67
    if ratio < 1.2:
        return 1.0
    if ratio < 1.6:
        return 1.5
    if ratio < 2.2:
        return 2.0
    return float(round_half_up(ratio))


def find_repeating_patterns(values: tuple[float, ...], max_length: int = 8) -> tuple[RhythmPattern, ...]:
    """Every run of 2…max_length values that occurs at least twice, most frequent first."""
    counts: dict[tuple[float, ...], int] = {}
    longest = min(max_length, len(values) // 2)
    for length in range(2, longest + 1):
        for start in range(len(values) - length + 1):
            key = values[start : start + length]
            counts[key] = counts.get(key, 0) + 1
    patterns = [
        RhythmPattern(pattern=key, occurrences=count, length=len(key))
        for key, count in counts.items()
        if count >= 2
    ]
    patterns.sort(key=lambda p: p.occurrences, reverse=True)
    return tuple(patterns)


def rhythmic_complexity(values: tuple[float, ...]) -> float:
    """Shannon entropy of the values divided by log2(number of distinct values)."""
    if not values:
        return 0.0
    distinct: dict[float, int] = {}
    for v in values:
        distinct[v] = distinct.get(v, 0) + 1
    if len(distinct) < 2:
        return 0.0
    total = len(values)
    entropy = -sum((c / total) * math.log2(c / total) for c in distinct.values())
    return entropy / math.log2(len(distinct))


def rhythm_patterns(beat_times: np.ndarray, max_length: int = 8) -> RhythmAnalysis:
    """Quantized intervals, their repeating patterns and entropy."""
    intervals = inter_beat_intervals(beat_times)
    if intervals.size < 3:
        return RhythmAnalysis(patterns=(), complexity=0.0, quantized_intervals=(), average_interval=0.0)
    average = float(intervals.mean())
    quantized = tuple(quantize_interval(float(iv) / average) for iv in intervals)
    return RhythmAnalysis(
        patterns=find_repeating_patterns(quantized, max_length),
        complexity=rhythmic_complexity(quantized),
        quantized_intervals=quantized,
        average_interval=average,
    )


def syncopation(intervals: np.ndarray) -> float:
    """Mean relative deviation of the intervals from their mean."""
    if intervals.size < 2:
        return 0.0
    mean = float(intervals.mean())
    if mean <= 0:
        return 0.0
    return float(np.mean(np.abs(intervals - mean)) / mean)


def tempo_category(bpm: float) -> str:
    if bpm <= 0:
        return "unknown"
    if bpm < 70:
        return "slow"
    if bpm < 100:
        return "moderate"
    if bpm < 140:
        return "fast"
    return "very_fast"


def tempo_profile(
    histogram: TempoHistogram,
    patterns: RhythmAnalysis,
    changes: tuple[TempoChange, ...],
    beat_count: int,
    duration: float,
) -> TempoProfile:
    return TempoProfile(
        main_tempo=histogram.main_tempo,
        category=tempo_category(histogram.main_tempo),
        stability=1.0 - histogram.tempo_variability,
        confidence=histogram.tempo_confidence,
        rhythmic_complexity=patterns.complexity,
        has_tempo_changes=bool(changes),
        change_count=len(changes),
        beat_density=beat_count / duration if duration > 0 else 0.0,
        rhythmic_regularity=1.0 - patterns.complexity if patterns.patterns else 0.0,
        syncopation=syncopation(histogram.beat_intervals),
        dominant_pattern=patterns.patterns[0] if patterns.patterns else None,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def analyze_tempo(buffer: SampleBuffer, config: TempoConfig = DEFAULT_TEMPO_CONFIG) -> TempoResult:
    """Estimate tempo, its evolution, rhythm patterns and tempo changes."""
    window_size = max(1, int(buffer.sample_rate * config.window_seconds))
    hop_size = max(1, window_size // config.hop_divisor)
    grid = FrameGrid(window_size, hop_size, buffer.sample_rate, buffer.n_samples)
    logger.debug("tempo: %d frames (W=%d, H=%d)", grid.n_frames, window_size, hop_size)

    magnitudes = stft_magnitudes(frame_matrix(buffer.samples, window_size, hop_size), "hann")
    onset = onset_function(
        magnitudes, config.full_flux_weight, config.high_flux_weight, config.high_frequency_start
    )
    picked = adaptive_peak_pick(
        onset,
        half_width=int(config.local_window_seconds * grid.frame_rate),
        base_threshold=config.base_threshold,
        multiplier=config.threshold_multiplier,
        min_gap_frames=min_gap_frames(config.min_interval_seconds, buffer.sample_rate, hop_size),
    )
    beat_times = picked.astype(np.float64) * hop_size / buffer.sample_rate

    histogram = tempo_histogram(beat_times, config)
    patterns = rhythm_patterns(beat_times, config.max_pattern_length)
    changes = detect_tempo_changes(
        beat_times, config.change_window, config.change_bpm, config.change_ratio
    )
    logger.debug(
        "tempo: %d beats, main %d BPM (confidence %.2f)",
        beat_times.size,
        histogram.main_tempo,
        histogram.tempo_confidence,
    )

    return TempoResult(
        sample_rate=buffer.sample_rate,
        duration=buffer.duration,
        window_size=window_size,
        hop_size=hop_size,
        time_stamps=readonly(grid.time_stamps()),
        beat_times=readonly(beat_times),
        tempo_analysis=histogram,
        tempo_evolution=tempo_evolution(beat_times, buffer.duration, config.segment_seconds),
        rhythm_patterns=patterns,
        tempo_changes=changes,
        onset=readonly(onset),
        profile=tempo_profile(histogram, patterns, changes, int(beat_times.size), buffer.duration),
    )
