"""
Tests for core/analysis/beats.py and the shared helpers in core/analysis/rhythm.py.
"""

import numpy as np
import pytest

from core.analysis.beats import (
    analyze_beats,
    beat_statistics,
    combine_onset_energy,
    median_tempo,
    spectral_flux,
)
from core.analysis.rhythm import (
    adaptive_peak_pick,
    detect_tempo_changes,
    fold_tempo,
    inter_beat_intervals,
    local_average,
    local_tempo,
    min_gap_frames,
    round_half_up,
)
from core.analysis.types import BeatEvent

# ---------------------------------------------------------------------------
# Shared rhythm helpers
# ---------------------------------------------------------------------------


class TestRhythmHelpers:
    @pytest.mark.parametrize("x, expected", [(2.5, 3), (2.4, 2), (-2.5, -2), (0.5, 1)])
    def test_round_half_up(self, x, expected):
        assert round_half_up(x) == expected

    def test_intervals(self):
        np.testing.assert_allclose(inter_beat_intervals(np.array([0.0, 0.5, 1.5])), [0.5, 1.0])
        assert inter_beat_intervals(np.array([1.0])).size == 0

    def test_local_tempo(self):
        assert local_tempo(np.arange(5) * 0.5) == pytest.approx(120.0)
        assert local_tempo(np.array([1.0])) == 0.0

    @pytest.mark.parametrize(
        "bpm, expected", [(120.0, 120.0), (50.0, 100.0), (250.0, 125.0), (20.0, 20.0), (500.0, 500.0)]
    )
    def test_fold_tempo(self, bpm, expected):
        assert fold_tempo(bpm) == expected

    def test_local_average_clipped(self):
        np.testing.assert_allclose(local_average(np.array([1.0, 2.0, 3.0, 4.0]), 1), [1.0, 1.5, 2.5, 3.5])

    def test_min_gap_frames(self):
        assert min_gap_frames(0.3, 44100, 507) == 27
        assert min_gap_frames(0.5, 1000, 100) == 5
        assert min_gap_frames(0.0001, 44100, 1024) == 1

    def test_adaptive_peak_pick_respects_gap(self):
        values = np.zeros(20)
        values[3], values[5], values[12] = 1.0, 0.9, 1.0
        picked = adaptive_peak_pick(values, half_width=2, base_threshold=0.3, multiplier=1.0, min_gap_frames=4)
        np.testing.assert_array_equal(picked, [3, 12])

    def test_adaptive_peak_pick_threshold(self):
        values = np.zeros(10)
        values[4] = 0.2
        assert adaptive_peak_pick(values, 2, 0.3, 1.0, 1).size == 0

    def test_adaptive_peak_pick_short(self):
        assert adaptive_peak_pick(np.array([0.0, 1.0]), 2, 0.1, 1.0, 1).size == 0


class TestDetectTempoChanges:
    def _times(self):
        first = np.arange(8) * 0.5
        second = first[-1] + 0.4 + np.arange(9) * 0.4
        return np.concatenate([first, second])

    def test_step_change(self):
        changes = detect_tempo_changes(self._times(), window=8, min_change_bpm=10.0)
        assert len(changes) == 1
        change = changes[0]
        assert change.time == pytest.approx(3.9)
        assert change.before_tempo == pytest.approx(120.0)
        assert change.after_tempo == pytest.approx(150.0)
        assert change.change_amount == pytest.approx(30.0)
        assert change.significance == 1.0

    def test_ratio_limit(self):
        times = np.concatenate([np.arange(8) * 1.0, 7.0 + (np.arange(9) + 1) * (60.0 / 66.0)])
        assert detect_tempo_changes(times, 8, 10.0) == ()
        assert len(detect_tempo_changes(times, 8, 10.0, max_ratio=1.05)) == 1

    def test_steady(self):
        assert detect_tempo_changes(np.arange(30) * 0.5) == ()

    def test_too_few_beats(self):
        assert detect_tempo_changes(np.arange(10) * 0.5, window=8) == ()

    def test_last_full_window_is_not_a_candidate(self):
        """Exactly 2·window beats leaves no beat with a full window on both sides."""
        assert detect_tempo_changes(self._times()[:16], window=8) == ()


# ---------------------------------------------------------------------------
# Beat analyzer
# ---------------------------------------------------------------------------


class TestBeatHelpers:
    def test_combine_scales_each_part_first(self):
        energy = np.array([0.0, 0.4, 0.2])
        onset = np.array([0.0, 0.0, 700.0])
        np.testing.assert_allclose(combine_onset_energy(energy, onset), [0.0, 1.0, 0.65 / 0.7])

    def test_combine_ignores_raw_onset_magnitude(self):
        rng = np.random.default_rng(5)
        energy, onset = rng.uniform(size=20), rng.uniform(size=20)
        np.testing.assert_allclose(
            combine_onset_energy(energy, onset * 1000.0), combine_onset_energy(energy, onset)
        )

    def test_combine_all_zero(self):
        assert not combine_onset_energy(np.zeros(4), np.zeros(4)).any()

    def test_spectral_flux_positive_part(self):
        mags = np.array([[1.0, 1.0], [2.0, 0.0], [2.0, 3.0]])
        np.testing.assert_allclose(spectral_flux(mags), [0.0, 1.0, 3.0])

    def test_median_tempo_upper_median(self):
        """Intervals 0.4, 0.5 → upper middle 0.5 → 120 BPM."""
        assert median_tempo(np.array([0.0, 0.4, 0.9])) == pytest.approx(120.0)

    def test_median_tempo_folds(self):
        assert median_tempo(np.array([0.0, 1.25, 2.5])) == pytest.approx(96.0)

    def test_median_tempo_no_beats(self):
        assert median_tempo(np.array([])) == 0.0

    def test_beat_statistics(self):
        beats = tuple(BeatEvent(time=t, strength=1.0) for t in (0.5, 1.0, 1.5, 2.0))
        stats = beat_statistics(beats, 120.0, 4.0)
        assert stats.beat_count == 4
        assert stats.average_interval == pytest.approx(0.5)
        assert stats.tempo_stability == pytest.approx(1.0)
        assert stats.beats_per_second == 1.0
        assert stats.first_beat == 0.5
        assert stats.last_beat == 2.0

    def test_beat_statistics_empty(self):
        assert beat_statistics((), 0.0, 1.0) is None


class TestAnalyzeBeats:
    def test_click_train_tempo(self, click_buffer):
        result = analyze_beats(click_buffer)
        assert 8 <= len(result.beats) <= 10
        assert result.tempo == pytest.approx(120.0, abs=3.0)
        np.testing.assert_allclose(np.diff(result.beat_times), 0.5, atol=0.03)
        assert result.average_beat_interval == pytest.approx(0.5, abs=0.02)
        assert result.statistics is not None
        assert result.tempo_changes == ()

    def test_beat_strength_is_frame_energy(self, click_buffer):
        result = analyze_beats(click_buffer)
        assert all(b.strength > 0 for b in result.beats)

    def test_sequences_aligned(self, click_buffer):
        result = analyze_beats(click_buffer)
        assert result.energy.shape == result.onset.shape == result.time_stamps.shape
        assert result.window_size == 2028
        assert result.hop_size == 507

    def test_silence(self, silent_buffer):
        result = analyze_beats(silent_buffer)
        assert result.beats == ()
        assert result.tempo == 0.0
        assert result.statistics is None

    def test_short_buffer(self, short_buffer):
        result = analyze_beats(short_buffer)
        assert result.n_frames == 0
        assert result.beats == ()
