"""
Tests for core/analysis/frequency.py — five-band energies and derived metrics.
"""

import numpy as np
import pytest

from core.analysis.frequency import (
    analyze_frequency,
    band_balance,
    band_bin_ranges,
    band_centroid,
    band_dynamics,
    band_peaks,
    detect_frequency_events,
    frequency_evolution,
)
from core.analysis.types import BAND_NAMES, SampleBuffer

SR = 44100


class TestBandBinRanges:
    def test_default_geometry(self):
        ranges = band_bin_ranges(2048, SR)
        assert ranges["bass"] == (0, 11)
        assert ranges["low_mid"] == (11, 23)
        assert ranges["treble"][1] <= 1023

    def test_top_clipped(self):
        """16 kHz is above Nyquist at 22.05 kHz sample rate."""
        lo, hi = band_bin_ranges(2048, 22050)["treble"]
        assert hi == 1023
        assert lo <= hi


class TestBandHelpers:
    def test_dynamics(self):
        d = band_dynamics(np.array([1.0, 10.0]))
        assert d.max == 10.0
        assert d.min == 1.0
        assert d.dynamic_range_db == pytest.approx(20.0)

    def test_dynamics_floor(self):
        """A zero minimum is floored at max · 0.001 (60 dB)."""
        assert band_dynamics(np.array([0.0, 1.0])).dynamic_range_db == pytest.approx(60.0)

    def test_dynamics_empty(self):
        assert band_dynamics(np.zeros(0)).max == 0.0

    def test_balance(self):
        energies = np.tile([2.0, 1.0, 4.0, 1.0, 2.0], (3, 1))
        balance = band_balance(energies)
        assert balance.total_energy == pytest.approx(10.0)
        assert balance.relative["mid"] == pytest.approx(40.0)
        assert balance.bass_to_treble_ratio == pytest.approx(1.0)
        assert balance.mid_dominance == pytest.approx(2.0)

    def test_balance_silence(self):
        balance = band_balance(np.zeros((4, 5)))
        assert balance.total_energy == 0.0
        assert all(v == 0.0 for v in balance.relative.values())

    def test_centroid(self):
        assert band_centroid({"bass": 1.0}) == pytest.approx(135.0)
        assert band_centroid({}) == 0.0

    def test_peaks(self):
        values = np.array([0.0, 1.0, 0.0, 0.0, 0.5, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.9, 0.0])
        peaks = band_peaks(values, np.arange(values.size) * 0.1)
        assert [p.index for p in peaks] == [1, 11]


class TestAnalyzeFrequency:
    def test_shape(self, sine_buffer):
        result = analyze_frequency(sine_buffer)
        assert result.band_names == BAND_NAMES
        assert result.band_energies.shape == (result.n_frames, 5)

    def test_sine_dominant_band(self, sine_buffer):
        result = analyze_frequency(sine_buffer)
        assert result.dominant_band == "low_mid"
        assert result.energy_distribution[0].band == "low_mid"

    def test_distribution_sorted(self, noise_buffer):
        result = analyze_frequency(noise_buffer)
        shares = [s.percentage for s in result.energy_distribution]
        assert shares == sorted(shares, reverse=True)
        assert sum(shares) == pytest.approx(100.0)

    def test_band_accessor(self, sine_buffer):
        result = analyze_frequency(sine_buffer)
        np.testing.assert_array_equal(result.band("mid"), result.band_energies[:, 2])
        with pytest.raises(ValueError, match="Unknown band"):
            result.band("sub")

    def test_silence(self, silent_buffer):
        result = analyze_frequency(silent_buffer)
        assert result.dominant_band is None
        assert result.spectral_centroid == 0.0

    def test_short_buffer(self, short_buffer):
        result = analyze_frequency(short_buffer)
        assert result.n_frames == 0
        assert result.band_energies.shape == (0, 5)


class TestFrequencyViews:
    def test_events_on_burst(self):
        y = np.zeros(SR * 2)
        y[SR : SR + 4096] = np.sin(2 * np.pi * 1000 * np.arange(4096) / SR)
        result = analyze_frequency(SampleBuffer(y, SR))
        events = detect_frequency_events(result)
        assert events
        assert any(e.band == "mid" for e in events)
        assert [e.time for e in events] == sorted(e.time for e in events)

    def test_no_events_on_silence(self, silent_buffer):
        assert detect_frequency_events(analyze_frequency(silent_buffer)) == ()

    def test_evolution(self, sine_buffer):
        result = analyze_frequency(sine_buffer)
        evolution = frequency_evolution(result)
        assert set(evolution) == set(BAND_NAMES)
        assert evolution["bass"].shape == (result.n_frames,)
