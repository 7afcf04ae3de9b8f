"""
Tests for core/analysis/spectrogram.py — linear, log-frequency and mel views.
"""

import numpy as np
import pytest

from core.analysis.spectrogram import (
    ENERGY_BANDS,
    analyze_spectrogram,
    hz_to_mel,
    interpolate_to_axis,
    log_frequency_axis,
    mel_filter_bank,
    mel_to_hz,
    relative_db,
    spectrogram_to_rgb,
)
from core.analysis.types import MissingInputError
from core.dsp.stft import bin_frequencies


class TestMelScale:
    def test_known_point(self):
        assert hz_to_mel(700.0) == pytest.approx(2595.0 * np.log10(2.0))

    def test_inverse(self):
        hz = np.array([0.0, 100.0, 1000.0, 8000.0])
        np.testing.assert_allclose(mel_to_hz(hz_to_mel(hz)), hz, atol=1e-9)


class TestFrequencyAxes:
    def test_log_axis(self):
        freqs = bin_frequencies(1024, 44100)
        axis = log_frequency_axis(freqs, 128, 20.0)
        assert axis.size == 128
        assert axis[0] == pytest.approx(freqs[1])
        assert axis[-1] == pytest.approx(freqs[-1])
        assert np.all(np.diff(axis) > 0)

    def test_log_axis_min_frequency(self):
        freqs = np.arange(100, dtype=np.float64)
        assert log_frequency_axis(freqs, 16, 20.0)[0] == pytest.approx(20.0)

    def test_interpolation_is_exact_for_linear_spectra(self):
        freqs = np.arange(10, dtype=np.float64) * 100.0
        mags = np.tile(freqs * 2.0, (3, 1))
        targets = np.array([150.0, 425.0, 899.0])
        np.testing.assert_allclose(interpolate_to_axis(mags, freqs, targets), np.tile(targets * 2.0, (3, 1)))

    def test_mel_filter_bank(self):
        freqs = bin_frequencies(1024, 44100)
        filters, centres = mel_filter_bank(freqs, 80)
        assert filters.shape == (80, 512)
        assert centres.shape == (80,)
        assert np.all(np.diff(centres) > 0)
        assert filters.min() >= 0.0
        assert filters.max() <= 1.0 + 1e-12


class TestRelativeDb:
    def test_relative_to_peak(self):
        np.testing.assert_allclose(relative_db(np.array([1.0, 0.1, 0.0])), [0.0, -20.0, -80.0])

    def test_all_zero_is_floor(self):
        np.testing.assert_array_equal(relative_db(np.zeros((2, 3)), -60.0), np.full((2, 3), -60.0))


class TestAnalyzeSpectrogram:
    def test_dimensions(self, sine_buffer):
        result = analyze_spectrogram(sine_buffer)
        assert result.dimensions.width == result.n_frames == 169
        assert result.dimensions.height == 512
        assert result.dimensions.frequency_resolution == pytest.approx(44100 / 1024)
        assert result.dimensions.time_resolution == pytest.approx(256 / 44100)
        assert result.magnitudes.shape == (169, 512)
        assert result.log_spectrogram.shape == (169, 128)
        assert result.mel_spectrogram.shape == (169, 80)

    def test_sine_peak_bin(self, sine_buffer):
        result = analyze_spectrogram(sine_buffer)
        assert int(np.argmax(result.magnitudes.mean(axis=0))) == 10

    def test_statistics(self, noise_buffer):
        stats = analyze_spectrogram(noise_buffer).statistics
        assert set(stats.energy_distribution) == set(ENERGY_BANDS)
        assert stats.percentile_10 <= stats.median_level <= stats.percentile_90 <= 0.0
        assert 0.0 < stats.dynamic_range <= 80.0

    def test_silence(self, silent_buffer):
        stats = analyze_spectrogram(silent_buffer).statistics
        assert stats.dynamic_range == 0.0
        assert stats.mean_level == -80.0

    def test_short_buffer(self, short_buffer):
        result = analyze_spectrogram(short_buffer)
        assert result.n_frames == 0
        assert result.statistics.dynamic_range == 0.0


class TestSpectrogramImage:
    def test_shape(self, sine_buffer):
        img = spectrogram_to_rgb(analyze_spectrogram(sine_buffer))
        assert img.shape == (512, 169, 3)
        assert img.dtype == np.uint8

    def test_high_frequencies_on_top(self, sine_buffer):
        """The 440 Hz line sits near the bottom row."""
        img = spectrogram_to_rgb(analyze_spectrogram(sine_buffer), colormap="hot")
        brightest_row = int(np.argmax(img.sum(axis=(1, 2))))
        assert brightest_row == 511 - 10

    def test_no_frames_raises(self, short_buffer):
        with pytest.raises(MissingInputError) as exc:
            spectrogram_to_rgb(analyze_spectrogram(short_buffer))
        assert exc.value.field == "magnitudes"
