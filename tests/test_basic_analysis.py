"""
Tests for core/analysis/basic.py — RMS envelope, normalization, silence.
"""

import numpy as np
import pytest

from core.analysis.basic import analyze_basic, detect_silence, frame_rms
from core.analysis.types import AnalysisKind, SampleBuffer, SilentRegion
from core.config import BasicConfig


class TestFrameRms:
    def test_constant_frames(self):
        frames = np.full((3, 10), 0.5)
        np.testing.assert_allclose(frame_rms(frames), [0.5, 0.5, 0.5])

    def test_empty(self):
        assert frame_rms(np.zeros((0, 10))).size == 0


class TestDetectSilence:
    def test_runs_are_inclusive(self):
        regions = detect_silence(np.array([0.0, 0.0, 0.5, 0.5, 0.0, 0.5, 0.0, 0.0]))
        assert regions == (
            SilentRegion(start=0, end=1),
            SilentRegion(start=4, end=4),
            SilentRegion(start=6, end=7),
        )

    def test_no_silence(self):
        assert detect_silence(np.ones(5)) == ()

    def test_empty(self):
        assert detect_silence(np.zeros(0)) == ()

    def test_custom_threshold(self):
        assert detect_silence(np.array([0.2, 0.6]), threshold=0.5) == (SilentRegion(0, 0),)


class TestAnalyzeBasic:
    def test_frame_geometry(self, sine_buffer):
        result = analyze_basic(sine_buffer)
        assert result.kind is AnalysisKind.BASIC
        assert result.window_size == 4410
        assert result.hop_size == 1102
        assert result.n_frames == 37
        assert result.amplitude.shape == result.time_stamps.shape

    def test_sine_level(self, sine_buffer):
        """A 0.5-amplitude sine has RMS 0.5 / sqrt(2) in every frame."""
        result = analyze_basic(sine_buffer)
        assert result.max_amplitude == pytest.approx(0.5 / np.sqrt(2), rel=1e-3)
        np.testing.assert_allclose(result.normalized_amplitude, 1.0, atol=1e-3)
        assert result.silent_regions == ()

    def test_amplitude_in_unit_interval(self, noise_buffer):
        result = analyze_basic(noise_buffer)
        assert result.amplitude.max() <= 1.0 + 1e-12
        assert result.amplitude.min() >= 0.0

    def test_silence(self, silent_buffer):
        result = analyze_basic(silent_buffer)
        assert result.max_amplitude == 0.0
        assert not result.amplitude.any()
        assert result.silent_regions == (SilentRegion(0, result.n_frames - 1),)

    def test_short_buffer(self, short_buffer):
        result = analyze_basic(short_buffer)
        assert result.n_frames == 0
        assert result.max_amplitude == 0.0
        assert result.silent_regions == ()

    def test_silent_gap_detected(self):
        sr = 44100
        y = np.concatenate([np.full(sr, 0.5), np.zeros(sr), np.full(sr, 0.5)])
        result = analyze_basic(SampleBuffer(y, sr))
        assert len(result.silent_regions) == 1
        gap = result.silent_regions[0]
        assert result.time_stamps[gap.start] > 0.9
        assert result.time_stamps[gap.end] < 2.0

    def test_amplitude_is_recursive_blend_of_normalized(self):
        """Each smoothed value uses the already-smoothed left neighbour."""
        sr = 8000
        y = np.zeros(2 * sr)
        y[2000:4000] = 0.8
        y[9000:9600] = 0.3
        result = analyze_basic(SampleBuffer(y, sr))

        expected = np.array(result.normalized_amplitude)
        for i in range(1, expected.size - 1):
            expected[i] = expected[i] * 0.2 + (expected[i - 1] + expected[i + 1]) * 0.4
        np.testing.assert_allclose(result.amplitude, expected, atol=1e-12)

    def test_custom_window(self, sine_buffer):
        result = analyze_basic(sine_buffer, BasicConfig(window_seconds=0.05, hop_divisor=2))
        assert result.window_size == 2205
        assert result.hop_size == 1102

    def test_arrays_are_read_only(self, sine_buffer):
        result = analyze_basic(sine_buffer)
        with pytest.raises(ValueError):
            result.amplitude[0] = 0.0
