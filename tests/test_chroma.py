"""
Tests for core/analysis/chroma.py — pitch-class folding and key changes.
"""

import numpy as np
import pytest

from core.analysis.chroma import (
    analyze_chroma,
    chroma_stats,
    cosine_similarity,
    detect_key_changes,
    pitch_class_map,
)
from core.analysis.types import NOTE_NAMES, SampleBuffer
from core.config import ChromaConfig

SR = 44100


def _tone(freq: float, seconds: float = 1.0) -> np.ndarray:
    t = np.arange(int(SR * seconds)) / SR
    return 0.5 * np.sin(2 * np.pi * freq * t)


class TestPitchClassMap:
    def test_one_hot_rows(self):
        mapping = pitch_class_map(2048, SR, ChromaConfig())
        assert mapping.shape == (1024, 12)
        row_sums = mapping.sum(axis=1)
        assert set(np.unique(row_sums)) <= {0.0, 1.0}

    def test_range_limits(self):
        mapping = pitch_class_map(2048, SR, ChromaConfig())
        freqs = np.arange(1024) * SR / 2048
        assert not mapping[freqs < 80].any()
        assert not mapping[freqs > 2000].any()
        assert mapping[0].sum() == 0.0

    def test_a440_bin_maps_to_a(self):
        """Bin 20 (≈430.7 Hz) rounds to MIDI 69, pitch class 9."""
        mapping = pitch_class_map(2048, SR, ChromaConfig())
        assert int(np.argmax(mapping[20])) == 9


class TestCosineSimilarity:
    def test_identical(self):
        v = np.arange(12, dtype=np.float64)
        assert cosine_similarity(v, v) == pytest.approx(1.0)

    def test_zero_vectors(self):
        z = np.zeros(12)
        assert cosine_similarity(z, z) == 1.0
        assert cosine_similarity(z, np.ones(12)) == 0.0

    def test_orthogonal(self):
        a, b = np.zeros(12), np.zeros(12)
        a[0], b[1] = 1.0, 1.0
        assert cosine_similarity(a, b) == 0.0


class TestChromaStats:
    def test_dominant(self):
        chroma = np.zeros((4, 12))
        chroma[:, 4] = 1.0
        average, note, idx, strength = chroma_stats(chroma)
        assert note == "E"
        assert idx == 4
        assert strength == 1.0
        assert average.shape == (12,)

    def test_empty(self):
        average, note, idx, strength = chroma_stats(np.zeros((0, 12)))
        assert note is None
        assert idx is None
        assert strength == 0.0
        assert not average.any()


class TestDetectKeyChanges:
    def test_abrupt_change(self):
        chroma = np.zeros((32, 12))
        chroma[:16, 0] = 1.0
        chroma[16:, 7] = 1.0
        times = np.arange(32) * 0.1
        changes = detect_key_changes(chroma, times, window=8, threshold=0.7)
        assert changes
        frames = [c.frame for c in changes]
        assert 16 in frames
        change = next(c for c in changes if c.frame == 16)
        assert change.before_note == "C"
        assert change.after_note == "G"
        assert change.similarity == pytest.approx(0.0)

    def test_too_few_frames(self):
        assert detect_key_changes(np.ones((15, 12)), np.arange(15.0), window=8) == ()

    def test_change_at_trailing_boundary_not_reported(self):
        chroma = np.zeros((16, 12))
        chroma[:8, 0] = 1.0
        chroma[8:, 7] = 1.0
        assert detect_key_changes(chroma, np.arange(16) * 0.1, window=8) == ()

    def test_one_frame_past_boundary_reports_change(self):
        chroma = np.zeros((17, 12))
        chroma[:8, 0] = 1.0
        chroma[8:, 7] = 1.0
        changes = detect_key_changes(chroma, np.arange(17) * 0.1, window=8)
        assert [c.frame for c in changes] == [8]

    def test_stationary(self):
        chroma = np.tile(np.linspace(0, 1, 12), (40, 1))
        assert detect_key_changes(chroma, np.arange(40.0)) == ()


class TestAnalyzeChroma:
    def test_a440(self, sine_buffer):
        result = analyze_chroma(sine_buffer)
        assert result.dominant_note == "A"
        assert result.dominant_note_index == 9
        assert result.note_names == NOTE_NAMES
        assert result.chroma.shape == (result.n_frames, 12)
        assert result.n_frames == 42

    def test_a440_energy_in_pitch_class_a(self, sine_buffer):
        """Every frame of a pure A4 puts >= 90% of its chroma energy (sum of squares) in bin 9."""
        chroma = analyze_chroma(sine_buffer).chroma
        energy = chroma**2
        share = energy[:, 9] / energy.sum(axis=1)
        assert share.min() >= 0.9

    def test_frames_normalized(self, noise_buffer):
        result = analyze_chroma(noise_buffer)
        np.testing.assert_allclose(result.chroma.max(axis=1), 1.0)

    def test_stationary_tone_has_no_key_change(self, sine_buffer):
        assert analyze_chroma(sine_buffer).key_changes == ()

    def test_key_change_between_tones(self):
        y = np.concatenate([_tone(261.63, 2.0), _tone(392.0, 2.0)])
        result = analyze_chroma(SampleBuffer(y, SR))
        assert result.key_changes
        assert any(1.5 < c.time < 2.5 for c in result.key_changes)

    def test_silence(self, silent_buffer):
        result = analyze_chroma(silent_buffer)
        assert result.dominant_note is None
        assert not result.chroma.any()
        assert not np.isnan(result.chroma).any()

    def test_short_buffer(self, short_buffer):
        result = analyze_chroma(short_buffer)
        assert result.n_frames == 0
        assert result.chroma.shape == (0, 12)
