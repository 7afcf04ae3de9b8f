"""
Tests for core/dsp/fft.py and core/dsp/stft.py — radix-2 FFT and STFT magnitudes.

numpy.fft is used only as the reference to compare against.
"""

import numpy as np
import pytest

from core.dsp.fft import FFT, InvalidSizeError, get_fft, is_power_of_two, next_power_of_two
from core.dsp.stft import bin_frequencies, fft_size_for, stft_magnitudes

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _white_noise(n: int, seed: int = 42) -> np.ndarray:
    return np.random.default_rng(seed).standard_normal(n)


class TestPowerOfTwo:
    @pytest.mark.parametrize("n", [1, 2, 4, 1024, 65536])
    def test_powers(self, n):
        assert is_power_of_two(n)

    @pytest.mark.parametrize("n", [0, 3, 6, 1000, -4])
    def test_non_powers(self, n):
        assert not is_power_of_two(n)

    @pytest.mark.parametrize("n, expected", [(0, 1), (1, 1), (2, 2), (3, 4), (1024, 1024), (4410, 8192)])
    def test_next_power_of_two(self, n, expected):
        assert next_power_of_two(n) == expected


class TestFFTConstruction:
    @pytest.mark.parametrize("size", [0, 3, 1000, 1023])
    def test_rejects_non_power_of_two(self, size):
        with pytest.raises(InvalidSizeError, match="power of 2"):
            FFT(size)

    def test_invalid_size_is_value_error(self):
        with pytest.raises(ValueError):
            FFT(6)

    def test_bit_reversal_table_size_8(self):
        np.testing.assert_array_equal(FFT(8).bit_reversal_table, [0, 4, 2, 6, 1, 5, 3, 7])

    def test_bit_reversal_table_is_read_only(self):
        table = FFT(8).bit_reversal_table
        with pytest.raises(ValueError):
            table[0] = 1

    def test_get_fft_is_memoized(self):
        assert get_fft(512) is get_fft(512)


class TestFFTForward:
    @pytest.mark.parametrize("size", [1, 2, 8, 64, 2048])
    def test_matches_numpy(self, size):
        x = _white_noise(size)
        re, im = FFT(size).forward(x)
        ref = np.fft.fft(x)
        np.testing.assert_allclose(re, ref.real, atol=1e-9)
        np.testing.assert_allclose(im, ref.imag, atol=1e-9)

    def test_complex_input(self):
        x = _white_noise(32, seed=1)
        y = _white_noise(32, seed=2)
        re, im = FFT(32).forward(x, y)
        ref = np.fft.fft(x + 1j * y)
        np.testing.assert_allclose(re, ref.real, atol=1e-9)
        np.testing.assert_allclose(im, ref.imag, atol=1e-9)

    def test_impulse_is_flat(self):
        x = np.zeros(16)
        x[0] = 1.0
        re, im = FFT(16).forward(x)
        np.testing.assert_allclose(re, 1.0)
        np.testing.assert_allclose(im, 0.0, atol=1e-15)

    def test_short_input_is_zero_padded(self):
        x = _white_noise(5)
        re, im = FFT(8).forward(x)
        ref = np.fft.fft(x, 8)
        np.testing.assert_allclose(re + 1j * im, ref, atol=1e-9)

    def test_long_input_raises(self):
        with pytest.raises(ValueError, match="exceeds"):
            FFT(8).forward(np.zeros(9))

    def test_batched_frames(self):
        frames = _white_noise(4 * 64).reshape(4, 64)
        re, im = FFT(64).forward(frames)
        ref = np.fft.fft(frames, axis=1)
        assert re.shape == (4, 64)
        np.testing.assert_allclose(re + 1j * im, ref, atol=1e-9)

    def test_parseval(self):
        """Σ|x|² == Σ|X|² / N."""
        x = _white_noise(256)
        re, im = FFT(256).forward(x)
        assert np.sum(x * x) == pytest.approx(np.sum(re * re + im * im) / 256)


class TestSpectra:
    def test_magnitude_spectrum_is_one_sided(self):
        x = _white_noise(128)
        mags = FFT(128).magnitude_spectrum(x)
        assert mags.shape == (64,)
        np.testing.assert_allclose(mags, np.abs(np.fft.fft(x))[:64], atol=1e-9)

    def test_power_is_magnitude_squared(self):
        x = _white_noise(64)
        fft = FFT(64)
        np.testing.assert_allclose(fft.power_spectrum(x), fft.magnitude_spectrum(x) ** 2, atol=1e-9)

    def test_sine_peaks_at_its_bin(self):
        n, sr = 1024, 1024
        x = np.sin(2 * np.pi * 50 * np.arange(n) / sr)
        assert int(np.argmax(FFT(n).magnitude_spectrum(x))) == 50


class TestStft:
    def test_fft_size_for(self):
        assert fft_size_for(2048) == 2048
        assert fft_size_for(4410) == 8192

    def test_bin_frequencies(self):
        f = bin_frequencies(2048, 44100)
        assert f.shape == (1024,)
        assert f[0] == 0.0
        assert f[1] == pytest.approx(44100 / 2048)

    def test_shape(self):
        frames = _white_noise(10 * 1000).reshape(10, 1000)
        assert stft_magnitudes(frames, "hann").shape == (10, 512)

    def test_empty_frames(self):
        assert stft_magnitudes(np.zeros((0, 2048))).shape == (0, 1024)

    def test_matches_windowed_numpy(self):
        frames = _white_noise(3 * 256).reshape(3, 256)
        window = np.hanning(256)
        ref = np.abs(np.fft.rfft(frames * window, axis=1))[:, :128]
        np.testing.assert_allclose(stft_magnitudes(frames, "hann"), ref, atol=1e-9)

    def test_blocks_do_not_change_result(self):
        """More frames than one transform block still match frame-by-frame results."""
        frames = _white_noise(600 * 64).reshape(600, 64)
        batched = stft_magnitudes(frames, "hamming")
        single = np.vstack([stft_magnitudes(f[None, :], "hamming") for f in frames[[0, 255, 256, 599]]])
        np.testing.assert_allclose(batched[[0, 255, 256, 599]], single, atol=1e-12)
