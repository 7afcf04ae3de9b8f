"""
Shared fixtures for the test suite.

Centralizes the synthetic signals every analyzer test uses, so individual
test files don't need to rebuild sines, click trains and silence.
"""

import numpy as np
import pytest

from core.analysis.types import SampleBuffer

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SR: int = 44100
"""Sample rate of every synthetic buffer."""


# ---------------------------------------------------------------------------
# Fake decoded audio
# ---------------------------------------------------------------------------


class FakeDecodedAudio:
    """Minimal object with the decoded-audio shape (no decoder involved)."""

    def __init__(self, channels: list[np.ndarray] | None, sample_rate: int | None = SR) -> None:
        self._channels = channels
        if sample_rate is not None:
            self.sample_rate = sample_rate
        self.duration = len(channels[0]) / sample_rate if channels and sample_rate else 0.0

    def get_channel_data(self, channel_index: int) -> np.ndarray | None:
        if not self._channels:
            return None
        return self._channels[channel_index]


# ---------------------------------------------------------------------------
# Signal fixtures
# ---------------------------------------------------------------------------


def make_sine(freq: float, duration: float = 1.0, sr: int = SR, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(int(sr * duration)) / sr
    return amplitude * np.sin(2 * np.pi * freq * t)


def make_click_train(bpm: float = 120.0, duration: float = 5.0, sr: int = SR) -> np.ndarray:
    y = np.zeros(int(sr * duration))
    y[:: int(round(sr * 60.0 / bpm))] = 1.0
    return y


@pytest.fixture
def silent_buffer() -> SampleBuffer:
    """One second of digital silence."""
    return SampleBuffer(np.zeros(SR), SR)


@pytest.fixture
def sine_buffer() -> SampleBuffer:
    """One second of A4 (440 Hz) at half scale."""
    return SampleBuffer(make_sine(440.0), SR)


@pytest.fixture
def click_buffer() -> SampleBuffer:
    """Five seconds of unit impulses every 0.5 s (120 BPM)."""
    return SampleBuffer(make_click_train(120.0, 5.0), SR)


@pytest.fixture
def noise_buffer() -> SampleBuffer:
    """One second of seeded white noise."""
    rng = np.random.default_rng(42)
    return SampleBuffer(rng.uniform(-0.5, 0.5, SR), SR)


@pytest.fixture
def short_buffer() -> SampleBuffer:
    """100 samples: shorter than every analyzer's window."""
    return SampleBuffer(np.full(100, 0.1), SR)
