"""
ingestion/audio_loader.py — File I/O boundary for audio loading.

This is the ONLY module in the analysis pipeline that reads audio files from
disk. Everything downstream (core/analysis/*) takes a SampleBuffer built from
the decoded channels, never a file path.

Usage:
    from ingestion.audio_loader import load_audio
    decoded = load_audio("/path/to/track.wav", duration=30.0)
    buffer = SampleBuffer.from_decoded(decoded)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np

from core.analysis.types import readonly

# Supported audio file extensions (must be loadable by librosa / soundfile)
AUDIO_EXTENSIONS: frozenset[str] = frozenset(
    {".mp3", ".wav", ".flac", ".aiff", ".aif", ".ogg", ".m4a", ".opus"}
)


@dataclass(frozen=True, eq=False)
class LoadedAudio:
    """Decoded audio with one row per channel.

    Satisfies the DecodedAudio protocol used by SampleBuffer.from_decoded.

    Attributes:
        channels: (n_channels, n_samples) float32 samples in [-1, 1].
        sample_rate: Sample rate in Hz.
        path: File the audio was decoded from, if any.
    """

    channels: np.ndarray
    sample_rate: int
    path: Path | None = None

    def __post_init__(self) -> None:
        channels = np.asarray(self.channels, dtype=np.float32)
        if channels.ndim == 1:
            channels = channels[None, :]
        if channels.ndim != 2:
            raise ValueError(f"channels must be 1-D or (C, N), got shape {channels.shape}")
        object.__setattr__(self, "channels", readonly(channels, dtype=np.float32))

    @property
    def number_of_channels(self) -> int:
        return int(self.channels.shape[0])

    @property
    def length(self) -> int:
        """Samples per channel."""
        return int(self.channels.shape[1])

    @property
    def duration(self) -> float:
        return self.length / self.sample_rate if self.sample_rate > 0 else 0.0

    def get_channel_data(self, channel_index: int) -> np.ndarray:
        """Samples of one channel.

        Raises:
            IndexError: If the channel does not exist.
        """
        if not 0 <= channel_index < self.number_of_channels:
            raise IndexError(
                f"Channel {channel_index} out of range, audio has {self.number_of_channels}"
            )
        return self.channels[channel_index]


def load_audio(
    path: str | Path,
    *,
    duration: float | None = None,
    sr: int | None = None,
    librosa: Any = None,
) -> LoadedAudio:
    """Decode an audio file, keeping every channel.

    This is the I/O boundary — the only function in the analysis pipeline
    that touches audio files. All downstream functions operate on the
    returned channels.

    Args:
        path: Absolute or relative path to an audio file.
              Supported formats: mp3, wav, flac, aiff, ogg, m4a, opus.
        duration: Maximum seconds to load. None loads the entire file.
        sr: Target sample rate in Hz. None preserves the native rate.
        librosa: Injected librosa module. Pass a MagicMock in tests to avoid
                 loading the audio stack. None = import lazily.

    Returns:
        LoadedAudio with channels shaped (C, N).

    Raises:
        FileNotFoundError: File does not exist at the given path.
        ValueError: File extension is not a supported audio format.
        RuntimeError: librosa/soundfile could not decode the file
                      (corrupted, truncated, DRM-protected, etc.).
    """
    if librosa is None:
        import librosa  # deferred to allow testing without audio backend

    file_path = Path(path)

    if not file_path.exists():
        raise FileNotFoundError(f"Audio file not found: {file_path}")

    if file_path.suffix.lower() not in AUDIO_EXTENSIONS:
        raise ValueError(
            f"Unsupported audio format {file_path.suffix!r}. "
            f"Supported: {sorted(AUDIO_EXTENSIONS)}"
        )

    try:
        y, loaded_sr = librosa.load(
            file_path,
            sr=sr,
            mono=False,
            duration=duration,
            offset=0.0,
        )
    except Exception as exc:
        raise RuntimeError(
            f"Failed to decode audio file {file_path.name!r}: {exc}"
        ) from exc

    return LoadedAudio(channels=y, sample_rate=int(loaded_sr), path=file_path)
