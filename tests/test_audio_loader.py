"""
Tests for ingestion/audio_loader.py — file I/O boundary.

librosa is injected as a MagicMock so no real audio files or audio backend
are needed.
"""

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from core.analysis import SampleBuffer
from ingestion.audio_loader import AUDIO_EXTENSIONS, LoadedAudio, load_audio

# ---------------------------------------------------------------------------
# Mock helper
# ---------------------------------------------------------------------------


def _make_mock_librosa(sr: int = 44100, channels: int = 2, n_samples: int = 44100) -> MagicMock:
    """Return a mock librosa module that simulates a successful load."""
    mock = MagicMock()
    if channels == 1:
        y = np.full(n_samples, 0.1, dtype=np.float32)
    else:
        y = np.stack([np.full(n_samples, 0.1 * (c + 1), dtype=np.float32) for c in range(channels)])
    mock.load.return_value = (y, sr)
    return mock


def _audio_file(tmp_path, name: str = "track.wav"):
    path = tmp_path / name
    path.write_bytes(b"fake audio")
    return path


# ---------------------------------------------------------------------------
# Error conditions
# ---------------------------------------------------------------------------


class TestLoadAudioErrors:
    def test_raises_file_not_found(self, tmp_path):
        """Non-existent file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Audio file not found"):
            load_audio(tmp_path / "missing.wav", librosa=_make_mock_librosa())

    def test_raises_value_error_for_unsupported_extension(self, tmp_path):
        doc = tmp_path / "notes.pdf"
        doc.write_bytes(b"not audio")
        with pytest.raises(ValueError, match="Unsupported audio format"):
            load_audio(doc, librosa=_make_mock_librosa())

    def test_raises_runtime_error_on_librosa_failure(self, tmp_path):
        """librosa.load() raising an exception → RuntimeError."""
        mock_librosa = _make_mock_librosa()
        mock_librosa.load.side_effect = Exception("decode error")
        with pytest.raises(RuntimeError, match="Failed to decode audio file") as exc:
            load_audio(_audio_file(tmp_path, "corrupt.mp3"), librosa=mock_librosa)
        assert isinstance(exc.value.__cause__, Exception)

    def test_lazy_import_uses_installed_module(self, tmp_path):
        """Without injection, the module found under sys.modules['librosa'] is used."""
        mock_librosa = _make_mock_librosa()
        with patch.dict("sys.modules", {"librosa": mock_librosa}):
            load_audio(_audio_file(tmp_path))
        mock_librosa.load.assert_called_once()


# ---------------------------------------------------------------------------
# Successful loading
# ---------------------------------------------------------------------------


class TestLoadAudioSuccess:
    def test_keeps_every_channel(self, tmp_path):
        audio = load_audio(_audio_file(tmp_path), librosa=_make_mock_librosa(channels=2))
        assert audio.number_of_channels == 2
        assert audio.length == 44100
        assert audio.sample_rate == 44100
        assert audio.duration == pytest.approx(1.0)

    def test_mono_promoted_to_one_channel(self, tmp_path):
        audio = load_audio(_audio_file(tmp_path), librosa=_make_mock_librosa(channels=1))
        assert audio.channels.shape == (1, 44100)

    def test_load_arguments(self, tmp_path):
        """Loads without downmixing, from offset 0, honoring sr and duration."""
        path = _audio_file(tmp_path)
        mock_librosa = _make_mock_librosa()
        load_audio(path, duration=30.0, sr=22050, librosa=mock_librosa)
        mock_librosa.load.assert_called_once_with(
            path, sr=22050, mono=False, duration=30.0, offset=0.0
        )

    def test_records_path(self, tmp_path):
        path = _audio_file(tmp_path, "Track.FLAC")
        audio = load_audio(str(path), librosa=_make_mock_librosa())
        assert audio.path == path

    @pytest.mark.parametrize("ext", sorted(AUDIO_EXTENSIONS))
    def test_supported_extensions(self, tmp_path, ext):
        audio = load_audio(_audio_file(tmp_path, f"a{ext}"), librosa=_make_mock_librosa())
        assert audio.number_of_channels == 2

    def test_feeds_sample_buffer(self, tmp_path):
        """Channel 0 of the loaded audio becomes the analysis buffer."""
        audio = load_audio(_audio_file(tmp_path), librosa=_make_mock_librosa(sr=22050))
        buf = SampleBuffer.from_decoded(audio)
        assert buf.sample_rate == 22050
        np.testing.assert_allclose(buf.samples, 0.1, atol=1e-7)


class TestLoadedAudio:
    def test_get_channel_data(self):
        audio = LoadedAudio(np.array([[0.0, 0.5], [1.0, -1.0]]), 8000)
        np.testing.assert_array_equal(audio.get_channel_data(1), [1.0, -1.0])

    def test_channel_out_of_range(self):
        audio = LoadedAudio(np.zeros(4), 8000)
        with pytest.raises(IndexError, match="out of range"):
            audio.get_channel_data(1)
        with pytest.raises(IndexError):
            audio.get_channel_data(-1)

    def test_rejects_3d(self):
        with pytest.raises(ValueError, match="channels must be"):
            LoadedAudio(np.zeros((1, 2, 3)), 8000)

    def test_channels_read_only(self):
        audio = LoadedAudio(np.zeros((2, 4)), 8000)
        assert audio.channels.dtype == np.float32
        with pytest.raises(ValueError):
            audio.channels[0, 0] = 1.0
