"""
core/analysis/types.py — Input buffer, result records and event types.

All result types are frozen dataclasses: immutable value objects that are safe
to cache and to hand to several consumers at once. Feature sequences are
stored as read-only numpy arrays, index-aligned with ``time_stamps``.

Design:
    - AnalysisKind is a closed enum; the orchestration layer dispatches on it
      instead of on free-form strings.
    - Every result carries sample_rate, duration, window_size, hop_size and
      time_stamps so consumers never re-derive frame alignment.
    - as_dict() turns a result into plain Python data (lists, floats, dicts)
      tagged with a "type" key, for JSON output and mesh/UI consumers.
    - Results use eq=False: equality of array-valued records is identity.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, ClassVar, Protocol, runtime_checkable

import numpy as np

from core.dsp.stats import SummaryStatistics

NOTE_NAMES: tuple[str, ...] = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")

BAND_NAMES: tuple[str, ...] = ("bass", "low_mid", "mid", "high_mid", "treble")

# Hz boundaries for each band (both edges inclusive)
BAND_RANGES: dict[str, tuple[float, float]] = {
    "bass": (20.0, 250.0),
    "low_mid": (250.0, 500.0),
    "mid": (500.0, 2000.0),
    "high_mid": (2000.0, 4000.0),
    "treble": (4000.0, 16000.0),
}

SPECTRAL_FEATURES: tuple[str, ...] = (
    "centroid",
    "bandwidth",
    "rolloff",
    "flux",
    "flatness",
    "crest",
    "slope",
    "kurtosis",
    "skewness",
    "energy",
)


class AnalysisKind(str, Enum):
    """Closed set of analysis kinds (also the result ``type`` tag)."""

    BASIC = "basic"
    CHROMA = "chroma"
    FREQUENCY = "frequency"
    SPECTRAL = "spectral"
    BEATS = "beats"
    TEMPO = "tempo"
    SPECTROGRAM = "spectrogram"


class MissingInputError(ValueError):
    """A required input field is absent.

    Attributes:
        field: Name of the missing field (e.g. "channel_data", "amplitude").
    """

    def __init__(self, field: str, detail: str = "") -> None:
        self.field = field
        message = f"Missing required input: {field!r}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


def readonly(values: Any, dtype: Any = np.float64) -> np.ndarray:
    """Copy ``values`` into a new array and mark it read-only."""
    arr = np.array(values, dtype=dtype)
    arr.flags.writeable = False
    return arr


def _plain(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, np.generic):
        return value.item()
    if hasattr(value, "as_dict"):
        return value.as_dict()
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    return value


class _Record:
    """Mixin: as_dict() over dataclass fields."""

    def as_dict(self) -> dict[str, Any]:
        return {f.name: _plain(getattr(self, f.name)) for f in fields(self)}  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------


@runtime_checkable
class DecodedAudio(Protocol):
    """Anything that exposes decoded channels the way an audio decoder does."""

    sample_rate: int
    duration: float

    def get_channel_data(self, channel_index: int) -> np.ndarray: ...


@dataclass(frozen=True, eq=False)
class SampleBuffer:
    """Mono samples in [-1, 1] plus their sample rate.

    Identity matters: the result cache is keyed on the buffer object, so
    loading the same audio twice yields two independent caches.
    """

    samples: np.ndarray
    sample_rate: int

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        samples = np.asarray(self.samples, dtype=np.float64)
        if samples.ndim != 1:
            raise ValueError(f"samples must be 1-D, got shape {samples.shape}")
        object.__setattr__(self, "samples", readonly(samples))

    @property
    def n_samples(self) -> int:
        return int(self.samples.size)

    @property
    def duration(self) -> float:
        """Length in seconds (= n_samples / sample_rate)."""
        return self.n_samples / self.sample_rate

    @classmethod
    def from_decoded(cls, decoded: Any) -> SampleBuffer:
        """Build a buffer from channel 0 of a decoded audio object.

        Raises:
            MissingInputError: If the object has no channel data or no sample rate.
        """
        get_channel = getattr(decoded, "get_channel_data", None)
        if get_channel is None:
            raise MissingInputError("channel_data", "decoded audio has no get_channel_data()")
        sample_rate = getattr(decoded, "sample_rate", None)
        if sample_rate is None:
            raise MissingInputError("sample_rate")
        channel = get_channel(0)
        if channel is None:
            raise MissingInputError("channel_data", "channel 0 is empty")
        return cls(samples=np.asarray(channel, dtype=np.float64), sample_rate=int(sample_rate))


# ---------------------------------------------------------------------------
# Events and small records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BeatEvent(_Record):
    """A detected beat."""

    time: float
    """Seconds from the start of the buffer."""

    strength: float
    """RMS energy of the frame the beat was detected in."""


@dataclass(frozen=True)
class SilentRegion(_Record):
    """Contiguous run of frames below the silence threshold (inclusive)."""

    start: int
    end: int


@dataclass(frozen=True)
class TempoEstimate(_Record):
    """Headline tempo with its confidence and alternative readings."""

    bpm: float
    confidence: float
    alternative_bpm: tuple[float, ...]


@dataclass(frozen=True)
class TempoChange(_Record):
    """Local tempo differs between the windows before and after ``time``."""

    time: float
    before_tempo: float
    after_tempo: float
    change_amount: float
    change_ratio: float
    significance: float


@dataclass(frozen=True)
class KeyChange(_Record):
    """Low cosine similarity between adjacent chroma windows."""

    frame: int
    time: float
    similarity: float
    before_note: str
    after_note: str


@dataclass(frozen=True)
class BandDynamics(_Record):
    """Distribution of one band's energy over time."""

    max: float
    min: float
    mean: float
    rms: float
    dynamic_range_db: float
    std: float


@dataclass(frozen=True)
class BandBalance(_Record):
    """Relative and absolute band energy."""

    relative: dict[str, float]
    """Percentage of the summed band means, per band."""

    absolute: dict[str, float]
    """Mean energy per band."""

    bass_to_treble_ratio: float
    mid_dominance: float
    total_energy: float


@dataclass(frozen=True)
class BandPeak(_Record):
    index: int
    time: float
    value: float


@dataclass(frozen=True)
class BandShare(_Record):
    band: str
    percentage: float
    energy: float


@dataclass(frozen=True)
class FrequencyEvent(_Record):
    time: float
    band: str
    intensity: float
    relative_intensity: float


@dataclass(frozen=True)
class SpectralEvent(_Record):
    """A frame where one spectral feature peaks or jumps.

    ``event_type`` is "peak" (above mean + k·std and a local peak) or
    "change" (|Δ| above k·std). ``score`` is the z-score for peaks and the
    signed change for changes.
    """

    time: float
    feature: str
    value: float
    event_type: str
    score: float


@dataclass(frozen=True)
class SpectralTrend(_Record):
    time: float
    trend: float
    before_value: float
    after_value: float


@dataclass(frozen=True)
class SpectralProfile(_Record):
    character: str
    brightness: float
    complexity: float
    noisiness: float
    dynamism: float
    energy_level: float


@dataclass(frozen=True)
class SpectralTexture(_Record):
    start_time: float
    end_time: float
    centroid_variance: float
    bandwidth_variance: float
    flatness_average: float
    flux_average: float
    texture: str


@dataclass(frozen=True)
class BeatStatistics(_Record):
    beat_count: int
    tempo: float
    average_interval: float
    tempo_stability: float
    beats_per_second: float
    first_beat: float
    last_beat: float


@dataclass(frozen=True)
class TempoAlternative(_Record):
    tempo: int
    confidence: float
    relationship: str


@dataclass(frozen=True, eq=False)
class TempoHistogram(_Record):
    """BPM-vote histogram summary of the inter-beat intervals."""

    main_tempo: int
    tempo_confidence: float
    possible_tempos: tuple[TempoAlternative, ...]
    beat_intervals: np.ndarray
    average_interval: float
    tempo_variability: float
    votes: dict[int, float]

    @property
    def estimate(self) -> TempoEstimate:
        return TempoEstimate(
            bpm=float(self.main_tempo),
            confidence=self.tempo_confidence,
            alternative_bpm=tuple(float(t.tempo) for t in self.possible_tempos),
        )


@dataclass(frozen=True)
class TempoSegment(_Record):
    start_time: float
    end_time: float
    tempo: float
    beat_count: int
    confidence: float


@dataclass(frozen=True)
class RhythmPattern(_Record):
    pattern: tuple[float, ...]
    occurrences: int
    length: int


@dataclass(frozen=True)
class RhythmAnalysis(_Record):
    patterns: tuple[RhythmPattern, ...]
    complexity: float
    quantized_intervals: tuple[float, ...]
    average_interval: float


@dataclass(frozen=True)
class TempoProfile(_Record):
    main_tempo: int
    category: str
    stability: float
    confidence: float
    rhythmic_complexity: float
    has_tempo_changes: bool
    change_count: int
    beat_density: float
    rhythmic_regularity: float
    syncopation: float
    dominant_pattern: RhythmPattern | None


@dataclass(frozen=True)
class SpectrogramDimensions(_Record):
    width: int
    height: int
    time_resolution: float
    frequency_resolution: float


@dataclass(frozen=True)
class SpectrogramStatistics(_Record):
    """Level statistics in dB relative to the loudest bin."""

    dynamic_range: float
    mean_level: float
    median_level: float
    percentile_10: float
    percentile_90: float
    energy_distribution: dict[str, float]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class AnalysisResult(_Record):
    """Fields shared by every analysis result."""

    kind: ClassVar[AnalysisKind]

    sample_rate: int
    duration: float
    window_size: int
    hop_size: int
    time_stamps: np.ndarray

    @property
    def type(self) -> str:
        return self.kind.value

    @property
    def n_frames(self) -> int:
        return int(self.time_stamps.size)

    def as_dict(self) -> dict[str, Any]:
        return {"type": self.kind.value, **super().as_dict()}


@dataclass(frozen=True, eq=False)
class BasicResult(AnalysisResult):
    kind: ClassVar[AnalysisKind] = AnalysisKind.BASIC

    amplitude: np.ndarray
    """Normalized, smoothed RMS envelope."""

    normalized_amplitude: np.ndarray
    """RMS envelope divided by its maximum (before smoothing)."""

    rms: np.ndarray
    max_amplitude: float
    silent_regions: tuple[SilentRegion, ...]
    statistics: SummaryStatistics


@dataclass(frozen=True, eq=False)
class ChromaResult(AnalysisResult):
    kind: ClassVar[AnalysisKind] = AnalysisKind.CHROMA

    chroma: np.ndarray
    """(n_frames, 12) pitch-class vectors, each normalized by its own max."""

    note_names: tuple[str, ...]
    average_chroma: np.ndarray
    dominant_note: str | None
    dominant_note_index: int | None
    dominant_note_strength: float
    key_changes: tuple[KeyChange, ...]


@dataclass(frozen=True, eq=False)
class FrequencyResult(AnalysisResult):
    kind: ClassVar[AnalysisKind] = AnalysisKind.FREQUENCY

    band_names: tuple[str, ...]
    band_ranges: dict[str, tuple[float, float]]
    band_energies: np.ndarray
    """(n_frames, 5) mean magnitude per band, columns in band_names order."""

    dynamics: dict[str, BandDynamics]
    balance: BandBalance
    spectral_centroid: float
    peaks: dict[str, tuple[BandPeak, ...]]
    dominant_band: str | None
    energy_distribution: tuple[BandShare, ...]

    def band(self, name: str) -> np.ndarray:
        """Energy sequence of one band.

        Raises:
            ValueError: If ``name`` is not one of band_names.
        """
        if name not in self.band_names:
            raise ValueError(f"Unknown band: {name!r}. Valid: {list(self.band_names)}")
        return self.band_energies[:, self.band_names.index(name)]


@dataclass(frozen=True, eq=False)
class SpectralResult(AnalysisResult):
    kind: ClassVar[AnalysisKind] = AnalysisKind.SPECTRAL

    centroid: np.ndarray
    bandwidth: np.ndarray
    rolloff: np.ndarray
    flux: np.ndarray
    flatness: np.ndarray
    crest: np.ndarray
    slope: np.ndarray
    kurtosis: np.ndarray
    skewness: np.ndarray
    energy: np.ndarray
    statistics: dict[str, SummaryStatistics]
    events: tuple[SpectralEvent, ...]
    evolution: dict[str, tuple[SpectralTrend, ...]]
    profile: SpectralProfile

    def feature(self, name: str) -> np.ndarray:
        if name not in SPECTRAL_FEATURES:
            raise ValueError(f"Unknown spectral feature: {name!r}. Valid: {list(SPECTRAL_FEATURES)}")
        return getattr(self, name)


@dataclass(frozen=True, eq=False)
class BeatResult(AnalysisResult):
    kind: ClassVar[AnalysisKind] = AnalysisKind.BEATS

    beats: tuple[BeatEvent, ...]
    tempo: float
    energy: np.ndarray
    onset: np.ndarray
    average_beat_interval: float
    statistics: BeatStatistics | None
    tempo_changes: tuple[TempoChange, ...]

    @property
    def beat_times(self) -> np.ndarray:
        return np.array([b.time for b in self.beats], dtype=np.float64)


@dataclass(frozen=True, eq=False)
class TempoResult(AnalysisResult):
    kind: ClassVar[AnalysisKind] = AnalysisKind.TEMPO

    beat_times: np.ndarray
    tempo_analysis: TempoHistogram
    tempo_evolution: tuple[TempoSegment, ...]
    rhythm_patterns: RhythmAnalysis
    tempo_changes: tuple[TempoChange, ...]
    onset: np.ndarray
    profile: TempoProfile


@dataclass(frozen=True, eq=False)
class SpectrogramResult(AnalysisResult):
    kind: ClassVar[AnalysisKind] = AnalysisKind.SPECTROGRAM

    window_type: str
    magnitudes: np.ndarray
    """(n_frames, fft_size // 2) linear magnitudes."""

    frequencies: np.ndarray
    log_spectrogram: np.ndarray
    log_frequencies: np.ndarray
    mel_spectrogram: np.ndarray
    mel_frequencies: np.ndarray
    """Centre frequency (Hz) of each mel filter."""

    dimensions: SpectrogramDimensions
    statistics: SpectrogramStatistics
