"""
Configuration dataclasses for the analysis and mesh pipelines.

These immutable config objects decouple parameter passing from analyzer
signatures, so a whole analysis run can be described by one value and reused
across buffers. Every default below is the policy value used by the analyzers
when no config is supplied.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# Window names accepted by core.dsp.windows.create_window.
# Kept here so core/config.py has no import-time dependency on numpy.
VALID_WINDOWS: frozenset[str] = frozenset(
    {"rectangular", "hann", "hanning", "hamming", "blackman", "kaiser", "tukey"}
)

VALID_PALETTES: frozenset[str] = frozenset({"spectrum", "fire", "ocean", "viridis", "grey"})


def _check_positive(name: str, value: float) -> None:
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")


def _check_fraction(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be in [0, 1], got {value}")


def _check_window(window_size: int, hop_size: int, window_type: str) -> None:
    _check_positive("window_size", window_size)
    _check_positive("hop_size", hop_size)
    if window_type.lower() not in VALID_WINDOWS:
        raise ValueError(
            f"Unknown window_type {window_type!r}, valid options: {sorted(VALID_WINDOWS)}"
        )


def _check_bpm_range(min_bpm: float, max_bpm: float) -> None:
    _check_positive("min_bpm", min_bpm)
    if max_bpm <= min_bpm:
        raise ValueError(f"max_bpm ({max_bpm}) must be greater than min_bpm ({min_bpm})")


@dataclass(frozen=True)
class BasicConfig:
    """
    Amplitude envelope analysis.

    Attributes:
        window_seconds: Frame length in seconds (100 ms).
        hop_divisor: hop = window // hop_divisor (4 → 75% overlap).
        smoothing_factor: Weight of the neighbour average in the one-pass blend.
        silence_threshold: Normalized amplitude below which a frame is silent.
    """

    window_seconds: float = 0.1
    hop_divisor: int = 4
    smoothing_factor: float = 0.8
    silence_threshold: float = 0.01

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        _check_positive("window_seconds", self.window_seconds)
        _check_positive("hop_divisor", self.hop_divisor)
        _check_fraction("smoothing_factor", self.smoothing_factor)
        _check_fraction("silence_threshold", self.silence_threshold)


@dataclass(frozen=True)
class ChromaConfig:
    """
    Pitch-class (chroma) analysis.

    Attributes:
        window_size / hop_size: Frame length and stride in samples.
        window_type: Taper applied before the FFT.
        min_frequency / max_frequency: Bins outside this range are ignored.
        reference_frequency: Frequency of MIDI note 69 (A4).
        key_change_window: Frames per averaging window for key-change search.
        key_change_threshold: Cosine similarity below which a change is reported.
    """

    window_size: int = 2048
    hop_size: int = 1024
    window_type: str = "hann"
    min_frequency: float = 80.0
    max_frequency: float = 2000.0
    reference_frequency: float = 440.0
    key_change_window: int = 8
    key_change_threshold: float = 0.7

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        _check_window(self.window_size, self.hop_size, self.window_type)
        _check_positive("min_frequency", self.min_frequency)
        if self.max_frequency <= self.min_frequency:
            raise ValueError(
                f"max_frequency ({self.max_frequency}) must exceed "
                f"min_frequency ({self.min_frequency})"
            )
        _check_positive("reference_frequency", self.reference_frequency)
        _check_positive("key_change_window", self.key_change_window)
        _check_fraction("key_change_threshold", self.key_change_threshold)


@dataclass(frozen=True)
class FrequencyConfig:
    """
    Five-band energy analysis.

    Attributes:
        peak_neighborhood: Half-width (frames) of the local-max search for peaks.
        peak_ratio: A peak must exceed this fraction of its local maximum.
        event_threshold: Std multiplier above the band mean for energy events.
        evolution_window: Moving-average length used by frequency_evolution.
    """

    window_size: int = 2048
    hop_size: int = 1024
    window_type: str = "hann"
    peak_neighborhood: int = 5
    peak_ratio: float = 0.8
    event_threshold: float = 1.5
    evolution_window: int = 5

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        _check_window(self.window_size, self.hop_size, self.window_type)
        _check_positive("peak_neighborhood", self.peak_neighborhood)
        _check_fraction("peak_ratio", self.peak_ratio)
        _check_positive("event_threshold", self.event_threshold)
        _check_positive("evolution_window", self.evolution_window)


@dataclass(frozen=True)
class SpectralConfig:
    """Spectral shape statistics."""

    window_size: int = 2048
    hop_size: int = 1024
    window_type: str = "hann"
    rolloff_percent: float = 0.85
    event_std_factor: float = 2.0
    evolution_window: int = 20
    texture_segment_seconds: float = 2.0

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        _check_window(self.window_size, self.hop_size, self.window_type)
        if not 0.0 < self.rolloff_percent < 1.0:
            raise ValueError(f"rolloff_percent must be in (0, 1), got {self.rolloff_percent}")
        _check_positive("event_std_factor", self.event_std_factor)
        _check_positive("evolution_window", self.evolution_window)
        _check_positive("texture_segment_seconds", self.texture_segment_seconds)


@dataclass(frozen=True)
class BeatConfig:
    """
    Energy + onset beat detector.

    Attributes:
        window_seconds: Frame length in seconds (46 ms).
        energy_weight / onset_weight: Mix of RMS energy and spectral flux.
        base_threshold: Floor of the adaptive threshold.
        threshold_multiplier: Scale applied to the local average.
        local_window_seconds: Half-width of the local-average window.
        min_interval_seconds: Minimum gap between accepted beats.
        min_bpm / max_bpm: Tempo folding range.
        tempo_change_window: Beats per window when scanning for tempo changes.
        tempo_change_bpm: Minimum BPM difference reported as a change.
    """

    window_seconds: float = 0.046
    hop_divisor: int = 4
    energy_weight: float = 0.7
    onset_weight: float = 0.3
    base_threshold: float = 0.3
    threshold_multiplier: float = 1.3
    local_window_seconds: float = 1.0
    min_interval_seconds: float = 0.3
    min_bpm: float = 60.0
    max_bpm: float = 200.0
    tempo_change_window: int = 8
    tempo_change_bpm: float = 10.0

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        _check_positive("window_seconds", self.window_seconds)
        _check_positive("hop_divisor", self.hop_divisor)
        _check_fraction("energy_weight", self.energy_weight)
        _check_fraction("onset_weight", self.onset_weight)
        _check_fraction("base_threshold", self.base_threshold)
        _check_positive("threshold_multiplier", self.threshold_multiplier)
        _check_positive("local_window_seconds", self.local_window_seconds)
        _check_positive("min_interval_seconds", self.min_interval_seconds)
        _check_bpm_range(self.min_bpm, self.max_bpm)
        _check_positive("tempo_change_window", self.tempo_change_window)
        _check_positive("tempo_change_bpm", self.tempo_change_bpm)


@dataclass(frozen=True)
class TempoConfig:
    """
    Onset-histogram tempo analysis.

    Attributes:
        full_flux_weight / high_flux_weight: Mix of full-band and HF flux.
        high_frequency_start: Fraction of the spectrum where HF flux begins.
        alternative_ratio: Minimum votes (relative to the winner) for an
            alternative tempo to be reported.
        segment_seconds: Segment length for tempo evolution.
        change_window: Beats per window for tempo-change scanning.
        change_bpm / change_ratio: A change is reported above either limit.
        max_pattern_length: Longest rhythm pattern searched.
    """

    window_seconds: float = 0.1
    hop_divisor: int = 4
    full_flux_weight: float = 0.7
    high_flux_weight: float = 0.3
    high_frequency_start: float = 0.3
    base_threshold: float = 0.3
    threshold_multiplier: float = 1.5
    local_window_seconds: float = 1.0
    min_interval_seconds: float = 0.2
    min_bpm: float = 60.0
    max_bpm: float = 200.0
    alternative_ratio: float = 0.3
    segment_seconds: float = 10.0
    change_window: int = 8
    change_bpm: float = 10.0
    change_ratio: float = 1.15
    max_pattern_length: int = 8

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        _check_positive("window_seconds", self.window_seconds)
        _check_positive("hop_divisor", self.hop_divisor)
        _check_fraction("full_flux_weight", self.full_flux_weight)
        _check_fraction("high_flux_weight", self.high_flux_weight)
        if not 0.0 <= self.high_frequency_start < 1.0:
            raise ValueError(
                f"high_frequency_start must be in [0, 1), got {self.high_frequency_start}"
            )
        _check_fraction("base_threshold", self.base_threshold)
        _check_positive("threshold_multiplier", self.threshold_multiplier)
        _check_positive("local_window_seconds", self.local_window_seconds)
        _check_positive("min_interval_seconds", self.min_interval_seconds)
        _check_bpm_range(self.min_bpm, self.max_bpm)
        _check_fraction("alternative_ratio", self.alternative_ratio)
        _check_positive("segment_seconds", self.segment_seconds)
        _check_positive("change_window", self.change_window)
        _check_positive("change_bpm", self.change_bpm)
        if self.change_ratio <= 1.0:
            raise ValueError(f"change_ratio must be greater than 1, got {self.change_ratio}")
        if self.max_pattern_length < 2:
            raise ValueError(
                f"max_pattern_length must be at least 2, got {self.max_pattern_length}"
            )


@dataclass(frozen=True)
class SpectrogramConfig:
    """Linear, log-frequency and mel spectrogram."""

    window_size: int = 1024
    hop_size: int = 256
    window_type: str = "hann"
    log_bins: int = 128
    mel_bins: int = 80
    min_log_frequency: float = 20.0
    db_floor: float = -80.0

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        _check_window(self.window_size, self.hop_size, self.window_type)
        _check_positive("log_bins", self.log_bins)
        _check_positive("mel_bins", self.mel_bins)
        _check_positive("min_log_frequency", self.min_log_frequency)
        if self.db_floor >= 0:
            raise ValueError(f"db_floor must be negative, got {self.db_floor}")


@dataclass(frozen=True)
class AnalysisConfig:
    """One config value per analysis kind."""

    basic: BasicConfig = field(default_factory=BasicConfig)
    chroma: ChromaConfig = field(default_factory=ChromaConfig)
    frequency: FrequencyConfig = field(default_factory=FrequencyConfig)
    spectral: SpectralConfig = field(default_factory=SpectralConfig)
    beats: BeatConfig = field(default_factory=BeatConfig)
    tempo: TempoConfig = field(default_factory=TempoConfig)
    spectrogram: SpectrogramConfig = field(default_factory=SpectrogramConfig)


@dataclass(frozen=True)
class MeshParams:
    """
    Ring-mesh geometry parameters.

    Attributes:
        base_radius: Radius of a ring whose profile value is 1.0.
        height_scale: Total height of the mesh along the Z axis.
        segments: Vertices per ring.
        rings: Maximum number of rings (profiles are resampled to this).
        amplitude_scale: Multiplier applied to profile values before mapping.
        palette: Vertex colour palette (see core.dsp.colormap.audio_color_palette).
    """

    base_radius: float = 2.0
    height_scale: float = 10.0
    segments: int = 32
    rings: int = 64
    amplitude_scale: float = 1.0
    palette: str = "viridis"

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        _check_positive("base_radius", self.base_radius)
        _check_positive("height_scale", self.height_scale)
        if self.segments < 3:
            raise ValueError(f"segments must be at least 3, got {self.segments}")
        if self.rings < 2:
            raise ValueError(f"rings must be at least 2, got {self.rings}")
        _check_positive("amplitude_scale", self.amplitude_scale)
        if self.palette not in VALID_PALETTES:
            raise ValueError(
                f"Unknown palette {self.palette!r}, valid options: {sorted(VALID_PALETTES)}"
            )


# Pre-defined configurations

DEFAULT_BASIC_CONFIG = BasicConfig()
DEFAULT_CHROMA_CONFIG = ChromaConfig()
DEFAULT_FREQUENCY_CONFIG = FrequencyConfig()
DEFAULT_SPECTRAL_CONFIG = SpectralConfig()
DEFAULT_BEAT_CONFIG = BeatConfig()
DEFAULT_TEMPO_CONFIG = TempoConfig()
DEFAULT_SPECTROGRAM_CONFIG = SpectrogramConfig()

DEFAULT_CONFIG = AnalysisConfig()
"""Default configuration for every analysis kind."""

DEFAULT_MESH_PARAMS = MeshParams()
"""Default ring-mesh geometry: radius 2, height 10, 32 × 64 vertices."""
