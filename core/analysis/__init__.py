"""
core/analysis — Pure analyzers over a SampleBuffer.

Public API:
    SampleBuffer(samples, sample_rate)        → validated mono input
    analyze_basic / analyze_chroma / analyze_frequency / analyze_spectral
    analyze_beats / analyze_tempo / analyze_spectrogram
                                              → frozen AnalysisResult subclasses
    ANALYZERS / parse_kind / run_analysis     → closed dispatch on AnalysisKind

Analyzers hold no state between calls; caching and failure isolation live in
ingestion.analysis_engine.
"""

from core.analysis.basic import analyze_basic, detect_silence
from core.analysis.beats import analyze_beats
from core.analysis.chroma import analyze_chroma, detect_key_changes
from core.analysis.frequency import analyze_frequency, detect_frequency_events, frequency_evolution
from core.analysis.registry import ANALYZERS, parse_kind, run_analysis
from core.analysis.spectral import analyze_spectral, detect_spectral_textures
from core.analysis.spectrogram import analyze_spectrogram, spectrogram_to_rgb
from core.analysis.tempo import analyze_tempo
from core.analysis.types import (
    AnalysisKind,
    AnalysisResult,
    BasicResult,
    BeatResult,
    ChromaResult,
    DecodedAudio,
    FrequencyResult,
    MissingInputError,
    SampleBuffer,
    SpectralResult,
    SpectrogramResult,
    TempoResult,
)

__all__ = [
    # Input & results
    "SampleBuffer",
    "DecodedAudio",
    "MissingInputError",
    "AnalysisKind",
    "AnalysisResult",
    "BasicResult",
    "ChromaResult",
    "FrequencyResult",
    "SpectralResult",
    "BeatResult",
    "TempoResult",
    "SpectrogramResult",
    # Analyzers
    "analyze_basic",
    "analyze_chroma",
    "analyze_frequency",
    "analyze_spectral",
    "analyze_beats",
    "analyze_tempo",
    "analyze_spectrogram",
    # Derived views
    "detect_silence",
    "detect_key_changes",
    "detect_frequency_events",
    "frequency_evolution",
    "detect_spectral_textures",
    "spectrogram_to_rgb",
    # Dispatch
    "ANALYZERS",
    "parse_kind",
    "run_analysis",
]
