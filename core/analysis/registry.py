"""
core/analysis/registry.py — Closed dispatch from AnalysisKind to analyzer.

String tags are converted to AnalysisKind exactly once, at the boundary
(parse_kind). Everything downstream dispatches on the enum, so an unknown tag
can only fail there.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from core.analysis.basic import analyze_basic
from core.analysis.beats import analyze_beats
from core.analysis.chroma import analyze_chroma
from core.analysis.frequency import analyze_frequency
from core.analysis.spectral import analyze_spectral
from core.analysis.spectrogram import analyze_spectrogram
from core.analysis.tempo import analyze_tempo
from core.analysis.types import AnalysisKind, AnalysisResult, SampleBuffer
from core.config import DEFAULT_CONFIG, AnalysisConfig

Analyzer = Callable[[SampleBuffer, Any], AnalysisResult]

ANALYZERS: Mapping[AnalysisKind, Analyzer] = MappingProxyType(
    {
        AnalysisKind.BASIC: analyze_basic,
        AnalysisKind.CHROMA: analyze_chroma,
        AnalysisKind.FREQUENCY: analyze_frequency,
        AnalysisKind.SPECTRAL: analyze_spectral,
        AnalysisKind.BEATS: analyze_beats,
        AnalysisKind.TEMPO: analyze_tempo,
        AnalysisKind.SPECTROGRAM: analyze_spectrogram,
    }
)


def parse_kind(value: str | AnalysisKind) -> AnalysisKind:
    """Convert a string tag such as ``"beats"`` to its AnalysisKind.

    Raises:
        ValueError: If the tag is not a known analysis kind.
    """
    if isinstance(value, AnalysisKind):
        return value
    try:
        return AnalysisKind(value.strip().lower())
    except ValueError:
        valid = [k.value for k in AnalysisKind]
        raise ValueError(f"Unknown analysis kind: {value!r}. Valid: {valid}") from None


def config_for(kind: AnalysisKind, config: AnalysisConfig = DEFAULT_CONFIG) -> Any:
    """The per-kind config section of an AnalysisConfig."""
    return getattr(config, kind.value)


def run_analysis(
    kind: AnalysisKind, buffer: SampleBuffer, config: AnalysisConfig = DEFAULT_CONFIG
) -> AnalysisResult:
    """Run the analyzer registered for ``kind`` on ``buffer``."""
    return ANALYZERS[kind](buffer, config_for(kind, config))
