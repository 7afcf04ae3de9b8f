"""
core/mesh/builders.py — Radial profile per analysis kind, then build_ring_mesh.

Every kind maps one of its feature sequences to values in [0, 1]:

    basic        amplitude                       per ring
    chroma       chroma (12 pitch classes)       per vertex, 12 segments
    frequency    band_energies / max             per vertex, wrapped to segments
    spectral     centroid / max                  per ring
    beats        energy / max                    per ring
    tempo        onset                           per ring
    spectrogram  log_spectrogram in dB, −80…0    per vertex, wrapped to segments

Inputs may be AnalysisResult objects or the plain dicts produced by
as_dict() (tagged with "type"). A missing or empty field raises
MissingInputError naming it.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

import numpy as np

from core.analysis.registry import parse_kind
from core.analysis.spectrogram import relative_db
from core.analysis.types import AnalysisKind, AnalysisResult, MissingInputError
from core.config import DEFAULT_MESH_PARAMS, MeshParams
from core.mesh.geometry import build_ring_mesh, wrap_columns
from core.mesh.types import MeshData

ProfileExtractor = Callable[[Any, MeshParams], np.ndarray]


def _field(result: Any, name: str, ndim: int = 1) -> np.ndarray:
    if isinstance(result, Mapping):
        raw = result.get(name)
    else:
        raw = getattr(result, name, None)
    if raw is None:
        raise MissingInputError(name)
    values = np.asarray(raw, dtype=np.float64)
    if values.ndim != ndim or values.shape[0] == 0:
        raise MissingInputError(name, f"expected a non-empty {ndim}-D sequence, got shape {values.shape}")
    return values


def _unit_max(values: np.ndarray) -> np.ndarray:
    peak = float(values.max())
    return values / peak if peak > 0 else np.zeros_like(values)


def kind_of(result: Any) -> AnalysisKind:
    """AnalysisKind of a result object or of an as_dict() record."""
    if isinstance(result, AnalysisResult):
        return result.kind
    if isinstance(result, Mapping):
        tag = result.get("type")
        if tag is None:
            raise MissingInputError("type")
        return parse_kind(tag)
    raise TypeError(f"Expected an AnalysisResult or a mapping, got {type(result).__name__}")


# ---------------------------------------------------------------------------
# Per-kind profiles
# ---------------------------------------------------------------------------


def basic_profile(result: Any, params: MeshParams) -> np.ndarray:
    return _field(result, "amplitude")


def chroma_profile(result: Any, params: MeshParams) -> np.ndarray:
    return _field(result, "chroma", ndim=2)


def frequency_profile(result: Any, params: MeshParams) -> np.ndarray:
    return wrap_columns(_unit_max(_field(result, "band_energies", ndim=2)), params.segments)


def spectral_profile(result: Any, params: MeshParams) -> np.ndarray:
    return _unit_max(_field(result, "centroid"))


def beats_profile(result: Any, params: MeshParams) -> np.ndarray:
    return _unit_max(_field(result, "energy"))


def tempo_profile(result: Any, params: MeshParams) -> np.ndarray:
    return _field(result, "onset")


def spectrogram_profile(result: Any, params: MeshParams) -> np.ndarray:
    db = relative_db(_field(result, "log_spectrogram", ndim=2))
    return wrap_columns((db + 80.0) / 80.0, params.segments)


PROFILE_EXTRACTORS: Mapping[AnalysisKind, ProfileExtractor] = MappingProxyType(
    {
        AnalysisKind.BASIC: basic_profile,
        AnalysisKind.CHROMA: chroma_profile,
        AnalysisKind.FREQUENCY: frequency_profile,
        AnalysisKind.SPECTRAL: spectral_profile,
        AnalysisKind.BEATS: beats_profile,
        AnalysisKind.TEMPO: tempo_profile,
        AnalysisKind.SPECTROGRAM: spectrogram_profile,
    }
)


def build_mesh(result: Any, params: MeshParams = DEFAULT_MESH_PARAMS) -> MeshData:
    """Ring mesh for an analysis result (object or as_dict() record).

    Raises:
        MissingInputError: If the result lacks the field its kind is built from.
        MeshValidationError: If too few frames remain to form two rings.
    """
    kind = kind_of(result)
    profile = PROFILE_EXTRACTORS[kind](result, params)
    return build_ring_mesh(profile, params)
