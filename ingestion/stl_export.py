"""
ingestion/stl_export.py — Write analysis meshes to ASCII STL files.

This module is the file-output boundary of the mesh pipeline:
    AnalysisResult → build_mesh (core/mesh/) → mesh_to_ascii_stl → file

File naming:
    <file_stem>_<kind>_3d_model.stl, solid name "<kind>_AudioMesh".

Usage:
    from ingestion.stl_export import export_result_stl
    path = export_result_stl(result, "/tmp/stl", file_stem="track")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from core.analysis.types import AnalysisKind
from core.config import DEFAULT_MESH_PARAMS, MeshParams
from core.mesh.builders import build_mesh, kind_of
from core.mesh.stl import mesh_to_ascii_stl
from core.mesh.types import MeshData, MeshValidationError, validate_mesh_data
from infrastructure.metrics import record_stl_export

logger = logging.getLogger(__name__)

DEFAULT_FILE_STEM: str = "audio"


def stl_filename(file_stem: str, kind: AnalysisKind | str) -> str:
    tag = kind.value if isinstance(kind, AnalysisKind) else kind
    return f"{file_stem or DEFAULT_FILE_STEM}_{tag}_3d_model.stl"


def validate_mesh_for_export(mesh: MeshData | None) -> bool:
    """True when ``mesh`` has vertices, at least one face and passes validation."""
    if mesh is None or mesh.n_vertices == 0 or mesh.n_faces < 1:
        return False
    try:
        validate_mesh_data(mesh)
    except MeshValidationError as exc:
        logger.debug("Mesh not exportable: %s", exc)
        return False
    return True


def mesh_stats(mesh: MeshData | None) -> dict[str, Any]:
    """Vertex/triangle counts and bounds, or {"error": "Invalid mesh"}."""
    if mesh is None or not validate_mesh_for_export(mesh):
        return {"error": "Invalid mesh"}
    lo, hi = mesh.bounds()
    return {
        "vertex_count": mesh.n_vertices,
        "triangle_count": mesh.n_faces,
        "has_colors": mesh.colors is not None,
        "bounds_min": list(lo),
        "bounds_max": list(hi),
    }


def export_stl(
    mesh: MeshData,
    output_dir: str | Path,
    file_stem: str = DEFAULT_FILE_STEM,
    kind: AnalysisKind | str = "mesh",
) -> Path:
    """Write ``mesh`` as ASCII STL into ``output_dir``.

    Args:
        mesh: Mesh to export.
        output_dir: Directory to write into; created if missing.
        file_stem: Base name, usually the audio file's stem.
        kind: Analysis kind tag used in the file and solid names.

    Returns:
        Path of the written file.

    Raises:
        MeshValidationError: If the mesh has no faces or fails validation.
    """
    if not validate_mesh_for_export(mesh):
        validate_mesh_data(mesh)
        raise MeshValidationError("Mesh has no faces to export")

    tag = kind.value if isinstance(kind, AnalysisKind) else kind
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / stl_filename(file_stem, tag)
    path.write_text(mesh_to_ascii_stl(mesh, name=f"{tag}_AudioMesh"), encoding="utf-8")

    record_stl_export(tag)
    logger.info("STL export: %s (%d facets)", path, mesh.n_faces)
    return path


def export_result_stl(
    result: Any,
    output_dir: str | Path,
    file_stem: str = DEFAULT_FILE_STEM,
    params: MeshParams = DEFAULT_MESH_PARAMS,
) -> Path:
    """Build the ring mesh for an analysis result and export it.

    Raises:
        MissingInputError: If the result lacks the field its mesh is built from.
        MeshValidationError: If the mesh cannot be built or exported.
    """
    kind = kind_of(result)
    return export_stl(build_mesh(result, params), output_dir, file_stem, kind)
