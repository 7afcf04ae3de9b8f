"""
core/mesh — Ring meshes from analysis results, and ASCII STL text.

Public API:
    build_mesh(result, params)        → MeshData for any analysis kind
    build_ring_mesh(profile, params)  → MeshData from a raw radial profile
    validate_mesh_data(mesh)          → raises MeshValidationError
    mesh_to_ascii_stl(mesh, name)     → str
    parse_ascii_stl(text)             → StlSolid

Writing files is not done here; see ingestion.stl_export.
"""

from core.config import DEFAULT_MESH_PARAMS, MeshParams
from core.mesh.builders import PROFILE_EXTRACTORS, build_mesh, kind_of
from core.mesh.geometry import build_ring_mesh
from core.mesh.stl import StlSolid, facet_normals, mesh_to_ascii_stl, parse_ascii_stl
from core.mesh.types import MeshData, MeshValidationError, validate_mesh_data

__all__ = [
    # Types
    "MeshData",
    "MeshParams",
    "MeshValidationError",
    "DEFAULT_MESH_PARAMS",
    "validate_mesh_data",
    # Building
    "build_mesh",
    "build_ring_mesh",
    "kind_of",
    "PROFILE_EXTRACTORS",
    # STL
    "StlSolid",
    "facet_normals",
    "mesh_to_ascii_stl",
    "parse_ascii_stl",
]
