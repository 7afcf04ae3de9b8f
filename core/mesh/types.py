"""
core/mesh/types.py — Indexed triangle mesh value type and its validation.

MeshData is a plain indexed mesh: vertex positions, triangle indices into
them and optional per-vertex RGB colours in [0, 1]. It carries no material or
scene state; consumers (STL export, viewers) only need these arrays.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from core.analysis.types import readonly


class MeshValidationError(ValueError):
    """Mesh arrays are malformed (empty, wrong shape, bad indices, NaN/inf)."""


@dataclass(frozen=True, eq=False)
class MeshData:
    """Indexed triangle mesh.

    Attributes:
        vertices: (n, 3) float64 positions.
        faces: (m, 3) int64 vertex indices, counter-clockwise seen from outside.
        colors: (n, 3) float64 RGB in [0, 1], or None.
    """

    vertices: np.ndarray
    faces: np.ndarray
    colors: np.ndarray | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "vertices", readonly(self.vertices))
        object.__setattr__(self, "faces", readonly(self.faces, dtype=np.int64))
        if self.colors is not None:
            object.__setattr__(self, "colors", readonly(self.colors))

    @property
    def n_vertices(self) -> int:
        return int(self.vertices.shape[0]) if self.vertices.ndim == 2 else 0

    @property
    def n_faces(self) -> int:
        return int(self.faces.shape[0]) if self.faces.ndim == 2 else 0

    def triangles(self) -> np.ndarray:
        """(m, 3, 3) corner positions of every face."""
        return self.vertices[self.faces]

    def bounds(self) -> tuple[tuple[float, float, float], tuple[float, float, float]]:
        """Axis-aligned (min, max) corners."""
        lo = self.vertices.min(axis=0)
        hi = self.vertices.max(axis=0)
        return (
            (float(lo[0]), float(lo[1]), float(lo[2])),
            (float(hi[0]), float(hi[1]), float(hi[2])),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "vertices": self.vertices.tolist(),
            "faces": self.faces.tolist(),
            "colors": None if self.colors is None else self.colors.tolist(),
        }


def validate_mesh_data(mesh: MeshData) -> MeshData:
    """Check shapes, index range and finiteness; return the mesh unchanged.

    Raises:
        MeshValidationError: On the first problem found.
    """
    vertices, faces, colors = mesh.vertices, mesh.faces, mesh.colors
    if vertices.size == 0:
        raise MeshValidationError("Vertices array is empty")
    if vertices.ndim != 2 or vertices.shape[1] != 3:
        raise MeshValidationError(f"Vertices must have shape (n, 3), got {vertices.shape}")
    if faces.size and (faces.ndim != 2 or faces.shape[1] != 3):
        raise MeshValidationError(f"Faces must be triangles with shape (m, 3), got {faces.shape}")
    if faces.size and (faces.min() < 0 or faces.max() >= vertices.shape[0]):
        raise MeshValidationError(
            f"Face index out of range [0, {vertices.shape[0]}): "
            f"min {int(faces.min())}, max {int(faces.max())}"
        )
    if colors is not None and colors.shape != vertices.shape:
        raise MeshValidationError(
            f"Colors shape {colors.shape} must match vertices shape {vertices.shape}"
        )
    bad = np.argwhere(~np.isfinite(vertices))
    if bad.size:
        row, col = (int(v) for v in bad[0])
        raise MeshValidationError(f"Invalid vertex value at [{row}, {col}]: {vertices[row, col]}")
    return mesh
