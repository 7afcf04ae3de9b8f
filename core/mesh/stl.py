"""
core/mesh/stl.py — ASCII STL text for a MeshData, and parsing it back.

Format (one facet per face, coordinates with 6 decimals):

    solid <name>
      facet normal nx ny nz
        outer loop
          vertex x y z
          vertex x y z
          vertex x y z
        endloop
      endfacet
    endsolid <name>

The facet normal is normalize((v2 - v1) × (v3 - v1)); a degenerate triangle
gets the zero vector.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from core.mesh.types import MeshData

_EPS = 1e-12  # below this cross-product length a triangle is degenerate


@dataclass(frozen=True, eq=False)
class StlSolid:
    """Facets read back from ASCII STL text."""

    name: str
    normals: np.ndarray
    """(m, 3) facet normals as written."""

    triangles: np.ndarray
    """(m, 3, 3) corner coordinates."""

    @property
    def n_facets(self) -> int:
        return int(self.triangles.shape[0])


def facet_normals(triangles: np.ndarray) -> np.ndarray:
    """Unit normals of (m, 3, 3) triangles; zero for degenerate ones."""
    cross = np.cross(triangles[:, 1] - triangles[:, 0], triangles[:, 2] - triangles[:, 0])
    length = np.linalg.norm(cross, axis=1, keepdims=True)
    return np.divide(cross, length, out=np.zeros_like(cross), where=length > _EPS)


def _fmt(x: float) -> str:
    # + 0.0 turns -0.0 into 0.0
    return f"{float(x) + 0.0:.6f}"


def _triple(v: np.ndarray) -> str:
    return f"{_fmt(v[0])} {_fmt(v[1])} {_fmt(v[2])}"


def mesh_to_ascii_stl(mesh: MeshData, name: str = "AudioMesh") -> str:
    """Serialize every face of ``mesh`` as an ASCII STL solid."""
    triangles = mesh.triangles() if mesh.n_faces else np.zeros((0, 3, 3))
    normals = facet_normals(triangles)
    lines = [f"solid {name}"]
    for normal, (v1, v2, v3) in zip(normals, triangles):
        lines.append(f"  facet normal {_triple(normal)}")
        lines.append("    outer loop")
        lines.append(f"      vertex {_triple(v1)}")
        lines.append(f"      vertex {_triple(v2)}")
        lines.append(f"      vertex {_triple(v3)}")
        lines.append("    endloop")
        lines.append("  endfacet")
    lines.append(f"endsolid {name}")
    return "\n".join(lines) + "\n"


def parse_ascii_stl(text: str) -> StlSolid:
    """Read facets from ASCII STL text.

    Raises:
        ValueError: If the text is not a well-formed ASCII STL solid.
    """
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if not lines or not lines[0].startswith("solid"):
        raise ValueError("ASCII STL must start with 'solid'")
    if not lines[-1].startswith("endsolid"):
        raise ValueError("ASCII STL must end with 'endsolid'")
    name = lines[0][len("solid") :].strip()

    normals: list[list[float]] = []
    triangles: list[list[list[float]]] = []
    corners: list[list[float]] = []
    for lineno, line in enumerate(lines[1:-1], start=2):
        parts = line.split()
        if parts[:2] == ["facet", "normal"] and len(parts) == 5:
            normals.append([float(p) for p in parts[2:]])
            corners = []
        elif parts[0] == "vertex" and len(parts) == 4:
            corners.append([float(p) for p in parts[1:]])
        elif parts[0] == "endfacet":
            if len(corners) != 3:
                raise ValueError(f"Facet ending on line {lineno} has {len(corners)} vertices, expected 3")
            triangles.append(corners)
        elif line not in ("outer loop", "endloop"):
            raise ValueError(f"Unexpected STL line {lineno}: {line!r}")

    if len(normals) != len(triangles):
        raise ValueError(f"{len(normals)} facet headers but {len(triangles)} complete facets")
    return StlSolid(
        name=name,
        normals=np.array(normals, dtype=np.float64).reshape(-1, 3),
        triangles=np.array(triangles, dtype=np.float64).reshape(-1, 3, 3),
    )
