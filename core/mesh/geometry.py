"""
core/mesh/geometry.py — Closed "lamp" ring mesh from a radial profile.

Layout:
    ring i sits at z = (i / (rings - 1) - 0.5) · height_scale
    vertex j of a ring sits at angle 2π · j / segments
    radius = base_radius · (0.3 + 0.7 · value · amplitude_scale)

A 1-D profile gives every vertex of a ring the same value (a lathe shape);
a 2-D (rings, k) profile gives each vertex its own value and k segments.
Each quad between two rings is split into (v1, v2, v3) and (v2, v4, v3).
The mesh is closed by a bottom cap fan (centre, v2, v1) and a top cap fan
(centre, v1, v2), both centres coloured (0.2, 0.4, 0.6).
"""

from __future__ import annotations

import logging

import numpy as np

from core.config import DEFAULT_MESH_PARAMS, MeshParams
from core.dsp.colormap import audio_color_palette
from core.mesh.types import MeshData, MeshValidationError, validate_mesh_data

logger = logging.getLogger(__name__)

CAP_COLOR: tuple[float, float, float] = (0.2, 0.4, 0.6)
MIN_RADIUS_FRACTION: float = 0.3


def sample_rings(profile: np.ndarray, rings: int) -> np.ndarray:
    """Every step-th row so that at most ``rings`` rows remain.

    step = max(1, n // rings); the result has n // step rows.
    """
    n = profile.shape[0]
    step = max(1, n // rings)
    return profile[: (n // step) * step : step]


def wrap_columns(matrix: np.ndarray, segments: int) -> np.ndarray:
    """Periodically interpolate k columns onto ``segments`` points around a circle."""
    k = matrix.shape[1]
    if k == segments:
        return matrix
    source = np.arange(k) / k
    target = np.arange(segments) / segments
    return np.stack([np.interp(target, source, row, period=1.0) for row in matrix])


def ring_faces(rings: int, segments: int) -> np.ndarray:
    """Two triangles per quad between consecutive rings."""
    i, j = np.meshgrid(np.arange(rings - 1), np.arange(segments), indexing="ij")
    v1 = i * segments + j
    v2 = i * segments + (j + 1) % segments
    v3 = (i + 1) * segments + j
    v4 = (i + 1) * segments + (j + 1) % segments
    first = np.stack([v1, v2, v3], axis=-1).reshape(-1, 3)
    second = np.stack([v2, v4, v3], axis=-1).reshape(-1, 3)
    # interleave so each quad's pair stays adjacent
    return np.stack([first, second], axis=1).reshape(-1, 3)


def cap_faces(rings: int, segments: int, bottom_centre: int, top_centre: int) -> np.ndarray:
    j = np.arange(segments)
    nxt = (j + 1) % segments
    top = (rings - 1) * segments
    bottom_fan = np.stack([np.full(segments, bottom_centre), nxt, j], axis=1)
    top_fan = np.stack([np.full(segments, top_centre), top + j, top + nxt], axis=1)
    return np.concatenate([bottom_fan, top_fan])


def build_ring_mesh(
    profile: np.ndarray, params: MeshParams = DEFAULT_MESH_PARAMS, caps: bool = True
) -> MeshData:
    """Build a closed ring mesh from per-ring (1-D) or per-vertex (2-D) values.

    Values are expected in [0, 1]; they are not clipped.

    Raises:
        MeshValidationError: If fewer than two rings remain after sampling,
            or the resulting arrays fail validate_mesh_data.
    """
    values = np.asarray(profile, dtype=np.float64)
    if values.ndim == 1:
        values = np.repeat(values[:, None], params.segments, axis=1)
    elif values.ndim != 2 or values.shape[1] < 3:
        raise MeshValidationError(f"Profile must be 1-D or (rings, k >= 3), got {values.shape}")

    values = sample_rings(values, params.rings)
    rings, segments = values.shape
    if rings < 2:
        raise MeshValidationError(f"Need at least 2 rings, got {rings}")

    radius = params.base_radius * (
        MIN_RADIUS_FRACTION + (1.0 - MIN_RADIUS_FRACTION) * values * params.amplitude_scale
    )
    angles = 2.0 * np.pi * np.arange(segments) / segments
    z = (np.arange(rings) / (rings - 1) - 0.5) * params.height_scale

    vertices = np.stack(
        [
            radius * np.cos(angles)[None, :],
            radius * np.sin(angles)[None, :],
            np.broadcast_to(z[:, None], radius.shape),
        ],
        axis=-1,
    ).reshape(-1, 3)
    colors = np.array(
        [audio_color_palette(float(v), params.palette) for v in values.ravel()], dtype=np.float64
    ).reshape(-1, 3)
    faces = ring_faces(rings, segments)

    if caps:
        bottom_centre, top_centre = vertices.shape[0], vertices.shape[0] + 1
        half = params.height_scale / 2
        vertices = np.concatenate([vertices, [[0.0, 0.0, -half], [0.0, 0.0, half]]])
        colors = np.concatenate([colors, [CAP_COLOR, CAP_COLOR]])
        faces = np.concatenate([faces, cap_faces(rings, segments, bottom_centre, top_centre)])

    mesh = validate_mesh_data(MeshData(vertices=vertices, faces=faces, colors=colors))
    logger.debug("ring mesh: %d vertices, %d faces", mesh.n_vertices, mesh.n_faces)
    return mesh
