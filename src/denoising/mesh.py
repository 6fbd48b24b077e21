"""Triangle mesh container used by the denoising pipeline."""

from __future__ import annotations

from typing import Optional

import numpy as np


class InvalidTopology(ValueError):
    """A face references a vertex index outside ``[0, num_vertices)``."""


class DegenerateMesh(ValueError):
    """The mesh cannot be processed (e.g. zero bounding-box extent)."""


class TriangleMesh:
    """Vertex positions plus triangle index triples.

    The face array is validated once and then frozen (read-only); only the
    vertex positions are expected to change afterwards, through
    :func:`normalize_mesh` / :func:`denormalize_mesh` and the vertex update
    stage. ``face_normals`` and ``vertex_normals`` are derived data filled in
    by :func:`estimate_normals`.
    """

    def __init__(self, vertices, faces):
        verts = np.array(vertices, dtype=np.float64)
        tris = np.array(faces, dtype=np.int64)

        if verts.ndim != 2 or verts.shape[1] != 3:
            if verts.size == 0:
                verts = verts.reshape(0, 3)
            else:
                raise ValueError("vertices must be shaped (N, 3)")
        if tris.ndim != 2 or tris.shape[1] != 3:
            if tris.size == 0:
                tris = tris.reshape(0, 3)
            else:
                raise ValueError("faces must be shaped (M, 3)")

        if tris.size:
            lo = int(tris.min())
            hi = int(tris.max())
            if lo < 0 or hi >= verts.shape[0]:
                bad = np.argwhere((tris < 0) | (tris >= verts.shape[0]))[0]
                raise InvalidTopology(
                    f"face {int(bad[0])} references vertex {int(tris[bad[0], bad[1]])}, "
                    f"but the mesh has {verts.shape[0]} vertices"
                )

        tris.flags.writeable = False
        self.vertices: np.ndarray = verts
        self._faces: np.ndarray = tris
        self.face_normals: Optional[np.ndarray] = None
        self.vertex_normals: Optional[np.ndarray] = None

    @property
    def faces(self) -> np.ndarray:
        return self._faces

    @property
    def num_vertices(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def num_faces(self) -> int:
        return int(self._faces.shape[0])

    def copy(self) -> "TriangleMesh":
        """Deep copy of positions and normals; the frozen face array is shared."""
        other = TriangleMesh.__new__(TriangleMesh)
        other.vertices = self.vertices.copy()
        other._faces = self._faces
        other.face_normals = None if self.face_normals is None else self.face_normals.copy()
        other.vertex_normals = None if self.vertex_normals is None else self.vertex_normals.copy()
        return other

    def __repr__(self) -> str:
        return f"TriangleMesh(num_vertices={self.num_vertices}, num_faces={self.num_faces})"
