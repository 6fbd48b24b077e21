"""Pre- and post-processing transforms for the denoising pipeline."""

from __future__ import annotations

import numpy as np

from .mesh import DegenerateMesh, TriangleMesh


def normalize_mesh(mesh: TriangleMesh) -> tuple[np.ndarray, float]:
    """Move the mesh into a unit-radius frame, in place.

    The bounding-box midpoint becomes the origin and the largest half-extent
    becomes 1, so thresholds behave the same for meshes of any physical
    size.

    Parameters
    ----------
    mesh:
        Mesh whose ``vertices`` are overwritten.

    Returns
    -------
    tuple
        ``(center, scale)`` needed by :func:`denormalize_mesh`.
    """
    if mesh.num_vertices == 0:
        raise DegenerateMesh("cannot normalize a mesh without vertices")

    lower = mesh.vertices.min(axis=0)
    upper = mesh.vertices.max(axis=0)
    center = (lower + upper) / 2.0
    scale = float(np.max(upper - lower)) / 2.0

    if not np.isfinite(scale):
        raise DegenerateMesh("vertex coordinates must be finite")
    if scale == 0.0:
        raise DegenerateMesh("bounding box has zero extent; the mesh collapses to a point")

    mesh.vertices -= center
    mesh.vertices /= scale
    return center, scale


def denormalize_mesh(mesh: TriangleMesh, center: np.ndarray, scale: float) -> None:
    """Exact inverse of :func:`normalize_mesh`: ``p = center + p * scale``."""
    mesh.vertices *= scale
    mesh.vertices += np.asarray(center, dtype=np.float64)
