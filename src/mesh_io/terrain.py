"""Conversion of elevation grids and scattered points into triangle meshes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.interpolate import LinearNDInterpolator
from scipy.spatial import Delaunay, QhullError

from ..denoising.mesh import TriangleMesh

# Triangles below this minimum angle get a circumcentre inserted when refining
_MIN_ANGLE_DEG = 20.0


@dataclass
class EsriGrid:
    """Header and samples of an ESRI ASCII grid (``.asc``).

    ``values`` is shaped ``(nrows, ncols)`` in file order. ``index`` maps each
    cell (row-major) to its vertex id, or -1 for no-data cells.
    """

    ncols: int
    nrows: int
    xllcorner: float
    yllcorner: float
    cellsize: float
    values: np.ndarray
    nodata_value: Optional[float] = None
    index: Optional[np.ndarray] = None

    @property
    def has_nodata(self) -> bool:
        return self.nodata_value is not None

    def valid_mask(self) -> np.ndarray:
        """Boolean ``(nrows, ncols)`` mask of cells carrying data."""
        if not self.has_nodata:
            return np.ones(self.values.shape, dtype=bool)
        return np.abs(self.values - self.nodata_value) >= np.finfo(np.float32).eps


def _split_cells(values: np.ndarray, index: np.ndarray, nrows: int, ncols: int) -> np.ndarray:
    """Two triangles per complete cell, one per cell missing a single corner."""
    rows, cols = np.meshgrid(np.arange(nrows - 1), np.arange(ncols - 1), indexing="ij")
    rows = rows.reshape(-1)
    cols = cols.reshape(-1)

    # Corners: 0 = (i, j), 1 = (i, j+1), 2 = (i+1, j), 3 = (i+1, j+1)
    k0 = rows * ncols + cols
    corners = np.stack([k0, k0 + 1, k0 + ncols, k0 + ncols + 1], axis=1)
    ids = index[corners]
    z = values.reshape(-1)[corners]
    missing = ids < 0
    n_missing = missing.sum(axis=1)

    faces = []

    full = n_missing == 0
    if full.any():
        c = ids[full]
        zc = z[full]
        # Diagonal 1-2 when the 0-2 and 0-1 edges are both the steeper ones
        steep = (np.abs(zc[:, 2] - zc[:, 0]) > np.abs(zc[:, 3] - zc[:, 1])) & (
            np.abs(zc[:, 1] - zc[:, 0]) > np.abs(zc[:, 3] - zc[:, 2])
        )
        first = np.where(steep[:, None], c[:, [0, 1, 2]], c[:, [1, 3, 0]])
        second = np.where(steep[:, None], c[:, [1, 3, 2]], c[:, [0, 3, 2]])
        pair = np.stack([first, second], axis=1).reshape(-1, 3)
        faces.append((np.repeat(np.flatnonzero(full), 2), pair))

    single = n_missing == 1
    if single.any():
        c = ids[single]
        gap = np.argmax(missing[single], axis=1)
        # Remaining three corners, oriented like the full-cell triangles
        patterns = np.array([[1, 3, 2], [0, 3, 2], [1, 3, 0], [0, 1, 2]])
        tri = np.take_along_axis(c, patterns[gap], axis=1)
        faces.append((np.flatnonzero(single), tri))

    if not faces:
        return np.zeros((0, 3), dtype=np.int64)

    # Keep cell order, as a row-by-row scan would produce
    cell = np.concatenate([f[0] for f in faces])
    tris = np.concatenate([f[1] for f in faces])
    order = np.argsort(cell, kind="stable")
    return tris[order].astype(np.int64)


def grid_to_mesh(grid: EsriGrid) -> TriangleMesh:
    """Triangulate an elevation grid.

    Row ``i``, column ``j`` becomes the vertex ``(i * cellsize, j * cellsize,
    value)``. No-data cells get no vertex and every triangle touching them is
    dropped. ``grid.index`` is filled in so results can be written back.
    """
    nrows, ncols = grid.nrows, grid.ncols
    values = np.asarray(grid.values, dtype=np.float64).reshape(nrows, ncols)
    valid = grid.valid_mask().reshape(-1)

    index = np.full(nrows * ncols, -1, dtype=np.int64)
    index[valid] = np.arange(int(valid.sum()))
    grid.index = index

    rows, cols = np.divmod(np.arange(nrows * ncols), ncols)
    verts = np.stack([rows * grid.cellsize, cols * grid.cellsize, values.reshape(-1)], axis=1)[valid]

    if nrows < 2 or ncols < 2:
        faces = np.zeros((0, 3), dtype=np.int64)
    else:
        faces = _split_cells(values, index, nrows, ncols)
    return TriangleMesh(verts, faces)


def mesh_to_grid_values(grid: EsriGrid, vertices: np.ndarray) -> np.ndarray:
    """Elevations of ``vertices`` laid back onto the grid (no-data cells kept)."""
    if grid.index is None:
        raise ValueError("grid has not been triangulated (grid.index is unset)")
    out = np.full(grid.nrows * grid.ncols, grid.nodata_value if grid.has_nodata else np.nan)
    present = grid.index >= 0
    out[present] = np.asarray(vertices)[grid.index[present], 2]
    return out.reshape(grid.nrows, grid.ncols)


def _min_angles(points: np.ndarray, simplices: np.ndarray) -> np.ndarray:
    """Smallest interior angle (degrees) of each 2D triangle."""
    p = points[simplices]
    angles = []
    for i in range(3):
        a = p[:, (i + 1) % 3] - p[:, i]
        b = p[:, (i + 2) % 3] - p[:, i]
        cos = np.sum(a * b, axis=1) / (np.linalg.norm(a, axis=1) * np.linalg.norm(b, axis=1) + 1e-300)
        angles.append(np.degrees(np.arccos(np.clip(cos, -1, 1))))
    return np.min(angles, axis=0)


def _circumcentres(points: np.ndarray, simplices: np.ndarray) -> np.ndarray:
    a = points[simplices[:, 0]]
    b = points[simplices[:, 1]] - a
    c = points[simplices[:, 2]] - a
    d = 2.0 * (b[:, 0] * c[:, 1] - b[:, 1] * c[:, 0])
    b2 = np.sum(b * b, axis=1)
    c2 = np.sum(c * c, axis=1)
    ux = (c[:, 1] * b2 - b[:, 1] * c2) / d
    uy = (b[:, 0] * c2 - c[:, 0] * b2) / d
    return a + np.stack([ux, uy], axis=1)


def triangulate_points(points, add_vertices: bool = False) -> TriangleMesh:
    """Delaunay-triangulate scattered ``(x, y, z)`` samples in the x/y plane.

    With ``add_vertices`` one refinement pass inserts the circumcentre of every
    triangle whose smallest angle is below 20 degrees (when it falls inside
    the convex hull), with z interpolated linearly, and triangulates again.
    Faces are oriented counter-clockwise seen from +z.
    """
    points = np.asarray(points, dtype=np.float64)
    if points.ndim != 2 or points.shape[1] != 3:
        raise ValueError("points must be shaped (N, 3)")
    if points.shape[0] < 3:
        return TriangleMesh(points, np.zeros((0, 3), dtype=np.int64))

    try:
        tri = Delaunay(points[:, :2])
    except QhullError as exc:
        raise ValueError("points are degenerate in the x/y plane and cannot be triangulated") from exc

    if add_vertices:
        thin = _min_angles(points[:, :2], tri.simplices) < _MIN_ANGLE_DEG
        if thin.any():
            centres = _circumcentres(points[:, :2], tri.simplices[thin])
            centres = centres[np.all(np.isfinite(centres), axis=1)]
            inside = tri.find_simplex(centres) >= 0
            centres = np.unique(centres[inside], axis=0)
            if len(centres):
                z = LinearNDInterpolator(tri, points[:, 2])(centres)
                points = np.vstack([points, np.column_stack([centres, z])])
                tri = Delaunay(points[:, :2])

    simplices = tri.simplices.astype(np.int64)
    p = points[:, :2]
    e1 = p[simplices[:, 1]] - p[simplices[:, 0]]
    e2 = p[simplices[:, 2]] - p[simplices[:, 0]]
    clockwise = (e1[:, 0] * e2[:, 1] - e1[:, 1] * e2[:, 0]) < 0
    simplices[clockwise] = simplices[clockwise][:, [0, 2, 1]]

    return TriangleMesh(points, simplices)
