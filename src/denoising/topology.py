"""
Mesh adjacency ("1-ring") structures.

Every structure is a :class:`Ring`: a ragged array stored CSR-style as
``offsets`` / ``indices``, so ``ring[i]`` is ``indices[offsets[i]:offsets[i+1]]``.
Rings are built once per mesh and are read-only afterwards.
"""

from functools import cached_property

import numpy as np
from scipy import sparse

NEIGHBOURHOODS = ("vertex", "edge")


class Ring:
    """Immutable ragged array of element ids."""

    def __init__(self, offsets, indices):
        self.offsets = np.ascontiguousarray(offsets, dtype=np.int64)
        self.indices = np.ascontiguousarray(indices, dtype=np.int64)
        if self.offsets.ndim != 1 or self.offsets.size == 0 or self.offsets[0] != 0:
            raise ValueError("offsets must be a 1D array starting at 0")
        if self.offsets[-1] != self.indices.size:
            raise ValueError("offsets[-1] must equal the number of indices")
        self.offsets.flags.writeable = False
        self.indices.flags.writeable = False

    @classmethod
    def from_csr(cls, matrix):
        matrix = matrix.tocsr()
        matrix.sort_indices()
        return cls(matrix.indptr, matrix.indices)

    def __len__(self):
        return self.offsets.size - 1

    def __getitem__(self, i):
        return self.indices[self.offsets[i]:self.offsets[i + 1]]

    def __iter__(self):
        for i in range(len(self)):
            yield self[i]

    def sizes(self):
        """Number of entries per row."""
        return np.diff(self.offsets)

    def owners(self):
        """Row id of every entry in ``indices``."""
        return np.repeat(np.arange(len(self)), self.sizes())

    def to_lists(self):
        return [row.tolist() for row in self]

    def __repr__(self):
        return f"Ring(rows={len(self)}, entries={self.indices.size})"


def _incidence_matrix(num_verts, faces):
    """Face-by-vertex 0/1 matrix (duplicate corners collapse to 1)."""
    num_faces = faces.shape[0]
    rows = np.repeat(np.arange(num_faces), 3)
    cols = faces.reshape(-1)
    data = np.ones(len(rows))
    M = sparse.coo_matrix((data, (rows, cols)), shape=(num_faces, num_verts)).tocsr()
    M.sum_duplicates()
    M.data[:] = 1.0
    return M


def build_vertex_vertex_ring(num_verts, faces):
    """
    Distinct neighbouring vertices of every vertex (ascending, no self).
    """
    rows = np.concatenate([faces[:, 0], faces[:, 1], faces[:, 2], faces[:, 1], faces[:, 2], faces[:, 0]])
    cols = np.concatenate([faces[:, 1], faces[:, 2], faces[:, 0], faces[:, 0], faces[:, 1], faces[:, 2]])

    # Degenerate faces would otherwise link a vertex to itself
    keep = rows != cols
    data = np.ones(int(keep.sum()))
    A = sparse.coo_matrix((data, (rows[keep], cols[keep])), shape=(num_verts, num_verts))
    A = A.tocsr()
    A.sum_duplicates()
    return Ring.from_csr(A)


def build_vertex_triangle_ring(num_verts, faces):
    """
    Incident triangles of every vertex, in face order.

    A face contributes one entry per corner, so a face with a repeated
    index is listed twice for that vertex.
    """
    corner_vertex = faces.reshape(-1)
    corner_face = np.repeat(np.arange(faces.shape[0]), 3)

    # Stable sort keeps discovery (face) order within each vertex
    order = np.argsort(corner_vertex, kind="stable")
    counts = np.bincount(corner_vertex, minlength=num_verts)
    offsets = np.concatenate([[0], np.cumsum(counts)])
    return Ring(offsets, corner_face[order])


def build_triangle_triangle_cv(num_verts, faces):
    """
    Triangles sharing at least one vertex with each triangle (ascending, no self).
    """
    M = _incidence_matrix(num_verts, faces)
    shared = (M @ M.T).tocsr()
    shared.setdiag(0)
    shared.eliminate_zeros()
    return Ring.from_csr(shared)


def build_triangle_triangle_ce(num_verts, faces):
    """
    Triangles sharing an edge with each triangle.

    Edges are visited in the order ``(a, b)``, ``(b, c)``, ``(c, a)``. For each
    edge the first other triangle found in discovery order (lowest face id)
    is taken, so a non-manifold edge still yields one neighbour and a
    boundary edge yields none.
    """
    num_faces = faces.shape[0]
    if num_faces == 0:
        return Ring(np.zeros(1, dtype=np.int64), np.zeros(0, dtype=np.int64))

    ends = np.roll(faces, -1, axis=1)
    lo = np.minimum(faces, ends).reshape(-1)
    hi = np.maximum(faces, ends).reshape(-1)
    owner = np.repeat(np.arange(num_faces), 3)
    valid = lo != hi

    keys = np.stack([lo[valid], hi[valid], owner[valid]], axis=1)
    neighbour = np.full(num_faces * 3, -1, dtype=np.int64)

    if keys.shape[0]:
        # Rows sorted by (lo, hi, face); one row per (edge, face) pair
        uniq, inverse = np.unique(keys, axis=0, return_inverse=True)
        inverse = inverse.reshape(-1)

        new_edge = np.ones(uniq.shape[0], dtype=bool)
        new_edge[1:] = (uniq[1:, 0] != uniq[:-1, 0]) | (uniq[1:, 1] != uniq[:-1, 1])
        edge_start = np.flatnonzero(new_edge)
        edge_size = np.diff(np.append(edge_start, uniq.shape[0]))
        edge_id = np.cumsum(new_edge) - 1

        start = edge_start[edge_id]
        first = uniq[start, 2]
        second_pos = np.minimum(start + 1, uniq.shape[0] - 1)
        second = np.where(edge_size[edge_id] >= 2, uniq[second_pos, 2], -1)
        other = np.where(first != uniq[:, 2], first, second)

        neighbour[valid] = other[inverse]

    neighbour = neighbour.reshape(num_faces, 3)
    # List a triangle reached through two edges only once
    neighbour[:, 1] = np.where(neighbour[:, 1] == neighbour[:, 0], -1, neighbour[:, 1])
    dup = (neighbour[:, 2] == neighbour[:, 0]) | (neighbour[:, 2] == neighbour[:, 1])
    neighbour[:, 2] = np.where(dup, -1, neighbour[:, 2])

    keep = neighbour >= 0
    offsets = np.concatenate([[0], np.cumsum(keep.sum(axis=1))])
    return Ring(offsets, neighbour[keep])


class MeshTopology:
    """
    Adjacency of one mesh, each structure computed on first use.

    The mesh's face array is read-only, so a structure stays valid for the
    lifetime of the mesh it was built from.
    """

    def __init__(self, mesh):
        self.mesh = mesh
        self._faces = mesh.faces
        self._num_verts = mesh.num_vertices

    @cached_property
    def vertex_vertex(self):
        return build_vertex_vertex_ring(self._num_verts, self._faces)

    @cached_property
    def vertex_triangle(self):
        return build_vertex_triangle_ring(self._num_verts, self._faces)

    @cached_property
    def triangle_triangle_cv(self):
        return build_triangle_triangle_cv(self._num_verts, self._faces)

    @cached_property
    def triangle_triangle_ce(self):
        return build_triangle_triangle_ce(self._num_verts, self._faces)

    def triangle_triangle(self, neighbourhood="vertex"):
        """Triangle ring for the given policy; only that policy is built."""
        if neighbourhood == "vertex":
            return self.triangle_triangle_cv
        if neighbourhood == "edge":
            return self.triangle_triangle_ce
        raise ValueError(f"Unknown neighbourhood: {neighbourhood!r} (expected one of {NEIGHBOURHOODS})")
