"""
Area-weighted normal estimation.

Face normals come from the cross product of two edges; vertex normals are
the area-weighted sum of the incident face normals. Degenerate faces and
isolated vertices get zero vectors instead of NaNs.
"""

import numpy as np


def normalize_rows(vectors):
    """
    Scale each row to unit length, leaving zero rows at zero.

    Args:
        vectors: (K, 3) array

    Returns:
        (K, 3) array of unit (or zero) rows
    """
    vectors = np.asarray(vectors, dtype=np.float64)
    lengths = np.linalg.norm(vectors, axis=1, keepdims=True)
    safe = np.where(lengths > 0, lengths, 1.0)
    return np.where(lengths > 0, vectors / safe, 0.0)


def compute_face_normals(verts, faces):
    """
    Compute unit face normals and face areas.

    Args:
        verts: (N, 3) vertex positions
        faces: (M, 3) face indices

    Returns:
        face_normals: (M, 3) unit normals (zero for zero-area faces)
        areas: (M,) face areas
    """
    v0 = verts[faces[:, 0]]
    v1 = verts[faces[:, 1]]
    v2 = verts[faces[:, 2]]

    raw = np.cross(v1 - v0, v2 - v0)
    areas = np.linalg.norm(raw, axis=1) / 2.0

    return normalize_rows(raw), areas


def estimate_normals(mesh):
    """
    Estimate face and vertex normals of a mesh and store them on it.

    Args:
        mesh: TriangleMesh

    Returns:
        face_normals: (M, 3)
        vertex_normals: (N, 3)
    """
    face_normals, areas = compute_face_normals(mesh.vertices, mesh.faces)

    weighted = face_normals * areas[:, None]
    vertex_normals = np.zeros((mesh.num_vertices, 3))
    # One contribution per face corner
    for i in range(3):
        np.add.at(vertex_normals, mesh.faces[:, i], weighted)
    vertex_normals = normalize_rows(vertex_normals)

    mesh.face_normals = face_normals
    mesh.vertex_normals = vertex_normals
    return face_normals, vertex_normals
