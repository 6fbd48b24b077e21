"""
Feature-preserving mesh denoising: mesh model, adjacency and the two-stage
normal-filtering / vertex-update algorithm.
"""

from .mesh import TriangleMesh, InvalidTopology, DegenerateMesh
from .processing import normalize_mesh, denormalize_mesh
from .normals import estimate_normals, compute_face_normals, normalize_rows
from .topology import (
    Ring,
    MeshTopology,
    build_vertex_vertex_ring,
    build_vertex_triangle_ring,
    build_triangle_triangle_cv,
    build_triangle_triangle_ce,
)
from .config import DenoiseParams
from .feature_preserving import (
    normal_update_step,
    filter_face_normals,
    update_vertices,
    denoise,
    feature_preserving_smoothing,
)
from .metrics import (
    hausdorff_distance,
    face_normal_deviation,
    vertex_displacement,
    denoise_report,
)

__all__ = [
    # Mesh model
    'TriangleMesh',
    'InvalidTopology',
    'DegenerateMesh',
    'normalize_mesh',
    'denormalize_mesh',
    # Normals and adjacency
    'estimate_normals',
    'compute_face_normals',
    'normalize_rows',
    'Ring',
    'MeshTopology',
    'build_vertex_vertex_ring',
    'build_vertex_triangle_ring',
    'build_triangle_triangle_cv',
    'build_triangle_triangle_ce',
    # Denoising
    'DenoiseParams',
    'normal_update_step',
    'filter_face_normals',
    'update_vertices',
    'denoise',
    'feature_preserving_smoothing',
    # Metrics
    'hausdorff_distance',
    'face_normal_deviation',
    'vertex_displacement',
    'denoise_report',
]
