import numpy as np
from scipy.spatial.distance import directed_hausdorff

from .normals import compute_face_normals


def hausdorff_distance(verts1, verts2, sample_size=5000, seed=0):
    """
    Compute Hausdorff distance between two point clouds.
    Uses sampling for large meshes to keep computation tractable.

    Args:
        verts1: (N, 3) array of vertices
        verts2: (M, 3) array of vertices
        sample_size: max points to use for computation
        seed: seed of the sampling generator

    Returns:
        float: Hausdorff distance in mesh units
    """
    rng = np.random.default_rng(seed)

    # Sample if too many vertices
    if verts1.shape[0] > sample_size:
        idx = rng.choice(verts1.shape[0], sample_size, replace=False)
        verts1 = verts1[idx]

    if verts2.shape[0] > sample_size:
        idx = rng.choice(verts2.shape[0], sample_size, replace=False)
        verts2 = verts2[idx]

    d1 = directed_hausdorff(verts1, verts2)[0]
    d2 = directed_hausdorff(verts2, verts1)[0]

    return max(d1, d2)


def face_normal_deviation(verts_orig, verts_new, faces):
    """
    Angle in degrees between each face normal before and after processing.

    Faces that are degenerate in either mesh get NaN.
    """
    n_orig, a_orig = compute_face_normals(verts_orig, faces)
    n_new, a_new = compute_face_normals(verts_new, faces)

    cos = np.clip(np.sum(n_orig * n_new, axis=1), -1.0, 1.0)
    angles = np.degrees(np.arccos(cos))
    angles[(a_orig == 0) | (a_new == 0)] = np.nan
    return angles


def vertex_displacement(verts_orig, verts_new):
    """Euclidean distance each vertex moved."""
    return np.linalg.norm(np.asarray(verts_new) - np.asarray(verts_orig), axis=1)


def denoise_report(verts_orig, verts_new, faces):
    """
    Summary statistics comparing a mesh before and after denoising.

    Returns:
        dict with Hausdorff distance, displacement and normal deviation stats
    """
    moved = vertex_displacement(verts_orig, verts_new)
    deviation = face_normal_deviation(verts_orig, verts_new, faces)
    valid = deviation[np.isfinite(deviation)]

    return {
        "hausdorff": float(hausdorff_distance(verts_orig, verts_new)) if len(verts_orig) else 0.0,
        "mean_displacement": float(np.mean(moved)) if moved.size else 0.0,
        "max_displacement": float(np.max(moved)) if moved.size else 0.0,
        "mean_normal_deviation_deg": float(np.mean(valid)) if valid.size else 0.0,
        "max_normal_deviation_deg": float(np.max(valid)) if valid.size else 0.0,
    }
