"""Normal filtering, vertex updating and the full denoiser."""

from __future__ import annotations

import warnings

import numpy as np
import pytest

from src.denoising import (
    DegenerateMesh,
    DenoiseParams,
    MeshTopology,
    TriangleMesh,
    denoise,
    estimate_normals,
    feature_preserving_smoothing,
    filter_face_normals,
    normal_update_step,
    update_vertices,
)
from src.denoising.config import DEFAULT_NORMAL_ITERATIONS, DEFAULT_THRESHOLD
from src.denoising.topology import build_triangle_triangle_ce


def _bent_square():
    """Two triangles meeting at a shallow crease (normals ~16 degrees apart)."""
    verts = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 1.0, 0.0], [0.0, 1.0, 0.2]])
    faces = np.array([[0, 1, 2], [0, 2, 3]])
    return verts, faces


# --- normal filtering -----------------------------------------------------

def test_zero_iterations_return_input_normals(cube):
    mesh = TriangleMesh(*cube)
    normals, _ = estimate_normals(mesh)
    ring = MeshTopology(mesh).triangle_triangle_cv

    out = filter_face_normals(normals, ring, 0.4, 0)
    assert np.array_equal(out, normals)
    assert out is not normals


def test_filter_does_not_modify_input(noisy_grid):
    mesh = TriangleMesh(*noisy_grid)
    normals, _ = estimate_normals(mesh)
    before = normals.copy()
    filter_face_normals(normals, MeshTopology(mesh).triangle_triangle_cv, 0.4, 3)
    assert np.array_equal(normals, before)


@pytest.mark.parametrize("neighbourhood", ["vertex", "edge"])
@pytest.mark.parametrize("sigma", [0.1, 0.4, 0.9])
def test_flat_patch_is_a_fixed_point(flat_grid, neighbourhood, sigma):
    mesh = TriangleMesh(*flat_grid)
    normals, _ = estimate_normals(mesh)
    ring = MeshTopology(mesh).triangle_triangle(neighbourhood)

    out = filter_face_normals(normals, ring, sigma, 10)
    assert np.allclose(out, [0.0, 0.0, 1.0], atol=1e-12)


def test_filtered_normals_are_unit_length(noisy_grid):
    mesh = TriangleMesh(*noisy_grid)
    normals, _ = estimate_normals(mesh)
    out = filter_face_normals(normals, MeshTopology(mesh).triangle_triangle_cv, 0.4, 5)
    assert np.allclose(np.linalg.norm(out, axis=1), 1.0)


def test_higher_threshold_changes_normals_less():
    verts, faces = _bent_square()
    mesh = TriangleMesh(verts, faces)
    normals, _ = estimate_normals(mesh)
    ring = build_triangle_triangle_ce(len(verts), faces)

    changes = []
    for sigma in [0.1, 0.3, 0.5, 0.7, 0.9, 0.95]:
        updated = normal_update_step(normals, ring, sigma)
        changes.append(float(np.linalg.norm(updated - normals, axis=1).sum()))

    assert all(b <= a + 1e-12 for a, b in zip(changes, changes[1:]))
    assert changes[-1] < changes[0]


def test_neighbours_past_the_threshold_are_ignored(cube):
    # Across the cube's edges n_j . n_k = 0, below any threshold
    mesh = TriangleMesh(*cube)
    normals, _ = estimate_normals(mesh)
    ring = MeshTopology(mesh).triangle_triangle_cv
    assert np.allclose(normal_update_step(normals, ring, 0.1), normals, atol=1e-12)


def test_history_records_one_entry_per_pass(noisy_grid):
    mesh = TriangleMesh(*noisy_grid)
    normals, _ = estimate_normals(mesh)
    history = []
    filter_face_normals(normals, MeshTopology(mesh).triangle_triangle_ce, 0.4, 7, history=history)
    assert len(history) == 7
    assert all(h >= 0.0 for h in history)


@pytest.mark.parametrize("sigma", [0.1, 0.4, 0.9])
def test_triangle_without_neighbours_keeps_its_normal(sigma):
    # Two separate triangles: each ring is empty, only the own normal counts
    verts = np.array([
        [0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0],
        [5.0, 0.0, 0.0], [5.0, 1.0, 0.0], [5.0, 0.0, 1.0],
    ])
    mesh = TriangleMesh(verts, [[0, 1, 2], [3, 4, 5]])
    normals, _ = estimate_normals(mesh)
    ring = MeshTopology(mesh).triangle_triangle_cv
    assert ring.sizes().tolist() == [0, 0]

    out = filter_face_normals(normals, ring, sigma, 5)
    assert np.allclose(out, normals, atol=1e-12)
    assert np.allclose(out, [[0.0, 0.0, 1.0], [1.0, 0.0, 0.0]], atol=1e-12)


# --- vertex updating ------------------------------------------------------

def test_zero_vertex_iterations_keep_positions(noisy_grid):
    mesh = TriangleMesh(*noisy_grid)
    before = mesh.vertices.copy()
    normals, _ = estimate_normals(mesh)
    update_vertices(mesh, normals, MeshTopology(mesh).vertex_triangle, 0)
    assert np.array_equal(mesh.vertices, before)


def test_vertices_on_their_planes_do_not_move(cube):
    mesh = TriangleMesh(*cube)
    normals, _ = estimate_normals(mesh)
    before = mesh.vertices.copy()
    update_vertices(mesh, normals, MeshTopology(mesh).vertex_triangle, 10)
    assert np.allclose(mesh.vertices, before, atol=1e-12)


def test_vertex_update_recomputes_normals(noisy_grid):
    mesh = TriangleMesh(*noisy_grid)
    normals, _ = estimate_normals(mesh)
    target = np.tile([0.0, 0.0, 1.0], (mesh.num_faces, 1))
    update_vertices(mesh, target, MeshTopology(mesh).vertex_triangle, 5)

    expected, _ = estimate_normals(mesh.copy())
    assert np.allclose(mesh.face_normals, expected)


def test_z_only_keeps_x_and_y(noisy_grid):
    verts, faces = noisy_grid
    mesh = TriangleMesh(verts, faces)
    normals, _ = estimate_normals(mesh)
    tilted = np.tile(np.array([0.3, 0.2, 1.0]) / np.linalg.norm([0.3, 0.2, 1.0]), (mesh.num_faces, 1))
    update_vertices(mesh, tilted, MeshTopology(mesh).vertex_triangle, 5, z_only=True)

    assert np.array_equal(mesh.vertices[:, :2], verts[:, :2])
    assert not np.allclose(mesh.vertices[:, 2], verts[:, 2])


# --- full pipeline --------------------------------------------------------

def test_cube_is_left_untouched(cube):
    verts, faces = cube
    mesh = TriangleMesh(verts, faces)
    original_normals, _ = estimate_normals(mesh.copy())

    info = {}
    denoise(mesh, DenoiseParams(threshold=0.4, normal_iterations=5, vertex_iterations=10), info=info)

    assert np.allclose(mesh.vertices, verts, atol=1e-12)
    assert np.allclose(mesh.face_normals, original_normals, atol=1e-12)
    assert np.allclose(info["filtered_normals"], original_normals, atol=1e-12)


def test_denoise_builds_every_ring_up_front(cube):
    info = {}
    denoise(TriangleMesh(*cube), DenoiseParams(normal_iterations=1, vertex_iterations=1), info=info)

    built = vars(info["topology"])
    assert {"vertex_vertex", "vertex_triangle", "triangle_triangle_cv"} <= set(built)
    assert info["vertex_vertex"] is info["topology"].vertex_vertex
    assert info["vertex_vertex"][0].tolist() == [1, 2, 3, 4, 5, 7]


def test_cube_keeps_sharp_edges_around_a_bump(cube):
    verts, faces = cube
    verts = verts.copy()
    verts[6, 2] = 1.2
    mesh = TriangleMesh(verts, faces)
    original_normals, _ = estimate_normals(mesh.copy())

    info = {}
    denoise(mesh, DenoiseParams(threshold=0.4, normal_iterations=5, vertex_iterations=10), info=info)

    # Only the two top triangles are tilted; every other face keeps its axis normal
    side_and_bottom = [0, 1] + list(range(4, 12))
    assert np.allclose(info["filtered_normals"][side_and_bottom], original_normals[side_and_bottom], atol=1e-12)
    # The bump is pulled back towards the top plane
    assert mesh.vertices[6, 2] < 1.2 - 1e-3
    # Bottom corners only drift by the small amount the Jacobi passes spread from the top
    assert np.max(np.linalg.norm(mesh.vertices[:4] - verts[:4], axis=1)) < 1e-2


def test_noise_on_a_plane_is_reduced(noisy_grid):
    verts, faces = noisy_grid
    out, _ = feature_preserving_smoothing(verts, faces, normal_iterations=20, vertex_iterations=50)
    assert np.std(out[:, 2]) < np.std(verts[:, 2])


def test_result_does_not_depend_on_scale_or_position(noisy_grid):
    verts, faces = noisy_grid
    scale, offset = 7.5, np.array([3.0, -2.0, 10.0])

    small, _ = feature_preserving_smoothing(verts, faces, normal_iterations=5, vertex_iterations=5)
    big, _ = feature_preserving_smoothing(verts * scale + offset, faces, normal_iterations=5, vertex_iterations=5)

    assert np.allclose((big - offset) / scale, small, rtol=1e-9, atol=1e-9)


@pytest.mark.parametrize("neighbourhood", ["vertex", "edge"])
def test_flat_grid_is_unchanged(flat_grid, neighbourhood):
    verts, faces = flat_grid
    out, _ = feature_preserving_smoothing(verts, faces, normal_iterations=5, vertex_iterations=5,
                                          neighbourhood=neighbourhood)
    assert np.allclose(out, verts, atol=1e-12)


def test_z_only_denoising_keeps_grid_positions(noisy_grid):
    verts, faces = noisy_grid
    out, _ = feature_preserving_smoothing(verts, faces, normal_iterations=5, vertex_iterations=10, z_only=True)
    assert np.allclose(out[:, :2], verts[:, :2], rtol=0, atol=1e-12)
    assert np.std(out[:, 2]) < np.std(verts[:, 2])


def test_wrapper_leaves_input_untouched_and_reports(noisy_grid):
    verts, faces = noisy_grid
    before = verts.copy()
    out, info = feature_preserving_smoothing(verts, faces, normal_iterations=3, vertex_iterations=2)

    assert np.array_equal(verts, before)
    assert out.shape == verts.shape
    assert info["method"] == "Feature-Preserving Denoising"
    assert len(info["normal_updates"]) == 3
    assert info["face_normals"].shape == (len(faces), 3)
    assert info["vertex_normals"].shape == verts.shape
    for key in ("time", "topology_time", "normal_time", "vertex_time"):
        assert info[key] >= 0.0


def test_mesh_without_faces_is_returned_unchanged():
    verts = np.array([[0.0, 0.0, 0.0], [1.0, 2.0, 3.0]])
    mesh = TriangleMesh(verts, np.zeros((0, 3), dtype=np.int64))
    assert denoise(mesh) is mesh
    assert np.array_equal(mesh.vertices, verts)
    assert mesh.face_normals is None


def test_collapsed_mesh_is_degenerate():
    mesh = TriangleMesh([[1.0, 1.0, 1.0]] * 3, [[0, 1, 2]])
    with pytest.raises(DegenerateMesh):
        denoise(mesh)


def test_degenerate_faces_and_isolated_vertices_stay_finite(noisy_grid):
    verts, faces = noisy_grid
    verts = np.vstack([verts, [[0.5, 0.5, 0.3]]])
    faces = np.vstack([faces, [[0, 0, 1]]])
    isolated = len(verts) - 1

    out, info = feature_preserving_smoothing(verts, faces, normal_iterations=5, vertex_iterations=5)
    assert np.all(np.isfinite(out))
    assert np.all(np.isfinite(info["face_normals"]))
    assert np.allclose(out[isolated], verts[isolated], atol=1e-12)


# --- parameters -----------------------------------------------------------

def test_params_tag():
    assert DenoiseParams().tag == "V_0.40_20_50"
    assert DenoiseParams(neighbourhood="edge", threshold=0.8, normal_iterations=5,
                         vertex_iterations=20).tag == "E_0.80_5_20"


@pytest.mark.parametrize("threshold", [0.0, 1.0, -0.2, 1.5])
def test_out_of_range_threshold_falls_back_to_default(threshold):
    with pytest.warns(UserWarning, match="threshold"):
        params = DenoiseParams(threshold=threshold).validated()
    assert params.threshold == DEFAULT_THRESHOLD


def test_non_positive_iterations_fall_back_to_default():
    with pytest.warns(UserWarning, match="normal updating"):
        params = DenoiseParams(normal_iterations=0, vertex_iterations=7).validated()
    assert params.normal_iterations == DEFAULT_NORMAL_ITERATIONS
    assert params.vertex_iterations == 7


def test_valid_params_pass_without_warnings():
    params = DenoiseParams(threshold=0.7, normal_iterations=3, vertex_iterations=4)
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assert params.validated() is params


def test_unknown_neighbourhood_is_rejected():
    with pytest.raises(ValueError):
        DenoiseParams(neighbourhood="face").validated()
