"""Generate noisy test meshes (cube, sphere, terrain) for trying the denoiser."""

import argparse
import os
import sys

import numpy as np
import pyvista as pv

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from src.denoising import TriangleMesh, estimate_normals
from src.mesh_io import EsriGrid, MeshData, write_mesh
from src.mesh_io.writers import write_esri_grid, write_xyz


def polydata_to_mesh(poly):
    poly = poly.triangulate().clean()
    faces = np.asarray(poly.faces).reshape(-1, 4)[:, 1:]
    return TriangleMesh(np.asarray(poly.points), faces)


def add_normal_noise(mesh, noise_level, rng):
    """Displace each vertex along its normal by Gaussian noise (relative to mean edge length)."""
    _, vertex_normals = estimate_normals(mesh)
    v = mesh.vertices
    f = mesh.faces
    edges = np.concatenate([
        np.linalg.norm(v[f[:, 1]] - v[f[:, 0]], axis=1),
        np.linalg.norm(v[f[:, 2]] - v[f[:, 1]], axis=1),
        np.linalg.norm(v[f[:, 0]] - v[f[:, 2]], axis=1),
    ])
    sigma = noise_level * float(np.mean(edges))
    mesh.vertices += vertex_normals * rng.normal(0, sigma, (mesh.num_vertices, 1))
    return mesh


def create_noisy_cube(subdivisions=3, noise_level=0.2, rng=None):
    """Sharp-edged cube: the classic feature-preservation test."""
    rng = rng or np.random.default_rng()
    cube = pv.Cube().triangulate().subdivide(subdivisions, subfilter='linear')
    return add_normal_noise(polydata_to_mesh(cube), noise_level, rng)


def create_noisy_sphere(resolution=60, noise_level=0.2, rng=None):
    rng = rng or np.random.default_rng()
    sphere = pv.Sphere(theta_resolution=resolution, phi_resolution=resolution)
    return add_normal_noise(polydata_to_mesh(sphere), noise_level, rng)


def create_noisy_terrain(shape=(80, 80), cellsize=10.0, noise_level=2.0, rng=None):
    """Stepped elevation grid (a terrace edge) with Gaussian noise."""
    rng = rng or np.random.default_rng()
    rows, cols = np.indices(shape)
    surface = 50.0 * np.sin(rows / 15.0) + np.where(cols > shape[1] // 2, 40.0, 0.0)
    values = surface + rng.normal(0, noise_level, shape)
    return EsriGrid(
        ncols=shape[1],
        nrows=shape[0],
        xllcorner=0.0,
        yllcorner=0.0,
        cellsize=cellsize,
        values=values,
    )


def save_synthetic_data(output_dir, seed=0):
    """Generate and save synthetic datasets."""
    os.makedirs(output_dir, exist_ok=True)
    rng = np.random.default_rng(seed)

    print("Generating Noisy Cube...")
    write_mesh(os.path.join(output_dir, "cube_noisy.off"), MeshData(create_noisy_cube(rng=rng)))

    print("Generating Noisy Sphere...")
    write_mesh(os.path.join(output_dir, "sphere_noisy.ply"), MeshData(create_noisy_sphere(rng=rng)))

    print("Generating Noisy Terrain...")
    grid = create_noisy_terrain(rng=rng)
    rows, cols = np.indices(grid.values.shape)
    points = np.column_stack([
        rows.reshape(-1) * grid.cellsize,
        cols.reshape(-1) * grid.cellsize,
        grid.values.reshape(-1),
    ])
    grid.index = np.arange(points.shape[0])
    write_esri_grid(os.path.join(output_dir, "terrain_noisy.asc"), grid, points)

    # Scattered samples of the same terrain for the .xyz path
    keep = rng.random(points.shape[0]) < 0.3
    write_xyz(os.path.join(output_dir, "terrain_noisy.xyz"), TriangleMesh(points[keep], np.zeros((0, 3))))

    print(f"Synthetic data saved to {output_dir}")


def main():
    parser = argparse.ArgumentParser(description='Generate noisy test meshes')
    parser.add_argument('--output', type=str, default='data/noisy',
                        help='Output directory (default: data/noisy)')
    parser.add_argument('--seed', type=int, default=0,
                        help='Random seed (default: 0)')
    args = parser.parse_args()
    save_synthetic_data(args.output, seed=args.seed)


if __name__ == "__main__":
    main()
