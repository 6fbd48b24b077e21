"""Shared synthetic meshes for the test suite (no data files needed)."""

from __future__ import annotations

import os
import sys

import numpy as np
import pytest

# Allow `import src...` / `import scripts...` without installing the package
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


def make_unit_cube() -> tuple[np.ndarray, np.ndarray]:
    """Unit cube, 8 vertices / 12 triangles, normals pointing outwards."""
    verts = np.array(
        [
            [0.0, 0.0, 0.0],
            [1.0, 0.0, 0.0],
            [1.0, 1.0, 0.0],
            [0.0, 1.0, 0.0],
            [0.0, 0.0, 1.0],
            [1.0, 0.0, 1.0],
            [1.0, 1.0, 1.0],
            [0.0, 1.0, 1.0],
        ],
        dtype=np.float64,
    )
    faces = np.array(
        [
            # bottom (z=0)
            [0, 2, 1],
            [0, 3, 2],
            # top (z=1)
            [4, 5, 6],
            [4, 6, 7],
            # front (y=0)
            [0, 1, 5],
            [0, 5, 4],
            # back (y=1)
            [3, 6, 2],
            [3, 7, 6],
            # left (x=0)
            [0, 7, 3],
            [0, 4, 7],
            # right (x=1)
            [1, 6, 5],
            [1, 2, 6],
        ],
        dtype=np.int64,
    )
    return verts, faces


def make_flat_square() -> tuple[np.ndarray, np.ndarray]:
    """Two coplanar triangles sharing the 0-2 diagonal, both with normal +z."""
    verts = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 1.0, 0.0], [0.0, 1.0, 0.0]])
    faces = np.array([[0, 1, 2], [0, 2, 3]])
    return verts, faces


def make_grid(n: int = 8, noise: float = 0.0, seed: int = 0) -> tuple[np.ndarray, np.ndarray]:
    """``n x n`` vertex height field on [0, 1]^2 with optional Gaussian z noise."""
    rng = np.random.default_rng(seed)
    xs, ys = np.meshgrid(np.linspace(0, 1, n), np.linspace(0, 1, n), indexing="ij")
    zs = rng.normal(0.0, noise, xs.shape) if noise > 0 else np.zeros(xs.shape)
    verts = np.column_stack([xs.reshape(-1), ys.reshape(-1), zs.reshape(-1)])

    faces = []
    for i in range(n - 1):
        for j in range(n - 1):
            k = i * n + j
            faces.append([k, k + n, k + n + 1])
            faces.append([k, k + n + 1, k + 1])
    return verts, np.array(faces, dtype=np.int64)


@pytest.fixture
def cube():
    return make_unit_cube()


@pytest.fixture
def flat_square():
    return make_flat_square()


@pytest.fixture
def noisy_grid():
    return make_grid(n=10, noise=0.01, seed=3)


@pytest.fixture
def flat_grid():
    return make_grid(n=6)
