"""Writers for the supported output formats."""

from __future__ import annotations

import numpy as np
import pyvista as pv
import trimesh

from ..denoising.mesh import TriangleMesh
from .formats import MeshData, MeshFormatError, UnsupportedFormat, split_extension
from .terrain import EsriGrid, mesh_to_grid_values

_HEADER_COMMENT = "The denoised result."


def _coords(x: float, y: float, z: float) -> str:
    # 17 significant digits round-trip a float64 exactly
    return f"{x:.17g} {y:.17g} {z:.17g}"


def _vertex_lines(verts: np.ndarray) -> list[str]:
    return [_coords(x, y, z) for x, y, z in verts]


def _face_lines(faces: np.ndarray) -> list[str]:
    return [f"3 {a} {b} {c}" for a, b, c in faces]


def _write_lines(path: str, lines: list[str]) -> None:
    with open(path, "w", encoding="utf-8") as fh:
        fh.write("\n".join(lines))
        fh.write("\n")


def write_off(path: str, mesh: TriangleMesh) -> None:
    tm = trimesh.Trimesh(vertices=mesh.vertices, faces=mesh.faces, process=False)
    tm.export(path, file_type="off")


def write_ply2(path: str, mesh: TriangleMesh) -> None:
    lines = [str(mesh.num_vertices), str(mesh.num_faces)]
    lines += _vertex_lines(mesh.vertices) + _face_lines(mesh.faces)
    _write_lines(path, lines)


def write_obj(path: str, mesh: TriangleMesh) -> None:
    lines = [f"# {_HEADER_COMMENT}"]
    lines += [f"v {_coords(x, y, z)}" for x, y, z in mesh.vertices]
    lines += [f"f {a + 1} {b + 1} {c + 1}" for a, b, c in mesh.faces]
    _write_lines(path, lines)


def write_xyz(path: str, mesh: TriangleMesh) -> None:
    _write_lines(path, _vertex_lines(mesh.vertices))


def write_esri_grid(path: str, grid: EsriGrid, vertices: np.ndarray) -> None:
    """Write elevations back in the layout of the grid they came from."""
    values = mesh_to_grid_values(grid, vertices)
    lines = [
        f"ncols          {grid.ncols}",
        f"nrows          {grid.nrows}",
        f"xllcorner      {grid.xllcorner:f}",
        f"yllcorner      {grid.yllcorner:f}",
        f"cellsize       {grid.cellsize:f}",
    ]
    if grid.has_nodata:
        lines.append(f"NODATA_value   {grid.nodata_value:f}")
    lines += [" ".join(f"{v:f}" for v in row) for row in values]
    _write_lines(path, lines)


def write_with_pyvista(path: str, mesh: TriangleMesh, binary: bool = True) -> None:
    """PLY, STL and VTK output; ``binary=False`` gives the ASCII variant."""
    faces = np.hstack([np.full((mesh.num_faces, 1), 3, dtype=np.int64), mesh.faces]).astype(np.int64)
    poly = pv.PolyData(mesh.vertices, faces.reshape(-1)) if mesh.num_faces else pv.PolyData(mesh.vertices)
    # Recomputing normals may flip the winding of inconsistently oriented faces
    poly.save(path, binary=binary, recompute_normals=False)


def write_mesh(path: str, data: MeshData) -> None:
    """Write ``data`` in the format given by the extension of ``path``."""
    _, ext = split_extension(path)
    mesh = data.mesh

    if ext == ".off":
        write_off(path, mesh)
    elif ext == ".obj":
        write_obj(path, mesh)
    elif ext == ".ply":
        write_with_pyvista(path, mesh, binary=False)
    elif ext == ".ply2":
        write_ply2(path, mesh)
    elif ext == ".xyz":
        write_xyz(path, mesh)
    elif ext == ".asc":
        if not data.is_grid:
            raise MeshFormatError("ESRI grid output needs an ESRI grid input")
        write_esri_grid(path, data.grid, mesh.vertices)
    elif ext in (".stl", ".vtk", ".vtp"):
        write_with_pyvista(path, mesh)
    else:
        raise UnsupportedFormat(f"This output file format is not supported: {ext or '(none)'}")
