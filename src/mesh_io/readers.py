"""Readers for the supported mesh, point and grid formats.

OFF goes through trimesh and the binary-capable formats (PLY, STL, VTK)
through PyVista. PLY2, OBJ/SMF, GTS, VRML, XYZ and ESRI ASCII grids are
parsed here so that vertex ids stay as written in the file.
"""

from __future__ import annotations

import re

import numpy as np
import pyvista as pv
from trimesh.exchange.off import load_off

from ..denoising.mesh import TriangleMesh
from .formats import MeshData, MeshFormatError, resolve_input_path
from .terrain import EsriGrid, grid_to_mesh, triangulate_points

_WRL_POINTS = re.compile(r"\bCoordinate\s*\{\s*point\s*\[(.*?)\]", re.DOTALL)
_WRL_INDICES = re.compile(r"\bcoordIndex\s*\[(.*?)\]", re.DOTALL)


def _fan(polygon: list[int]) -> list[list[int]]:
    """Split a polygon into triangles sharing its first vertex."""
    return [[polygon[0], polygon[i], polygon[i + 1]] for i in range(1, len(polygon) - 1)]


def _read_counted(tokens: list[str], num_verts: int, num_faces: int, start: int, path: str):
    """Vertex block then ``n i0 i1 ...`` face records."""
    pos = start
    try:
        verts = np.array(tokens[pos:pos + 3 * num_verts], dtype=np.float64).reshape(num_verts, 3)
        pos += 3 * num_verts
        faces = []
        for _ in range(num_faces):
            n = int(tokens[pos])
            polygon = [int(t) for t in tokens[pos + 1:pos + 1 + n]]
            if len(polygon) != n:
                raise MeshFormatError(f"{path}: truncated face record")
            faces.extend(_fan(polygon))
            pos += 1 + n
    except (ValueError, IndexError) as exc:
        if isinstance(exc, MeshFormatError):
            raise
        raise MeshFormatError(f"{path}: malformed vertex or face data") from exc
    return verts, np.array(faces, dtype=np.int64).reshape(-1, 3)


def read_off(path: str) -> TriangleMesh:
    """OFF through trimesh; quads and larger polygons come back triangulated."""
    try:
        with open(path, "rb") as fh:
            loaded = load_off(fh)
        verts = np.asarray(loaded["vertices"], dtype=np.float64).reshape(-1, 3)
        faces = np.asarray(loaded["faces"], dtype=np.int64).reshape(-1, 3)
    except (ValueError, NameError, IndexError) as exc:
        raise MeshFormatError(f"{path}: not a valid OFF file ({exc})") from exc
    return TriangleMesh(verts, faces)


def read_ply2(path: str) -> TriangleMesh:
    with open(path, "r", encoding="utf-8", errors="replace") as fh:
        tokens = fh.read().split()
    try:
        num_verts, num_faces = int(tokens[0]), int(tokens[1])
    except (IndexError, ValueError) as exc:
        raise MeshFormatError(f"{path}: not a valid PLY2 file") from exc
    verts, faces = _read_counted(tokens, num_verts, num_faces, 2, path)
    return TriangleMesh(verts, faces)


def read_obj(path: str) -> TriangleMesh:
    """Wavefront OBJ (also SMF): ``v`` and ``f`` records, other records skipped."""
    verts = []
    faces = []
    with open(path, "r", encoding="utf-8", errors="replace") as fh:
        for lineno, line in enumerate(fh, start=1):
            parts = line.split("#", 1)[0].split()
            if not parts:
                continue
            try:
                if parts[0] == "v":
                    verts.append([float(x) for x in parts[1:4]])
                elif parts[0] == "f":
                    # "f 1/2/3 ..." keeps the vertex index only; negatives are relative
                    polygon = []
                    for ref in parts[1:]:
                        idx = int(ref.split("/")[0])
                        polygon.append(idx - 1 if idx > 0 else len(verts) + idx)
                    if len(polygon) < 3:
                        raise MeshFormatError(f"{path}:{lineno}: face with fewer than 3 vertices")
                    faces.extend(_fan(polygon))
            except ValueError as exc:
                if isinstance(exc, MeshFormatError):
                    raise
                raise MeshFormatError(f"{path}:{lineno}: cannot parse {parts[0]!r} record") from exc

    return TriangleMesh(np.array(verts, dtype=np.float64).reshape(-1, 3),
                        np.array(faces, dtype=np.int64).reshape(-1, 3))


def read_gts(path: str) -> TriangleMesh:
    """GNU Triangulated Surface: vertices, 1-based edges, faces as three edges.

    Each face takes both ends of its first edge and the end of its second
    edge that is not shared with the first.
    """
    with open(path, "r", encoding="utf-8", errors="replace") as fh:
        lines = [line.split() for line in fh if not line.lstrip().startswith("#")]
    lines = [parts for parts in lines if parts]

    try:
        num_verts, num_edges, num_faces = (int(t) for t in lines[0][:3])
        body = lines[1:]
        verts = np.array([parts[:3] for parts in body[:num_verts]], dtype=np.float64).reshape(num_verts, 3)
        edges = np.array([parts[:2] for parts in body[num_verts:num_verts + num_edges]],
                         dtype=np.int64).reshape(num_edges, 2)
        face_edges = np.array([parts[:3] for parts in body[num_verts + num_edges:num_verts + num_edges + num_faces]],
                              dtype=np.int64).reshape(num_faces, 3)
    except (IndexError, ValueError) as exc:
        raise MeshFormatError(f"{path}: not a valid GTS file") from exc

    if num_faces and (face_edges.min() < 1 or face_edges.max() > num_edges):
        raise MeshFormatError(f"{path}: face refers to a missing edge")

    first = edges[face_edges[:, 0] - 1]
    second = edges[face_edges[:, 1] - 1]
    shared = (second[:, 0] == first[:, 0]) | (second[:, 0] == first[:, 1])
    third = np.where(shared, second[:, 1], second[:, 0])
    faces = np.column_stack([first, third]) - 1
    return TriangleMesh(verts, faces)


def read_wrl(path: str) -> TriangleMesh:
    """VRML ``IndexedFaceSet``: the first ``Coordinate`` point list and ``coordIndex``."""
    with open(path, "r", encoding="utf-8", errors="replace") as fh:
        text = "\n".join(line.split("#", 1)[0] for line in fh)

    points = _WRL_POINTS.search(text)
    indices = _WRL_INDICES.search(text)
    if points is None or indices is None:
        raise MeshFormatError(f"{path}: no IndexedFaceSet coordinates found")

    try:
        coords = np.array(points.group(1).replace(",", " ").split(), dtype=np.float64)
        refs = [int(t) for t in indices.group(1).replace(",", " ").split()]
    except ValueError as exc:
        raise MeshFormatError(f"{path}: malformed IndexedFaceSet") from exc
    if coords.size % 3:
        raise MeshFormatError(f"{path}: point list is not made of x y z triples")

    # Polygons end at -1; the last one may omit it
    faces = []
    polygon = []
    for idx in refs + [-1]:
        if idx != -1:
            polygon.append(idx)
            continue
        if polygon:
            if len(polygon) < 3:
                raise MeshFormatError(f"{path}: face with fewer than 3 vertices")
            faces.extend(_fan(polygon))
        polygon = []

    return TriangleMesh(coords.reshape(-1, 3), np.array(faces, dtype=np.int64).reshape(-1, 3))


def read_with_pyvista(path: str) -> TriangleMesh:
    """PLY, STL and VTK files; polygons are triangulated by PyVista."""
    try:
        data = pv.read(path)
    except Exception as exc:
        raise MeshFormatError(f"{path}: cannot be read ({exc})") from exc

    if not isinstance(data, pv.PolyData):
        data = data.extract_surface()
    data = data.triangulate()

    faces = np.asarray(data.faces, dtype=np.int64)
    faces = faces.reshape(-1, 4)[:, 1:] if faces.size else np.zeros((0, 3), dtype=np.int64)
    return TriangleMesh(np.asarray(data.points, dtype=np.float64), faces)


def read_xyz_points(path: str) -> np.ndarray:
    """Rows of ``x y z``; lines that do not start with a number are skipped."""
    rows = []
    with open(path, "r", encoding="utf-8", errors="replace") as fh:
        for line in fh:
            parts = line.replace(",", " ").split()
            if len(parts) < 3:
                continue
            try:
                rows.append([float(parts[0]), float(parts[1]), float(parts[2])])
            except ValueError:
                continue
    return np.array(rows, dtype=np.float64).reshape(-1, 3)


def read_esri_grid(path: str) -> EsriGrid:
    """ESRI ASCII grid; the NODATA_value line is optional."""
    with open(path, "r", encoding="utf-8", errors="replace") as fh:
        tokens = fh.read().split()

    header = {}
    pos = 0
    while pos + 1 < len(tokens) and tokens[pos][0].isalpha():
        header[tokens[pos].lower()] = tokens[pos + 1]
        pos += 2

    try:
        ncols = int(header["ncols"])
        nrows = int(header["nrows"])
        xll = float(header.get("xllcorner", header.get("xllcenter", 0.0)))
        yll = float(header.get("yllcorner", header.get("yllcenter", 0.0)))
        cellsize = float(header["cellsize"])
        nodata = float(header["nodata_value"]) if "nodata_value" in header else None
        values = np.array(tokens[pos:pos + ncols * nrows], dtype=np.float64)
    except (KeyError, ValueError) as exc:
        raise MeshFormatError(f"{path}: not a valid ESRI ASCII grid") from exc

    if values.size != ncols * nrows:
        raise MeshFormatError(f"{path}: expected {ncols * nrows} values, found {values.size}")

    return EsriGrid(
        ncols=ncols,
        nrows=nrows,
        xllcorner=xll,
        yllcorner=yll,
        cellsize=cellsize,
        values=values.reshape(nrows, ncols),
        nodata_value=nodata,
    )


def read_mesh(path: str, add_vertices: bool = False) -> MeshData:
    """Load any supported file as a triangle mesh.

    Args:
        path: input file; without extension ``.off`` is appended
        add_vertices: refine the triangulation of ``.xyz`` point sets

    Returns:
        MeshData (``grid`` is set for ESRI ``.asc`` input)
    """
    path, ext = resolve_input_path(path)

    if ext == ".off":
        return MeshData(read_off(path), ext)
    if ext == ".ply2":
        return MeshData(read_ply2(path), ext)
    if ext in (".obj", ".smf"):
        return MeshData(read_obj(path), ext)
    if ext == ".gts":
        return MeshData(read_gts(path), ext)
    if ext == ".wrl":
        return MeshData(read_wrl(path), ext)
    if ext == ".xyz":
        return MeshData(triangulate_points(read_xyz_points(path), add_vertices=add_vertices), ext)
    if ext == ".asc":
        grid = read_esri_grid(path)
        return MeshData(grid_to_mesh(grid), ext, grid=grid)
    return MeshData(read_with_pyvista(path), ext)
