"""File-format detection and output naming for mesh files."""

from __future__ import annotations

import os
import shutil
import warnings
from dataclasses import dataclass
from typing import Optional

from ..denoising.mesh import TriangleMesh

READ_FORMATS = (".off", ".obj", ".smf", ".gts", ".wrl", ".ply", ".ply2", ".stl", ".vtk", ".vtp", ".xyz", ".asc")
WRITE_FORMATS = (".off", ".obj", ".ply", ".ply2", ".stl", ".vtk", ".vtp", ".xyz", ".asc")
DEFAULT_FORMAT = ".off"

# Longer suffixes are treated as part of the file name
_MAX_EXT_LEN = 5


class MeshFormatError(ValueError):
    """A mesh file is malformed or cannot hold the requested data."""


class UnsupportedFormat(MeshFormatError):
    """The file extension is not one of the supported formats."""


@dataclass
class MeshData:
    """A loaded mesh plus whatever its source format needs to be written back."""

    mesh: TriangleMesh
    source_format: str = DEFAULT_FORMAT
    grid: Optional[object] = None  # EsriGrid for .asc input

    @property
    def is_grid(self) -> bool:
        return self.grid is not None


def split_extension(path: str) -> tuple[str, str]:
    """Split ``path`` into ``(stem, ext)`` with ``ext`` lower-cased.

    ``ext`` is empty when the path has no usable extension.
    """
    stem, ext = os.path.splitext(path)
    if not ext or len(ext) > _MAX_EXT_LEN:
        return path, ""
    return stem, ext.lower()


def resolve_input_path(path: str) -> tuple[str, str]:
    """Return ``(path, format)`` for an input file; no extension means OFF."""
    _, ext = split_extension(path)
    if not ext:
        return path + DEFAULT_FORMAT, DEFAULT_FORMAT
    if ext not in READ_FORMATS:
        raise UnsupportedFormat(f"This input file format is not supported: {ext}")
    return path, ext


def _writable(ext: str) -> str:
    return ext if ext in WRITE_FORMATS else DEFAULT_FORMAT


def default_output_path(input_path: str, tag: str) -> str:
    """``<stem>_<tag><ext>``, e.g. ``bunny_V_0.40_20_50.off``."""
    stem, ext = split_extension(input_path)
    return f"{stem}_{tag}{_writable(ext or DEFAULT_FORMAT)}"


def resolve_output_path(input_path: str, output_path: Optional[str], tag: str) -> tuple[str, str]:
    """Work out where and in which format the result is written.

    Returns ``(path, format)``. Without an explicit output the name is built
    from the input name and ``tag``. An output without extension inherits
    the input's format; an unsupported one falls back to OFF with a warning.
    An output equal to the input (ignoring case) is prefixed with ``ERR`` so
    the input is never overwritten.
    """
    _, in_ext = split_extension(input_path)

    if output_path is None:
        path = default_output_path(input_path, tag)
    else:
        _, out_ext = split_extension(output_path)
        if not out_ext:
            path = output_path + _writable(in_ext or DEFAULT_FORMAT)
        elif out_ext not in WRITE_FORMATS:
            warnings.warn(
                f"This output file format is not supported: {out_ext}; "
                f"the default format ({DEFAULT_FORMAT}) is used."
            )
            path = output_path + DEFAULT_FORMAT
        else:
            path = output_path

        if os.path.normcase(path).lower() == os.path.normcase(input_path).lower():
            warnings.warn(
                "The input and output file names are the same; "
                "the output file name is prefixed with 'ERR'."
            )
            head, name = os.path.split(path)
            path = os.path.join(head, "ERR" + name)

    return path, split_extension(path)[1]


def copy_projection_file(input_path: str, output_path: str) -> Optional[str]:
    """Copy the ``.prj`` side-car of an ESRI grid next to its output.

    Returns the written path, or None when the input has no ``.prj`` file.
    """
    source = split_extension(input_path)[0] + ".prj"
    if not os.path.exists(source):
        return None
    target = split_extension(output_path)[0] + ".prj"
    shutil.copyfile(source, target)
    return target
