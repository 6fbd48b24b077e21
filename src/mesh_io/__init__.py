"""
Mesh, point-set and elevation-grid file I/O for the denoiser.
"""

from .formats import (
    MeshData,
    MeshFormatError,
    UnsupportedFormat,
    READ_FORMATS,
    WRITE_FORMATS,
    resolve_input_path,
    resolve_output_path,
    default_output_path,
    copy_projection_file,
)
from .terrain import EsriGrid, grid_to_mesh, mesh_to_grid_values, triangulate_points
from .readers import read_mesh
from .writers import write_mesh

__all__ = [
    'MeshData',
    'MeshFormatError',
    'UnsupportedFormat',
    'READ_FORMATS',
    'WRITE_FORMATS',
    'resolve_input_path',
    'resolve_output_path',
    'default_output_path',
    'copy_projection_file',
    'EsriGrid',
    'grid_to_mesh',
    'mesh_to_grid_values',
    'triangulate_points',
    'read_mesh',
    'write_mesh',
]
