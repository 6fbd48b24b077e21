#!/usr/bin/env python3
"""
Command-line feature-preserving mesh denoiser.

Reads a mesh (or an .xyz point set / .asc elevation grid), filters its face
normals, updates the vertices and writes the result.

Usage:
    python3 scripts/denoise_mesh.py -i cylinderN02.ply2
    python3 scripts/denoise_mesh.py -i cylinderN02.ply2 -n 5 -o cylinderDN
    python3 scripts/denoise_mesh.py -i cylinderN02.ply2 -t 0.8 -e -v 20 -o cylinderDN.obj
    python3 scripts/denoise_mesh.py -i Terrain.xyz -o TerrainP -z -n 1
    python3 scripts/denoise_mesh.py -i my_dem_utm.asc -o my_dem_utmP -n 4
"""

import argparse
import os
import sys
import time
import warnings

# Add parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from src.denoising import DenoiseParams, denoise, denoise_report
from src.denoising.config import (
    DEFAULT_NORMAL_ITERATIONS,
    DEFAULT_THRESHOLD,
    DEFAULT_VERTEX_ITERATIONS,
)
from src.mesh_io import (
    READ_FORMATS,
    WRITE_FORMATS,
    copy_projection_file,
    read_mesh,
    resolve_input_path,
    resolve_output_path,
    write_mesh,
)


def build_parser():
    parser = argparse.ArgumentParser(
        description='Feature-preserving mesh denoising',
        epilog=(
            f"Supported input types: {', '.join(READ_FORMATS)}. "
            f"Supported output types: {', '.join(WRITE_FORMATS)}. "
            "Default file extension: .off"
        ),
    )
    parser.add_argument('-i', '--input', required=True,
                        help='Input file')
    parser.add_argument('-o', '--output', default=None,
                        help='Output file (default: <input>_<V|E>_<t>_<n>_<v>.<ext>)')
    parser.add_argument('-e', '--edge', action='store_true',
                        help='Common edge type of face neighbourhood (default: common vertex)')
    parser.add_argument('-t', '--threshold', type=float, default=DEFAULT_THRESHOLD,
                        help=f'Threshold in (0,1) (default: {DEFAULT_THRESHOLD})')
    parser.add_argument('-n', '--normal-iterations', type=int, default=DEFAULT_NORMAL_ITERATIONS,
                        help=f'Number of iterations for normal updating (default: {DEFAULT_NORMAL_ITERATIONS})')
    parser.add_argument('-v', '--vertex-iterations', type=int, default=DEFAULT_VERTEX_ITERATIONS,
                        help=f'Number of iterations for vertex updating (default: {DEFAULT_VERTEX_ITERATIONS})')
    parser.add_argument('-a', '--add-vertices', action='store_true',
                        help='Add vertices to get a higher-quality triangulation (.xyz input only)')
    parser.add_argument('-z', '--z-only', action='store_true',
                        help='Only update the z coordinate of vertices')
    parser.add_argument('--report', action='store_true',
                        help='Print displacement / normal deviation statistics')
    return parser


def params_from_args(args, is_grid=False):
    """Validated parameters; warnings about replaced values are printed."""
    params = DenoiseParams(
        neighbourhood='edge' if args.edge else 'vertex',
        threshold=args.threshold,
        normal_iterations=args.normal_iterations,
        vertex_iterations=args.vertex_iterations,
        z_only=args.z_only or is_grid,
        add_vertices=args.add_vertices,
    )
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter('always')
        params = params.validated()
    for w in caught:
        print(f"Warning: {w.message}")
    return params


def run(args):
    input_path, input_format = resolve_input_path(args.input)
    params = params_from_args(args, is_grid=(input_format == '.asc'))

    print(f"Input File: {input_path}")
    print(f"Neighbourhood: {'Common Vertex' if params.neighbourhood == 'vertex' else 'Common Edge'}")
    print(f"Threshold: {params.threshold:f}")
    print(f"n1: {params.normal_iterations}")
    print(f"n2: {params.vertex_iterations}")

    start = time.time()
    print("Read Model...", end='')
    data = read_mesh(input_path, add_vertices=params.add_vertices)
    print(f"{time.time() - start:10.3f} seconds")
    print(f"  Mesh: {data.mesh.num_vertices} vertices, {data.mesh.num_faces} faces")

    original = data.mesh.vertices.copy()

    start = time.time()
    print("Denoising Model...", end='')
    denoise(data.mesh, params)
    print(f"{time.time() - start:10.3f} seconds")

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter('always')
        output_path, _ = resolve_output_path(input_path, args.output, params.tag)
    for w in caught:
        print(f"Warning: {w.message}")

    start = time.time()
    print("Saving Model...", end='')
    write_mesh(output_path, data)
    if data.is_grid and output_path.lower().endswith('.asc'):
        if copy_projection_file(input_path, output_path) is None:
            print("\nNo .prj file is found.", end='')
    print(f"{time.time() - start:10.3f} seconds")
    print(f"Output File: {output_path}")

    if args.report and data.mesh.num_faces:
        stats = denoise_report(original, data.mesh.vertices, data.mesh.faces)
        print("\nReport:")
        for key, value in stats.items():
            print(f"  {key}: {value:.6f}")

    return output_path


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        run(args)
    except (OSError, ValueError) as exc:
        print(f"\nError: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
