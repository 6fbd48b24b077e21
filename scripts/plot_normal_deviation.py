#!/usr/bin/env python3
"""
Plot how far face normals and vertices moved during denoising.

Usage:
    python3 scripts/plot_normal_deviation.py noisy.off denoised.off [--output fig.png]
"""

import argparse
import os
import sys

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.denoising.metrics import face_normal_deviation, vertex_displacement, hausdorff_distance
from src.mesh_io import read_mesh

plt.rcParams.update({
    'font.size': 10,
    'axes.labelsize': 11,
    'axes.titlesize': 12,
    'figure.dpi': 150,
    'savefig.bbox': 'tight',
    'axes.grid': True,
    'grid.alpha': 0.3,
})

COLORS = {
    'normals': '#9b59b6',
    'vertices': '#3498db',
}


def plot_deviation(before, after, output_path):
    """Two histograms: normal deviation (degrees) and vertex displacement."""
    if before.mesh.num_vertices != after.mesh.num_vertices or before.mesh.num_faces != after.mesh.num_faces:
        raise ValueError("meshes must share the same topology")

    angles = face_normal_deviation(before.mesh.vertices, after.mesh.vertices, before.mesh.faces)
    angles = angles[np.isfinite(angles)]
    moved = vertex_displacement(before.mesh.vertices, after.mesh.vertices)
    h_dist = hausdorff_distance(before.mesh.vertices, after.mesh.vertices)

    fig, axes = plt.subplots(1, 2, figsize=(10, 4))

    axes[0].hist(angles, bins=60, color=COLORS['normals'], alpha=0.8)
    axes[0].set_xlabel('Face normal change (degrees)')
    axes[0].set_ylabel('Faces')
    axes[0].set_title(f'Normal deviation (mean {np.mean(angles):.2f} deg)' if angles.size else 'Normal deviation')

    axes[1].hist(moved, bins=60, color=COLORS['vertices'], alpha=0.8)
    axes[1].set_xlabel('Vertex displacement')
    axes[1].set_ylabel('Vertices')
    axes[1].set_title(f'Displacement (Hausdorff {h_dist:.4g})')

    fig.tight_layout()
    fig.savefig(output_path)
    plt.close(fig)
    return output_path


def main():
    parser = argparse.ArgumentParser(description='Plot denoising deviation histograms')
    parser.add_argument('before', help='Mesh before denoising')
    parser.add_argument('after', help='Mesh after denoising')
    parser.add_argument('--output', type=str, default='outputs/figures/normal_deviation.png',
                        help='Output image path')
    args = parser.parse_args()

    out_dir = os.path.dirname(args.output)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)

    plot_deviation(read_mesh(args.before), read_mesh(args.after), args.output)
    print(f"Figure saved to {args.output}")


if __name__ == "__main__":
    main()
