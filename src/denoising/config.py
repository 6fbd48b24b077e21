"""Parameters of the feature-preserving denoiser."""

from __future__ import annotations

import warnings
from dataclasses import dataclass, replace

from .topology import NEIGHBOURHOODS

DEFAULT_THRESHOLD = 0.4
DEFAULT_NORMAL_ITERATIONS = 20
DEFAULT_VERTEX_ITERATIONS = 50


@dataclass(frozen=True)
class DenoiseParams:
    neighbourhood: str = "vertex"  # 'vertex' (common vertex) or 'edge' (common edge)
    threshold: float = DEFAULT_THRESHOLD  # sigma, must lie in (0, 1)
    normal_iterations: int = DEFAULT_NORMAL_ITERATIONS  # n1
    vertex_iterations: int = DEFAULT_VERTEX_ITERATIONS  # n2
    z_only: bool = False  # only move vertices along z (elevation grids)
    add_vertices: bool = False  # refine scattered-point triangulations

    def validated(self) -> "DenoiseParams":
        """Return a copy with out-of-range values replaced by the defaults.

        Each replacement is reported through :func:`warnings.warn`. An
        unknown neighbourhood is a programming error and raises ``ValueError``.
        """
        if self.neighbourhood not in NEIGHBOURHOODS:
            raise ValueError(
                f"Unknown neighbourhood: {self.neighbourhood!r} (expected one of {NEIGHBOURHOODS})"
            )

        changes = {}
        if not 0.0 < self.threshold < 1.0:
            warnings.warn(
                f"The threshold must be within (0,1), got {self.threshold}; "
                f"using the default value {DEFAULT_THRESHOLD}."
            )
            changes["threshold"] = DEFAULT_THRESHOLD
        if self.normal_iterations < 1:
            warnings.warn(
                "The number of iterations for normal updating must be at least 1, "
                f"got {self.normal_iterations}; using the default value {DEFAULT_NORMAL_ITERATIONS}."
            )
            changes["normal_iterations"] = DEFAULT_NORMAL_ITERATIONS
        if self.vertex_iterations < 1:
            warnings.warn(
                "The number of iterations for vertex updating must be at least 1, "
                f"got {self.vertex_iterations}; using the default value {DEFAULT_VERTEX_ITERATIONS}."
            )
            changes["vertex_iterations"] = DEFAULT_VERTEX_ITERATIONS

        return replace(self, **changes) if changes else self

    @property
    def tag(self) -> str:
        """Short label used in default output file names, e.g. ``V_0.40_20_50``."""
        kind = "V" if self.neighbourhood == "vertex" else "E"
        return f"{kind}_{self.threshold:.2f}_{self.normal_iterations}_{self.vertex_iterations}"
