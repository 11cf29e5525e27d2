"""
Base imports and types shared by the evaluators.
"""

from __future__ import annotations

from scipy.spatial import cKDTree  # type: ignore

from monet_rbf.methods._numba_kernels import (
    box_distance_bounds,
    farthest_point_sampling,
    pairwise_distances,
)

__all__ = [
    "box_distance_bounds",
    "cKDTree",
    "farthest_point_sampling",
    "pairwise_distances",
]
