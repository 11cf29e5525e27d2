"""
Spatial decomposition of a point set into coarse and fine grids.
"""

from __future__ import annotations

import numpy as np

from monet_rbf.interpolation.base import cKDTree, farthest_point_sampling

__all__ = [
    "bisect_points",
    "coarse_sample",
    "overlapping_domains",
]


def coarse_sample(points: np.ndarray, size: int, seed_indices: np.ndarray) -> np.ndarray:
    """Deterministic spatially spread subsample that contains ``seed_indices``."""
    seeds = np.ascontiguousarray(seed_indices, dtype=np.int64)
    return np.sort(farthest_point_sampling(points, size, seeds))


def bisect_points(points: np.ndarray, indices: np.ndarray, max_size: int) -> list[np.ndarray]:
    """Recursively split ``indices`` at the median of the longest axis.

    Returns:
        List of disjoint index arrays, each with at most ``max_size`` entries,
        covering ``indices``.
    """
    leaves = []
    stack = [indices]
    while stack:
        current = stack.pop()
        if len(current) <= max_size:
            leaves.append(current)
            continue
        coords = points[current]
        axis = int(np.argmax(coords.max(axis=0) - coords.min(axis=0)))
        half = len(current) // 2
        order = np.argpartition(coords[:, axis], half)
        stack.append(current[order[half:]])
        stack.append(current[order[:half]])
    return leaves


def overlapping_domains(
    points: np.ndarray,
    fine_grid_size: int,
    overlap: float,
    reference_indices: np.ndarray,
) -> list[tuple[np.ndarray, np.ndarray]]:
    """Partition the points into inner sets and grow each into an overlapping domain.

    Each inner set comes from median bisection. Its domain adds the nearest
    neighbours within ``(1 + overlap)`` times the inner radius, up to
    ``fine_grid_size`` points, and always the reference points.

    Returns:
        List of (point_indices, inner_mask) pairs.
    """
    n = len(points)
    inner_size = max(1, int(fine_grid_size * (1.0 - overlap)))
    leaves = bisect_points(points, np.arange(n), inner_size)
    tree = cKDTree(points)
    reference_indices = np.asarray(reference_indices, dtype=np.int64)

    domains = []
    for inner in leaves:
        inner = np.sort(inner)
        center = points[inner].mean(axis=0)
        radius = np.max(np.linalg.norm(points[inner] - center, axis=1)) * (1.0 + overlap)

        neighbours = np.asarray(tree.query_ball_point(center, radius), dtype=np.int64)
        outer = np.setdiff1d(neighbours, inner)
        n_outer = max(0, fine_grid_size - len(inner))
        if len(outer) > n_outer:
            dist = np.linalg.norm(points[outer] - center, axis=1)
            outer = outer[np.argsort(dist, kind="stable")[:n_outer]]

        outer = np.union1d(outer, np.setdiff1d(reference_indices, inner))
        point_indices = np.concatenate([inner, outer])
        inner_mask = np.zeros(len(point_indices), dtype=bool)
        inner_mask[: len(inner)] = True
        domains.append((point_indices, inner_mask))
    return domains
