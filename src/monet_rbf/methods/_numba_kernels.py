"""
Numba-optimized kernels for RBF fitting and evaluation.

This module provides JIT-compiled functions for the distance computations and
the spatial sampling used by the evaluator and the preconditioner.
"""

import numpy as np
from numba import jit, prange


@jit(nopython=True, nogil=True, parallel=True)
def pairwise_distances(
    points_a,  # (n_a, 3)
    points_b,  # (n_b, 3)
):
    """
    Euclidean distances between every pair of points.

    Args:
        points_a: 2D array of 3D points (n_a, 3)
        points_b: 2D array of 3D points (n_b, 3)

    Returns:
        Distance matrix (n_a, n_b)
    """
    n_a = points_a.shape[0]
    n_b = points_b.shape[0]

    result = np.empty((n_a, n_b), dtype=np.float64)

    for i in prange(n_a):
        ax = points_a[i, 0]
        ay = points_a[i, 1]
        az = points_a[i, 2]
        for j in range(n_b):
            dx = ax - points_b[j, 0]
            dy = ay - points_b[j, 1]
            dz = az - points_b[j, 2]
            result[i, j] = np.sqrt(dx * dx + dy * dy + dz * dz)

    return result


@jit(nopython=True, nogil=True)
def farthest_point_sampling(
    points,  # (n, 3)
    n_samples,
    seed_indices,  # (k,) indices that must be part of the sample
):
    """
    Greedy farthest-point subsample of a point set.

    The sample starts with ``seed_indices`` (or index 0 when empty) and repeatedly
    adds the point farthest from the current sample. Ties go to the lowest index,
    so the result is deterministic.

    Args:
        points: 2D array of 3D points (n, 3)
        n_samples: Size of the sample, clipped to n
        seed_indices: Array of indices always included in the sample

    Returns:
        Array of sampled indices (n_samples,), seeds first
    """
    n = points.shape[0]
    n_samples = min(n_samples, n)

    result = np.empty(n_samples, dtype=np.int64)
    min_dist = np.full(n, np.inf)

    n_selected = 0
    n_seeds = seed_indices.shape[0]
    if n_seeds == 0:
        seeds = np.zeros(1, dtype=np.int64)
    else:
        seeds = seed_indices

    for s in range(seeds.shape[0]):
        idx = seeds[s]
        if n_selected >= n_samples:
            break
        # Skip duplicate seeds
        if min_dist[idx] < 0.0:
            continue
        result[n_selected] = idx
        n_selected += 1
        min_dist[idx] = -1.0
        for j in range(n):
            if min_dist[j] < 0.0:
                continue
            dx = points[j, 0] - points[idx, 0]
            dy = points[j, 1] - points[idx, 1]
            dz = points[j, 2] - points[idx, 2]
            d = dx * dx + dy * dy + dz * dz
            if d < min_dist[j]:
                min_dist[j] = d

    while n_selected < n_samples:
        best = -1
        best_dist = -1.0
        for j in range(n):
            if min_dist[j] > best_dist:
                best_dist = min_dist[j]
                best = j
        result[n_selected] = best
        n_selected += 1
        min_dist[best] = -1.0
        for j in range(n):
            if min_dist[j] < 0.0:
                continue
            dx = points[j, 0] - points[best, 0]
            dy = points[j, 1] - points[best, 1]
            dz = points[j, 2] - points[best, 2]
            d = dx * dx + dy * dy + dz * dz
            if d < min_dist[j]:
                min_dist[j] = d

    return result[:n_selected]


@jit(nopython=True, nogil=True, parallel=True)
def box_distance_bounds(
    query_min,  # (n_q, 3)
    query_max,  # (n_q, 3)
    source_min,  # (n_s, 3)
    source_max,  # (n_s, 3)
):
    """
    Minimum and maximum distances between pairs of axis-aligned boxes.

    Args:
        query_min, query_max: Corners of the query boxes
        source_min, source_max: Corners of the source boxes

    Returns:
        Tuple of (dmin, dmax), each of shape (n_q, n_s)
    """
    n_q = query_min.shape[0]
    n_s = source_min.shape[0]

    dmin = np.empty((n_q, n_s), dtype=np.float64)
    dmax = np.empty((n_q, n_s), dtype=np.float64)

    for i in prange(n_q):
        for j in range(n_s):
            near = 0.0
            far = 0.0
            for k in range(3):
                # Gap between the intervals, zero when they overlap
                gap = max(0.0, max(source_min[j, k] - query_max[i, k], query_min[i, k] - source_max[j, k]))
                span = max(query_max[i, k] - source_min[j, k], source_max[j, k] - query_min[i, k])
                near += gap * gap
                far += span * span
            dmin[i, j] = np.sqrt(near)
            dmax[i, j] = np.sqrt(far)

    return dmin, dmax
