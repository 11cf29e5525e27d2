"""
Tests for the Numba-optimized kernels.
"""

import numpy as np

from helpers import random_points_in_cube
from monet_rbf.methods import _numba_kernels


def test_pairwise_distances():
    """Test the pairwise_distances kernel against numpy."""
    a = random_points_in_cube(7, seed=1)
    b = random_points_in_cube(5, seed=2)

    result = _numba_kernels.pairwise_distances(a, b)

    expected = np.linalg.norm(a[:, None, :] - b[None, :, :], axis=2)
    np.testing.assert_allclose(result, expected)


def test_farthest_point_sampling_seeds_and_uniqueness():
    """Test that the sample starts with the seeds and has no duplicates."""
    points = random_points_in_cube(100, seed=4)
    seeds = np.array([10, 3, 10], dtype=np.int64)

    result = _numba_kernels.farthest_point_sampling(points, 20, seeds)

    assert len(result) == 20
    assert list(result[:2]) == [10, 3]
    assert len(np.unique(result)) == 20


def test_farthest_point_sampling_spread():
    """Test that the second sample is the point farthest from the first."""
    points = np.array([[0.0, 0, 0], [1.0, 0, 0], [5.0, 0, 0], [2.0, 0, 0]])

    result = _numba_kernels.farthest_point_sampling(points, 3, np.zeros(0, dtype=np.int64))

    assert list(result) == [0, 2, 3]


def test_farthest_point_sampling_clips_to_size():
    """Test that asking for more samples than points returns every point."""
    points = random_points_in_cube(5)
    result = _numba_kernels.farthest_point_sampling(points, 50, np.array([0], dtype=np.int64))
    assert sorted(result) == [0, 1, 2, 3, 4]


def test_box_distance_bounds():
    """Test the minimum and maximum distances between boxes."""
    q_min = np.array([[0.0, 0.0, 0.0]])
    q_max = np.array([[1.0, 1.0, 1.0]])
    s_min = np.array([[3.0, 0.0, 0.0], [0.5, 0.5, 0.5]])
    s_max = np.array([[4.0, 1.0, 1.0], [2.0, 2.0, 2.0]])

    dmin, dmax = _numba_kernels.box_distance_bounds(q_min, q_max, s_min, s_max)

    np.testing.assert_allclose(dmin, [[2.0, 0.0]])
    np.testing.assert_allclose(dmax, [[np.sqrt(16 + 1 + 1), np.sqrt(3 * 4.0)]])
