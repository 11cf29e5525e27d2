"""
Tests for the Interpolant facade.
"""

import numpy as np
import pytest

from helpers import random_points_in_cube, random_points_on_sphere, smooth_field
from monet_rbf import (
    Biharmonic3D,
    BoundingBox,
    ConvergenceError,
    CovExponential,
    Interpolant,
    Model,
    NotSupportedError,
)


@pytest.fixture
def fitted():
    points = random_points_in_cube(300, seed=1)
    values = smooth_field(points)
    interpolant = Interpolant(Model(Biharmonic3D(1.0), poly_degree=1))
    interpolant.fit(points, values, 1e-8)
    return interpolant, points, values


def test_fit_and_evaluate(fitted):
    """Test that the interpolant reproduces the data and interpolates in between."""
    interpolant, points, values = fitted
    assert interpolant.is_fitted
    np.testing.assert_array_equal(interpolant.centers, points)
    assert interpolant.centers_bbox == BoundingBox.from_points(points)
    assert interpolant.weights.shape == (304,)
    np.testing.assert_allclose(interpolant.evaluate_points(points), values, atol=1e-7)

    queries = random_points_in_cube(50, seed=2, lower=-0.5, upper=0.5)
    np.testing.assert_allclose(interpolant.evaluate_points(queries), smooth_field(queries), atol=0.1)


def test_evaluator_rebuilt_only_when_needed(fitted):
    """Test that the evaluator is kept for queries inside its box and rebuilt otherwise."""
    interpolant, points, _ = fitted
    interpolant.evaluate_points(points[:10])
    evaluator = interpolant._evaluator
    interpolant.evaluate_points(points[10:20])
    assert interpolant._evaluator is evaluator

    far = np.array([[3.0, 3.0, 3.0]])
    interpolant.evaluate_points(far)
    assert interpolant._evaluator is not evaluator
    assert interpolant._evaluator.bbox.contains(BoundingBox.from_points(far))
    assert interpolant._evaluator.bbox.contains(interpolant.centers_bbox)


def test_evaluate_points_impl_does_not_rebuild(fitted):
    """Test that evaluate_points_impl uses the evaluation box as set."""
    interpolant, points, _ = fitted
    interpolant.set_evaluation_bbox(BoundingBox((-2, -2, -2), (2, 2, 2)))
    evaluator = interpolant._evaluator
    interpolant.evaluate_points_impl(points[:5])
    assert interpolant._evaluator is evaluator


def test_evaluate_before_fit():
    """Test that evaluating an empty interpolant raises RuntimeError."""
    interpolant = Interpolant(Model(Biharmonic3D(1.0)))
    assert not interpolant.is_fitted
    with pytest.raises(RuntimeError):
        interpolant.evaluate_points(np.zeros((1, 3)))
    with pytest.raises(RuntimeError):
        interpolant.evaluate_points_impl(np.zeros((1, 3)))


@pytest.mark.parametrize(
    ("points", "values", "tolerance"),
    [
        (np.zeros((2, 3)), np.zeros(2), 1e-3),  # fewer points than monomials
        (np.zeros((10, 3)), np.zeros(9), 1e-3),
        (np.zeros((10, 3)), np.zeros(10), 0.0),
    ],
)
def test_invalid_arguments_keep_previous_fit(fitted, points, values, tolerance):
    """Test that invalid arguments raise before the previous fit is cleared."""
    interpolant, _, _ = fitted
    weights = interpolant.weights.copy()
    with pytest.raises(ValueError):
        interpolant.fit(points, values, tolerance)
    assert interpolant.is_fitted
    np.testing.assert_array_equal(interpolant.weights, weights)


def test_nugget_not_supported_keeps_previous_fit():
    """Test that the nugget check happens before clearing."""
    points = random_points_in_cube(50, seed=3)
    values = smooth_field(points)
    interpolant = Interpolant(Model(CovExponential(1.0, 0.5), poly_degree=0, nugget=0.1))
    interpolant.fit(points, values, 1e-6)
    with pytest.raises(NotSupportedError):
        interpolant.fit_incrementally(points, values, 1e-6)
    with pytest.raises(NotSupportedError):
        interpolant.fit_inequality(points, values, values, values, 1e-6)
    assert interpolant.is_fitted


def test_inequality_bound_lengths():
    """Test that bound vectors must match the points."""
    points = random_points_in_cube(20, seed=4)
    interpolant = Interpolant(Model(Biharmonic3D(1.0)))
    with pytest.raises(ValueError):
        interpolant.fit_inequality(points, np.zeros(20), np.zeros(19), np.zeros(20), 1e-3)
    with pytest.raises(ValueError):
        interpolant.fit_inequality(points, np.zeros(20), np.zeros(20), np.zeros(21), 1e-3)


def test_crossed_bounds_keep_previous_fit(fitted):
    """Test that crossed inequality bounds raise before the previous fit is cleared."""
    interpolant, points, _ = fitted
    weights = interpolant.weights.copy()
    n = len(points)
    with pytest.raises(ValueError, match="values_lb <= values_ub"):
        interpolant.fit_inequality(points, np.full(n, np.nan), np.ones(n), np.zeros(n), 1e-6)
    assert interpolant.is_fitted
    np.testing.assert_array_equal(interpolant.weights, weights)


def test_failed_solve_leaves_interpolant_empty(fitted):
    """Test that a failure after validation leaves the interpolant empty."""
    _, points, values = fitted
    interpolant = Interpolant(Model(Biharmonic3D(1.0), poly_degree=1), max_iterations=0)
    with pytest.raises(ConvergenceError):
        interpolant.fit(points, values, 1e-8)
    assert not interpolant.is_fitted
    assert len(interpolant.weights) == 0
    assert interpolant.centers_bbox.is_empty


def test_fit_incrementally():
    """Test the incremental fit through the facade."""
    points = random_points_in_cube(500, seed=5)
    values = smooth_field(points)
    interpolant = Interpolant(Model(Biharmonic3D(1.0), poly_degree=0), min_points_to_add=16)
    interpolant.fit_incrementally(points, values, 1e-3)
    assert len(interpolant.centers) <= 500
    np.testing.assert_allclose(interpolant.evaluate_points(points), values, atol=1e-3 * (1 + 1e-6))


def test_fit_inequality():
    """Test the inequality fit through the facade."""
    points = random_points_in_cube(200, seed=6)
    values = np.full(200, np.nan)
    values[:20] = smooth_field(points[:20])
    lb = np.full(200, -1.0)
    ub = np.full(200, 1.0)
    interpolant = Interpolant(Model(Biharmonic3D(1.0), poly_degree=0), min_points_to_add=8)
    interpolant.fit_inequality(points, values, lb, ub, 1e-4)

    fitted = interpolant.evaluate_points(points)
    slack = 1e-4 + 1e-9
    np.testing.assert_allclose(fitted[:20], values[:20], atol=slack)
    assert np.all(fitted[20:] >= -1.0 - slack)
    assert np.all(fitted[20:] <= 1.0 + slack)


def test_unknown_solver_option():
    """Test that unknown keyword options are rejected."""
    with pytest.raises(TypeError):
        Interpolant(Model(Biharmonic3D(1.0)), coarse_size=10)


def test_fit_with_nugget_over_fine_grids():
    """Test the nugget residual bound when the point set needs fine grids."""
    points = random_points_on_sphere(1500, seed=7)
    values = smooth_field(points)
    nugget = 0.2
    tol = 1e-8
    interpolant = Interpolant(Model(CovExponential(1.0, 0.5), poly_degree=0, nugget=nugget), evaluation_method="direct")
    assert len(points) > interpolant.settings.coarse_grid_size

    interpolant.fit(points, values, tol)

    rbf_weights = interpolant.weights[: len(points)]
    error = np.abs(interpolant.evaluate_points(points) - values)
    assert np.all(error <= tol + nugget * np.abs(rbf_weights) + 1e-12)
