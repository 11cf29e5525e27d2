"""
Tests for the fitter family.
"""

import numpy as np
import pytest

from helpers import random_points_in_cube, smooth_field
from monet_rbf.constants import FitState
from monet_rbf.core import RBFFitter, RBFIncrementalFitter, RBFInequalityFitter
from monet_rbf.interpolation import RBFEvaluator
from monet_rbf.kernels import Biharmonic3D, CovSpherical
from monet_rbf.model import Model
from monet_rbf.solver import SolverSettings
from monet_rbf.utils import NotSupportedError


def _evaluate(model, centers, weights, points):
    evaluator = RBFEvaluator(model, centers, method="direct")
    evaluator.set_weights(weights)
    return evaluator.evaluate_points(points)


def test_rbf_fitter():
    """Test that the plain fitter reproduces the values at every point."""
    points = random_points_in_cube(200, seed=1)
    values = smooth_field(points)
    model = Model(Biharmonic3D(1.0), poly_degree=1)
    fitter = RBFFitter(model, points)

    weights = fitter.fit(values, 1e-8)

    assert weights.shape == (204,)
    assert fitter.state is FitState.CONVERGED
    np.testing.assert_allclose(_evaluate(model, points, weights, points), values, atol=1e-8)
    assert fitter.info()["type"] == "RBFFitter"


def test_incremental_fitter():
    """Test that the incremental fitter meets the tolerance with fewer centers."""
    points = random_points_in_cube(800, seed=2)
    values = smooth_field(points)
    model = Model(Biharmonic3D(1.0), poly_degree=0)
    tol = 1e-3
    settings = SolverSettings(min_points_to_add=16, growth_ratio=0.25)
    fitter = RBFIncrementalFitter(model, points, settings)

    centers, weights = fitter.fit(values, tol)

    assert fitter.state in (FitState.CONVERGED, FitState.EXHAUSTED)
    assert len(np.unique(centers)) == len(centers)
    assert weights.shape == (len(centers) + 1,)
    fitted = _evaluate(model, points[centers], weights, points)
    assert np.abs(fitted - values).max() <= tol * (1 + 1e-6)
    assert np.abs(fitter.residuals).max() <= tol * (1 + 1e-6)


def test_incremental_fitter_exhausts_tiny_problem():
    """Test that a problem needing every point ends in EXHAUSTED."""
    points = random_points_in_cube(6, seed=3)
    values = np.random.default_rng(3).normal(size=6)
    model = Model(Biharmonic3D(1.0), poly_degree=0)
    fitter = RBFIncrementalFitter(model, points, SolverSettings(min_points_to_add=1, growth_ratio=0.0))

    centers, _ = fitter.fit(values, 1e-10)

    assert sorted(centers) == list(range(6))
    assert fitter.state is FitState.EXHAUSTED


def test_incremental_seed_without_polynomial():
    """Test that without a polynomial the seed is the largest value."""
    points = random_points_in_cube(30, seed=4)
    values = np.zeros(30)
    values[17] = -5.0
    fitter = RBFIncrementalFitter(Model(CovSpherical(1.0, 0.5), poly_degree=-1), points)
    assert list(fitter._seed(values)) == [17]


@pytest.mark.parametrize("fitter_class", [RBFIncrementalFitter, RBFInequalityFitter])
def test_nugget_not_supported(fitter_class):
    """Test that the greedy fitters reject a nugget."""
    points = random_points_in_cube(10)
    fitter = fitter_class(Model(Biharmonic3D(1.0), nugget=0.1), points)
    args = (np.zeros(10), np.zeros(10), np.zeros(10), 1e-3) if fitter_class is RBFInequalityFitter else (np.zeros(10), 1e-3)
    with pytest.raises(NotSupportedError):
        fitter.fit(*args)
    assert fitter.state is None


def test_inequality_fitter():
    """Test equality targets, bounds and unbounded points together."""
    points = random_points_in_cube(400, seed=5)
    n = len(points)
    rng = np.random.default_rng(5)
    values = smooth_field(points)
    lb = np.full(n, np.nan)
    ub = np.full(n, np.nan)

    # Half the points are only bounded, a few are unconstrained
    bounded = rng.permutation(n)[: n // 2]
    values[bounded] = np.nan
    lb[bounded] = -0.2
    ub[bounded[::2]] = 0.3
    free = bounded[:5]
    lb[free] = np.nan
    ub[free] = np.nan

    tol = 1e-4
    model = Model(Biharmonic3D(1.0), poly_degree=0)
    fitter = RBFInequalityFitter(model, points, SolverSettings(min_points_to_add=16))
    centers, weights = fitter.fit(values, lb, ub, tol)

    assert fitter.state in (FitState.CONVERGED, FitState.EXHAUSTED)
    fitted = _evaluate(model, points[centers], weights, points)
    slack = tol + 1e-9

    eq = np.isfinite(values)
    assert np.abs(fitted[eq] - values[eq]).max() <= slack
    has_lb = np.isfinite(lb)
    has_ub = np.isfinite(ub)
    assert np.all(fitted[has_lb] >= lb[has_lb] - slack)
    assert np.all(fitted[has_ub] <= ub[has_ub] + slack)


def test_inequality_seed_targets():
    """Test the seed target rules for values and bounds."""
    values = np.array([1.0, np.nan, np.nan, np.nan, np.nan])
    lb = np.array([np.nan, 0.0, 2.0, np.nan, np.nan])
    ub = np.array([np.nan, 4.0, np.nan, -1.0, np.nan])
    targets = RBFInequalityFitter._seed_targets(values, lb, ub, np.arange(5))
    np.testing.assert_array_equal(targets, [1.0, 2.0, 2.0, -1.0, 0.0])


def test_inequality_bounds_validation():
    """Test that crossed bounds and wrong lengths raise."""
    points = random_points_in_cube(10)
    fitter = RBFInequalityFitter(Model(Biharmonic3D(1.0)), points)
    nan = np.full(10, np.nan)
    with pytest.raises(ValueError):
        fitter.fit(nan, np.ones(10), np.zeros(10), 1e-3)
    with pytest.raises(ValueError):
        fitter.fit(nan, np.zeros(9), np.ones(10), 1e-3)
