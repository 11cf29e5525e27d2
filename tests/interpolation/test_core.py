"""
Tests for the RBF evaluator.
"""

import numpy as np
import pytest

from helpers import random_points_in_cube
from monet_rbf.interpolation import RBFEvaluator, kernel_matvec
from monet_rbf.kernels import Biharmonic3D, CovGaussian, CovSpherical, Triharmonic3D
from monet_rbf.model import Model
from monet_rbf.polynomial import MonomialBasis
from monet_rbf.utils import BoundingBox


def _dense_evaluate(model, centers, weights, points):
    d = np.linalg.norm(points[:, None, :] - centers[None, :, :], axis=2)
    n = len(centers)
    poly = MonomialBasis(model.poly_degree).evaluate_points(points)
    return model.rbf.evaluate(d) @ weights[:n] + poly @ weights[n:]


@pytest.mark.parametrize(
    "model",
    [
        Model(Biharmonic3D(1.0), poly_degree=0),
        Model(Triharmonic3D(1.0), poly_degree=1),
        Model(CovSpherical(1.0, 0.3), poly_degree=-1),
        Model(CovGaussian(1.0, 0.2), poly_degree=0),
    ],
)
def test_direct_and_accelerated_agree(model):
    """Test that both evaluation methods agree with a dense evaluation."""
    rng = np.random.default_rng(0)
    centers = random_points_in_cube(2000, seed=1)
    weights = rng.normal(size=len(centers) + model.poly_basis_size)
    queries = random_points_in_cube(500, seed=2, lower=-0.9, upper=0.9)
    bbox = BoundingBox((-1, -1, -1), (1, 1, 1))

    direct = RBFEvaluator(model, centers, bbox, method="direct")
    direct.set_weights(weights)
    accelerated = RBFEvaluator(model, centers, bbox, method="accelerated", leaf_size=32)
    accelerated.set_weights(weights)

    expected = _dense_evaluate(model, centers, weights, queries)
    np.testing.assert_allclose(direct.evaluate_points(queries), expected, rtol=1e-8, atol=1e-10)
    np.testing.assert_allclose(
        accelerated.evaluate_points(queries),
        direct.evaluate_points(queries),
        rtol=1e-8,
        atol=1e-10 * np.abs(expected).max(),
    )


def test_evaluate_at_centers():
    """Test self-evaluation at the centers."""
    model = Model(Biharmonic3D(1.0), poly_degree=1)
    centers = random_points_in_cube(100, seed=5)
    weights = np.random.default_rng(5).normal(size=104)
    evaluator = RBFEvaluator(model, centers)
    evaluator.set_weights(weights)
    np.testing.assert_allclose(evaluator.evaluate(), _dense_evaluate(model, centers, weights, centers))


def test_compact_kernel_far_queries():
    """Test that queries beyond the support of every center evaluate to the trend only."""
    model = Model(CovSpherical(1.0, 0.1), poly_degree=0)
    centers = random_points_in_cube(300, seed=6, lower=0.0, upper=1.0)
    weights = np.ones(301)
    queries = random_points_in_cube(20, seed=7, lower=5.0, upper=6.0)
    bbox = BoundingBox((0, 0, 0), (6, 6, 6))
    evaluator = RBFEvaluator(model, centers, bbox)
    evaluator.set_weights(weights)
    np.testing.assert_array_equal(evaluator.evaluate_points(queries), np.ones(20))


def test_set_weights_length():
    """Test that set_weights requires n_centers + poly_basis_size entries."""
    model = Model(Biharmonic3D(1.0), poly_degree=1)
    evaluator = RBFEvaluator(model, random_points_in_cube(10))
    with pytest.raises(ValueError):
        evaluator.set_weights(np.zeros(10))
    evaluator.set_weights(np.zeros(14))


def test_evaluate_without_weights():
    """Test that evaluation requires weights."""
    evaluator = RBFEvaluator(Model(Biharmonic3D(1.0)), random_points_in_cube(10))
    with pytest.raises(RuntimeError):
        evaluator.evaluate_points(np.zeros((1, 3)))


def test_unsupported_method():
    """Test that an unsupported method raises a ValueError."""
    with pytest.raises(ValueError):
        RBFEvaluator(Model(Biharmonic3D(1.0)), random_points_in_cube(10), method="fmm")


def test_query_outside_bbox_warns():
    """Test that queries outside the evaluator box warn but still evaluate correctly."""
    model = Model(Biharmonic3D(1.0), poly_degree=0)
    centers = random_points_in_cube(200, seed=8)
    weights = np.random.default_rng(8).normal(size=201)
    evaluator = RBFEvaluator(model, centers, leaf_size=16)
    evaluator.set_weights(weights)
    queries = random_points_in_cube(10, seed=9, lower=2.0, upper=3.0)
    with pytest.warns(UserWarning):
        values = evaluator.evaluate_points(queries)
    np.testing.assert_allclose(values, _dense_evaluate(model, centers, weights, queries), rtol=1e-10)


def test_kernel_matvec_chunks():
    """Test that chunking does not change the product."""
    model = Model(Biharmonic3D(1.0))
    targets = random_points_in_cube(37, seed=10)
    sources = random_points_in_cube(53, seed=11)
    w = np.random.default_rng(12).normal(size=53)
    np.testing.assert_allclose(
        kernel_matvec(model, targets, sources, w, chunk_size=8),
        kernel_matvec(model, targets, sources, w, chunk_size=1000),
    )


def test_polynomial_trend_only():
    """Test that zero RBF weights leave the polynomial trend."""
    model = Model(Biharmonic3D(1.0), poly_degree=1)
    centers = random_points_in_cube(50, seed=3)
    weights = np.zeros(54)
    weights[50:] = [1.0, 2.0, -1.0, 0.5]
    queries = random_points_in_cube(20, seed=4)
    evaluator = RBFEvaluator(model, centers, method="direct")
    evaluator.set_weights(weights)

    expected = 1.0 + 2.0 * queries[:, 0] - queries[:, 1] + 0.5 * queries[:, 2]
    np.testing.assert_allclose(evaluator.evaluate_points(queries), expected)
    np.testing.assert_array_equal(evaluator.poly_evaluator.weights, weights[50:])
