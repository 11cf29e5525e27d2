
import numpy as np


def random_points_on_sphere(n_points, seed=0, radius=1.0, center=(0.0, 0.0, 0.0)):
    """Uniformly distributed points on a sphere."""
    rng = np.random.default_rng(seed)
    v = rng.normal(size=(n_points, 3))
    v /= np.linalg.norm(v, axis=1, keepdims=True)
    return np.asarray(center) + radius * v


def random_points_in_cube(n_points, seed=0, lower=-1.0, upper=1.0):
    """Uniformly distributed points in an axis-aligned cube."""
    rng = np.random.default_rng(seed)
    return rng.uniform(lower, upper, size=(n_points, 3))


def smooth_field(points):
    """A smooth test function of position."""
    x, y, z = points[:, 0], points[:, 1], points[:, 2]
    return np.sin(2 * x) + y * z + 0.5 * z


def dense_rbf_system(model, points):
    """The full saddle-point matrix, for comparison with matrix-free code."""
    from monet_rbf.polynomial import MonomialBasis

    d = np.linalg.norm(points[:, None, :] - points[None, :, :], axis=2)
    k = model.rbf.evaluate(d) + model.nugget * np.eye(len(points))
    p = MonomialBasis(model.poly_degree).evaluate_points(points)
    m = p.shape[1]
    return np.block([[k, p], [p.T, np.zeros((m, m))]])
