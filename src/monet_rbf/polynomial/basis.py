"""
Polynomial bases for the trend part of an RBF interpolant.
"""

from __future__ import annotations

import numpy as np
import scipy.linalg

from monet_rbf.constants import POLY_DIMENSION
from monet_rbf.model import poly_basis_size
from monet_rbf.utils import as_points

__all__ = [
    "LagrangeBasis",
    "MonomialBasis",
    "PolynomialEvaluator",
    "monomial_exponents",
    "unisolvent_indices",
]


def monomial_exponents(degree: int) -> np.ndarray:
    """Exponents of the monomials of total degree <= ``degree`` in graded order.

    The order is ``1, x, y, z, x^2, xy, xz, y^2, yz, z^2, x^3, ...``.
    """
    exponents = []
    for total in range(degree + 1):
        for a in range(total, -1, -1):
            for b in range(total - a, -1, -1):
                exponents.append((a, b, total - a - b))
    return np.array(exponents, dtype=np.int64).reshape(-1, POLY_DIMENSION)


class MonomialBasis:
    """Graded monomial basis in three variables."""

    def __init__(self, degree: int):
        self.degree = degree
        self.exponents = monomial_exponents(degree)

    @property
    def basis_size(self) -> int:
        return len(self.exponents)

    def evaluate_points(self, points: np.ndarray) -> np.ndarray:
        """Evaluate every monomial at every point.

        Args:
            points: Array of 3D points (n, 3)

        Returns:
            Matrix (n, basis_size)
        """
        points = as_points(points)
        if self.basis_size == 0:
            return np.zeros((len(points), 0))
        return np.prod(points[:, np.newaxis, :] ** self.exponents[np.newaxis, :, :], axis=2)


class LagrangeBasis:
    """Lagrange basis of the polynomial space with respect to unisolvent reference points.

    ``L_j(reference_points[i]) == delta_ij``. The basis is expressed through the
    monomial basis as ``L(x) = P(x) @ coefficients``.
    """

    def __init__(self, degree: int, reference_points: np.ndarray):
        self.degree = degree
        self.monomial_basis = MonomialBasis(degree)
        reference_points = as_points(reference_points, "reference_points")

        m = self.monomial_basis.basis_size
        if len(reference_points) != m:
            msg = f"len(reference_points) == {m} is required, got {len(reference_points)}"
            raise ValueError(msg)

        self.reference_points = reference_points
        p_ref = self.monomial_basis.evaluate_points(reference_points)
        if m > 0 and np.linalg.matrix_rank(p_ref) < m:
            msg = "reference_points are not unisolvent for the polynomial space"
            raise ValueError(msg)
        self.coefficients = scipy.linalg.inv(p_ref) if m > 0 else np.zeros((0, 0))

    @property
    def basis_size(self) -> int:
        return self.monomial_basis.basis_size

    def evaluate_points(self, points: np.ndarray) -> np.ndarray:
        return self.monomial_basis.evaluate_points(points) @ self.coefficients


class PolynomialEvaluator:
    """Evaluates a polynomial given by monomial coefficients at a set of field points."""

    def __init__(self, degree: int):
        self.basis = MonomialBasis(degree)
        self.points = np.zeros((0, POLY_DIMENSION))
        self.weights = np.zeros(self.basis.basis_size)

    def set_field_points(self, points: np.ndarray) -> None:
        self.points = as_points(points)

    def set_weights(self, weights: np.ndarray) -> None:
        weights = np.asarray(weights, dtype=np.float64).reshape(-1)
        if len(weights) != self.basis.basis_size:
            msg = f"len(weights) == {self.basis.basis_size} is required, got {len(weights)}"
            raise ValueError(msg)
        self.weights = weights

    def evaluate(self) -> np.ndarray:
        return self.evaluate_points(self.points)

    def evaluate_points(self, points: np.ndarray) -> np.ndarray:
        """Evaluate at ``points`` without changing the stored field points."""
        points = as_points(points)
        if self.basis.basis_size == 0:
            return np.zeros(len(points))
        return self.basis.evaluate_points(points) @ self.weights


def unisolvent_indices(points: np.ndarray, degree: int) -> np.ndarray:
    """Pick ``poly_basis_size`` points on which the polynomial space is unisolvent.

    The choice is deterministic: column-pivoted QR of the transposed monomial
    matrix evaluated on centered and scaled coordinates.

    Raises:
        ValueError: If the points do not admit a unisolvent subset.
    """
    points = as_points(points)
    m = poly_basis_size(POLY_DIMENSION, degree)
    if m == 0:
        return np.zeros(0, dtype=np.int64)
    if len(points) < m:
        msg = f"At least {m} points are required for a degree {degree} polynomial, got {len(points)}"
        raise ValueError(msg)

    lo = points.min(axis=0)
    hi = points.max(axis=0)
    scale = np.max(hi - lo)
    scaled = (points - (lo + hi) / 2) / (scale if scale > 0 else 1.0)

    p = MonomialBasis(degree).evaluate_points(scaled)
    _, r, piv = scipy.linalg.qr(p.T, mode="economic", pivoting=True)
    diag = np.abs(np.diag(r))
    if diag[m - 1] <= 1e-10 * diag[0]:
        msg = f"The points are not unisolvent for a degree {degree} polynomial (e.g. they are coplanar)"
        raise ValueError(msg)
    return np.sort(piv[:m]).astype(np.int64)
