"""
Local saddle-point solvers of the domain-decomposition preconditioner.
"""

from __future__ import annotations

import logging

import numpy as np
import scipy.linalg

from monet_rbf.interpolation.base import pairwise_distances
from monet_rbf.model import Model
from monet_rbf.polynomial import LagrangeBasis

logger = logging.getLogger(__name__)


class LocalGrid:
    """Dense solver of the RBF system restricted to a subset of the points.

    The polynomial constraint is eliminated by the null-space method. With the
    Lagrange matrix ``E`` of the local points, ``m`` pivot rows ``J`` are chosen
    by column-pivoted QR of ``E.T``; the remaining rows ``F`` parametrize the
    null space of ``E.T`` through ``Q = [I; -T]`` with ``T = E_J^-T E_F^T``.
    The reduced block ``Q.T A Q`` is factored once (Cholesky, or LU when it is
    not positive definite).

    Args:
        model: The RBF model
        lagrange_basis: Lagrange basis shared by every grid
        point_indices: Indices of the local points into ``points``
        points: The global point set (n, 3)
    """

    def __init__(
        self,
        model: Model,
        lagrange_basis: LagrangeBasis,
        point_indices: np.ndarray,
        points: np.ndarray,
    ):
        self.model = model
        self.lagrange_basis = lagrange_basis
        self.point_indices = np.asarray(point_indices, dtype=np.int64)
        self.n_points = len(points)
        self.m = model.poly_basis_size

        if len(np.unique(self.point_indices)) != len(self.point_indices):
            msg = "point_indices must be unique"
            raise ValueError(msg)
        if len(self.point_indices) < max(1, self.m):
            msg = f"A local grid needs at least {max(1, self.m)} points, got {len(self.point_indices)}"
            raise ValueError(msg)

        local_points = points[self.point_indices]
        l = len(local_points)

        a = model.rbf.evaluate(pairwise_distances(local_points, local_points))
        a[np.diag_indices(l)] += model.nugget
        self._a = a

        if self.m > 0:
            e = lagrange_basis.evaluate_points(local_points)
            _, r, piv = scipy.linalg.qr(e.T, mode="economic", pivoting=True)
            diag = np.abs(np.diag(r))
            if diag[self.m - 1] <= 1e-10 * diag[0]:
                msg = "The local points are not unisolvent for the polynomial space"
                raise ValueError(msg)
            self._j = np.sort(piv[: self.m])
            self._f = np.setdiff1d(np.arange(l), self._j)
            self._e = e
            self._e_j = scipy.linalg.lu_factor(e[self._j])
            t = scipy.linalg.lu_solve(self._e_j, e[self._f].T, trans=1)
            q = np.zeros((l, l - self.m))
            q[self._f, np.arange(l - self.m)] = 1.0
            q[self._j] = -t
        else:
            self._j = np.zeros(0, dtype=np.int64)
            self._f = np.arange(l)
            self._e = np.zeros((l, 0))
            q = np.eye(l)
        self._q = q

        reduced = q.T @ a @ q
        self._use_cholesky = True
        if l == self.m:
            # Weights are fixed by the constraint alone
            self._factor = None
        else:
            try:
                self._factor = scipy.linalg.cho_factor(reduced)
            except np.linalg.LinAlgError:
                self._factor = None
                self._use_cholesky = False
        if not self._use_cholesky:
            logger.warning(
                "Reduced local system of %d points is not positive definite, falling back to LU",
                l,
            )
            self._factor = scipy.linalg.lu_factor(reduced)

        self.weights = np.zeros(l)
        self.poly_weights = np.zeros(self.m)

    @property
    def size(self) -> int:
        return len(self.point_indices)

    def _solve_reduced(self, rhs: np.ndarray) -> np.ndarray:
        if self._factor is None:
            return np.zeros(len(rhs))
        if self._use_cholesky:
            return scipy.linalg.cho_solve(self._factor, rhs)
        return scipy.linalg.lu_solve(self._factor, rhs)

    def _solve_local(self, r: np.ndarray, s: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Solve ``[A E; E.T 0] [w; lam] = [r; s]`` in the Lagrange basis."""
        w = np.zeros(len(r))
        if self.m > 0:
            w[self._j] = scipy.linalg.lu_solve(self._e_j, s, trans=1)
        y = self._solve_reduced(self._q.T @ (r - self._a @ w))
        w += self._q @ y
        if self.m == 0:
            return w, np.zeros(0)
        lam = scipy.linalg.lu_solve(self._e_j, r[self._j] - (self._a @ w)[self._j])
        return w, lam

    def _poly_rhs(self, global_values: np.ndarray) -> np.ndarray:
        if len(global_values) == self.n_points or self.m == 0:
            return np.zeros(self.m)
        # Monomial orthogonality residual to the Lagrange basis
        return self.lagrange_basis.coefficients.T @ global_values[self.n_points :]

    def solve(self, global_values: np.ndarray) -> None:
        """Solve the local system for a global value vector or residual.

        Args:
            global_values: Either n values, or an n + m residual whose last m
                entries are the polynomial orthogonality residual.
        """
        if len(global_values) not in (self.n_points, self.n_points + self.m):
            msg = f"len(global_values) must be {self.n_points} or {self.n_points + self.m}, got {len(global_values)}"
            raise ValueError(msg)

        r = global_values[self.point_indices]
        s = self._poly_rhs(global_values)

        w, lam = self._solve_local(r, s)
        # One step of iterative refinement
        dr = r - self._a @ w - self._e @ lam
        ds = s - self._e.T @ w
        dw, dlam = self._solve_local(dr, ds)
        w += dw
        lam += dlam

        self.weights = w
        self.poly_weights = self.lagrange_basis.coefficients @ lam if self.m > 0 else np.zeros(0)

    def set_solution_to(self, global_solution: np.ndarray) -> None:
        """Add the local weights and polynomial coefficients into ``global_solution``."""
        global_solution[self.point_indices] += self.weights
        global_solution[self.n_points : self.n_points + self.m] += self.poly_weights


class CoarseGrid(LocalGrid):
    """Grid over a spatially spread subsample; carries the polynomial part."""


class FineGrid(LocalGrid):
    """Overlapping neighbourhood that owns only its inner points.

    The polynomial block is solved homogeneously and only the weights of the
    inner points are written back.

    Args:
        inner_mask: Boolean mask over ``point_indices`` marking the owned points
    """

    def __init__(
        self,
        model: Model,
        lagrange_basis: LagrangeBasis,
        point_indices: np.ndarray,
        inner_mask: np.ndarray,
        points: np.ndarray,
    ):
        super().__init__(model, lagrange_basis, point_indices, points)
        self.inner_mask = np.asarray(inner_mask, dtype=bool)
        if self.inner_mask.shape != self.point_indices.shape:
            msg = "inner_mask must have the same length as point_indices"
            raise ValueError(msg)
        self.inner_indices = self.point_indices[self.inner_mask]

    def _poly_rhs(self, global_values: np.ndarray) -> np.ndarray:
        return np.zeros(self.m)

    def set_solution_to(self, global_solution: np.ndarray) -> None:
        global_solution[self.inner_indices] += self.weights[self.inner_mask]
