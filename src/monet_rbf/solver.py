"""
Matrix-free RBF operator and the preconditioned iterative solver.

This file is part of monet-rbf.

Copyright (c) 2025 monet-rbf Developers.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields

import numpy as np
from scipy.sparse.linalg import LinearOperator, gmres

from monet_rbf.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_COARSE_GRID_SIZE,
    DEFAULT_FINE_GRID_SIZE,
    DEFAULT_GROWTH_RATIO,
    DEFAULT_INNER_RTOL,
    DEFAULT_LEAF_SIZE,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_MIN_POINTS_TO_ADD,
    DEFAULT_OVERLAP,
    DEFAULT_RESTART,
    DEFAULT_SKIP_TOLERANCE,
    EvaluationMethod,
)
from monet_rbf.interpolation import kernel_matvec
from monet_rbf.model import Model
from monet_rbf.polynomial import MonomialBasis
from monet_rbf.preconditioner import RBFPreconditioner
from monet_rbf.utils import ConvergenceError, as_points

logger = logging.getLogger(__name__)


@dataclass
class SolverSettings:
    """Tuning options of the solver, the preconditioner and the fitters."""

    coarse_grid_size: int = DEFAULT_COARSE_GRID_SIZE
    fine_grid_size: int = DEFAULT_FINE_GRID_SIZE
    overlap: float = DEFAULT_OVERLAP
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    restart: int = DEFAULT_RESTART
    inner_rtol: float = DEFAULT_INNER_RTOL
    n_workers: int | None = None
    chunk_size: int = DEFAULT_CHUNK_SIZE
    growth_ratio: float = DEFAULT_GROWTH_RATIO
    min_points_to_add: int = DEFAULT_MIN_POINTS_TO_ADD
    evaluation_method: EvaluationMethod = "accelerated"
    leaf_size: int = DEFAULT_LEAF_SIZE
    skip_tolerance: float = DEFAULT_SKIP_TOLERANCE

    def __post_init__(self) -> None:
        """Validate the settings."""
        for name in ("coarse_grid_size", "fine_grid_size", "restart", "chunk_size", "min_points_to_add", "leaf_size"):
            if getattr(self, name) < 1:
                msg = f"{name} >= 1 is required, got {getattr(self, name)}"
                raise ValueError(msg)
        if self.max_iterations < 0:
            msg = f"max_iterations >= 0 is required, got {self.max_iterations}"
            raise ValueError(msg)
        if not 0.0 <= self.overlap < 1.0:
            msg = f"0 <= overlap < 1 is required, got {self.overlap}"
            raise ValueError(msg)
        if not self.growth_ratio >= 0.0:
            msg = f"growth_ratio >= 0 is required, got {self.growth_ratio}"
            raise ValueError(msg)
        if self.n_workers is not None and self.n_workers < 1:
            msg = f"n_workers >= 1 is required, got {self.n_workers}"
            raise ValueError(msg)
        if self.evaluation_method not in ("direct", "accelerated"):
            msg = f"Unsupported evaluation method: {self.evaluation_method}"
            raise ValueError(msg)

    @classmethod
    def from_kwargs(cls, **kwargs) -> SolverSettings:
        """Build settings from keyword options, rejecting unknown names."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(kwargs) - known)
        if unknown:
            msg = f"Unknown solver option(s): {', '.join(unknown)}"
            raise TypeError(msg)
        return cls(**kwargs)


class RBFOperator(LinearOperator):
    """The saddle-point matrix ``[[K + nugget I, P], [P.T, 0]]`` applied without storing ``K``."""

    def __init__(self, model: Model, points: np.ndarray, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.model = model
        self.points = as_points(points)
        self.n_points = len(self.points)
        self.m = model.poly_basis_size
        self.chunk_size = chunk_size
        self.poly_matrix = MonomialBasis(model.poly_degree).evaluate_points(self.points)
        size = self.n_points + self.m
        super().__init__(dtype=np.float64, shape=(size, size))

    def _matvec(self, x: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64).reshape(-1)
        w = x[: self.n_points]
        lam = x[self.n_points :]

        y = np.empty(self.shape[0])
        y[: self.n_points] = kernel_matvec(self.model, self.points, self.points, w, self.chunk_size)
        y[: self.n_points] += self.model.nugget * w + self.poly_matrix @ lam
        y[self.n_points :] = self.poly_matrix.T @ w
        return y

    def _rmatvec(self, x: np.ndarray) -> np.ndarray:
        return self._matvec(x)


class RBFSolver:
    """Outer iterative refinement around preconditioned restarted GMRES.

    Args:
        model: The RBF model
        points: Array of 3D points (n, 3), all of them centers
        settings: Solver settings
    """

    def __init__(self, model: Model, points: np.ndarray, settings: SolverSettings | None = None):
        self.model = model
        self.points = as_points(points)
        self.settings = settings or SolverSettings()
        self.n_points = len(self.points)
        self.m = model.poly_basis_size

        self.operator = RBFOperator(model, self.points, self.settings.chunk_size)
        self.preconditioner = RBFPreconditioner(
            model,
            self.points,
            coarse_grid_size=self.settings.coarse_grid_size,
            fine_grid_size=self.settings.fine_grid_size,
            overlap=self.settings.overlap,
            n_workers=self.settings.n_workers,
        )

    def solve(
        self,
        values: np.ndarray,
        absolute_tolerance: float,
        initial_solution: np.ndarray | None = None,
    ) -> np.ndarray:
        """Solve for the weights reproducing ``values`` within ``absolute_tolerance``.

        Args:
            values: Target values at the points (n,)
            absolute_tolerance: Bound on every entry of the residual
            initial_solution: Warm start (n + m,)

        Returns:
            Weights (n + m,), RBF weights first

        Raises:
            ConvergenceError: If the residual is still above the tolerance after
                ``max_iterations`` corrections.
        """
        size = self.n_points + self.m
        rhs = np.zeros(size)
        rhs[: self.n_points] = values

        if initial_solution is None:
            solution = np.zeros(size)
        else:
            solution = np.array(initial_solution, dtype=np.float64).reshape(-1)
            if len(solution) != size:
                msg = f"len(initial_solution) == {size} is required, got {len(solution)}"
                raise ValueError(msg)

        restart = min(self.settings.restart, size)
        max_iterations = self.settings.max_iterations
        with self.preconditioner:
            for iteration in range(max_iterations + 1):
                residual = rhs - self.operator.matvec(solution)
                residual_w = np.max(np.abs(residual[: self.n_points]))
                residual_p = np.max(np.abs(residual[self.n_points :])) if self.m > 0 else 0.0
                logger.debug(
                    "iteration %d: max residual %.3e (rbf), %.3e (polynomial)",
                    iteration,
                    residual_w,
                    residual_p,
                )

                if residual_w <= absolute_tolerance and residual_p <= absolute_tolerance:
                    return solution
                if iteration == max_iterations:
                    break

                correction, info = gmres(
                    self.operator,
                    residual,
                    rtol=self.settings.inner_rtol,
                    atol=0.0,
                    restart=restart,
                    maxiter=1,
                    M=self.preconditioner,
                )
                if info < 0:
                    msg = f"GMRES failed with illegal input or breakdown (info={info})"
                    raise ConvergenceError(msg)
                solution = solution + correction

        msg = (
            f"The solver did not reach the absolute tolerance {absolute_tolerance} "
            f"within {max_iterations} iterations (max residual {max(residual_w, residual_p):.3e})"
        )
        raise ConvergenceError(msg)
