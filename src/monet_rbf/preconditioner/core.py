"""
Additive Schwarz preconditioner for the RBF saddle-point system.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

import numpy as np
from scipy.sparse.linalg import LinearOperator

from monet_rbf.constants import (
    DEFAULT_COARSE_GRID_SIZE,
    DEFAULT_FINE_GRID_SIZE,
    DEFAULT_OVERLAP,
)
from monet_rbf.model import Model
from monet_rbf.polynomial import LagrangeBasis, unisolvent_indices
from monet_rbf.preconditioner.decomposition import coarse_sample, overlapping_domains
from monet_rbf.preconditioner.grid import CoarseGrid, FineGrid, LocalGrid
from monet_rbf.utils import as_points

logger = logging.getLogger(__name__)


class RBFPreconditioner(LinearOperator):
    """Approximate inverse of the RBF system built from overlapping local solves.

    A coarse grid over a farthest-point subsample carries the polynomial part;
    fine grids cover every point with overlapping neighbourhoods and write only
    the points they own. When there are no more points than ``coarse_grid_size``
    a single grid over every point is used and the operator is the exact inverse.

    Args:
        model: The RBF model
        points: Array of 3D points (n, 3)
        coarse_grid_size: Number of points of the coarse grid
        fine_grid_size: Maximum number of points of a fine grid
        overlap: Relative growth of the fine grid neighbourhoods
        n_workers: Threads used for the local solves (None lets the executor decide)
    """

    def __init__(
        self,
        model: Model,
        points: np.ndarray,
        coarse_grid_size: int = DEFAULT_COARSE_GRID_SIZE,
        fine_grid_size: int = DEFAULT_FINE_GRID_SIZE,
        overlap: float = DEFAULT_OVERLAP,
        n_workers: int | None = None,
    ):
        self.model = model
        self.points = as_points(points)
        self.n_points = len(self.points)
        self.m = model.poly_basis_size
        self.n_workers = n_workers
        self._executor: ThreadPoolExecutor | None = None
        size = self.n_points + self.m
        super().__init__(dtype=np.float64, shape=(size, size))

        self.reference_indices = unisolvent_indices(self.points, model.poly_degree)
        self.lagrange_basis = LagrangeBasis(model.poly_degree, self.points[self.reference_indices])

        if self.n_points <= coarse_grid_size:
            self.coarse = CoarseGrid(model, self.lagrange_basis, np.arange(self.n_points), self.points)
            self.fine_grids: list[FineGrid] = []
        else:
            coarse_indices = coarse_sample(self.points, coarse_grid_size, self.reference_indices)
            self.coarse = CoarseGrid(model, self.lagrange_basis, coarse_indices, self.points)
            domains = overlapping_domains(self.points, fine_grid_size, overlap, self.reference_indices)
            with ThreadPoolExecutor(max_workers=n_workers) as executor:
                self.fine_grids = list(
                    executor.map(
                        lambda domain: FineGrid(model, self.lagrange_basis, domain[0], domain[1], self.points),
                        domains,
                    )
                )

        logger.debug(
            "Preconditioner for %d points: coarse grid of %d points, %d fine grids",
            self.n_points,
            self.coarse.size,
            len(self.fine_grids),
        )

    @property
    def grids(self) -> list[LocalGrid]:
        return [*self.fine_grids, self.coarse]

    def __enter__(self) -> RBFPreconditioner:
        """Keep one worker pool alive for every application until exit."""
        if self._executor is None and self.fine_grids:
            self._executor = ThreadPoolExecutor(max_workers=self.n_workers)
        return self

    def __exit__(self, *exc_info) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _solve_grids(self, executor: ThreadPoolExecutor, residual: np.ndarray) -> None:
        # Propagate any exception from a worker
        for _ in executor.map(lambda grid: grid.solve(residual), self.grids):
            pass

    def _matvec(self, x: np.ndarray) -> np.ndarray:
        residual = np.array(x, dtype=np.float64).reshape(-1)
        residual.setflags(write=False)

        if not self.fine_grids:
            self.coarse.solve(residual)
        elif self._executor is not None:
            self._solve_grids(self._executor, residual)
        else:
            with ThreadPoolExecutor(max_workers=self.n_workers) as executor:
                self._solve_grids(executor, residual)

        solution = np.zeros(self.shape[0])
        for grid in self.grids:
            grid.set_solution_to(solution)
        return solution
