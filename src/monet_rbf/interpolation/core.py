"""
RBF evaluator with direct and cell-accelerated summation.
"""

from __future__ import annotations

import logging
import warnings

import numpy as np

from monet_rbf.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_LEAF_SIZE,
    DEFAULT_SKIP_TOLERANCE,
    EvaluationMethod,
)
from monet_rbf.interpolation.base import box_distance_bounds, pairwise_distances
from monet_rbf.interpolation.utils import CellGrid, _group_by_cell
from monet_rbf.model import Model
from monet_rbf.polynomial import PolynomialEvaluator
from monet_rbf.utils import BoundingBox, as_points

logger = logging.getLogger(__name__)


def kernel_matvec(
    model: Model,
    targets: np.ndarray,
    sources: np.ndarray,
    weights: np.ndarray,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> np.ndarray:
    """Compute ``K(targets, sources) @ weights`` block by block.

    The kernel matrix is never formed beyond a ``chunk_size`` square block.
    """
    result = np.zeros(len(targets))
    if len(sources) == 0:
        return result
    rbf = model.rbf
    for t0 in range(0, len(targets), chunk_size):
        t1 = min(t0 + chunk_size, len(targets))
        for s0 in range(0, len(sources), chunk_size):
            s1 = min(s0 + chunk_size, len(sources))
            distances = pairwise_distances(targets[t0:t1], sources[s0:s1])
            result[t0:t1] += rbf.evaluate(distances) @ weights[s0:s1]
    return result


class RBFEvaluator:
    """Evaluates ``sum_i w_i K(|x - c_i|) + sum_j lambda_j p_j(x)`` at query points.

    Args:
        model: The RBF model
        centers: Array of 3D centers (n, 3)
        bbox: Bounding box the queries are expected in; it is merged with the
            bounding box of the centers
        method: 'accelerated' groups centers and queries into cells and skips
            center cells whose contribution is negligible; 'direct' sums every
            center for every query
        chunk_size: Block size of the direct summation
        leaf_size: Approximate number of centers per cell
        skip_tolerance: Relative bound below which a center cell is skipped
    """

    def __init__(
        self,
        model: Model,
        centers: np.ndarray,
        bbox: BoundingBox | None = None,
        method: EvaluationMethod = "accelerated",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        leaf_size: int = DEFAULT_LEAF_SIZE,
        skip_tolerance: float = DEFAULT_SKIP_TOLERANCE,
    ):
        if method not in ("direct", "accelerated"):
            msg = f"Unsupported evaluation method: {method}"
            raise ValueError(msg)

        self.model = model
        self.method = method
        self.chunk_size = chunk_size
        self.leaf_size = leaf_size
        self.skip_tolerance = skip_tolerance

        self.centers = as_points(centers, "centers")
        self.bbox = BoundingBox.from_points(self.centers)
        if bbox is not None:
            self.bbox = self.bbox.union(bbox)

        self.poly_evaluator = PolynomialEvaluator(model.poly_degree)
        self.rbf_weights: np.ndarray | None = None

        # Cell structure for the accelerated method
        self._grid: CellGrid | None = None
        self._cell_abs_weights: np.ndarray | None = None
        if method == "accelerated" and self.n_centers > 0:
            self._build_cells()

    @property
    def n_centers(self) -> int:
        return len(self.centers)

    @property
    def n_weights(self) -> int:
        return self.n_centers + self.model.poly_basis_size

    def _build_cells(self) -> None:
        self._grid = CellGrid(self.bbox, self.n_centers, self.leaf_size)
        cell_ids = self._grid.cell_ids(self.centers)
        (
            self._center_order,
            self._center_starts,
            self._center_counts,
            self._center_min,
            self._center_max,
        ) = _group_by_cell(self.centers, cell_ids)
        self._sorted_centers = self.centers[self._center_order]
        logger.debug(
            "Built evaluator cell grid %s with %d occupied cells for %d centers",
            tuple(self._grid.shape),
            len(self._center_starts),
            self.n_centers,
        )

    def set_weights(self, weights: np.ndarray) -> None:
        """Set the RBF weights followed by the polynomial coefficients."""
        weights = np.asarray(weights, dtype=np.float64).reshape(-1)
        if len(weights) != self.n_weights:
            msg = f"len(weights) == {self.n_weights} is required, got {len(weights)}"
            raise ValueError(msg)

        self.rbf_weights = weights[: self.n_centers].copy()
        self.poly_evaluator.set_weights(weights[self.n_centers :].copy())

        if self._grid is not None:
            sorted_abs = np.abs(self.rbf_weights[self._center_order])
            self._cell_abs_weights = np.add.reduceat(sorted_abs, self._center_starts)
            self._sorted_weights = self.rbf_weights[self._center_order]

    def evaluate(self) -> np.ndarray:
        """Evaluate at the centers themselves (the nugget is not included)."""
        return self._evaluate_direct(self.centers)

    def evaluate_points(self, points: np.ndarray) -> np.ndarray:
        """Evaluate at ``points``, returning values in query order."""
        if self.rbf_weights is None:
            msg = "Weights must be set before evaluating. Call set_weights() first."
            raise RuntimeError(msg)

        points = as_points(points)
        if len(points) == 0:
            return np.zeros(0)

        if self._grid is None:
            return self._evaluate_direct(points)

        if not self.bbox.contains(BoundingBox.from_points(points)):
            warnings.warn(
                "Query points lie outside the evaluator bounding box; skipping bounds may be looser.",
                stacklevel=2,
            )
        return self._evaluate_accelerated(points)

    def _evaluate_poly(self, points: np.ndarray) -> np.ndarray:
        return self.poly_evaluator.evaluate_points(points)

    def _evaluate_direct(self, points: np.ndarray) -> np.ndarray:
        if self.rbf_weights is None:
            msg = "Weights must be set before evaluating. Call set_weights() first."
            raise RuntimeError(msg)
        values = kernel_matvec(self.model, points, self.centers, self.rbf_weights, self.chunk_size)
        return values + self._evaluate_poly(points)

    def _evaluate_accelerated(self, points: np.ndarray) -> np.ndarray:
        """Sum center cells per query cell, skipping cells with a negligible bound.

        Every provided kernel is monotone in the distance, so the largest
        magnitude over ``[dmin, dmax]`` is attained at an end point.
        """
        rbf = self.model.rbf
        query_ids = self._grid.cell_ids(points)
        q_order, q_starts, q_counts, q_min, q_max = _group_by_cell(points, query_ids)
        sorted_queries = points[q_order]

        sorted_values = np.zeros(len(points))
        n_skipped = 0
        n_pairs = 0
        # Bounds are computed for a block of query cells at a time to cap memory
        block = max(1, self.chunk_size // 8)
        for b0 in range(0, len(q_starts), block):
            b1 = min(b0 + block, len(q_starts))
            dmin, dmax = box_distance_bounds(q_min[b0:b1], q_max[b0:b1], self._center_min, self._center_max)
            kernel_bound = np.maximum(np.abs(rbf.evaluate(dmin)), np.abs(rbf.evaluate(dmax)))
            bounds = kernel_bound * self._cell_abs_weights[np.newaxis, :]
            # Relative to the largest contribution any center cell makes to this query cell
            thresholds = self.skip_tolerance * bounds.max(axis=1)
            n_pairs += bounds.size

            for k, qc in enumerate(range(b0, b1)):
                keep = bounds[k] > thresholds[k]
                n_skipped += int(np.count_nonzero(~keep))
                if not np.any(keep):
                    continue
                mask = np.repeat(keep, self._center_counts)
                q0 = q_starts[qc]
                q1 = q0 + q_counts[qc]
                sorted_values[q0:q1] = kernel_matvec(
                    self.model,
                    sorted_queries[q0:q1],
                    self._sorted_centers[mask],
                    self._sorted_weights[mask],
                    self.chunk_size,
                )

        logger.debug(
            "Accelerated evaluation of %d points skipped %d of %d cell pairs",
            len(points),
            n_skipped,
            n_pairs,
        )

        values = np.empty(len(points))
        values[q_order] = sorted_values
        return values + self._evaluate_poly(points)
