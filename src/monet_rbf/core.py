"""
Core fitter classes for monet-rbf.

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

import abc
import logging
import math
from typing import Any

import numpy as np

from monet_rbf.constants import FitState
from monet_rbf.interpolation import RBFEvaluator
from monet_rbf.model import Model
from monet_rbf.polynomial import unisolvent_indices
from monet_rbf.solver import RBFSolver, SolverSettings
from monet_rbf.utils import BoundingBox, NotSupportedError, as_points, as_values, validate_bounds

logger = logging.getLogger(__name__)


class BaseFitter(abc.ABC):
    """Abstract base class for fitter implementations.

    A fitter owns the model, the point set and the solver settings, and turns
    values at the points into interpolant weights.
    """

    def __init__(self, model: Model, points: np.ndarray, settings: SolverSettings | None = None):
        """Initialize the fitter.

        Args:
            model: The RBF model
            points: Array of 3D points (n, 3)
            settings: Solver settings, defaults when None
        """
        self.model = model
        self.points = as_points(points)
        self.settings = settings or SolverSettings()
        self.state: FitState | None = None
        self.residuals: np.ndarray | None = None

    @abc.abstractmethod
    def fit(self, *args: Any, **kwargs: Any) -> Any:
        """Execute the fit."""
        pass

    def info(self) -> dict[str, Any]:
        """Get information about the fitter instance.

        Returns:
            Dictionary containing fitter metadata and configuration
        """
        return {
            "type": self.__class__.__name__,
            "rbf": self.model.rbf.name,
            "rbf_parameters": self.model.rbf.parameters,
            "poly_degree": self.model.poly_degree,
            "nugget": self.model.nugget,
            "n_points": len(self.points),
            "state": None if self.state is None else self.state.value,
        }

    @property
    def n_points(self) -> int:
        return len(self.points)

    def _transition(self, state: FitState) -> None:
        logger.debug("%s: %s -> %s", self.__class__.__name__, self.state, state)
        self.state = state

    def _solve(
        self,
        center_indices: np.ndarray,
        values: np.ndarray,
        absolute_tolerance: float,
        initial_solution: np.ndarray | None = None,
    ) -> np.ndarray:
        solver = RBFSolver(self.model, self.points[center_indices], self.settings)
        return solver.solve(values, absolute_tolerance, initial_solution)

    def _evaluate(self, center_indices: np.ndarray, weights: np.ndarray) -> np.ndarray:
        """Evaluate the current interpolant at every point."""
        evaluator = RBFEvaluator(
            self.model,
            self.points[center_indices],
            BoundingBox.from_points(self.points),
            method=self.settings.evaluation_method,
            chunk_size=self.settings.chunk_size,
            leaf_size=self.settings.leaf_size,
            skip_tolerance=self.settings.skip_tolerance,
        )
        evaluator.set_weights(weights)
        return evaluator.evaluate_points(self.points)

    def _batch_size(self, n_centers: int) -> int:
        return max(self.settings.min_points_to_add, math.ceil(self.settings.growth_ratio * n_centers))

    def _check_nugget(self) -> None:
        if self.model.nugget > 0.0:
            msg = f"{self.__class__.__name__} does not support RBF with finite nugget"
            raise NotSupportedError(msg)

    @staticmethod
    def _warm_start(previous: np.ndarray | None, n_previous: int, n_centers: int, m: int) -> np.ndarray | None:
        """Extend the previous weights with zeros for the newly added centers."""
        if previous is None:
            return None
        initial = np.zeros(n_centers + m)
        initial[:n_previous] = previous[:n_previous]
        initial[n_centers:] = previous[n_previous:]
        return initial


class RBFFitter(BaseFitter):
    """Fits with every point as a center."""

    def fit(self, values: np.ndarray, absolute_tolerance: float) -> np.ndarray:
        """Solve for the weights of all points.

        Returns:
            Weights (n + m,), RBF weights first
        """
        values = as_values(values, self.n_points)
        self._transition(FitState.SOLVE)
        weights = RBFSolver(self.model, self.points, self.settings).solve(values, absolute_tolerance)
        self._transition(FitState.CONVERGED)
        return weights


class RBFIncrementalFitter(BaseFitter):
    """Greedy fitter that grows the center set from the worst-fitted points.

    The loop runs SEED -> SOLVE -> EVALUATE_RESIDUAL -> (AUGMENT -> SOLVE ...)
    and ends in CONVERGED, or in EXHAUSTED once every point is a center.
    """

    def fit(self, values: np.ndarray, absolute_tolerance: float) -> tuple[np.ndarray, np.ndarray]:
        """Fit values within ``absolute_tolerance`` at every point.

        Returns:
            Tuple of (center_indices, weights)

        Raises:
            NotSupportedError: If the model has a nugget.
        """
        self._check_nugget()
        values = as_values(values, self.n_points)
        m = self.model.poly_basis_size

        self._transition(FitState.SEED)
        centers = self._seed(values)
        is_center = np.zeros(self.n_points, dtype=bool)
        is_center[centers] = True

        weights = None
        n_previous = 0
        while True:
            self._transition(FitState.SOLVE)
            initial = self._warm_start(weights, n_previous, len(centers), m)
            weights = self._solve(centers, values[centers], absolute_tolerance, initial)

            self._transition(FitState.EVALUATE_RESIDUAL)
            self.residuals = values - self._evaluate(centers, weights)
            violation = np.where(is_center, 0.0, np.abs(self.residuals))
            violators = np.flatnonzero(violation > absolute_tolerance)
            logger.debug(
                "%d centers, %d points above tolerance (max residual %.3e)",
                len(centers),
                len(violators),
                violation.max(initial=0.0),
            )

            if len(violators) == 0:
                final = FitState.EXHAUSTED if len(centers) == self.n_points else FitState.CONVERGED
                self._transition(final)
                return centers, weights

            self._transition(FitState.AUGMENT)
            batch = self._batch_size(len(centers))
            order = np.argsort(-violation[violators], kind="stable")
            added = violators[order[:batch]]
            n_previous = len(centers)
            centers = np.concatenate([centers, added])
            is_center[added] = True

    def _seed(self, values: np.ndarray) -> np.ndarray:
        if self.model.poly_basis_size > 0:
            return unisolvent_indices(self.points, self.model.poly_degree)
        return np.array([int(np.argmax(np.abs(values)))], dtype=np.int64)


class RBFInequalityFitter(BaseFitter):
    """Fitter honoring equality targets and lower/upper bounds.

    Points with a finite value are equality targets. Points whose value is NaN
    are constrained by their bounds, where a NaN bound means unbounded. A
    violating point becomes a center whose target is the bound it violates.
    """

    def fit(
        self,
        values: np.ndarray,
        values_lb: np.ndarray,
        values_ub: np.ndarray,
        absolute_tolerance: float,
    ) -> tuple[np.ndarray, np.ndarray]:
        """Fit values and bounds within ``absolute_tolerance``.

        Returns:
            Tuple of (center_indices, weights)

        Raises:
            NotSupportedError: If the model has a nugget.
        """
        self._check_nugget()
        values = as_values(values, self.n_points)
        lb, ub = validate_bounds(values_lb, values_ub, self.n_points)
        m = self.model.poly_basis_size

        is_equality = np.isfinite(values)
        has_lb = np.isfinite(lb)
        has_ub = np.isfinite(ub)

        self._transition(FitState.SEED)
        centers = self._seed(values, is_equality)
        targets = self._seed_targets(values, lb, ub, centers)
        is_center = np.zeros(self.n_points, dtype=bool)
        is_center[centers] = True

        weights = None
        n_previous = 0
        while True:
            self._transition(FitState.SOLVE)
            initial = self._warm_start(weights, n_previous, len(centers), m)
            weights = self._solve(centers, targets, absolute_tolerance, initial)

            self._transition(FitState.EVALUATE_RESIDUAL)
            fitted = self._evaluate(centers, weights)
            below = np.where(has_lb & ~is_equality, lb - fitted, 0.0)
            above = np.where(has_ub & ~is_equality, fitted - ub, 0.0)
            equality_error = np.where(is_equality, np.abs(np.where(is_equality, values, 0.0) - fitted), 0.0)
            violation = np.maximum(np.maximum(below, above), equality_error)
            violation[is_center] = 0.0
            self.residuals = violation
            violators = np.flatnonzero(violation > absolute_tolerance)
            logger.debug(
                "%d centers, %d points violate their targets (max violation %.3e)",
                len(centers),
                len(violators),
                violation.max(initial=0.0),
            )

            if len(violators) == 0:
                final = FitState.EXHAUSTED if len(centers) == self.n_points else FitState.CONVERGED
                self._transition(final)
                return centers, weights

            self._transition(FitState.AUGMENT)
            batch = self._batch_size(len(centers))
            order = np.argsort(-violation[violators], kind="stable")
            added = violators[order[:batch]]
            # The nearest violated bound becomes the target
            added_targets = np.where(
                is_equality[added],
                values[added],
                np.where(below[added] > above[added], lb[added], ub[added]),
            )
            n_previous = len(centers)
            centers = np.concatenate([centers, added])
            targets = np.concatenate([targets, added_targets])
            is_center[added] = True

    def _seed(self, values: np.ndarray, is_equality: np.ndarray) -> np.ndarray:
        if self.model.poly_basis_size > 0:
            return unisolvent_indices(self.points, self.model.poly_degree)
        if np.any(is_equality):
            magnitude = np.where(is_equality, np.abs(np.where(is_equality, values, 0.0)), -1.0)
            return np.array([int(np.argmax(magnitude))], dtype=np.int64)
        return np.array([0], dtype=np.int64)

    @staticmethod
    def _seed_targets(values: np.ndarray, lb: np.ndarray, ub: np.ndarray, centers: np.ndarray) -> np.ndarray:
        targets = np.zeros(len(centers))
        for k, i in enumerate(centers):
            if np.isfinite(values[i]):
                targets[k] = values[i]
            elif np.isfinite(lb[i]) and np.isfinite(ub[i]):
                targets[k] = (lb[i] + ub[i]) / 2
            elif np.isfinite(lb[i]):
                targets[k] = lb[i]
            elif np.isfinite(ub[i]):
                targets[k] = ub[i]
        return targets
