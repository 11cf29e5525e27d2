"""
Interpolant: fitting and evaluation behind a single object.

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
from typing import Any

import numpy as np

from monet_rbf.core import RBFFitter, RBFIncrementalFitter, RBFInequalityFitter
from monet_rbf.interpolation import RBFEvaluator
from monet_rbf.model import Model
from monet_rbf.solver import SolverSettings
from monet_rbf.utils import (
    BoundingBox,
    NotSupportedError,
    as_points,
    validate_bounds,
    validate_fit_inputs,
)

logger = logging.getLogger(__name__)


class Interpolant:
    """An RBF interpolant for a fixed model.

    The interpolant is empty until a fit succeeds. Each fit validates its inputs,
    then clears the previous centers and weights; a fit that fails after that
    point leaves the interpolant empty.

    Instances are not safe for concurrent fitting and evaluation.

    Args:
        model: The RBF model
        **solver_options: Options forwarded to :class:`SolverSettings`
    """

    def __init__(self, model: Model, **solver_options: Any):
        self._model = model
        self.settings = SolverSettings.from_kwargs(**solver_options)
        self._clear()

    def _clear(self) -> None:
        self._centers = np.zeros((0, 3))
        self._centers_bbox = BoundingBox.empty()
        self._weights = np.zeros(0)
        self._evaluator: RBFEvaluator | None = None

    @property
    def model(self) -> Model:
        return self._model

    @property
    def centers(self) -> np.ndarray:
        return self._centers

    @property
    def centers_bbox(self) -> BoundingBox:
        return self._centers_bbox

    @property
    def weights(self) -> np.ndarray:
        return self._weights

    @property
    def is_fitted(self) -> bool:
        return len(self._centers) > 0

    def fit(self, points: np.ndarray, values: np.ndarray, absolute_tolerance: float) -> None:
        """Fit with every point as a center."""
        points, values = validate_fit_inputs(points, values, absolute_tolerance, self._model.poly_basis_size)

        self._clear()

        fitter = RBFFitter(self._model, points, self.settings)
        weights = fitter.fit(values, absolute_tolerance)
        self._set_fit(points, weights)

    def fit_incrementally(self, points: np.ndarray, values: np.ndarray, absolute_tolerance: float) -> None:
        """Fit by growing the center set greedily from the worst-fitted points."""
        self._check_nugget()
        points, values = validate_fit_inputs(points, values, absolute_tolerance, self._model.poly_basis_size)

        self._clear()

        fitter = RBFIncrementalFitter(self._model, points, self.settings)
        center_indices, weights = fitter.fit(values, absolute_tolerance)
        self._set_fit(points[center_indices], weights)

    def fit_inequality(
        self,
        points: np.ndarray,
        values: np.ndarray,
        values_lb: np.ndarray,
        values_ub: np.ndarray,
        absolute_tolerance: float,
    ) -> None:
        """Fit equality targets and bounds.

        NaN in ``values`` marks a point constrained only by its bounds; NaN in a
        bound means that side is unbounded.
        """
        self._check_nugget()
        points, values = validate_fit_inputs(points, values, absolute_tolerance, self._model.poly_basis_size)
        values_lb, values_ub = validate_bounds(values_lb, values_ub, len(points))

        self._clear()

        fitter = RBFInequalityFitter(self._model, points, self.settings)
        center_indices, weights = fitter.fit(values, values_lb, values_ub, absolute_tolerance)
        self._set_fit(points[center_indices], weights)

    def evaluate_points(self, points: np.ndarray) -> np.ndarray:
        """Evaluate at ``points``, rebuilding the evaluator if they leave its box."""
        points = as_points(points)
        bbox = BoundingBox.from_points(points)
        if self._evaluator is None or not self._evaluator.bbox.contains(bbox):
            self.set_evaluation_bbox(bbox)
        return self.evaluate_points_impl(points)

    def evaluate_points_impl(self, points: np.ndarray) -> np.ndarray:
        """Evaluate with the current evaluator, never rebuilding it.

        Raises:
            RuntimeError: If the interpolant is empty or no evaluation box was set.
        """
        if self._evaluator is None:
            msg = "The interpolant has no evaluator. Fit it and call set_evaluation_bbox() first."
            raise RuntimeError(msg)
        return self._evaluator.evaluate_points(points)

    def set_evaluation_bbox(self, bbox: BoundingBox) -> None:
        """Build the evaluator for queries in ``bbox`` (merged with the centers' box)."""
        if not self.is_fitted:
            msg = "The interpolant is not fitted. Call fit() first."
            raise RuntimeError(msg)
        union_bbox = bbox.union(self._centers_bbox)
        logger.debug("Building evaluator over %s", union_bbox)
        self._evaluator = RBFEvaluator(
            self._model,
            self._centers,
            union_bbox,
            method=self.settings.evaluation_method,
            chunk_size=self.settings.chunk_size,
            leaf_size=self.settings.leaf_size,
            skip_tolerance=self.settings.skip_tolerance,
        )
        self._evaluator.set_weights(self._weights)

    def to_file(self, filepath: str) -> None:
        """Save the interpolant to a netCDF file."""
        from monet_rbf.io import save_interpolant

        save_interpolant(self, filepath)

    @classmethod
    def from_file(cls, filepath: str, **solver_options: Any) -> Interpolant:
        """Load an interpolant saved with :meth:`to_file`."""
        from monet_rbf.io import load_interpolant

        return load_interpolant(filepath, **solver_options)

    def _set_fit(self, centers: np.ndarray, weights: np.ndarray) -> None:
        self._centers = centers
        self._centers_bbox = BoundingBox.from_points(centers)
        self._weights = weights
        self._evaluator = None

    def _check_nugget(self) -> None:
        if self._model.nugget > 0.0:
            msg = "RBF with finite nugget is not supported by this fit"
            raise NotSupportedError(msg)
