from __future__ import annotations

from dataclasses import dataclass

import numpy as np

"""
Shared types, exceptions and input validation.

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


class InvalidBoundsError(ValueError): ...


class NotSupportedError(NotImplementedError): ...


class ConvergenceError(RuntimeError): ...


Vector3 = tuple[float, float, float]


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in 3-D.

    The canonical empty box has every minimum at +inf and every maximum at -inf,
    so that it is the identity of :meth:`union`.
    """

    min_corner: Vector3
    max_corner: Vector3

    def __post_init__(self) -> None:
        """Validate the corners."""
        if len(self.min_corner) != 3 or len(self.max_corner) != 3:
            msg = "Bounding box corners must have exactly three coordinates."
            raise InvalidBoundsError(msg)
        object.__setattr__(self, "min_corner", tuple(float(v) for v in self.min_corner))
        object.__setattr__(self, "max_corner", tuple(float(v) for v in self.max_corner))
        if self.is_empty:
            return
        if any(lo > hi for lo, hi in zip(self.min_corner, self.max_corner)):
            msg = (
                f"Minimum corner {self.min_corner} exceeds maximum corner {self.max_corner}.\n"
                "Please check the bounds input."
            )
            raise InvalidBoundsError(msg)

    @classmethod
    def empty(cls) -> BoundingBox:
        return cls((np.inf, np.inf, np.inf), (-np.inf, -np.inf, -np.inf))

    @classmethod
    def from_points(cls, points: np.ndarray) -> BoundingBox:
        """Smallest box containing all points (the empty box for no points)."""
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if len(points) == 0:
            return cls.empty()
        return cls(tuple(points.min(axis=0)), tuple(points.max(axis=0)))

    @property
    def is_empty(self) -> bool:
        return all(np.isposinf(v) for v in self.min_corner) and all(np.isneginf(v) for v in self.max_corner)

    @property
    def extent(self) -> np.ndarray:
        if self.is_empty:
            return np.zeros(3)
        return np.asarray(self.max_corner) - np.asarray(self.min_corner)

    @property
    def center(self) -> np.ndarray:
        return (np.asarray(self.min_corner) + np.asarray(self.max_corner)) / 2

    def union(self, other: BoundingBox) -> BoundingBox:
        if self.is_empty:
            return other
        if other.is_empty:
            return self
        return BoundingBox(
            tuple(np.minimum(self.min_corner, other.min_corner)),
            tuple(np.maximum(self.max_corner, other.max_corner)),
        )

    def contains(self, other: BoundingBox) -> bool:
        """Whether ``other`` lies entirely inside this box."""
        if other.is_empty:
            return True
        if self.is_empty:
            return False
        return bool(
            np.all(np.asarray(self.min_corner) <= np.asarray(other.min_corner))
            and np.all(np.asarray(other.max_corner) <= np.asarray(self.max_corner))
        )


def as_points(points: np.ndarray, name: str = "points") -> np.ndarray:
    """Return ``points`` as a contiguous float64 array of shape (n, 3)."""
    array = np.ascontiguousarray(points, dtype=np.float64)
    if array.ndim != 2 or array.shape[1] != 3:
        msg = f"{name} must have shape (n, 3), got {array.shape}"
        raise ValueError(msg)
    return array


def as_values(values: np.ndarray, n_points: int, name: str = "values") -> np.ndarray:
    """Return ``values`` as a float64 vector of length ``n_points``."""
    array = np.ascontiguousarray(values, dtype=np.float64).reshape(-1)
    if len(array) != n_points:
        msg = f"len({name}) == len(points) is required, got {len(array)} != {n_points}"
        raise ValueError(msg)
    return array


def validate_fit_inputs(
    points: np.ndarray,
    values: np.ndarray,
    absolute_tolerance: float,
    poly_basis_size: int,
) -> tuple[np.ndarray, np.ndarray]:
    """Check the sizing and tolerance preconditions shared by every fit.

    Returns:
        Validated points (n, 3) and values (n,).
    """
    points = as_points(points)
    min_n_points = max(1, poly_basis_size)
    if len(points) < min_n_points:
        msg = f"len(points) >= {min_n_points} is required, got {len(points)}"
        raise ValueError(msg)

    values = as_values(values, len(points))

    if not absolute_tolerance > 0.0:
        msg = f"absolute_tolerance > 0.0 is required, got {absolute_tolerance}"
        raise ValueError(msg)

    return points, values


def validate_bounds(values_lb: np.ndarray, values_ub: np.ndarray, n_points: int) -> tuple[np.ndarray, np.ndarray]:
    """Check the bound vectors of an inequality fit.

    NaN marks an unbounded side and never counts as crossed.

    Returns:
        Validated lower and upper bounds (n,).
    """
    lb = as_values(values_lb, n_points, "values_lb")
    ub = as_values(values_ub, n_points, "values_ub")
    if np.any(lb > ub):
        msg = "values_lb <= values_ub is required where both bounds are given"
        raise ValueError(msg)
    return lb, ub
