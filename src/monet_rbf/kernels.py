"""
Radial basis function kernels.

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
from collections.abc import Sequence
from dataclasses import dataclass
from typing import ClassVar, Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class RBFKernel(Protocol):
    """Structural interface shared by every kernel.

    Kernels are plain frozen dataclasses; anything providing these members can be
    used by the model, the solver and the evaluator.
    """

    name: ClassVar[str]
    cpd_order: ClassVar[int]

    @property
    def parameters(self) -> list[float]: ...

    @property
    def parameter_lower_bounds(self) -> list[float]: ...

    @property
    def parameter_upper_bounds(self) -> list[float]: ...

    @property
    def support_radius(self) -> float: ...

    def evaluate(self, distance: np.ndarray) -> np.ndarray: ...

    def evaluate_untransformed(self, distance: np.ndarray) -> np.ndarray: ...

    def with_parameters(self, params: Sequence[float]) -> RBFKernel: ...


def _check_positive(name: str, value: float) -> None:
    if not value > 0.0:
        msg = f"{name} > 0.0 is required, got {value}"
        raise ValueError(msg)


def _check_n_params(cls: type, params: Sequence[float], expected: int) -> None:
    if len(params) != expected:
        msg = f"{cls.__name__} takes {expected} parameter(s), got {len(params)}"
        raise ValueError(msg)


@dataclass(frozen=True)
class Biharmonic3D:
    """Biharmonic spline in 3-D, ``-slope * r``."""

    slope: float = 1.0

    name: ClassVar[str] = "biharmonic3d"
    cpd_order: ClassVar[int] = 1

    def __post_init__(self) -> None:
        _check_positive("slope", self.slope)

    @property
    def parameters(self) -> list[float]:
        return [self.slope]

    @property
    def parameter_lower_bounds(self) -> list[float]:
        return [0.0]

    @property
    def parameter_upper_bounds(self) -> list[float]:
        return [np.inf]

    @property
    def support_radius(self) -> float:
        return np.inf

    def evaluate(self, distance: np.ndarray) -> np.ndarray:
        return -self.slope * np.asarray(distance, dtype=np.float64)

    def evaluate_untransformed(self, distance: np.ndarray) -> np.ndarray:
        return -np.asarray(distance, dtype=np.float64)

    def with_parameters(self, params: Sequence[float]) -> Biharmonic3D:
        _check_n_params(type(self), params, 1)
        return Biharmonic3D(float(params[0]))


@dataclass(frozen=True)
class Triharmonic3D:
    """Triharmonic spline in 3-D, ``slope * r**3``."""

    slope: float = 1.0

    name: ClassVar[str] = "triharmonic3d"
    cpd_order: ClassVar[int] = 2

    def __post_init__(self) -> None:
        _check_positive("slope", self.slope)

    @property
    def parameters(self) -> list[float]:
        return [self.slope]

    @property
    def parameter_lower_bounds(self) -> list[float]:
        return [0.0]

    @property
    def parameter_upper_bounds(self) -> list[float]:
        return [np.inf]

    @property
    def support_radius(self) -> float:
        return np.inf

    def evaluate(self, distance: np.ndarray) -> np.ndarray:
        r = np.asarray(distance, dtype=np.float64)
        return self.slope * r * r * r

    def evaluate_untransformed(self, distance: np.ndarray) -> np.ndarray:
        r = np.asarray(distance, dtype=np.float64)
        return r * r * r

    def with_parameters(self, params: Sequence[float]) -> Triharmonic3D:
        _check_n_params(type(self), params, 1)
        return Triharmonic3D(float(params[0]))


@dataclass(frozen=True)
class _Covariance(abc.ABC):
    """Common parameter handling of the covariance kernels.

    Parameters are the partial sill and the range. Subclasses provide ``_shape``,
    the correlation as a function of the scaled distance ``r / range``.
    """

    psill: float = 1.0
    range: float = 1.0

    cpd_order: ClassVar[int] = 0

    def __post_init__(self) -> None:
        _check_positive("psill", self.psill)
        _check_positive("range", self.range)

    @staticmethod
    @abc.abstractmethod
    def _shape(t: np.ndarray) -> np.ndarray:
        """Correlation at the scaled distance ``t``."""

    @property
    def parameters(self) -> list[float]:
        return [self.psill, self.range]

    @property
    def parameter_lower_bounds(self) -> list[float]:
        return [0.0, 0.0]

    @property
    def parameter_upper_bounds(self) -> list[float]:
        return [np.inf, np.inf]

    @property
    def support_radius(self) -> float:
        return np.inf

    def evaluate(self, distance: np.ndarray) -> np.ndarray:
        return self.psill * self.evaluate_untransformed(distance)

    def evaluate_untransformed(self, distance: np.ndarray) -> np.ndarray:
        r = np.asarray(distance, dtype=np.float64)
        return self._shape(r / self.range)

    def with_parameters(self, params: Sequence[float]):
        _check_n_params(type(self), params, 2)
        return type(self)(float(params[0]), float(params[1]))


@dataclass(frozen=True)
class CovExponential(_Covariance):
    """Exponential covariance, ``psill * exp(-r / range)``."""

    name: ClassVar[str] = "cov_exponential"

    @staticmethod
    def _shape(t: np.ndarray) -> np.ndarray:
        return np.exp(-t)


@dataclass(frozen=True)
class CovGaussian(_Covariance):
    """Gaussian covariance, ``psill * exp(-(r / range)**2)``."""

    name: ClassVar[str] = "cov_gaussian"

    @staticmethod
    def _shape(t: np.ndarray) -> np.ndarray:
        return np.exp(-t * t)


@dataclass(frozen=True)
class CovSpherical(_Covariance):
    """Spherical covariance, zero beyond ``range``."""

    name: ClassVar[str] = "cov_spherical"

    @property
    def support_radius(self) -> float:
        return self.range

    @staticmethod
    def _shape(t: np.ndarray) -> np.ndarray:
        return np.where(t < 1.0, 1.0 - 1.5 * t + 0.5 * t * t * t, 0.0)


KERNELS: dict[str, type] = {
    cls.name: cls for cls in (Biharmonic3D, Triharmonic3D, CovExponential, CovGaussian, CovSpherical)
}


def kernel_from_name(name: str, params: Sequence[float]) -> RBFKernel:
    """Build a registered kernel from its name and parameter vector.

    Raises:
        ValueError: If ``name`` is not a registered kernel.
    """
    try:
        cls = KERNELS[name]
    except KeyError:
        msg = f"Unknown kernel {name!r}. Available kernels: {', '.join(sorted(KERNELS))}"
        raise ValueError(msg) from None
    return cls().with_parameters(list(params))
