"""
RBF model: a kernel together with a polynomial trend and a nugget.

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

import json
from collections.abc import Sequence
from dataclasses import dataclass, replace
from math import comb

import numpy as np

from monet_rbf.constants import POLY_DIMENSION
from monet_rbf.kernels import RBFKernel, kernel_from_name


def poly_basis_size(dimension: int, degree: int) -> int:
    """Number of monomials of total degree <= ``degree`` in ``dimension`` variables."""
    if degree < 0:
        return 0
    return comb(degree + dimension, dimension)


@dataclass(frozen=True)
class Model:
    """Immutable description of an RBF interpolant.

    Attributes:
        rbf: The kernel.
        poly_degree: Degree of the polynomial trend, -1 for none.
        nugget: Smoothing term added to the diagonal of the kernel matrix.
    """

    rbf: RBFKernel
    poly_degree: int = 0
    nugget: float = 0.0

    def __post_init__(self) -> None:
        if isinstance(self.poly_degree, bool) or int(self.poly_degree) != self.poly_degree:
            msg = f"poly_degree must be an integer, got {self.poly_degree!r}"
            raise ValueError(msg)
        object.__setattr__(self, "poly_degree", int(self.poly_degree))
        if self.poly_degree < -1:
            msg = f"poly_degree >= -1 is required, got {self.poly_degree}"
            raise ValueError(msg)
        if not self.nugget >= 0.0:
            msg = f"nugget >= 0.0 is required, got {self.nugget}"
            raise ValueError(msg)

    @property
    def poly_dimension(self) -> int:
        return POLY_DIMENSION

    @property
    def poly_basis_size(self) -> int:
        return poly_basis_size(POLY_DIMENSION, self.poly_degree)

    @property
    def num_parameters(self) -> int:
        return 1 + len(self.rbf.parameters)

    @property
    def parameters(self) -> list[float]:
        """Nugget followed by the kernel parameters."""
        return [self.nugget, *self.rbf.parameters]

    @property
    def parameter_lower_bounds(self) -> list[float]:
        return [0.0, *self.rbf.parameter_lower_bounds]

    @property
    def parameter_upper_bounds(self) -> list[float]:
        return [np.inf, *self.rbf.parameter_upper_bounds]

    def with_parameters(self, params: Sequence[float]) -> Model:
        """Copy of the model with the nugget and kernel parameters replaced."""
        if len(params) != self.num_parameters:
            msg = f"len(params) == {self.num_parameters} is required, got {len(params)}"
            raise ValueError(msg)
        return replace(self, nugget=float(params[0]), rbf=self.rbf.with_parameters(list(params[1:])))

    def with_nugget(self, nugget: float) -> Model:
        return replace(self, nugget=float(nugget))

    def variogram(self, distance: np.ndarray) -> np.ndarray:
        """Semivariogram implied by the model, for external variogram fitting.

        ``gamma(d) = nugget * [d > 0] + C(0) - C(d)``
        """
        d = np.asarray(distance, dtype=np.float64)
        c0 = self.rbf.evaluate(np.zeros_like(d))
        return self.nugget * (d > 0.0) + c0 - self.rbf.evaluate(d)

    def to_json(self) -> str:
        return json.dumps(
            {
                "rbf": self.rbf.name,
                "rbf_parameters": self.rbf.parameters,
                "poly_degree": self.poly_degree,
                "nugget": self.nugget,
            }
        )

    @classmethod
    def from_json(cls, text: str) -> Model:
        data = json.loads(text)
        rbf = kernel_from_name(data["rbf"], data["rbf_parameters"])
        return cls(rbf, poly_degree=data["poly_degree"], nugget=data["nugget"])
