"""
monet-rbf: radial basis function interpolation of scattered 3-D data.

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

from monet_rbf import sampling  # noqa: F401  registers the Dataset.rbf accessor
from monet_rbf.constants import FitState
from monet_rbf.core import BaseFitter, RBFFitter, RBFIncrementalFitter, RBFInequalityFitter
from monet_rbf.interpolant import Interpolant
from monet_rbf.interpolation import RBFEvaluator
from monet_rbf.kernels import (
    Biharmonic3D,
    CovExponential,
    CovGaussian,
    CovSpherical,
    RBFKernel,
    Triharmonic3D,
)
from monet_rbf.model import Model
from monet_rbf.sampling import create_sampling_grid
from monet_rbf.solver import RBFOperator, RBFSolver, SolverSettings
from monet_rbf.utils import (
    BoundingBox,
    ConvergenceError,
    InvalidBoundsError,
    NotSupportedError,
)

__version__ = "0.1.0"

__all__ = [
    "BaseFitter",
    "Biharmonic3D",
    "BoundingBox",
    "ConvergenceError",
    "CovExponential",
    "CovGaussian",
    "CovSpherical",
    "FitState",
    "Interpolant",
    "InvalidBoundsError",
    "Model",
    "NotSupportedError",
    "RBFEvaluator",
    "RBFFitter",
    "RBFIncrementalFitter",
    "RBFInequalityFitter",
    "RBFKernel",
    "RBFOperator",
    "RBFSolver",
    "SolverSettings",
    "Triharmonic3D",
    "create_sampling_grid",
]
