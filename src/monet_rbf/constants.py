"""
Constants and defaults for monet-rbf.

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

from enum import Enum
from typing import Literal

# Polynomial trend is always built in three variables.
POLY_DIMENSION = 3

# Preconditioner layout
DEFAULT_COARSE_GRID_SIZE = 1024
DEFAULT_FINE_GRID_SIZE = 256
DEFAULT_OVERLAP = 0.25

# Outer solver
DEFAULT_MAX_ITERATIONS = 32
DEFAULT_RESTART = 64
DEFAULT_INNER_RTOL = 1e-10

# Evaluation
DEFAULT_CHUNK_SIZE = 2048
DEFAULT_LEAF_SIZE = 64
DEFAULT_SKIP_TOLERANCE = 1e-14

# Active-set growth
DEFAULT_GROWTH_RATIO = 0.5
DEFAULT_MIN_POINTS_TO_ADD = 32

EvaluationMethod = Literal["direct", "accelerated"]


class FitState(Enum):
    """States of the incremental and inequality fitters."""

    SEED = "seed"
    SOLVE = "solve"
    EVALUATE_RESIDUAL = "evaluate_residual"
    AUGMENT = "augment"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"
