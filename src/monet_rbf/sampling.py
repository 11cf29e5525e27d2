from __future__ import annotations

from collections.abc import Hashable
from typing import TYPE_CHECKING, Any

import numpy as np
import xarray as xr

"""
Regular sampling grids and the ``rbf`` xarray accessor.

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
from monet_rbf.utils import BoundingBox, InvalidBoundsError

if TYPE_CHECKING:
    from monet_rbf.interpolant import Interpolant

AXES = ("x", "y", "z")


def create_axis_coords(lower: float, upper: float, resolution: float) -> np.ndarray:
    """Create evenly spaced coordinates from ``lower`` up to ``upper``.

    ``upper`` is included when the extent is a multiple of ``resolution``.
    """
    if not resolution > 0:
        msg = f"resolution > 0 is required, got {resolution}"
        raise ValueError(msg)
    if np.remainder((upper - lower), resolution) > 0:
        return np.arange(lower, upper, resolution)
    return np.arange(lower, upper + resolution / 2, resolution)


def create_sampling_grid(
    bbox: BoundingBox,
    resolution: float | tuple[float, float, float],
    names: tuple[str, str, str] = AXES,
) -> xr.Dataset:
    """Create a dataset of regular 3-D sampling coordinates.

    Args:
        bbox: Bounding box to cover.
        resolution: Grid spacing, either one value or one per axis.
        names: Names of the x, y and z coordinates and dimensions.

    Returns:
        A dataset with the x, y and z coordinates corresponding to the
            specified grid. Contains no data variables.
    """
    if bbox.is_empty:
        msg = "Cannot create a sampling grid over an empty bounding box."
        raise InvalidBoundsError(msg)
    resolutions = np.broadcast_to(np.asarray(resolution, dtype=np.float64), (3,))
    coords = {
        name: create_axis_coords(lo, hi, res)
        for name, lo, hi, res in zip(names, bbox.min_corner, bbox.max_corner, resolutions)
    }
    return xr.Dataset(coords=coords)


def _evaluate_block(x: np.ndarray, y: np.ndarray, z: np.ndarray, interpolant: Interpolant) -> np.ndarray:
    points = np.stack([x.ravel(), y.ravel(), z.ravel()], axis=1)
    return interpolant.evaluate_points_impl(points).reshape(x.shape)


@xr.register_dataset_accessor("rbf")
class RBFSampler:
    """Evaluating RBF interpolants on the coordinates of a dataset.

    The dataset must carry three 1-D coordinates, ``x``, ``y`` and ``z`` by
    default, as created by :func:`create_sampling_grid`.
    """

    def __init__(self, xarray_obj: xr.Dataset):
        self._obj = xarray_obj

    def _axis(self, name: Hashable) -> xr.DataArray:
        if name not in self._obj.coords:
            msg = f"Dataset has no coordinate {name!r}"
            raise KeyError(msg)
        return self._obj[name]

    def bbox(self, names: tuple[str, str, str] = AXES) -> BoundingBox:
        axes = [self._axis(name) for name in names]
        return BoundingBox(
            tuple(float(a.min()) for a in axes),
            tuple(float(a.max()) for a in axes),
        )

    def evaluate(
        self,
        interpolant: Interpolant,
        name: str = "value",
        chunks: int | dict[str, int] | None = None,
        names: tuple[str, str, str] = AXES,
    ) -> xr.DataArray:
        """Evaluate ``interpolant`` at every grid node.

        Args:
            interpolant: A fitted interpolant.
            name: Name of the returned DataArray.
            chunks: Dask chunks; when given the result is lazy and chunks are
                evaluated in parallel.
            names: Names of the x, y and z coordinates.

        Returns:
            DataArray of values over the grid dimensions.
        """
        # Fixed before dispatch so that every chunk only reads the evaluator
        interpolant.set_evaluation_bbox(self.bbox(names))

        xx, yy, zz = xr.broadcast(*(self._axis(n) for n in names))
        if chunks is not None:
            xx, yy, zz = (a.chunk(chunks) for a in (xx, yy, zz))

        kwargs: dict[str, Any] = {"interpolant": interpolant}
        result = xr.apply_ufunc(
            _evaluate_block,
            xx,
            yy,
            zz,
            kwargs=kwargs,
            dask="parallelized",
            output_dtypes=[np.float64],
        )
        return result.rename(name)
