"""
I/O functions for monet-rbf.

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

from typing import TYPE_CHECKING, Any

import numpy as np
import xarray as xr

from monet_rbf.model import Model

if TYPE_CHECKING:
    from monet_rbf.interpolant import Interpolant


def _interpolant_to_dataset(interpolant: Interpolant) -> xr.Dataset:
    """Pack centers, weights and the JSON-encoded model into a Dataset."""
    ds = xr.Dataset()
    ds.attrs["model"] = interpolant.model.to_json()
    ds.attrs["is_fitted"] = int(interpolant.is_fitted)
    if not interpolant.is_fitted:
        return ds

    n_centers = len(interpolant.centers)
    ds["centers"] = (("center", "xyz"), interpolant.centers)
    ds["rbf_weights"] = (("center",), interpolant.weights[:n_centers])
    # Zero-length dimensions are not written
    if interpolant.model.poly_basis_size > 0:
        ds["poly_weights"] = (("poly",), interpolant.weights[n_centers:])
    ds = ds.assign_coords(xyz=["x", "y", "z"])
    return ds


def save_interpolant(interpolant: Interpolant, filepath: str) -> None:
    """Write an interpolant to a netCDF file."""
    _interpolant_to_dataset(interpolant).to_netcdf(filepath, mode="w", engine="h5netcdf")


def load_interpolant(filepath: str, **solver_options: Any) -> Interpolant:
    """Read an interpolant from a netCDF file.

    Raises:
        ValueError: If the stored model names an unknown kernel.
    """
    from monet_rbf.interpolant import Interpolant

    with xr.open_dataset(filepath, engine="h5netcdf") as ds:
        model = Model.from_json(ds.attrs["model"])
        interpolant = Interpolant(model, **solver_options)
        if not int(ds.attrs["is_fitted"]):
            return interpolant

        centers = np.asarray(ds["centers"].values, dtype=np.float64)
        poly_weights = ds["poly_weights"].values if "poly_weights" in ds else np.zeros(0)
        weights = np.concatenate(
            [
                np.asarray(ds["rbf_weights"].values, dtype=np.float64),
                np.asarray(poly_weights, dtype=np.float64),
            ]
        )

    if len(weights) != len(centers) + model.poly_basis_size:
        msg = f"{filepath} holds {len(weights)} weights for {len(centers)} centers, inconsistent with the model"
        raise ValueError(msg)
    interpolant._set_fit(centers, weights)
    return interpolant
