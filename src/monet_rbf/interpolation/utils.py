"""
Utility functions for the cell-based evaluator.
"""

from __future__ import annotations

import numpy as np

from monet_rbf.utils import BoundingBox

__all__ = [
    "CellGrid",
    "_group_by_cell",
]


class CellGrid:
    """Uniform grid of cells over a bounding box.

    The cell size is chosen so that about ``points_per_cell`` of ``n_points``
    uniformly spread points fall in each cell. Axes with zero extent get a single
    cell.
    """

    def __init__(self, bbox: BoundingBox, n_points: int, points_per_cell: int):
        self.origin = np.asarray(bbox.min_corner, dtype=np.float64)
        extent = bbox.extent
        active = extent > 0

        n_target = max(1, int(np.ceil(n_points / max(1, points_per_cell))))
        self.shape = np.ones(3, dtype=np.int64)
        if np.any(active):
            volume = np.prod(extent[active])
            size = (volume / n_target) ** (1.0 / np.count_nonzero(active))
            self.shape[active] = np.maximum(1, np.ceil(extent[active] / size)).astype(np.int64)

        self.cell_size = np.where(active, extent / self.shape, 1.0)

    @property
    def n_cells(self) -> int:
        return int(np.prod(self.shape))

    def cell_ids(self, points: np.ndarray) -> np.ndarray:
        """Flat cell index of each point; points outside the box go to the nearest edge cell."""
        ijk = np.floor((points - self.origin) / self.cell_size).astype(np.int64)
        ijk = np.clip(ijk, 0, self.shape - 1)
        return np.ravel_multi_index((ijk[:, 0], ijk[:, 1], ijk[:, 2]), tuple(self.shape))


def _group_by_cell(points: np.ndarray, cell_ids: np.ndarray):
    """Sort points by cell and return the grouping.

    Returns:
        Tuple of (order, starts, counts, box_min, box_max) where ``order`` sorts the
        points by cell, ``starts``/``counts`` delimit each occupied cell in sorted
        order and ``box_min``/``box_max`` are the actual bounds of its points.
    """
    order = np.argsort(cell_ids, kind="stable")
    sorted_ids = cell_ids[order]
    _, starts, counts = np.unique(sorted_ids, return_index=True, return_counts=True)
    sorted_points = points[order]
    box_min = np.minimum.reduceat(sorted_points, starts, axis=0)
    box_max = np.maximum.reduceat(sorted_points, starts, axis=0)
    return order, starts, counts, box_min, box_max
