"""
Look-Up Table Index

The extent of the source grid is rasterised at a resolution finer than the
source cells, and each raster cell stores the index of its nearest source
cell centre. A query is then a constant-time array read. Raster cells far
from every source centre (outside the curvilinear footprint) are marked
missing.
"""

from typing import Optional
import math
import numpy as np
from scipy.spatial import cKDTree

from .base import CurvilinearIndex
from ..data_models import CurvilinearCoordinates

MISSING = -1


class LookupTableIndex(CurvilinearIndex):
    """
    Raster look-up table of nearest source cells.

    Attributes:
        table: int32 array of shape (rows, cols) of point rows, -1 if missing
        resolution: Raster cell size in source coordinate units
    """

    name = "LookupTable"

    # Raster cells per source cell spacing along each axis
    DEFAULT_OVERSAMPLING = 3
    # Upper bound on raster size; the resolution is coarsened to fit
    MAX_TABLE_CELLS = 4_000_000
    # Raster cells farther than this many source spacings are missing
    MISSING_DISTANCE_FACTOR = 2.0

    def __init__(self, coords: CurvilinearCoordinates, table: np.ndarray, resolution: float):
        super().__init__(coords)
        self.table = table
        self.resolution = resolution

    @classmethod
    def generate(
        cls,
        coords: CurvilinearCoordinates,
        oversampling: int = DEFAULT_OVERSAMPLING,
        max_table_cells: int = MAX_TABLE_CELLS,
        **options
    ) -> "LookupTableIndex":
        """
        Rasterise the coordinate system into a look-up table.

        Args:
            coords: Source coordinate system
            oversampling: Raster cells per source spacing
            max_table_cells: Size cap for the raster

        Returns:
            New LookupTableIndex
        """
        extent = coords.extent
        spacing = coords.nominal_resolution
        resolution = spacing / max(1, oversampling)

        n_cols = max(1, math.ceil(extent.width / resolution))
        n_rows = max(1, math.ceil(extent.height / resolution))
        if n_cols * n_rows > max_table_cells:
            scale = math.sqrt(n_cols * n_rows / max_table_cells)
            resolution *= scale
            n_cols = max(1, math.ceil(extent.width / resolution))
            n_rows = max(1, math.ceil(extent.height / resolution))

        xs = extent.min_x + (np.arange(n_cols) + 0.5) * resolution
        ys = extent.min_y + (np.arange(n_rows) + 0.5) * resolution
        xx, yy = np.meshgrid(xs, ys)
        centres = np.column_stack([xx.ravel(), yy.ravel()])

        tree = cKDTree(coords.points)
        max_distance = cls.MISSING_DISTANCE_FACTOR * spacing
        distances, rows = tree.query(centres, k=1, distance_upper_bound=max_distance)

        # cKDTree reports "not found" as an index equal to the point count
        table = np.where(np.isfinite(distances), rows, MISSING).astype(np.int32)
        return cls(coords, table.reshape(n_rows, n_cols), resolution)

    def _nearest_point(self, query: np.ndarray) -> Optional[int]:
        extent = self.coords.extent
        x, y = float(query[0]), float(query[1])
        if not extent.contains(x, y):
            return None

        n_rows, n_cols = self.table.shape
        col = min(int((x - extent.min_x) / self.resolution), n_cols - 1)
        row = min(int((y - extent.min_y) / self.resolution), n_rows - 1)

        value = int(self.table[row, col])
        return None if value == MISSING else value
