"""
Common Contract for Curvilinear Grid Spatial Indexes

Every index variant answers the same question: which source grid cell has
its centre nearest a given position? Variants differ only in how they
organise the cell centres and in their search policy.
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple
import numpy as np

from ..data_models import CurvilinearCoordinates, Extent, QueryingParameters
from ..exceptions import UnsupportedOperationError


class CurvilinearIndex(ABC):
    """
    Nearest-cell lookup over one curvilinear coordinate system.

    Subclasses implement ``generate`` (construction) and ``_nearest_point``
    (search over the rows of ``coords.points``). Results are translated to
    flat source-grid cell indices here.

    Attributes:
        coords: Coordinate system the index was built from
        name: Human readable variant name
        supports_approximate_search: Whether querying parameters apply
    """

    name = "abstract"
    supports_approximate_search = False

    def __init__(self, coords: CurvilinearCoordinates):
        self.coords = coords

    @classmethod
    @abstractmethod
    def generate(cls, coords: CurvilinearCoordinates, **options) -> "CurvilinearIndex":
        """Construct a fresh index for ``coords``."""

    @abstractmethod
    def _nearest_point(self, query: np.ndarray) -> Optional[int]:
        """Row of ``coords.points`` nearest ``query`` or None if not found."""

    @property
    def extent(self) -> Extent:
        """Bounding box of the indexed cell centres."""
        return self.coords.extent

    def nearest(self, position) -> Optional[int]:
        """
        Find the source cell whose centre is nearest a position.

        Args:
            position: (x, y) pair

        Returns:
            Flat cell index into the source grid, or None when the variant's
            search policy finds no cell
        """
        row = self._nearest_point(np.asarray(position, dtype=np.float64))
        if row is None:
            return None
        return int(self.coords.point_indices[row])

    def nearest_cell(self, position) -> Optional[Tuple[int, int]]:
        """Same as ``nearest`` but returns the (j, i) cell coordinates."""
        flat = self.nearest(position)
        if flat is None:
            return None
        return self.coords.cell_of(flat)

    def set_querying_parameters(self, params: QueryingParameters) -> None:
        """
        Configure approximate search.

        Raises:
            UnsupportedOperationError: On variants that only search exactly
        """
        raise UnsupportedOperationError(
            f"{self.name} does not support approximate search parameters")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.coords!r})"
