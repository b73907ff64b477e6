"""
Packed R-Tree Index

Bulk-loaded (Sort-Tile-Recursive) R-tree over the cell centres, using
shapely's STRtree. Packing fills every node to the branch factor, so the
tree is built once in a single pass and is never modified afterwards.
"""

from typing import Optional
import numpy as np
import shapely
from shapely.geometry import Point
from shapely.strtree import STRtree

from .base import CurvilinearIndex
from ..data_models import CurvilinearCoordinates


class PackedRTreeIndex(CurvilinearIndex):
    """
    STR-packed R-tree with exact nearest-neighbour queries.

    Attributes:
        tree: shapely STRtree over point geometries (one per valid cell)
        branch_factor: Maximum children per node
    """

    name = "PackedRTree"

    RTREE_BRANCH_FACTOR = 10

    def __init__(self, coords: CurvilinearCoordinates, tree: STRtree, branch_factor: int):
        super().__init__(coords)
        self.tree = tree
        self.branch_factor = branch_factor

    @classmethod
    def generate(
        cls,
        coords: CurvilinearCoordinates,
        branch_factor: int = RTREE_BRANCH_FACTOR,
        **options
    ) -> "PackedRTreeIndex":
        geometries = shapely.points(coords.points)
        tree = STRtree(geometries, node_capacity=branch_factor)
        return cls(coords, tree, branch_factor)

    def _nearest_point(self, query: np.ndarray) -> Optional[int]:
        found = self.tree.nearest(Point(float(query[0]), float(query[1])))
        return None if found is None else int(found)
