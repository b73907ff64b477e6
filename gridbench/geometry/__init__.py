"""
Geometry Module for Curvilinear Grid Resampling

This module provides the nearest-cell spatial indexes benchmarked by the
harness:
- LookupTable: raster of precomputed nearest cells
- KdTree: exact or approximate iterative search
- PackedRTree: bulk-loaded STR R-tree
- RTree: dynamically built quadratic-split R-tree

All variants implement the CurvilinearIndex contract and are obtained
through IndexRegistry by GridType tag.
"""

from .base import CurvilinearIndex
from .kd_tree import KDTree, KdTreeIndex, brute_force_nearest_neighbor
from .lookup_table import LookupTableIndex
from .packed_rtree import PackedRTreeIndex
from .rtree import RTree, RTreeIndex
from .registry import GridType, IndexRegistry, INDEX_CLASSES

__all__ = [
    'CurvilinearIndex',
    'KDTree',
    'KdTreeIndex',
    'brute_force_nearest_neighbor',
    'LookupTableIndex',
    'PackedRTreeIndex',
    'RTree',
    'RTreeIndex',
    'GridType',
    'IndexRegistry',
    'INDEX_CLASSES'
]
