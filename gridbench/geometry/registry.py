"""
Index Variant Registry

Maps the discrete grid-type tag to an index variant and owns the
per-variant construction caches. Caches are keyed by the coordinate
system's identity, so repeated builds for the same source grid return the
already constructed index until the cache is cleared.
"""

from enum import IntEnum
from numbers import Integral
from typing import Dict, Type

from .base import CurvilinearIndex
from .lookup_table import LookupTableIndex
from .kd_tree import KdTreeIndex
from .packed_rtree import PackedRTreeIndex
from .rtree import RTreeIndex
from ..data_models import CurvilinearCoordinates
from ..exceptions import InvalidConfigurationError


class GridType(IntEnum):
    """Index variants, numbered by their command-line tag."""
    LOOKUP_TABLE = 0
    KD_TREE = 1
    PACKED_RTREE = 2
    RTREE = 3

    @classmethod
    def from_tag(cls, tag) -> "GridType":
        """
        Resolve a tag, failing closed on anything outside 0-3.

        Raises:
            InvalidConfigurationError: For unknown or non-integer tags
        """
        if isinstance(tag, cls):
            return tag
        if isinstance(tag, bool) or not isinstance(tag, Integral):
            raise InvalidConfigurationError(f"grid_type must be an integer 0-3, got {tag!r}")
        try:
            return cls(int(tag))
        except ValueError:
            raise InvalidConfigurationError(
                f"grid_type must be 0, 1, 2 or 3, got {tag}") from None

    @property
    def label(self) -> str:
        return INDEX_CLASSES[self].name


INDEX_CLASSES: Dict[GridType, Type[CurvilinearIndex]] = {
    GridType.LOOKUP_TABLE: LookupTableIndex,
    GridType.KD_TREE: KdTreeIndex,
    GridType.PACKED_RTREE: PackedRTreeIndex,
    GridType.RTREE: RTreeIndex,
}


class IndexRegistry:
    """
    Factory and cache owner for every index variant.

    Example:
        >>> registry = IndexRegistry()
        >>> index = registry.build(GridType.KD_TREE, coords)
        >>> registry.build(1, coords) is index
        True
        >>> registry.clear_all_caches()
        >>> registry.build(1, coords) is index
        False

    Attributes:
        build_count: Number of cold constructions performed
        options: Per-variant keyword options passed to ``generate``
    """

    def __init__(self, options: Dict[GridType, dict] = None):
        self._caches: Dict[GridType, Dict[str, CurvilinearIndex]] = {
            grid_type: {} for grid_type in GridType
        }
        self.options = {GridType.from_tag(k): dict(v) for k, v in (options or {}).items()}
        self.build_count = 0

    def build(self, tag, coords: CurvilinearCoordinates) -> CurvilinearIndex:
        """
        Get the index of the requested variant for a coordinate system.

        The tag is validated before any cache lookup or construction.

        Args:
            tag: GridType or integer tag 0-3
            coords: Source coordinate system

        Returns:
            Cached index if present, otherwise a newly generated one

        Raises:
            InvalidConfigurationError: For an unknown tag
        """
        grid_type = GridType.from_tag(tag)
        cache = self._caches[grid_type]

        index = cache.get(coords.key)
        if index is None:
            index = INDEX_CLASSES[grid_type].generate(coords, **self.options.get(grid_type, {}))
            self.build_count += 1
            cache[coords.key] = index
        return index

    def is_cached(self, tag, coords: CurvilinearCoordinates) -> bool:
        return coords.key in self._caches[GridType.from_tag(tag)]

    def clear_cache(self, tag) -> None:
        """Drop every cached index of one variant."""
        self._caches[GridType.from_tag(tag)].clear()

    def clear_all_caches(self) -> None:
        """Drop every cached index of every variant."""
        for grid_type in GridType:
            self.clear_cache(grid_type)
