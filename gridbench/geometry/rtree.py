"""
Dynamic R-Tree Index

R-tree built by inserting cell centres one at a time, with Guttman's
quadratic node split. Unlike the packed variant, node occupancy depends on
insertion order, which makes it the slowest variant to build and a useful
contrast in the build-time benchmark.

Nearest-neighbour queries use best-first search: nodes are expanded in
order of MINDIST (distance from the query to the node's bounding box), so
the first point taken off the queue is the exact nearest.

Reference:
    Guttman, A. (1984). R-trees: a dynamic index structure for spatial
    searching. Proceedings of ACM SIGMOD, 47-57.
"""

from dataclasses import dataclass, field
from heapq import heappush, heappop
from itertools import count
from typing import List, Optional, Tuple, Union
import math
import numpy as np

from .base import CurvilinearIndex
from ..data_models import CurvilinearCoordinates

Box = Tuple[float, float, float, float]


def _cover(boxes: List[Box]) -> Box:
    """Smallest box containing every box in the list."""
    return (
        min(b[0] for b in boxes),
        min(b[1] for b in boxes),
        max(b[2] for b in boxes),
        max(b[3] for b in boxes)
    )


def _union(a: Box, b: Box) -> Box:
    return (min(a[0], b[0]), min(a[1], b[1]), max(a[2], b[2]), max(a[3], b[3]))


def _area(box: Box) -> float:
    return (box[2] - box[0]) * (box[3] - box[1])


def _margin(box: Box) -> float:
    return (box[2] - box[0]) + (box[3] - box[1])


def _enlargement(box: Box, extra: Box) -> float:
    return _area(_union(box, extra)) - _area(box)


def _min_distance(box: Box, x: float, y: float) -> float:
    """MINDIST between a point and a box (0 if the point is inside)."""
    dx = max(box[0] - x, 0.0, x - box[2])
    dy = max(box[1] - y, 0.0, y - box[3])
    return math.hypot(dx, dy)


@dataclass
class RTreeNode:
    """
    A node in the R-tree.

    Attributes:
        leaf: True if children are point indices rather than nodes
        boxes: Bounding box of each child entry
        children: Child nodes (internal) or point indices (leaf)
    """
    leaf: bool
    boxes: List[Box] = field(default_factory=list)
    children: List[Union['RTreeNode', int]] = field(default_factory=list)


class RTree:
    """
    Point R-tree with one-at-a-time insertion and quadratic split.

    Example:
        >>> tree = RTree(max_entries=4)
        >>> for i, (x, y) in enumerate([[0, 0], [1, 1], [5, 5], [6, 6], [9, 9]]):
        ...     tree.insert(i, x, y)
        >>> tree.nearest_neighbor(5.2, 5.1)[0]
        2

    Attributes:
        root: Root node
        max_entries: Node capacity (M)
        min_entries: Minimum fill after a split (m <= M/2)
        n_points: Number of inserted points
    """

    def __init__(self, max_entries: int = 16, min_entries: Optional[int] = None):
        if max_entries < 2:
            raise ValueError(f"max_entries must be at least 2, got {max_entries}")
        self.max_entries = max_entries
        self.min_entries = min_entries if min_entries is not None else max(1, int(0.4 * max_entries))
        if not 1 <= self.min_entries <= max_entries // 2:
            raise ValueError(f"min_entries must be in [1, {max_entries // 2}], got {self.min_entries}")
        self.root = RTreeNode(leaf=True)
        self.n_points = 0

    def insert(self, index: int, x: float, y: float) -> None:
        """
        Insert one point.

        Descends to the leaf whose box needs least enlargement, adds the
        entry, then walks back up splitting overflowing nodes and
        refreshing bounding boxes.
        """
        box = (float(x), float(y), float(x), float(y))

        path: List[Tuple[RTreeNode, int]] = []
        node = self.root
        while not node.leaf:
            i = self._choose_subtree(node, box)
            path.append((node, i))
            node = node.children[i]

        node.boxes.append(box)
        node.children.append(index)
        sibling = self._split(node) if len(node.children) > self.max_entries else None

        while path:
            parent, i = path.pop()
            parent.boxes[i] = _cover(node.boxes)
            if sibling is not None:
                parent.boxes.append(_cover(sibling.boxes))
                parent.children.append(sibling)
                sibling = self._split(parent) if len(parent.children) > self.max_entries else None
            node = parent

        if sibling is not None:
            self.root = RTreeNode(
                leaf=False,
                boxes=[_cover(node.boxes), _cover(sibling.boxes)],
                children=[node, sibling]
            )

        self.n_points += 1

    @staticmethod
    def _choose_subtree(node: RTreeNode, box: Box) -> int:
        """Child needing least area enlargement, ties broken by smaller area."""
        best_i = 0
        best_key = (float('inf'), float('inf'))
        for i, child_box in enumerate(node.boxes):
            key = (_enlargement(child_box, box), _area(child_box))
            if key < best_key:
                best_key = key
                best_i = i
        return best_i

    def _split(self, node: RTreeNode) -> RTreeNode:
        """
        Quadratic split.

        Keeps the first group in ``node`` and returns a new sibling holding
        the second group.
        """
        entries = list(zip(node.boxes, node.children))

        # Seeds: the pair that would waste the most area if grouped together
        seed_a, seed_b = 0, 1
        worst = (-float('inf'), -float('inf'))
        for a in range(len(entries)):
            for b in range(a + 1, len(entries)):
                cover = _union(entries[a][0], entries[b][0])
                waste = _area(cover) - _area(entries[a][0]) - _area(entries[b][0])
                key = (waste, _margin(cover))
                if key > worst:
                    worst = key
                    seed_a, seed_b = a, b

        group_a = [entries[seed_a]]
        group_b = [entries[seed_b]]
        box_a = entries[seed_a][0]
        box_b = entries[seed_b][0]
        remaining = [e for k, e in enumerate(entries) if k not in (seed_a, seed_b)]

        while remaining:
            if len(group_a) + len(remaining) <= self.min_entries:
                group_a.extend(remaining)
                box_a = _cover([box_a] + [e[0] for e in remaining])
                break
            if len(group_b) + len(remaining) <= self.min_entries:
                group_b.extend(remaining)
                box_b = _cover([box_b] + [e[0] for e in remaining])
                break

            # Next entry: strongest preference for one group
            pick = 0
            best_diff = -1.0
            for k, (entry_box, _) in enumerate(remaining):
                diff = abs(_enlargement(box_a, entry_box) - _enlargement(box_b, entry_box))
                if diff > best_diff:
                    best_diff = diff
                    pick = k
            entry = remaining.pop(pick)

            grow_a = _enlargement(box_a, entry[0])
            grow_b = _enlargement(box_b, entry[0])
            key_a = (grow_a, _area(box_a), len(group_a))
            key_b = (grow_b, _area(box_b), len(group_b))
            if key_a <= key_b:
                group_a.append(entry)
                box_a = _union(box_a, entry[0])
            else:
                group_b.append(entry)
                box_b = _union(box_b, entry[0])

        node.boxes = [e[0] for e in group_a]
        node.children = [e[1] for e in group_a]
        return RTreeNode(
            leaf=node.leaf,
            boxes=[e[0] for e in group_b],
            children=[e[1] for e in group_b]
        )

    def nearest_neighbor(self, x: float, y: float) -> Tuple[int, float]:
        """
        Exact nearest point by best-first search.

        Returns:
            Tuple of (point index, distance)
        """
        if self.n_points == 0:
            raise ValueError("Cannot query empty tree")

        tiebreak = count()
        queue: List[Tuple[float, int, bool, Union[RTreeNode, int]]] = []
        heappush(queue, (0.0, next(tiebreak), False, self.root))

        while queue:
            dist, _, is_point, item = heappop(queue)
            if is_point:
                return item, dist
            for box, child in zip(item.boxes, item.children):
                heappush(queue, (_min_distance(box, x, y), next(tiebreak), item.leaf, child))

        raise ValueError("Cannot query empty tree")

    def depth(self) -> int:
        """Number of levels from root to leaves."""
        levels = 1
        node = self.root
        while not node.leaf:
            node = node.children[0]
            levels += 1
        return levels


class RTreeIndex(CurvilinearIndex):
    """
    Curvilinear index backed by a dynamically built R-tree.

    Attributes:
        tree: RTree holding one entry per valid cell centre
    """

    name = "RTree"

    DEFAULT_MAX_ENTRIES = 16

    def __init__(self, coords: CurvilinearCoordinates, tree: RTree):
        super().__init__(coords)
        self.tree = tree

    @classmethod
    def generate(
        cls,
        coords: CurvilinearCoordinates,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        **options
    ) -> "RTreeIndex":
        tree = RTree(max_entries=max_entries)
        for row, (x, y) in enumerate(coords.points):
            tree.insert(row, x, y)
        return cls(coords, tree)

    def _nearest_point(self, query: np.ndarray) -> Optional[int]:
        idx, _ = self.tree.nearest_neighbor(float(query[0]), float(query[1]))
        return idx
