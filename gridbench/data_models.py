"""
Data Models for the Curvilinear Grid Benchmarking Harness

This module defines the core value objects shared by the spatial indexes,
the benchmarks and the tuning loop. Uses Python dataclasses for clean,
type-hinted containers.

Data Flow:
    CurvilinearCoordinates → CurvilinearIndex → SampleDomain queries
    QueryingParameters → KdTreeIndex approximate search → TuningRecord
"""

from dataclasses import dataclass, asdict
from typing import Dict, Any, Iterator, Optional, Tuple
import hashlib
import math
import numpy as np

from .exceptions import InvalidConfigurationError


@dataclass(frozen=True)
class Extent:
    """
    Axis-aligned bounding box in the source coordinate space.

    Attributes:
        min_x: Western edge (longitude for geographic grids)
        min_y: Southern edge (latitude for geographic grids)
        max_x: Eastern edge
        max_y: Northern edge
    """
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def contains(self, x: float, y: float) -> bool:
        """True if (x, y) lies inside or on the boundary of the box."""
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    @classmethod
    def from_points(cls, points: np.ndarray) -> "Extent":
        """Bounding box of an (n, 2) point array."""
        if len(points) == 0:
            raise InvalidConfigurationError("Cannot compute the extent of an empty point set")
        mins = points.min(axis=0)
        maxs = points.max(axis=0)
        return cls(float(mins[0]), float(mins[1]), float(maxs[0]), float(maxs[1]))


class CurvilinearCoordinates:
    """
    Cell-centre coordinates of a curvilinear source grid.

    Cell (j, i) has its centre at (lon[j, i], lat[j, i]). Flat cell indices
    are row-major, so flat index k is cell (k // nx, k % nx). Cells whose
    coordinates are not finite (land masks, off-disk satellite pixels) are
    excluded from ``points`` but keep their flat index numbering.

    Attributes:
        lon: 2D longitude (x) array of shape (ny, nx)
        lat: 2D latitude (y) array of shape (ny, nx)
        key: Identity of the coordinate system, used to key index caches

    Example:
        >>> lat, lon = np.meshgrid(np.arange(3.0), np.arange(4.0), indexing='ij')
        >>> coords = CurvilinearCoordinates(lon, lat)
        >>> coords.shape
        (3, 4)
    """

    def __init__(self, lon: np.ndarray, lat: np.ndarray, key: Optional[str] = None):
        lon = np.asarray(lon, dtype=np.float64)
        lat = np.asarray(lat, dtype=np.float64)
        if lon.ndim != 2 or lon.shape != lat.shape:
            raise InvalidConfigurationError(
                f"Longitude and latitude must be 2D arrays of equal shape, "
                f"got {lon.shape} and {lat.shape}"
            )
        self.lon = lon
        self.lat = lat
        self.key = key if key is not None else self._digest(lon, lat)

        flat = np.column_stack([lon.ravel(), lat.ravel()])
        valid = np.all(np.isfinite(flat), axis=1)
        if not valid.any():
            raise InvalidConfigurationError("Coordinate system has no finite cell centres")

        self._points = flat[valid]
        self._point_indices = np.flatnonzero(valid)
        self._extent = Extent.from_points(self._points)
        self._nominal_resolution: Optional[float] = None

    @staticmethod
    def _digest(lon: np.ndarray, lat: np.ndarray) -> str:
        h = hashlib.sha1()
        h.update(str(lon.shape).encode())
        h.update(np.ascontiguousarray(lon).tobytes())
        h.update(np.ascontiguousarray(lat).tobytes())
        return h.hexdigest()

    @property
    def shape(self) -> Tuple[int, int]:
        return self.lon.shape

    @property
    def size(self) -> int:
        return self.lon.size

    @property
    def points(self) -> np.ndarray:
        """(n, 2) array of valid cell centres as (x, y)."""
        return self._points

    @property
    def point_indices(self) -> np.ndarray:
        """Flat cell index of each row of ``points``."""
        return self._point_indices

    @property
    def extent(self) -> Extent:
        return self._extent

    @property
    def nominal_resolution(self) -> float:
        """
        Median distance between neighbouring cell centres.

        Used to size the lookup table and to derive default search
        radii for synthetic data.
        """
        if self._nominal_resolution is None:
            spacings = []
            if self.shape[1] > 1:
                spacings.append(np.hypot(np.diff(self.lon, axis=1), np.diff(self.lat, axis=1)).ravel())
            if self.shape[0] > 1:
                spacings.append(np.hypot(np.diff(self.lon, axis=0), np.diff(self.lat, axis=0)).ravel())
            values = np.concatenate(spacings) if spacings else np.array([])
            values = values[np.isfinite(values) & (values > 0)]
            if len(values) > 0:
                self._nominal_resolution = float(np.median(values))
            else:
                span = max(self.extent.width, self.extent.height)
                self._nominal_resolution = span if span > 0 else 1.0
        return self._nominal_resolution

    def cell_of(self, flat_index: int) -> Tuple[int, int]:
        """Convert a flat cell index to (j, i)."""
        j, i = divmod(int(flat_index), self.shape[1])
        return j, i

    def __repr__(self) -> str:
        return f"CurvilinearCoordinates(shape={self.shape}, key={self.key[:12]!r})"


@dataclass(frozen=True)
class QueryingParameters:
    """
    Tunable knobs for approximate (iterative) nearest-neighbour search.

    The search starts with a square of half-width ``minimum_resolution``
    around the query position and multiplies it by ``expansion_factor``
    after each empty result, for at most ``max_iterations`` expansions and
    never beyond ``maximum_search_distance``.

    Attributes:
        minimum_resolution: Initial search half-width
        expansion_factor: Growth factor applied after an empty search
        maximum_search_distance: Largest half-width ever searched
        max_iterations: Number of expansions allowed after the first search
    """
    minimum_resolution: float
    expansion_factor: float
    maximum_search_distance: float
    max_iterations: int = 1

    def validate(self) -> "QueryingParameters":
        """
        Check that the parameters allow the search to make progress.

        Returns:
            self, so calls can be chained

        Raises:
            InvalidConfigurationError: If any field is out of range
        """
        for name in ("minimum_resolution", "expansion_factor", "maximum_search_distance"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise InvalidConfigurationError(f"{name} must be finite, got {value}")
        if self.minimum_resolution <= 0:
            raise InvalidConfigurationError(
                f"minimum_resolution must be > 0, got {self.minimum_resolution}")
        if self.expansion_factor < 1.0:
            raise InvalidConfigurationError(
                f"expansion_factor must be >= 1, got {self.expansion_factor}")
        if self.maximum_search_distance <= 0:
            raise InvalidConfigurationError(
                f"maximum_search_distance must be > 0, got {self.maximum_search_distance}")
        if self.max_iterations < 0:
            raise InvalidConfigurationError(
                f"max_iterations must be >= 0, got {self.max_iterations}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


class SampleDomain:
    """
    Regular target grid onto which curvilinear data is resampled.

    Positions are cell centres visited in row-major order starting with the
    top (northernmost) row, x increasing along each row. The same order is
    used for timing and for image rows, so a resampled vector reshapes
    directly to (height, width).

    Example:
        >>> domain = SampleDomain(Extent(0, 0, 10, 10), 2, 2)
        >>> domain.positions().tolist()
        [[2.5, 7.5], [7.5, 7.5], [2.5, 2.5], [7.5, 2.5]]
    """

    def __init__(self, extent: Extent, width: int, height: int):
        if width < 1 or height < 1:
            raise InvalidConfigurationError(
                f"Sample domain must be at least 1x1, got {width}x{height}")
        self.extent = extent
        self.width = int(width)
        self.height = int(height)

        dx = extent.width / self.width
        dy = extent.height / self.height
        xs = extent.min_x + (np.arange(self.width) + 0.5) * dx
        ys = extent.max_y - (np.arange(self.height) + 0.5) * dy
        xx, yy = np.meshgrid(xs, ys)
        self._positions = np.column_stack([xx.ravel(), yy.ravel()])
        self._positions.setflags(write=False)

    def positions(self) -> np.ndarray:
        """(width * height, 2) read-only array of query positions."""
        return self._positions

    def __len__(self) -> int:
        return self.width * self.height

    def __iter__(self) -> Iterator[Tuple[float, float]]:
        for x, y in self._positions:
            yield float(x), float(y)

    def __repr__(self) -> str:
        return f"SampleDomain({self.extent}, width={self.width}, height={self.height})"


@dataclass(frozen=True)
class TuningRecord:
    """
    One row of the tuning results table.

    Attributes:
        minimum_resolution: Value used for the run
        expansion_factor: Value used for the run
        maximum_search_distance: Value used for the run
        max_iterations: Value used for the run
        per_query_time: End-to-end resampling time divided by sample count (s)
    """
    minimum_resolution: float
    expansion_factor: float
    maximum_search_distance: float
    max_iterations: int
    per_query_time: float

    @classmethod
    def from_parameters(cls, params: QueryingParameters, per_query_time: float) -> "TuningRecord":
        return cls(
            minimum_resolution=params.minimum_resolution,
            expansion_factor=params.expansion_factor,
            maximum_search_distance=params.maximum_search_distance,
            max_iterations=params.max_iterations,
            per_query_time=per_query_time
        )

    def total_time(self, sample_count: int) -> float:
        """Extrapolated time for a domain of ``sample_count`` positions."""
        return self.per_query_time * sample_count

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)
