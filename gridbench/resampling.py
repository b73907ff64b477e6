"""
Nearest-Cell Resampling onto a Regular Grid

Reads one 2D slice of a curvilinear variable and samples it at every
position of a SampleDomain through a spatial index. Positions for which the
index returns no cell are filled with NaN.
"""

from typing import Callable, Dict, Union
import numpy as np
import xarray as xr

from .data_models import SampleDomain
from .exceptions import InvalidConfigurationError
from .geometry.base import CurvilinearIndex

TIME_DIM_NAMES = ("time", "t", "time_counter")
DEPTH_DIM_NAMES = ("depth", "deptht", "depthu", "depthv", "z", "lev", "level")


def _leading_indexers(dims, time_index: int, depth_index: int) -> Dict[str, int]:
    """Map every non-spatial dimension to the index to select."""
    indexers = {}
    for dim in dims[:-2]:
        name = str(dim).lower()
        if name in TIME_DIM_NAMES:
            indexers[dim] = time_index
        elif name in DEPTH_DIM_NAMES:
            indexers[dim] = depth_index
        else:
            indexers[dim] = 0
    return indexers


def extract_slice(
    variable: xr.DataArray,
    time_index: int = 0,
    depth_index: int = 0
) -> np.ndarray:
    """
    Reduce a variable to its trailing (y, x) plane as float32.

    Args:
        variable: Data variable whose last two dimensions are (y, x)
        time_index: Index selected along a time dimension
        depth_index: Index selected along a depth dimension

    Returns:
        Flattened float32 array in row-major cell order
    """
    if variable.ndim < 2:
        raise InvalidConfigurationError(
            f"Variable {variable.name!r} must have at least 2 dimensions, got {variable.dims}")
    plane = variable.isel(_leading_indexers(variable.dims, time_index, depth_index))
    return np.asarray(plane.values, dtype=np.float32).ravel()


def resample(
    dataset: xr.Dataset,
    variable: Union[str, xr.DataArray],
    index: CurvilinearIndex,
    domain: SampleDomain,
    time_index: int = 0,
    depth_index: int = 0
) -> np.ndarray:
    """
    Sample a curvilinear variable at every position of a domain.

    Args:
        dataset: Dataset holding the variable
        variable: Variable name or DataArray
        index: Spatial index built from the variable's coordinates
        domain: Target positions
        time_index: Index selected along a time dimension
        depth_index: Index selected along a depth dimension

    Returns:
        float32 array of length ``len(domain)`` in domain order
    """
    if isinstance(variable, str):
        if variable not in dataset:
            raise InvalidConfigurationError(f"Variable {variable!r} not found in dataset")
        variable = dataset[variable]

    source = extract_slice(variable, time_index, depth_index)
    if source.size != index.coords.size:
        raise InvalidConfigurationError(
            f"Variable has {source.size} cells but the index covers {index.coords.size}")

    result = np.full(len(domain), np.nan, dtype=np.float32)
    for k, position in enumerate(domain.positions()):
        cell = index.nearest(position)
        if cell is not None:
            result[k] = source[cell]
    return result


def make_resampler(
    dataset: xr.Dataset,
    variable: Union[str, xr.DataArray],
    time_index: int = 0,
    depth_index: int = 0
) -> Callable[[CurvilinearIndex, SampleDomain], np.ndarray]:
    """Bind a dataset and variable into a ``(index, domain) -> values`` callable."""
    def _resample(index: CurvilinearIndex, domain: SampleDomain) -> np.ndarray:
        return resample(dataset, variable, index, domain, time_index, depth_index)
    return _resample
